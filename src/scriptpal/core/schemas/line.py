# -*- coding: utf-8 -*-
"""
core/schemas/line.py

这个文件做什么：
- 定义剧本的最小单元 TaggedLine（tag + text），以及只读的文档快照 DocumentContext。
- 负责把行序列化回 "<tag>text</tag>" 标记（编辑器与持久层都认这个格式）。

约定：
- Tag 是封闭集合：六个值，永远不会多也不会少。
- chapter-break 不携带文本；其余 tag 的 text 必须非空。
- 序列化时转义 & < >，解析端（sanitizer）负责反转义，保证往返稳定。
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple


class Tag(str, Enum):
	HEADER = "header"
	ACTION = "action"
	SPEAKER = "speaker"
	DIALOG = "dialog"
	DIRECTIONS = "directions"
	CHAPTER_BREAK = "chapter-break"


VALID_TAGS: Tuple[str, ...] = tuple(t.value for t in Tag)


@dataclass(frozen=True)
class TaggedLine:
	"""
	一行剧本。

	tag：
	- 必须是 Tag 之一（构造时强制转换，非法值直接 raise）

	text：
	- 单行文本（不含换行）；chapter-break 恒为空串
	"""
	tag: Tag
	text: str = ""

	def __post_init__(self) -> None:
		tag = Tag(self.tag)
		object.__setattr__(self, "tag", tag)

		if tag is Tag.CHAPTER_BREAK:
			object.__setattr__(self, "text", "")
			return

		if not self.text or not self.text.strip():
			raise ValueError(f"empty text for <{tag.value}>")

	def to_dict(self) -> dict:
		return {"tag": self.tag.value, "text": self.text}


def to_markup(line: TaggedLine) -> str:
	tag = line.tag.value
	return f"<{tag}>{html.escape(line.text, quote=False)}</{tag}>"


def lines_to_markup(lines: Iterable[TaggedLine]) -> str:
	return "\n".join(to_markup(line) for line in lines)


@dataclass(frozen=True)
class DocumentContext:
	"""
	现有剧本的只读快照。

	- lines：按顺序的全部行（tuple，保证一次请求内不可变）
	- title/description：文档元信息，只给 prompt 用
	"""
	lines: Tuple[TaggedLine, ...] = field(default_factory=tuple)
	title: str = ""
	description: str = ""

	def __post_init__(self) -> None:
		object.__setattr__(self, "lines", tuple(self.lines))

	@property
	def last_tag(self) -> Optional[Tag]:
		if not self.lines:
			return None
		return self.lines[-1].tag

	def __len__(self) -> int:
		return len(self.lines)
