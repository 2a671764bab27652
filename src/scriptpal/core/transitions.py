# -*- coding: utf-8 -*-
"""
core/transitions.py

这个文件做什么：
- 静态领域知识：给定“现有剧本最后一行的 tag”，续写的第一行允许/禁止哪些 tag。
- 纯数据 + 查表函数，运行期不会改变。
- 标签别名归一（normalize_tag）：文档源和 sanitizer 共用同一张别名表。

查表键：
- 六个 Tag 之一
- None：空文档（哨兵 "none"）。空文档不能以 dialog/directions/chapter-break 开头。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

from scriptpal.core.schemas import Tag


@dataclass(frozen=True)
class TransitionRule:
	must_start_with: FrozenSet[Tag]
	must_not_start_with: FrozenSet[Tag]
	# 只有 speaker 之后允许 "directions 再接 dialog"
	directions_then_dialog: bool = False

	def allows(self, tag: Tag) -> bool:
		return tag in self.must_start_with and tag not in self.must_not_start_with


def _rule(must, must_not, directions_then_dialog: bool = False) -> TransitionRule:
	return TransitionRule(
		must_start_with=frozenset(must),
		must_not_start_with=frozenset(must_not),
		directions_then_dialog=directions_then_dialog,
	)


H, A, S, D, P, B = (
	Tag.HEADER,
	Tag.ACTION,
	Tag.SPEAKER,
	Tag.DIALOG,
	Tag.DIRECTIONS,
	Tag.CHAPTER_BREAK,
)

TRANSITIONS: Dict[Optional[Tag], TransitionRule] = {
	None: _rule([H, A, S], [D, P, B]),
	H: _rule([A, S], [H, D, P, B]),
	A: _rule([S, A, H], [D, P]),
	S: _rule([D, P], [S, H, A, B], directions_then_dialog=True),
	D: _rule([S, A, H], [D, P]),
	P: _rule([D], [S, H, A, P, B]),
	B: _rule([H], [S, A, D, P, B]),
}


def rule_for(last_tag: Optional[Tag]) -> TransitionRule:
	return TRANSITIONS[Tag(last_tag) if last_tag is not None else None]


def tag_name(last_tag: Optional[Tag]) -> str:
	return last_tag.value if last_tag is not None else "none"


# 标签别名：模型输出和外部文档里常见的写法
TAG_ALIASES: Dict[str, Tag] = {
	"scene": Tag.HEADER,
	"scene-heading": Tag.HEADER,
	"heading": Tag.HEADER,
	"slugline": Tag.HEADER,
	"slug": Tag.HEADER,
	"dialogue": Tag.DIALOG,
	"line": Tag.DIALOG,
	"character": Tag.SPEAKER,
	"name": Tag.SPEAKER,
	"parenthetical": Tag.DIRECTIONS,
	"paren": Tag.DIRECTIONS,
	"direction": Tag.DIRECTIONS,
	"description": Tag.ACTION,
	"narration": Tag.ACTION,
	"break": Tag.CHAPTER_BREAK,
	"page-break": Tag.CHAPTER_BREAK,
	"pagebreak": Tag.CHAPTER_BREAK,
	"chapter": Tag.CHAPTER_BREAK,
	"chapterbreak": Tag.CHAPTER_BREAK,
}


def normalize_tag(raw: Any) -> Optional[Tag]:
	"""
	大小写、下划线/空格、别名都归一到 Tag；归一不了返回 None。
	"""
	if isinstance(raw, Tag):
		return raw
	if not isinstance(raw, str):
		return None

	key = "-".join(raw.strip().lower().replace("_", " ").split())
	if not key:
		return None

	try:
		return Tag(key)
	except ValueError:
		return TAG_ALIASES.get(key)
