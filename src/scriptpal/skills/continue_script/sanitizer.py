# -*- coding: utf-8 -*-
"""
continue_script/sanitizer.py

这个文件做什么：
- 把模型的原始输出（标记文本 / 结构化行数组）变成规范的 TaggedLine 列表。
- 纯函数、确定性、幂等：sanitize(sanitize(x)) == sanitize(x)。

策略：
1) 结构化 {tag,text}：tag 归一（大小写、别名，如 scene -> header、dialogue -> dialog），
   归一不了的整条丢弃；空文本丢弃（chapter-break 除外）。
2) 标记文本：扫描 <tag>content</tag>（自闭合 <chapter-break/> 先归一）。
   词表外但有内容的 tag 强制转成 action（保留作者文字），计入 coerced。
3) 非空文本里一个 tag 都抽不出来：每个非空行当作 action（彻底格式崩坏也能给出合法结构）。
4) 连续的 chapter-break 合并成一个。
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from scriptpal.core.markup import clean_markup, scan_tagged
from scriptpal.core.plaintext import standardize_lines
from scriptpal.core.schemas import Tag, TaggedLine
from scriptpal.core.transitions import normalize_tag


@dataclass
class SanitizeStats:
	coerced: int = 0
	dropped: int = 0
	collapsed: int = 0
	fallback: bool = False


@dataclass
class SanitizeResult:
	lines: List[TaggedLine] = field(default_factory=list)
	stats: SanitizeStats = field(default_factory=SanitizeStats)


def _clean_text(text: Any) -> str:
	if text is None:
		return ""
	return " ".join(str(text).split())


def _make_line(tag: Tag, text: str) -> Optional[TaggedLine]:
	if tag is Tag.CHAPTER_BREAK:
		return TaggedLine(Tag.CHAPTER_BREAK)
	if not text:
		return None
	return TaggedLine(tag, text)


def _from_entries(entries: Iterable[Any], stats: SanitizeStats) -> List[TaggedLine]:
	out: List[TaggedLine] = []
	for entry in entries:
		if isinstance(entry, TaggedLine):
			out.append(entry)
			continue

		if not isinstance(entry, dict):
			stats.dropped += 1
			continue

		tag = normalize_tag(entry.get("tag") or entry.get("format") or entry.get("type"))
		text = _clean_text(entry.get("text", entry.get("content")))
		line = _make_line(tag, text) if tag is not None else None
		if line is None:
			stats.dropped += 1
			continue
		out.append(line)
	return out


def _from_markup(text: str, stats: SanitizeStats) -> List[TaggedLine]:
	pairs = scan_tagged(text)

	if not pairs:
		source = standardize_lines(clean_markup(text))
		if source:
			stats.fallback = True
		return [TaggedLine(Tag.ACTION, _clean_text(line)) for line in source]

	out: List[TaggedLine] = []
	for raw_tag, content in pairs:
		tag = normalize_tag(raw_tag)
		if tag is None:
			if not content:
				stats.dropped += 1
				continue
			stats.coerced += 1
			tag = Tag.ACTION

		line = _make_line(tag, content)
		if line is None:
			stats.dropped += 1
			continue
		out.append(line)
	return out


def _structured_from_text(text: str) -> Optional[List[Any]]:
	"""
	字符串本身是 JSON（{"lines": [...]} 或 [...]）时取出行数组。
	"""
	stripped = text.strip()
	if not stripped or stripped[0] not in "{[":
		return None
	try:
		data = json.loads(stripped)
	except ValueError:
		return None

	items = data.get("lines") if isinstance(data, dict) else data
	if isinstance(items, list) and all(isinstance(x, dict) for x in items):
		return items
	return None


def _collapse_breaks(lines: List[TaggedLine], stats: SanitizeStats) -> List[TaggedLine]:
	out: List[TaggedLine] = []
	for line in lines:
		if line.tag is Tag.CHAPTER_BREAK and out and out[-1].tag is Tag.CHAPTER_BREAK:
			stats.collapsed += 1
			continue
		out.append(line)
	return out


def sanitize(raw: Any) -> SanitizeResult:
	"""
	raw 可以是：标记字符串 / JSON 字符串 / list（TaggedLine、dict 或字符串）/ {"lines": [...]}
	"""
	stats = SanitizeStats()

	if isinstance(raw, dict):
		raw = raw.get("lines") or raw.get("formattedScript") or ""

	if isinstance(raw, (list, tuple)):
		if raw and all(isinstance(x, str) for x in raw):
			lines = _from_markup("\n".join(raw), stats)
		else:
			lines = _from_entries(raw, stats)
	elif isinstance(raw, str):
		items = _structured_from_text(raw)
		lines = _from_entries(items, stats) if items is not None else _from_markup(raw, stats)
	else:
		lines = []

	return SanitizeResult(lines=_collapse_breaks(lines, stats), stats=stats)


def sanitize_lines(raw: Any) -> List[TaggedLine]:
	return sanitize(raw).lines
