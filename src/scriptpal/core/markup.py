# -*- coding: utf-8 -*-
"""
core/markup.py

这个文件做什么：
- "<tag>content</tag>" 标记的底层扫描：清洗 + 抽取 (raw_tag, content) 对。
- 不判断 tag 合不合法，那是 sanitizer / 文档源各自的策略。

清洗内容：
- CRLF/CR -> LF
- 去掉 <?xml ...?>、<!DOCTYPE ...>、``` 代码围栏
- 自闭合 <chapter-break/>（以及任意 <x/>）归一成 <x></x>
"""

from __future__ import annotations

import html
import re
from typing import List, Tuple


_PROLOG_RE = re.compile(r"<\?xml[^>]*\?>|<!DOCTYPE[^>]*>", flags=re.IGNORECASE)
_FENCE_RE = re.compile(r"^\s*```[\w-]*\s*$", flags=re.MULTILINE)
_SELF_CLOSING_RE = re.compile(r"<\s*([A-Za-z][\w-]*)\s*/\s*>")
_PAIR_RE = re.compile(
	r"<\s*([A-Za-z][\w-]*)\s*>(.*?)<\s*/\s*\1\s*>",
	flags=re.IGNORECASE | re.DOTALL,
)


def clean_markup(text: str) -> str:
	text = text.replace("\r\n", "\n").replace("\r", "\n")
	text = _PROLOG_RE.sub("", text)
	text = _FENCE_RE.sub("", text)
	text = _SELF_CLOSING_RE.sub(lambda m: f"<{m.group(1)}></{m.group(1)}>", text)
	return text.strip()


def collapse_text(content: str) -> str:
	"""
	一个 tag = 一行：内部换行/连续空白压成单个空格，并反转义实体。
	"""
	return " ".join(html.unescape(content).split())


def scan_tagged(text: str) -> List[Tuple[str, str]]:
	"""
	抽取所有形如 <tag>content</tag> 的配对，按出现顺序返回。
	- raw_tag 原样返回（未做大小写/别名处理）
	- content 已 collapse_text
	"""
	out = []
	for m in _PAIR_RE.finditer(clean_markup(text)):
		out.append((m.group(1), collapse_text(m.group(2))))
	return out


def has_markup(text: str) -> bool:
	return _PAIR_RE.search(clean_markup(text)) is not None
