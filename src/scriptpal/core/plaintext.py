# -*- coding: utf-8 -*-
"""
core/plaintext.py

这个文件做什么：
- 纯规则地把“纯文本剧本”转成 TaggedLine（稳定、可复现）。
- 给文档源（core/io.py）和 scripts/convert_plain_script.py 用：
  老剧本、手写草稿往往没有标签，先转成标签行才能进入续写流水线。

规则（简化但够用）：
1) 按行清洗：统一换行，去掉首尾空白，空行丢弃
2) '---'（三个及以上连字符）识别为 chapter-break
3) 前缀识别：HEADER: / SPEAKER: / DIALOG: / ACTION: / DIRECTIONS:（大小写不敏感）
4) 其他一律当 action
"""

from __future__ import annotations

import re
from typing import List

from scriptpal.core.schemas import Tag, TaggedLine


_BREAK_RE = re.compile(r"^-{3,}$")

_PREFIX_RULES = [
	("HEADER:", Tag.HEADER),
	("SPEAKER:", Tag.SPEAKER),
	("DIALOG:", Tag.DIALOG),
	("ACTION:", Tag.ACTION),
	("DIRECTIONS:", Tag.DIRECTIONS),
]


def standardize_lines(text: str) -> List[str]:
	"""
	CRLF/CR -> LF，逐行 strip，丢掉空行。
	"""
	text = text.replace("\r\n", "\n").replace("\r", "\n")
	return [line.strip() for line in text.split("\n") if line.strip()]


def _classify(line: str) -> TaggedLine | None:
	if _BREAK_RE.match(line):
		return TaggedLine(Tag.CHAPTER_BREAK)

	upper = line.upper()
	for prefix, tag in _PREFIX_RULES:
		if upper.startswith(prefix):
			body = line[len(prefix):].strip()
			# "SPEAKER:" 后面什么都没有：不值得单独成行
			if not body:
				return None
			return TaggedLine(tag, body)

	return TaggedLine(Tag.ACTION, line)


def parse_plain_script(text: str) -> List[TaggedLine]:
	"""
	纯文本剧本 -> TaggedLine 列表
	"""
	out: List[TaggedLine] = []
	for line in standardize_lines(text):
		tagged = _classify(line)
		if tagged is None:
			continue
		out.append(tagged)
	return out
