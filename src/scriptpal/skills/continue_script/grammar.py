# -*- coding: utf-8 -*-
"""
continue_script/grammar.py

这个文件做什么：
- 校验剧本语法：<speaker> 后面必须是 <dialog>（中间最多夹一行 <directions>）；
  反过来 <dialog> 前面必须有 <speaker>（同样允许夹一行 <directions>）。
- 修复：只在最后一次 attempt 用。给缺 speaker 的 dialog 前面补一行 speaker
  （沿用最近出现的角色名，没有就用占位名 CHARACTER）。

校验范围：
- 在 “上下文尾部 + 新行” 拼起来的序列上检查，
  但只报告牵涉到至少一行新内容的违规（旧文档自己的历史问题不归这次续写负责）。
- 错误是带位置的字符串列表，直接喂给下一次 attempt 的纠错说明。
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from scriptpal.core.schemas import Tag, TaggedLine


PLACEHOLDER_SPEAKER = "CHARACTER"


def _at(tags: Sequence[Tag], i: int) -> Optional[Tag]:
	if 0 <= i < len(tags):
		return tags[i]
	return None


def _pos(i: int, offset: int) -> str:
	if i >= offset:
		return f"line {i - offset + 1}"
	return f"context line {i - offset}"


def speaker_ok(tags: Sequence[Tag], i: int) -> bool:
	nxt = _at(tags, i + 1)
	return nxt is Tag.DIALOG or (nxt is Tag.DIRECTIONS and _at(tags, i + 2) is Tag.DIALOG)


def dialog_ok(tags: Sequence[Tag], i: int) -> bool:
	prev = _at(tags, i - 1)
	return prev is Tag.SPEAKER or (prev is Tag.DIRECTIONS and _at(tags, i - 2) is Tag.SPEAKER)


def validate_grammar(lines: Sequence[TaggedLine], context_tail: Sequence[TaggedLine] = ()) -> List[str]:
	"""
	返回违规列表；空列表表示通过。
	"""
	offset = len(context_tail)
	tags = [line.tag for line in context_tail] + [line.tag for line in lines]
	errors: List[str] = []

	for i, tag in enumerate(tags):
		if tag is Tag.SPEAKER and not speaker_ok(tags, i):
			# 检查窗口完全落在上下文里的 speaker 不归本次续写负责
			reach = i + 2 if _at(tags, i + 1) is Tag.DIRECTIONS else i + 1
			if reach >= offset:
				errors.append(f"<speaker> at {_pos(i, offset)} not followed by <dialog>")

		if tag is Tag.DIALOG and i >= offset and not dialog_ok(tags, i):
			errors.append(f"<dialog> at {_pos(i, offset)} has no preceding <speaker>")

	return errors


def last_speaker_name(lines: Sequence[TaggedLine]) -> Optional[str]:
	for line in reversed(lines):
		if line.tag is Tag.SPEAKER:
			return line.text
	return None


def repair_grammar(lines: Sequence[TaggedLine], context_tail: Sequence[TaggedLine] = ()) -> List[TaggedLine]:
	"""
	给每个缺少合格前置 speaker 的 dialog，紧贴着在它前面插一行 speaker。
	幂等：第二遍时每个 dialog 都已经有合格的 speaker，不会再插。
	"""
	tail_tags = [line.tag for line in context_tail]
	speaker = last_speaker_name(context_tail)
	out: List[TaggedLine] = []

	for line in lines:
		if line.tag is Tag.SPEAKER:
			speaker = line.text
		elif line.tag is Tag.DIALOG:
			tags = tail_tags + [x.tag for x in out] + [Tag.DIALOG]
			if not dialog_ok(tags, len(tags) - 1):
				out.append(TaggedLine(Tag.SPEAKER, speaker or PLACEHOLDER_SPEAKER))
		out.append(line)

	return out
