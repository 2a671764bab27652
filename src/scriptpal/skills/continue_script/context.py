# -*- coding: utf-8 -*-
"""
continue_script/context.py

这个文件做什么：
- Context Window Builder：从完整文档截取尾部 W 行发给模型。
- Constraint Analyzer：看窗口最后一行的 tag，查转移表，得到“首行必须/禁止”的规则，
  并生成写进 prompt 的硬性说明文字。

关键点：
- 截断绝不能把 speaker 和它的 dialog 拆开：否则语法校验会看到一个
  在完整文档里并不存在的“孤立 dialog”。
- 两个函数都是纯函数，不读写任何东西。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from scriptpal.core.schemas import Tag, TaggedLine
from scriptpal.core.transitions import TransitionRule, rule_for, tag_name


_SPEECH_TAGS = (Tag.DIALOG, Tag.DIRECTIONS)


def build_context_window(lines: Sequence[TaggedLine], max_lines: int) -> Tuple[TaggedLine, ...]:
	"""
	取最后 max_lines 行。
	若窗口以 dialog/directions 开头，向前最多多走两行，把对应的 speaker 带上
	（speaker -> directions -> dialog 的情况要走两行）。找不到 speaker 就保持原窗口。
	"""
	lines = tuple(lines)
	if max_lines <= 0:
		return ()
	if len(lines) <= max_lines:
		return lines

	start = len(lines) - max_lines
	i = start
	while i > 0 and start - i < 2 and lines[i].tag in _SPEECH_TAGS:
		i -= 1
		if lines[i].tag is Tag.SPEAKER:
			start = i
			break

	return lines[start:]


@dataclass(frozen=True)
class ConstraintAnalysis:
	"""
	last_tag：窗口最后一行的 tag（空文档为 None）
	rule：查表结果；首行约束被关闭时为 None
	text：写进 prompt 的说明（rule 为 None 时为空）
	"""
	last_tag: Optional[Tag]
	rule: Optional[TransitionRule]
	text: str = ""

	@property
	def last_tag_name(self) -> str:
		return tag_name(self.last_tag)


def _ordered(tags: Iterable[Tag]) -> list:
	wanted = set(tags)
	return [t for t in Tag if t in wanted]


def _join_tags(tags: Iterable[Tag]) -> str:
	names = [f"<{t.value}>" for t in _ordered(tags)]
	if len(names) <= 1:
		return "".join(names)
	if len(names) == 2:
		return f"{names[0]} or {names[1]}"
	return ", ".join(names[:-1]) + f", or {names[-1]}"


def constraint_text(last_tag: Optional[Tag], rule: TransitionRule) -> str:
	if rule.directions_then_dialog:
		must = "<dialog> (or <directions> then <dialog>)"
	else:
		must = _join_tags(rule.must_start_with)

	head = "FIRST LINE CONSTRAINT:" if last_tag is not None else "FIRST LINE CONSTRAINT (new script):"
	parts = [
		head,
		f"- You MUST start with {must}.",
	]
	if rule.must_not_start_with:
		parts.append(f"- You MUST NOT start with {_join_tags(rule.must_not_start_with)}.")
	parts.append("- Violation = invalid output.")
	return "\n".join(parts)


def analyze_constraint(window: Sequence[TaggedLine], enabled: bool = True) -> ConstraintAnalysis:
	last_tag = window[-1].tag if window else None
	if not enabled:
		return ConstraintAnalysis(last_tag=last_tag, rule=None, text="")

	rule = rule_for(last_tag)
	return ConstraintAnalysis(last_tag=last_tag, rule=rule, text=constraint_text(last_tag, rule))
