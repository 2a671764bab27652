# -*- coding: utf-8 -*-
"""
continue_script/validator.py

这个文件做什么：
- 对 sanitize 之后的新行做强校验：
  1) 首行约束（转移表）：永不修复，违反就重试或终态失败
  2) Bounds：行数（full-script 还有页数）在本请求类型的范围内
  3) 契约审计：按对外公布的契约再查一遍，只记录结果，不影响成败

为什么必须强校验：
- 模型会谎报行数、乱造 tag、把续写从错误的位置接上。
- 我们要的是“可控、可回归”的工程行为，不是一次性作文。
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from scriptpal.core.schemas import Tag, TaggedLine

from .context import ConstraintAnalysis
from .errors import BoundsViolation, FirstLineConstraintViolation
from .schema import Contract, KindConfig


def count_pages(lines: Sequence[TaggedLine]) -> int:
	"""
	页数 = chapter-break 数 + 1
	"""
	return sum(1 for line in lines if line.tag is Tag.CHAPTER_BREAK) + 1


def validate_first_line(lines: Sequence[TaggedLine], analysis: ConstraintAnalysis) -> None:
	if analysis.rule is None or not lines:
		return

	first = lines[0].tag
	if analysis.rule.allows(first):
		return

	expected = "|".join(t.value for t in Tag if t in analysis.rule.must_start_with)
	raise FirstLineConstraintViolation(
		f"first_line_invalid: after <{analysis.last_tag_name}> expected <{expected}>, got <{first.value}>"
	)


def _range_errors(
	label: str,
	value: int,
	minimum: Optional[int],
	maximum: Optional[int],
) -> List[str]:
	errors = []
	if minimum is not None and value < minimum:
		errors.append(f"{label} {value} below minimum {minimum}")
	if maximum is not None and value > maximum:
		errors.append(f"{label} {value} above maximum {maximum}")
	return errors


def bounds_errors(lines: Sequence[TaggedLine], cfg: KindConfig) -> List[str]:
	errors = _range_errors("line count", len(lines), cfg.min_lines, cfg.max_lines)
	if cfg.counts_pages:
		errors += _range_errors("page count", count_pages(lines), cfg.min_pages, cfg.max_pages)
	return errors


def validate_bounds(lines: Sequence[TaggedLine], cfg: KindConfig) -> None:
	errors = bounds_errors(lines, cfg)
	if errors:
		raise BoundsViolation("; ".join(errors))


def validate_contract(lines: Sequence[TaggedLine], contract: Contract) -> List[str]:
	"""
	只读审计：返回违反契约的描述，空列表表示符合契约。
	"""
	errors = _range_errors("Script line count", len(lines), contract.min_lines, contract.max_lines)
	if contract.min_pages is not None or contract.max_pages is not None:
		errors += _range_errors("Script page count", count_pages(lines), contract.min_pages, contract.max_pages)
	return errors
