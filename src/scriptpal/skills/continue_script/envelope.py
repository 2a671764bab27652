# -*- coding: utf-8 -*-
"""
continue_script/envelope.py

这个文件做什么：
- 把胜出的 attempt 打包成对外的 ContinuationResult：
  lines + 简短消息 + ValidationReport。
- 成功时也要跑一次契约审计（只读），结果挂在 report 上，
  让调用方能发现“过了流水线自己的检查，但不在公布契约内”的漂移。
"""

from __future__ import annotations

from typing import List, Sequence

from scriptpal.core.schemas import TaggedLine

from .sanitizer import SanitizeStats
from .schema import AttemptRecord, ContinuationResult, KindConfig, ValidationReport
from .validator import count_pages, validate_contract


def default_message(line_count: int) -> str:
	return f"Added {line_count} lines to your script."


def build_result(
	lines: Sequence[TaggedLine],
	assistant_response: str,
	cfg: KindConfig,
	grammar_errors: Sequence[str] = (),
	repaired: bool = False,
	stats: SanitizeStats | None = None,
	attempts: List[AttemptRecord] | None = None,
) -> ContinuationResult:
	lines = tuple(lines)
	stats = stats or SanitizeStats()

	contract_errors = validate_contract(lines, cfg.contract)

	report = ValidationReport(
		line_count=len(lines),
		page_count=count_pages(lines) if cfg.counts_pages else None,
		grammar_valid=True,
		grammar_repaired=repaired,
		errors=list(grammar_errors),
		contract_valid=not contract_errors,
		contract_errors=contract_errors,
		coerced=stats.coerced,
		dropped=stats.dropped,
	)

	message = (assistant_response or "").strip() or default_message(len(lines))

	return ContinuationResult(
		lines=lines,
		assistant_message=message,
		report=report,
		kind=cfg.kind,
		attempts=list(attempts or []),
	)
