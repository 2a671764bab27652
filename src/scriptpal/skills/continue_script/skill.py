# -*- coding: utf-8 -*-
"""
continue_script/skill.py

这个文件做什么：
- 把续写的完整流程封装成一个“skill”，并用显式的状态机驱动重试：
  1) 截取上下文窗口 + 分析首行约束（每个请求只做一次，文档是不可变快照）
  2) build prompt（带上一次的纠错说明）
  3) 调用 LLM（超时/传输错误 = 一次失败的 attempt）
  4) 解析 payload -> sanitize
  5) 首行约束（永不修复）
  6) 语法校验；只有最后一次 attempt 才修复，否则重试
  7) Bounds 校验（修复之后也要查）
  8) 通过则打包结果；全部失败则 raise ExhaustedRetries（不产生任何部分结果）

状态：Attempting(n) -> Succeeded | Attempting(n+1) | Exhausted
- AttemptState 不可变，失败原因随 advance() 传给下一次 attempt。

注意：
- 这里不关心后端是谁，只依赖 LLMBackend 协议：
  llm_client.invoke(messages, output_schema, temperature) -> ModelReply
- skill 本身不持有任何跨请求的可变状态，可以被多个请求并发复用。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from scriptpal.core.schemas import TaggedLine, VALID_TAGS
from scriptpal.providers.llm import LLMBackend, LLMRequestError, ModelReply

from .context import ConstraintAnalysis, analyze_constraint, build_context_window
from .envelope import build_result
from .errors import (
	ContinuationCancelled,
	ContinuationError,
	ExhaustedRetries,
	GrammarViolation,
	ModelInvocationError,
	PayloadParseError,
)
from .grammar import repair_grammar, validate_grammar
from .payload import extract_payload
from .prompt import build_messages, output_schema
from .sanitizer import SanitizeStats, sanitize
from .schema import (
	AttemptRecord,
	AttemptState,
	ContinuationRequest,
	ContinuationResult,
	KindConfig,
)
from .validator import validate_bounds, validate_first_line


@dataclass
class AttemptOutcome:
	"""
	一次 attempt 的产出。error 为 None 表示通过。
	"""
	error: Optional[ContinuationError] = None
	raw_payload: Any = None
	lines: List[TaggedLine] = field(default_factory=list)
	assistant_response: str = ""
	grammar_errors: List[str] = field(default_factory=list)
	repaired: bool = False
	stats: SanitizeStats = field(default_factory=SanitizeStats)

	@property
	def ok(self) -> bool:
		return self.error is None

	def record(self, attempt: int) -> AttemptRecord:
		return AttemptRecord(
			attempt=attempt,
			ok=self.ok,
			reason=str(self.error) if self.error else "",
			error_kind=self.error.error_kind if self.error else "",
			line_count=len(self.lines),
			repaired=self.repaired,
			coerced=self.stats.coerced,
			dropped=self.stats.dropped,
		)


def correction_note(reason: str, cfg: KindConfig) -> str:
	"""
	上一次的失败原因 -> 本次的纠错说明。
	"""
	if not reason:
		return ""
	return (
		f"{reason}. "
		'Respond only in JSON with "formattedScript" and "assistantResponse". '
		f"Return {cfg.target_text} using: {', '.join(VALID_TAGS)}. "
		"Follow the screenplay grammar rules exactly."
	)


def _check_cancel(cancel: Optional[threading.Event]) -> None:
	if cancel is not None and cancel.is_set():
		raise ContinuationCancelled("continuation cancelled by caller")


class ContinueScriptSkill:
	def __init__(self, llm_client: LLMBackend):
		self.llm_client = llm_client

	def run(self, request: ContinuationRequest, cancel: Optional[threading.Event] = None) -> ContinuationResult:
		cfg = request.config
		max_attempts = request.attempts_allowed

		window = build_context_window(request.context.lines, cfg.window_lines)
		analysis = analyze_constraint(window, enabled=cfg.first_line_rule)

		state = AttemptState()
		records: List[AttemptRecord] = []

		while True:
			_check_cancel(cancel)

			final = state.attempt_number >= max_attempts
			outcome = self.attempt(request, window, analysis, state, final, cancel)
			records.append(outcome.record(state.attempt_number))

			if outcome.ok:
				return build_result(
					outcome.lines,
					outcome.assistant_response,
					cfg,
					grammar_errors=outcome.grammar_errors,
					repaired=outcome.repaired,
					stats=outcome.stats,
					attempts=records,
				)

			if final:
				raise ExhaustedRetries(str(outcome.error), records) from outcome.error

			state = state.advance(str(outcome.error), outcome.raw_payload)

	def attempt(
		self,
		request: ContinuationRequest,
		window: Sequence[TaggedLine],
		analysis: ConstraintAnalysis,
		state: AttemptState,
		final: bool,
		cancel: Optional[threading.Event] = None,
	) -> AttemptOutcome:
		cfg = request.config
		outcome = AttemptOutcome()

		messages = build_messages(request, window, analysis, correction_note(state.last_error_reason, cfg))

		try:
			reply = self._invoke(messages, cfg)
			_check_cancel(cancel)
			outcome.raw_payload = reply.payload if reply.payload is not None else reply.raw_text

			extracted = extract_payload(reply, structured=self._structured())
			outcome.assistant_response = extracted.assistant_response

			sanitized = sanitize(extracted.script)
			outcome.stats = sanitized.stats
			outcome.lines = sanitized.lines
			if not outcome.lines:
				raise PayloadParseError("formatted_script_missing: no script lines after sanitizing")

			validate_first_line(outcome.lines, analysis)

			errors = validate_grammar(outcome.lines, window)
			if errors:
				if not final:
					raise GrammarViolation(errors)

				outcome.lines = repair_grammar(outcome.lines, window)
				outcome.grammar_errors = errors
				outcome.repaired = True

				remaining = validate_grammar(outcome.lines, window)
				if remaining:
					raise GrammarViolation(remaining)

				# 修复可能在第 0 行前补 speaker；首行约束不修，只判失败
				validate_first_line(outcome.lines, analysis)

			validate_bounds(outcome.lines, cfg)

		except ContinuationCancelled:
			raise
		except ContinuationError as e:
			outcome.error = e

		return outcome

	def _structured(self) -> bool:
		return bool(getattr(self.llm_client, "structured", True))

	def _invoke(self, messages, cfg: KindConfig) -> ModelReply:
		schema = output_schema(cfg.kind) if self._structured() else None
		try:
			return self.llm_client.invoke(messages, schema, cfg.temperature)
		except (LLMRequestError, TimeoutError, ConnectionError) as e:
			raise ModelInvocationError(f"model invocation failed: {e}") from e
