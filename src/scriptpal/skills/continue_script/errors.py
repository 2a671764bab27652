# -*- coding: utf-8 -*-
"""
continue_script/errors.py

这个文件做什么：
- 续写流水线的错误分类。除 ExhaustedRetries / ContinuationCancelled 外，
  其余都是“单次 attempt 失败”的信号，由重试控制器内部消化，不会漏给调用方。

error_kind 用于日志与 attempt 记录（稳定的机器可读字符串）。
"""

from __future__ import annotations

from typing import List, Sequence


class ContinuationError(ValueError):
	error_kind = "continuation_error"


class PayloadParseError(ContinuationError):
	"""后端没有返回可用的结构化 payload。"""
	error_kind = "payload_parse"


class BoundsViolation(ContinuationError):
	"""行数/页数超出本次请求类型的范围。"""
	error_kind = "bounds"


class GrammarViolation(ContinuationError):
	"""speaker -> dialog 相邻规则被破坏。"""
	error_kind = "grammar"

	def __init__(self, errors: Sequence[str]) -> None:
		self.errors: List[str] = list(errors)
		super().__init__("grammar_invalid: " + "; ".join(self.errors))


class FirstLineConstraintViolation(ContinuationError):
	"""续写第一行的 tag 被转移表禁止。永不修复。"""
	error_kind = "first_line"


class ModelInvocationError(ContinuationError):
	"""后端超时或传输失败。计为一次失败的 attempt。"""
	error_kind = "model_invocation"


class ExhaustedRetries(ContinuationError):
	"""
	终态失败：max_attempts 次内没有任何一次通过校验。
	- reason：最后一次失败的具体原因
	- attempts：每次 attempt 的记录（AttemptRecord）
	"""
	error_kind = "exhausted"

	def __init__(self, reason: str, attempts: Sequence = ()) -> None:
		self.reason = reason
		self.attempts = list(attempts)
		super().__init__(f"continuation failed after {len(self.attempts)} attempt(s): {reason}")


class ContinuationCancelled(ContinuationError):
	"""调用方放弃了请求（例如写作者离开了页面）。"""
	error_kind = "cancelled"
