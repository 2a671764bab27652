# -*- coding: utf-8 -*-
"""
continue_script/schema.py

- TaggedLine / DocumentContext：从 core.schemas 导入（共享契约）。
- 请求类型（ContinuationKind）与它们的数值配置表 KIND_CONFIGS，定义于此。
- 一次请求内的临时结构：AttemptState、AttemptRecord、ValidationReport、ContinuationResult。

注意：
- 三种请求类型只改变数字，不改变算法；不要为每种类型写子类。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from scriptpal.core.schemas import DocumentContext, TaggedLine, lines_to_markup


__all__ = [
	"TaggedLine",
	"DocumentContext",
	"ContinuationKind",
	"Contract",
	"KindConfig",
	"KIND_CONFIGS",
	"kind_config",
	"ContinuationRequest",
	"AttemptState",
	"AttemptRecord",
	"ValidationReport",
	"ContinuationResult",
]


class ContinuationKind(str, Enum):
	NEXT_LINES = "next-lines"
	APPEND_PAGE = "append-page"
	FULL_SCRIPT = "full-script"


@dataclass(frozen=True)
class Contract:
	"""
	对外公布的输出契约（调用方审计用）。页数只对 full-script 有意义。
	"""
	min_lines: int
	max_lines: int
	min_pages: Optional[int] = None
	max_pages: Optional[int] = None


@dataclass(frozen=True)
class KindConfig:
	"""
	一种请求类型的全部数值配置。

	min_lines/max_lines/min_pages/max_pages：
	- 流水线自己的硬范围（Bounds Validator 用）
	- 可以比 contract 更严（append-page 管线 12-16，契约 12-26）

	max_attempts：默认重试上限（请求可覆盖）
	attach_context：是否把现有剧本尾部发给模型
	first_line_rule：是否启用首行转移约束
	window_lines：上下文窗口行数 W
	target_text：写进 prompt 的目标长度描述
	"""
	kind: ContinuationKind
	min_lines: int
	max_lines: int
	contract: Contract
	min_pages: Optional[int] = None
	max_pages: Optional[int] = None
	max_attempts: int = 3
	attach_context: bool = True
	first_line_rule: bool = True
	window_lines: int = 20
	target_text: str = ""
	temperature: float = 0.4

	@property
	def counts_pages(self) -> bool:
		return self.min_pages is not None or self.max_pages is not None


KIND_CONFIGS: Dict[ContinuationKind, KindConfig] = {
	ContinuationKind.NEXT_LINES: KindConfig(
		kind=ContinuationKind.NEXT_LINES,
		min_lines=2,
		max_lines=16,
		contract=Contract(min_lines=2, max_lines=16),
		max_attempts=3,
		window_lines=20,
		target_text="exactly five new lines",
		temperature=0.4,
	),
	ContinuationKind.APPEND_PAGE: KindConfig(
		kind=ContinuationKind.APPEND_PAGE,
		min_lines=12,
		max_lines=16,
		contract=Contract(min_lines=12, max_lines=26),
		max_attempts=3,
		window_lines=30,
		target_text="12-16 new lines (one page)",
		temperature=0.4,
	),
	ContinuationKind.FULL_SCRIPT: KindConfig(
		kind=ContinuationKind.FULL_SCRIPT,
		min_lines=40,
		max_lines=132,
		min_pages=5,
		max_pages=6,
		contract=Contract(min_lines=40, max_lines=132, min_pages=5, max_pages=6),
		max_attempts=1,
		window_lines=60,
		target_text="5-6 new pages separated by <chapter-break></chapter-break>, roughly 15-16 lines per page",
		temperature=0.45,
	),
}


def kind_config(kind: ContinuationKind | str) -> KindConfig:
	return KIND_CONFIGS[ContinuationKind(kind)]


@dataclass(frozen=True)
class ContinuationRequest:
	context: DocumentContext
	instruction: str = ""
	kind: ContinuationKind = ContinuationKind.NEXT_LINES
	max_attempts: Optional[int] = None

	def __post_init__(self) -> None:
		object.__setattr__(self, "kind", ContinuationKind(self.kind))
		if self.max_attempts is not None and self.max_attempts < 1:
			raise ValueError("max_attempts must be >= 1")

	@property
	def config(self) -> KindConfig:
		return kind_config(self.kind)

	@property
	def attempts_allowed(self) -> int:
		if self.max_attempts is not None:
			return self.max_attempts
		return self.config.max_attempts


@dataclass(frozen=True)
class AttemptState:
	"""
	重试状态机的状态（不可变，逐次向前传递）。
	- attempt_number：从 1 开始
	- last_error_reason：上一次失败的原因（第 1 次为空），会变成本次的纠错说明
	- last_raw_payload：上一次后端的原始输出（调试用）
	"""
	attempt_number: int = 1
	last_error_reason: str = ""
	last_raw_payload: Any = None

	def advance(self, reason: str, raw_payload: Any = None) -> "AttemptState":
		return replace(
			self,
			attempt_number=self.attempt_number + 1,
			last_error_reason=reason,
			last_raw_payload=raw_payload,
		)


@dataclass(frozen=True)
class AttemptRecord:
	attempt: int
	ok: bool
	reason: str = ""
	error_kind: str = ""
	line_count: int = 0
	repaired: bool = False
	coerced: int = 0
	dropped: int = 0

	def to_dict(self) -> Dict[str, Any]:
		return {
			"attempt": self.attempt,
			"ok": self.ok,
			"reason": self.reason,
			"error_kind": self.error_kind,
			"line_count": self.line_count,
			"repaired": self.repaired,
			"coerced": self.coerced,
			"dropped": self.dropped,
		}


@dataclass
class ValidationReport:
	line_count: int
	page_count: Optional[int] = None
	grammar_valid: bool = True
	grammar_repaired: bool = False
	errors: List[str] = field(default_factory=list)
	contract_valid: bool = True
	contract_errors: List[str] = field(default_factory=list)
	coerced: int = 0
	dropped: int = 0

	def to_metadata(self) -> Dict[str, Any]:
		meta: Dict[str, Any] = {
			"lineCount": self.line_count,
			"grammarValid": self.grammar_valid,
			"grammarRepaired": self.grammar_repaired,
			"grammarErrors": list(self.errors),
			"contractValid": self.contract_valid,
			"contractErrors": list(self.contract_errors),
			"coercedCount": self.coerced,
			"droppedCount": self.dropped,
		}
		if self.page_count is not None:
			meta["pageCount"] = self.page_count
		return meta


@dataclass
class ContinuationResult:
	"""
	交给调用方的结果。把 lines 合并进正式文档是调用方的事。
	"""
	lines: Tuple[TaggedLine, ...]
	assistant_message: str
	report: ValidationReport
	kind: ContinuationKind
	attempts: List[AttemptRecord] = field(default_factory=list)

	@property
	def markup(self) -> str:
		return lines_to_markup(self.lines)

	def to_dict(self) -> Dict[str, Any]:
		meta = self.report.to_metadata()
		meta["kind"] = self.kind.value
		meta["attempts"] = len(self.attempts)
		return {
			"message": self.assistant_message,
			"lines": [line.to_dict() for line in self.lines],
			"script": self.markup,
			"metadata": meta,
		}
