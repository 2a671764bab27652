# -*- coding: utf-8 -*-
"""剧本续写 skill：上下文窗口 -> prompt -> LLM -> sanitize -> 校验/修复 -> 结果。"""

from .errors import (
	BoundsViolation,
	ContinuationCancelled,
	ContinuationError,
	ExhaustedRetries,
	FirstLineConstraintViolation,
	GrammarViolation,
	ModelInvocationError,
	PayloadParseError,
)
from .schema import (
	AttemptRecord,
	ContinuationKind,
	ContinuationRequest,
	ContinuationResult,
	KIND_CONFIGS,
	ValidationReport,
	kind_config,
)
from .skill import ContinueScriptSkill

__all__ = [
	"BoundsViolation",
	"ContinuationCancelled",
	"ContinuationError",
	"ExhaustedRetries",
	"FirstLineConstraintViolation",
	"GrammarViolation",
	"ModelInvocationError",
	"PayloadParseError",
	"AttemptRecord",
	"ContinuationKind",
	"ContinuationRequest",
	"ContinuationResult",
	"KIND_CONFIGS",
	"ValidationReport",
	"kind_config",
	"ContinueScriptSkill",
]
