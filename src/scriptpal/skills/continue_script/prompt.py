# -*- coding: utf-8 -*-
"""
continue_script/prompt.py

这个文件做什么：
- 负责把请求拼成发给模型的 messages（system + user），以及结构化输出的 tool schema。
- 这里不调用模型，只做 prompt 组装。

user 消息的拼接顺序（固定）：
1) 任务说明（请求类型的默认说明 + 写作者的 instruction）
2) 首行约束
3) 该请求类型特有的连续性说明
4) 上一次失败的纠错说明（第 1 次为空）
5) 文档元信息（title/description）
6) 截断后的上下文（放最后，模型对最近的内容最敏感）
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from scriptpal.core.schemas import TaggedLine, VALID_TAGS, lines_to_markup

from .context import ConstraintAnalysis
from .schema import ContinuationKind, ContinuationRequest, KindConfig


VALID_TAGS_BLOCK = (
	"VALID TAGS\n"
	"<header>   Scene heading (INT./EXT. LOCATION - TIME)\n"
	"<action>   Description of what happens\n"
	"<speaker>  Character name in CAPS\n"
	"<dialog>   Spoken words\n"
	"<directions> Parenthetical (beat), (pause), (sotto)\n"
	"<chapter-break> Major story division (rare)"
)

SCREENPLAY_GRAMMAR = (
	"SCREENPLAY GRAMMAR (enforced)\n"
	"1. <speaker> MUST be followed by <dialog>\n"
	"2. <directions> only appears between <speaker> and <dialog>\n"
	"3. Never output <dialog> without a preceding <speaker>\n"
	"4. <action> stands alone - describes visuals, not speech\n"
	"5. Each XML tag = 1 line"
)

JSON_ESCAPE_RULE = 'Escape quotes in JSON as \\". Output JSON only - no markdown, no extra text.'

_TAG_LIST = ", ".join(VALID_TAGS)


def _system_prompt(role: str, target: str, extra: Sequence[str] = ()) -> str:
	lines = [
		role,
		'- Respond only in JSON with two keys: "formattedScript" and "assistantResponse".',
		f'  - "formattedScript" must contain {target} in proper XML-like tags.',
		"  - Each line is exactly one tag and counts toward the total.",
		f"  - Each line must use the valid tags ({_TAG_LIST}).",
		'  - "assistantResponse" should be a short, simple chat response (under 40 words).',
		"- " + JSON_ESCAPE_RULE,
		"- Do not rewrite or repeat existing lines; pick up exactly where the script left off.",
	]
	lines.extend(f"- {x}" for x in extra)
	return "\n".join(lines) + "\n\n" + VALID_TAGS_BLOCK + "\n\n" + SCREENPLAY_GRAMMAR


SYSTEM_PROMPTS: Dict[ContinuationKind, str] = {
	ContinuationKind.NEXT_LINES: _system_prompt(
		"You are the script continuation specialist.",
		"exactly five new lines",
		["Refer to the existing context before writing so that continuity is preserved."],
	),
	ContinuationKind.APPEND_PAGE: _system_prompt(
		"You are a screenplay continuation engine.",
		"12-16 new lines",
		["Combine consecutive action sentences into a single <action> line when they belong together."],
	),
	ContinuationKind.FULL_SCRIPT: _system_prompt(
		"You are a screenplay architect.",
		"5-6 new pages of script lines",
		[
			"Treat each <chapter-break></chapter-break> as a page boundary and deliver roughly 15-16 lines per page.",
			"Focus on a clear story arc (setup, escalation, turning point, resolution).",
		],
	),
}

TASK_PROMPTS: Dict[ContinuationKind, str] = {
	ContinuationKind.NEXT_LINES: (
		"Write the next five lines of the user script.\n"
		"The formatted script response MUST return only xml style tags like:\n"
		"<speaker>NICK</speaker>\n"
		"<dialog>Hi!</dialog>"
	),
	ContinuationKind.APPEND_PAGE: (
		"SYSTEM APPEND PAGE.\n"
		"Continue the current script by writing the next page of formatted lines only."
	),
	ContinuationKind.FULL_SCRIPT: (
		"Continue the script with the next 5-6 pages.\n"
		"Separate pages with <chapter-break></chapter-break>."
	),
}

CONTINUITY_NOTES: Dict[ContinuationKind, str] = {
	ContinuationKind.NEXT_LINES: "Stay inside the current scene; do not open a new scene unless the last line ends it.",
	ContinuationKind.APPEND_PAGE: "Continue the current scene. Start a new <header> only at a natural scene boundary.",
	ContinuationKind.FULL_SCRIPT: "Each page may end a scene; start every new scene with a <header>.",
}

SCRIPT_CONTEXT_PREFIX = "SCRIPT CONTEXT (do not repeat or rewrite existing lines):"

_FUNCTION_NAMES: Dict[ContinuationKind, str] = {
	ContinuationKind.NEXT_LINES: "provide_next_lines",
	ContinuationKind.APPEND_PAGE: "provide_append_page",
	ContinuationKind.FULL_SCRIPT: "provide_full_script",
}


def output_schema(kind: ContinuationKind) -> Dict[str, Any]:
	"""
	function/tool schema：只描述结构，行为规则放在 system prompt 里。
	"""
	return {
		"name": _FUNCTION_NAMES[kind],
		"description": "Return script continuation plus a short chat response.",
		"parameters": {
			"type": "object",
			"properties": {
				"formattedScript": {
					"type": "string",
					"description": f"Script lines in XML tags ({_TAG_LIST}).",
				},
				"assistantResponse": {
					"type": "string",
					"description": "Short, simple chat response under 40 words.",
				},
			},
			"required": ["formattedScript", "assistantResponse"],
		},
	}


def build_script_header(title: str, description: str) -> str:
	parts = [f"Script title: {title.strip() or 'Untitled Script'}"]
	if description.strip():
		parts.append(f"Script description: {description.strip()}")
	return "\n".join(parts)


def build_cursor_block(window: Sequence[TaggedLine], analysis: ConstraintAnalysis) -> str:
	if not window:
		return "No existing script content. Start fresh."

	return (
		"=== CONTINUATION CURSOR ===\n"
		"The cursor is positioned AFTER the final tag below.\n"
		"You MUST NOT repeat, paraphrase, or restate the final line.\n"
		"Your first output line MUST immediately follow it.\n"
		f"Last line type: <{analysis.last_tag_name}>\n"
		"\n"
		f"{SCRIPT_CONTEXT_PREFIX}\n"
		f"{lines_to_markup(window)}"
	)


def build_user_prompt(
	request: ContinuationRequest,
	window: Sequence[TaggedLine],
	analysis: ConstraintAnalysis,
	correction: str = "",
	cfg: Optional[KindConfig] = None,
) -> str:
	cfg = cfg or request.config

	task = TASK_PROMPTS[cfg.kind]
	if request.instruction.strip():
		task = task + "\n\nWriter request: " + request.instruction.strip()

	parts = [task]

	if analysis.text:
		parts.append(analysis.text)

	parts.append(CONTINUITY_NOTES[cfg.kind])

	if correction:
		parts.append(f"Correction: {correction}")

	parts.append(build_script_header(request.context.title, request.context.description))

	if cfg.attach_context:
		parts.append(build_cursor_block(window, analysis))

	return "\n\n".join(parts)


def build_messages(
	request: ContinuationRequest,
	window: Sequence[TaggedLine],
	analysis: ConstraintAnalysis,
	correction: str = "",
) -> List[Dict[str, str]]:
	cfg = request.config
	return [
		{"role": "system", "content": SYSTEM_PROMPTS[cfg.kind]},
		{"role": "user", "content": build_user_prompt(request, window, analysis, correction, cfg)},
	]
