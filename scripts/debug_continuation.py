# -*- coding: utf-8 -*-
"""
scripts/debug_continuation.py

这个脚本做什么：
- 读取一个 ScriptPack（script.txt + meta.json）
- 打印：上下文窗口、首行约束、发给模型的 user prompt（便于肉眼检查 prompt）
- 加 --call 时真正调用模型（通过 .env 配置的 OpenAI 兼容接口），打印：
  1) 每次 attempt 的成败与原因
  2) 最终 lines 预览 + metadata
  不落盘，不改 script.txt

使用方式：
1) 在项目根目录创建 .env（并确保 .gitignore 忽略它）：
   SCRIPTPAL_LLM_API_KEY=xxx
   SCRIPTPAL_LLM_BASE_URL=https://api.openai.com/v1
   SCRIPTPAL_LLM_MODEL=gpt-4o-mini
2) 运行：
   python scripts/debug_continuation.py --script_dir output/pilot --kind append-page --call
"""

from __future__ import annotations

import argparse
import json

from scriptpal.core.io import get_document_context
from scriptpal.providers.llm.chat_client import load_chat_client
from scriptpal.skills.continue_script import (
	ContinuationKind,
	ContinuationRequest,
	ContinueScriptSkill,
	ExhaustedRetries,
)
from scriptpal.skills.continue_script.context import analyze_constraint, build_context_window
from scriptpal.skills.continue_script.prompt import build_user_prompt


def build_argparser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser()
	p.add_argument("--script_dir", required=True, help="ScriptPack 目录")
	p.add_argument("--kind", default=ContinuationKind.NEXT_LINES.value, choices=[k.value for k in ContinuationKind])
	p.add_argument("--instruction", default="", help="写作者的要求")
	p.add_argument("--max_attempts", type=int, default=None)
	p.add_argument("--call", action="store_true", help="真正调用模型（默认只打印 prompt）")
	p.add_argument("--preview", type=int, default=20, help="预览结果前 N 行")
	return p


def main() -> None:
	args = build_argparser().parse_args()

	context = get_document_context(args.script_dir)
	request = ContinuationRequest(
		context=context,
		instruction=args.instruction,
		kind=ContinuationKind(args.kind),
		max_attempts=args.max_attempts,
	)
	cfg = request.config

	window = build_context_window(context.lines, cfg.window_lines)
	analysis = analyze_constraint(window, enabled=cfg.first_line_rule)
	print(f"[context] document={len(context)} window={len(window)} last_tag={analysis.last_tag_name}")
	print(f"\n--- user prompt (attempt 1) ---\n{build_user_prompt(request, window, analysis)}")

	if not args.call:
		return

	llm = load_chat_client(project_root=".")
	try:
		skill = ContinueScriptSkill(llm)
		try:
			result = skill.run(request)
		except ExhaustedRetries as e:
			for rec in e.attempts:
				print(f"[attempt {rec.attempt}] ok={rec.ok} {rec.error_kind} {rec.reason}")
			print(f"[fail] {e}")
			return

		for rec in result.attempts:
			print(f"[attempt {rec.attempt}] ok={rec.ok} {rec.error_kind} {rec.reason}")

		print(f"\n--- preview lines (first {args.preview}) ---")
		for i, line in enumerate(result.lines[: args.preview]):
			print(f"{i:03d} [{line.tag.value}] {line.text}")

		print(f"\n[message] {result.assistant_message}")
		print(json.dumps(result.report.to_metadata(), ensure_ascii=False, indent=2))

	finally:
		llm.close()


if __name__ == "__main__":
	main()
