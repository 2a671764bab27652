# -*- coding: utf-8 -*-
"""
scriptpal/cli.py

目的：
- 提供项目的命令行入口。
- init：创建 ScriptPack 目录骨架（script.txt 为空时才写入，绝不覆盖正文）。
- continue：调用 pipeline/orchestrator.py 跑一次续写。
- contracts：打印各请求类型的数值配置与对外契约。
- check：对整份文档跑一次语法检查（speaker -> dialog）。

注意：
- CLI 不做业务细节：不拼 prompt、不调用模型。
- CLI 只负责参数解析 + 把任务交给 orchestrator，并把结果翻译成退出码：
  0 成功；1 续写失败（ExhaustedRetries）或语法检查不通过；2 找不到 ScriptPack / 缺配置。
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from scriptpal.skills.continue_script.schema import KIND_CONFIGS, ContinuationKind

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SETUP = 2


def build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(
		prog="scriptpal",
		description="Screenplay continuation with validation, repair and bounded retries",
	)

	sub = p.add_subparsers(dest="cmd", required=True)

	initp = sub.add_parser("init", help="Create an empty ScriptPack directory skeleton")
	initp.add_argument("--script_dir", required=True, help="e.g. output/my_script")
	initp.add_argument("--title", default="")
	initp.add_argument("--description", default="")

	contp = sub.add_parser("continue", help="Generate a continuation for an existing ScriptPack")
	contp.add_argument("--script_dir", required=True)
	contp.add_argument(
		"--kind",
		default=ContinuationKind.NEXT_LINES.value,
		choices=[k.value for k in ContinuationKind],
	)
	contp.add_argument("--instruction", default="", help="写作者的自然语言要求（可空）")
	contp.add_argument("--max_attempts", type=int, default=None, help="覆盖该类型的默认重试上限")
	contp.add_argument("--project_root", default=None, help="含 .env 的目录，缺省时从 script_dir 向上查找")

	sub.add_parser("contracts", help="Print per-kind bounds and published output contracts")

	checkp = sub.add_parser("check", help="Check screenplay grammar of an existing ScriptPack")
	checkp.add_argument("--script_dir", required=True)

	return p


def cmd_init(script_dir: str, title: str = "", description: str = "") -> None:
	from scriptpal.core.io import script_paths

	paths = script_paths(script_dir)
	paths.ensure_dirs()

	if not paths.script.exists():
		paths.script.write_text("", encoding="utf-8")

	if not paths.meta.exists():
		meta = {"title": title, "description": description}
		paths.meta.write_text(json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8")

	print(f"[OK] ScriptPack skeleton created: {paths.root}")


def cmd_continue(
	script_dir: str,
	kind: str,
	instruction: str = "",
	max_attempts: int | None = None,
	project_root: str | None = None,
) -> int:
	from scriptpal.pipeline.orchestrator import run_continuation
	from scriptpal.skills.continue_script import ExhaustedRetries

	try:
		run_continuation(
			script_dir,
			kind=kind,
			instruction=instruction,
			max_attempts=max_attempts,
			project_root=project_root,
		)
	except FileNotFoundError as e:
		print(f"[FAIL] {e}")
		return EXIT_SETUP
	except ExhaustedRetries:
		return EXIT_FAILED
	except ValueError as e:
		# 缺 API key / max_attempts 非法
		print(f"[FAIL] {e}")
		return EXIT_SETUP

	return EXIT_OK


def cmd_contracts() -> None:
	for cfg in KIND_CONFIGS.values():
		pages = ""
		if cfg.counts_pages:
			pages = f" pages={cfg.min_pages}-{cfg.max_pages}"

		c = cfg.contract
		contract_pages = ""
		if c.min_pages is not None or c.max_pages is not None:
			contract_pages = f" pages={c.min_pages}-{c.max_pages}"

		print(
			f"{cfg.kind.value:<12} lines={cfg.min_lines}-{cfg.max_lines}{pages} "
			f"attempts={cfg.max_attempts} window={cfg.window_lines} "
			f"contract: lines={c.min_lines}-{c.max_lines}{contract_pages}"
		)


def cmd_check(script_dir: str) -> int:
	from scriptpal.core.io import get_document_context
	from scriptpal.skills.continue_script.grammar import validate_grammar

	try:
		context = get_document_context(Path(script_dir))
	except FileNotFoundError as e:
		print(f"[FAIL] {e}")
		return EXIT_SETUP

	errors = validate_grammar(context.lines)
	if errors:
		for err in errors:
			print(f"[FAIL] {err}")
		return EXIT_FAILED

	print(f"[OK] {len(context)} line(s), grammar valid")
	return EXIT_OK


def main(argv=None) -> int:
	args = build_parser().parse_args(argv)

	if args.cmd == "init":
		cmd_init(args.script_dir, title=args.title, description=args.description)
		return EXIT_OK

	if args.cmd == "continue":
		return cmd_continue(
			args.script_dir,
			args.kind,
			instruction=args.instruction,
			max_attempts=args.max_attempts,
			project_root=args.project_root,
		)

	if args.cmd == "contracts":
		cmd_contracts()
		return EXIT_OK

	if args.cmd == "check":
		return cmd_check(args.script_dir)

	return EXIT_OK
