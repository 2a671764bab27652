# -*- coding: utf-8 -*-
"""
scriptpal/pipeline/orchestrator.py

目的：
- 作为续写流程的“调用方”：读文档 -> 准备后端 -> 跑 skill -> 落盘 -> 打印状态。
- CLI 不直接调用 skill，统一走 orchestrator。

落盘：
- continuations/cont_XXXX.json ：成功结果（lines + script + metadata）
- logs/llm.jsonl              ：每次 attempt 一行 + 终态 result/error 事件

注意：
- orchestrator 不关心如何校验、如何修复，那是 skill 的事。
- 不修改 script.txt：续写结果是否合并进正文由调用方决定。
- 终态失败一定写 error 事件，绝不写“空结果”。
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from scriptpal.core.io import ScriptPaths, get_document_context, script_paths
from scriptpal.providers.llm import LLMBackend
from scriptpal.providers.llm.chat_client import load_chat_client
from scriptpal.skills.continue_script import (
	AttemptRecord,
	ContinuationCancelled,
	ContinuationKind,
	ContinuationRequest,
	ContinuationResult,
	ContinueScriptSkill,
	ExhaustedRetries,
)


def find_project_root(start: str | Path | None = None) -> Path:
	"""
	向上查找含 .env 的目录；找不到就用 start 本身。
	"""
	origin = Path(start or Path.cwd()).resolve()
	root = origin
	while root != root.parent:
		if (root / ".env").exists():
			return root
		root = root.parent
	return origin


def _now() -> str:
	return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _append_jsonl(path: Path, obj: Dict[str, Any]) -> None:
	path.parent.mkdir(parents=True, exist_ok=True)
	with path.open("a", encoding="utf-8") as f:
		f.write(json.dumps(obj, ensure_ascii=False) + "\n")


def _log_attempts(paths: ScriptPaths, kind: ContinuationKind, records: Iterable[AttemptRecord]) -> None:
	for rec in records:
		event = {"ts": _now(), "event": "attempt", "kind": kind.value}
		event.update(rec.to_dict())
		_append_jsonl(paths.llm_log, event)

		if rec.ok:
			continue
		print(f"[RETRY] attempt={rec.attempt} kind={rec.error_kind} reason={rec.reason}")


def next_output_path(paths: ScriptPaths) -> Path:
	"""
	按已有最大编号 +1 取下一个文件名；中间删掉的编号不复用，已有结果不会被覆盖。
	"""
	indices = [0]
	for p in paths.continuations_dir.glob("cont_*.json"):
		suffix = p.stem[len("cont_"):]
		if suffix.isdigit():
			indices.append(int(suffix))
	n = max(indices) + 1
	return paths.continuations_dir / f"cont_{n:04d}.json"


def run_continuation(
	script_dir: str | Path,
	kind: ContinuationKind | str = ContinuationKind.NEXT_LINES,
	instruction: str = "",
	backend: Optional[LLMBackend] = None,
	max_attempts: Optional[int] = None,
	project_root: Optional[str] = None,
	cancel: Optional[threading.Event] = None,
) -> ContinuationResult:
	"""
	跑一次续写请求。

	- backend 缺省时从 .env / 环境变量加载 Chat Completions client（用完关闭）。
	- 成功：写结果 JSON + 日志，返回 ContinuationResult。
	- ExhaustedRetries / ContinuationCancelled：写 error 事件后原样抛出。
	"""
	paths = script_paths(script_dir)
	context = get_document_context(paths.root)
	paths.ensure_dirs()

	request = ContinuationRequest(
		context=context,
		instruction=instruction,
		kind=ContinuationKind(kind),
		max_attempts=max_attempts,
	)
	print(
		f"[RUN] kind={request.kind.value} context_lines={len(context)} "
		f"max_attempts={request.attempts_allowed}"
	)

	owned = backend is None
	if owned:
		backend = load_chat_client(project_root=project_root or str(find_project_root(paths.root)))

	try:
		result = ContinueScriptSkill(backend).run(request, cancel=cancel)

	except ExhaustedRetries as e:
		_log_attempts(paths, request.kind, e.attempts)
		_append_jsonl(paths.llm_log, {
			"ts": _now(),
			"event": "error",
			"kind": request.kind.value,
			"error_kind": e.error_kind,
			"message": str(e),
			"reason": e.reason,
			"attempts": len(e.attempts),
		})
		print(f"[FAIL] {e}")
		raise

	except ContinuationCancelled as e:
		_append_jsonl(paths.llm_log, {
			"ts": _now(),
			"event": "error",
			"kind": request.kind.value,
			"error_kind": e.error_kind,
			"message": str(e),
		})
		print(f"[INFO] {e}")
		raise

	finally:
		if owned:
			backend.close()

	_log_attempts(paths, request.kind, result.attempts)

	out_path = next_output_path(paths)
	out_path.write_text(json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")

	_append_jsonl(paths.llm_log, {
		"ts": _now(),
		"event": "result",
		"kind": request.kind.value,
		"attempts": len(result.attempts),
		"line_count": result.report.line_count,
		"grammar_repaired": result.report.grammar_repaired,
		"contract_valid": result.report.contract_valid,
		"output": str(out_path),
	})

	if not result.report.contract_valid:
		print(f"[INFO] contract drift: {'; '.join(result.report.contract_errors)}")
	print(f"[OK] {result.report.line_count} line(s) -> {out_path}")
	return result
