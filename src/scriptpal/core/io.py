# -*- coding: utf-8 -*-
"""
core/io.py

目的：
- 统一管理 ScriptPack 的路径约定（哪些文件放哪里）。
- 提供“文档源”：get_document_context(script_dir) -> DocumentContext（只读）。

为什么要做这层：
- 避免 orchestrator/CLI 到处手写路径字符串。
- 续写流水线只认 DocumentContext，不关心剧本存在哪、是什么格式。

ScriptPack 约定（v0.1）核心路径：
- script.txt          : 剧本正文（标签行；纯文本也能读，会按规则转换）
- meta.json           : 文档元信息（title/description，可选）
- continuations/      : 每次续写的结果 JSON（由调用方决定是否合并进正文）
- logs/llm.jsonl      : 每次 attempt 的记录 + 终态事件
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from scriptpal.core.markup import has_markup, scan_tagged
from scriptpal.core.plaintext import parse_plain_script
from scriptpal.core.schemas import DocumentContext, Tag, TaggedLine
from scriptpal.core.transitions import normalize_tag


@dataclass(frozen=True)
class ScriptPaths:
	"""
	把 ScriptPack 内部常用文件路径集中在一个结构体里。

	注意：
	- 只存路径，不做读写。
	- ensure_dirs() 负责创建目录骨架。
	"""
	root: Path
	script: Path
	meta: Path
	continuations_dir: Path
	logs_dir: Path
	llm_log: Path

	def ensure_dirs(self) -> None:
		"""
		创建 ScriptPack 目录骨架。重复执行必须安全（exist_ok=True）。
		"""
		for d in (self.root, self.continuations_dir, self.logs_dir):
			d.mkdir(parents=True, exist_ok=True)


def script_paths(script_dir: str | Path) -> ScriptPaths:
	"""
	根据 script_dir 生成 ScriptPaths。这里不创建目录。
	"""
	root = Path(script_dir)

	return ScriptPaths(
		root=root,
		script=root / "script.txt",
		meta=root / "meta.json",
		continuations_dir=root / "continuations",
		logs_dir=root / "logs",
		llm_log=root / "logs" / "llm.jsonl",
	)


def _lines_from_structured(data: Any) -> List[TaggedLine] | None:
	"""
	{"lines": [{"tag"|"format": ..., "text"|"content": ...}]} 或裸 list。

	tag 走 normalize_tag（大小写、别名都认）；归一不了但有文字的条目按 action 保留，
	和标记文本里的未知标签同一个处理。
	"""
	items = data.get("lines") if isinstance(data, dict) else data
	if not isinstance(items, list):
		return None

	out: List[TaggedLine] = []
	for item in items:
		if not isinstance(item, dict):
			continue
		tag = normalize_tag(item.get("tag") or item.get("format"))
		text = str(item.get("text") or item.get("content") or "").strip()
		if tag is Tag.CHAPTER_BREAK:
			out.append(TaggedLine(Tag.CHAPTER_BREAK))
			continue
		if not text:
			continue
		out.append(TaggedLine(tag or Tag.ACTION, text))
	return out


def parse_document_text(text: str) -> List[TaggedLine]:
	stripped = text.strip()
	if not stripped:
		return []

	if stripped[0] in "{[":
		try:
			lines = _lines_from_structured(json.loads(stripped))
		except json.JSONDecodeError:
			lines = None
		if lines is not None:
			return lines

	if not has_markup(stripped):
		return parse_plain_script(stripped)

	out: List[TaggedLine] = []
	for raw_tag, content in scan_tagged(stripped):
		tag = normalize_tag(raw_tag)
		if tag is Tag.CHAPTER_BREAK:
			out.append(TaggedLine(Tag.CHAPTER_BREAK))
			continue
		if not content:
			continue
		# 文档里的未知标签：保留作者文字，按 action 处理
		out.append(TaggedLine(tag or Tag.ACTION, content))
	return out


def get_document_context(script_dir: str | Path) -> DocumentContext:
	"""
	读取 ScriptPack -> DocumentContext。

	原则：
	- 只读，绝不回写。
	- script.txt 必须存在；meta.json 缺失就用空元信息。
	"""
	paths = script_paths(script_dir)
	if not paths.script.exists():
		raise FileNotFoundError(f"missing {paths.script}")

	lines = parse_document_text(paths.script.read_text(encoding="utf-8"))

	title = ""
	description = ""
	if paths.meta.exists():
		meta = json.loads(paths.meta.read_text(encoding="utf-8"))
		title = str(meta.get("title", "") or "")
		description = str(meta.get("description", "") or "")

	return DocumentContext(lines=tuple(lines), title=title, description=description)
