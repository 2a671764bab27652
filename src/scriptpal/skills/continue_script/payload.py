# -*- coding: utf-8 -*-
"""
continue_script/payload.py

这个文件做什么：
- Model Invocation Adapter 的“解析”一半：从 ModelReply 里抽出
  (script 原料, assistantResponse)。
- 抽不到可用 payload：raise PayloadParseError（单次 attempt 失败，不是流水线致命错误）。

来源优先级：
1) tool/function call 的 arguments（已由 client 解析成 dict）
2) 正文里的 JSON 对象（整体解析；不行就截取第一个 '{' 到最后一个 '}'）
3) 后端不支持结构化模式时：正文本身当作剧本标记（free-text 降级）
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from scriptpal.providers.llm import ModelReply

from .errors import PayloadParseError


@dataclass
class ExtractedPayload:
	"""
	script：formattedScript 字符串，或 lines 数组（list of {tag,text}）
	assistant_response：模型自己的简短说明（可能为空）
	"""
	script: Any
	assistant_response: str = ""


def safe_parse_json(value: Any) -> Optional[Dict[str, Any]]:
	if not value:
		return None
	if isinstance(value, dict):
		return value
	if not isinstance(value, str):
		return None

	try:
		parsed = json.loads(value)
	except ValueError:
		start = value.find("{")
		end = value.rfind("}")
		if start == -1 or end <= start:
			return None
		try:
			parsed = json.loads(value[start:end + 1])
		except ValueError:
			return None

	return parsed if isinstance(parsed, dict) else None


def _script_field(data: Dict[str, Any]) -> Any:
	for key in ("formattedScript", "formatted_script", "script", "lines"):
		if key in data and data[key] not in (None, "", []):
			return data[key]
	return None


def extract_payload(reply: ModelReply, structured: bool = True) -> ExtractedPayload:
	data = reply.payload if isinstance(reply.payload, dict) else None
	if data is None:
		data = safe_parse_json(reply.raw_text)

	if data is not None:
		script = _script_field(data)
		if script is None:
			raise PayloadParseError("formatted_script_missing: payload has no formattedScript or lines")

		assistant = data.get("assistantResponse") or data.get("assistantMessage") or ""
		if not isinstance(assistant, str):
			assistant = ""
		return ExtractedPayload(script=script, assistant_response=assistant.strip())

	raw = (reply.raw_text or "").strip()
	if not structured and raw:
		return ExtractedPayload(script=raw, assistant_response="")

	if not raw:
		raise PayloadParseError("empty response from model")

	raise PayloadParseError(f"invalid JSON payload from function call (length={len(raw)})")
