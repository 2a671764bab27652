# -*- coding: utf-8 -*-
"""
providers/llm/chat_client.py

这个文件做什么：
- 提供一个极薄的 OpenAI 兼容 Chat Completions Client，供 skill 层调用。
- 支持从项目根目录的 .env 读取配置（推荐），避免你在 shell 里 export。
- 对外只暴露一个方法：invoke(messages, output_schema) -> ModelReply

结构化输出：
- structured=True 时把 output_schema 作为 tool（function）发送，并强制 tool_choice。
- 模型没走 tool call / 网关不支持时，正文 content 进入 raw_text，由 payload 解析兜底。

配置来源优先级（从高到低）：
1) 显式传参（model/base_url/api_key/...）
2) .env 文件
3) 系统环境变量（兜底）

安全约定：
- .env 必须写进 .gitignore
- 不要把 key 写进任何代码文件
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from dotenv import load_dotenv

from .base import LLMRequestError, ModelReply


_SNIP = 1000


def _snip(s: str) -> str:
	if len(s) > _SNIP:
		return s[:_SNIP] + "...(truncated)"
	return s


@dataclass
class ChatClientConfig:
	api_key: str
	base_url: str
	model: str
	timeout_s: float = 60.0
	temperature: float = 0.4
	structured: bool = True


class ChatCompletionsClient:
	def __init__(self, cfg: ChatClientConfig, transport: Optional[httpx.BaseTransport] = None):
		self.cfg = cfg
		self.structured = cfg.structured
		self._client = httpx.Client(
			base_url=cfg.base_url,
			timeout=httpx.Timeout(cfg.timeout_s),
			headers={
				"Authorization": f"Bearer {cfg.api_key}",
				"Content-Type": "application/json",
			},
			transport=transport,
		)

	def close(self) -> None:
		self._client.close()

	def __enter__(self) -> "ChatCompletionsClient":
		return self

	def __exit__(self, *exc) -> None:
		self.close()

	def build_payload(
		self,
		messages: List[Dict[str, str]],
		output_schema: Optional[Dict[str, Any]] = None,
		temperature: Optional[float] = None,
	) -> Dict[str, Any]:
		payload: Dict[str, Any] = {
			"model": self.cfg.model,
			"messages": messages,
			"temperature": self.cfg.temperature if temperature is None else temperature,
		}

		if self.structured and output_schema:
			payload["tools"] = [{"type": "function", "function": output_schema}]
			payload["tool_choice"] = {"type": "function", "function": {"name": output_schema["name"]}}

		return payload

	def invoke(
		self,
		messages: List[Dict[str, str]],
		output_schema: Optional[Dict[str, Any]] = None,
		temperature: Optional[float] = None,
	) -> ModelReply:
		payload = self.build_payload(messages, output_schema, temperature)

		try:
			r = self._client.post("/chat/completions", json=payload)
		except httpx.TimeoutException as e:
			raise LLMRequestError(f"LLM request timed out after {self.cfg.timeout_s}s", timeout=True) from e
		except httpx.HTTPError as e:
			raise LLMRequestError(f"LLM transport error: {e}") from e

		if r.status_code < 200 or r.status_code >= 300:
			raise LLMRequestError(f"LLM HTTP {r.status_code}: {_snip(r.text)}", status_code=r.status_code)

		try:
			data = r.json()
			message = data["choices"][0]["message"]
		except (ValueError, KeyError, IndexError, TypeError) as e:
			raise LLMRequestError(f"Unexpected response shape: {_snip(r.text)}") from e

		return parse_message(message, model=str(data.get("model", self.cfg.model)))


def _tool_arguments(message: Dict[str, Any]) -> Optional[str]:
	tool_calls = message.get("tool_calls") or []
	for call in tool_calls:
		fn = (call or {}).get("function") or {}
		if fn.get("arguments"):
			return fn["arguments"]

	# 旧版 function_call 字段
	fn = message.get("function_call") or {}
	return fn.get("arguments") or None


def parse_message(message: Dict[str, Any], model: str = "") -> ModelReply:
	"""
	chat message -> ModelReply。
	arguments 不是合法 JSON 时不报错：把原文交给 raw_text，由上层宽松解析。
	"""
	content = message.get("content") or ""
	if not isinstance(content, str):
		content = json.dumps(content, ensure_ascii=False)

	args = _tool_arguments(message)
	if args is None:
		return ModelReply(payload=None, raw_text=content, model=model)

	if isinstance(args, dict):
		return ModelReply(payload=args, raw_text=content, model=model)

	try:
		parsed = json.loads(args)
	except ValueError:
		return ModelReply(payload=None, raw_text=content or args, model=model)

	if not isinstance(parsed, dict):
		return ModelReply(payload=None, raw_text=content or args, model=model)

	return ModelReply(payload=parsed, raw_text=content, model=model)


def _load_dotenv_if_present(project_root: Path) -> None:
	"""
	如果项目根目录存在 .env，则加载到 os.environ（不覆盖已有变量）。
	"""
	env_path = project_root / ".env"
	if env_path.exists():
		load_dotenv(dotenv_path=str(env_path), override=False)


def _env_bool(name: str, default: bool) -> bool:
	raw = os.environ.get(name, "").strip().lower()
	if not raw:
		return default
	return raw in ("1", "true", "yes", "on")


def load_chat_client(
	project_root: Optional[str] = None,
	api_key: Optional[str] = None,
	base_url: Optional[str] = None,
	model: Optional[str] = None,
	timeout_s: Optional[float] = None,
	structured: Optional[bool] = None,
	transport: Optional[httpx.BaseTransport] = None,
) -> ChatCompletionsClient:
	"""
	加载 Chat Completions client。

	默认从 project_root/.env 读取（project_root 缺省为当前工作目录）。
	"""
	root = Path(project_root or os.getcwd()).resolve()
	_load_dotenv_if_present(root)

	key = (api_key or os.environ.get("SCRIPTPAL_LLM_API_KEY", "")).strip()
	if not key:
		raise ValueError("Missing SCRIPTPAL_LLM_API_KEY (from .env or env)")

	url = (base_url or os.environ.get("SCRIPTPAL_LLM_BASE_URL", "")).strip() or "https://api.openai.com/v1"
	m = (model or os.environ.get("SCRIPTPAL_LLM_MODEL", "")).strip() or "gpt-4o-mini"
	t = float(timeout_s or os.environ.get("SCRIPTPAL_LLM_TIMEOUT_S", "60").strip() or 60)
	s = structured if structured is not None else _env_bool("SCRIPTPAL_LLM_STRUCTURED", True)

	cfg = ChatClientConfig(api_key=key, base_url=url, model=m, timeout_s=t, structured=s)
	return ChatCompletionsClient(cfg, transport=transport)
