# -*- coding: utf-8 -*-
"""
providers/llm/base.py

目的：
- 定义生成式后端的“接口形状”（Protocol）和它的返回结构 ModelReply。
- skill 层只依赖这个协议：生产环境注入 ChatCompletionsClient，测试注入脚本化的假后端。

为什么需要：
- 不要全局单例 client；依赖注入后，重试状态机可以被完全确定地测试。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class ModelReply:
	"""
	一次后端调用的结果：
	- payload：结构化输出（function/tool call 的 arguments 已解析成 dict）；没有则 None
	- raw_text：消息正文（结构化模式不可用或模型没走 tool call 时的兜底来源）
	- model：实际应答的模型名（记日志用）
	"""
	payload: Optional[Dict[str, Any]] = None
	raw_text: str = ""
	model: str = ""


class LLMBackend(Protocol):
	"""
	后端协议：
	- structured：是否支持 function/tool-call 结构化输出
	- invoke：发送 messages（+ 可选输出 schema），返回 ModelReply
	  超时/传输错误以 LLMRequestError（或 TimeoutError/ConnectionError）抛出
	"""
	structured: bool

	def invoke(
		self,
		messages: List[Dict[str, str]],
		output_schema: Optional[Dict[str, Any]] = None,
		temperature: Optional[float] = None,
	) -> ModelReply:
		...


class LLMRequestError(RuntimeError):
	"""
	后端调用失败（超时、网络、非 2xx）。skill 层把它转成一次失败的 attempt。
	"""

	def __init__(self, message: str, *, timeout: bool = False, status_code: int = 0) -> None:
		super().__init__(message)
		self.timeout = timeout
		self.status_code = status_code
