# -*- coding: utf-8 -*-
"""生成式后端：协议定义 + OpenAI 兼容实现。"""

from .base import LLMBackend, LLMRequestError, ModelReply

__all__ = ["LLMBackend", "LLMRequestError", "ModelReply"]
