# -*- coding: utf-8 -*-
"""Chat Completions client 测试（httpx.MockTransport，无网络）。"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from scriptpal.providers.llm import LLMRequestError
from scriptpal.providers.llm.chat_client import (
	ChatClientConfig,
	ChatCompletionsClient,
	load_chat_client,
	parse_message,
)
from scriptpal.skills.continue_script.prompt import output_schema
from scriptpal.skills.continue_script.schema import ContinuationKind


ENV_KEYS = [
	"SCRIPTPAL_LLM_API_KEY",
	"SCRIPTPAL_LLM_BASE_URL",
	"SCRIPTPAL_LLM_MODEL",
	"SCRIPTPAL_LLM_TIMEOUT_S",
	"SCRIPTPAL_LLM_STRUCTURED",
]


def clear_llm_env(monkeypatch):
	for k in ENV_KEYS:
		monkeypatch.setenv(k, "x")
		monkeypatch.delenv(k)


def make_client(handler, structured: bool = True) -> ChatCompletionsClient:
	cfg = ChatClientConfig(
		api_key="sk-test",
		base_url="https://llm.example/v1",
		model="test-model",
		structured=structured,
	)
	return ChatCompletionsClient(cfg, transport=httpx.MockTransport(handler))


def tool_call_response(arguments: str) -> dict:
	return {
		"model": "test-model-2024",
		"choices": [{
			"message": {
				"role": "assistant",
				"content": None,
				"tool_calls": [{
					"id": "call_1",
					"type": "function",
					"function": {"name": "provide_next_lines", "arguments": arguments},
				}],
			},
		}],
	}


MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "go"}]


class TestChatCompletionsClient:
	def test_tool_call_round_trip(self):
		seen = {}

		def handler(request: httpx.Request) -> httpx.Response:
			seen["url"] = str(request.url)
			seen["auth"] = request.headers["Authorization"]
			seen["body"] = json.loads(request.content)
			args = json.dumps({"formattedScript": "<action>Go.</action>", "assistantResponse": "ok"})
			return httpx.Response(200, json=tool_call_response(args))

		with make_client(handler) as client:
			reply = client.invoke(MESSAGES, output_schema(ContinuationKind.NEXT_LINES), temperature=0.3)

		assert seen["url"] == "https://llm.example/v1/chat/completions"
		assert seen["auth"] == "Bearer sk-test"
		assert seen["body"]["model"] == "test-model"
		assert seen["body"]["temperature"] == 0.3
		assert seen["body"]["tools"][0]["function"]["name"] == "provide_next_lines"
		assert seen["body"]["tool_choice"]["function"]["name"] == "provide_next_lines"

		assert reply.payload == {"formattedScript": "<action>Go.</action>", "assistantResponse": "ok"}
		assert reply.model == "test-model-2024"

	def test_unstructured_sends_no_tools(self):
		seen = {}

		def handler(request: httpx.Request) -> httpx.Response:
			seen["body"] = json.loads(request.content)
			return httpx.Response(200, json={"choices": [{"message": {"content": "<action>Go.</action>"}}]})

		with make_client(handler, structured=False) as client:
			reply = client.invoke(MESSAGES, output_schema(ContinuationKind.NEXT_LINES))

		assert "tools" not in seen["body"]
		assert seen["body"]["temperature"] == 0.4
		assert reply.payload is None
		assert reply.raw_text == "<action>Go.</action>"

	def test_timeout(self):
		def handler(request: httpx.Request) -> httpx.Response:
			raise httpx.ReadTimeout("slow", request=request)

		with make_client(handler) as client:
			with pytest.raises(LLMRequestError) as exc:
				client.invoke(MESSAGES)
		assert exc.value.timeout
		assert "timed out" in str(exc.value)

	def test_transport_error(self):
		def handler(request: httpx.Request) -> httpx.Response:
			raise httpx.ConnectError("refused", request=request)

		with make_client(handler) as client:
			with pytest.raises(LLMRequestError, match="transport error") as exc:
				client.invoke(MESSAGES)
		assert not exc.value.timeout

	def test_http_error_snippet_truncated(self):
		def handler(request: httpx.Request) -> httpx.Response:
			return httpx.Response(500, text="E" * 5000)

		with make_client(handler) as client:
			with pytest.raises(LLMRequestError) as exc:
				client.invoke(MESSAGES)

		assert exc.value.status_code == 500
		assert str(exc.value).startswith("LLM HTTP 500: ")
		assert str(exc.value).endswith("...(truncated)")
		assert len(str(exc.value)) < 1100

	def test_bad_shape(self):
		def handler(request: httpx.Request) -> httpx.Response:
			return httpx.Response(200, json={"choices": []})

		with make_client(handler) as client:
			with pytest.raises(LLMRequestError, match="Unexpected response shape"):
				client.invoke(MESSAGES)


class TestParseMessage:
	def test_legacy_function_call(self):
		reply = parse_message({"content": "", "function_call": {"arguments": '{"formattedScript": "x"}'}})
		assert reply.payload == {"formattedScript": "x"}

	def test_unparsable_arguments_go_to_raw_text(self):
		reply = parse_message({"content": None, "tool_calls": [{"function": {"arguments": '{"formattedScript": '}}]})
		assert reply.payload is None
		assert reply.raw_text == '{"formattedScript": '

	def test_plain_content(self):
		reply = parse_message({"content": "hello"}, model="m")
		assert reply.payload is None
		assert reply.raw_text == "hello"
		assert reply.model == "m"


class TestLoadChatClient:
	def test_reads_dotenv(self, tmp_path: Path, monkeypatch):
		clear_llm_env(monkeypatch)
		(tmp_path / ".env").write_text(
			"SCRIPTPAL_LLM_API_KEY=sk-from-env\n"
			"SCRIPTPAL_LLM_MODEL=tiny-model\n"
			"SCRIPTPAL_LLM_STRUCTURED=false\n",
			encoding="utf-8",
		)

		client = load_chat_client(project_root=str(tmp_path))
		try:
			assert client.cfg.api_key == "sk-from-env"
			assert client.cfg.model == "tiny-model"
			assert client.cfg.base_url == "https://api.openai.com/v1"
			assert client.cfg.timeout_s == 60.0
			assert client.structured is False
		finally:
			client.close()

	def test_explicit_args_win(self, tmp_path: Path, monkeypatch):
		clear_llm_env(monkeypatch)
		monkeypatch.setenv("SCRIPTPAL_LLM_MODEL", "env-model")

		client = load_chat_client(project_root=str(tmp_path), api_key="sk-arg", model="arg-model", timeout_s=5)
		try:
			assert client.cfg.model == "arg-model"
			assert client.cfg.timeout_s == 5.0
			assert client.structured is True
		finally:
			client.close()

	def test_missing_key(self, tmp_path: Path, monkeypatch):
		clear_llm_env(monkeypatch)
		with pytest.raises(ValueError, match="SCRIPTPAL_LLM_API_KEY"):
			load_chat_client(project_root=str(tmp_path))
