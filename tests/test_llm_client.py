"""Unit tests for the multi-provider LLM client.

Tests availability rules, the SDK transports (openai, anthropic), the plain
HTTP transports (Gemini, Ollama), error mapping, token handling and the
optional response cache.
"""

import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import openai
import requests
from _helpers import make_response

from archlens.cache import AnalysisCache
from archlens.llm.client import LLMClient, get_strategy, prompt_cache_key
from archlens.llm.tokens import EnterpriseTokenManager
from archlens.llm.types import (
    LLMCallOptions,
    LLMConfig,
    LLMConfigurationError,
    LLMError,
    LLMHTTPError,
    LLMProvider,
    LLMTimeoutError,
    UnsupportedProviderError,
)

REQUEST = httpx.Request("POST", "https://llm.example.com/v1/chat/completions")


def chat_completion(text: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def gemini_client(session=None, **kwargs) -> LLMClient:
    config = LLMConfig(
        provider=LLMProvider.GEMINI,
        model="gemini-pro",
        api_key="g-key",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        **kwargs,
    )
    return LLMClient(config, session=session or MagicMock())


# ==================== Types ====================


class TestProviderParsing(unittest.TestCase):
    """Test LLMProvider.parse."""

    def test_case_insensitive(self):
        self.assertEqual(LLMProvider.parse("OpenAI"), LLMProvider.OPENAI)
        self.assertEqual(LLMProvider.parse(" apigee "), LLMProvider.APIGEE)

    def test_passes_enum_through(self):
        self.assertIs(LLMProvider.parse(LLMProvider.LOCAL), LLMProvider.LOCAL)

    def test_unknown(self):
        with self.assertRaises(UnsupportedProviderError) as ctx:
            LLMProvider.parse("mistral")
        self.assertIn("mistral", str(ctx.exception))

    def test_every_provider_has_strategy(self):
        for provider in LLMProvider:
            self.assertIsNotNone(get_strategy(provider))


class TestCallOptions(unittest.TestCase):
    """Test LLMCallOptions.coerce."""

    def test_none(self):
        self.assertEqual(LLMCallOptions.coerce(None), LLMCallOptions())

    def test_dict_ignores_unknown_keys(self):
        opts = LLMCallOptions.coerce({"timeout": 5, "stream": True})
        self.assertEqual(opts.timeout, 5)

    def test_rejects_other_types(self):
        with self.assertRaises(TypeError):
            LLMCallOptions.coerce("fast")


class TestLLMConfig(unittest.TestCase):
    """Test LLMConfig serialisation."""

    def test_masks_key(self):
        config = LLMConfig(LLMProvider.OPENAI, "gpt-4", api_key="sk-secret")
        self.assertEqual(config.to_dict()["api_key"], "***configured***")
        self.assertEqual(config.to_dict(mask_secrets=False)["api_key"], "sk-secret")

    def test_no_key(self):
        config = LLMConfig(LLMProvider.LOCAL, "llama")
        self.assertIsNone(config.to_dict()["api_key"])


# ==================== Availability ====================


class TestAvailability(unittest.TestCase):
    """Test is_available / missing_fields per provider."""

    def test_hosted_requires_key(self):
        client = LLMClient(LLMConfig(LLMProvider.OPENAI, "gpt-4", base_url="https://api.openai.com/v1"))
        self.assertFalse(client.is_available())
        self.assertEqual(client.missing_fields(), ["api_key"])

    def test_hosted_requires_base_url(self):
        client = LLMClient(LLMConfig(LLMProvider.ANTHROPIC, "claude", api_key="k"))
        self.assertFalse(client.is_available())
        self.assertIn("base_url", client.missing_fields())

    def test_hosted_complete(self):
        self.assertTrue(gemini_client().is_available())

    def test_model_required(self):
        client = LLMClient(LLMConfig(LLMProvider.LOCAL, ""))
        self.assertEqual(client.missing_fields(), ["model"])

    def test_local_without_key_or_url(self):
        client = LLMClient(LLMConfig(LLMProvider.LOCAL, "llama-3.2-3b-instruct"))
        self.assertTrue(client.is_available())
        self.assertEqual(client.base_url, "http://localhost:11434/v1")

    def test_ollama_defaults_host(self):
        client = LLMClient(LLMConfig(LLMProvider.OLLAMA, "llama3"))
        self.assertTrue(client.is_available())
        self.assertEqual(client.base_url, "http://localhost:11434")

    def test_enterprise_needs_token_source(self):
        config = LLMConfig(LLMProvider.ENTERPRISE, "gpt-4", base_url="https://llm.corp/v1")
        self.assertFalse(LLMClient(config).is_available())
        self.assertTrue(LLMClient(config, token_manager=EnterpriseTokenManager(env={})).is_available())

    def test_get_config_masks_and_reports(self):
        client = gemini_client()
        cfg = client.get_config()
        self.assertEqual(cfg["api_key"], "***configured***")
        self.assertEqual(cfg["provider"], "gemini")
        self.assertTrue(cfg["available"])

    def test_unconfigured_call_fails_before_network(self):
        session = MagicMock()
        config = LLMConfig(LLMProvider.GEMINI, "gemini-pro", base_url="https://g.example.com")
        client = LLMClient(config, session=session)

        with self.assertRaises(LLMConfigurationError) as ctx:
            client.call_llm("hello")
        self.assertIn("api_key", str(ctx.exception))
        session.post.assert_not_called()


# ==================== HTTP transports ====================


class TestGeminiTransport(unittest.TestCase):
    """Test Gemini over requests."""

    def setUp(self):
        self.session = MagicMock()
        self.client = gemini_client(self.session)

    def test_success(self):
        self.session.post.return_value = make_response(
            200, {"candidates": [{"content": {"parts": [{"text": "Hel"}, {"text": "lo"}]}}]}
        )

        self.assertEqual(self.client.call_llm("hi", {"temperature": 0.5, "max_tokens": 50}), "Hello")

        args, kwargs = self.session.post.call_args
        self.assertEqual(
            args[0], "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
        )
        self.assertEqual(kwargs["params"], {"key": "g-key"})
        self.assertEqual(kwargs["json"]["contents"][0]["parts"][0]["text"], "hi")
        self.assertEqual(kwargs["json"]["generationConfig"], {"temperature": 0.5, "maxOutputTokens": 50})
        self.assertEqual(kwargs["timeout"], 120.0)

    def test_timeout_override(self):
        self.session.post.return_value = make_response(200, {"candidates": [{"content": {"parts": []}}]})
        self.client.call_llm("hi", LLMCallOptions(timeout=5))
        self.assertEqual(self.session.post.call_args.kwargs["timeout"], 5)

    def test_config_timeout(self):
        client = gemini_client(self.session, timeout=30.0)
        self.session.post.return_value = make_response(200, {"candidates": [{"content": {"parts": []}}]})
        client.call_llm("hi")
        self.assertEqual(self.session.post.call_args.kwargs["timeout"], 30.0)

    def test_timeout_raises_timeout_error(self):
        self.session.post.side_effect = requests.exceptions.ReadTimeout("slow")
        with self.assertRaises(LLMTimeoutError) as ctx:
            self.client.call_llm("hi")
        self.assertEqual(ctx.exception.provider, LLMProvider.GEMINI)
        self.assertNotIsInstance(ctx.exception, LLMHTTPError)

    def test_connection_error(self):
        self.session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(LLMError) as ctx:
            self.client.call_llm("hi")
        self.assertNotIsInstance(ctx.exception, LLMTimeoutError)

    def test_http_error_carries_status(self):
        self.session.post.return_value = make_response(500, {"error": {"message": "backend exploded"}})
        with self.assertRaises(LLMHTTPError) as ctx:
            self.client.call_llm("hi")
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIn("backend exploded", str(ctx.exception))

    def test_http_error_without_json(self):
        self.session.post.return_value = make_response(502, ValueError("no json"), text="Bad Gateway")
        with self.assertRaises(LLMHTTPError) as ctx:
            self.client.call_llm("hi")
        self.assertIn("Bad Gateway", str(ctx.exception))

    def test_no_candidates(self):
        self.session.post.return_value = make_response(200, {"candidates": []})
        with self.assertRaises(LLMError):
            self.client.call_llm("hi")

    def test_invalid_json(self):
        self.session.post.return_value = make_response(200, ValueError("bad"))
        with self.assertRaises(LLMError):
            self.client.call_llm("hi")


class TestOllamaTransport(unittest.TestCase):
    """Test Ollama over requests."""

    def test_generate(self):
        session = MagicMock()
        session.post.return_value = make_response(200, {"response": "pong", "done": True})
        client = LLMClient(
            LLMConfig(LLMProvider.OLLAMA, "llama3", base_url="http://ollama:11434/"), session=session
        )

        self.assertEqual(client.call_llm("ping"), "pong")

        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "http://ollama:11434/api/generate")
        self.assertEqual(kwargs["json"]["model"], "llama3")
        self.assertFalse(kwargs["json"]["stream"])
        self.assertEqual(kwargs["json"]["options"]["num_predict"], 4000)

    def test_missing_response_field(self):
        session = MagicMock()
        session.post.return_value = make_response(200, {"done": True})
        client = LLMClient(LLMConfig(LLMProvider.OLLAMA, "llama3"), session=session)
        with self.assertRaises(LLMError):
            client.call_llm("ping")


# ==================== SDK transports ====================


class TestOpenAITransport(unittest.TestCase):
    """Test OpenAI-compatible providers through the openai SDK."""

    def _client(self, **kwargs):
        config = LLMConfig(
            LLMProvider.OPENAI, "gpt-4", api_key="sk-test", base_url="https://api.openai.com/v1", **kwargs
        )
        return LLMClient(config)

    @patch("archlens.llm.client.openai.OpenAI")
    def test_success(self, mock_openai):
        sdk = mock_openai.return_value
        sdk.chat.completions.create.return_value = chat_completion("hello")

        self.assertEqual(self._client().call_llm("hi", {"timeout": 10}), "hello")

        mock_openai.assert_called_once_with(
            api_key="sk-test", base_url="https://api.openai.com/v1", max_retries=0
        )
        kwargs = sdk.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4")
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "hi"}])
        self.assertEqual(kwargs["timeout"], 10)
        self.assertEqual(kwargs["temperature"], 0.1)

    @patch("archlens.llm.client.openai.OpenAI")
    def test_sdk_client_reused(self, mock_openai):
        mock_openai.return_value.chat.completions.create.return_value = chat_completion("x")
        client = self._client()
        client.call_llm("a")
        client.call_llm("b")
        self.assertEqual(mock_openai.call_count, 1)

    @patch("archlens.llm.client.openai.OpenAI")
    def test_timeout(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = openai.APITimeoutError(request=REQUEST)
        with self.assertRaises(LLMTimeoutError) as ctx:
            self._client().call_llm("hi", {"timeout": 1})
        self.assertIn("timed out", str(ctx.exception))

    @patch("archlens.llm.client.openai.OpenAI")
    def test_status_error(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = openai.InternalServerError(
            "server error", response=httpx.Response(500, request=REQUEST), body=None
        )
        with self.assertRaises(LLMHTTPError) as ctx:
            self._client().call_llm("hi")
        self.assertEqual(ctx.exception.status_code, 500)

    @patch("archlens.llm.client.openai.OpenAI")
    def test_connection_error(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = openai.APIConnectionError(
            request=REQUEST
        )
        with self.assertRaises(LLMError) as ctx:
            self._client().call_llm("hi")
        self.assertNotIsInstance(ctx.exception, (LLMTimeoutError, LLMHTTPError))

    @patch("archlens.llm.client.openai.OpenAI")
    def test_local_uses_placeholder_key(self, mock_openai):
        mock_openai.return_value.chat.completions.create.return_value = chat_completion("ok")
        client = LLMClient(LLMConfig(LLMProvider.LOCAL, "llama-3.2-3b-instruct"))

        self.assertEqual(client.call_llm("hi"), "ok")
        mock_openai.assert_called_once_with(
            api_key="not-needed", base_url="http://localhost:11434/v1", max_retries=0
        )


class TestEnterpriseTransport(unittest.TestCase):
    """Test token-authenticated providers."""

    def setUp(self):
        self.env = {"ENTERPRISE_LLM_TOKEN": "ent-token"}
        self.tokens = EnterpriseTokenManager(env=self.env)
        self.client = LLMClient(
            LLMConfig(LLMProvider.ENTERPRISE, "gpt-4", base_url="https://llm.corp/v1"),
            token_manager=self.tokens,
        )

    @patch("archlens.llm.client.openai.OpenAI")
    def test_uses_token_as_key(self, mock_openai):
        mock_openai.return_value.chat.completions.create.return_value = chat_completion("ok")
        self.client.call_llm("hi")
        self.assertEqual(mock_openai.call_args.kwargs["api_key"], "ent-token")

    @patch("archlens.llm.client.openai.OpenAI")
    def test_unauthorized_clears_token(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = openai.AuthenticationError(
            "invalid token", response=httpx.Response(401, request=REQUEST), body=None
        )
        with self.assertRaises(LLMHTTPError) as ctx:
            self.client.call_llm("hi")
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertIsNone(self.tokens.token_info)

    @patch("archlens.llm.client.openai.OpenAI")
    def test_new_token_after_401(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = [
            openai.AuthenticationError("invalid", response=httpx.Response(401, request=REQUEST), body=None),
            chat_completion("ok"),
        ]
        with self.assertRaises(LLMHTTPError):
            self.client.call_llm("hi")

        self.env["ENTERPRISE_LLM_TOKEN"] = "rotated"
        self.assertEqual(self.client.call_llm("hi"), "ok")
        self.assertEqual(mock_openai.call_args.kwargs["api_key"], "rotated")

    @patch("archlens.llm.client.openai.OpenAI")
    def test_missing_token_variable(self, mock_openai):
        del self.env["ENTERPRISE_LLM_TOKEN"]
        with self.assertRaises(LLMConfigurationError) as ctx:
            self.client.call_llm("hi")
        self.assertIn("ENTERPRISE_LLM_TOKEN", str(ctx.exception))
        mock_openai.assert_not_called()


class TestAnthropicTransport(unittest.TestCase):
    """Test Claude through the anthropic SDK."""

    def setUp(self):
        self.client = LLMClient(
            LLMConfig(
                LLMProvider.ANTHROPIC,
                "claude-3-sonnet-20240229",
                api_key="ak",
                base_url="https://api.anthropic.com/v1",
            )
        )

    @patch("archlens.llm.client.anthropic.Anthropic")
    def test_success_joins_text_blocks(self, mock_anthropic):
        sdk = mock_anthropic.return_value
        sdk.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="Hel"), SimpleNamespace(type="text", text="lo")]
        )

        self.assertEqual(self.client.call_llm("hi", {"max_tokens": 64}), "Hello")

        mock_anthropic.assert_called_once_with(
            api_key="ak", base_url="https://api.anthropic.com", max_retries=0
        )
        kwargs = sdk.messages.create.call_args.kwargs
        self.assertEqual(kwargs["max_tokens"], 64)
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "hi"}])
        self.assertEqual(kwargs["timeout"], 120.0)

    @patch("archlens.llm.client.anthropic.Anthropic")
    def test_timeout(self, mock_anthropic):
        mock_anthropic.return_value.messages.create.side_effect = anthropic.APITimeoutError(request=REQUEST)
        with self.assertRaises(LLMTimeoutError):
            self.client.call_llm("hi")

    @patch("archlens.llm.client.anthropic.Anthropic")
    def test_status_error(self, mock_anthropic):
        mock_anthropic.return_value.messages.create.side_effect = anthropic.RateLimitError(
            "slow down", response=httpx.Response(429, request=REQUEST), body=None
        )
        with self.assertRaises(LLMHTTPError) as ctx:
            self.client.call_llm("hi")
        self.assertEqual(ctx.exception.status_code, 429)


# ==================== Response cache ====================


class TestResponseCache(unittest.TestCase):
    """Test use_cache with a response cache."""

    def setUp(self):
        self.session = MagicMock()
        self.session.post.return_value = make_response(200, {"response": "cached answer"})
        self.cache = AnalysisCache()
        self.client = LLMClient(
            LLMConfig(LLMProvider.OLLAMA, "llama3"), session=self.session, response_cache=self.cache
        )

    def test_use_cache_skips_second_call(self):
        self.assertEqual(self.client.call_llm("q", {"use_cache": True}), "cached answer")
        self.assertEqual(self.client.call_llm("q", {"use_cache": True}), "cached answer")
        self.assertEqual(self.session.post.call_count, 1)
        self.assertIn(prompt_cache_key(LLMProvider.OLLAMA, "llama3", "q"), self.cache)

    def test_without_use_cache_always_calls(self):
        self.client.call_llm("q")
        self.client.call_llm("q")
        self.assertEqual(self.session.post.call_count, 2)
        self.assertEqual(len(self.cache), 0)

    def test_generate_returns_metadata(self):
        response = self.client.generate("q")
        self.assertEqual(response.content, "cached answer")
        self.assertEqual(response.to_dict()["provider"], "ollama")
        self.assertEqual(response.model, "llama3")


if __name__ == "__main__":
    unittest.main()
