"""
COMPLETION CLIENT TESTS

Error classification and the bounded retry loop. The OpenAI SDK client is
replaced by a scripted stand-in; no network calls are made.
"""
from types import SimpleNamespace

import httpx
import openai
import pytest
from google.api_core import exceptions as google_exceptions

from phonejail.llm_client import OpenAICompletionClient, classify_exception, create_completion_client
from phonejail.model_props import is_openai_model, parse_model_name
from phonejail.results import CompletionErrorKind

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


def status_error(cls, code: int):
    return cls(f"status {code}", response=httpx.Response(code, request=REQUEST), body=None)


class ScriptedResponses:
    """Stands in for ``OpenAI().responses``; items are exceptions to raise or texts to return."""

    def __init__(self, *script):
        self.script = list(script)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(output_text=item)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_client(*script, model="gpt-4o-mini"):
    responses = ScriptedResponses(*script)
    sleep = RecordingSleep()
    client = OpenAICompletionClient(
        model,
        client=SimpleNamespace(responses=responses),
        sleep=sleep,
        log=lambda msg: None,
    )
    return client, responses, sleep


class TestClassification:

    @pytest.mark.parametrize("exc,kind", [
        (status_error(openai.AuthenticationError, 401), CompletionErrorKind.UNAUTHORIZED),
        (status_error(openai.PermissionDeniedError, 403), CompletionErrorKind.UNAUTHORIZED),
        (status_error(openai.RateLimitError, 429), CompletionErrorKind.RATE_LIMITED),
        (status_error(openai.BadRequestError, 400), CompletionErrorKind.INVALID_RESPONSE),
        (status_error(openai.InternalServerError, 500), CompletionErrorKind.NETWORK_ERROR),
        (openai.APIConnectionError(request=REQUEST), CompletionErrorKind.NETWORK_ERROR),
        (openai.APITimeoutError(request=REQUEST), CompletionErrorKind.NETWORK_ERROR),
        (google_exceptions.Unauthenticated("no creds"), CompletionErrorKind.UNAUTHORIZED),
        (google_exceptions.ResourceExhausted("quota"), CompletionErrorKind.RATE_LIMITED),
        (google_exceptions.ServiceUnavailable("down"), CompletionErrorKind.NETWORK_ERROR),
        (google_exceptions.InvalidArgument("bad"), CompletionErrorKind.INVALID_RESPONSE),
        (RuntimeError("429 RESOURCE_EXHAUSTED"), CompletionErrorKind.RATE_LIMITED),
        (RuntimeError("request timed out"), CompletionErrorKind.NETWORK_ERROR),
        (ConnectionResetError("reset"), CompletionErrorKind.NETWORK_ERROR),
    ])
    def test_known_failures(self, exc, kind):
        assert classify_exception(exc) == kind

    def test_unrelated_exception_is_unclassified(self):
        assert classify_exception(KeyError("x")) is None


class TestRetryLoop:

    @pytest.mark.asyncio
    async def test_success_passes_sampling_parameters(self):
        client, responses, _ = make_client("  Hello there.  ")
        result = await client.complete("prompt", temperature=0.8, max_tokens=300)

        assert result.is_ok
        assert result.value == "Hello there."
        call = responses.calls[0]
        assert call["model"] == "gpt-4o-mini"
        assert call["input"] == "prompt"
        assert call["temperature"] == 0.8
        assert call["max_output_tokens"] == 300

    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_succeeds(self):
        client, responses, sleep = make_client(
            status_error(openai.RateLimitError, 429),
            openai.APIConnectionError(request=REQUEST),
            "ok",
        )
        result = await client.complete("prompt")

        assert result.is_ok
        assert len(responses.calls) == 3
        assert len(sleep.delays) == 2
        assert sleep.delays[1] > sleep.delays[0]

    @pytest.mark.asyncio
    async def test_budget_exhausted_surfaces_last_kind(self):
        client, responses, sleep = make_client(*[status_error(openai.RateLimitError, 429)] * 3)
        result = await client.complete("prompt")

        assert not result.is_ok
        assert result.error == CompletionErrorKind.RATE_LIMITED
        assert len(responses.calls) == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_budget_is_per_call(self):
        failures = [openai.APIConnectionError(request=REQUEST)] * 3
        client, responses, _ = make_client(*failures, *failures[:2], "second call ok")

        first = await client.complete("one")
        second = await client.complete("two")

        assert first.error == CompletionErrorKind.NETWORK_ERROR
        assert second.is_ok
        assert len(responses.calls) == 6

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc,kind", [
        (status_error(openai.AuthenticationError, 401), CompletionErrorKind.UNAUTHORIZED),
        (status_error(openai.BadRequestError, 400), CompletionErrorKind.INVALID_RESPONSE),
    ])
    async def test_non_retryable_returns_immediately(self, exc, kind):
        client, responses, sleep = make_client(exc, "never reached")
        result = await client.complete("prompt")

        assert result.error == kind
        assert len(responses.calls) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_empty_text_is_invalid_response(self):
        client, _, _ = make_client("   ")
        result = await client.complete("prompt")
        assert result.error == CompletionErrorKind.INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_unclassified_exception_propagates(self):
        client, _, _ = make_client(KeyError("bug"))
        with pytest.raises(KeyError):
            await client.complete("prompt")

    @pytest.mark.asyncio
    async def test_reasoning_models_get_no_temperature(self):
        client, responses, _ = make_client("ok", model="gpt-5.1_fast")
        await client.complete("prompt", temperature=0.7, max_tokens=150)

        call = responses.calls[0]
        assert call["model"] == "gpt-5.1"
        assert "temperature" not in call
        assert call["reasoning"] == {"effort": "none"}


class TestModelNames:

    def test_openai_prefixes(self):
        assert is_openai_model("gpt-4o-mini")
        assert not is_openai_model("gemini-2.0-flash")

    def test_parse_suffixes(self):
        base, params = parse_model_name("gpt-5.1_low_minimal_flex")
        assert base == "gpt-5.1"
        assert params == {"text": {"verbosity": "low"}, "reasoning": {"effort": "minimal"}, "service_tier": "flex"}

    def test_unknown_suffix_rejected(self):
        with pytest.raises(ValueError):
            parse_model_name("gpt-5.1_turbo")

    def test_factory_picks_openai(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert isinstance(create_completion_client("gpt-4o-mini"), OpenAICompletionClient)
