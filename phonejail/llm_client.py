import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import openai
from google.api_core import exceptions as google_exceptions
from langchain_google_vertexai import VertexAI
from openai import OpenAI

from phonejail.app_config import LLM_TIMEOUT, PROJECT_ID, REGION, build_google_creds
from phonejail.model_props import is_openai_model, parse_model_name
from phonejail.results import CompletionErrorKind, Err, Ok, Result

logger = logging.getLogger("phonejail")

Sleeper = Callable[[float], Awaitable[None]]


def _is_timeout_error(e: Exception) -> bool:
    if isinstance(e, (asyncio.TimeoutError, TimeoutError)):
        return True
    msg = repr(e)
    return "TimeoutError" in msg or "timed out" in msg.lower()


def _is_resource_exhausted_error(e: Exception) -> bool:
    msg = str(e)
    return (
        "429" in msg
        and (
            "RESOURCE_EXHAUSTED" in msg
            or "Resource has been exhausted" in msg
            or "Too Many Requests" in msg
        )
    )


def classify_exception(e: Exception) -> Optional[CompletionErrorKind]:
    """
    Map an SDK exception onto a CompletionErrorKind.
    Returns None for anything that is not a completion-service failure.
    """
    # OpenAI: order matters, the specific status errors subclass APIStatusError
    if isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return CompletionErrorKind.UNAUTHORIZED
    if isinstance(e, openai.RateLimitError):
        return CompletionErrorKind.RATE_LIMITED
    if isinstance(e, (openai.BadRequestError, openai.UnprocessableEntityError)):
        return CompletionErrorKind.INVALID_RESPONSE
    if isinstance(e, (openai.APIConnectionError, openai.APIStatusError)):
        return CompletionErrorKind.NETWORK_ERROR
    if isinstance(e, openai.APIResponseValidationError):
        return CompletionErrorKind.INVALID_RESPONSE

    # Vertex
    if isinstance(e, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)):
        return CompletionErrorKind.UNAUTHORIZED
    if isinstance(e, (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)):
        return CompletionErrorKind.RATE_LIMITED
    if isinstance(e, google_exceptions.InvalidArgument):
        return CompletionErrorKind.INVALID_RESPONSE
    if isinstance(e, (
        google_exceptions.ServiceUnavailable,
        google_exceptions.DeadlineExceeded,
        google_exceptions.InternalServerError,
    )):
        return CompletionErrorKind.NETWORK_ERROR

    if _is_resource_exhausted_error(e):
        return CompletionErrorKind.RATE_LIMITED
    if _is_timeout_error(e) or isinstance(e, ConnectionError):
        return CompletionErrorKind.NETWORK_ERROR
    return None


class BaseCompletionClient:
    """
    Completion service with a bounded retry budget per call.

        result = await client.complete(prompt, temperature=0.7, max_tokens=150)

    - Subclasses implement the blocking ``_invoke_once``; it runs in a worker
      thread so the event loop keeps ticking while the call is pending.
    - RateLimited/NetworkError are retried with jittered, doubling backoff.
    - Unauthorized/InvalidResponse come back on the first occurrence.
    - The attempt counter lives in the call, so concurrent calls never share a budget.
    """

    def __init__(
        self,
        *,
        retries: int = 3,
        backoff_base: float = 1.0,
        sleep: Sleeper | None = None,
        log: Callable[[str], None] | None = None,
    ):
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.retries = retries
        self.backoff_base = backoff_base
        self._sleep = sleep or asyncio.sleep
        self._log = log or (lambda msg: logger.warning(f"[LLM-RETRY] {msg}"))

    def _invoke_once(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """
        Single call without retries/backoff.
        """
        raise NotImplementedError

    async def complete(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 150,
    ) -> Result[str, CompletionErrorKind]:
        backoff = self.backoff_base
        last_kind = CompletionErrorKind.NETWORK_ERROR

        for attempt in range(self.retries):
            start_time = time.time()
            try:
                text = await asyncio.to_thread(self._invoke_once, prompt, temperature, max_tokens)
            except Exception as e:
                kind = classify_exception(e)
                if kind is None:
                    raise
                elapsed = time.time() - start_time

                if not kind.retryable:
                    logger.error("Completion failed with %s (elapsed=%.2fs): %s", kind.value, elapsed, e)
                    return Err(kind)

                last_kind = kind
                if attempt + 1 >= self.retries:
                    self._log(f"Attempt {attempt+1} failed with {kind.value} (elapsed={elapsed:.2f}s): {e}. No attempts left.")
                    break

                delay = random.uniform(backoff * 0.95, backoff * 1.35)
                backoff *= 2
                self._log(f"Attempt {attempt+1} failed with {kind.value}, backing off ~{delay:.1f}s (elapsed={elapsed:.2f}s): {e}")
                await self._sleep(delay)
                continue

            text = (text or "").strip()
            if not text:
                logger.error("Completion returned an empty body")
                return Err(CompletionErrorKind.INVALID_RESPONSE)
            return Ok(text)

        return Err(last_kind)


class OpenAICompletionClient(BaseCompletionClient):
    """
    OpenAI Responses API; the prompt goes in as a single input string.
    """

    def __init__(self, model_name: str, *, timeout: float | None = None, client: Any = None, **kwargs):
        super().__init__(**kwargs)
        self.model_name, self._openai_params = parse_model_name(model_name)

        if client is not None:
            self._client = client
        else:
            client_kwargs: Dict[str, Any] = {"max_retries": 0}
            if timeout is not None:
                client_kwargs["timeout"] = timeout
            self._client = OpenAI(**client_kwargs)

    def _invoke_once(self, prompt: str, temperature: float, max_tokens: int) -> str:
        params = dict(self._openai_params)
        # reasoning models reject sampling parameters
        if "reasoning" not in params:
            params["temperature"] = temperature
        resp = self._client.responses.create(
            model=self.model_name,
            input=prompt,
            max_output_tokens=max_tokens,
            **params,
        )
        text = getattr(resp, "output_text", "") or ""
        return text.strip()


class VertexCompletionClient(BaseCompletionClient):

    def __init__(
        self,
        model_name: str,
        *,
        vertex_project: str,
        vertex_region: str,
        timeout: float | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.model_name = model_name
        self._vertex = VertexAI(
            project=vertex_project,
            location=vertex_region,
            model_name=model_name,
            credentials=build_google_creds(),
            timeout=timeout,
        )

    def _invoke_once(self, prompt: str, temperature: float, max_tokens: int) -> str:
        resp = self._vertex.invoke(prompt, temperature=temperature, max_output_tokens=max_tokens)
        if isinstance(resp, str):
            return resp
        # LangChain's Vertex types often have .content
        return getattr(resp, "content", str(resp))


def create_completion_client(model_name: str, *, timeout: float | None = LLM_TIMEOUT, **kwargs) -> BaseCompletionClient:
    if is_openai_model(model_name):
        return OpenAICompletionClient(model_name, timeout=timeout, **kwargs)
    return VertexCompletionClient(
        model_name,
        vertex_project=PROJECT_ID,
        vertex_region=REGION,
        timeout=timeout,
        **kwargs,
    )
