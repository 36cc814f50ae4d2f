"""HTTP client for the remote script generation service.

Every call goes through the same machinery: sequential retries with
exponential backoff, a per-attempt deadline enforced by cancelling the
request, incremental reading of event-stream bodies, and normalization of
the response envelope.
"""

import asyncio
import json
import time
from typing import Any, Awaitable, Callable, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from ..config import ServiceConfig
from ..errors import ErrorKind, GenerationError
from ..models import GenerationResult
from .normalize import coerce_result, normalize_response, parse_body
from .stream import PublishThrottle, StreamAccumulator

PartialCallback = Callable[[str], None]
SleepFunc = Callable[[float], Awaitable[Any]]


class QuestionReply(BaseModel):
    """Next refinement question, or ``question=None`` when there are no more.

    ``failed`` marks a reply produced because the fetch itself failed.
    """

    question: Optional[str] = None
    options: list[str] = Field(default_factory=list)
    failed: bool = False


def backoff_delay_ms(attempt: int, base_ms: int = 1000, cap_ms: int = 8000) -> int:
    """Delay before ``attempt`` (0 is the first try and is never delayed)."""
    if attempt <= 0:
        return 0
    return min(base_ms * 2 ** (attempt - 1), cap_ms)


def _question_reply(data: Any) -> QuestionReply:
    if not isinstance(data, dict):
        logger.warning(f"Unexpected question payload type: {type(data).__name__}")
        return QuestionReply()

    question = data.get("question")
    if not isinstance(question, str) or not question.strip():
        question = None
    options = [o for o in (data.get("options") or []) if isinstance(o, str) and o.strip()]
    return QuestionReply(question=question, options=options)


class GenerationClient:
    """Talks to the generation service over a single POST endpoint."""

    def __init__(
        self,
        config: ServiceConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self._http = http_client
        self._owns_http = http_client is None
        self._sleep = sleep
        self._clock = clock
        self._headers = {"Content-Type": "application/json", **config.headers}

    async def __aenter__(self) -> "GenerationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            # Deadlines are enforced per attempt in _request
            self._http = httpx.AsyncClient(timeout=None)
        return self._http

    async def fetch_question(self, payload: dict) -> QuestionReply:
        """Ask for the next refinement question. Never raises."""
        try:
            data = await self._request(
                payload,
                timeout=self.config.question_timeout,
                max_retries=self.config.question_retries,
            )
        except GenerationError as e:
            logger.warning(f"Question fetch failed ({e.kind.value}): {e.message}")
            return QuestionReply(failed=True)
        return _question_reply(data)

    async def generate_script(
        self, payload: dict, on_partial: Optional[PartialCallback] = None
    ) -> GenerationResult:
        """Generate the final script. Raises GenerationError on failure."""
        data = await self._request(
            payload,
            timeout=self.config.generation_timeout,
            max_retries=self.config.generation_retries,
            on_partial=on_partial,
        )
        return coerce_result(data)

    async def regenerate_script(
        self, payload: dict, on_partial: Optional[PartialCallback] = None
    ) -> GenerationResult:
        """Regenerate a script from an edit instruction. Raises GenerationError."""
        data = await self._request(
            payload,
            timeout=self.config.generation_timeout,
            max_retries=self.config.generation_retries,
            on_partial=on_partial,
        )
        return coerce_result(data)

    async def _request(
        self,
        payload: dict,
        timeout: float,
        max_retries: int,
        on_partial: Optional[PartialCallback] = None,
    ) -> Any:
        last_error: Optional[GenerationError] = None

        for attempt in range(max_retries + 1):
            if attempt > 0:
                delay = backoff_delay_ms(attempt, self.config.backoff_base_ms, self.config.backoff_cap_ms)
                logger.info(f"Retrying in {delay} ms (attempt {attempt}/{max_retries})")
                await self._sleep(delay / 1000)

            try:
                return await asyncio.wait_for(self._attempt(payload, on_partial), timeout=timeout)
            except (asyncio.TimeoutError, httpx.TimeoutException):
                raise GenerationError(
                    ErrorKind.TIMEOUT,
                    f"The generation service did not answer within {timeout:g}s",
                    retryable=True,
                )
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                message = f"Generation service returned HTTP {status}"
                if status < 500:
                    raise GenerationError(ErrorKind.SERVER, message, retryable=False, status_code=status)
                last_error = GenerationError(ErrorKind.SERVER, message, retryable=True, status_code=status)
            except httpx.TransportError as e:
                last_error = GenerationError(
                    ErrorKind.NETWORK, f"Could not reach the generation service: {e}", retryable=True
                )
            except Exception as e:
                last_error = GenerationError(ErrorKind.UNKNOWN, str(e) or type(e).__name__, retryable=True)

            logger.warning(f"Attempt {attempt + 1}/{max_retries + 1} failed: {last_error.message}")

        raise last_error

    async def _attempt(self, payload: dict, on_partial: Optional[PartialCallback]) -> Any:
        client = self._client()
        async with client.stream(
            "POST", self.config.endpoint, content=json.dumps(payload), headers=self._headers
        ) as response:
            if response.is_error:
                await response.aread()
                response.raise_for_status()

            content_type = response.headers.get("content-type", "").lower()
            if "text/event-stream" in content_type:
                text = await self._read_stream(response, on_partial)
                return normalize_response(parse_body(text))

            await response.aread()
            if "application/json" in content_type:
                return normalize_response(json.loads(response.text))
            return normalize_response(parse_body(response.text))

    async def _read_stream(
        self, response: httpx.Response, on_partial: Optional[PartialCallback]
    ) -> str:
        accumulator = StreamAccumulator()
        throttle = PublishThrottle(self.config.stream_publish_interval, self._clock)

        async for chunk in response.aiter_text():
            accumulator.feed(chunk)
            if on_partial is not None and throttle.ready():
                on_partial(accumulator.payload())

        payload = accumulator.payload()
        logger.debug(f"Stream complete: {len(payload)} chars")
        return payload
