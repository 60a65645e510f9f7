from __future__ import annotations

import logging
from typing import Protocol

import anthropic
import httpx

from tacitus.config import Settings, settings
from tacitus.errors import UpstreamUnavailable
from tacitus.services.context_resolver import QueryContext
from tacitus.services.metrics import metrics
from tacitus.services.outcome import Outcome

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant providing information about locations. "
    "Answer the user's question using the place they are at and the "
    "Wikipedia articles listed below when they are relevant. Keep answers "
    "short enough to be read aloud.\n\n"
    "You have access to the following Wikipedia articles: {articles}"
)

EMPTY_ANSWER = (
    "I couldn't generate a proper response. "
    "Please check that the language model service is running correctly."
)

FALLBACK_ANSWER = (
    "I apologize, but I encountered an error processing your request. "
    "Please check that the language model service is running correctly. "
    "(Technical details: {detail})"
)


class LLMBackend(Protocol):
    async def complete(self, messages: list[dict[str, str]]) -> str: ...


class OllamaBackend:
    """Chat completion against a local Ollama server (``/api/chat``)."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str,
        model: str,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ) -> None:
        self._client = client
        self._url = url
        self._model = model
        self._temperature = temperature
        self._timeout = timeout

    async def complete(self, messages: list[dict[str, str]]) -> str:
        payload = {
            "model": self._model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": self._temperature},
        }
        try:
            resp = await self._client.post(self._url, json=payload, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailable("ollama", str(exc) or type(exc).__name__) from exc

        return ((data.get("message") or {}).get("content") or "").strip()


class AnthropicBackend:
    """Chat completion through the Anthropic messages API."""

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        *,
        model: str,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def complete(self, messages: list[dict[str, str]]) -> str:
        # The messages API takes the system prompt out of band.
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [m for m in messages if m["role"] != "system"]
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system=system,
                messages=turns,
            )
        except anthropic.APIError as exc:
            raise UpstreamUnavailable("anthropic", str(exc)) from exc

        return "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        ).strip()


def build_backend(client: httpx.AsyncClient, cfg: Settings = settings) -> LLMBackend:
    """Pick the language-model backend named by ``cfg.llm_backend``."""
    name = cfg.llm_backend.lower()
    if name == "anthropic":
        return AnthropicBackend(
            anthropic.AsyncAnthropic(api_key=cfg.anthropic_api_key, timeout=cfg.llm_timeout),
            model=cfg.anthropic_model,
            max_tokens=cfg.answer_max_tokens,
            temperature=cfg.llm_temperature,
        )
    if name == "ollama":
        return OllamaBackend(
            client,
            url=cfg.ollama_api_url,
            model=cfg.ollama_model,
            temperature=cfg.llm_temperature,
            timeout=cfg.llm_timeout,
        )
    raise ValueError(f"Unknown llm_backend: {cfg.llm_backend!r}")


def build_messages(query_text: str, context: QueryContext) -> list[dict[str, str]]:
    """System + user turns embedding the place, its articles and the coordinates."""
    if context.articles:
        articles = (
            f"Available articles about {context.name}: " + ", ".join(context.articles)
        )
    else:
        articles = "none"

    user = (
        f"{query_text}. I'm currently at coordinates "
        f"({context.latitude}, {context.longitude}), which is in or near {context.name}."
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(articles=articles)},
        {"role": "user", "content": user},
    ]


class AnswerService:
    """Turn a query plus its location context into displayable answer text."""

    def __init__(self, backend: LLMBackend) -> None:
        self._backend = backend

    async def answer(self, query_text: str, context: QueryContext) -> Outcome[str]:
        """Never raises: backend trouble becomes a ``DEGRADED`` outcome whose
        value is an apology the client can show or speak."""
        messages = build_messages(query_text, context)
        try:
            text = await self._backend.complete(messages)
        except UpstreamUnavailable as exc:
            logger.error("Language model call failed: %s", exc)
            metrics.inc_answer(degraded=True)
            return Outcome.degraded(FALLBACK_ANSWER.format(detail=exc.detail), str(exc))
        except Exception as exc:
            logger.exception("Unexpected error generating answer: %s", exc)
            metrics.inc_answer(degraded=True)
            return Outcome.degraded(FALLBACK_ANSWER.format(detail=exc), str(exc))

        if not text:
            metrics.inc_answer(degraded=True)
            return Outcome.degraded(EMPTY_ANSWER, "empty response from language model")

        metrics.inc_answer(degraded=False)
        return Outcome.ok(text)
