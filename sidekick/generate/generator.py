# Conversation turn runner.
# Accepts any model client (Anthropic, OpenAI, Ollama, Echo), puts the composed
# prompt in front of the history and calls the model exactly once per turn.

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, List, Optional, Sequence

from sidekick.errors import ConfigurationMissing, ModelInvocationFailed
from sidekick.logging import get_logger, log_with_context
from .types import ChatResponse, ChunkPayload, Message, ModelParams


def flatten_chunk(payload: ChunkPayload) -> str:
    """Reduce one streamed chunk to plain text.

    Strings pass through; content-block lists are concatenated in order.
    Blocks without text (tool input deltas etc.) contribute nothing.
    """
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload
    out = []
    for block in payload:
        if isinstance(block, str):
            out.append(block)
        elif isinstance(block, dict):
            text = block.get("text")
            if isinstance(text, str):
                out.append(text)
        else:
            text = getattr(block, "text", None)
            if isinstance(text, str):
                out.append(text)
    return "".join(out)


class ChatGenerator:
    def __init__(self, model_client, logger: Optional[logging.Logger] = None):
        self.model_client = model_client
        self.logger = logger or get_logger(__name__)

    @property
    def model_name(self) -> Optional[str]:
        return getattr(self.model_client, "model", None)

    def ensure_ready(self) -> None:
        """Raise ConfigurationMissing now if the client cannot be used (e.g. no API key)."""
        check = getattr(self.model_client, "ensure_ready", None)
        if check is not None:
            check()

    def _compose_messages(self, history: Sequence[Message], message: str, prompt: str) -> List[Message]:
        return [Message(role="system", content=prompt), *history, Message(role="user", content=message)]

    async def run(
        self,
        history: Sequence[Message],
        message: str,
        prompt: str,
        params: ModelParams,
    ) -> ChatResponse:
        """Non-streaming turn: one model call, finalized text."""
        messages = self._compose_messages(history, message, prompt)
        try:
            text, meta = await self.model_client.generate(messages, params)
        except ConfigurationMissing:
            raise
        except Exception as e:
            log_with_context(self.logger, logging.ERROR, "model.failed", model=self.model_name, error=type(e).__name__)
            raise ModelInvocationFailed(f"Model call failed: {type(e).__name__}") from e

        log_with_context(self.logger, logging.INFO, "model.done", model=self.model_name, chars=len(text))
        return ChatResponse(text=text, meta=meta or {})

    async def stream(
        self,
        history: Sequence[Message],
        message: str,
        prompt: str,
        params: ModelParams,
    ) -> AsyncIterator[str]:
        """Streaming turn: yields text fragments as the model produces them.

        Closing this generator closes the upstream model stream.
        """
        messages = self._compose_messages(history, message, prompt)
        upstream: Any = self.model_client.stream(messages, params)
        chunks = 0
        fragments = 0
        try:
            async for payload in upstream:
                chunks += 1
                text = flatten_chunk(payload)
                if text:
                    fragments += 1
                    yield text
        except ConfigurationMissing:
            raise
        except Exception as e:
            log_with_context(
                self.logger, logging.ERROR, "model.stream_failed",
                model=self.model_name, chunks=chunks, error=type(e).__name__,
            )
            raise ModelInvocationFailed(f"Model stream failed: {type(e).__name__}") from e
        finally:
            await upstream.aclose()

        log_with_context(self.logger, logging.INFO, "model.stream_done", model=self.model_name, chunks=chunks, fragments=fragments)
