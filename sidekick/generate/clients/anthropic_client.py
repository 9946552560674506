# Client for the Anthropic Messages API.
# Same interface as the other clients: generate() and stream().

from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from sidekick.errors import ConfigurationMissing
from ..types import ChunkPayload, Message, ModelParams


class AnthropicClient:
    def __init__(self, api_key: Optional[str], model: str = "claude-sonnet-4-20250514"):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        # fail on first use, not at import/startup
        if not self.api_key:
            raise ConfigurationMissing("ANTHROPIC_API_KEY")
        if self._client is None:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    def ensure_ready(self):
        self._get_client()

    def _request(self, messages: List[Message], params: ModelParams) -> Dict[str, Any]:
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        turns = [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]
        req = {
            "model": self.model,
            "messages": turns,
            "max_tokens": int(params.max_tokens or 4096),
            "temperature": float(0.7 if params.temperature is None else params.temperature),
        }
        if system:
            req["system"] = system
        return req

    async def generate(self, messages: List[Message], params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        client = self._get_client()
        resp = await client.messages.create(**self._request(messages, params))
        text = "".join(block.text for block in resp.content if getattr(block, "type", None) == "text")
        meta = {"engine": "anthropic", "model": self.model, "stop_reason": resp.stop_reason}
        return text, meta

    async def stream(self, messages: List[Message], params: ModelParams) -> AsyncIterator[ChunkPayload]:
        client = self._get_client()
        async with client.messages.stream(**self._request(messages, params)) as stream:
            async for event in stream:
                # deltas arrive as content blocks (text_delta, input_json_delta, ...)
                if event.type == "content_block_delta":
                    yield [event.delta]
