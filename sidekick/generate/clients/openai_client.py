# Client for OpenAI Chat Completions API.
# Follows the same interface as AnthropicClient.

from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from sidekick.errors import ConfigurationMissing
from ..types import ChunkPayload, Message, ModelParams


class OpenAIClient:
    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini"):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        if not self.api_key:
            raise ConfigurationMissing("OPENAI_API_KEY")
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def ensure_ready(self):
        self._get_client()

    def _request(self, messages: List[Message], params: ModelParams) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": 0.3 if params.temperature is None else params.temperature,
            "max_tokens": params.max_tokens or 1000,
        }

    async def generate(self, messages: List[Message], params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        client = self._get_client()
        resp = await client.chat.completions.create(**self._request(messages, params))
        text = resp.choices[0].message.content or ""
        meta = {"engine": "openai", "model": self.model}
        return text, meta

    async def stream(self, messages: List[Message], params: ModelParams) -> AsyncIterator[ChunkPayload]:
        client = self._get_client()
        resp = await client.chat.completions.create(stream=True, **self._request(messages, params))
        try:
            async for chunk in resp:
                if chunk.choices:
                    yield chunk.choices[0].delta.content
        finally:
            await resp.close()
