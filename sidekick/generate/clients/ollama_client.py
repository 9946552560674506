# Client for Ollama local inference.
# It accepts a model name and exposes generate() / stream(messages, params).

import json
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx

from ..types import ChunkPayload, Message, ModelParams


class OllamaClient:
    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "mistral:7b-instruct",
        timeout: float = 180.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.host = host.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def _payload(self, messages: List[Message], params: ModelParams, stream: bool) -> Dict[str, Any]:
        return {
            "model": self.model,
            "prompt": self._compose_prompt(messages),
            "stream": stream,
            "options": {
                "temperature": float(0.3 if params.temperature is None else params.temperature),
                "num_predict": int(params.max_tokens or 1000),
            },
        }

    async def generate(self, messages: List[Message], params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        url = f"{self.host}/api/generate"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(url, json=self._payload(messages, params, stream=False))
            resp.raise_for_status()
            data = resp.json()
        return data.get("response", ""), {"engine": "ollama", "model": self.model}

    async def stream(self, messages: List[Message], params: ModelParams) -> AsyncIterator[ChunkPayload]:
        url = f"{self.host}/api/generate"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            async with client.stream("POST", url, json=self._payload(messages, params, stream=True)) as resp:
                resp.raise_for_status()
                # newline-delimited JSON, one object per token batch
                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    yield data.get("response", "")
                    if data.get("done"):
                        break

    def _compose_prompt(self, messages: List[Message]) -> str:
        parts = []
        for m in messages:
            parts.append(f"{m.role.upper()}:\n{m.content.strip()}\n")
        return "\n".join(parts)
