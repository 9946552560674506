# Dummy model client for local dev and testing without API calls.

from typing import Any, AsyncIterator, Dict, List, Tuple

from ..types import ChunkPayload, Message, ModelParams


class EchoDevClient:
    def __init__(self):
        self.model = "echo-dev"

    def _reply(self, messages: List[Message]) -> str:
        user_inputs = [m.content for m in messages if m.role == "user"]
        return f"[ECHO RESPONSE]\n{user_inputs[-1] if user_inputs else '(no user input)'}"

    async def generate(self, messages: List[Message], params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        meta = {"engine": "echo", "model": self.model, "temp": params.temperature, "max_tokens": params.max_tokens}
        return self._reply(messages), meta

    async def stream(self, messages: List[Message], params: ModelParams) -> AsyncIterator[ChunkPayload]:
        # word-sized pieces, whitespace kept so the pieces join back exactly
        text = self._reply(messages)
        start = 0
        for i, ch in enumerate(text):
            if ch == " ":
                yield text[start:i + 1]
                start = i + 1
        if start < len(text):
            yield text[start:]
