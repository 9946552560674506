# Generator package

# Makes generate/ importable and exposes key interfaces.

from .generator import ChatGenerator, flatten_chunk
from .prompts import compose_prompt
from .types import Message, ChatResponse, ModelParams, UserProfile
from .clients.echo_dev_client import EchoDevClient

__all__ = [
    "ChatGenerator",
    "flatten_chunk",
    "compose_prompt",
    "Message",
    "ChatResponse",
    "ModelParams",
    "UserProfile",
    "EchoDevClient",
]
