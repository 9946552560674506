# Model clients. All expose:
#   async generate(messages, params) -> (text, meta)
#   stream(messages, params) -> async iterator of chunk payloads

from .anthropic_client import AnthropicClient
from .echo_dev_client import EchoDevClient
from .ollama_client import OllamaClient
from .openai_client import OpenAIClient


def build_model_client(settings):
    provider = settings.MODEL_PROVIDER.lower()
    if provider == "anthropic":
        return AnthropicClient(api_key=settings.ANTHROPIC_API_KEY, model=settings.ANTHROPIC_MODEL)
    if provider == "openai":
        return OpenAIClient(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)
    if provider == "ollama":
        return OllamaClient(host=settings.OLLAMA_HOST, model=settings.OLLAMA_MODEL)
    if provider == "echo":
        return EchoDevClient()
    raise ValueError(f"Unknown MODEL_PROVIDER '{settings.MODEL_PROVIDER}'")


__all__ = ["AnthropicClient", "EchoDevClient", "OllamaClient", "OpenAIClient", "build_model_client"]
