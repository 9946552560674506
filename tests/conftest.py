"""Pytest configuration and fixtures."""

import os

# Settings are cached on first use, so the test environment is fixed up front.
os.environ["MODEL_PROVIDER"] = "echo"
os.environ["EMBED_PROVIDER"] = "openai"
os.environ.pop("ANTHROPIC_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)

import pytest

from sidekick.agents import AgentRegistry
from sidekick.settings import get_settings


@pytest.fixture(scope="session")
def registry():
    return AgentRegistry.from_yaml(get_settings().PERSONAS_PATH)
