# ===============================================
# tests/test_registry.py
# Agent identifier normalization and persona lookup
# ===============================================

import logging

import pytest

from sidekick.agents import AgentId, AgentProfile, AgentRegistry, RetrievalPolicy


def test_resolve_known_agent(registry):
    profile = registry.resolve("hr")
    assert profile.id is AgentId.HR
    assert profile.name == "HR Partner"


def test_unknown_agent_falls_back_to_default(registry):
    assert registry.resolve("nonexistent") is registry.resolve("technology")


@pytest.mark.parametrize("raw", ["", None, "strategy", "   ", "Strategy"])
def test_empty_and_legacy_resolve_to_technology(registry, raw):
    assert registry.resolve(raw).id is AgentId.TECHNOLOGY


@pytest.mark.parametrize("raw", ["  Legal ", "SALES", "knowledge\n"])
def test_resolution_ignores_case_and_surrounding_whitespace(registry, raw):
    assert registry.resolve(raw).id.value == raw.strip().lower()


@pytest.mark.parametrize("raw", ["x" * 500, "hr; drop table", "ümlaut", "\x00", "coach coach", 42, object()])
def test_resolve_is_total(registry, raw):
    profile = registry.resolve(raw)
    assert isinstance(profile, AgentProfile)


def test_every_agent_has_a_profile(registry):
    ids = [p.id for p in registry.profiles()]
    assert ids == list(AgentId)
    assert all(p.instructions for p in registry.profiles())


def test_only_knowledge_uses_retrieval(registry):
    users = [p.id for p in registry.profiles() if p.uses_retrieval]
    assert users == [AgentId.KNOWLEDGE]
    policy = registry.get(AgentId.KNOWLEDGE).retrieval
    assert policy == RetrievalPolicy(result_limit=5, similarity_threshold=0.4, max_context_tokens=3000)


def test_unknown_agent_is_logged_not_raised(registry, caplog):
    with caplog.at_level(logging.WARNING, logger="sidekick.agents.registry"):
        registry.normalize("astrologer")
    assert any(r.getMessage() == "agent.unknown" for r in caplog.records)


def test_registry_requires_every_persona(tmp_path):
    path = tmp_path / "personas.yaml"
    path.write_text("hr:\n  name: HR\n  instructions: Be helpful.\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Missing persona definitions"):
        AgentRegistry.from_yaml(str(path))


def test_registry_rejects_unknown_persona_key(tmp_path):
    path = tmp_path / "personas.yaml"
    path.write_text("wizard:\n  instructions: Cast spells.\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unknown persona key"):
        AgentRegistry.from_yaml(str(path))


def test_profiles_are_read_only(registry):
    profile = registry.resolve("coach")
    with pytest.raises(AttributeError):
        profile.temperature = 1.5  # type: ignore[misc]


@pytest.mark.parametrize("kwargs", [
    {"result_limit": 0},
    {"similarity_threshold": 1.2},
    {"similarity_threshold": -0.1},
    {"max_context_tokens": 0},
])
def test_retrieval_policy_validation(kwargs):
    with pytest.raises(ValueError):
        RetrievalPolicy(**kwargs)
