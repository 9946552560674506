# Agent registry: the only place raw agent strings become AgentId values.
# Built once at startup from personas.yaml and shared read-only afterwards.

from __future__ import annotations

import logging
import os
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

import yaml

from sidekick.logging import get_logger, log_with_context
from .types import DEFAULT_AGENT, LEGACY_ALIASES, AgentId, AgentProfile, RetrievalPolicy


class AgentRegistry:
    def __init__(
        self,
        profiles: Mapping[AgentId, AgentProfile],
        default: AgentId = DEFAULT_AGENT,
        aliases: Optional[Mapping[str, AgentId]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        missing = [a.value for a in AgentId if a not in profiles]
        if missing:
            raise ValueError(f"Missing persona definitions for: {', '.join(missing)}")
        self._profiles = MappingProxyType(dict(profiles))
        self._aliases = MappingProxyType(dict(LEGACY_ALIASES if aliases is None else aliases))
        self.default = default
        self.logger = logger or get_logger(__name__)

    # -------------------------
    # Loading
    # -------------------------
    @classmethod
    def from_yaml(cls, path: str, logger: Optional[logging.Logger] = None) -> "AgentRegistry":
        """Load every persona from a personas.yaml file."""
        if not os.path.exists(path):
            raise FileNotFoundError(f"personas.yaml not found at {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        profiles: Dict[AgentId, AgentProfile] = {}
        for key, p in data.items():
            try:
                agent_id = AgentId(key)
            except ValueError:
                raise ValueError(f"Unknown persona key '{key}' in {path}") from None
            profiles[agent_id] = _profile_from_dict(agent_id, p or {})
        return cls(profiles, logger=logger)

    # -------------------------
    # Lookup
    # -------------------------
    def normalize(self, raw: Optional[str]) -> AgentId:
        """Map any input (including None and legacy names) to a known AgentId."""
        if isinstance(raw, AgentId):
            return raw
        key = raw.strip().lower() if isinstance(raw, str) else ""
        if not key:
            log_with_context(self.logger, logging.DEBUG, "agent.default", raw=raw, resolved=self.default.value)
            return self.default

        if key in self._aliases:
            resolved = self._aliases[key]
            log_with_context(self.logger, logging.INFO, "agent.alias", raw=raw, resolved=resolved.value)
            return resolved

        try:
            return AgentId(key)
        except ValueError:
            log_with_context(self.logger, logging.WARNING, "agent.unknown", raw=raw, resolved=self.default.value)
            return self.default

    def resolve(self, raw: Optional[str]) -> AgentProfile:
        return self._profiles[self.normalize(raw)]

    def get(self, agent_id: AgentId) -> AgentProfile:
        return self._profiles[agent_id]

    def profiles(self) -> List[AgentProfile]:
        """All profiles in display order."""
        return [self._profiles[a] for a in AgentId]


def _profile_from_dict(agent_id: AgentId, p: dict) -> AgentProfile:
    instructions = (p.get("instructions") or "").strip()
    if not instructions:
        raise ValueError(f"Persona '{agent_id.value}' has no instructions")

    retrieval = None
    r = p.get("retrieval")
    if r:
        retrieval = RetrievalPolicy(
            result_limit=int(r.get("result_limit", 5)),
            similarity_threshold=float(r.get("similarity_threshold", 0.4)),
            max_context_tokens=int(r.get("max_context_tokens", 3000)),
        )

    return AgentProfile(
        id=agent_id,
        name=p.get("name", agent_id.value),
        subtitle=p.get("subtitle", ""),
        description=p.get("description", ""),
        instructions=instructions,
        temperature=float(p.get("temperature", 0.7)),
        max_output_tokens=int(p.get("max_output_tokens", 4096)),
        max_input_tokens=int(p.get("max_input_tokens", 16000)),
        retrieval=retrieval,
    )
