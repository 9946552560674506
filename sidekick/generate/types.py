# Typed structures shared across generator modules.

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


@dataclass(frozen=True)
class Message:
    """Single chat turn: system, user, or assistant."""
    role: str
    content: str


@dataclass
class ModelParams:
    """LLM parameters per request."""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class ChatResponse:
    """Final response from the generator."""
    text: str
    citations: List[str] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


# What a model client yields per streamed chunk: plain text, or a list of
# content blocks (strings, {"text": ...} dicts, or objects with .text).
ChunkPayload = Union[str, Sequence[Any], None]


class CommunicationStyle(str, Enum):
    FORMAL = "formal"
    CASUAL = "casual"
    TECHNICAL = "technical"


class ResponseLength(str, Enum):
    CONCISE = "concise"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


class UserProfile(BaseModel):
    """Facts the caller has shared about their business, plus reply preferences."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    # company profile
    company_name: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[str] = None
    annual_revenue: Optional[str] = None
    # business
    products_services: Optional[str] = None
    target_market: Optional[str] = None
    # user role
    user_role: Optional[str] = None
    years_experience: Optional[str] = None
    areas_of_focus: Optional[str] = None
    # current context
    current_challenges: Optional[str] = None
    short_term_goals: Optional[str] = None
    long_term_goals: Optional[str] = None
    # technical environment
    tech_stack: Optional[str] = None
    team_structure: Optional[str] = None

    # preferences; unrecognized values are kept and simply ignored
    communication_style: Optional[str] = None
    response_length: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v
