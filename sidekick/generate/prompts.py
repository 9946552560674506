# Prompt composition: persona instructions first, then user context,
# communication preferences and finally retrieved document context.
# A section without content is left out entirely, heading included.

from __future__ import annotations

from typing import List, Optional, Tuple

from sidekick.agents.types import AgentProfile
from .types import CommunicationStyle, ResponseLength, UserProfile

USER_CONTEXT_INTRO = (
    "## User Context\n"
    "The following information has been provided about the user and their business. "
    "Use this to personalize your advice:"
)

# (heading, [(field, label), ...]) in output order
PROFILE_GROUPS: List[Tuple[str, List[Tuple[str, str]]]] = [
    ("Company Profile", [
        ("company_name", "Company"),
        ("industry", "Industry"),
        ("company_size", "Size"),
        ("annual_revenue", "Revenue"),
    ]),
    ("Business", [
        ("products_services", "Products/Services"),
        ("target_market", "Target Market"),
    ]),
    ("User Profile", [
        ("user_role", "Role"),
        ("years_experience", "Experience"),
        ("areas_of_focus", "Focus Areas"),
    ]),
    ("Current Context", [
        ("current_challenges", "Current Challenges"),
        ("short_term_goals", "Short-term Goals"),
        ("long_term_goals", "Long-term Goals"),
    ]),
    ("Technical Environment", [
        ("tech_stack", "Tech Stack"),
        ("team_structure", "Team Structure"),
    ]),
]

# Shown only alongside another field of the same group; never opens a group on its own.
DEPENDENT_FIELDS = {"annual_revenue"}

STYLE_DIRECTIVES = {
    CommunicationStyle.FORMAL.value: "Use a formal, professional tone.",
    CommunicationStyle.CASUAL.value: "Use a casual, conversational tone.",
    CommunicationStyle.TECHNICAL.value: "Use a technical, detailed approach with precise terminology.",
}

LENGTH_DIRECTIVES = {
    ResponseLength.CONCISE.value: "Keep responses brief and to the point.",
    ResponseLength.DETAILED.value: "Provide detailed explanations with reasoning.",
    ResponseLength.COMPREHENSIVE.value: "Give thorough, comprehensive analysis.",
}


def build_user_context(profile: UserProfile) -> str:
    sections = []
    for heading, fields in PROFILE_GROUPS:
        if not any(getattr(profile, name) for name, _ in fields if name not in DEPENDENT_FIELDS):
            continue
        lines = [f"{label}: {getattr(profile, name)}" for name, label in fields if getattr(profile, name)]
        sections.append(f"**{heading}**\n" + "\n".join(lines))
    if not sections:
        return ""
    return USER_CONTEXT_INTRO + "\n\n" + "\n\n".join(sections)


def build_preferences(profile: UserProfile) -> str:
    prefs = []
    style = STYLE_DIRECTIVES.get((profile.communication_style or "").lower())
    if style:
        prefs.append(style)
    length = LENGTH_DIRECTIVES.get((profile.response_length or "").lower())
    if length:
        prefs.append(length)
    if not prefs:
        return ""
    return "## Communication Preferences\n" + " ".join(prefs)


def compose_prompt(
    profile: AgentProfile,
    user_profile: Optional[UserProfile] = None,
    retrieval_block: Optional[str] = None,
) -> str:
    parts = [profile.instructions]
    if user_profile is not None:
        parts.append(build_user_context(user_profile))
        parts.append(build_preferences(user_profile))
    if retrieval_block and profile.uses_retrieval:
        parts.append(retrieval_block)
    return "\n\n".join(p for p in parts if p)
