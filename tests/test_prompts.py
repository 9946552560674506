"""Tests for prompt composition."""

import re

from sidekick.agents import AgentId
from sidekick.generate import UserProfile, compose_prompt
from sidekick.search.context import NO_CONTEXT_BLOCK


def test_no_profile_no_context_is_base_instructions(registry):
    profile = registry.get(AgentId.HR)
    assert compose_prompt(profile) == profile.instructions


def test_empty_profile_adds_nothing(registry):
    profile = registry.get(AgentId.SALES)
    assert compose_prompt(profile, UserProfile(company_name="  ", communication_style="")) == profile.instructions


def test_sections_follow_fixed_order(registry):
    profile = registry.get(AgentId.KNOWLEDGE)
    user = UserProfile(company_name="Acme", tech_stack="Django", communication_style="formal", response_length="concise")

    prompt = compose_prompt(profile, user, NO_CONTEXT_BLOCK)

    assert prompt.startswith(profile.instructions)
    order = [prompt.index(h) for h in ("## User Context", "## Communication Preferences", "## Relevant Information")]
    assert order == sorted(order)
    assert prompt.endswith(NO_CONTEXT_BLOCK)


def test_only_populated_groups_are_emitted(registry):
    profile = registry.get(AgentId.TECHNOLOGY)
    user = UserProfile(company_name="Acme", industry="Logistics", tech_stack="Postgres, React")

    prompt = compose_prompt(profile, user)

    assert "**Company Profile**\nCompany: Acme\nIndustry: Logistics" in prompt
    assert "**Technical Environment**\nTech Stack: Postgres, React" in prompt
    for missing in ("**Business**", "**User Profile**", "**Current Context**", "Size:", "Revenue:"):
        assert missing not in prompt
    assert "## Communication Preferences" not in prompt


def test_preferences_map_to_directives(registry):
    profile = registry.get(AgentId.COACH)
    prompt = compose_prompt(profile, UserProfile(communication_style="casual", response_length="comprehensive"))
    assert prompt.endswith(
        "## Communication Preferences\n"
        "Use a casual, conversational tone. Give thorough, comprehensive analysis."
    )
    assert "## User Context" not in prompt


def test_unrecognized_preferences_contribute_nothing(registry):
    profile = registry.get(AgentId.COACH)
    prompt = compose_prompt(profile, UserProfile(communication_style="pirate", response_length="epic"))
    assert prompt == profile.instructions


def test_profile_accepts_camel_case_keys():
    user = UserProfile.model_validate({"companyName": "Acme", "shortTermGoals": "Hire 2 engineers"})
    assert user.company_name == "Acme"
    assert user.short_term_goals == "Hire 2 engineers"


def test_retrieval_block_ignored_for_personas_without_retrieval(registry):
    profile = registry.get(AgentId.LEGAL)
    assert compose_prompt(profile, None, NO_CONTEXT_BLOCK) == profile.instructions


def test_no_orphan_headings(registry):
    profile = registry.get(AgentId.MARKETING)
    cases = [
        UserProfile(),
        UserProfile(target_market="SMBs"),
        UserProfile(response_length="detailed"),
        UserProfile(user_role="CEO", communication_style="technical"),
    ]
    for user in cases:
        added = compose_prompt(profile, user)[len(profile.instructions):]
        # every "## " heading added must be followed by some content
        for match in re.finditer(r"^## .+$", added, flags=re.M):
            rest = added[match.end():].strip()
            assert rest and not rest.startswith("## ")


def test_revenue_alone_does_not_open_company_profile(registry):
    profile = registry.get(AgentId.SALES)
    assert compose_prompt(profile, UserProfile(annual_revenue="$2M")) == profile.instructions

    prompt = compose_prompt(profile, UserProfile(annual_revenue="$2M", target_market="SMBs"))
    assert "**Company Profile**" not in prompt
    assert "Revenue:" not in prompt
    assert "**Business**\nTarget Market: SMBs" in prompt


def test_revenue_shown_with_other_company_facts(registry):
    profile = registry.get(AgentId.SALES)
    prompt = compose_prompt(profile, UserProfile(company_size="50-100", annual_revenue="$2M"))
    assert "**Company Profile**\nSize: 50-100\nRevenue: $2M" in prompt
