# sidekick/errors.py
# Typed failures that cross component boundaries.
# Unknown agent identifiers are not errors: the registry falls back and logs.


class SidekickError(Exception):
    """Base class for every error raised by the advisor core."""


class ConfigurationMissing(SidekickError):
    """A required setting (usually a provider credential) is absent."""

    def __init__(self, setting: str, detail: str = ""):
        self.setting = setting
        msg = f"{setting} is not configured"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class RetrievalUnavailable(SidekickError):
    """The vector-search collaborator failed or timed out.

    Callers treat this the same as "no chunks found".
    """


class ModelInvocationFailed(SidekickError):
    """The model call failed; fatal for the current turn."""


class InvalidConversation(SidekickError, ValueError):
    """The caller's history cannot form a turn (empty, bad role, no trailing user message)."""
