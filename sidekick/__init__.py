# Sidekick advisor core: persona routing, context assembly and streamed replies.

__version__ = "0.3.0"
