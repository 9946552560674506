"""Per-turn pipeline: resolve agent, gather context, compose prompt, call model.

``AdvisorService`` is stateless across turns. The registry, retriever and
generator are built once (``from_settings``) and shared read-only by all
concurrent requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from sidekick.agents import AgentId, AgentProfile, AgentRegistry
from sidekick.agents.types import RetrievalPolicy
from sidekick.errors import InvalidConversation, RetrievalUnavailable
from sidekick.generate import ChatGenerator, Message, ModelParams, UserProfile, compose_prompt
from sidekick.generate.clients import build_model_client
from sidekick.logging import get_logger, log_with_context
from sidekick.search import ContextBlock, RetrievedChunk, Retriever, budget_context, estimate_tokens

HISTORY_ROLES = ("user", "assistant")


@dataclass
class ConversationRequest:
    """One turn as supplied by the caller; the last history item is the new user message."""
    history: Sequence[Message]
    agent: Optional[str] = None
    profile: Optional[UserProfile] = None
    owner_id: Optional[str] = None
    retrieval_query: Optional[str] = None


@dataclass
class PreparedTurn:
    profile: AgentProfile
    prompt: str
    history: List[Message]
    message: str
    params: ModelParams
    context: Optional[ContextBlock] = None

    @property
    def citations(self) -> List[str]:
        return list(self.context.sources) if self.context else []


@dataclass
class ConversationResult:
    text: str
    history: List[Message]
    agent: AgentId
    citations: List[str] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


def split_history(history: Sequence[Message]) -> Tuple[List[Message], str]:
    """Separate prior turns from the new user message."""
    if not history:
        raise InvalidConversation("history must contain at least the new user message")
    for turn in history:
        if turn.role not in HISTORY_ROLES:
            raise InvalidConversation(f"Invalid role {turn.role!r} in history")
    last = history[-1]
    if last.role != "user" or not last.content.strip():
        raise InvalidConversation("history must end with a non-empty user message")
    return list(history[:-1]), last.content


class AdvisorService:
    def __init__(
        self,
        registry: AgentRegistry,
        generator: ChatGenerator,
        retriever: Optional[Retriever] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.registry = registry
        self.generator = generator
        self.retriever = retriever
        self.logger = logger or get_logger(__name__)

    @classmethod
    def from_settings(cls, settings) -> "AdvisorService":
        from sidekick.search.embeddings import build_embedder
        from sidekick.search.store import FaissChunkStore

        registry = AgentRegistry.from_yaml(settings.PERSONAS_PATH)
        store = FaissChunkStore(
            db_path=settings.KB_DB_PATH,
            index_dir=settings.KB_INDEX_DIR,
            embedder=build_embedder(settings),
        )
        return cls(
            registry=registry,
            generator=ChatGenerator(build_model_client(settings)),
            retriever=Retriever(store),
        )

    # -------------------------
    # Context assembly
    # -------------------------
    async def _retrieve(self, query: str, owner_id: Optional[str], policy: RetrievalPolicy) -> List[RetrievedChunk]:
        if self.retriever is None or not owner_id:
            log_with_context(self.logger, logging.INFO, "retrieval.skipped", has_retriever=self.retriever is not None, has_owner=bool(owner_id))
            return []
        try:
            return await self.retriever.retrieve(query, owner_id, policy)
        except RetrievalUnavailable:
            # degrade: the prompt will say no documents were found
            return []

    async def prepare_turn(self, request: ConversationRequest) -> PreparedTurn:
        history, message = split_history(request.history)
        # missing credentials fail here, before retrieval or any streamed output
        self.generator.ensure_ready()
        profile = self.registry.resolve(request.agent)
        prompt = compose_prompt(profile, request.profile)

        context = None
        policy = profile.retrieval
        if policy is not None:
            query = (request.retrieval_query or "").strip() or message
            chunks = await self._retrieve(query, request.owner_id, policy)
            # "+1" covers the blank line that joins the block onto the prompt
            room = profile.max_input_tokens - estimate_tokens(prompt) - 1
            context = budget_context(chunks, min(policy.max_context_tokens, room), logger=self.logger)
            prompt = compose_prompt(profile, request.profile, context.text)

        log_with_context(
            self.logger, logging.INFO, "turn.prepared",
            agent=profile.id.value,
            requested=request.agent,
            history=len(history),
            has_profile=request.profile is not None,
            context_chunks=context.included if context else None,
            prompt_tokens=estimate_tokens(prompt),
        )
        params = ModelParams(temperature=profile.temperature, max_tokens=profile.max_output_tokens)
        return PreparedTurn(profile=profile, prompt=prompt, history=history, message=message, params=params, context=context)

    # -------------------------
    # Entry points
    # -------------------------
    async def run_conversation(self, request: ConversationRequest) -> ConversationResult:
        turn = await self.prepare_turn(request)
        resp = await self.generator.run(turn.history, turn.message, turn.prompt, turn.params)
        updated = [*request.history, Message(role="assistant", content=resp.text)]
        meta = dict(resp.meta)
        meta["agent"] = turn.profile.id.value
        if turn.context is not None:
            meta["context_chunks"] = turn.context.included
            meta["retrieved_chunks"] = turn.context.total
        return ConversationResult(
            text=resp.text,
            history=updated,
            agent=turn.profile.id,
            citations=turn.citations,
            meta=meta,
        )

    async def stream_turn(self, turn: PreparedTurn) -> AsyncIterator[str]:
        stream = self.generator.stream(turn.history, turn.message, turn.prompt, turn.params)
        try:
            async for fragment in stream:
                yield fragment
        finally:
            await stream.aclose()

    async def stream_conversation(self, request: ConversationRequest) -> AsyncIterator[str]:
        turn = await self.prepare_turn(request)
        stream = self.stream_turn(turn)
        try:
            async for fragment in stream:
                yield fragment
        finally:
            await stream.aclose()
