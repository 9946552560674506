# ============================================================
# Sidekick Advisor FastAPI App
# ------------------------------------------------------------
# Wires the advisor pipeline to HTTP:
#   - /chat          single finalized reply
#   - /chat/stream   server-sent events, one per text fragment
#   - /documents/search  knowledge-base search for the caller
#   - /agents        persona listing
# ============================================================

import json
import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import AliasChoices, BaseModel, Field

from sidekick.advisor import AdvisorService, ConversationRequest
from sidekick.agents import RetrievalPolicy
from sidekick.errors import (
    ConfigurationMissing,
    InvalidConversation,
    ModelInvocationFailed,
    RetrievalUnavailable,
    SidekickError,
)
from sidekick.generate import Message, UserProfile
from sidekick.logging import get_logger, log_with_context
from sidekick.search import budget_context, clamp_search_options
from sidekick.settings import get_settings

logger = get_logger(__name__)

MAX_QUERY_CHARS = 1000


# ------------------------------------------------------------
# 📦 Pydantic models
# ------------------------------------------------------------
class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(validation_alias=AliasChoices("content", "text"))


class ChatRequest(BaseModel):
    agent: Optional[str] = None
    history: List[ChatTurn] = Field(default_factory=list)
    message: Optional[str] = None
    profile: Optional[UserProfile] = None
    owner_id: Optional[str] = None
    retrieval_query: Optional[str] = None

    def to_conversation(self) -> ConversationRequest:
        turns = [Message(role=t.role, content=t.content) for t in self.history]
        if self.message:
            turns.append(Message(role="user", content=self.message))
        return ConversationRequest(
            history=turns,
            agent=self.agent,
            profile=self.profile,
            owner_id=self.owner_id,
            retrieval_query=self.retrieval_query,
        )


class ChatPayload(BaseModel):
    text: str
    history: List[ChatTurn]
    agent: str
    citations: List[str]
    meta: Dict[str, Any]


class SearchRequest(BaseModel):
    query: str
    owner_id: str
    limit: int = 5
    threshold: float = 0.4


class SearchResponse(BaseModel):
    results: List[Dict[str, Any]]
    context: str
    count: int


def _sse_event(data: dict) -> str:
    return f"data: {json.dumps(data)}\n\n"


def get_advisor(request: Request) -> AdvisorService:
    return request.app.state.advisor


def create_app(advisor: Optional[AdvisorService] = None) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version="0.3")
    app.state.advisor = advisor or AdvisorService.from_settings(settings)

    # ------------------------------------------------------------
    # ⚠️ Error mapping (messages never carry upstream details)
    # ------------------------------------------------------------
    @app.exception_handler(ConfigurationMissing)
    async def _config_missing(request: Request, exc: ConfigurationMissing):
        log_with_context(logger, logging.ERROR, "config.missing", setting=exc.setting)
        return JSONResponse(status_code=503, content={"error": "Model provider is not configured"})

    @app.exception_handler(ModelInvocationFailed)
    async def _model_failed(request: Request, exc: ModelInvocationFailed):
        return JSONResponse(status_code=502, content={"error": "Failed to generate response"})

    @app.exception_handler(InvalidConversation)
    async def _bad_request(request: Request, exc: InvalidConversation):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    # ------------------------------------------------------------
    # 💬 Chat routes
    # ------------------------------------------------------------
    @app.post("/chat", response_model=ChatPayload)
    async def chat(req: ChatRequest, advisor: AdvisorService = Depends(get_advisor)):
        out = await advisor.run_conversation(req.to_conversation())
        return ChatPayload(
            text=out.text,
            history=[ChatTurn(role=m.role, content=m.content) for m in out.history],
            agent=out.agent.value,
            citations=out.citations,
            meta=out.meta,
        )

    @app.post("/chat/stream")
    async def chat_stream(req: ChatRequest, advisor: AdvisorService = Depends(get_advisor)):
        # prepare before the response starts: bad history is a 400, missing credentials a 503
        turn = await advisor.prepare_turn(req.to_conversation())

        async def events():
            fragments = 0
            stream = advisor.stream_turn(turn)
            try:
                async for fragment in stream:
                    fragments += 1
                    yield _sse_event({"type": "content", "content": fragment})
                yield _sse_event({"type": "done", "agent": turn.profile.id.value, "citations": turn.citations})
            except ConfigurationMissing as e:
                log_with_context(logger, logging.ERROR, "config.missing", setting=e.setting)
                yield _sse_event({"type": "error", "error": "Model provider is not configured"})
            except SidekickError as e:
                log_with_context(logger, logging.ERROR, "chat.stream_error", agent=turn.profile.id.value, fragments=fragments, error=type(e).__name__)
                yield _sse_event({"type": "error", "error": "Failed to generate response"})
            finally:
                await stream.aclose()

        return StreamingResponse(
            events(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache, no-transform", "X-Accel-Buffering": "no"},
        )

    # ------------------------------------------------------------
    # 🔎 Knowledge-base search
    # ------------------------------------------------------------
    @app.post("/documents/search", response_model=SearchResponse)
    async def search_documents(req: SearchRequest, advisor: AdvisorService = Depends(get_advisor)):
        query = req.query.strip()
        if not query:
            raise HTTPException(status_code=400, detail="Query string required")
        if len(query) > MAX_QUERY_CHARS:
            raise HTTPException(status_code=400, detail=f"Query too long (max {MAX_QUERY_CHARS} characters)")
        if advisor.retriever is None:
            raise HTTPException(status_code=503, detail="Search is not available")

        limit, threshold = clamp_search_options(req.limit, req.threshold)
        policy = RetrievalPolicy(result_limit=limit, similarity_threshold=threshold)
        try:
            chunks = await advisor.retriever.retrieve(query, req.owner_id, policy)
        except RetrievalUnavailable:
            raise HTTPException(status_code=503, detail="Search failed")

        block = budget_context(chunks, policy.max_context_tokens)
        results = [
            {
                "chunk_id": c.chunk_id,
                "document_id": c.document_id,
                "document_name": c.document_name,
                "content": c.text,
                "similarity": c.similarity,
                "chunk_index": c.ordinal,
            }
            for c in chunks
        ]
        return SearchResponse(results=results, context=block.text, count=len(results))

    # ------------------------------------------------------------
    # 🤖 Agents discovery
    # ------------------------------------------------------------
    @app.get("/agents")
    def list_agents(advisor: AdvisorService = Depends(get_advisor)):
        items = [
            {
                "id": p.id.value,
                "name": p.name,
                "subtitle": p.subtitle,
                "description": p.description,
                "uses_retrieval": p.uses_retrieval,
            }
            for p in advisor.registry.profiles()
        ]
        return {"agents": items, "default": advisor.registry.default.value}

    # ------------------------------------------------------------
    # 🧭 Health checks
    # ------------------------------------------------------------
    @app.get("/healthz")
    def healthz():
        return {
            "ok": True,
            "env": settings.ENV,
            "debug": settings.DEBUG,
            "app": settings.app_name,
        }

    @app.get("/health")
    def health():
        return {"status": "ok", "env": settings.ENV}

    @app.get("/")
    def hello():
        return {"message": f"{settings.app_name} service running."}

    return app


app = create_app()
