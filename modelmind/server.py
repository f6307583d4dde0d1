"""REST API server."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from modelmind.agents.analyzer import LLMDiagramAnalyzer
from modelmind.agents.generator import LLMDiagramGenerator
from modelmind.agents.master_classifier import MasterClassifier
from modelmind.agents.modifier import LLMDiagramModifier
from modelmind.schemas import (
    MessageResponse,
    PipelineRequest,
    PipelineResponse,
    SessionCreateResponse,
    SessionDetailResponse,
)
from modelmind.services.request_router import RequestRouter
from modelmind.services.response_formatter import format_response
from modelmind.services.session_context import SessionContext, SessionStore
from modelmind.utils.openai_client import OpenAITextGenerator, close_openai_client

app = FastAPI(title="ModelMind Diagram Assistant API")


@lru_cache(maxsize=1)
def get_router() -> RequestRouter:
    text_generator = OpenAITextGenerator()
    return RequestRouter(
        classifier=MasterClassifier(text_generator),
        generator=LLMDiagramGenerator(text_generator),
        modifier=LLMDiagramModifier(text_generator),
        analyzer=LLMDiagramAnalyzer(text_generator),
        sessions=SessionStore(),
    )


@app.on_event("shutdown")
async def close_clients():
    await close_openai_client()


def _session_detail(session: SessionContext) -> SessionDetailResponse:
    snapshot = session.get_complete_context()
    return SessionDetailResponse(
        session_id=snapshot["sessionId"],
        current_diagram=snapshot["currentDiagram"],
        diagram_metadata=snapshot["diagramMetadata"],
        messages=[MessageResponse(**m) for m in snapshot["messages"]],
        last_intent=snapshot["lastIntent"],
        last_diagram_type=snapshot["lastDiagramType"],
        last_analysis_type=snapshot["lastAnalysisType"],
    )


def _session_not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Session not found"})


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/health")
async def pipeline_health(router: RequestRouter = Depends(get_router)):
    return router.health_status()


@app.post("/api/sessions", response_model=SessionCreateResponse)
async def create_session_api(router: RequestRouter = Depends(get_router)):
    session = router.sessions.create()
    return SessionCreateResponse(session_id=session.session_id)


@app.get("/api/sessions/{session_id}", response_model=SessionDetailResponse)
async def session_detail(session_id: str, router: RequestRouter = Depends(get_router)):
    session = router.sessions.get(session_id)
    if not session:
        return _session_not_found()
    return _session_detail(session)


@app.delete("/api/sessions/{session_id}/diagram", response_model=SessionDetailResponse)
async def reset_diagram_api(session_id: str, router: RequestRouter = Depends(get_router)):
    session = router.sessions.get(session_id)
    if not session:
        return _session_not_found()
    async with router.sessions.lock_for(session_id):
        session.reset_diagram()
    return _session_detail(session)


@app.delete("/api/sessions/{session_id}/messages", response_model=SessionDetailResponse)
async def clear_conversation_api(session_id: str, router: RequestRouter = Depends(get_router)):
    session = router.sessions.get(session_id)
    if not session:
        return _session_not_found()
    async with router.sessions.lock_for(session_id):
        session.clear_conversation()
    return _session_detail(session)


@app.delete("/api/sessions/{session_id}")
async def delete_session_api(session_id: str, router: RequestRouter = Depends(get_router)):
    session = router.sessions.get(session_id)
    if not session:
        return _session_not_found()
    async with router.sessions.lock_for(session_id):
        router.sessions.delete(session_id)
    return {"deleted": session_id}


@app.post("/api/pipeline", response_model=PipelineResponse, response_model_exclude_none=True)
async def pipeline_endpoint(payload: PipelineRequest, router: RequestRouter = Depends(get_router)):
    """Run one conversation turn through classification and the matching handler.

    Creates a session when ``sessionId`` is not supplied. Turns on the same
    session are serialised.
    """
    message = (payload.message or "").strip()
    if not message:
        return JSONResponse(status_code=400, content={"error": "message is required"})

    if payload.session_id:
        session = router.sessions.get(payload.session_id)
        if not session:
            return _session_not_found()
    else:
        session = router.sessions.create()

    async with router.sessions.lock_for(session.session_id):
        routed = await router.process_request(
            message,
            current_diagram=payload.current_script,
            session_id=session.session_id,
            context=payload.context,
        )
    return PipelineResponse(session_id=session.session_id, response=format_response(routed), router=routed)
