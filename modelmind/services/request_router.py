"""Request routing: classify, gate, dispatch, record, normalise."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from modelmind.agents.base import DiagramAnalyzer, DiagramGenerator, DiagramModifier, HandlerRequest
from modelmind.agents.master_classifier import MasterClassifier
from modelmind.errors import (
    AgentError,
    InputValidationError,
    RouterError,
    RoutingError,
    infer_error_type,
)
from modelmind.models.decision import (
    AnalyzeDecision,
    Decision,
    DiagramIntent,
    GenerateDecision,
    ModifyDecision,
    UnknownDecision,
    create_fallback_decision,
)
from modelmind.models.results import AnalysisResult, GenerationResult, ModificationResult
from modelmind.schemas import RouterErrorInfo, RouterResponse
from modelmind.services.session_context import SessionContext, SessionStore
from modelmind.utils.config import Settings, settings

logger = logging.getLogger(__name__)

HandlerResult = Union[GenerationResult, ModificationResult, AnalysisResult]

MISSING_DIAGRAM_MESSAGES = {
    DiagramIntent.MODIFY: "Cannot modify diagram: No current diagram provided. Please provide a diagram to modify.",
    DiagramIntent.ANALYZE: "Cannot analyze diagram: No current diagram provided. Please provide a diagram to analyze.",
}

UNKNOWN_INTENT_SUGGESTIONS = (
    "Try asking me to 'create a sequence diagram for...'",
    "Say 'modify the diagram to add...'",
    "Ask me to 'analyze this diagram for...'",
    "Be more specific about what you want to do with the diagram",
)

ROUTING_FAILURE_REASONING = "Error occurred during request processing"


def low_confidence_message(confidence: float) -> str:
    return (
        f"I'm not confident about understanding your request (confidence: {round(confidence * 100)}%). "
        "Could you please rephrase or provide more details?"
    )


def unknown_intent_message(reasoning: str) -> str:
    suggestions = "\n".join(f"• {item}" for item in UNKNOWN_INTENT_SUGGESTIONS)
    return (
        f"I'm not sure what you want me to do with the diagram. {reasoning}\n\n"
        f"Here are some things you can try:\n{suggestions}"
    )


class RequestRouter:
    """Single entry point for a conversation turn."""

    def __init__(
        self,
        classifier: MasterClassifier,
        generator: DiagramGenerator,
        modifier: DiagramModifier,
        analyzer: DiagramAnalyzer,
        sessions: Optional[SessionStore] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self._classifier = classifier
        self._generator = generator
        self._modifier = modifier
        self._analyzer = analyzer
        self.sessions = sessions or SessionStore()
        self._config = config or settings

    async def process_request(
        self,
        user_input: str,
        current_diagram: Optional[str] = None,
        history: Optional[str] = None,
        session_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> RouterResponse:
        decision: Optional[Decision] = None
        try:
            if not isinstance(user_input, str) or not user_input.strip():
                raise InputValidationError("User input is required")

            session = self.sessions.get_or_create(session_id)
            diagram = session.get_current_diagram() if current_diagram is None else current_diagram
            if history is None:
                history = session.get_formatted_history(self._config.history_prompt_limit)

            decision = await self._classifier.classify(user_input, diagram, history)
            self._check_preconditions(decision, diagram)
            result = await self._dispatch(decision, diagram, session, context or {})
            self._record_turn(session, decision, user_input, result)

            logger.info("Request processed", extra={"session_id": session.session_id, "intent": decision.intent})
            return RouterResponse(
                success=True,
                intent=decision.intent,
                decision=decision.to_wire(),
                result=result.model_dump(by_alias=True, mode="json", exclude_none=True),
            )
        except Exception as exc:
            return self._error_response(exc, decision, user_input)

    def _check_preconditions(self, decision: Decision, diagram: str) -> None:
        if isinstance(decision, (ModifyDecision, AnalyzeDecision)) and not diagram.strip():
            raise InputValidationError(
                MISSING_DIAGRAM_MESSAGES[DiagramIntent(decision.intent)],
                details={"intent": decision.intent},
            )
        if decision.confidence < self._config.confidence_threshold:
            raise InputValidationError(
                low_confidence_message(decision.confidence),
                details={"confidence": decision.confidence, "threshold": self._config.confidence_threshold},
            )

    async def _dispatch(
        self,
        decision: Decision,
        diagram: str,
        session: SessionContext,
        extra_context: Dict[str, Any],
    ) -> HandlerResult:
        match decision:
            case GenerateDecision():
                context = {**session.get_generator_context(), **extra_context}
                request = HandlerRequest.for_generate(decision, diagram or None, context)
                return await self._call_handler("generator", self._generator.generate, request)
            case ModifyDecision():
                context = {**session.get_modifier_context(), **extra_context}
                request = HandlerRequest.for_modify(decision, diagram, context)
                return await self._call_handler("modifier", self._modifier.modify, request)
            case AnalyzeDecision():
                context = {**session.get_analyzer_context(), **extra_context}
                request = HandlerRequest.for_analyze(decision, diagram, context)
                return await self._call_handler("analyzer", self._analyzer.analyze, request)
            case UnknownDecision():
                raise RoutingError(unknown_intent_message(decision.reasoning))
            case _:
                raise RoutingError(f"Unsupported intent for routing: {getattr(decision, 'intent', None)}")

    async def _call_handler(self, name: str, handler: Any, request: HandlerRequest) -> HandlerResult:
        logger.info("Dispatching request", extra={"handler": name, "diagram_type": request.diagram_type.value})
        try:
            return await handler(request)
        except RouterError:
            raise
        except Exception as exc:
            raise AgentError(
                f"The {name} agent failed: {exc}",
                details={"handler": name, "exception": type(exc).__name__},
            ) from exc

    def _record_turn(
        self,
        session: SessionContext,
        decision: Decision,
        user_input: str,
        result: HandlerResult,
    ) -> None:
        """Best-effort session bookkeeping; never fails the request."""
        try:
            session.set_last_intent(DiagramIntent(decision.intent))
            diagram_type = getattr(decision, "diagram_type", None)
            if diagram_type is not None:
                session.set_last_diagram_type(diagram_type)
            analysis_type = getattr(decision, "analysis_type", None)
            if analysis_type is not None:
                session.set_last_analysis_type(analysis_type)
            session.add_message("user", user_input)
            session.add_message("assistant", _assistant_summary(result))
            if isinstance(result, (GenerationResult, ModificationResult)):
                session.update_diagram(result.diagram, DiagramIntent(decision.intent))
        except Exception:
            logger.exception("Failed to update session context", extra={"session_id": session.session_id})

    def _error_response(self, exc: Exception, decision: Optional[Decision], user_input: Any) -> RouterResponse:
        if isinstance(exc, RouterError):
            error_type = exc.error_type
            message = exc.message
            details = exc.details
        else:
            message = str(exc) or type(exc).__name__
            error_type = infer_error_type(message)
            details = {"exception": type(exc).__name__}
        logger.warning("Request failed", extra={"error_type": error_type, "error_message": message})

        if decision is None:
            text = user_input if isinstance(user_input, str) else ""
            decision = create_fallback_decision(text, reasoning=ROUTING_FAILURE_REASONING).model_copy(
                update={"confidence": 0.0}
            )
        return RouterResponse(
            success=False,
            intent=decision.intent,
            decision=decision.to_wire(),
            error=RouterErrorInfo(type=error_type, message=message, details=details),
        )

    def health_status(self) -> Dict[str, Any]:
        components = {
            "classifier": self._classifier is not None,
            "generator": self._generator is not None,
            "modifier": self._modifier is not None,
            "analyzer": self._analyzer is not None,
        }
        return {
            "status": "healthy" if all(components.values()) else "degraded",
            "components": components,
            "sessions": len(self.sessions),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


def _assistant_summary(result: BaseModel) -> str:
    if isinstance(result, AnalysisResult):
        return result.overview
    if isinstance(result, (GenerationResult, ModificationResult)):
        return result.explanation
    return ""
