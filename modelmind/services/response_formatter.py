"""Turn a ``RouterResponse`` into the chat reply shown to the user."""
from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from modelmind.models.decision import DiagramIntent
from modelmind.models.results import AnalysisResult, GenerationResult, ModificationResult
from modelmind.schemas import FormattedResponse, RouterResponse

logger = logging.getLogger(__name__)


def _bullets(title: str, items: Optional[List[str]]) -> str:
    if not items:
        return ""
    body = "\n- ".join(items)
    return f"\n\n{title}:\n- {body}"


def format_generation(result: GenerationResult) -> FormattedResponse:
    return FormattedResponse(type="script", content=result.diagram, explanation=result.explanation)


def format_modification(result: ModificationResult) -> FormattedResponse:
    explanation = result.explanation + _bullets("Changes made", result.changes)
    return FormattedResponse(type="script", content=result.diagram, explanation=explanation)


def format_analysis(result: AnalysisResult) -> FormattedResponse:
    message = result.overview
    quality = result.quality_assessment
    if quality is not None:
        if quality.score is not None:
            message += f"\n\nQuality Score: {quality.score:g}/10"
        message += _bullets("Strengths", quality.strengths)
        message += _bullets("Areas for Improvement", quality.weaknesses)
    message += _bullets("Suggested Improvements", result.suggested_improvements)
    return FormattedResponse(type="message", content=message)


def format_response(response: RouterResponse) -> FormattedResponse:
    if not response.success:
        error = response.error
        if error is None:
            return FormattedResponse(type="error", content="Unknown error", error_code="unknown")
        return FormattedResponse(type="error", content=error.message, error_code=error.type)

    try:
        if response.intent == DiagramIntent.GENERATE:
            return format_generation(GenerationResult.model_validate(response.result or {}))
        if response.intent == DiagramIntent.MODIFY:
            return format_modification(ModificationResult.model_validate(response.result or {}))
        if response.intent == DiagramIntent.ANALYZE:
            return format_analysis(AnalysisResult.model_validate(response.result or {}))
    except ValidationError:
        logger.exception("Handler result did not match its schema", extra={"intent": response.intent})
        return FormattedResponse(type="error", content="Failed to format the response", error_code="FORMAT_ERROR")
    return FormattedResponse(type="error", content=f"Unsupported intent: {response.intent}", error_code="routing")
