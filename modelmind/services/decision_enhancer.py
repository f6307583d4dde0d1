"""Deterministic backfill of companion fields the classifier left empty."""
from __future__ import annotations

import logging
import re
from typing import Dict, Optional, Tuple

from modelmind.models.decision import (
    AnalysisType,
    AnalyzeDecision,
    Decision,
    DiagramType,
    GenerateDecision,
    ModifyDecision,
    UnknownDecision,
    confidence_level_for,
)

logger = logging.getLogger(__name__)

# Explicit type names come before synonyms so "workflow" lands on ACTIVITY
# through WORKFLOW, never on SEQUENCE through FLOW.
DIAGRAM_TYPE_KEYWORDS: Tuple[Tuple[str, DiagramType], ...] = (
    ("SEQUENCE", DiagramType.SEQUENCE),
    ("CLASS", DiagramType.CLASS),
    ("ACTIVITY", DiagramType.ACTIVITY),
    ("STATE", DiagramType.STATE),
    ("COMPONENT", DiagramType.COMPONENT),
    ("DEPLOYMENT", DiagramType.DEPLOYMENT),
    ("USE_CASE", DiagramType.USE_CASE),
    ("USECASE", DiagramType.USE_CASE),
    ("ENTITY_RELATIONSHIP", DiagramType.ENTITY_RELATIONSHIP),
    ("ER", DiagramType.ENTITY_RELATIONSHIP),
    ("WORKFLOW", DiagramType.ACTIVITY),
    ("PROCESS", DiagramType.ACTIVITY),
    ("PROCEDURE", DiagramType.ACTIVITY),
    ("STEP", DiagramType.ACTIVITY),
    ("INTERACTION", DiagramType.SEQUENCE),
    ("FLOW", DiagramType.SEQUENCE),
    ("TIMELINE", DiagramType.SEQUENCE),
    ("CALL", DiagramType.SEQUENCE),
    ("STRUCTURE", DiagramType.CLASS),
    ("OBJECT", DiagramType.CLASS),
    ("UML", DiagramType.CLASS),
    ("RELATIONSHIP", DiagramType.CLASS),
    ("MACHINE", DiagramType.STATE),
    ("TRANSITION", DiagramType.STATE),
    ("MODULE", DiagramType.COMPONENT),
    ("SYSTEM", DiagramType.COMPONENT),
    ("ARCHITECTURE", DiagramType.COMPONENT),
    ("INFRASTRUCTURE", DiagramType.DEPLOYMENT),
    ("PHYSICAL", DiagramType.DEPLOYMENT),
    ("ACTOR", DiagramType.USE_CASE),
    ("USER", DiagramType.USE_CASE),
    ("DATABASE", DiagramType.ENTITY_RELATIONSHIP),
    ("DATA", DiagramType.ENTITY_RELATIONSHIP),
)
DEFAULT_DIAGRAM_TYPE = DiagramType.SEQUENCE

ANALYSIS_TYPE_KEYWORDS: Tuple[Tuple[str, AnalysisType], ...] = (
    ("IMPROVE", AnalysisType.IMPROVEMENTS),
    ("BETTER", AnalysisType.IMPROVEMENTS),
    ("SUGGEST", AnalysisType.IMPROVEMENTS),
    ("RECOMMEND", AnalysisType.IMPROVEMENTS),
    ("OPTIMIZ", AnalysisType.IMPROVEMENTS),
    ("QUALITY", AnalysisType.QUALITY),
    ("BEST", AnalysisType.QUALITY),
    ("PRACTICE", AnalysisType.QUALITY),
    ("STANDARD", AnalysisType.QUALITY),
    ("COMPLEX", AnalysisType.COMPLEXITY),
    ("DIFFICULT", AnalysisType.COMPLEXITY),
    ("RELATIONSHIP", AnalysisType.RELATIONSHIPS),
    ("CONNECTION", AnalysisType.RELATIONSHIPS),
    ("ASSOCIATION", AnalysisType.RELATIONSHIPS),
    ("COMPONENT", AnalysisType.COMPONENTS),
    ("ELEMENT", AnalysisType.COMPONENTS),
)
DEFAULT_ANALYSIS_TYPE = AnalysisType.GENERAL

_WORD_PATTERNS: Dict[str, re.Pattern] = {}


def _word_pattern(keyword: str) -> re.Pattern:
    pattern = _WORD_PATTERNS.get(keyword)
    if pattern is None:
        body = r"[\s_-]+".join(re.escape(part) for part in keyword.replace("_", " ").split())
        pattern = re.compile(rf"(?<![A-Z0-9]){body}(?:ES|S)?(?![A-Z0-9])")
        _WORD_PATTERNS[keyword] = pattern
    return pattern


def infer_diagram_type(user_input: str) -> DiagramType:
    """Whole-word keyword scan over the uppercased input; plurals allowed."""
    text = (user_input or "").upper()
    for keyword, diagram_type in DIAGRAM_TYPE_KEYWORDS:
        if _word_pattern(keyword).search(text):
            return diagram_type
    return DEFAULT_DIAGRAM_TYPE


def infer_analysis_type(user_input: str) -> AnalysisType:
    """Prefix keyword scan: IMPROVE matches improvement, COMPLEX matches complexity."""
    text = (user_input or "").upper()
    for keyword, analysis_type in ANALYSIS_TYPE_KEYWORDS:
        if re.search(rf"(?<![A-Z0-9]){re.escape(keyword)}", text):
            return analysis_type
    return DEFAULT_ANALYSIS_TYPE


def enhance(
    decision: Decision,
    original_user_input: str,
    has_diagram_context: Optional[bool] = None,
) -> Decision:
    """Return a copy of ``decision`` whose companion fields are all filled.

    Only missing or empty values are touched, so enhancing an enhanced decision
    changes nothing.
    """
    user_input = (original_user_input or "").strip()
    updates: Dict[str, object] = {}

    level = confidence_level_for(decision.confidence)
    if decision.confidence_level != level:
        updates["confidence_level"] = level
    if not decision.cleaned_instruction.strip() and user_input:
        updates["cleaned_instruction"] = user_input
    if has_diagram_context is not None and decision.has_diagram_context != has_diagram_context:
        updates["has_diagram_context"] = has_diagram_context

    match decision:
        case GenerateDecision():
            if decision.diagram_type == DiagramType.UNKNOWN:
                updates["diagram_type"] = infer_diagram_type(user_input)
        case ModifyDecision():
            if not [item for item in decision.modification_requests if item.strip()] and user_input:
                updates["modification_requests"] = [user_input]
        case AnalyzeDecision():
            if decision.analysis_type is None:
                updates["analysis_type"] = infer_analysis_type(user_input)
        case UnknownDecision():
            pass
        case _:
            logger.error("Unhandled decision variant", extra={"variant": type(decision).__name__})
            return decision

    if not updates:
        return decision
    logger.debug("Backfilled decision fields", extra={"intent": decision.intent, "fields": sorted(updates)})
    return decision.model_copy(update=updates)
