"""Decision and handler result models."""
from modelmind.models.decision import (
    DECISION_ADAPTER,
    AnalysisType,
    AnalyzeDecision,
    ConfidenceLevel,
    Decision,
    DiagramIntent,
    DiagramType,
    GenerateDecision,
    ModificationScope,
    ModifyDecision,
    OutputFormat,
    UnknownDecision,
    confidence_level_for,
    create_fallback_decision,
    validate_decision,
)

__all__ = [
    "DECISION_ADAPTER",
    "AnalysisType",
    "AnalyzeDecision",
    "ConfidenceLevel",
    "Decision",
    "DiagramIntent",
    "DiagramType",
    "GenerateDecision",
    "ModificationScope",
    "ModifyDecision",
    "OutputFormat",
    "UnknownDecision",
    "confidence_level_for",
    "create_fallback_decision",
    "validate_decision",
]
