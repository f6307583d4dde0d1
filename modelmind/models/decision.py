"""Classification decision: a closed tagged union keyed on ``intent``.

Every variant shares the confidence/reasoning/instruction fields; each intent
adds only the companion fields its handler consumes. Undeclared keys are
dropped on validation so nothing leaks across variants. The wire format is
camelCase, attributes are snake_case.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class DiagramIntent(str, Enum):
    GENERATE = "GENERATE"
    MODIFY = "MODIFY"
    ANALYZE = "ANALYZE"
    UNKNOWN = "UNKNOWN"


class DiagramType(str, Enum):
    SEQUENCE = "SEQUENCE"
    CLASS = "CLASS"
    ACTIVITY = "ACTIVITY"
    STATE = "STATE"
    COMPONENT = "COMPONENT"
    DEPLOYMENT = "DEPLOYMENT"
    USE_CASE = "USE_CASE"
    ENTITY_RELATIONSHIP = "ENTITY_RELATIONSHIP"
    UNKNOWN = "UNKNOWN"


class AnalysisType(str, Enum):
    GENERAL = "GENERAL"
    QUALITY = "QUALITY"
    COMPONENTS = "COMPONENTS"
    RELATIONSHIPS = "RELATIONSHIPS"
    COMPLEXITY = "COMPLEXITY"
    IMPROVEMENTS = "IMPROVEMENTS"


class ConfidenceLevel(str, Enum):
    VERY_HIGH = "VERY_HIGH"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"


class ModificationScope(str, Enum):
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    COMPLETE_REWRITE = "COMPLETE_REWRITE"


class OutputFormat(str, Enum):
    SUMMARY = "SUMMARY"
    DETAILED = "DETAILED"
    CHECKLIST = "CHECKLIST"
    COMPARISON = "COMPARISON"


FALLBACK_CONFIDENCE = 0.1
FALLBACK_REASONING = "Could not determine user intent from the provided input"
INVALID_INPUT_INSTRUCTION = "Invalid input"
REASONING_MAX_LENGTH = 500

# (alias, attribute name, enum, value used when the raw string is not a member)
_ENUM_FIELDS = (
    ("diagramType", "diagram_type", DiagramType, DiagramType.UNKNOWN.value),
    ("analysisType", "analysis_type", AnalysisType, None),
    ("modificationScope", "modification_scope", ModificationScope, None),
    ("outputFormat", "output_format", OutputFormat, None),
)
_LIST_FIELDS = (
    ("generationRequirements", "generation_requirements"),
    ("suggestedTemplates", "suggested_templates"),
    ("modificationRequests", "modification_requests"),
    ("targetElements", "target_elements"),
    ("analysisAspects", "analysis_aspects"),
)


def confidence_level_for(confidence: float) -> ConfidenceLevel:
    if confidence >= 0.9:
        return ConfidenceLevel.VERY_HIGH
    if confidence >= 0.7:
        return ConfidenceLevel.HIGH
    if confidence >= 0.5:
        return ConfidenceLevel.MEDIUM
    if confidence >= 0.3:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.VERY_LOW


def _enum_token(value: str) -> str:
    return value.strip().upper().replace("-", "_").replace(" ", "_")


def _key_for(data: Dict[str, Any], alias: str, name: str) -> Optional[str]:
    if alias in data:
        return alias
    if name in data:
        return name
    return None


class _DecisionBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    confidence: float = Field(ge=0.0, le=1.0)
    confidence_level: ConfidenceLevel
    reasoning: str = Field(min_length=1, max_length=REASONING_MAX_LENGTH)
    cleaned_instruction: str = Field(min_length=1)
    has_diagram_context: bool = False

    @model_validator(mode="before")
    @classmethod
    def _normalize_raw(cls, data: Any) -> Any:
        """Coerce the loose shapes models tend to emit into the declared ones."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        intent = data.get("intent")
        if isinstance(intent, str):
            data["intent"] = _enum_token(intent)

        for alias, name, enum_cls, missing in _ENUM_FIELDS:
            key = _key_for(data, alias, name)
            if key is None or not isinstance(data[key], str):
                continue
            token = _enum_token(data[key])
            data[key] = token if token in enum_cls.__members__ else missing

        for alias, name in _LIST_FIELDS:
            key = _key_for(data, alias, name)
            if key is not None and isinstance(data[key], str):
                data[key] = [data[key]] if data[key].strip() else []

        reasoning_key = _key_for(data, "reasoning", "reasoning")
        if reasoning_key and isinstance(data[reasoning_key], str):
            data[reasoning_key] = data[reasoning_key].strip()[:REASONING_MAX_LENGTH]

        level_key = _key_for(data, "confidenceLevel", "confidence_level")
        level = data.get(level_key) if level_key else None
        if not (isinstance(level, str) and _enum_token(level) in ConfidenceLevel.__members__):
            try:
                confidence = float(data.get("confidence"))
            except (TypeError, ValueError):
                confidence = None
            if confidence is not None:
                data.pop("confidence_level", None)
                data["confidenceLevel"] = confidence_level_for(confidence).value
        elif isinstance(level, str):
            data[level_key] = _enum_token(level)
        return data

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class GenerateDecision(_DecisionBase):
    intent: Literal["GENERATE"] = "GENERATE"
    diagram_type: DiagramType
    generation_requirements: Optional[List[str]] = None
    suggested_templates: Optional[List[str]] = None
    domain: Optional[str] = None


class ModifyDecision(_DecisionBase):
    intent: Literal["MODIFY"] = "MODIFY"
    diagram_type: DiagramType
    # Empty only until the enhancer backfills it from the user input.
    modification_requests: List[str] = Field(default_factory=list)
    target_elements: Optional[List[str]] = None
    modification_scope: Optional[ModificationScope] = None


class AnalyzeDecision(_DecisionBase):
    intent: Literal["ANALYZE"] = "ANALYZE"
    diagram_type: DiagramType
    analysis_type: Optional[AnalysisType] = None
    analysis_aspects: Optional[List[str]] = None
    output_format: Optional[OutputFormat] = None


class UnknownDecision(_DecisionBase):
    intent: Literal["UNKNOWN"] = "UNKNOWN"


def _intent_tag(value: Any) -> Optional[str]:
    raw = value.get("intent") if isinstance(value, dict) else getattr(value, "intent", None)
    if isinstance(raw, Enum):
        raw = raw.value
    if isinstance(raw, str):
        return _enum_token(raw)
    return None


Decision = Annotated[
    Union[
        Annotated[GenerateDecision, Tag("GENERATE")],
        Annotated[ModifyDecision, Tag("MODIFY")],
        Annotated[AnalyzeDecision, Tag("ANALYZE")],
        Annotated[UnknownDecision, Tag("UNKNOWN")],
    ],
    Discriminator(_intent_tag),
]

DECISION_ADAPTER: TypeAdapter[Decision] = TypeAdapter(Decision)


def create_fallback_decision(
    user_input: str,
    has_diagram_context: bool = False,
    reasoning: Optional[str] = None,
) -> UnknownDecision:
    """Deterministic UNKNOWN decision used whenever classification is unusable."""
    instruction = (user_input or "").strip() or INVALID_INPUT_INSTRUCTION
    return UnknownDecision(
        confidence=FALLBACK_CONFIDENCE,
        confidence_level=ConfidenceLevel.VERY_LOW,
        reasoning=(reasoning or FALLBACK_REASONING)[:REASONING_MAX_LENGTH],
        cleaned_instruction=instruction,
        has_diagram_context=has_diagram_context,
    )


def _instruction_hint(candidate: Any) -> str:
    if isinstance(candidate, dict):
        value = candidate.get("cleanedInstruction", candidate.get("cleaned_instruction"))
    else:
        value = getattr(candidate, "cleaned_instruction", None)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return INVALID_INPUT_INSTRUCTION


def validate_decision(candidate: Any) -> Decision:
    """Validate ``candidate`` against the union, failing closed to UNKNOWN."""
    try:
        return DECISION_ADAPTER.validate_python(candidate)
    except ValidationError as exc:
        logger.warning(
            "Decision failed validation, using UNKNOWN fallback",
            extra={"error_count": exc.error_count()},
        )
        return create_fallback_decision(_instruction_hint(candidate))
