"""Handler request shape and the capability protocols the router dispatches to."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from modelmind.models.decision import (
    AnalysisType,
    AnalyzeDecision,
    DiagramType,
    GenerateDecision,
    ModificationScope,
    ModifyDecision,
    OutputFormat,
)
from modelmind.models.results import AnalysisResult, GenerationResult, ModificationResult


class HandlerRequest(BaseModel):
    cleaned_instruction: str
    diagram_type: DiagramType = DiagramType.UNKNOWN
    current_diagram: Optional[str] = None
    generation_requirements: Optional[List[str]] = None
    suggested_templates: Optional[List[str]] = None
    domain: Optional[str] = None
    modification_requests: Optional[List[str]] = None
    target_elements: Optional[List[str]] = None
    modification_scope: Optional[ModificationScope] = None
    analysis_type: Optional[AnalysisType] = None
    analysis_aspects: Optional[List[str]] = None
    output_format: Optional[OutputFormat] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_generate(cls, decision: GenerateDecision, current_diagram: Optional[str], context: Dict[str, Any]) -> "HandlerRequest":
        return cls(
            cleaned_instruction=decision.cleaned_instruction,
            diagram_type=decision.diagram_type,
            current_diagram=current_diagram,
            generation_requirements=decision.generation_requirements,
            suggested_templates=decision.suggested_templates,
            domain=decision.domain,
            context=context,
        )

    @classmethod
    def for_modify(cls, decision: ModifyDecision, current_diagram: Optional[str], context: Dict[str, Any]) -> "HandlerRequest":
        return cls(
            cleaned_instruction=decision.cleaned_instruction,
            diagram_type=decision.diagram_type,
            current_diagram=current_diagram,
            modification_requests=decision.modification_requests,
            target_elements=decision.target_elements,
            modification_scope=decision.modification_scope,
            context=context,
        )

    @classmethod
    def for_analyze(cls, decision: AnalyzeDecision, current_diagram: Optional[str], context: Dict[str, Any]) -> "HandlerRequest":
        return cls(
            cleaned_instruction=decision.cleaned_instruction,
            diagram_type=decision.diagram_type,
            current_diagram=current_diagram,
            analysis_type=decision.analysis_type,
            analysis_aspects=decision.analysis_aspects,
            output_format=decision.output_format,
            context=context,
        )


class DiagramGenerator(Protocol):
    async def generate(self, request: HandlerRequest) -> GenerationResult:
        ...


class DiagramModifier(Protocol):
    async def modify(self, request: HandlerRequest) -> ModificationResult:
        ...


class DiagramAnalyzer(Protocol):
    async def analyze(self, request: HandlerRequest) -> AnalysisResult:
        ...
