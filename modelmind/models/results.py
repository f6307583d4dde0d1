"""Result models returned by the generate/modify/analyze handlers."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from modelmind.models.decision import AnalysisType, DiagramType


class _ResultModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class GenerationResult(_ResultModel):
    diagram: str = Field(min_length=10)
    diagram_type: DiagramType
    explanation: str
    suggestions: Optional[List[str]] = None


class ModificationResult(_ResultModel):
    diagram: str = Field(min_length=10)
    diagram_type: DiagramType
    changes: List[str] = Field(min_length=1)
    explanation: str


class DiagramComponent(_ResultModel):
    name: str
    type: Optional[str] = None
    description: Optional[str] = None


class DiagramRelationship(_ResultModel):
    source: str
    target: str
    type: Optional[str] = None
    description: Optional[str] = None


class QualityAssessment(_ResultModel):
    score: Optional[float] = Field(default=None, ge=1, le=10)
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    best_practices_followed: Optional[List[str]] = None
    best_practices_violated: Optional[List[str]] = None


class AnalysisResult(_ResultModel):
    diagram_type: DiagramType
    analysis_type: AnalysisType
    overview: str
    components: Optional[List[DiagramComponent]] = None
    relationships: Optional[List[DiagramRelationship]] = None
    quality_assessment: Optional[QualityAssessment] = None
    suggested_improvements: Optional[List[str]] = None
