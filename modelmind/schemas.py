"""Pydantic schemas for the router response and the API."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from modelmind.errors import ErrorType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RouterErrorInfo(_CamelModel):
    type: ErrorType
    message: str
    details: Optional[Dict[str, Any]] = None


class RouterResponse(_CamelModel):
    success: bool
    intent: str
    decision: Dict[str, Any]
    result: Optional[Dict[str, Any]] = None
    error: Optional[RouterErrorInfo] = None


class FormattedResponse(_CamelModel):
    type: Literal["message", "script", "error"]
    content: str
    explanation: Optional[str] = None
    error_code: Optional[str] = None


class PipelineRequest(_CamelModel):
    message: str = ""
    current_script: Optional[str] = None
    session_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)


class PipelineResponse(_CamelModel):
    session_id: str
    response: FormattedResponse
    router: RouterResponse


class SessionCreateResponse(_CamelModel):
    session_id: str


class MessageResponse(_CamelModel):
    role: str
    content: str
    timestamp: str


class SessionDetailResponse(_CamelModel):
    session_id: str
    current_diagram: str
    diagram_metadata: Dict[str, Any]
    messages: List[MessageResponse]
    last_intent: Optional[str] = None
    last_diagram_type: Optional[str] = None
    last_analysis_type: Optional[str] = None
