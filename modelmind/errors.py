"""Router error taxonomy."""
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

ErrorType = Literal["validation", "classification", "routing", "agent", "unknown"]


class RouterError(Exception):
    error_type: ErrorType = "unknown"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InputValidationError(RouterError):
    error_type: ErrorType = "validation"


class ClassificationError(RouterError):
    error_type: ErrorType = "classification"


class RoutingError(RouterError):
    error_type: ErrorType = "routing"


class AgentError(RouterError):
    error_type: ErrorType = "agent"


def infer_error_type(message: str) -> ErrorType:
    """Best-effort tag for failures that arrived without one."""
    text = message or ""
    if "Classification failed" in text:
        return "classification"
    if "is required" in text:
        return "validation"
    lowered = text.lower()
    if "routing" in lowered or "agent" in lowered:
        return "routing"
    return "unknown"
