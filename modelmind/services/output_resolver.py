"""Turn unreliable model text into a schema-valid value.

Three strategies run in order and the first success wins:

1. structured extraction: a fenced ``json`` block, then the first balanced
   ``{...}`` span, then the whole trimmed text;
2. pattern extraction: named regexes fill a scratch map, fallback mappings are
   scored against the text and the best partial is merged and validated;
3. the caller's default, returned as-is.

``resolve`` never raises.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterator, List, Optional, Pattern, Tuple, TypeVar

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCED_JSON = re.compile(r"```(?:json|JSON)[ \t]*\r?\n?([\s\S]*?)```")
_KEY_SPLIT = re.compile(r"[\s_-]+")

KEY_MATCH_SCORE = 10
TOKEN_MATCH_SCORE = 2
SCRATCH_MATCH_SCORE = 5


class CommonPatterns:
    """Regexes shared by the classifier and the handlers."""

    INTENT = re.compile(r"\b(GENERATE|MODIFY|ANALYZE|UNKNOWN)\b", re.IGNORECASE)
    DIAGRAM_TYPE = re.compile(
        r"\b(SEQUENCE|CLASS|ACTIVITY|STATE|COMPONENT|DEPLOYMENT|USE_CASE|ENTITY_RELATIONSHIP)\b",
        re.IGNORECASE,
    )
    ANALYSIS_TYPE = re.compile(
        r"\b(GENERAL|QUALITY|COMPONENTS|RELATIONSHIPS|COMPLEXITY|IMPROVEMENTS)\b",
        re.IGNORECASE,
    )
    CONFIDENCE = re.compile(r"confidence[:\s]*([0-9]*\.?[0-9]+)", re.IGNORECASE)
    PLANTUML = re.compile(r"@startuml[\s\S]*?@enduml", re.IGNORECASE)


@dataclass
class ResolverConfig(Generic[T]):
    default: T
    extract_patterns: Dict[str, Pattern[str]] = field(default_factory=dict)
    fallback_mappings: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    try_structured_first: bool = True


def _as_adapter(schema: Any) -> TypeAdapter:
    if isinstance(schema, TypeAdapter):
        return schema
    return TypeAdapter(schema)


def find_balanced_json(text: str) -> Optional[str]:
    """Return the earliest-starting balanced ``{...}`` span, ignoring braces inside strings.

    One pass: open braces are kept on a stack and every close records the span
    it completes, so an unclosed outer object does not hide a complete inner one.
    """
    first = text.find("{")
    if first == -1:
        return None
    opens: List[int] = []
    best: Optional[Tuple[int, int]] = None
    in_string = False
    escaped = False
    for index in range(first, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            opens.append(index)
        elif char == "}" and opens:
            start = opens.pop()
            if not opens:
                return text[start:index + 1]
            if best is None or start < best[0]:
                best = (start, index)
    if best is None:
        return None
    return text[best[0]:best[1] + 1]


def _structured_candidates(text: str) -> Iterator[Tuple[str, str]]:
    seen = set()
    fenced = _FENCED_JSON.search(text)
    if fenced:
        seen.add(fenced.group(1).strip())
        yield "fenced_block", fenced.group(1).strip()
    span = find_balanced_json(text)
    if span and span not in seen:
        seen.add(span)
        yield "brace_span", span
    trimmed = text.strip()
    if trimmed and trimmed not in seen:
        yield "whole_text", trimmed


def score_mapping_key(key: str, text: str, scratch: Dict[str, str]) -> int:
    """Score how strongly ``text`` and the extracted values point at ``key``."""
    upper_key = key.upper()
    upper_text = text.upper()
    score = 0
    if upper_key in upper_text:
        score += KEY_MATCH_SCORE
    for token in _KEY_SPLIT.split(upper_key):
        if len(token) > 2 and token in upper_text:
            score += TOKEN_MATCH_SCORE
    for value in scratch.values():
        if upper_key in str(value).upper():
            score += SCRATCH_MATCH_SCORE
    return score


def extract_scratch(text: str, patterns: Dict[str, Pattern[str]]) -> Dict[str, str]:
    scratch: Dict[str, str] = {}
    for name, pattern in patterns.items():
        match = pattern.search(text)
        if not match:
            continue
        if match.groups() and match.group(1) is not None:
            scratch[name] = match.group(1)
        else:
            scratch[name] = match.group(0)
    return scratch


class OutputResolver:
    """Cascading resolver; stateless, safe to share across sessions."""

    def resolve(self, raw_text: Optional[str], schema: Any, config: ResolverConfig[T]) -> T:
        text = raw_text if isinstance(raw_text, str) else ""
        try:
            adapter = _as_adapter(schema)
        except Exception:
            logger.exception("Could not build a validator for the target schema; returning default")
            return config.default

        if config.try_structured_first:
            value = self._try_structured(text, adapter)
            if value is not None:
                return value[1]

        if config.extract_patterns and config.fallback_mappings:
            value = self._try_patterns(text, adapter, config)
            if value is not None:
                return value[1]

        if not config.try_structured_first:
            value = self._try_structured(text, adapter)
            if value is not None:
                return value[1]

        logger.warning("All resolution strategies failed; returning default", extra={"text_length": len(text)})
        return config.default

    def _try_structured(self, text: str, adapter: TypeAdapter) -> Optional[Tuple[str, Any]]:
        for source, candidate in _structured_candidates(text):
            try:
                parsed = json.loads(candidate)
            except (ValueError, RecursionError):
                continue
            try:
                value = adapter.validate_python(parsed)
            except ValidationError as exc:
                logger.debug("Structured candidate failed schema validation", extra={"source": source, "errors": exc.error_count()})
                continue
            except Exception:
                logger.warning("Structured candidate raised during validation", exc_info=True, extra={"source": source})
                continue
            logger.info("Resolved output via structured extraction", extra={"source": source})
            return source, value
        return None

    def _try_patterns(self, text: str, adapter: TypeAdapter, config: ResolverConfig[T]) -> Optional[Tuple[str, Any]]:
        scratch = extract_scratch(text, config.extract_patterns)
        best_key: Optional[str] = None
        best_score = 0
        for key in config.fallback_mappings:
            score = score_mapping_key(key, text, scratch)
            if score > best_score:
                best_key, best_score = key, score
        if best_key is None:
            return None

        merged = dict(config.fallback_mappings[best_key])
        for name, value in scratch.items():
            if name in merged:
                merged[name] = value
        try:
            value = adapter.validate_python(merged)
        except ValidationError as exc:
            logger.info(
                "Fallback mapping failed schema validation",
                extra={"mapping": best_key, "errors": exc.error_count()},
            )
            return None
        except Exception:
            logger.warning("Fallback mapping raised during validation", exc_info=True, extra={"mapping": best_key})
            return None
        logger.info("Resolved output via pattern extraction", extra={"mapping": best_key, "score": best_score})
        return best_key, value


output_resolver = OutputResolver()
