"""Single-call classification of a user request into a ``Decision``."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from modelmind.errors import ClassificationError
from modelmind.models.decision import (
    DECISION_ADAPTER,
    INVALID_INPUT_INSTRUCTION,
    Decision,
    DiagramIntent,
    DiagramType,
    create_fallback_decision,
    validate_decision,
)
from modelmind.services.decision_enhancer import enhance
from modelmind.services.output_resolver import CommonPatterns, OutputResolver, ResolverConfig, output_resolver
from modelmind.utils.openai_client import TextGenerator
from modelmind.utils.prompts import (
    BASE_SYSTEM_PROMPT,
    CLASSIFICATION_FORMAT_INSTRUCTIONS,
    CLASSIFICATION_TEMPLATE,
    NO_DIAGRAM_PLACEHOLDER,
    NO_HISTORY_PLACEHOLDER,
    substitute_variables,
)

logger = logging.getLogger(__name__)

# Keyword -> (intent, confidence) used when the model answer is not parseable JSON.
_INTENT_FALLBACK_KEYWORDS: Tuple[Tuple[str, DiagramIntent, float], ...] = (
    ("CREATE", DiagramIntent.GENERATE, 0.8),
    ("GENERATE", DiagramIntent.GENERATE, 0.9),
    ("BUILD", DiagramIntent.GENERATE, 0.7),
    ("MAKE", DiagramIntent.GENERATE, 0.7),
    ("NEW", DiagramIntent.GENERATE, 0.8),
    ("MODIFY", DiagramIntent.MODIFY, 0.9),
    ("CHANGE", DiagramIntent.MODIFY, 0.8),
    ("UPDATE", DiagramIntent.MODIFY, 0.8),
    ("EDIT", DiagramIntent.MODIFY, 0.8),
    ("ADD", DiagramIntent.MODIFY, 0.7),
    ("REMOVE", DiagramIntent.MODIFY, 0.7),
    ("DELETE", DiagramIntent.MODIFY, 0.7),
    ("ANALYZE", DiagramIntent.ANALYZE, 0.9),
    ("EXPLAIN", DiagramIntent.ANALYZE, 0.8),
    ("DESCRIBE", DiagramIntent.ANALYZE, 0.7),
    ("REVIEW", DiagramIntent.ANALYZE, 0.7),
    ("CHECK", DiagramIntent.ANALYZE, 0.6),
    ("WHAT", DiagramIntent.ANALYZE, 0.6),
    ("HOW", DiagramIntent.ANALYZE, 0.6),
    ("WHY", DiagramIntent.ANALYZE, 0.6),
)

_EXTRACT_PATTERNS = {
    "intent": CommonPatterns.INTENT,
    "diagramType": CommonPatterns.DIAGRAM_TYPE,
    "analysisType": CommonPatterns.ANALYSIS_TYPE,
    "confidence": CommonPatterns.CONFIDENCE,
}


def build_fallback_mappings(user_input: str, has_diagram_context: bool) -> Dict[str, Dict[str, Any]]:
    """Complete partial decisions, one per fallback keyword, in table order."""
    instruction = user_input.strip() or INVALID_INPUT_INSTRUCTION
    mappings: Dict[str, Dict[str, Any]] = {}
    for keyword, intent, confidence in _INTENT_FALLBACK_KEYWORDS:
        partial: Dict[str, Any] = {
            "intent": intent.value,
            "confidence": confidence,
            "reasoning": f"Keyword '{keyword.lower()}' suggests a {intent.value} request",
            "cleanedInstruction": instruction,
            "hasDiagramContext": has_diagram_context,
            "diagramType": DiagramType.UNKNOWN.value,
        }
        if intent == DiagramIntent.MODIFY:
            partial["modificationRequests"] = []
        elif intent == DiagramIntent.ANALYZE:
            partial["analysisType"] = None
        mappings[keyword] = partial
    return mappings


class MasterClassifier:
    """Builds the classification prompt, calls the model and resolves its answer."""

    def __init__(self, text_generator: TextGenerator, resolver: Optional[OutputResolver] = None) -> None:
        self._text_generator = text_generator
        self._resolver = resolver or output_resolver

    def build_prompt(self, user_input: str, current_diagram: str = "", conversation_history: str = "") -> str:
        return substitute_variables(
            CLASSIFICATION_TEMPLATE,
            {
                "baseSystemPrompt": BASE_SYSTEM_PROMPT,
                "userInput": user_input,
                "currentDiagram": current_diagram.strip() or NO_DIAGRAM_PLACEHOLDER,
                "conversationHistory": conversation_history.strip() or NO_HISTORY_PLACEHOLDER,
                "formatInstructions": CLASSIFICATION_FORMAT_INSTRUCTIONS,
            },
        )

    def resolver_config(self, user_input: str, has_diagram_context: bool) -> ResolverConfig[Decision]:
        return ResolverConfig(
            default=create_fallback_decision(user_input, has_diagram_context=has_diagram_context),
            extract_patterns=dict(_EXTRACT_PATTERNS),
            fallback_mappings=build_fallback_mappings(user_input, has_diagram_context),
        )

    async def classify(
        self,
        user_input: str,
        current_diagram: Optional[str] = None,
        conversation_history: Optional[str] = None,
    ) -> Decision:
        diagram = current_diagram or ""
        has_diagram_context = bool(diagram.strip())
        prompt = self.build_prompt(user_input, diagram, conversation_history or "")
        try:
            raw = await self._text_generator.generate(prompt)
        except Exception as exc:
            raise ClassificationError(
                f"Classification failed: {exc}",
                details={"exception": type(exc).__name__},
            ) from exc

        resolved = self._resolver.resolve(raw, DECISION_ADAPTER, self.resolver_config(user_input, has_diagram_context))
        decision = enhance(validate_decision(resolved), user_input, has_diagram_context=has_diagram_context)
        logger.info(
            "Request classified",
            extra={"intent": decision.intent, "confidence": decision.confidence},
        )
        return decision
