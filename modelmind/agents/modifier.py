"""LLM-backed diagram modification."""
from __future__ import annotations

import logging
from typing import Optional

from modelmind.agents.base import HandlerRequest
from modelmind.errors import AgentError
from modelmind.knowledge.guidelines import read_guidelines
from modelmind.models.results import ModificationResult
from modelmind.services.output_resolver import CommonPatterns, OutputResolver, ResolverConfig, output_resolver
from modelmind.utils.openai_client import TextGenerator
from modelmind.utils.prompts import (
    BASE_SYSTEM_PROMPT,
    MODIFIER_FORMAT_INSTRUCTIONS,
    MODIFIER_TEMPLATE,
    substitute_variables,
)

logger = logging.getLogger(__name__)


class LLMDiagramModifier:
    def __init__(
        self,
        text_generator: TextGenerator,
        resolver: Optional[OutputResolver] = None,
        guidelines_dir: Optional[str] = None,
    ) -> None:
        self._text_generator = text_generator
        self._resolver = resolver or output_resolver
        self._guidelines_dir = guidelines_dir

    def build_prompt(self, request: HandlerRequest) -> str:
        requests = request.modification_requests or [request.cleaned_instruction]
        return substitute_variables(
            MODIFIER_TEMPLATE,
            {
                "baseSystemPrompt": BASE_SYSTEM_PROMPT,
                "currentDiagram": request.current_diagram or "",
                "userInput": request.cleaned_instruction,
                "modificationRequests": "\n".join(f"- {item}" for item in requests),
                "targetElements": ", ".join(request.target_elements or []) or "Not specified",
                "diagramType": request.diagram_type.value,
                "guidelines": read_guidelines(request.diagram_type, self._guidelines_dir),
                "formatInstructions": MODIFIER_FORMAT_INSTRUCTIONS,
            },
        )

    async def modify(self, request: HandlerRequest) -> ModificationResult:
        if not (request.current_diagram or "").strip():
            raise AgentError("Current diagram is required for modification")
        raw = await self._text_generator.generate(self.build_prompt(request))
        config: ResolverConfig[Optional[ModificationResult]] = ResolverConfig(
            default=None,
            extract_patterns={"diagram": CommonPatterns.PLANTUML},
            fallback_mappings={
                "@startuml": {
                    "diagram": "",
                    "diagramType": request.diagram_type.value,
                    "changes": list(request.modification_requests or [request.cleaned_instruction]),
                    "explanation": "Applied the requested changes to the diagram.",
                }
            },
        )
        result = self._resolver.resolve(raw, ModificationResult, config)
        if result is None:
            raise AgentError("Modifier agent returned no usable diagram", details={"response_length": len(raw or "")})
        logger.info("Diagram modified", extra={"changes": len(result.changes)})
        return result
