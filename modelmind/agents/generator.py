"""LLM-backed diagram generation."""
from __future__ import annotations

import logging
from typing import Optional

from modelmind.agents.base import HandlerRequest
from modelmind.errors import AgentError
from modelmind.knowledge.guidelines import read_guidelines
from modelmind.models.results import GenerationResult
from modelmind.services.output_resolver import CommonPatterns, OutputResolver, ResolverConfig, output_resolver
from modelmind.utils.openai_client import TextGenerator
from modelmind.utils.prompts import (
    BASE_SYSTEM_PROMPT,
    GENERATOR_FORMAT_INSTRUCTIONS,
    GENERATOR_TEMPLATE,
    substitute_variables,
)

logger = logging.getLogger(__name__)


class LLMDiagramGenerator:
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
        requirements = "\n".join(f"- {item}" for item in request.generation_requirements or [])
        if request.domain:
            requirements = f"{requirements}\n- Domain: {request.domain}".strip()
        return substitute_variables(
            GENERATOR_TEMPLATE,
            {
                "baseSystemPrompt": BASE_SYSTEM_PROMPT,
                "currentDiagram": request.current_diagram or "",
                "userInput": request.cleaned_instruction,
                "diagramType": request.diagram_type.value,
                "requirements": requirements or "None",
                "guidelines": read_guidelines(request.diagram_type, self._guidelines_dir),
                "formatInstructions": GENERATOR_FORMAT_INSTRUCTIONS,
            },
        )

    async def generate(self, request: HandlerRequest) -> GenerationResult:
        raw = await self._text_generator.generate(self.build_prompt(request))
        # A bare @startuml block without the JSON envelope is still usable.
        config: ResolverConfig[Optional[GenerationResult]] = ResolverConfig(
            default=None,
            extract_patterns={"diagram": CommonPatterns.PLANTUML},
            fallback_mappings={
                "@startuml": {
                    "diagram": "",
                    "diagramType": request.diagram_type.value,
                    "explanation": f"Generated a {request.diagram_type.value.lower()} diagram.",
                }
            },
        )
        result = self._resolver.resolve(raw, GenerationResult, config)
        if result is None:
            raise AgentError("Generator agent returned no usable diagram", details={"response_length": len(raw or "")})
        logger.info("Diagram generated", extra={"diagram_type": result.diagram_type.value})
        return result
