"""LLM-backed diagram analysis."""
from __future__ import annotations

import logging
from typing import Optional

from modelmind.agents.base import HandlerRequest
from modelmind.errors import AgentError
from modelmind.knowledge.guidelines import read_guidelines
from modelmind.models.decision import AnalysisType
from modelmind.models.results import AnalysisResult
from modelmind.services.output_resolver import OutputResolver, ResolverConfig, output_resolver
from modelmind.utils.openai_client import TextGenerator
from modelmind.utils.prompts import (
    BASE_SYSTEM_PROMPT,
    ANALYZER_FORMAT_INSTRUCTIONS,
    ANALYZER_TEMPLATE,
    substitute_variables,
)

logger = logging.getLogger(__name__)


class LLMDiagramAnalyzer:
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
        analysis_type = request.analysis_type or AnalysisType.GENERAL
        return substitute_variables(
            ANALYZER_TEMPLATE,
            {
                "baseSystemPrompt": BASE_SYSTEM_PROMPT,
                "diagram": request.current_diagram or "",
                "userInput": request.cleaned_instruction,
                "analysisType": analysis_type.value,
                "diagramType": request.diagram_type.value,
                "analysisAspects": ", ".join(request.analysis_aspects or []) or "Whatever the request asks about",
                "guidelines": read_guidelines(request.diagram_type, self._guidelines_dir),
                "formatInstructions": ANALYZER_FORMAT_INSTRUCTIONS,
            },
        )

    async def analyze(self, request: HandlerRequest) -> AnalysisResult:
        if not (request.current_diagram or "").strip():
            raise AgentError("Current diagram is required for analysis")
        raw = await self._text_generator.generate(self.build_prompt(request))
        result = self._resolver.resolve(raw, AnalysisResult, ResolverConfig(default=None))
        if result is None:
            overview = (raw or "").strip()
            if not overview:
                raise AgentError("Analyzer agent returned an empty analysis")
            # Plain prose answers are kept as the overview.
            result = AnalysisResult(
                diagram_type=request.diagram_type,
                analysis_type=request.analysis_type or AnalysisType.GENERAL,
                overview=overview,
            )
        logger.info("Diagram analyzed", extra={"analysis_type": result.analysis_type.value})
        return result
