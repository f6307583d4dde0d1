"""Prompt templates for the classifier and the three diagram handlers."""
from __future__ import annotations

import re
from typing import Any, Mapping

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

NO_DIAGRAM_PLACEHOLDER = "No diagram exists currently in editor"
NO_HISTORY_PLACEHOLDER = "No previous conversation"

BASE_SYSTEM_PROMPT = (
    "You are a PlantUML assistant. You know PlantUML syntax, its conventions "
    "and common modelling patterns, and you always answer with well-formed, "
    "correct PlantUML."
)


def substitute_variables(template: str, variables: Mapping[str, Any]) -> str:
    """Replace ``{name}`` placeholders in a single pass; unknown names stay as-is."""

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_replace, template)


CLASSIFICATION_TEMPLATE = """{baseSystemPrompt}

Classify the user's request about a PlantUML diagram in one pass.

CONTEXT:
- User input: {userInput}
- Current diagram: {currentDiagram}
- Conversation history: {conversationHistory}

Decide:
1. intent
   - GENERATE: create a new diagram or a completely different one
   - MODIFY: change, extend or remove parts of the existing diagram
   - ANALYZE: explain, review or assess the existing diagram
   - UNKNOWN: the request is unclear
2. diagramType: SEQUENCE, CLASS, ACTIVITY, STATE, COMPONENT, DEPLOYMENT,
   USE_CASE, ENTITY_RELATIONSHIP or UNKNOWN
3. analysisType (ANALYZE only): GENERAL, QUALITY, COMPONENTS, RELATIONSHIPS,
   COMPLEXITY or IMPROVEMENTS
4. confidence between 0.0 and 1.0 with a short reasoning

Hints:
- create, generate, build, make, new and design usually mean GENERATE
- modify, change, update, edit, add, remove and delete usually mean MODIFY
  and need an existing diagram
- analyze, explain, describe, review, check, what, how and why usually mean
  ANALYZE
- infer the diagram type from the domain when it is not named ("login flow"
  suggests SEQUENCE, "database design" suggests ENTITY_RELATIONSHIP)

{formatInstructions}

Keep the reasoning short, normalise the instruction into cleanedInstruction,
and report low confidence honestly instead of guessing."""

CLASSIFICATION_FORMAT_INSTRUCTIONS = """Respond with a single JSON object inside a ```json fenced block:
{
  "intent": "GENERATE" | "MODIFY" | "ANALYZE" | "UNKNOWN",
  "confidence": number between 0 and 1,
  "reasoning": "why you chose this intent (max 500 characters)",
  "cleanedInstruction": "the user's request, cleaned up",
  "hasDiagramContext": true | false,
  "diagramType": "SEQUENCE" | "CLASS" | ... (GENERATE, MODIFY and ANALYZE only),
  "generationRequirements": ["..."] (GENERATE only, optional),
  "domain": "..." (GENERATE only, optional),
  "modificationRequests": ["..."] (MODIFY only),
  "targetElements": ["..."] (MODIFY only, optional),
  "modificationScope": "MINOR" | "MAJOR" | "COMPLETE_REWRITE" (MODIFY only, optional),
  "analysisType": "GENERAL" | "QUALITY" | ... (ANALYZE only),
  "analysisAspects": ["..."] (ANALYZE only, optional),
  "outputFormat": "SUMMARY" | "DETAILED" | "CHECKLIST" | "COMPARISON" (ANALYZE only, optional)
}"""

GENERATOR_TEMPLATE = """{baseSystemPrompt}

Create a PlantUML diagram for the user's requirements.

Current diagram (for reference):
```plantuml
{currentDiagram}
```

Requirements: {userInput}
Diagram type: {diagramType}
Additional requirements: {requirements}

PlantUML guidelines:
{guidelines}

{formatInstructions}"""

GENERATOR_FORMAT_INSTRUCTIONS = """Respond with a JSON object inside a ```json fenced block:
{
  "diagram": "@startuml ... @enduml",
  "diagramType": "<diagram type>",
  "explanation": "what the diagram shows",
  "suggestions": ["optional follow-up ideas"]
}"""

MODIFIER_TEMPLATE = """{baseSystemPrompt}

Modify the PlantUML diagram below as the user asks. Keep the existing
structure and change only what the request needs.

Current diagram:
```plantuml
{currentDiagram}
```

Modification request: {userInput}
Requested changes:
{modificationRequests}
Target elements: {targetElements}
Diagram type: {diagramType}

PlantUML guidelines:
{guidelines}

{formatInstructions}"""

MODIFIER_FORMAT_INSTRUCTIONS = """Respond with a JSON object inside a ```json fenced block:
{
  "diagram": "@startuml ... @enduml (the full modified diagram)",
  "diagramType": "<diagram type>",
  "changes": ["one entry per change made"],
  "explanation": "summary of the modification"
}"""

ANALYZER_TEMPLATE = """{baseSystemPrompt}

Analyze the PlantUML diagram below.

Diagram:
```plantuml
{diagram}
```

User request: {userInput}
Analysis type: {analysisType}
Diagram type: {diagramType}
Focus on: {analysisAspects}

PlantUML guidelines:
{guidelines}

{formatInstructions}"""

ANALYZER_FORMAT_INSTRUCTIONS = """Respond with a JSON object inside a ```json fenced block:
{
  "diagramType": "<diagram type>",
  "analysisType": "<analysis type>",
  "overview": "overall explanation",
  "components": [{"name": "...", "type": "...", "description": "..."}],
  "relationships": [{"source": "...", "target": "...", "type": "...", "description": "..."}],
  "qualityAssessment": {"score": 1-10, "strengths": [], "weaknesses": [], "bestPracticesFollowed": [], "bestPracticesViolated": []},
  "suggestedImprovements": ["..."]
}"""
