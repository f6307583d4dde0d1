from modelmind.agents.master_classifier import MasterClassifier, build_fallback_mappings
from modelmind.knowledge.guidelines import available_guidelines, guideline_slug, read_guidelines
from modelmind.models.decision import DiagramType
from modelmind.utils.prompts import NO_DIAGRAM_PLACEHOLDER, NO_HISTORY_PLACEHOLDER, substitute_variables


def test_substitute_variables_single_pass():
    template = "Hello {name}, keep {unknown} and {\"json\": 1}"
    result = substitute_variables(template, {"name": "{unknown}"})

    assert result == "Hello {unknown}, keep {unknown} and {\"json\": 1}"


def test_substitute_variables_renders_none_as_empty():
    assert substitute_variables("[{a}]", {"a": None}) == "[]"


def test_bundled_guidelines_are_found():
    text = read_guidelines(DiagramType.SEQUENCE)
    assert "participant" in text
    assert "use-case" in available_guidelines()
    assert guideline_slug(DiagramType.ENTITY_RELATIONSHIP) == "entity-relationship"


def test_missing_guidelines_degrade_to_placeholder(tmp_path):
    assert read_guidelines(DiagramType.CLASS, tmp_path) == "No specific guidelines available for class diagrams."
    assert read_guidelines(DiagramType.UNKNOWN) == "No specific guidelines available for unknown diagrams."


def test_empty_guideline_file_degrades_to_placeholder(tmp_path):
    (tmp_path / "state.md").write_text("   \n", encoding="utf-8")

    assert read_guidelines("STATE", tmp_path) == "No specific guidelines available for state diagrams."


def test_classification_prompt_uses_placeholders_for_empty_context():
    prompt = MasterClassifier(text_generator=None).build_prompt("draw a login flow")

    assert "draw a login flow" in prompt
    assert NO_DIAGRAM_PLACEHOLDER in prompt
    assert NO_HISTORY_PLACEHOLDER in prompt
    assert '"intent": "GENERATE" | "MODIFY" | "ANALYZE" | "UNKNOWN"' in prompt
    assert "{formatInstructions}" not in prompt


def test_fallback_mappings_are_complete_partials():
    mappings = build_fallback_mappings("  remove the cache  ", has_diagram_context=True)

    assert list(mappings)[:3] == ["CREATE", "GENERATE", "BUILD"]
    assert mappings["REMOVE"]["intent"] == "MODIFY"
    assert mappings["REMOVE"]["modificationRequests"] == []
    assert mappings["EXPLAIN"]["analysisType"] is None
    assert mappings["CREATE"]["cleanedInstruction"] == "remove the cache"
    assert all(partial["hasDiagramContext"] is True for partial in mappings.values())
