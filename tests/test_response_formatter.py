from modelmind.schemas import RouterErrorInfo, RouterResponse
from modelmind.services.response_formatter import format_response


def _success(intent, result):
    return RouterResponse(success=True, intent=intent, decision={"intent": intent}, result=result)


def test_analysis_reply_lists_quality_and_improvements():
    response = _success(
        "ANALYZE",
        {
            "diagramType": "CLASS",
            "analysisType": "QUALITY",
            "overview": "A small domain model.",
            "qualityAssessment": {"score": 7, "strengths": ["clear names"], "weaknesses": ["no multiplicities"]},
            "suggestedImprovements": ["add multiplicities"],
        },
    )

    formatted = format_response(response)

    assert formatted.type == "message"
    assert formatted.content == (
        "A small domain model.\n\nQuality Score: 7/10"
        "\n\nStrengths:\n- clear names"
        "\n\nAreas for Improvement:\n- no multiplicities"
        "\n\nSuggested Improvements:\n- add multiplicities"
    )


def test_generation_reply_is_a_script():
    response = _success(
        "GENERATE",
        {"diagram": "@startuml\nA -> B\n@enduml", "diagramType": "SEQUENCE", "explanation": "simple"},
    )

    formatted = format_response(response)

    assert formatted.type == "script"
    assert formatted.explanation == "simple"


def test_error_reply_carries_the_error_type():
    response = RouterResponse(
        success=False,
        intent="UNKNOWN",
        decision={"intent": "UNKNOWN"},
        error=RouterErrorInfo(type="routing", message="I'm not sure"),
    )

    formatted = format_response(response)

    assert formatted.type == "error"
    assert formatted.content == "I'm not sure"
    assert formatted.error_code == "routing"


def test_malformed_result_becomes_a_format_error():
    formatted = format_response(_success("MODIFY", {"diagram": "short"}))

    assert formatted.type == "error"
    assert formatted.error_code == "FORMAT_ERROR"
