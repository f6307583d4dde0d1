"""Router behaviour: precondition gates, dispatch, error taxonomy and session updates."""
import asyncio
import json

from modelmind.agents.base import HandlerRequest
from modelmind.agents.master_classifier import MasterClassifier
from modelmind.errors import ClassificationError
from modelmind.models.decision import DiagramType, validate_decision
from modelmind.models.results import AnalysisResult, GenerationResult, ModificationResult
from modelmind.services.request_router import RequestRouter
from modelmind.services.session_context import SessionStore
from modelmind.utils.config import Settings

DIAGRAM = "@startuml\nAlice -> Bob: hello\n@enduml"


class FakeClassifier:
    def __init__(self, decision=None, error=None):
        self.decision = decision
        self.error = error
        self.calls = []

    async def classify(self, user_input, current_diagram=None, conversation_history=None):
        self.calls.append((user_input, current_diagram, conversation_history))
        if self.error:
            raise self.error
        return self.decision


class FakeHandlers:
    def __init__(self, error=None):
        self.error = error
        self.requests = []

    async def generate(self, request: HandlerRequest):
        self.requests.append(request)
        if self.error:
            raise self.error
        return GenerationResult(diagram=DIAGRAM, diagram_type=request.diagram_type, explanation="new diagram")

    async def modify(self, request: HandlerRequest):
        self.requests.append(request)
        if self.error:
            raise self.error
        return ModificationResult(
            diagram=request.current_diagram + "\n' edited",
            diagram_type=request.diagram_type,
            changes=list(request.modification_requests),
            explanation="edited",
        )

    async def analyze(self, request: HandlerRequest):
        self.requests.append(request)
        if self.error:
            raise self.error
        return AnalysisResult(
            diagram_type=request.diagram_type,
            analysis_type=request.analysis_type,
            overview="two participants exchange a greeting",
        )


class FakeTextGenerator:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _decision(intent, confidence=0.9, **extra):
    data = {
        "intent": intent,
        "confidence": confidence,
        "reasoning": "test decision",
        "cleanedInstruction": "do it",
    }
    if intent != "UNKNOWN":
        data.setdefault("diagramType", "SEQUENCE")
    data.update(extra)
    return validate_decision(data)


def _router(classifier, handlers=None, sessions=None):
    handlers = handlers or FakeHandlers()
    return RequestRouter(
        classifier=classifier,
        generator=handlers,
        modifier=handlers,
        analyzer=handlers,
        sessions=sessions or SessionStore(),
        config=Settings(_env_file=None),
    )


def _run(router, *args, **kwargs):
    return asyncio.run(router.process_request(*args, **kwargs))


def test_modify_without_diagram_is_a_validation_error_regardless_of_confidence():
    handlers = FakeHandlers()
    router = _router(FakeClassifier(_decision("MODIFY", confidence=0.99)), handlers)

    response = _run(router, "add a cache", current_diagram="")

    assert response.success is False
    assert response.error.type == "validation"
    assert response.error.message.startswith("Cannot modify diagram: No current diagram provided")
    assert response.intent == "MODIFY"
    assert handlers.requests == []


def test_analyze_without_diagram_is_a_validation_error():
    router = _router(FakeClassifier(_decision("ANALYZE")))

    response = _run(router, "explain it", current_diagram="   ")

    assert response.error.type == "validation"
    assert "Cannot analyze diagram" in response.error.message


def test_confidence_gate_boundary_is_inclusive():
    low = _run(_router(FakeClassifier(_decision("GENERATE", confidence=0.29))), "make something")
    assert low.success is False
    assert low.error.type == "validation"
    assert "(confidence: 29%)" in low.error.message

    ok = _run(_router(FakeClassifier(_decision("GENERATE", confidence=0.30))), "make something")
    assert ok.success is True
    assert ok.result["diagram"] == DIAGRAM


def test_missing_diagram_is_checked_before_confidence():
    router = _router(FakeClassifier(_decision("MODIFY", confidence=0.1)))

    response = _run(router, "change it", current_diagram="")

    assert "Cannot modify diagram" in response.error.message


def test_unknown_intent_is_a_routing_error_with_suggestions():
    decision = _decision("UNKNOWN", confidence=0.6, reasoning="The request is ambiguous.")
    router = _router(FakeClassifier(decision))

    response = _run(router, "banana")

    assert response.success is False
    assert response.error.type == "routing"
    assert response.error.message.startswith("I'm not sure what you want me to do with the diagram. The request is ambiguous.")
    assert "create a sequence diagram for" in response.error.message
    assert response.decision["intent"] == "UNKNOWN"


def test_unknown_intent_with_low_confidence_hits_the_confidence_gate():
    router = _router(FakeClassifier(_decision("UNKNOWN", confidence=0.1)))

    response = _run(router, "banana")

    assert response.error.type == "validation"


def test_handler_failure_is_an_agent_error():
    router = _router(FakeClassifier(_decision("GENERATE")), FakeHandlers(error=RuntimeError("model timed out")))

    response = _run(router, "create a diagram")

    assert response.success is False
    assert response.error.type == "agent"
    assert "model timed out" in response.error.message
    assert response.error.details["handler"] == "generator"
    assert response.decision["intent"] == "GENERATE"


def test_classifier_failure_is_a_classification_error_with_fallback_decision():
    error = ClassificationError("Classification failed: upstream 500")
    router = _router(FakeClassifier(error=error))

    response = _run(router, "create a diagram")

    assert response.error.type == "classification"
    assert response.intent == "UNKNOWN"
    assert response.decision["confidence"] == 0.0
    assert response.decision["reasoning"] == "Error occurred during request processing"


def test_untagged_exceptions_are_classified_from_their_message():
    router = _router(FakeClassifier(error=ValueError("Current diagram is required")))

    response = _run(router, "create a diagram")

    assert response.error.type == "validation"


def test_empty_input_is_rejected_before_classification():
    classifier = FakeClassifier(_decision("GENERATE"))
    router = _router(classifier)

    response = _run(router, "   ")

    assert response.error.type == "validation"
    assert response.error.message == "User input is required"
    assert classifier.calls == []


def test_success_updates_session_context():
    sessions = SessionStore()
    session = sessions.create("s1")
    router = _router(FakeClassifier(_decision("GENERATE", diagramType="CLASS")), sessions=sessions)

    response = _run(router, "create a class diagram", session_id="s1")

    assert response.success is True
    assert session.last_intent.value == "GENERATE"
    assert session.last_diagram_type == DiagramType.CLASS
    assert session.get_current_diagram() == DIAGRAM
    assert session.diagram_metadata.version == 1
    assert [m.role for m in session.messages] == ["user", "assistant"]


def test_session_update_failure_does_not_fail_the_request():
    sessions = SessionStore()
    session = sessions.create("s1")

    def _explode(*args, **kwargs):
        raise RuntimeError("disk full")

    session.update_diagram = _explode
    router = _router(FakeClassifier(_decision("GENERATE")), sessions=sessions)

    response = _run(router, "create a diagram", session_id="s1")

    assert response.success is True


def test_session_diagram_is_used_when_none_is_passed():
    sessions = SessionStore()
    session = sessions.create("s1")
    session.update_diagram(DIAGRAM, "GENERATE")
    handlers = FakeHandlers()
    decision = _decision("MODIFY", modificationRequests=["add Carol"], targetElements=["Carol"])
    router = _router(FakeClassifier(decision), handlers, sessions=sessions)

    response = _run(router, "add Carol", session_id="s1", context={"source": "test"})

    assert response.success is True
    request = handlers.requests[0]
    assert request.current_diagram == DIAGRAM
    assert request.modification_requests == ["add Carol"]
    assert request.target_elements == ["Carol"]
    assert request.context["source"] == "test"
    assert request.context["diagramVersion"] == 1
    assert session.diagram_metadata.version == 2


def test_health_status_reports_components():
    status = _router(FakeClassifier(_decision("GENERATE"))).health_status()

    assert status["status"] == "healthy"
    assert set(status["components"]) == {"classifier", "generator", "modifier", "analyzer"}


def test_end_to_end_with_real_classifier_and_pattern_fallback():
    generator = FakeTextGenerator("The user wants to ANALYZE this; confidence: 0.8")
    handlers = FakeHandlers()
    router = _router(MasterClassifier(generator), handlers)

    response = _run(router, "What could be better here?", current_diagram=DIAGRAM)

    assert response.success is True
    assert response.intent == "ANALYZE"
    assert response.decision["analysisType"] == "IMPROVEMENTS"
    assert response.decision["hasDiagramContext"] is True
    assert handlers.requests[0].analysis_type.value == "IMPROVEMENTS"
    assert "What could be better here?" in generator.prompts[0]


def test_end_to_end_structured_classification():
    classification = {
        "intent": "GENERATE",
        "confidence": 0.92,
        "reasoning": "User asks for a new diagram",
        "cleanedInstruction": "Create a login sequence diagram",
        "diagramType": "UNKNOWN",
    }
    generator = FakeTextGenerator("```json\n" + json.dumps(classification) + "\n```")
    handlers = FakeHandlers()
    router = _router(MasterClassifier(generator), handlers)

    response = _run(router, "Create a login flow diagram")

    assert response.success is True
    assert response.decision["diagramType"] == "SEQUENCE"
    assert response.decision["confidenceLevel"] == "VERY_HIGH"
    assert handlers.requests[0].cleaned_instruction == "Create a login sequence diagram"


def test_text_generator_failure_surfaces_as_classification_error():
    generator = FakeTextGenerator(ConnectionError("connection reset"))
    router = _router(MasterClassifier(generator))

    response = _run(router, "Create a login flow diagram")

    assert response.error.type == "classification"
    assert response.error.message.startswith("Classification failed: connection reset")


class RecordingGenerator:
    def __init__(self):
        self.events = []

    async def generate(self, request: HandlerRequest):
        self.events.append("enter")
        for _ in range(3):
            await asyncio.sleep(0)
        self.events.append("exit")
        return GenerationResult(diagram=DIAGRAM, diagram_type=request.diagram_type, explanation="new diagram")


def _recording_router(sessions):
    handlers = FakeHandlers()
    generator = RecordingGenerator()
    router = RequestRouter(
        classifier=FakeClassifier(_decision("GENERATE")),
        generator=generator,
        modifier=handlers,
        analyzer=handlers,
        sessions=sessions,
        config=Settings(_env_file=None),
    )
    return router, generator


def test_session_lock_serialises_concurrent_turns():
    sessions = SessionStore()
    session = sessions.create()
    router, generator = _recording_router(sessions)

    async def turn(text):
        async with sessions.lock_for(session.session_id):
            return await router.process_request(text, session_id=session.session_id)

    async def both():
        return await asyncio.gather(turn("first"), turn("second"))

    responses = asyncio.run(both())

    assert all(response.success for response in responses)
    assert generator.events == ["enter", "exit", "enter", "exit"]
    assert len(session.get_conversation_history()) == 4


def test_turns_without_the_session_lock_interleave():
    sessions = SessionStore()
    session = sessions.create()
    router, generator = _recording_router(sessions)

    async def both():
        return await asyncio.gather(
            router.process_request("first", session_id=session.session_id),
            router.process_request("second", session_id=session.session_id),
        )

    asyncio.run(both())

    assert generator.events == ["enter", "enter", "exit", "exit"]
