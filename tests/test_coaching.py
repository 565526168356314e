import pytest

from app.backend.coaching import CoachingOrchestrator, CoachingRequest, build_system_blocks
from app.backend.errors import MalformedModelOutput, ModelUnavailable
from app.backend.models import Identity, PitchContext, PitchErrorContext
from app.backend.phases import get_phase
from app.backend.turn_store import InMemoryTurnStore
from app.backend.turns import TurnTracker

from conftest import FailingTurnStore, FakeLLMClient


STRUCTURED_REPLY = (
    " false</complete>\n<completion_score>40</completion_score>\n"
    "<missing_elements>problem_cost, validation_proof</missing_elements>\n</phase_status>\n"
    "<thinking>Persona ist noch zu breit.</thinking>\n"
    "<response>Zahnärzte ist ein guter Start. Wie viele Stunden pro Woche verlieren sie?</response>"
)


def _orchestrator(llm, tracker=None):
    return CoachingOrchestrator(llm, tracker or TurnTracker(InMemoryTurnStore()), timeout_seconds=15)


def test_structured_reply_is_parsed():
    llm = FakeLLMClient([STRUCTURED_REPLY])
    result = _orchestrator(llm).run_turn(CoachingRequest(phase_id=3, message="Zahnärzte"))

    assert result.visible_reply == "Zahnärzte ist ein guter Start. Wie viele Stunden pro Woche verlieren sie?"
    assert result.phase_complete is False
    assert result.completion_score == 40
    assert result.missing_elements == ["problem_cost", "validation_proof"]
    assert result.metadata["phase"] == 3
    assert result.metadata["phaseName"] == "Problem-Befragung"
    assert result.metadata["hasXmlStructure"] is True
    assert result.metadata["turn"] is None
    assert "persistenceDegraded" not in result.metadata
    assert result.metrics["input_tokens"] == 1000
    assert result.metrics["cost_usd"] == "0.006000"


def test_request_carries_prefill_history_and_cached_blocks():
    llm = FakeLLMClient([STRUCTURED_REPLY])
    history = [
        {"role": "user", "content": "Hallo"},
        {"role": "assistant", "content": "Wer ist deine Zielgruppe?"},
    ]
    _orchestrator(llm).run_turn(CoachingRequest(phase_id=3, message="Zahnärzte", history=history))

    call = llm.calls[0]
    assert call["prefill"] == "<phase_status>\n<complete>"
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 2000
    assert call["timeout_seconds"] == 15
    assert call["messages"] == history + [{"role": "user", "content": "Zahnärzte"}]
    assert [block.cache for block in call["system_blocks"]] == [True, True, False]


def test_pitch_context_lands_in_dynamic_block():
    context = PitchContext(
        draft="Wir helfen Zahnärzten.",
        score=34,
        errors=[PitchErrorContext(title="Vage Zielgruppe", impact="Kein Markt", evidence="helfen Zahnärzten")],
    )
    blocks = build_system_blocks(get_phase(3), context)
    dynamic = blocks[-1].text
    assert "Wir helfen Zahnärzten." in dynamic
    assert "34/100" in dynamic
    assert "1. Vage Zielgruppe" in dynamic
    assert "<number>3</number>" in dynamic


def test_unstructured_reply_uses_keyword_heuristics():
    llm = FakeLLMClient(["Sehr gut, Phase abgeschlossen! Weiter zur Lösung."])
    result = _orchestrator(llm).run_turn(CoachingRequest(phase_id=42, message="fertig"))

    assert llm.calls[0]["prefill"] is None
    assert result.visible_reply == "Sehr gut, Phase abgeschlossen! Weiter zur Lösung."
    assert result.phase_complete is True
    assert result.completion_score == 85
    assert result.metadata["phaseName"] == "Phase 42"
    assert result.metadata["hasXmlStructure"] is False


def test_identity_records_turns_and_uses_tracked_history(tracker):
    llm = FakeLLMClient([STRUCTURED_REPLY, STRUCTURED_REPLY])
    orchestrator = _orchestrator(llm, tracker)
    identity = Identity(user_id="u1", project_id="p1")

    first = orchestrator.run_turn(CoachingRequest(phase_id=3, message="Zahnärzte", identity=identity))
    second = orchestrator.run_turn(CoachingRequest(phase_id=3, message="10 Stunden", identity=identity))

    assert first.metadata["turn"] == 1
    assert second.metadata["turn"] == 2
    assert second.metadata["persistenceDegraded"] is False
    assert llm.calls[1]["messages"][0] == {"role": "user", "content": "Zahnärzte"}
    assert llm.calls[1]["messages"][1]["role"] == "assistant"

    stored = tracker.store.list_turns("u1", "p1", 3)
    assert [turn.turn_number for turn in stored] == [1, 2]
    assert stored[0].extracted_thinking == "Persona ist noch zu breit."


def test_persistence_failure_does_not_fail_the_turn():
    llm = FakeLLMClient([STRUCTURED_REPLY])
    tracker = TurnTracker(FailingTurnStore())
    result = _orchestrator(llm, tracker).run_turn(
        CoachingRequest(phase_id=3, message="Zahnärzte", identity=Identity(user_id="u1"))
    )
    assert result.visible_reply
    assert result.metadata["persistenceDegraded"] is True


def test_model_failure_propagates_without_recording(tracker):
    llm = FakeLLMClient([ModelUnavailable("LLM request timed out after 15 seconds.")])
    with pytest.raises(ModelUnavailable):
        _orchestrator(llm, tracker).run_turn(
            CoachingRequest(phase_id=3, message="Hallo", identity=Identity(user_id="u1"))
        )
    assert tracker.store.list_turns("u1", "default", 3) == []


def test_empty_reply_is_malformed():
    llm = FakeLLMClient(["<thinking>nur intern</thinking>"])
    with pytest.raises(MalformedModelOutput):
        _orchestrator(llm).run_turn(CoachingRequest(phase_id=42, message="Hallo"))


def test_infinite_completion_score_does_not_fail_the_turn():
    reply = (
        " false</complete>\n<completion_score>Infinity</completion_score>\n</phase_status>\n"
        "<response>Wer genau hat dieses Problem?</response>"
    )
    result = _orchestrator(FakeLLMClient([reply])).run_turn(CoachingRequest(phase_id=3, message="Zahnärzte"))
    assert result.completion_score == 50
    assert result.visible_reply == "Wer genau hat dieses Problem?"


def test_pitch_context_keeps_braces_in_draft_verbatim():
    context = PitchContext(draft="Wir ersetzen {score} und {errors} durch Fakten.", score=34)
    dynamic = build_system_blocks(get_phase(3), context)[-1].text
    assert "Wir ersetzen {score} und {errors} durch Fakten." in dynamic
    assert "34/100" in dynamic


def test_turn_number_comes_from_opened_session(tracker):
    tracker.record_turn(tracker.open_session("u1", "p1", 3), "a", "b")
    llm = FakeLLMClient([STRUCTURED_REPLY])
    result = _orchestrator(llm, tracker).run_turn(
        CoachingRequest(phase_id=3, message="Zahnärzte", identity=Identity(user_id="u1", project_id="p1"))
    )
    assert result.metadata["turn"] == 2
