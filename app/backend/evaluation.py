from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .constants import CAN_PROCEED_THRESHOLD, MUST_MEET_SCORE_CAP
from .errors import ValidationError
from .extraction import clamp_score, parse_json_with_prefill
from .llm_client import LLMClient
from .models import ChatMessage, PhaseEvaluation
from .phases import Criterion, PhaseRubric, get_rubric
from .prompts.evaluation import EVALUATION_PREFILL, EVALUATION_PROMPT_TEMPLATE, EVALUATION_VERSION


logger = logging.getLogger("uvicorn.error")

EVALUATION_TEMPERATURE = 0.3
EVALUATION_MAX_TOKENS = 2000
ROLE_LABELS = {"user": "Gründer", "assistant": "Coach"}
_TRUE_STRINGS = {"true", "yes", "ja", "1", "erfüllt"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value or "").strip().lower() in _TRUE_STRINGS


def _criteria_lines(criteria: Sequence[Criterion], weighted: bool) -> str:
    lines = []
    for criterion in criteria:
        suffix = f" (+{criterion.weight} Punkte)" if weighted else ""
        lines.append(f"- {criterion.id}: {criterion.label}{suffix}")
    return "\n".join(lines) or "-"


def _keys_skeleton(criteria: Sequence[Criterion]) -> str:
    return "{" + ", ".join(f'"{criterion.id}": <true/false>' for criterion in criteria) + "}"


def format_conversation(history: Sequence[ChatMessage]) -> str:
    return "\n\n".join(f"{ROLE_LABELS[message.role]}: {message.content}" for message in history)


def build_evaluation_prompt(rubric: PhaseRubric, history: Sequence[ChatMessage]) -> str:
    return (
        EVALUATION_PROMPT_TEMPLATE.replace("{phase_id}", str(rubric.phase_id))
        .replace("{phase_name}", rubric.name)
        .replace("{conversation}", format_conversation(history))
        .replace("{must_meet}", _criteria_lines(rubric.must_meet, weighted=False))
        .replace("{should_meet}", _criteria_lines(rubric.should_meet, weighted=True))
        .replace("{max_score}", str(rubric.max_score))
        .replace("{must_meet_keys}", _keys_skeleton(rubric.must_meet))
        .replace("{should_meet_keys}", _keys_skeleton(rubric.should_meet))
    )


def _criterion_results(raw: Any, criteria: Sequence[Criterion]) -> Dict[str, bool]:
    raw = raw if isinstance(raw, dict) else {}
    return {criterion.id: _as_bool(raw.get(criterion.id)) for criterion in criteria}


def normalize_evaluation(raw: Dict[str, Any], rubric: PhaseRubric) -> PhaseEvaluation:
    must_meet = _criterion_results(raw.get("mustMeetResults"), rubric.must_meet)
    should_meet = _criterion_results(raw.get("shouldMeetResults"), rubric.should_meet)

    score = min(clamp_score(raw.get("score")), rubric.max_score)
    if not all(must_meet.values()):
        score = min(score, MUST_MEET_SCORE_CAP)

    gaps = raw.get("gaps") or []
    if not isinstance(gaps, list):
        gaps = [gaps]
    next_steps = raw.get("nextSteps") or ""
    if isinstance(next_steps, list):
        next_steps = " ".join(str(step) for step in next_steps)

    return PhaseEvaluation(
        score=score,
        can_proceed=score >= CAN_PROCEED_THRESHOLD,
        must_meet_results=must_meet,
        should_meet_results=should_meet,
        gaps=[str(gap).strip() for gap in gaps if str(gap).strip()],
        feedback=str(raw.get("feedback") or "").strip(),
        next_steps=str(next_steps).strip(),
    )


class PhaseEvaluator:
    def __init__(self, llm: LLMClient, timeout_seconds: float) -> None:
        self.llm = llm
        self.timeout_seconds = timeout_seconds

    def evaluate(self, phase_id: int, history: Optional[List[ChatMessage]]) -> PhaseEvaluation:
        rubric = get_rubric(phase_id)
        if rubric is None:
            raise ValidationError(f"Keine Bewertungskriterien für Phase {phase_id} definiert.")
        if not history:
            raise ValidationError("Gesprächsverlauf fehlt. Bitte führe zuerst das Coaching-Gespräch.")

        completion = self.llm.complete(
            system_blocks=[],
            messages=[{"role": "user", "content": build_evaluation_prompt(rubric, history)}],
            max_tokens=EVALUATION_MAX_TOKENS,
            temperature=EVALUATION_TEMPERATURE,
            timeout_seconds=self.timeout_seconds,
            prefill=EVALUATION_PREFILL,
        )
        evaluation = normalize_evaluation(parse_json_with_prefill(completion.text, EVALUATION_PREFILL), rubric)
        logger.info(
            "phase=%s phase_evaluated score=%s can_proceed=%s version=%s",
            phase_id,
            evaluation.score,
            evaluation.can_proceed,
            EVALUATION_VERSION,
        )
        return evaluation
