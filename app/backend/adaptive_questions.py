from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from . import fallbacks
from .constants import PITCH_DRAFT_PROMPT_CHARS
from .errors import MalformedModelOutput
from .extraction import parse_json_with_prefill
from .llm_client import LLMClient, SystemBlock
from .models import AdaptiveQuestion
from .prompts.adaptive_question import ADAPTIVE_QUESTION_VERSION, CONTEXT_TEMPLATE, SYSTEM_PROMPT


logger = logging.getLogger("uvicorn.error")

QUESTION_TEMPERATURE = 0.7
QUESTION_MAX_TOKENS = 1000
SUGGESTED_ANSWER_COUNT = 3
EMPTY_DRAFT_MARKER = "[Kein Pitch-Entwurf vorhanden]"
NOT_PROVIDED = "nicht angegeben"


@dataclass(frozen=True)
class QuestionTemplate:
    focus: str
    examples: Tuple[str, ...]


QUESTION_TEMPLATES: Dict[int, QuestionTemplate] = {
    4: QuestionTemplate(
        "Problem",
        (
            "Wer genau hat dieses Problem?",
            "Wie viel kostet dieses Problem die Betroffenen?",
            "Warum ist dieses Problem jetzt besonders dringend?",
        ),
    ),
    5: QuestionTemplate(
        "Lösung",
        (
            "Was macht deine Lösung konkret?",
            "Wie ist sie anders als bestehende Alternativen?",
            "Warum funktioniert sie besser?",
        ),
    ),
    6: QuestionTemplate(
        "Traktion",
        (
            "Welche messbaren Erfolge hast du bisher?",
            "Wie schnell wächst du?",
            "Was ist deine aktuelle Conversion Rate?",
        ),
    ),
    7: QuestionTemplate(
        "Wettbewerb",
        (
            "Wer sind deine direkten Wettbewerber?",
            "Was ist dein unfairer Vorteil?",
            "Warum können andere dich nicht einfach kopieren?",
        ),
    ),
}


def build_question_prompt(template: QuestionTemplate, context: Dict[str, Any]) -> str:
    draft = str(context.get("pitchDraft") or "").strip()
    draft_section = ""
    if draft and draft != EMPTY_DRAFT_MARKER:
        draft_section = f"PITCH-ENTWURF:\n{draft[:PITCH_DRAFT_PROMPT_CHARS]}\n\n"

    answers_section = ""
    previous = context.get("previousAnswers")
    if isinstance(previous, dict) and previous:
        lines = "".join(f"{key}: {value}\n" for key, value in previous.items())
        answers_section = f"VORHERIGE ANTWORTEN:\n{lines}\n"

    return (
        CONTEXT_TEMPLATE.replace("{focus}", template.focus)
        .replace("{examples}", " | ".join(template.examples))
        .replace("{pitch_type}", str(context.get("pitchType") or NOT_PROVIDED))
        .replace("{stage}", str(context.get("stage") or NOT_PROVIDED))
        .replace("{previous_answers}", answers_section)
        .replace("{pitch_draft}", draft_section)
    )


def coerce_step(value: Any) -> Optional[int]:
    """Read a step number from a loosely typed request field; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def fallback_question(step_id: Optional[int]) -> AdaptiveQuestion:
    payload = fallbacks.get_fallback(fallbacks.ADAPTIVE_QUESTION, step_id)
    payload["fallback"] = True
    return AdaptiveQuestion.model_validate(payload)


def _validate_question(raw: Dict[str, Any]) -> AdaptiveQuestion:
    answers = raw.get("suggestedAnswers")
    question = str(raw.get("question") or "").strip()
    if not question or not isinstance(answers, list) or len(answers) != SUGGESTED_ANSWER_COUNT:
        raise MalformedModelOutput("Adaptive question needs a question and exactly three answers.")
    try:
        return AdaptiveQuestion(
            question=question,
            description=str(raw.get("description") or "").strip(),
            suggested_answers=[str(answer).strip() for answer in answers],
        )
    except PydanticValidationError as exc:
        raise MalformedModelOutput(f"Adaptive question has an unexpected shape: {exc}") from exc


class AdaptiveQuestionGenerator:
    """Generate the next questionnaire question. Never raises to the caller."""

    def __init__(self, llm: LLMClient, timeout_seconds: float) -> None:
        self.llm = llm
        self.timeout_seconds = timeout_seconds

    def generate(self, step_id: Any, context: Any = None) -> AdaptiveQuestion:
        step_id = coerce_step(step_id)
        if not isinstance(context, dict):
            context = {}
        template = QUESTION_TEMPLATES.get(step_id) if step_id is not None else None
        if template is None:
            logger.warning("step=%s adaptive_question_fallback reason=unknown_step", step_id)
            return fallback_question(step_id)

        try:
            completion = self.llm.complete(
                system_blocks=[SystemBlock(SYSTEM_PROMPT, cache=True)],
                messages=[{"role": "user", "content": build_question_prompt(template, context)}],
                max_tokens=QUESTION_MAX_TOKENS,
                temperature=QUESTION_TEMPERATURE,
                timeout_seconds=self.timeout_seconds,
            )
            question = _validate_question(parse_json_with_prefill(completion.text))
        except Exception as exc:
            logger.warning(
                "step=%s adaptive_question_fallback reason=%s error=%s",
                step_id,
                type(exc).__name__,
                exc,
            )
            return fallback_question(step_id)

        logger.info("step=%s adaptive_question_done version=%s", step_id, ADAPTIVE_QUESTION_VERSION)
        return question
