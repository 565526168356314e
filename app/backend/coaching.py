from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .errors import MalformedModelOutput
from .extraction import apply_prefill, extract_phase_status, parse_coaching_reply
from .llm_client import LLMClient, SystemBlock
from .metrics import build_call_metrics
from .models import Identity, PitchContext
from .phases import Phase, get_phase, phase_catalogue, prefill_for_phase
from .prompts.coaching import (
    BASE_SYSTEM_PROMPT,
    COACHING_VERSION,
    CURRENT_PHASE_TEMPLATE,
    PHASE_CATALOGUE_TEMPLATE,
    PITCH_CONTEXT_TEMPLATE,
    PITCH_ERROR_TEMPLATE,
)
from .turns import TurnSession, TurnTracker


logger = logging.getLogger("uvicorn.error")

COACHING_TEMPERATURE = 0.7
COACHING_MAX_TOKENS = 2000


@dataclass
class CoachingRequest:
    phase_id: int
    message: str
    history: Optional[List[Dict[str, str]]] = None
    pitch_context: Optional[PitchContext] = None
    identity: Optional[Identity] = None


@dataclass
class CoachingResult:
    visible_reply: str
    phase_complete: bool
    completion_score: int
    missing_elements: List[str]
    metadata: Dict[str, Any] = field(default_factory=dict)
    metrics: Dict[str, Any] = field(default_factory=dict)


def format_pitch_context(context: PitchContext) -> str:
    errors = "\n".join(
        PITCH_ERROR_TEMPLATE.replace("{index}", str(index))
        .replace("{impact}", error.impact)
        .replace("{evidence}", error.evidence or "")
        .replace("{title}", error.title)
        for index, error in enumerate(context.errors, start=1)
    )
    score = "?" if context.score is None else str(context.score)
    return (
        PITCH_CONTEXT_TEMPLATE.replace("{score}", score)
        .replace("{errors}", errors or "-")
        .replace("{draft}", context.draft)
    )


def format_current_phase(phase: Phase) -> str:
    elements = ", ".join(phase.sorted_elements()) or "-"
    return (
        CURRENT_PHASE_TEMPLATE.replace("{phase_id}", str(phase.id))
        .replace("{phase_name}", phase.name)
        .replace("{instructions}", phase.instructions)
        .replace("{completion_criteria}", phase.completion_criteria)
        .replace("{required_elements}", elements)
    )


def build_system_blocks(phase: Phase, pitch_context: Optional[PitchContext]) -> List[SystemBlock]:
    catalogue = json.dumps(phase_catalogue(), ensure_ascii=False)
    dynamic_parts: List[str] = []
    if pitch_context is not None and (pitch_context.draft or pitch_context.errors):
        dynamic_parts.append(format_pitch_context(pitch_context))
    dynamic_parts.append(format_current_phase(phase))
    return [
        SystemBlock(BASE_SYSTEM_PROMPT, cache=True),
        SystemBlock(PHASE_CATALOGUE_TEMPLATE.replace("{catalogue}", catalogue), cache=True),
        SystemBlock("\n\n".join(dynamic_parts)),
    ]


class CoachingOrchestrator:
    """Run one coaching turn for a phase.

    Model failures propagate to the caller; coaching content is never
    fabricated. Turn tracking only happens when the caller supplies an
    identity, and tracking problems never fail the turn.
    """

    def __init__(self, llm: LLMClient, tracker: TurnTracker, timeout_seconds: float) -> None:
        self.llm = llm
        self.tracker = tracker
        self.timeout_seconds = timeout_seconds

    def _open_session(self, request: CoachingRequest) -> Optional[TurnSession]:
        if request.identity is None:
            return None
        return self.tracker.open_session(
            request.identity.user_id,
            request.identity.project_id,
            request.phase_id,
        )

    def _conversation(self, request: CoachingRequest, session: Optional[TurnSession]) -> List[Dict[str, str]]:
        if request.history is not None:
            history: Sequence[Dict[str, str]] = request.history
        elif session is not None:
            history = self.tracker.history(session)
        else:
            history = []
        messages = [{"role": item["role"], "content": item["content"]} for item in history]
        messages.append({"role": "user", "content": request.message})
        return messages

    def run_turn(self, request: CoachingRequest) -> CoachingResult:
        phase = get_phase(request.phase_id)
        session = self._open_session(request)
        turn_number = session.next_turn if session is not None else None

        prefill = prefill_for_phase(phase.id)
        started = time.monotonic()
        completion = self.llm.complete(
            system_blocks=build_system_blocks(phase, request.pitch_context),
            messages=self._conversation(request, session),
            max_tokens=COACHING_MAX_TOKENS,
            temperature=COACHING_TEMPERATURE,
            timeout_seconds=self.timeout_seconds,
            prefill=prefill,
        )
        latency_ms = int((time.monotonic() - started) * 1000)

        full_text = apply_prefill(completion.text, prefill)
        status = extract_phase_status(full_text)
        reply = parse_coaching_reply(full_text)
        if not reply.visible:
            raise MalformedModelOutput("Model reply contained no visible coaching text.")

        if session is not None:
            self._record(session, request.message, reply.visible, reply.thinking, reply.analysis)

        metadata: Dict[str, Any] = {
            "phase": phase.id,
            "phaseName": phase.name,
            "version": COACHING_VERSION,
            "turn": turn_number,
            "hasXmlStructure": reply.has_xml_structure,
        }
        if session is not None:
            metadata["persistenceDegraded"] = session.degraded

        logger.info(
            "phase=%s turn=%s chat_turn_done latency_ms=%s complete=%s score=%s xml=%s",
            phase.id,
            turn_number,
            latency_ms,
            status.complete,
            status.completion_score,
            reply.has_xml_structure,
        )
        return CoachingResult(
            visible_reply=reply.visible,
            phase_complete=status.complete,
            completion_score=status.completion_score,
            missing_elements=status.missing_elements,
            metadata=metadata,
            metrics=build_call_metrics(completion.usage, completion.model, latency_ms),
        )

    def _record(
        self,
        session: TurnSession,
        user_message: str,
        visible_reply: str,
        thinking: Optional[str],
        analysis: Optional[str],
    ) -> None:
        try:
            self.tracker.record_turn(
                session,
                user_message,
                visible_reply,
                thinking=thinking,
                analysis=analysis,
            )
        except Exception:
            logger.warning(
                "user_id=%s phase=%s turn_record_failed",
                session.user_id,
                session.phase_id,
                exc_info=True,
            )
