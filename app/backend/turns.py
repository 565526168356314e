from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import PersistenceDegraded, TurnConflictError, truncate
from .models import ConversationTurn
from .turn_store import InMemoryTurnStore, TurnStore


logger = logging.getLogger("uvicorn.error")


@dataclass
class TurnSession:
    user_id: str
    project_id: str
    phase_id: int
    next_turn: int = 1
    loaded: bool = False
    last_error: Optional[PersistenceDegraded] = None

    @property
    def degraded(self) -> bool:
        return self.last_error is not None


class TurnTracker:
    """Per (user, project, phase) turn counter and conversation log.

    Reads and writes go to the durable store first. When it fails, the local
    fallback store takes over so the coaching flow keeps going; reads merge
    both stores, durable rows winning on equal turn numbers.

    The read-then-increment of ``next_turn`` is not guarded against
    concurrent requests for the same triple. Two racing turns can collide on
    a number; the second insert is rejected and logged, never overwritten.
    """

    def __init__(self, store: TurnStore, fallback_store: Optional[TurnStore] = None) -> None:
        self.store = store
        self.fallback_store = fallback_store if fallback_store is not None else InMemoryTurnStore()

    @property
    def storage_name(self) -> str:
        return self.store.storage_name

    def session(self, user_id: str, project_id: str, phase_id: int) -> TurnSession:
        return TurnSession(user_id=user_id, project_id=project_id, phase_id=phase_id)

    def open_session(self, user_id: str, project_id: str, phase_id: int) -> TurnSession:
        session = self.session(user_id, project_id, phase_id)
        self._load(session)
        return session

    def current_turn(self, session: TurnSession) -> dict:
        if not session.loaded:
            self._load(session)
        return {
            "phase": session.phase_id,
            "turn": session.next_turn,
            "degraded": session.degraded,
        }

    def record_turn(
        self,
        session: TurnSession,
        user_message: str,
        model_reply: str,
        *,
        thinking: Optional[str] = None,
        analysis: Optional[str] = None,
    ) -> Optional[ConversationTurn]:
        if not session.loaded:
            self._load(session)

        turn = ConversationTurn(
            user_id=session.user_id,
            project_id=session.project_id,
            phase_id=session.phase_id,
            turn_number=session.next_turn,
            user_message=user_message,
            model_reply=model_reply,
            extracted_thinking=thinking,
            extracted_analysis=analysis,
        )
        stored = self._append(session, turn)
        session.next_turn += 1
        if stored:
            logger.info(
                "user_id=%s phase=%s turn=%s turn_recorded",
                session.user_id,
                session.phase_id,
                turn.turn_number,
            )
            return turn
        return None

    def history(self, session: TurnSession) -> List[dict]:
        messages: List[dict] = []
        for turn in self._merged_turns(session):
            messages.append({"role": "user", "content": turn.user_message})
            messages.append({"role": "assistant", "content": turn.model_reply})
        return messages

    def reset_phase(self, session: TurnSession) -> bool:
        """Delete every turn of the phase. Returns False when the durable rows survive."""
        try:
            removed = self.store.delete_turns(session.user_id, session.project_id, session.phase_id)
        except Exception as exc:
            self._degrade(session, "delete", exc)
            # Durable rows are still there; numbering must continue after them.
            previous = session.next_turn if session.loaded else 1
            self._load(session)
            session.next_turn = max(session.next_turn, previous)
            return False
        logger.info(
            "user_id=%s phase=%s phase_reset removed=%s",
            session.user_id,
            session.phase_id,
            removed,
        )
        self.fallback_store.delete_turns(session.user_id, session.project_id, session.phase_id)
        session.next_turn = 1
        session.loaded = True
        return True

    def _degrade(self, session: TurnSession, operation: str, exc: Exception) -> None:
        session.last_error = PersistenceDegraded(
            f"Turn store {operation} failed ({self.store.storage_name}): {truncate(str(exc))}"
        )
        logger.warning(
            "user_id=%s phase=%s turn_store_degraded operation=%s error=%s",
            session.user_id,
            session.phase_id,
            operation,
            session.last_error,
        )

    def _load(self, session: TurnSession) -> None:
        durable_max = 0
        try:
            durable_max = self.store.max_turn_number(session.user_id, session.project_id, session.phase_id)
        except Exception as exc:
            self._degrade(session, "read", exc)
        local_max = self.fallback_store.max_turn_number(session.user_id, session.project_id, session.phase_id)
        session.next_turn = max(durable_max, local_max) + 1
        session.loaded = True
        logger.info(
            "user_id=%s phase=%s turn=%s turn_session_loaded",
            session.user_id,
            session.phase_id,
            session.next_turn,
        )

    def _append(self, session: TurnSession, turn: ConversationTurn) -> bool:
        try:
            self.store.append_turn(turn)
            return True
        except TurnConflictError as exc:
            logger.warning(
                "user_id=%s phase=%s turn=%s turn_conflict error=%s",
                session.user_id,
                session.phase_id,
                turn.turn_number,
                exc,
            )
            return False
        except Exception as exc:
            self._degrade(session, "write", exc)

        try:
            self.fallback_store.append_turn(turn)
            return True
        except TurnConflictError as exc:
            logger.warning(
                "user_id=%s phase=%s turn=%s turn_conflict storage=fallback error=%s",
                session.user_id,
                session.phase_id,
                turn.turn_number,
                exc,
            )
            return False

    def _merged_turns(self, session: TurnSession) -> List[ConversationTurn]:
        merged: Dict[int, ConversationTurn] = {
            turn.turn_number: turn
            for turn in self.fallback_store.list_turns(session.user_id, session.project_id, session.phase_id)
        }
        try:
            durable = self.store.list_turns(session.user_id, session.project_id, session.phase_id)
        except Exception as exc:
            self._degrade(session, "read", exc)
            durable = []
        for turn in durable:
            merged[turn.turn_number] = turn
        return [merged[number] for number in sorted(merged)]
