import os
import threading
from typing import Dict, List, Optional, Protocol, Tuple

from .errors import TurnConflictError
from .models import ConversationTurn

try:
    import psycopg
except Exception:  # pragma: no cover - only relevant when Postgres is enabled.
    psycopg = None


TurnKey = Tuple[str, str, int]


def normalize_database_url(database_url: str) -> str:
    if database_url.startswith("postgres://"):
        return "postgresql://" + database_url[len("postgres://") :]
    return database_url


class TurnStore(Protocol):
    storage_name: str

    def max_turn_number(self, user_id: str, project_id: str, phase_id: int) -> int:
        pass

    def append_turn(self, turn: ConversationTurn) -> None:
        pass

    def list_turns(self, user_id: str, project_id: str, phase_id: int) -> List[ConversationTurn]:
        pass

    def delete_turns(self, user_id: str, project_id: str, phase_id: int) -> int:
        pass


class InMemoryTurnStore:
    storage_name = "memory"

    def __init__(self) -> None:
        self._turns: Dict[TurnKey, Dict[int, ConversationTurn]] = {}
        self._lock = threading.Lock()

    def max_turn_number(self, user_id: str, project_id: str, phase_id: int) -> int:
        with self._lock:
            turns = self._turns.get((user_id, project_id, phase_id), {})
            return max(turns, default=0)

    def append_turn(self, turn: ConversationTurn) -> None:
        key = (turn.user_id, turn.project_id, turn.phase_id)
        with self._lock:
            turns = self._turns.setdefault(key, {})
            if turn.turn_number in turns:
                raise TurnConflictError(
                    f"Turn {turn.turn_number} already exists for phase {turn.phase_id}."
                )
            turns[turn.turn_number] = turn

    def list_turns(self, user_id: str, project_id: str, phase_id: int) -> List[ConversationTurn]:
        with self._lock:
            turns = self._turns.get((user_id, project_id, phase_id), {})
            return [turns[number] for number in sorted(turns)]

    def delete_turns(self, user_id: str, project_id: str, phase_id: int) -> int:
        with self._lock:
            removed = self._turns.pop((user_id, project_id, phase_id), {})
            return len(removed)


class PostgresTurnStore:
    storage_name = "postgres"

    def __init__(self, database_url: str) -> None:
        if psycopg is None:
            raise RuntimeError("psycopg is required when DATABASE_URL is set.")
        self._database_url = normalize_database_url(database_url)
        self._schema_ready = False

    def _connect(self):
        conn = psycopg.connect(self._database_url, autocommit=True)
        if not self._schema_ready:
            try:
                self._ensure_schema(conn)
            except Exception:
                conn.close()
                raise
        return conn

    def _ensure_schema(self, conn) -> None:
        # Runs on first use so an unreachable database degrades the tracker, not startup.
        with conn.cursor() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS conversation_turns (
                    user_id TEXT NOT NULL,
                    project_id TEXT NOT NULL,
                    phase_number INTEGER NOT NULL,
                    turn_number INTEGER NOT NULL CHECK (turn_number >= 1),
                    user_message TEXT NOT NULL,
                    ai_response TEXT NOT NULL,
                    ai_thinking TEXT NULL,
                    ai_analysis TEXT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    PRIMARY KEY (user_id, project_id, phase_number, turn_number)
                )
                """
            )
        self._schema_ready = True

    def max_turn_number(self, user_id: str, project_id: str, phase_id: int) -> int:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT COALESCE(MAX(turn_number), 0)
                    FROM conversation_turns
                    WHERE user_id = %s AND project_id = %s AND phase_number = %s
                    """,
                    (user_id, project_id, phase_id),
                )
                row = cur.fetchone()
                return int(row[0]) if row else 0

    def append_turn(self, turn: ConversationTurn) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO conversation_turns (
                        user_id, project_id, phase_number, turn_number,
                        user_message, ai_response, ai_thinking, ai_analysis, created_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT DO NOTHING
                    """,
                    (
                        turn.user_id,
                        turn.project_id,
                        turn.phase_id,
                        turn.turn_number,
                        turn.user_message,
                        turn.model_reply,
                        turn.extracted_thinking,
                        turn.extracted_analysis,
                        turn.recorded_at,
                    ),
                )
                if cur.rowcount == 0:
                    raise TurnConflictError(
                        f"Turn {turn.turn_number} already exists for phase {turn.phase_id}."
                    )

    def list_turns(self, user_id: str, project_id: str, phase_id: int) -> List[ConversationTurn]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT turn_number, user_message, ai_response, ai_thinking, ai_analysis, created_at
                    FROM conversation_turns
                    WHERE user_id = %s AND project_id = %s AND phase_number = %s
                    ORDER BY turn_number ASC
                    """,
                    (user_id, project_id, phase_id),
                )
                return [
                    ConversationTurn(
                        user_id=user_id,
                        project_id=project_id,
                        phase_id=phase_id,
                        turn_number=int(turn_number),
                        user_message=user_message,
                        model_reply=ai_response,
                        extracted_thinking=ai_thinking,
                        extracted_analysis=ai_analysis,
                        recorded_at=created_at,
                    )
                    for (
                        turn_number,
                        user_message,
                        ai_response,
                        ai_thinking,
                        ai_analysis,
                        created_at,
                    ) in cur.fetchall()
                ]

    def delete_turns(self, user_id: str, project_id: str, phase_id: int) -> int:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM conversation_turns
                    WHERE user_id = %s AND project_id = %s AND phase_number = %s
                    """,
                    (user_id, project_id, phase_id),
                )
                return cur.rowcount


def build_turn_store(database_url: Optional[str] = None) -> TurnStore:
    url = (database_url if database_url is not None else os.getenv("DATABASE_URL", "")).strip()
    if url:
        return PostgresTurnStore(database_url=url)
    return InMemoryTurnStore()
