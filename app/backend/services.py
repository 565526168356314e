from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .access import AccessPolicy, AllowAllAccess
from .adaptive_questions import AdaptiveQuestionGenerator
from .analysis import PitchAnalyzer
from .coaching import CoachingOrchestrator
from .config import Settings
from .diagnostic import DiagnosticGenerator
from .evaluation import PhaseEvaluator
from .llm_client import LLMClient
from .turn_store import build_turn_store
from .turns import TurnTracker


logger = logging.getLogger("uvicorn.error")


@dataclass
class CoachServices:
    settings: Settings
    llm: LLMClient
    tracker: TurnTracker
    coaching: CoachingOrchestrator
    analyzer: PitchAnalyzer
    evaluator: PhaseEvaluator
    questions: AdaptiveQuestionGenerator
    diagnostics: DiagnosticGenerator
    access: AccessPolicy

    def close(self) -> None:
        self.llm.close()


def build_services(
    settings: Settings,
    *,
    llm: Optional[LLMClient] = None,
    tracker: Optional[TurnTracker] = None,
    access: Optional[AccessPolicy] = None,
) -> CoachServices:
    llm = llm if llm is not None else LLMClient.from_settings(settings)
    if tracker is None:
        tracker = TurnTracker(build_turn_store(settings.database_url))
    if not llm.configured:
        logger.warning("llm_not_configured model=%s fallbacks_only=true", settings.llm_model)
    logger.info("services_ready storage=%s model=%s", tracker.storage_name, settings.llm_model)
    return CoachServices(
        settings=settings,
        llm=llm,
        tracker=tracker,
        coaching=CoachingOrchestrator(llm, tracker, settings.coaching_timeout_seconds),
        analyzer=PitchAnalyzer(llm, settings.analysis_timeout_seconds),
        evaluator=PhaseEvaluator(llm, settings.evaluation_timeout_seconds),
        questions=AdaptiveQuestionGenerator(llm, settings.question_timeout_seconds),
        diagnostics=DiagnosticGenerator(llm, settings.analysis_timeout_seconds),
        access=access if access is not None else AllowAllAccess(),
    )
