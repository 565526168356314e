from __future__ import annotations

import logging
import math
import re
import time
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from . import fallbacks
from .constants import AVG_DEAL_SIZE_EUR, MEETINGS_PER_YEAR, MIN_PITCH_CHARS, OPTIMAL_SUCCESS_RATE
from .errors import ConfigurationMissing, MalformedModelOutput, ModelUnavailable, ValidationError
from .extraction import clamp_score, parse_json_with_prefill
from .llm_client import LLMClient, SystemBlock
from .metrics import build_call_metrics
from .models import DiagnosticContext, FinancialImpactEstimate, PitchAnalysis, utc_now
from .prompts.analysis import (
    ANALYSIS_PREFILL,
    ANALYSIS_VERSION,
    FEW_SHOT_EXAMPLES,
    SYSTEM_CONTEXT,
    TASK_PROMPT_TEMPLATE,
)


logger = logging.getLogger("uvicorn.error")

ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 3000
MAX_FATAL_ERRORS = 5
MAX_EVIDENCE_CHARS = 160
PITCH_TOO_SHORT = f"Pitch text zu kurz. Mindestens {MIN_PITCH_CHARS} Zeichen erforderlich."

DIMENSION_KEYS = ("clarity", "emotional", "credibility", "cta")
SEVERITIES = {"critical", "high", "medium"}
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_NON_DIGITS = re.compile(r"[^\d]")
MAX_COST_DIGITS = 12


def js_round(value: float) -> int:
    """Round half up, matching JavaScript's Math.round."""
    return int(math.floor(value + 0.5))


def success_rate_for(score: float) -> float:
    if score < 30:
        return 0.10
    if score < 50:
        return 0.15 + ((score - 30) / 20) * 0.15
    if score < 70:
        return 0.30 + ((score - 50) / 20) * 0.20
    if score < 85:
        return 0.50 + ((score - 70) / 15) * 0.15
    return 0.65 + ((score - 85) / 15) * 0.15


def compute_financial_impact(
    overall_score: float, context: Optional[DiagnosticContext] = None
) -> FinancialImpactEstimate:
    meetings = MEETINGS_PER_YEAR
    deal_size = AVG_DEAL_SIZE_EUR
    if context is not None:
        meetings = context.meetings_per_year or meetings
        deal_size = context.avg_deal_size or deal_size

    current_rate = success_rate_for(overall_score)
    lost_deals = meetings * OPTIMAL_SUCCESS_RATE - meetings * current_rate
    annual_loss = js_round(lost_deals * deal_size * current_rate)
    return FinancialImpactEstimate(
        annual_loss_eur=annual_loss,
        weekly_loss_eur=js_round(annual_loss / 52),
        current_success_rate_pct=js_round(current_rate * 100),
        optimal_success_rate_pct=js_round(OPTIMAL_SUCCESS_RATE * 100),
        lost_deals_per_year=js_round(lost_deals * 10) / 10,
        avg_deal_size_eur=deal_size,
    )


def build_task_prompt(pitch_text: str, context: Optional[DiagnosticContext]) -> str:
    context = context or DiagnosticContext()
    extra: List[str] = []
    if context.problem:
        extra.append(f"Problem-Statement: {context.problem}")
    if context.solution:
        extra.append(f"Lösungs-Statement: {context.solution}")
    if context.cta_type:
        extra.append(f"Gewünschter CTA: {context.cta_type}")
    # User text goes in last so braces inside the pitch survive verbatim.
    return (
        TASK_PROMPT_TEMPLATE.replace("{purpose}", context.purpose or "Investoren-Pitch")
        .replace("{stage}", context.stage or "Seed")
        .replace("{audience}", context.audience or "Investoren")
        .replace("{extra_context}", "\n".join(extra))
        .replace("{pitch_text}", pitch_text)
    )


def evidence_quotes(pitch_text: str, count: int) -> List[str]:
    """Cut ``count`` verbatim quotes from the pitch, one sentence each."""
    sentences = [part.strip() for part in _SENTENCE_SPLIT.split(pitch_text.strip()) if part.strip()]
    if not sentences:
        sentences = [pitch_text.strip()]
    return [sentences[index % len(sentences)][:MAX_EVIDENCE_CHARS].strip() for index in range(count)]


def fallback_analysis(pitch_text: str, context: Optional[DiagnosticContext], reason: str) -> PitchAnalysis:
    payload = fallbacks.get_fallback(fallbacks.ANALYSIS)
    quotes = evidence_quotes(pitch_text, len(payload["fatalErrors"]))
    for error, quote in zip(payload["fatalErrors"], quotes):
        error["evidenceQuote"] = quote
    payload["financialImpact"] = compute_financial_impact(payload["overallScore"], context)
    payload["metadata"] = {
        "timestamp": utc_now().isoformat(),
        "version": ANALYSIS_VERSION,
        "fallbackReason": reason,
    }
    payload["fallback"] = True
    return PitchAnalysis.model_validate(payload)


def _dimension_score(value: Any) -> int:
    if isinstance(value, dict):
        value = value.get("score")
    return clamp_score(value)


def _cost(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(round(value)) if math.isfinite(value) else None
    digits = _NON_DIGITS.sub("", str(value))
    if not digits or len(digits) > MAX_COST_DIGITS:
        return None
    return int(digits)


def _text(value: Any) -> str:
    if isinstance(value, list):
        return " ".join(str(item).strip() for item in value if str(item).strip())
    return str(value or "").strip()


def _normalize_fatal_error(index: int, raw: Dict[str, Any]) -> Dict[str, Any]:
    severity = str(raw.get("severity") or "").strip().lower()
    return {
        "id": _text(raw.get("id")) or f"error_{index}",
        "title": _text(raw.get("title")),
        "severity": severity if severity in SEVERITIES else "medium",
        "evidenceQuote": _text(raw.get("evidence") or raw.get("evidenceQuote")),
        "impactExplanation": _text(raw.get("impact") or raw.get("impactExplanation")),
        "fix": _text(raw.get("fix")),
        "scientificBasis": _text(raw.get("scientificBasis")) or None,
        "costEstimateEUR": _cost(raw.get("costEstimate", raw.get("costEstimateEUR"))),
    }


def normalize_analysis(raw: Dict[str, Any]) -> Dict[str, Any]:
    dimensions = raw.get("dimensions") or raw.get("dimensionScores") or {}
    if not isinstance(dimensions, dict):
        dimensions = {}
    fatal_raw = raw.get("fatalErrors") or []
    if not isinstance(fatal_raw, list):
        fatal_raw = []
    fatal_errors = [
        _normalize_fatal_error(index, item)
        for index, item in enumerate(fatal_raw, start=1)
        if isinstance(item, dict)
    ][:MAX_FATAL_ERRORS]
    strengths = raw.get("strengths") or []
    if not isinstance(strengths, list):
        strengths = [strengths]
    return {
        "overallScore": clamp_score(raw.get("overallScore")),
        "dimensionScores": {key: _dimension_score(dimensions.get(key)) for key in DIMENSION_KEYS},
        "fatalErrors": fatal_errors,
        "strengths": [_text(item) for item in strengths if _text(item)],
        "nextSteps": _text(raw.get("nextSteps")),
    }


class PitchAnalyzer:
    """Score a pitch draft. Always answers: model trouble yields the demo payload."""

    def __init__(self, llm: LLMClient, timeout_seconds: float) -> None:
        self.llm = llm
        self.timeout_seconds = timeout_seconds

    def analyze(self, pitch_text: Optional[str], context: Optional[DiagnosticContext] = None) -> PitchAnalysis:
        text = (pitch_text or "").strip()
        if len(text) < MIN_PITCH_CHARS:
            raise ValidationError(PITCH_TOO_SHORT)

        try:
            return self._analyze(text, context)
        except (ConfigurationMissing, ModelUnavailable, MalformedModelOutput) as exc:
            logger.warning(
                "analysis_fallback reason=%s error=%s",
                type(exc).__name__,
                exc,
            )
            return fallback_analysis(text, context, type(exc).__name__)

    def _analyze(self, pitch_text: str, context: Optional[DiagnosticContext]) -> PitchAnalysis:
        started = time.monotonic()
        completion = self.llm.complete(
            system_blocks=[
                SystemBlock(SYSTEM_CONTEXT, cache=True),
                SystemBlock(FEW_SHOT_EXAMPLES, cache=True),
            ],
            messages=[{"role": "user", "content": build_task_prompt(pitch_text, context)}],
            max_tokens=ANALYSIS_MAX_TOKENS,
            temperature=ANALYSIS_TEMPERATURE,
            timeout_seconds=self.timeout_seconds,
            prefill=ANALYSIS_PREFILL,
        )
        latency_ms = int((time.monotonic() - started) * 1000)

        raw = parse_json_with_prefill(completion.text, ANALYSIS_PREFILL)
        try:
            payload = normalize_analysis(raw)
        except (TypeError, ValueError, OverflowError) as exc:
            raise MalformedModelOutput(f"Analysis payload could not be normalised: {exc}") from exc
        call_metrics = build_call_metrics(completion.usage, completion.model, latency_ms)
        payload["financialImpact"] = compute_financial_impact(payload["overallScore"], context)
        payload["metadata"] = {
            "timestamp": utc_now().isoformat(),
            "version": ANALYSIS_VERSION,
            "model": completion.model,
            "cachedTokens": completion.usage.cache_read_tokens,
            "costEstimate": call_metrics["cost_usd"],
            "metrics": call_metrics,
        }
        try:
            analysis = PitchAnalysis.model_validate(payload)
        except PydanticValidationError as exc:
            raise MalformedModelOutput(f"Analysis payload has an unexpected shape: {exc}") from exc

        logger.info(
            "analysis_done score=%s fatal_errors=%s latency_ms=%s",
            analysis.overall_score,
            len(analysis.fatal_errors),
            latency_ms,
        )
        return analysis
