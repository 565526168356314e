import json

import pytest

from app.backend.analysis import (
    PitchAnalyzer,
    build_task_prompt,
    compute_financial_impact,
    js_round,
    normalize_analysis,
    success_rate_for,
)
from app.backend.errors import MalformedModelOutput, ValidationError
from app.backend.models import DiagnosticContext

from conftest import WEAK_PITCH, FakeLLMClient


STRONG_PITCH = (
    "Deutsche SaaS-Gründer verlieren durchschnittlich 70 Tage pro Deal durch inkonsistente Pitches. "
    "PitchPerfect bewertet Pitches mit 9 Frameworks. Buche jetzt deine 15-Minuten-Analyse."
)


def _model_reply(score=82, fatal_errors=None):
    body = {
        "dimensions": {
            "clarity": {"score": 85, "reasoning": "klar"},
            "emotional": {"score": 78, "reasoning": "gut"},
            "credibility": 80,
            "cta": {"score": "85"},
        },
        "fatalErrors": fatal_errors or [],
        "strengths": ["Durchgehende Quantifizierung"],
        "nextSteps": "Arbeite an der Delivery.",
    }
    # The model continues after the seeded '"overallScore":' key.
    return f" {score},\n" + json.dumps(body)[1:]


@pytest.mark.parametrize(
    "score, expected",
    [(0, 0.10), (29, 0.10), (30, 0.15), (40, 0.225), (50, 0.30), (70, 0.50), (85, 0.65), (100, 0.80)],
)
def test_success_rate_curve(score, expected):
    assert success_rate_for(score) == pytest.approx(expected)


def test_js_round_rounds_half_up():
    assert js_round(2.5) == 3
    assert js_round(-2.5) == -2
    assert js_round(3173.08) == 3173


def test_financial_impact_weak_pitch():
    impact = compute_financial_impact(18)
    assert impact.annual_loss_eur == 165000
    assert impact.weekly_loss_eur == 3173
    assert impact.current_success_rate_pct == 10
    assert impact.optimal_success_rate_pct == 65
    assert impact.lost_deals_per_year == 6.6
    assert impact.avg_deal_size_eur == 250000


@pytest.mark.parametrize(
    "score, annual, weekly, lost_deals",
    [(50, 315000, 6058, 4.2), (70, 225000, 4327, 1.8), (85, 0, 0, 0.0)],
)
def test_financial_impact_reference_points(score, annual, weekly, lost_deals):
    impact = compute_financial_impact(score)
    assert impact.annual_loss_eur == annual
    assert impact.weekly_loss_eur == weekly
    assert impact.lost_deals_per_year == lost_deals


def test_financial_impact_context_overrides():
    impact = compute_financial_impact(18, DiagnosticContext(meetingsPerYear=24, avgDealSize=100000))
    assert impact.annual_loss_eur == 132000
    assert impact.avg_deal_size_eur == 100000


def test_financial_impact_wire_names():
    payload = compute_financial_impact(18).model_dump(by_alias=True)
    assert set(payload) == {
        "annualLossEUR",
        "weeklyLossEUR",
        "currentSuccessRatePct",
        "optimalSuccessRatePct",
        "lostDealsPerYear",
        "avgDealSizeEUR",
    }


@pytest.mark.parametrize("text", [None, "", "   ", "Zu kurz für eine Analyse."])
def test_short_pitch_is_rejected_before_model_call(text):
    llm = FakeLLMClient()
    with pytest.raises(ValidationError, match="Mindestens 50 Zeichen"):
        PitchAnalyzer(llm, timeout_seconds=15).analyze(text)
    assert llm.calls == []


def test_model_analysis_is_normalised():
    fatal = [
        {
            "id": "vague_cta",
            "title": "Unklarer CTA",
            "severity": "blocker",
            "evidence": "Buche jetzt",
            "impact": "Hürde",
            "fix": "Link ergänzen",
            "costEstimate": "17.000 €",
        }
    ]
    llm = FakeLLMClient([_model_reply(score=64, fatal_errors=fatal)])
    analysis = PitchAnalyzer(llm, timeout_seconds=15).analyze(STRONG_PITCH)

    call = llm.calls[0]
    assert call["prefill"] == '{\n  "overallScore":'
    assert call["temperature"] == 0.3
    assert call["max_tokens"] == 3000
    assert [block.cache for block in call["system_blocks"]] == [True, True]

    assert analysis.fallback is False
    assert analysis.overall_score == 64
    assert analysis.dimension_scores == {"clarity": 85, "emotional": 78, "credibility": 80, "cta": 85}
    error = analysis.fatal_errors[0]
    assert error.severity == "medium"
    assert error.evidence_quote == "Buche jetzt"
    assert error.cost_estimate_eur == 17000
    assert analysis.financial_impact == compute_financial_impact(64)
    assert analysis.metadata["costEstimate"] == "0.006000"


def test_fatal_errors_are_capped_at_five():
    fatal = [
        {"id": f"e{index}", "title": "t", "severity": "high", "evidence": "x", "impact": "y", "fix": "z"}
        for index in range(7)
    ]
    llm = FakeLLMClient([_model_reply(score=20, fatal_errors=fatal)])
    analysis = PitchAnalyzer(llm, timeout_seconds=15).analyze(STRONG_PITCH)
    assert len(analysis.fatal_errors) == 5


def test_weak_pitch_without_credentials_returns_fallback():
    llm = FakeLLMClient(configured=False)
    analysis = PitchAnalyzer(llm, timeout_seconds=15).analyze(WEAK_PITCH)

    assert analysis.fallback is True
    assert analysis.overall_score < 30
    assert len(analysis.fatal_errors) >= 3
    for error in analysis.fatal_errors:
        assert error.evidence_quote
        assert error.evidence_quote in WEAK_PITCH
        assert isinstance(error.cost_estimate_eur, int)
    assert analysis.financial_impact.annual_loss_eur == 165000


@pytest.mark.parametrize("reply", ["das ist kein json", MalformedModelOutput("kaputt")])
def test_unparseable_or_failed_model_reply_falls_back(reply):
    llm = FakeLLMClient([reply])
    analysis = PitchAnalyzer(llm, timeout_seconds=15).analyze(WEAK_PITCH)
    assert analysis.fallback is True
    assert analysis.metadata["fallbackReason"] == "MalformedModelOutput"


def test_timeout_falls_back():
    analysis = PitchAnalyzer(FakeLLMClient(), timeout_seconds=15).analyze(WEAK_PITCH)
    assert analysis.fallback is True
    assert analysis.metadata["fallbackReason"] == "ModelUnavailable"


@pytest.mark.parametrize(
    "reply",
    [' Infinity, "fatalErrors": []}', ' NaN, "fatalErrors": []}', ' 1e999, "fatalErrors": []}'],
)
def test_non_finite_score_falls_back(reply):
    analysis = PitchAnalyzer(FakeLLMClient([reply]), timeout_seconds=15).analyze(WEAK_PITCH)
    assert analysis.fallback is True
    assert analysis.overall_score == 18


def test_normalise_drops_non_finite_numbers():
    payload = normalize_analysis(
        {
            "overallScore": float("inf"),
            "fatalErrors": [
                {"id": "a", "title": "t", "severity": "high", "costEstimate": float("nan")},
                {"id": "b", "title": "t", "severity": "high", "costEstimate": float("-inf")},
                {"id": "c", "title": "t", "severity": "high", "costEstimate": "9" * 40},
            ],
        }
    )
    assert payload["overallScore"] == 50
    assert [error["costEstimateEUR"] for error in payload["fatalErrors"]] == [None, None, None]


def test_task_prompt_keeps_braces_in_pitch_verbatim():
    pitch = "Unser Tool ersetzt {stage} und {audience} durch echte Zahlen."
    prompt = build_task_prompt(pitch, DiagnosticContext(stage="Series A"))
    assert pitch in prompt
    assert "Series A" in prompt
