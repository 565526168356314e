from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConversationTurn:
    user_id: str
    project_id: str
    phase_id: int
    turn_number: int
    user_message: str
    model_reply: str
    extracted_thinking: Optional[str] = None
    extracted_analysis: Optional[str] = None
    recorded_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class PhaseStatus:
    complete: bool
    completion_score: int
    missing_elements: List[str]


@dataclass(frozen=True)
class CoachingReply:
    visible: str
    has_xml_structure: bool
    thinking: Optional[str] = None
    analysis: Optional[str] = None
    question: Optional[str] = None
    progress_note: Optional[str] = None


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0


@dataclass(frozen=True)
class Completion:
    text: str
    usage: TokenUsage
    model: str


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class ChatMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str


class Identity(CamelModel):
    user_id: str
    project_id: str = "default"


class PitchErrorContext(CamelModel):
    title: str = ""
    impact: str = ""
    evidence: Optional[str] = None


class PitchContext(CamelModel):
    draft: str = ""
    score: Optional[int] = None
    errors: List[PitchErrorContext] = Field(default_factory=list)


class DiagnosticContext(CamelModel):
    purpose: Optional[str] = Field(default=None, validation_alias=AliasChoices("purpose", "pitch_purpose"))
    stage: Optional[str] = Field(default=None, validation_alias=AliasChoices("stage", "business_stage"))
    audience: Optional[str] = Field(default=None, validation_alias=AliasChoices("audience", "target_audience"))
    problem: Optional[str] = None
    solution: Optional[str] = None
    cta_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("ctaType", "cta_type"))
    meetings_per_year: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("meetingsPerYear", "meetings_per_year")
    )
    avg_deal_size: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("avgDealSize", "avg_deal_size")
    )


class AnalyzePitchRequest(CamelModel):
    pitch_text: Optional[str] = None
    diagnostic_context: Optional[DiagnosticContext] = Field(
        default=None,
        validation_alias=AliasChoices("diagnosticContext", "diagnosticData"),
    )


class ChatTurnRequest(CamelModel):
    phase_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("phaseId", "phase"))
    message: Optional[str] = None
    conversation_history: Optional[List[ChatMessage]] = None
    pitch_context: Optional[PitchContext] = None
    identity: Optional[Identity] = None


class EvaluatePhaseRequest(CamelModel):
    phase_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("phaseId", "phase"))
    conversation_history: Optional[List[ChatMessage]] = None


class AdaptiveQuestionRequest(CamelModel):
    # Loose on purpose: this route answers with a fallback question instead of a 400.
    step_id: Any = Field(default=None, validation_alias=AliasChoices("stepId", "stepNumber"))
    context: Any = None


class DiagnosticFormRequest(CamelModel):
    form_data: Any = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class FatalError(CamelModel):
    id: str
    title: str
    severity: Literal["critical", "high", "medium"]
    evidence_quote: str
    impact_explanation: str
    fix: str
    scientific_basis: Optional[str] = None
    cost_estimate_eur: Optional[int] = Field(default=None, alias="costEstimateEUR")


class FinancialImpactEstimate(CamelModel):
    annual_loss_eur: int = Field(alias="annualLossEUR")
    weekly_loss_eur: int = Field(alias="weeklyLossEUR")
    current_success_rate_pct: int
    optimal_success_rate_pct: int
    lost_deals_per_year: float
    avg_deal_size_eur: int = Field(alias="avgDealSizeEUR")


class PitchAnalysis(CamelModel):
    overall_score: int
    dimension_scores: Dict[str, int]
    fatal_errors: List[FatalError]
    strengths: List[str]
    next_steps: str
    financial_impact: Optional[FinancialImpactEstimate] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    fallback: bool = False


class ChatTurnResponse(CamelModel):
    content: str
    phase_complete: bool
    completion_score: int
    missing_elements: List[str]
    metadata: Dict[str, Any]
    metrics: Dict[str, Any]


class PhaseEvaluation(CamelModel):
    score: int
    can_proceed: bool
    must_meet_results: Dict[str, bool]
    should_meet_results: Dict[str, bool]
    gaps: List[str]
    feedback: str
    next_steps: str


class AdaptiveQuestion(CamelModel):
    question: str
    description: str
    suggested_answers: List[str]
    fallback: bool = False


class DiagnosticIssue(CamelModel):
    severity: Literal["critical", "warning", "good"]
    title: str
    description: str
    impact: str
    workshop_phase: str = "-"


class PersonalizedDiagnostic(CamelModel):
    critical_issues: int
    warning_issues: int
    strong_areas: int
    issues: List[DiagnosticIssue]
    fallback: bool = False


class TurnHistoryResponse(CamelModel):
    phase_id: int
    next_turn: int
    storage: str
    messages: List[ChatMessage]
