from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from . import fallbacks
from .errors import CoachError, MalformedModelOutput
from .extraction import parse_json_with_prefill
from .llm_client import LLMClient, SystemBlock
from .models import DiagnosticIssue, PersonalizedDiagnostic
from .prompts.diagnostic import DIAGNOSTIC_VERSION, QUESTION_LABELS, SYSTEM_PROMPT, USER_PROMPT_TEMPLATE


logger = logging.getLogger("uvicorn.error")

DIAGNOSTIC_TEMPERATURE = 0.5
DIAGNOSTIC_MAX_TOKENS = 2000
SEVERITY_ALIASES = {"high": "warning", "medium": "warning", "low": "good", "strong": "good"}


def build_diagnostic_prompt(form_data: Dict[str, Any]) -> str:
    answers = "".join(
        f"{label}: {form_data[key]}\n\n" for key, label in QUESTION_LABELS if form_data.get(key)
    )
    return (
        USER_PROMPT_TEMPLATE.replace("{pitch_type}", str(form_data.get("pitchType") or "nicht angegeben"))
        .replace("{stage}", str(form_data.get("stage") or "nicht angegeben"))
        .replace("{pitch_draft}", str(form_data.get("pitchDraft") or "[Kein Pitch vorhanden]"))
        .replace("{answers}", answers)
    )


def fallback_diagnostic() -> PersonalizedDiagnostic:
    payload = fallbacks.get_fallback(fallbacks.DIAGNOSTIC)
    payload["fallback"] = True
    return PersonalizedDiagnostic.model_validate(payload)


def _normalize_issue(raw: Dict[str, Any]) -> Dict[str, Any]:
    severity = str(raw.get("severity") or "").strip().lower()
    return {
        "severity": SEVERITY_ALIASES.get(severity, severity),
        "title": str(raw.get("title") or "").strip(),
        "description": str(raw.get("description") or "").strip(),
        "impact": str(raw.get("impact") or "").strip(),
        "workshopPhase": str(raw.get("workshopPhase") or "-").strip(),
    }


def normalize_diagnostic(raw: Dict[str, Any]) -> PersonalizedDiagnostic:
    issues_raw = raw.get("issues")
    if not isinstance(issues_raw, list) or not issues_raw:
        raise MalformedModelOutput("Diagnostic output has no issues list.")
    try:
        issues: List[DiagnosticIssue] = [
            DiagnosticIssue.model_validate(_normalize_issue(item)) for item in issues_raw if isinstance(item, dict)
        ]
    except PydanticValidationError as exc:
        raise MalformedModelOutput(f"Diagnostic issue has an unexpected shape: {exc}") from exc
    if not issues:
        raise MalformedModelOutput("Diagnostic output has no usable issues.")
    # Counts are derived from the issues so they always agree with the list.
    return PersonalizedDiagnostic(
        critical_issues=sum(1 for issue in issues if issue.severity == "critical"),
        warning_issues=sum(1 for issue in issues if issue.severity == "warning"),
        strong_areas=sum(1 for issue in issues if issue.severity == "good"),
        issues=issues,
    )


class DiagnosticGenerator:
    """Turn questionnaire answers into a personalised diagnostic. Never raises."""

    def __init__(self, llm: LLMClient, timeout_seconds: float) -> None:
        self.llm = llm
        self.timeout_seconds = timeout_seconds

    def generate(self, form_data: Any) -> PersonalizedDiagnostic:
        if not isinstance(form_data, dict) or not form_data:
            logger.warning("diagnostic_fallback reason=missing_form_data")
            return fallback_diagnostic()
        if not self.llm.configured:
            logger.warning("diagnostic_fallback reason=ConfigurationMissing")
            return fallback_diagnostic()

        try:
            completion = self.llm.complete(
                system_blocks=[SystemBlock(SYSTEM_PROMPT, cache=True)],
                messages=[{"role": "user", "content": build_diagnostic_prompt(form_data)}],
                max_tokens=DIAGNOSTIC_MAX_TOKENS,
                temperature=DIAGNOSTIC_TEMPERATURE,
                timeout_seconds=self.timeout_seconds,
            )
            diagnostic = normalize_diagnostic(parse_json_with_prefill(completion.text))
        except CoachError as exc:
            logger.warning("diagnostic_fallback reason=%s error=%s", type(exc).__name__, exc)
            return fallback_diagnostic()

        logger.info(
            "diagnostic_done issues=%s critical=%s version=%s",
            len(diagnostic.issues),
            diagnostic.critical_issues,
            DIAGNOSTIC_VERSION,
        )
        return diagnostic
