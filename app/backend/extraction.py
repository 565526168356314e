"""Best-effort extraction of structured fields from model text.

Model output follows the requested template most of the time but nothing
guarantees it. Every helper here degrades to ``None``/empty/defaults instead
of raising, except :func:`parse_json_with_prefill`, whose callers decide
whether a parse failure is fatal or replaced by fallback content.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, List, Optional

from .constants import DEFAULT_COMPLETION_SCORE, KEYWORD_COMPLETION_SCORE
from .errors import MalformedModelOutput
from .models import CoachingReply, PhaseStatus


INTERNAL_TAGS = ("thinking", "analysis", "question", "progress_note", "phase_status")
COMPLETION_KEYWORDS = (
    "phase abgeschlossen",
    "bereit für die nächste",
    "nächste phase",
)
_TAG_PATTERN = re.compile(r"</?[A-Za-z_][\w:.-]*(?:\s[^<>]*)?/?>")
_WHITESPACE = re.compile(r"\s+")
_ITEM_PATTERN = re.compile(r"<item>(.*?)</item>", re.DOTALL)
_FENCE_OPEN = re.compile(r"^\s*```(?:json|JSON)?[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")
_TRUE_VALUES = {"true", "yes", "ja", "1"}


def extract_tag(text: Optional[str], tag_name: str) -> Optional[str]:
    if not text:
        return None
    pattern = re.compile(rf"<{re.escape(tag_name)}>(.*?)</{re.escape(tag_name)}>", re.DOTALL)
    match = pattern.search(text)
    return match.group(1).strip() if match else None


def extract_list(text: Optional[str], list_tag_name: str) -> List[str]:
    container = extract_tag(text, list_tag_name)
    if not container:
        return []
    items = [item.strip() for item in _ITEM_PATTERN.findall(container)]
    return [item for item in items if item]


def extract_delimited_list(text: Optional[str], tag_name: str) -> List[str]:
    content = extract_tag(text, tag_name)
    if not content:
        return []
    return [token.strip() for token in content.split(",") if token.strip()]


def strip_tags(text: Optional[str]) -> str:
    return _TAG_PATTERN.sub("", text or "").strip()


def remove_blocks(text: str, tag_names: tuple[str, ...] = INTERNAL_TAGS) -> str:
    cleaned = text
    for tag_name in tag_names:
        cleaned = re.sub(
            rf"<{re.escape(tag_name)}>.*?</{re.escape(tag_name)}>",
            "",
            cleaned,
            flags=re.DOTALL,
        )
    return cleaned


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def apply_prefill(raw_text: str, prefill: Optional[str]) -> str:
    """Restore the seed fragment the model continued from.

    Some gateways echo the seed back; it is only prepended when missing.
    """
    text = raw_text or ""
    if not prefill:
        return text
    if _WHITESPACE.sub("", text).startswith(_WHITESPACE.sub("", prefill)):
        return text
    return prefill + text


def _reject_constant(name: str) -> Any:
    raise MalformedModelOutput(f"Model JSON contains a non-finite number: {name}.")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        _reject_constant(text)
    return value


def _loads(candidate: str) -> Any:
    return json.loads(candidate, parse_float=_finite_float, parse_constant=_reject_constant)


def parse_json_with_prefill(raw_text: str, prefill: Optional[str] = None) -> dict:
    candidate = apply_prefill(strip_code_fences(raw_text), prefill)
    try:
        parsed: Any = _loads(candidate)
    except json.JSONDecodeError:
        start = candidate.find("{")
        end = candidate.rfind("}")
        if start == -1 or end <= start:
            raise MalformedModelOutput("Model output is not valid JSON.")
        try:
            parsed = _loads(candidate[start : end + 1])
        except ValueError as exc:
            raise MalformedModelOutput("Model output could not be repaired into valid JSON.") from exc
    except ValueError as exc:
        # Integer literals past the interpreter's digit limit.
        raise MalformedModelOutput(f"Model JSON contains an unreadable number: {exc}") from exc

    if not isinstance(parsed, dict):
        raise MalformedModelOutput("Model JSON root must be an object.")
    return parsed


def clamp_score(value: Any, default: int = DEFAULT_COMPLETION_SCORE) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return max(0, min(100, int(round(number))))


def parse_coaching_reply(raw_text: Optional[str]) -> CoachingReply:
    text = raw_text or ""
    response = extract_tag(text, "response")
    if response is not None:
        visible = strip_tags(response)
    else:
        visible = strip_tags(remove_blocks(text))
    return CoachingReply(
        visible=visible,
        has_xml_structure=response is not None,
        thinking=extract_tag(text, "thinking"),
        analysis=extract_tag(text, "analysis"),
        question=extract_tag(text, "question"),
        progress_note=extract_tag(text, "progress_note"),
    )


def _keyword_status(text: str) -> PhaseStatus:
    lowered = text.lower()
    complete = any(keyword in lowered for keyword in COMPLETION_KEYWORDS)
    return PhaseStatus(
        complete=complete,
        completion_score=KEYWORD_COMPLETION_SCORE if complete else DEFAULT_COMPLETION_SCORE,
        missing_elements=[],
    )


def extract_phase_status(raw_text: Optional[str]) -> PhaseStatus:
    text = raw_text or ""
    block = extract_tag(text, "phase_status")
    if block is None:
        return _keyword_status(text)

    complete_raw = extract_tag(block, "complete")
    complete = (complete_raw or "").strip().lower() in _TRUE_VALUES
    score = clamp_score(extract_tag(block, "completion_score"))

    missing = extract_list(block, "missing_elements")
    if not missing:
        missing = [strip_tags(token) for token in extract_delimited_list(block, "missing_elements")]
        missing = [token for token in missing if token]
    return PhaseStatus(complete=complete, completion_score=score, missing_elements=missing)
