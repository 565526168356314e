from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol


logger = logging.getLogger("uvicorn.error")

FREE_TIER = "free"
FIRST_WORKSHOP_PHASE = 2


@dataclass(frozen=True)
class TierFeatures:
    workshop_phases: int
    export_format: Optional[str]


TIER_FEATURES: Dict[str, TierFeatures] = {
    "free": TierFeatures(workshop_phases=1, export_format=None),
    "basic": TierFeatures(workshop_phases=6, export_format="basic"),
    "pro": TierFeatures(workshop_phases=12, export_format="advanced"),
}


class AccessPolicy(Protocol):
    def can_access_phase(self, user_id: Optional[str], phase_id: int) -> bool:
        ...


class AllowAllAccess:
    def can_access_phase(self, user_id: Optional[str], phase_id: int) -> bool:
        return True


class TierAccessPolicy:
    """Gate workshop phases by subscription tier.

    ``tier_lookup`` maps a user id to a tier name. Anonymous callers, unknown
    tiers and lookup failures are treated as the free tier.
    """

    def __init__(self, tier_lookup: Callable[[str], Optional[str]]) -> None:
        self.tier_lookup = tier_lookup

    def tier_for(self, user_id: Optional[str]) -> str:
        if not user_id:
            return FREE_TIER
        try:
            tier = (self.tier_lookup(user_id) or "").strip().lower()
        except Exception as exc:
            logger.warning("user_id=%s tier_lookup_failed error=%s", user_id, exc)
            return FREE_TIER
        return tier if tier in TIER_FEATURES else FREE_TIER

    def features_for(self, user_id: Optional[str]) -> TierFeatures:
        return TIER_FEATURES[self.tier_for(user_id)]

    def can_access_phase(self, user_id: Optional[str], phase_id: int) -> bool:
        workshop_index = phase_id - FIRST_WORKSHOP_PHASE + 1
        if workshop_index < 1:
            return True
        return workshop_index <= self.features_for(user_id).workshop_phases
