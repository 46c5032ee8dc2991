"""Bid admissibility rules and the policies that parameterise them."""

from .engine import Verdict, admissible, quota_reserve
from .policy import (
    COMBINED_POLICY,
    PER_TIER_POLICY,
    IncrementStep,
    QuotaRequirement,
    RulePolicy,
    build_policy,
)

__all__ = [
    "COMBINED_POLICY",
    "PER_TIER_POLICY",
    "IncrementStep",
    "QuotaRequirement",
    "RulePolicy",
    "Verdict",
    "admissible",
    "build_policy",
    "quota_reserve",
]
