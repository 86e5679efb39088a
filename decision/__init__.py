"""
Confidence Decision Package

Replaces raw AI confidence numbers with tiers an operator can act on.

Confidence Score Problem:
- "0.73 confidence" means little on a data-entry form
- Operators need to know which fields to double-check

Tier Solution:
- HIGH (≥ 90): accept
- MEDIUM (≥ 70): accept, glance at it
- LOW (≥ 50): review
- FAILED (< 50): re-enter

Usage:
    from decision import TierConfig, ConfidenceTier

    tiers = TierConfig()
    tiers.tier_for(92)        # ConfidenceTier.HIGH
    tiers.tier_for(55)        # ConfidenceTier.LOW
"""

from .confidence import (
    ConfidenceTier,
    TierConfig,
    MappingSummary,
    to_percent,
)

__all__ = [
    'ConfidenceTier',
    'TierConfig',
    'MappingSummary',
    'to_percent',
]
