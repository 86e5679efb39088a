"""
Confidence Tiers

Turns a 0-100 confidence into an actionable tier:

- HIGH: ≥ 90, accepted as-is
- MEDIUM: ≥ 70, accepted but worth a glance
- LOW: ≥ 50, needs review
- FAILED: < 50, cannot be trusted

Thresholds live in TierConfig so deployments can tune them without code
changes. MappingSummary aggregates tiers across a reconciliation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterable

logger = logging.getLogger(__name__)


class ConfidenceTier(Enum):
    """Bucketed trust level of a mapped field."""

    HIGH = auto()
    MEDIUM = auto()
    LOW = auto()
    FAILED = auto()

    @property
    def is_acceptable(self) -> bool:
        """Whether the value can be used without review."""
        return self in (ConfidenceTier.HIGH, ConfidenceTier.MEDIUM)

    @property
    def needs_review(self) -> bool:
        return self != ConfidenceTier.HIGH

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def display_name(self) -> str:
        names = {
            ConfidenceTier.HIGH: "✓ Alta",
            ConfidenceTier.MEDIUM: "○ Media",
            ConfidenceTier.LOW: "⚠ Baja",
            ConfidenceTier.FAILED: "✗ Fallida",
        }
        return names.get(self, self.name)

    @classmethod
    def from_key(cls, key: str) -> 'ConfidenceTier':
        return cls[key.upper()]


@dataclass
class TierConfig:
    """Thresholds (0-100) for confidence tiers."""
    high_threshold: float = 90
    medium_threshold: float = 70
    low_threshold: float = 50

    def tier_for(self, confidence: float) -> ConfidenceTier:
        """Convert a 0-100 confidence to a tier."""
        if confidence >= self.high_threshold:
            return ConfidenceTier.HIGH
        elif confidence >= self.medium_threshold:
            return ConfidenceTier.MEDIUM
        elif confidence >= self.low_threshold:
            return ConfidenceTier.LOW
        else:
            return ConfidenceTier.FAILED

    def to_dict(self) -> Dict[str, float]:
        return {
            'high_threshold': self.high_threshold,
            'medium_threshold': self.medium_threshold,
            'low_threshold': self.low_threshold,
        }


def to_percent(confidence: Any) -> int:
    """
    Normalize a confidence to an integer 0-100.

    Values in 0..1 are fractions; larger values are already percentages.
    """
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        return 0
    if value <= 1.0:
        value *= 100
    return int(round(max(0.0, min(100.0, value))))


@dataclass
class MappingSummary:
    """
    Aggregate statistics for one reconciliation.
    """
    total_fields: int = 0
    mapped_fields: int = 0
    tier_counts: Dict[str, int] = field(default_factory=lambda: {
        'high': 0, 'medium': 0, 'low': 0, 'failed': 0,
    })
    average_confidence: float = 0.0
    unmapped_inputs: int = 0

    @property
    def success_percentage(self) -> int:
        if not self.total_fields:
            return 0
        return int(round(self.mapped_fields * 100 / self.total_fields))

    @classmethod
    def build(
        cls,
        confidences: Iterable[int],
        total_fields: int,
        tier_config: TierConfig,
        unmapped_inputs: int = 0,
    ) -> 'MappingSummary':
        """Summarize the confidences of the fields that received a value."""
        summary = cls(total_fields=total_fields, unmapped_inputs=unmapped_inputs)
        values = list(confidences)
        for confidence in values:
            summary.tier_counts[tier_config.tier_for(confidence).key] += 1
        summary.mapped_fields = len(values)
        if values:
            summary.average_confidence = round(sum(values) / len(values), 1)
        return summary

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_fields': self.total_fields,
            'mapped_fields': self.mapped_fields,
            'success_percentage': self.success_percentage,
            'average_confidence': self.average_confidence,
            'high_confidence': self.tier_counts['high'],
            'medium_confidence': self.tier_counts['medium'],
            'low_confidence': self.tier_counts['low'],
            'failed': self.tier_counts['failed'],
            'unmapped_inputs': self.unmapped_inputs,
        }
