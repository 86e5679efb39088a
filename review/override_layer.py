"""
Manual Override Layer

Operator corrections on top of the reconciled draft.

An override is terminal for the session: it replaces the AI-derived value,
is reported with full confidence, and survives later reconciliation passes
until it is explicitly cleared. Clearing restores the last AI-derived value
for that field.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from decision import ConfidenceTier
from mapping import to_amount, to_date
from reconcile import FieldSource, MappedField, ReconciliationResult, manual_field
from schema import MappedValue, TargetField, ValueKind, empty_value, get_field

logger = logging.getLogger(__name__)


def coerce_value(target: TargetField, value: Any, label: str = '') -> MappedValue:
    """
    Wrap an operator-entered value according to the field's kind.

    Unparseable dates are kept as typed so validation can flag them.
    """
    if isinstance(value, MappedValue):
        return value

    if target.kind == ValueKind.NUMBER:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return MappedValue.number(value)
        amount = to_amount(value)
        return MappedValue.number(int(amount) if float(amount).is_integer() else amount)

    if target.kind == ValueKind.DATE:
        text = '' if value is None else str(value).strip()
        return MappedValue.date((to_date(text) or text) if text else '')

    if target.kind == ValueKind.MASTER_REF:
        return MappedValue.master_ref(target.category, value, label)

    return MappedValue.text('' if value is None else str(value).strip())


class OverrideLayer:
    """
    Tracks manual overrides for one wizard session.

    Usage:
        layer = OverrideLayer(result)
        layer.override('numeroPoliza', 'AB-99999')
        layer.override('combustible', 'DIS', label='DISEL')

        result = layer.apply(reconciler.reconcile(fields))   # keeps overrides, refreshes AI values

        layer.clear('numeroPoliza')      # back to the AI value
    """

    def __init__(self, result: Optional[ReconciliationResult] = None, resolver=None):
        self.resolver = resolver
        self._overrides: Dict[str, MappedField] = {}
        self._ai_fields: Dict[str, MappedField] = {}
        self.result: Optional[ReconciliationResult] = None
        if result is not None:
            self.apply(result)

    def override(self, field_name: str, value: Any, label: str = '') -> MappedField:
        """
        Set a manual value for a field.

        Raises:
            KeyError: If the field is not part of the policy schema
        """
        target = get_field(field_name)

        if target.kind == ValueKind.MASTER_REF and not label and self.resolver is not None:
            label = self.resolver.label_for(target.category, value)

        previous = self._current(field_name)
        mapped = manual_field(
            field_name,
            coerce_value(target, value, label),
            extracted_value=previous.extracted_value if previous else '',
        )

        self._overrides[field_name] = mapped
        if self.result is not None:
            self.result = self.result.with_field(mapped)

        logger.info(f"Manual override for {field_name}")
        return mapped

    def clear(self, field_name: str) -> Optional[MappedField]:
        """
        Remove an override and restore the last AI-derived value.

        Returns:
            The restored field, or None if nothing was overridden
        """
        get_field(field_name)
        if self._overrides.pop(field_name, None) is None:
            return None

        restored = self._ai_fields.get(field_name) or self._empty_field(field_name)
        if self.result is not None:
            self.result = self.result.with_field(restored)

        logger.info(f"Cleared override for {field_name}")
        return restored

    def clear_all(self) -> List[str]:
        cleared = list(self._overrides)
        for name in cleared:
            self.clear(name)
        return cleared

    def is_overridden(self, field_name: str) -> bool:
        return field_name in self._overrides

    def overrides(self) -> Dict[str, MappedField]:
        """Current overrides, in the order they were made."""
        return dict(self._overrides)

    def apply(self, result: ReconciliationResult) -> ReconciliationResult:
        """
        Lay the overrides over a reconciliation result.

        Non-manual fields of ``result`` become the new AI baseline for clear().
        """
        for name, mapped in result.mapped.items():
            if mapped.source != FieldSource.MANUAL:
                self._ai_fields[name] = mapped

        for mapped in self._overrides.values():
            result = result.with_field(mapped)

        self.result = result
        return result

    def _current(self, field_name: str) -> Optional[MappedField]:
        if field_name in self._overrides:
            return self._overrides[field_name]
        if self.result is not None:
            return self.result.mapped.get(field_name)
        return self._ai_fields.get(field_name)

    def _empty_field(self, field_name: str) -> MappedField:
        target = get_field(field_name)
        return MappedField(
            field_name=field_name,
            extracted_value='',
            mapped_value=empty_value(target),
            confidence=0,
            confidence_tier=ConfidenceTier.FAILED,
            requires_review=target.required,
            source=FieldSource.CALCULATED,
        )
