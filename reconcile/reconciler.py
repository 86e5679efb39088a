"""
Extraction Reconciler

Merges the fields recognized by the document-AI service into the canonical
policy schema.

Algorithm:
1. Look up the mapping rules for each extracted field name
2. Fields without a rule are kept aside as "unmapped" (never dropped)
3. Transform the raw value (or resolve it against the vocabulary for
   master-data targets) and run the rule's validator
4. Per target field, keep the best candidate: valid beats invalid, then
   higher rule priority, then earlier input position
5. Fields with no candidate get the schema's empty value or the configured
   default
6. Manually overridden fields are carried over untouched

The reconciler never raises for malformed input. Invalid values are written
and flagged so the operator can see and fix them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Dict, Iterable, List, Mapping, Optional

from decision import ConfidenceTier, MappingSummary, TierConfig, to_percent
from mapping import FieldMappingRule, FieldMappingTable, safe_transform
from schema import POLICY_FIELDS, POLICY_SCHEMA, DraftPolicyRecord, MappedValue, TargetField, ValueKind
from vocabulary import Resolution, VelneoDefaults, VocabularyResolver

from .adapters import ExtractedField

logger = logging.getLogger(__name__)


class FieldSource(Enum):
    """Where a mapped value came from."""
    MANUAL = auto()       # Operator override
    AZURE = auto()        # Document-AI extraction
    CALCULATED = auto()   # Default or derived

    @property
    def key(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class MappedField:
    """
    The reconciled state of one canonical field.
    """
    field_name: str
    extracted_value: str
    mapped_value: MappedValue
    confidence: int                       # 0-100
    confidence_tier: ConfidenceTier
    requires_review: bool
    source: FieldSource
    is_valid: bool = True
    source_name: str = ''                 # External field name that won
    resolution: Optional[str] = None      # Vocabulary match strategy, if any

    @property
    def value(self) -> Any:
        return self.mapped_value.value

    @property
    def is_manual(self) -> bool:
        return self.source == FieldSource.MANUAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field': self.field_name,
            'extractedValue': self.extracted_value,
            'mappedValue': self.mapped_value.to_dict(),
            'confidence': self.confidence,
            'confidenceTier': self.confidence_tier.key,
            'requiresReview': self.requires_review,
            'source': self.source.key,
            'valid': self.is_valid,
            'sourceName': self.source_name,
            'resolution': self.resolution,
        }


@dataclass(frozen=True)
class _Candidate:
    mapped: MappedField
    priority: int
    position: int

    def beats(self, other: '_Candidate') -> bool:
        """Strictly better: ties keep the earlier candidate."""
        mine = (self.mapped.is_valid, self.priority)
        theirs = (other.mapped.is_valid, other.priority)
        if mine != theirs:
            return mine > theirs
        return self.position < other.position


@dataclass
class ReconciliationResult:
    """
    Complete result of a reconciliation pass.
    """
    draft: DraftPolicyRecord
    mapped: Dict[str, MappedField]
    unmapped: List[ExtractedField] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    summary: MappingSummary = field(default_factory=MappingSummary)

    @property
    def invalid_fields(self) -> List[str]:
        return [name for name, m in self.mapped.items() if not m.is_valid]

    @property
    def review_fields(self) -> List[str]:
        return [name for name, m in self.mapped.items() if m.requires_review]

    def with_field(self, mapped_field: MappedField) -> 'ReconciliationResult':
        """Return a new result with one field replaced, draft included."""
        mapped = dict(self.mapped)
        mapped[mapped_field.field_name] = mapped_field
        draft = self.draft.with_value(mapped_field.field_name, mapped_field.mapped_value)
        return replace(self, mapped=mapped, draft=draft)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'draft': self.draft.to_dict(),
            'mapped': {name: m.to_dict() for name, m in self.mapped.items()},
            'unmapped': [f.to_dict() for f in self.unmapped],
            'warnings': list(self.warnings),
            'summary': self.summary.to_dict(),
        }


class ExtractionReconciler:
    """
    Reconciles extracted fields against the mapping table and vocabulary.

    Usage:
        reconciler = ExtractionReconciler(FieldMappingTable.default(), resolver)
        result = reconciler.reconcile(normalize_ai_payload(ai_response))

        result.draft.get('numeroPoliza')
        result.mapped['numeroPoliza'].confidence_tier
        result.unmapped      # fields no rule recognized
    """

    def __init__(
        self,
        table: Optional[FieldMappingTable] = None,
        resolver: Optional[VocabularyResolver] = None,
        defaults: Optional[VelneoDefaults] = None,
        tier_config: Optional[TierConfig] = None,
    ):
        self.table = table or FieldMappingTable.default()
        self.defaults = defaults or (resolver.defaults if resolver else VelneoDefaults())
        self.resolver = resolver or VocabularyResolver(defaults=self.defaults)
        self.tier_config = tier_config or TierConfig()

    def reconcile(
        self,
        extracted: Iterable[ExtractedField],
        overrides: Optional[Mapping[str, MappedField]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> ReconciliationResult:
        """
        Reconcile extracted fields into a complete draft.

        Args:
            extracted: Fields from the document-AI adapter, in document order
            overrides: Current mapped fields; manual ones are kept as-is
            context: Wizard context for the draft (client_id, company_id, ...)

        Returns:
            ReconciliationResult with a value for every schema field
        """
        best: Dict[str, _Candidate] = {}
        unmapped: List[ExtractedField] = []
        warnings: List[str] = []

        for position, extracted_field in enumerate(extracted or []):
            rules = self.table.rules_for(extracted_field.name)
            if not rules:
                unmapped.append(extracted_field)
                warnings.append(f"Campo no mapeado: {extracted_field.name}")
                continue

            for rule in rules:
                candidate = self._evaluate(rule, extracted_field, position)
                if not candidate.mapped.is_valid:
                    warnings.append(
                        f"Valor inválido para {extracted_field.name}: {extracted_field.raw_value}"
                    )
                current = best.get(rule.target_field)
                if current is None or candidate.beats(current):
                    best[rule.target_field] = candidate

        manual = {
            name: m for name, m in (overrides or {}).items()
            if m.source == FieldSource.MANUAL and name in POLICY_SCHEMA
        }

        mapped: Dict[str, MappedField] = {}
        for target in POLICY_FIELDS:
            if target.name in manual:
                mapped[target.name] = manual[target.name]
            elif target.name in best:
                mapped[target.name] = best[target.name].mapped
            else:
                mapped[target.name] = self._default_field(target)

        draft = DraftPolicyRecord(
            values={name: m.mapped_value for name, m in mapped.items()},
            **dict(context or {}),
        )

        summary = MappingSummary.build(
            (m.confidence for m in mapped.values() if m.source != FieldSource.CALCULATED),
            total_fields=len(self.table.targets()),
            tier_config=self.tier_config,
            unmapped_inputs=len(unmapped),
        )

        if unmapped:
            logger.warning(f"{len(unmapped)} extracted fields had no mapping rule")
        logger.info(
            f"Reconciled {summary.mapped_fields}/{summary.total_fields} fields "
            f"({summary.success_percentage}%)"
        )

        return ReconciliationResult(
            draft=draft,
            mapped=mapped,
            unmapped=unmapped,
            warnings=warnings,
            summary=summary,
        )

    def _evaluate(
        self,
        rule: FieldMappingRule,
        extracted_field: ExtractedField,
        position: int,
    ) -> _Candidate:
        target = POLICY_SCHEMA[rule.target_field]
        confidence = to_percent(extracted_field.confidence)
        tier = self.tier_config.tier_for(confidence)
        resolution: Optional[Resolution] = None

        if rule.uses_vocabulary:
            text = safe_transform(rule.transform, extracted_field.raw_value, fallback='')
            resolution = self.resolver.resolve_detailed(rule.category, text)
            value = MappedValue.master_ref(rule.category, resolution.id, resolution.name)
            is_valid = self._check(rule, resolution.id)
        else:
            typed = safe_transform(rule.transform, extracted_field.raw_value, fallback=target.empty_value)
            value = MappedValue.for_field(target, typed)
            is_valid = self._check(rule, typed)

        requires_review = (
            tier.needs_review
            or not is_valid
            or (resolution is not None and resolution.is_fallback)
        )

        mapped = MappedField(
            field_name=target.name,
            extracted_value='' if extracted_field.raw_value is None else str(extracted_field.raw_value),
            mapped_value=value,
            confidence=confidence,
            confidence_tier=tier,
            requires_review=requires_review,
            source=FieldSource.AZURE,
            is_valid=is_valid,
            source_name=extracted_field.name,
            resolution=resolution.strategy.name.lower() if resolution else None,
        )
        return _Candidate(mapped=mapped, priority=rule.priority, position=position)

    def _check(self, rule: FieldMappingRule, value: Any) -> bool:
        try:
            return bool(rule.validate(value))
        except Exception as e:
            logger.warning(f"Validator {rule.validator_name} failed for {rule.target_field}: {e}")
            return False

    def _default_field(self, target: TargetField) -> MappedField:
        """A calculated field for targets nothing was extracted for."""
        text_defaults = self.defaults.text_defaults()

        if target.kind == ValueKind.MASTER_REF:
            resolution = self.resolver.resolve_detailed(target.category, '')
            value = MappedValue.master_ref(target.category, resolution.id, resolution.name)
        elif target.name in text_defaults:
            value = MappedValue.for_field(target, text_defaults[target.name])
        else:
            value = MappedValue.for_field(target, target.empty_value)

        return MappedField(
            field_name=target.name,
            extracted_value='',
            mapped_value=value,
            confidence=0,
            confidence_tier=ConfidenceTier.FAILED,
            requires_review=target.required,
            source=FieldSource.CALCULATED,
        )


def manual_field(target_name: str, value: MappedValue, extracted_value: str = '') -> MappedField:
    """A MappedField supplied by the operator."""
    return MappedField(
        field_name=target_name,
        extracted_value=extracted_value,
        mapped_value=value,
        confidence=100,
        confidence_tier=ConfidenceTier.HIGH,
        requires_review=False,
        source=FieldSource.MANUAL,
    )
