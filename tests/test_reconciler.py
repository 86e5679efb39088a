"""
Tests for the extraction reconciler and the document-AI adapter.

Run with: pytest tests/ -v
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from decision import ConfidenceTier
from mapping import FieldMappingTable
from reconcile import (
    DocumentAIResult,
    ExtractedField,
    ExtractionReconciler,
    FieldSource,
    manual_field,
    normalize_ai_payload,
)
from schema import MappedValue
from vocabulary import VocabularyResolver

from policy_fixtures import ai_payload, build_vocabulary


class TestPayloadAdapter:
    """Tests for flattening the document-AI response shapes."""

    def test_array_shape(self):
        fields = normalize_ai_payload(ai_payload())
        assert len(fields) == 11
        assert fields[0] == ExtractedField('policy_number', 'ab-12345', 0.92)

    def test_object_shape_gets_default_confidence(self):
        fields = normalize_ai_payload({'extractedFields': {'poliza': 'AB-1', 'prima': '1.234,56'}})
        assert [f.name for f in fields] == ['poliza', 'prima']
        assert all(f.confidence == 0.8 for f in fields)

    def test_percent_confidence_scaled(self):
        fields = normalize_ai_payload({
            'extractedFields': [{'field': 'poliza', 'value': 'AB-1', 'confidence': 93}],
        })
        assert fields[0].confidence == pytest.approx(0.93)

    def test_null_values_dropped(self):
        fields = normalize_ai_payload({'fields': {'poliza': None, 'marca': {'value': 'FIAT'}}})
        assert [f.name for f in fields] == ['marca']

    def test_document_metadata(self):
        document = DocumentAIResult.model_validate({'archivo': 'x.pdf', 'porcentajeCompletitud': '75'})
        assert document.fileName == 'x.pdf'
        assert document.overallCompletenessPercent == 75.0
        assert document.fields == []


class TestExtractionReconciler:
    """Tests for candidate selection and draft construction."""

    def setup_method(self):
        self.reconciler = ExtractionReconciler(
            FieldMappingTable.default(),
            VocabularyResolver(build_vocabulary()),
        )

    def test_synonym_collision_keeps_first_at_equal_priority(self):
        result = self.reconciler.reconcile([
            ExtractedField('policy_number', 'AB-1234', 0.92),
            ExtractedField('numeroPoliza', 'XY-9999', 0.60),
        ])
        mapped = result.mapped['numeroPoliza']
        assert result.draft.get('numeroPoliza') == 'AB-1234'
        assert mapped.confidence == 92
        assert mapped.confidence_tier == ConfidenceTier.HIGH
        assert mapped.source_name == 'policy_number'

    @pytest.mark.parametrize('order', [0, 1])
    def test_higher_priority_wins_regardless_of_order(self, order):
        fields = [
            ExtractedField('tomador', 'MARIA GOMEZ', 0.99),
            ExtractedField('asegurado', 'JUAN PEREZ', 0.70),
        ]
        if order:
            fields.reverse()
        result = self.reconciler.reconcile(fields)
        assert result.draft.get('asegurado') == 'JUAN PEREZ'

    def test_valid_candidate_beats_invalid(self):
        result = self.reconciler.reconcile([
            ExtractedField('numeroPoliza', '!!', 0.99),
            ExtractedField('policy_number', 'AB-123', 0.80),
        ])
        assert result.draft.get('numeroPoliza') == 'AB-123'
        assert result.mapped['numeroPoliza'].is_valid

    def test_invalid_value_written_and_flagged(self):
        result = self.reconciler.reconcile([ExtractedField('email', 'not-an-email', 0.95)])
        mapped = result.mapped['email']
        assert result.draft.get('email') == 'not-an-email'
        assert not mapped.is_valid
        assert mapped.requires_review
        assert 'email' in result.invalid_fields

    def test_unmapped_fields_kept(self):
        result = self.reconciler.reconcile([
            ExtractedField('codigo_barras', '0001112223', 0.40),
            ExtractedField('marca', 'fiat', 0.90),
        ])
        assert [f.name for f in result.unmapped] == ['codigo_barras']
        assert result.summary.unmapped_inputs == 1
        assert any('codigo_barras' in w for w in result.warnings)
        assert result.draft.get('marca') == 'FIAT'

    def test_vocabulary_resolution(self):
        result = self.reconciler.reconcile(normalize_ai_payload(ai_payload()))
        assert result.draft.get('combustible') == 'DIS'
        assert result.draft['combustible'].label == 'DISEL'
        assert result.draft.get('moneda') == 1
        assert result.draft.get('cobertura') == 5
        assert result.mapped['combustible'].resolution == 'synonym'

    def test_full_payload_values(self):
        result = self.reconciler.reconcile(normalize_ai_payload(ai_payload()))
        draft = result.draft
        assert draft.get('numeroPoliza') == 'AB-12345'
        assert draft.get('asegurado') == 'Juan Pérez'
        assert draft.get('vigenciaDesde') == '2024-03-01'
        assert draft.get('vigenciaHasta') == '2025-03-01'
        assert draft.get('prima') == 15000.0
        assert draft.get('premioTotal') == 18300.0
        assert draft.get('matricula') == 'SBC1234'
        assert result.summary.mapped_fields == 10

    def test_medium_confidence_requires_review(self):
        result = self.reconciler.reconcile(normalize_ai_payload(ai_payload()))
        cobertura = result.mapped['cobertura']
        assert cobertura.confidence_tier == ConfidenceTier.MEDIUM
        assert cobertura.requires_review
        assert 'cobertura' in result.review_fields

    def test_vocabulary_fallback_requires_review(self):
        result = self.reconciler.reconcile([ExtractedField('combustible', 'hidrogeno', 0.99)])
        mapped = result.mapped['combustible']
        assert mapped.value == 'GAS'
        assert mapped.resolution == 'default'
        assert mapped.requires_review

    def test_every_schema_field_present(self):
        result = self.reconciler.reconcile([])
        assert len(result.mapped) == len(result.draft.values)
        assert result.summary.mapped_fields == 0

    def test_defaults_are_calculated(self):
        result = self.reconciler.reconcile([])
        estado = result.mapped['estadoTramite']
        assert estado.source == FieldSource.CALCULATED
        assert estado.value == 'En proceso'
        assert result.mapped['combustible'].value == 'GAS'
        assert result.mapped['cuotas'].value == 1

    def test_required_defaults_flagged_for_review(self):
        result = self.reconciler.reconcile([])
        assert result.mapped['numeroPoliza'].requires_review
        assert not result.mapped['observaciones'].requires_review

    def test_manual_overrides_carried_over(self):
        override = manual_field('numeroPoliza', MappedValue.text('MANUAL-1'))
        result = self.reconciler.reconcile(
            [ExtractedField('policy_number', 'AB-1234', 0.99)],
            overrides={'numeroPoliza': override},
        )
        assert result.draft.get('numeroPoliza') == 'MANUAL-1'
        assert result.mapped['numeroPoliza'].is_manual

    def test_non_manual_overrides_ignored(self):
        first = self.reconciler.reconcile([ExtractedField('marca', 'FIAT', 0.9)])
        second = self.reconciler.reconcile(
            [ExtractedField('marca', 'RENAULT', 0.9)],
            overrides=first.mapped,
        )
        assert second.draft.get('marca') == 'RENAULT'

    def test_context_applied_to_draft(self):
        result = self.reconciler.reconcile([], context={'client_id': 101, 'company_name': 'BSE'})
        assert result.draft.client_id == 101
        assert result.draft.company_name == 'BSE'

    def test_reconcile_is_idempotent(self):
        extracted = normalize_ai_payload(ai_payload())
        first = self.reconciler.reconcile(extracted)
        second = self.reconciler.reconcile(extracted)
        assert first.draft == second.draft
        assert first.mapped == second.mapped

    def test_with_field_updates_draft(self):
        result = self.reconciler.reconcile([])
        updated = result.with_field(manual_field('marca', MappedValue.text('FIAT')))
        assert updated.draft.get('marca') == 'FIAT'
        assert result.draft.get('marca') == ''


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
