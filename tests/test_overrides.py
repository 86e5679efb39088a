"""
Tests for the manual override layer.

Run with: pytest tests/ -v
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from decision import ConfidenceTier
from mapping import FieldMappingTable
from reconcile import ExtractedField, ExtractionReconciler, FieldSource, normalize_ai_payload
from review import OverrideLayer, coerce_value
from schema import MappedValue, get_field
from vocabulary import VocabularyResolver

from policy_fixtures import ai_payload, build_vocabulary


class TestCoerceValue:
    """Tests for wrapping operator input by field kind."""

    def test_number_from_text(self):
        assert coerce_value(get_field('prima'), '15.000,50').value == 15000.5
        assert coerce_value(get_field('cuotas'), '3').value == 3

    def test_date_normalized(self):
        assert coerce_value(get_field('vigenciaDesde'), '01/03/2024').value == '2024-03-01'

    def test_unparseable_date_kept(self):
        assert coerce_value(get_field('vigenciaDesde'), 'xxxx').value == 'xxxx'

    def test_master_ref(self):
        value = coerce_value(get_field('combustible'), 'DIS', 'DISEL')
        assert value == MappedValue.master_ref('fuel', 'DIS', 'DISEL')

    def test_text_stripped(self):
        assert coerce_value(get_field('marca'), '  FIAT ').value == 'FIAT'


class TestOverrideLayer:
    """Tests for override permanence and clearing."""

    def setup_method(self):
        self.resolver = VocabularyResolver(build_vocabulary())
        self.reconciler = ExtractionReconciler(FieldMappingTable.default(), self.resolver)
        self.extracted = normalize_ai_payload(ai_payload())
        self.layer = OverrideLayer(self.reconciler.reconcile(self.extracted), resolver=self.resolver)

    def reconcile(self, extracted=None):
        result = self.reconciler.reconcile(
            self.extracted if extracted is None else extracted,
            overrides=self.layer.overrides(),
        )
        return self.layer.apply(result)

    def test_override_is_manual_with_full_confidence(self):
        mapped = self.layer.override('numeroPoliza', 'ZZ-999')
        assert mapped.source == FieldSource.MANUAL
        assert mapped.confidence == 100
        assert mapped.confidence_tier == ConfidenceTier.HIGH
        assert not mapped.requires_review
        assert mapped.extracted_value == 'ab-12345'
        assert self.layer.result.draft.get('numeroPoliza') == 'ZZ-999'

    def test_override_survives_reconciliation(self):
        self.layer.override('numeroPoliza', 'ZZ-999')
        result = self.reconcile()
        assert result.draft.get('numeroPoliza') == 'ZZ-999'
        assert result.mapped['numeroPoliza'].is_manual

        # A later document cannot displace it either
        result = self.reconcile([ExtractedField('policy_number', 'NEW-1', 0.99)])
        assert result.draft.get('numeroPoliza') == 'ZZ-999'

    def test_clear_restores_ai_value(self):
        self.layer.override('numeroPoliza', 'ZZ-999')
        restored = self.layer.clear('numeroPoliza')
        assert restored.source == FieldSource.AZURE
        assert self.layer.result.draft.get('numeroPoliza') == 'AB-12345'
        assert not self.layer.is_overridden('numeroPoliza')

    def test_clear_restores_latest_ai_value(self):
        self.layer.override('marca', 'FIAT')
        result = self.layer.apply(self.reconciler.reconcile([ExtractedField('marca', 'renault', 0.9)]))
        assert result.draft.get('marca') == 'FIAT'

        self.layer.clear('marca')
        assert self.layer.result.draft.get('marca') == 'RENAULT'

    def test_clear_without_ai_value_is_empty(self):
        layer = OverrideLayer()
        layer.override('marca', 'FIAT')
        restored = layer.clear('marca')
        assert restored.source == FieldSource.CALCULATED
        assert restored.value == ''

    def test_clear_not_overridden(self):
        assert self.layer.clear('marca') is None

    def test_master_ref_label_from_vocabulary(self):
        mapped = self.layer.override('combustible', 'ELE')
        assert mapped.mapped_value.label == 'ELECTRICO'
        assert self.layer.result.draft.get('combustible') == 'ELE'

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            self.layer.override('colorVehiculo', 'ROJO')
        with pytest.raises(KeyError):
            self.layer.clear('colorVehiculo')

    def test_clear_all(self):
        self.layer.override('marca', 'FIAT')
        self.layer.override('modelo', 'UNO')
        assert self.layer.clear_all() == ['marca', 'modelo']
        assert self.layer.overrides() == {}

    def test_overrides_in_order(self):
        self.layer.override('modelo', 'UNO')
        self.layer.override('marca', 'FIAT')
        assert list(self.layer.overrides()) == ['modelo', 'marca']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
