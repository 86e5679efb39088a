"""
Tests for the field mapping table and value transforms.

Run with: pytest tests/ -v
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from mapping import FieldMappingRule, FieldMappingTable, normalize_source_name
from mapping.transforms import (
    get_validator,
    safe_transform,
    to_amount,
    to_date,
    to_integer,
    to_name,
    to_payment_method,
    to_phone,
    to_plate,
    to_year,
)


class TestSourceNames:
    """Tests for source-name normalization."""

    def test_variants_share_key(self):
        expected = normalize_source_name('numeroPoliza')
        assert normalize_source_name('numero_poliza') == expected
        assert normalize_source_name('NUMERO POLIZA') == expected
        assert normalize_source_name('Numero-Poliza') == expected
        assert normalize_source_name('numero.poliza') == expected

    def test_accents_ignored(self):
        assert normalize_source_name('año') == normalize_source_name('ano')


class TestFieldMappingTable:
    """Tests for the shipped rule table."""

    def setup_method(self):
        self.table = FieldMappingTable.default()

    def test_rules_for_synonyms(self):
        for name in ('numero_poliza', 'numeroPoliza', 'policy_number', 'NUMERO POLIZA'):
            rules = self.table.rules_for(name)
            assert [r.target_field for r in rules] == ['numeroPoliza']

    def test_unknown_name_has_no_rules(self):
        assert self.table.rules_for('codigo_barras') == []

    def test_many_to_one(self):
        rules = self.table.rules_for_target('asegurado')
        assert len(rules) == 2
        assert rules[0].priority > rules[1].priority

    def test_master_ref_rule_gets_category(self):
        rule = self.table.rules_for('combustible')[0]
        assert rule.category == 'fuel'
        assert rule.uses_vocabulary

    def test_declaration_order(self):
        orders = [r.order for r in self.table.rules]
        assert orders == sorted(orders)
        assert orders[0] == 0

    def test_config_round_trip(self):
        rebuilt = FieldMappingTable.from_config(self.table.to_config())
        assert [r.target_field for r in rebuilt.rules] == [r.target_field for r in self.table.rules]

    def test_from_yaml(self, tmp_path):
        rules_file = tmp_path / 'rules.yaml'
        rules_file.write_text(
            "rules:\n"
            "  - target: numeroPoliza\n"
            "    sources: [nro]\n"
            "    transform: upper\n"
            "    priority: 3\n",
            encoding='utf-8',
        )
        table = FieldMappingTable.from_yaml(rules_file)
        assert table.targets() == ['numeroPoliza']
        assert table.rules_for('NRO')[0].priority == 3


class TestFieldMappingRule:
    """Tests for rule construction."""

    def test_unknown_transform(self):
        with pytest.raises(TypeError):
            FieldMappingRule.from_dict({'target': 'marca', 'transform': 'bogus'})

    def test_unknown_validator(self):
        with pytest.raises(TypeError):
            FieldMappingRule.from_dict({'target': 'marca', 'validate': 'bogus'})

    def test_unknown_target(self):
        with pytest.raises(ValueError):
            FieldMappingRule.from_dict({'target': 'colorVehiculo'})

    def test_sources_default_to_target(self):
        rule = FieldMappingRule.from_dict({'target': 'motor'})
        assert rule.matches('MOTOR')


class TestTransforms:
    """Tests for value transforms."""

    @pytest.mark.parametrize('raw,expected', [
        ('$U 15.000,00', 15000.0),
        ('1,234.56', 1234.56),
        ('1.234', 1234.0),
        ('12,5', 12.5),
        ('(100)', -100.0),
        (2500, 2500.0),
        ('abc', 0.0),
        (None, 0.0),
    ])
    def test_to_amount(self, raw, expected):
        assert to_amount(raw) == expected

    @pytest.mark.parametrize('raw,expected', [
        ('01/03/2024', '2024-03-01'),
        ('2024-03-01', '2024-03-01'),
        ('15.07.2023', '2023-07-15'),
        ('', ''),
        ('xxxx', ''),
    ])
    def test_to_date(self, raw, expected):
        assert to_date(raw) == expected

    def test_to_phone_drops_country_prefix(self):
        assert to_phone('+598 99 123 456') == '099123456'
        assert to_phone('2901 1234') == '29011234'

    def test_to_plate(self):
        assert to_plate('sbc 1234') == 'SBC1234'

    def test_to_year(self):
        assert to_year('Año 2019') == 2019
        assert to_year('s/d') == 0

    def test_to_integer(self):
        assert to_integer('10 cuotas') == 10
        assert to_integer('') == 0

    def test_to_name(self):
        assert to_name('  Juan  Pérez: ') == 'Juan Pérez'

    def test_to_payment_method(self):
        assert to_payment_method('tarjeta de credito') == 'Tarjeta de Crédito'
        assert to_payment_method('EFECTIVO') == 'Contado'
        assert to_payment_method('Débito automático') == 'Débito Automático'
        assert to_payment_method('') == ''

    def test_safe_transform_never_raises(self):
        def broken(value):
            raise RuntimeError('boom')

        assert safe_transform(broken, 'x', fallback=0) == 0


class TestValidators:
    """Tests for quick validators."""

    def test_min_length(self):
        check = get_validator('min_length:2')
        assert not check('A')
        assert check('AB')

    def test_policy_number(self):
        check = get_validator('policy_number')
        assert check('AB-12345')
        assert not check('AB')
        assert not check('AB 12345')

    def test_optional_validators_accept_empty(self):
        assert get_validator('email')('')
        assert not get_validator('email')('not-an-email')

    def test_missing_spec_always_passes(self):
        assert get_validator(None)('anything')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
