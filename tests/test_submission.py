"""
Tests for operation logic and the backend payload builder.

Run with: pytest tests/ -v
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from schema import MappedValue
from submission import (
    EXPIRED_STATE,
    PAYLOAD_KEYS,
    SubmissionContext,
    VelneoPayloadBuilder,
    detect_operation,
    map_process_state,
    operation_outcome,
)
from wizard import OperationType

from policy_fixtures import TODAY, valid_draft


def ai_context(**overrides):
    values = dict(
        processed_with_ai=True,
        file_name='poliza_bse.pdf',
        completeness=87,
        operation=OperationType.EMISION,
        today=TODAY,
    )
    values.update(overrides)
    return SubmissionContext(**values)


class TestOperations:
    """Tests for per-operation outcomes and text detection."""

    def test_outcomes(self):
        assert operation_outcome(OperationType.EMISION, '2025-03-01', TODAY) == ('Nuevo', 'VIG')
        assert operation_outcome(OperationType.RENOVACION, '2025-03-01', TODAY) == ('Renovacion', 'VIG')
        assert operation_outcome(OperationType.ENDOSO, '2025-03-01', TODAY) == ('Endoso', 'END')

    def test_expired_new_policy(self):
        assert operation_outcome(OperationType.EMISION, '2024-05-01', TODAY) == ('Nuevo', EXPIRED_STATE)

    def test_expiry_only_applies_to_new_policies(self):
        assert operation_outcome(OperationType.RENOVACION, '2024-05-01', TODAY)[1] == 'VIG'

    def test_missing_operation_is_new_policy(self):
        assert operation_outcome(None, '', TODAY) == ('Nuevo', 'VIG')

    @pytest.mark.parametrize('text,expected', [
        ('Renovación de póliza', OperationType.RENOVACION),
        ('ENDOSO Nº 3', OperationType.ENDOSO),
        ('Modificación de datos', OperationType.CAMBIO),
        ('Póliza nueva', OperationType.EMISION),
        ('', OperationType.EMISION),
    ])
    def test_detect_operation(self, text, expected):
        assert detect_operation(text) == expected

    def test_map_process_state(self):
        assert map_process_state('pendiente de firma') == 'Pendiente'
        assert map_process_state('TERMINADO') == 'Terminado'
        assert map_process_state('') == 'En proceso'
        assert map_process_state('otro', default='Pendiente') == 'Pendiente'


class TestPayloadBuilder:
    """Tests for the backend record."""

    def setup_method(self):
        self.builder = VelneoPayloadBuilder()

    def test_keys_in_backend_order(self):
        payload = self.builder.build(valid_draft(), ai_context())
        assert tuple(payload) == PAYLOAD_KEYS

    def test_field_values(self):
        payload = self.builder.build(valid_draft(), ai_context())
        assert payload['conpol'] == 'AB-12345'
        assert payload['confchdes'] == '2024-03-01'
        assert payload['confchhas'] == '2025-03-01'
        assert payload['conpremio'] == 15000.0
        assert payload['contot'] == 18300.0
        assert payload['comcod'] == 2
        assert payload['seccod'] == 9
        assert payload['clinro'] == 101
        assert payload['clinom'] == 'ACME SA'
        assert payload['conmaraut'] == 'VOLKSWAGEN GOL'
        assert payload['conanioaut'] == 2019
        assert payload['moncod'] == 1
        assert payload['tarcod'] == 5
        assert payload['ramo'] == 'AUTOMOVILES'
        assert payload['com_alias'] == 'BSE'

    def test_fuel_id_passed_verbatim(self):
        payload = self.builder.build(valid_draft(), ai_context())
        assert payload['combustibles'] == 'DIS'

    def test_operation_fields(self):
        payload = self.builder.build(valid_draft(), ai_context())
        assert payload['contra'] == 'Nuevo'
        assert payload['convig'] == 'VIG'

        payload = self.builder.build(valid_draft(), ai_context(operation=OperationType.ENDOSO))
        assert payload['contra'] == 'Endoso'
        assert payload['convig'] == 'END'

    def test_expired_new_policy(self):
        draft = valid_draft(
            vigenciaDesde=MappedValue.date('2023-05-01'),
            vigenciaHasta=MappedValue.date('2024-05-01'),
        )
        assert self.builder.build(draft, ai_context())['convig'] == 'VEN'

    def test_without_operation_uses_draft_values(self):
        payload = self.builder.build(valid_draft(), ai_context(operation=None))
        assert payload['contra'] == 'Nuevo'
        assert payload['convig'] == 'VIG'

    def test_process_fields(self):
        payload = self.builder.build(valid_draft(), ai_context())
        assert payload['consta'] == 'Contado'
        assert payload['congeses'] == 'En proceso'
        assert payload['congesfi'] == '2024-06-01'
        assert payload['concuo'] == 1

    def test_ai_flag(self):
        assert self.builder.build(valid_draft(), ai_context())['procesadoConIA'] is True
        assert self.builder.build(valid_draft(), SubmissionContext(today=TODAY))['procesadoConIA'] is False

    def test_company_alias_from_context(self):
        payload = self.builder.build(valid_draft(), ai_context(company_alias='SURA'))
        assert payload['com_alias'] == 'SURA'

    def test_observations(self):
        payload = self.builder.build(
            valid_draft(observaciones=MappedValue.text('Cliente preferencial')),
            ai_context(),
        )
        assert payload['observaciones'] == (
            "Cliente preferencial\n"
            "Archivo: poliza_bse.pdf\n"
            "Completitud: 87%"
        )

    def test_installments_in_observations(self):
        draft = valid_draft(
            cuotas=MappedValue.number(3),
            valorCuota=MappedValue.number(6100),
            formaPago=MappedValue.text('Tarjeta de crédito'),
        )
        payload = self.builder.build(draft, ai_context(file_name='', completeness=None))
        assert payload['observaciones'] == "Cuotas: 3 de PESO URUGUAYO 6100.00"
        assert payload['concuo'] == 3
        assert payload['consta'] == 'Tarjeta de Crédito'

    def test_observations_truncated(self):
        draft = valid_draft(observaciones=MappedValue.text('x' * 1200))
        payload = self.builder.build(draft, ai_context())
        assert len(payload['observaciones']) == 1000

    def test_custom_observation_limit(self):
        builder = VelneoPayloadBuilder(observations_max_length=10)
        payload = builder.build(valid_draft(), ai_context())
        assert payload['observaciones'] == 'Archivo: p'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
