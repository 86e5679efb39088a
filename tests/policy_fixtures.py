"""
Shared test data for the policy intake tests.
"""

import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from schema import DraftPolicyRecord, MappedValue
from vocabulary import MasterVocabulary, VelneoDefaults, VocabularyEntry


TODAY = date(2024, 6, 1)


def build_vocabulary() -> MasterVocabulary:
    """A small backend vocabulary, spelled the way the backend spells it."""
    vocabulary = MasterVocabulary.with_builtin_departments()
    vocabulary.add_table('fuel', [
        VocabularyEntry('DIS', 'DISEL'),
        VocabularyEntry('GAS', 'GASOLINA'),
        VocabularyEntry('ELE', 'ELECTRICO'),
        VocabularyEntry('HYB', 'HIBRIDO'),
    ])
    vocabulary.add_table('destination', [
        VocabularyEntry(1, 'COMERCIAL'),
        VocabularyEntry(2, 'PARTICULAR'),
    ])
    vocabulary.add_table('quality', [
        VocabularyEntry(1, 'CONDUCTOR'),
        VocabularyEntry(2, 'PROPIETARIO'),
    ])
    vocabulary.add_table('category', [
        VocabularyEntry(1, 'AUTOMOVIL'),
        VocabularyEntry(2, 'CAMIONETA'),
        VocabularyEntry(3, 'MOTO'),
    ])
    vocabulary.add_table('currency', [
        VocabularyEntry(1, 'PESO URUGUAYO', aliases=('UYU',)),
        VocabularyEntry(2, 'DOLAR AMERICANO', aliases=('USD',)),
    ])
    vocabulary.add_table('coverage', [
        VocabularyEntry(5, 'TODO RIESGO'),
        VocabularyEntry(6, 'RESPONSABILIDAD CIVIL'),
    ])
    vocabulary.enumerations['estadosPoliza'] = ['VIG', 'VEN', 'END', 'ANU']
    vocabulary.enumerations['tiposTramite'] = ['Nuevo', 'Renovacion', 'Endoso', 'Cambio']
    vocabulary.enumerations['formasPago'] = ['Contado', 'Tarjeta de Crédito', 'Débito Automático', 'Cuotas']
    return vocabulary


def valid_draft(**overrides) -> DraftPolicyRecord:
    """A draft that passes validation on TODAY."""
    draft = DraftPolicyRecord.empty(
        text_defaults=VelneoDefaults().text_defaults(),
        client_id=101,
        client_name='ACME SA',
        company_id=2,
        company_name='BSE',
        section_id=9,
        section_name='AUTOMOVILES',
    )
    values = {
        'numeroPoliza': MappedValue.text('AB-12345'),
        'asegurado': MappedValue.text('JUAN PEREZ'),
        'vigenciaDesde': MappedValue.date('2024-03-01'),
        'vigenciaHasta': MappedValue.date('2025-03-01'),
        'prima': MappedValue.number(15000.0),
        'premioTotal': MappedValue.number(18300.0),
        'cobertura': MappedValue.master_ref('coverage', 5, 'TODO RIESGO'),
        'moneda': MappedValue.master_ref('currency', 1, 'PESO URUGUAYO'),
        'combustible': MappedValue.master_ref('fuel', 'DIS', 'DISEL'),
        'marca': MappedValue.text('VOLKSWAGEN'),
        'modelo': MappedValue.text('GOL'),
        'anio': MappedValue.number(2019),
        'matricula': MappedValue.text('SBC1234'),
        'cuotas': MappedValue.number(1),
    }
    values.update(overrides)
    return draft.with_values(values)


def ai_payload() -> dict:
    """A document-AI response for a car policy."""
    return {
        'fileName': 'poliza_bse.pdf',
        'overallCompletenessPercent': 87,
        'processingTimeMs': 3200,
        'fields': [
            {'name': 'policy_number', 'value': 'ab-12345', 'confidence': 0.92},
            {'name': 'asegurado', 'value': 'Juan Pérez', 'confidence': 0.95},
            {'name': 'fecha_desde', 'value': '01/03/2024', 'confidence': 0.91},
            {'name': 'fecha_hasta', 'value': '01/03/2025', 'confidence': 0.90},
            {'name': 'premio', 'value': '$U 15.000,00', 'confidence': 0.88},
            {'name': 'premio_total', 'value': '18.300,00', 'confidence': 0.85},
            {'name': 'combustible', 'value': 'DIESEL (GAS-OIL)', 'confidence': 0.80},
            {'name': 'moneda', 'value': 'UYU', 'confidence': 0.97},
            {'name': 'cobertura', 'value': 'Todo Riesgo', 'confidence': 0.75},
            {'name': 'matricula', 'value': 'sbc 1234', 'confidence': 0.93},
            {'name': 'codigo_barras', 'value': '0001112223', 'confidence': 0.40},
        ],
    }
