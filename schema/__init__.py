"""
Schema Package

The canonical policy schema and the draft record built against it.

Usage:
    from schema import DraftPolicyRecord, MappedValue, POLICY_SCHEMA

    draft = DraftPolicyRecord.empty()
    draft = draft.with_value('numeroPoliza', MappedValue.text('AB-12345'))
    draft.get('numeroPoliza')      # 'AB-12345'
    draft['moneda'].kind           # ValueKind.MASTER_REF
"""

from .fields import (
    ValueKind,
    TargetField,
    TABS,
    POLICY_FIELDS,
    POLICY_SCHEMA,
    get_field,
    fields_for_tab,
    required_fields,
)
from .errors import (
    IntakeError,
    MasterDataUnavailableError,
    DocumentProcessingError,
    SubmissionError,
)
from .record import (
    MappedValue,
    DraftPolicyRecord,
    empty_value,
)

__all__ = [
    # Fields
    'ValueKind',
    'TargetField',
    'TABS',
    'POLICY_FIELDS',
    'POLICY_SCHEMA',
    'get_field',
    'fields_for_tab',
    'required_fields',

    # Record
    'MappedValue',
    'DraftPolicyRecord',
    'empty_value',

    # Errors
    'IntakeError',
    'MasterDataUnavailableError',
    'DocumentProcessingError',
    'SubmissionError',
]
