"""
Mapping Package

Declarative mapping from document-AI field names to canonical policy fields,
plus the value transforms the rules refer to.

Usage:
    from mapping import FieldMappingTable

    table = FieldMappingTable.default()
    rules = table.rules_for('numero_poliza')   # same rules as 'policy_number'
    value = rules[0].transform(' ab-123 ')     # 'AB-123'
"""

from .field_table import (
    FieldMappingRule,
    FieldMappingTable,
    DEFAULT_RULES_PATH,
    normalize_source_name,
)
from .transforms import (
    TRANSFORMS,
    VALIDATORS,
    get_transform,
    get_validator,
    safe_transform,
    to_amount,
    to_date,
    to_payment_method,
)

__all__ = [
    # Table
    'FieldMappingRule',
    'FieldMappingTable',
    'DEFAULT_RULES_PATH',
    'normalize_source_name',

    # Transforms
    'TRANSFORMS',
    'VALIDATORS',
    'get_transform',
    'get_validator',
    'safe_transform',
    'to_amount',
    'to_date',
    'to_payment_method',
]
