"""
Reconciliation Package

Turns the document-AI service output into a complete, typed draft policy.

Flow:
    raw AI payload
        → normalize_ai_payload()         uniform ExtractedField list
        → ExtractionReconciler           mapping rules + vocabulary
        → ReconciliationResult           draft, per-field metadata, unmapped inputs

Usage:
    from reconcile import ExtractionReconciler, normalize_ai_payload

    reconciler = ExtractionReconciler()
    result = reconciler.reconcile(normalize_ai_payload(ai_response))

    for name, mapped in result.mapped.items():
        print(name, mapped.value, mapped.confidence_tier.key)
"""

from .adapters import (
    ExtractedField,
    DocumentAIResult,
    DEFAULT_CONFIDENCE,
    flatten_fields,
    normalize_ai_payload,
)
from .reconciler import (
    FieldSource,
    MappedField,
    ReconciliationResult,
    ExtractionReconciler,
    manual_field,
)

__all__ = [
    # Adapter
    'ExtractedField',
    'DocumentAIResult',
    'DEFAULT_CONFIDENCE',
    'flatten_fields',
    'normalize_ai_payload',

    # Reconciler
    'FieldSource',
    'MappedField',
    'ReconciliationResult',
    'ExtractionReconciler',
    'manual_field',
]
