"""
Document-AI Payload Adapter

The document-AI service returns extracted fields in several shapes:

    {"fields": [{"name": "poliza", "value": "AB-1", "confidence": 0.93}, ...]}
    {"extractedFields": [{"field": "poliza", "value": "AB-1", "confidence": 93}]}
    {"extractedFields": {"poliza": "AB-1", "prima": "1.234,56"}}
    {"fields": {"poliza": {"value": "AB-1", "confidence": 0.9}}}

This module flattens all of them into a uniform list of ExtractedField
before reconciliation. Object-shaped fields without a confidence get a
default of 0.8. Null values are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


DEFAULT_CONFIDENCE = 0.8

FIELD_CONTAINER_KEYS = ('fields', 'extractedFields', 'camposExtraidos', 'datos')
NAME_KEYS = ('name', 'field', 'fieldName', 'key', 'campo')


@dataclass(frozen=True)
class ExtractedField:
    """
    One key/value pair recognized by the document-AI service.

    Immutable. A document may contain several fields with synonymous names.
    """
    name: str
    raw_value: Union[str, int, float]
    confidence: float = DEFAULT_CONFIDENCE    # 0.0 to 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'value': self.raw_value,
            'confidence': self.confidence,
        }


def _normalize_confidence(value: Any) -> float:
    """0..1 fraction; percentages are scaled down."""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence > 1.0:
        confidence /= 100.0
    return max(0.0, min(1.0, confidence))


def _from_item(item: Any) -> Optional[ExtractedField]:
    if not isinstance(item, dict):
        return None

    name = next((str(item[k]) for k in NAME_KEYS if item.get(k)), None)
    value = item.get('value', item.get('valor'))
    if name is None or value is None:
        return None

    return ExtractedField(
        name=name,
        raw_value=value if isinstance(value, (int, float)) else str(value),
        confidence=_normalize_confidence(item.get('confidence', DEFAULT_CONFIDENCE)),
    )


def _from_entry(key: str, value: Any) -> Optional[ExtractedField]:
    if value is None:
        return None

    confidence = DEFAULT_CONFIDENCE
    if isinstance(value, dict):
        confidence = _normalize_confidence(value.get('confidence', DEFAULT_CONFIDENCE))
        value = value.get('value', value.get('valor'))
        if value is None:
            return None

    if isinstance(value, (list, tuple)):
        logger.debug(f"Skipping list-valued field '{key}'")
        return None

    return ExtractedField(
        name=str(key),
        raw_value=value if isinstance(value, (int, float)) else str(value),
        confidence=confidence,
    )


def flatten_fields(raw_fields: Any) -> List[ExtractedField]:
    """Flatten an array- or object-shaped field collection."""
    if raw_fields is None:
        return []

    if isinstance(raw_fields, dict):
        entries = (_from_entry(k, v) for k, v in raw_fields.items())
    elif isinstance(raw_fields, (list, tuple)):
        entries = (
            item if isinstance(item, ExtractedField) else _from_item(item)
            for item in raw_fields
        )
    else:
        logger.warning(f"Unsupported field collection type: {type(raw_fields).__name__}")
        return []

    return [e for e in entries if e is not None]


class DocumentAIResult(BaseModel):
    """
    Result of the external document-AI call.
    """

    model_config = ConfigDict(extra='ignore', arbitrary_types_allowed=True)

    fields: List[ExtractedField] = Field(default_factory=list)
    overallCompletenessPercent: float = 0.0
    processingTimeMs: int = 0
    fileName: str = ''

    @model_validator(mode='before')
    @classmethod
    def pick_field_container(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if 'fields' not in data:
            for key in FIELD_CONTAINER_KEYS:
                if key in data:
                    data['fields'] = data[key]
                    break
        if not data.get('fileName'):
            data['fileName'] = data.get('archivo') or data.get('nombreArchivo') or ''
        if 'overallCompletenessPercent' not in data and 'porcentajeCompletitud' in data:
            data['overallCompletenessPercent'] = data['porcentajeCompletitud']
        return data

    @field_validator('fields', mode='before')
    @classmethod
    def flatten(cls, v):
        return flatten_fields(v)

    @field_validator('overallCompletenessPercent', mode='before')
    @classmethod
    def coerce_percent(cls, v):
        try:
            return float(v or 0)
        except (TypeError, ValueError):
            return 0.0


def normalize_ai_payload(payload: Union[Dict[str, Any], DocumentAIResult, List[Any]]) -> List[ExtractedField]:
    """
    Flatten any accepted document-AI payload into ExtractedField instances.

    Args:
        payload: Raw service response, a parsed DocumentAIResult, or a bare
            list of field dicts

    Returns:
        Extracted fields in input order
    """
    if isinstance(payload, DocumentAIResult):
        return list(payload.fields)
    if isinstance(payload, list):
        return flatten_fields(payload)
    return list(DocumentAIResult.model_validate(payload or {}).fields)
