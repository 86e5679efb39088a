"""
Draft Policy Record

Typed values and the canonical aggregate handed from the reconciler to the
validation engine, the override layer and the payload builder.

Every schema field is always present on a record. A missing key is a
programming error (KeyError); an empty value is a validation error.
Records are immutable: edits produce a new record.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from .fields import POLICY_FIELDS, POLICY_SCHEMA, TargetField, ValueKind, get_field


@dataclass(frozen=True)
class MappedValue:
    """
    A typed field value.

    ``kind`` tells consumers how to read ``value``:
    TEXT -> str, NUMBER -> int/float, DATE -> ISO string or "",
    MASTER_REF -> vocabulary id (``label`` holds the display name).
    """
    kind: ValueKind
    value: Any
    label: str = ''
    category: Optional[str] = None

    @classmethod
    def text(cls, value: Any) -> 'MappedValue':
        return cls(ValueKind.TEXT, '' if value is None else str(value))

    @classmethod
    def number(cls, value: Any) -> 'MappedValue':
        return cls(ValueKind.NUMBER, value if isinstance(value, (int, float)) else 0)

    @classmethod
    def date(cls, value: Any) -> 'MappedValue':
        return cls(ValueKind.DATE, '' if value is None else str(value))

    @classmethod
    def master_ref(cls, category: str, value: Any, label: str = '') -> 'MappedValue':
        return cls(ValueKind.MASTER_REF, value, label=label, category=category)

    @classmethod
    def for_field(cls, target: TargetField, value: Any, label: str = '') -> 'MappedValue':
        """Wrap a plain value according to the field's kind."""
        if target.kind == ValueKind.NUMBER:
            return cls.number(value)
        if target.kind == ValueKind.DATE:
            return cls.date(value)
        if target.kind == ValueKind.MASTER_REF:
            return cls.master_ref(target.category, value, label)
        return cls.text(value)

    @property
    def is_empty(self) -> bool:
        if self.kind == ValueKind.MASTER_REF:
            return self.value in (None, '', 0)
        if self.kind == ValueKind.NUMBER:
            return not self.value
        return not str(self.value).strip()

    def display(self) -> str:
        if self.kind == ValueKind.MASTER_REF and self.label:
            return f"{self.label} ({self.value})"
        return '' if self.value is None else str(self.value)

    def to_dict(self) -> Dict[str, Any]:
        data = {'kind': self.kind.name.lower(), 'value': self.value}
        if self.kind == ValueKind.MASTER_REF:
            data['category'] = self.category
            data['label'] = self.label
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MappedValue':
        return cls(
            kind=ValueKind[data['kind'].upper()],
            value=data.get('value'),
            label=data.get('label', ''),
            category=data.get('category'),
        )


def empty_value(target: TargetField) -> MappedValue:
    return MappedValue.for_field(target, target.empty_value)


@dataclass(frozen=True)
class DraftPolicyRecord:
    """
    Canonical policy record plus the wizard context it belongs to.
    """
    values: Mapping[str, MappedValue]
    client_id: Optional[Any] = None
    client_name: str = ''
    company_id: Optional[Any] = None
    company_name: str = ''
    section_id: Optional[Any] = None
    section_name: str = ''
    operation_type: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        missing = [f.name for f in POLICY_FIELDS if f.name not in self.values]
        if missing:
            raise KeyError(f"Draft record missing schema fields: {', '.join(missing)}")
        unknown = [name for name in self.values if name not in POLICY_SCHEMA]
        if unknown:
            raise KeyError(f"Draft record has unknown fields: {', '.join(unknown)}")

    @classmethod
    def empty(cls, text_defaults: Optional[Mapping[str, Any]] = None, **context) -> 'DraftPolicyRecord':
        """A complete record with schema-appropriate empty values."""
        text_defaults = text_defaults or {}
        values = {}
        for target in POLICY_FIELDS:
            if target.name in text_defaults:
                values[target.name] = MappedValue.for_field(target, text_defaults[target.name])
            else:
                values[target.name] = empty_value(target)
        return cls(values=values, **context)

    def __getitem__(self, name: str) -> MappedValue:
        get_field(name)
        return self.values[name]

    def __contains__(self, name: str) -> bool:
        return name in self.values

    def get(self, name: str) -> Any:
        """Plain value of a field."""
        return self[name].value

    def is_empty(self, name: str) -> bool:
        return self[name].is_empty

    def with_value(self, name: str, value: MappedValue) -> 'DraftPolicyRecord':
        """Return a new record with one field replaced."""
        get_field(name)
        values = dict(self.values)
        values[name] = value
        return replace(self, values=values)

    def with_values(self, updates: Mapping[str, MappedValue]) -> 'DraftPolicyRecord':
        for name in updates:
            get_field(name)
        values = dict(self.values)
        values.update(updates)
        return replace(self, values=values)

    def with_context(self, **context) -> 'DraftPolicyRecord':
        return replace(self, **context)

    def to_values(self) -> Dict[str, Any]:
        """Field name -> plain value, in schema order."""
        return {f.name: self.values[f.name].value for f in POLICY_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'client_id': self.client_id,
            'client_name': self.client_name,
            'company_id': self.company_id,
            'company_name': self.company_name,
            'section_id': self.section_id,
            'section_name': self.section_name,
            'operation_type': self.operation_type,
            'values': {f.name: self.values[f.name].to_dict() for f in POLICY_FIELDS},
            'metadata': dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DraftPolicyRecord':
        values = {
            name: MappedValue.from_dict(value)
            for name, value in (data.get('values') or {}).items()
        }
        return cls(
            values=values,
            client_id=data.get('client_id'),
            client_name=data.get('client_name', ''),
            company_id=data.get('company_id'),
            company_name=data.get('company_name', ''),
            section_id=data.get('section_id'),
            section_name=data.get('section_name', ''),
            operation_type=data.get('operation_type'),
            metadata=data.get('metadata') or {},
        )
