"""
Wizard State

Immutable snapshot of one wizard session. Every change produces a new
WizardState, so a reader never sees a half-applied update.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from schema import DraftPolicyRecord

from .steps import INITIAL_STEP, STEP_ORDER, OperationType, StepId

STORAGE_KEY = 'poliza-wizard-state'
SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class Selection:
    """An entity picked in a search step (client, company, section)."""
    id: Any
    display_name: str
    data: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.id not in (None, '') and bool(str(self.display_name).strip())

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'displayName': self.display_name, 'data': dict(self.data)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Selection':
        return cls(
            id=data.get('id'),
            display_name=data.get('displayName') or data.get('display_name') or '',
            data=dict(data.get('data') or {}),
        )

    @classmethod
    def coerce(cls, value: Any) -> Optional['Selection']:
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise TypeError(f"Cannot use {type(value).__name__} as a selection")


@dataclass(frozen=True)
class UploadedFile:
    """
    Reference to the uploaded policy document.

    ``handle`` is whatever the host passes around (bytes, path, stream) and
    is never persisted.
    """
    name: str
    size: int
    content_type: str = 'application/pdf'
    handle: Any = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'size': self.size}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'UploadedFile':
        return cls(name=data.get('name', ''), size=int(data.get('size') or 0))


@dataclass(frozen=True)
class ProcessingSummary:
    """What the document-AI step produced."""
    file_name: str = ''
    completeness: float = 0.0
    processing_time_ms: int = 0
    mapped_fields: int = 0
    average_confidence: float = 0.0
    warnings: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fileName': self.file_name,
            'completeness': self.completeness,
            'processingTimeMs': self.processing_time_ms,
            'mappedFields': self.mapped_fields,
            'averageConfidence': self.average_confidence,
            'warnings': list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ProcessingSummary':
        return cls(
            file_name=data.get('fileName', ''),
            completeness=float(data.get('completeness') or 0),
            processing_time_ms=int(data.get('processingTimeMs') or 0),
            mapped_fields=int(data.get('mappedFields') or 0),
            average_confidence=float(data.get('averageConfidence') or 0),
            warnings=tuple(data.get('warnings') or ()),
        )


@dataclass(frozen=True)
class WizardState:
    """
    Complete state of the policy wizard.

    ``mapped`` holds the reconciled fields of the current draft and
    ``validation_issues`` the errors and warnings of its last validation
    pass. Both are session-only and not part of the snapshot.
    """
    current_step: StepId = INITIAL_STEP
    completed_steps: FrozenSet[StepId] = frozenset()
    client: Optional[Selection] = None
    company: Optional[Selection] = None
    section: Optional[Selection] = None
    operation: Optional[OperationType] = None
    upload: Optional[UploadedFile] = None
    processing: Optional[ProcessingSummary] = None
    draft: Optional[DraftPolicyRecord] = None
    mapped: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)
    validation_issues: Tuple[Any, ...] = field(default=(), compare=False, repr=False)
    is_processing: bool = False
    submitted: bool = False
    submission_id: Optional[Any] = None
    error: Optional[str] = None

    def is_completed(self, step: StepId) -> bool:
        return step in self.completed_steps

    def evolve(self, **changes) -> 'WizardState':
        """Return a new state with some attributes replaced."""
        return replace(self, **changes)

    def mark_completed(self, step: StepId) -> 'WizardState':
        return replace(self, completed_steps=self.completed_steps | {step})

    def draft_context(self) -> Dict[str, Any]:
        """Selections as DraftPolicyRecord context."""
        return {
            'client_id': self.client.id if self.client else None,
            'client_name': self.client.display_name if self.client else '',
            'company_id': self.company.id if self.company else None,
            'company_name': self.company.display_name if self.company else '',
            'section_id': self.section.id if self.section else None,
            'section_name': self.section.display_name if self.section else '',
            'operation_type': self.operation.value if self.operation else None,
        }

    def to_snapshot(self) -> Dict[str, Any]:
        """JSON-serializable projection for browser storage."""
        return {
            'version': SNAPSHOT_VERSION,
            'currentStep': self.current_step.value,
            'completedSteps': [s.value for s in STEP_ORDER if s in self.completed_steps],
            'client': self.client.to_dict() if self.client else None,
            'company': self.company.to_dict() if self.company else None,
            'section': self.section.to_dict() if self.section else None,
            'operation': self.operation.value if self.operation else None,
            'upload': self.upload.to_dict() if self.upload else None,
            'processing': self.processing.to_dict() if self.processing else None,
            'draft': self.draft.to_dict() if self.draft else None,
            'submitted': self.submitted,
            'submissionId': self.submission_id,
        }

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any]) -> 'WizardState':
        """Restore a state saved with to_snapshot()."""
        def optional(key, loader):
            value = snapshot.get(key)
            return loader(value) if value else None

        return cls(
            current_step=StepId.from_key(snapshot.get('currentStep') or INITIAL_STEP.value),
            completed_steps=frozenset(StepId.from_key(s) for s in snapshot.get('completedSteps') or ()),
            client=optional('client', Selection.from_dict),
            company=optional('company', Selection.from_dict),
            section=optional('section', Selection.from_dict),
            operation=OperationType.parse(snapshot.get('operation')),
            upload=optional('upload', UploadedFile.from_dict),
            processing=optional('processing', ProcessingSummary.from_dict),
            draft=optional('draft', DraftPolicyRecord.from_dict),
            submitted=bool(snapshot.get('submitted')),
            submission_id=snapshot.get('submissionId'),
        )
