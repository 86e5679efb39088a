"""
Wizard Step Table

The guided flow, as data:

    client → company → section → operation → upload → process → form → success

Each step names its neighbours and the operation types that skip it, so
per-operation variations (an endorsement has no document to upload) are
table entries rather than branches in the state machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


class StepId(Enum):
    """Wizard steps, in flow order."""
    CLIENT = 'client'
    COMPANY = 'company'
    SECTION = 'section'
    OPERATION = 'operation'
    UPLOAD = 'upload'
    PROCESS = 'process'
    FORM = 'form'
    SUCCESS = 'success'

    @property
    def order(self) -> int:
        return STEP_ORDER.index(self)

    @property
    def title(self) -> str:
        return STEP_TABLE[self].title

    @classmethod
    def from_key(cls, key: str) -> 'StepId':
        return cls(key.lower())


class OperationType(Enum):
    """What the operator is doing with the policy."""
    EMISION = 'EMISION'          # New policy
    RENOVACION = 'RENOVACION'    # Renewal
    ENDOSO = 'ENDOSO'            # Endorsement of an existing policy
    CAMBIO = 'CAMBIO'            # Change of data

    @property
    def display_name(self) -> str:
        names = {
            OperationType.EMISION: "Nueva póliza",
            OperationType.RENOVACION: "Renovación",
            OperationType.ENDOSO: "Endoso",
            OperationType.CAMBIO: "Cambio",
        }
        return names[self]

    @classmethod
    def parse(cls, value) -> Optional['OperationType']:
        """Accept an OperationType or its name, case-insensitive."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class StepDefinition:
    """One row of the step table."""
    id: StepId
    title: str
    description: str
    next: Optional[StepId]
    prev: Optional[StepId]
    skip_when: FrozenSet[OperationType] = frozenset()
    required: bool = True

    def is_skipped(self, operation: Optional[OperationType]) -> bool:
        return operation is not None and operation in self.skip_when


STEP_ORDER: List[StepId] = list(StepId)
INITIAL_STEP = StepId.CLIENT
TERMINAL_STEP = StepId.SUCCESS

_NO_DOCUMENT = frozenset({OperationType.ENDOSO})

STEP_TABLE: Dict[StepId, StepDefinition] = {
    StepId.CLIENT: StepDefinition(
        StepId.CLIENT, "Cliente", "Seleccionar cliente para la póliza",
        next=StepId.COMPANY, prev=None,
    ),
    StepId.COMPANY: StepDefinition(
        StepId.COMPANY, "Compañía", "Seleccionar compañía de seguros",
        next=StepId.SECTION, prev=StepId.CLIENT,
    ),
    StepId.SECTION: StepDefinition(
        StepId.SECTION, "Sección", "Seleccionar sección de la póliza",
        next=StepId.OPERATION, prev=StepId.COMPANY,
    ),
    StepId.OPERATION: StepDefinition(
        StepId.OPERATION, "Operación", "Tipo de operación a realizar",
        next=StepId.UPLOAD, prev=StepId.SECTION,
    ),
    StepId.UPLOAD: StepDefinition(
        StepId.UPLOAD, "Subir archivo", "Cargar el PDF de la póliza",
        next=StepId.PROCESS, prev=StepId.OPERATION,
        skip_when=_NO_DOCUMENT,
    ),
    StepId.PROCESS: StepDefinition(
        StepId.PROCESS, "Extraer datos", "Procesamiento automático con IA",
        next=StepId.FORM, prev=StepId.UPLOAD,
        skip_when=_NO_DOCUMENT,
    ),
    StepId.FORM: StepDefinition(
        StepId.FORM, "Completar datos", "Validar y completar información",
        next=StepId.SUCCESS, prev=StepId.PROCESS,
    ),
    StepId.SUCCESS: StepDefinition(
        StepId.SUCCESS, "Finalizado", "Póliza enviada",
        next=None, prev=None, required=False,
    ),
}


def is_skipped(step: StepId, operation: Optional[OperationType]) -> bool:
    return STEP_TABLE[step].is_skipped(operation)


def next_step(step: StepId, operation: Optional[OperationType] = None) -> Optional[StepId]:
    """Following step, skipping the ones the operation does not use."""
    candidate = STEP_TABLE[step].next
    while candidate is not None and is_skipped(candidate, operation):
        candidate = STEP_TABLE[candidate].next
    return candidate


def previous_step(step: StepId, operation: Optional[OperationType] = None) -> Optional[StepId]:
    """Preceding step, skipping the ones the operation does not use."""
    candidate = STEP_TABLE[step].prev
    while candidate is not None and is_skipped(candidate, operation):
        candidate = STEP_TABLE[candidate].prev
    return candidate


def active_steps(operation: Optional[OperationType] = None) -> List[StepId]:
    """Steps in flow order for an operation."""
    return [step for step in STEP_ORDER if not is_skipped(step, operation)]
