"""
Operation Logic

What each operation type means for the backend record: the trámite sent
with it, the resulting policy state, and the free-text vocabularies the
AI output is normalized to before submission.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Tuple

from validation.rules import parse_date
from vocabulary import normalize_text
from wizard import OperationType

logger = logging.getLogger(__name__)


# Operation -> (trámite, estado póliza)
OPERATION_OUTCOMES = {
    OperationType.EMISION: ('Nuevo', 'VIG'),
    OperationType.RENOVACION: ('Renovacion', 'VIG'),
    OperationType.ENDOSO: ('Endoso', 'END'),
    OperationType.CAMBIO: ('Cambio', 'VIG'),
}

EXPIRED_STATE = 'VEN'

# Keyword -> operation, first match wins
OPERATION_KEYWORDS = (
    ('RENOV', OperationType.RENOVACION),
    ('ENDOSO', OperationType.ENDOSO),
    ('MODIFICACION', OperationType.CAMBIO),
    ('CAMBIO', OperationType.CAMBIO),
    ('EMISION', OperationType.EMISION),
    ('NUEVA', OperationType.EMISION),
    ('ALTA', OperationType.EMISION),
)

PROCESS_STATES = (
    ('PROCESO', 'En proceso'),
    ('PENDIENTE', 'Pendiente'),
    ('TERMINADO', 'Terminado'),
)


def operation_outcome(
    operation: Optional[OperationType],
    vigencia_hasta: Any = None,
    today: Optional[date] = None,
) -> Tuple[str, str]:
    """
    Trámite and policy state for an operation.

    A new policy whose coverage already ended is registered as expired.
    """
    operation = operation or OperationType.EMISION
    tramite, estado = OPERATION_OUTCOMES[operation]

    if operation == OperationType.EMISION:
        end = parse_date(vigencia_hasta)
        if end is not None and end < (today or date.today()):
            estado = EXPIRED_STATE
    return tramite, estado


def detect_operation(text: Any) -> OperationType:
    """Guess the operation from free text (document title, AI field)."""
    normalized = normalize_text(str(text or ''))
    for keyword, operation in OPERATION_KEYWORDS:
        if keyword in normalized:
            return operation
    return OperationType.EMISION


def map_process_state(text: Any, default: str = 'En proceso') -> str:
    """Normalize an estado-de-trámite label."""
    normalized = normalize_text(str(text or ''))
    if not normalized:
        return default
    for keyword, label in PROCESS_STATES:
        if keyword in normalized:
            return label
    logger.debug(f"Unknown process state '{text}', using {default}")
    return default
