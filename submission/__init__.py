"""
Submission Package

Turns a validated draft into the record the policy backend accepts.

Usage:
    from submission import VelneoPayloadBuilder, SubmissionContext

    payload = VelneoPayloadBuilder().build(draft, SubmissionContext(processed_with_ai=True))
    payload['conpol']          # policy number
    payload['procesadoConIA']  # True
"""

from .operations import (
    OPERATION_OUTCOMES,
    EXPIRED_STATE,
    operation_outcome,
    detect_operation,
    map_process_state,
)
from .payload import (
    VelneoPayloadBuilder,
    SubmissionContext,
    PAYLOAD_KEYS,
)

__all__ = [
    # Operations
    'OPERATION_OUTCOMES',
    'EXPIRED_STATE',
    'operation_outcome',
    'detect_operation',
    'map_process_state',

    # Payload
    'VelneoPayloadBuilder',
    'SubmissionContext',
    'PAYLOAD_KEYS',
]
