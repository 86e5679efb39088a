"""
Policy Wizard Package

Guided intake flow: pick client, company and section, choose the
operation, upload and process the PDF, fix the form, submit.

Usage:
    from wizard import PolicyWizard, StepId

    wizard = PolicyWizard()
    wizard.complete_step(StepId.CLIENT, {'id': 101, 'displayName': 'ACME SA'})

    result = wizard.go_next()
    if not result.allowed:
        print(result.reason)

    wizard.progress().percentage
"""

from .steps import (
    StepId,
    OperationType,
    StepDefinition,
    STEP_TABLE,
    STEP_ORDER,
    INITIAL_STEP,
    TERMINAL_STEP,
    next_step,
    previous_step,
    active_steps,
)
from .state import (
    WizardState,
    Selection,
    UploadedFile,
    ProcessingSummary,
    STORAGE_KEY,
)
from .checks import (
    StepCheck,
    check_step,
    MAX_UPLOAD_BYTES,
)
from .machine import (
    PolicyWizard,
    TransitionResult,
    WizardProgress,
)

__all__ = [
    # Steps
    'StepId',
    'OperationType',
    'StepDefinition',
    'STEP_TABLE',
    'STEP_ORDER',
    'INITIAL_STEP',
    'TERMINAL_STEP',
    'next_step',
    'previous_step',
    'active_steps',

    # State
    'WizardState',
    'Selection',
    'UploadedFile',
    'ProcessingSummary',
    'STORAGE_KEY',

    # Checks
    'StepCheck',
    'check_step',
    'MAX_UPLOAD_BYTES',

    # Machine
    'PolicyWizard',
    'TransitionResult',
    'WizardProgress',
]
