"""
Step Completion Checks

One predicate per wizard step. A check never raises: it reports whether the
step is complete, why not, and any non-blocking warnings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from validation import PolicyValidator

from .state import WizardState
from .steps import StepId

logger = logging.getLogger(__name__)


MAX_UPLOAD_BYTES = 10 * 1024 * 1024
LARGE_UPLOAD_BYTES = 5 * 1024 * 1024
LOW_PROCESSING_CONFIDENCE = 70


@dataclass(frozen=True)
class StepCheck:
    """Outcome of a step predicate."""
    passed: bool
    reason: str = ''
    warnings: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.passed


def _ok(*warnings: str) -> StepCheck:
    return StepCheck(True, '', tuple(warnings))


def _fail(reason: str) -> StepCheck:
    return StepCheck(False, reason)


def check_selection(selection, what: str) -> StepCheck:
    if selection is None:
        return _fail(f"Debe seleccionar {what}")
    if not selection.is_complete:
        return _fail(f"La selección de {what} está incompleta")
    return _ok()


def check_client(state: WizardState, validator: PolicyValidator) -> StepCheck:
    return check_selection(state.client, "un cliente")


def check_company(state: WizardState, validator: PolicyValidator) -> StepCheck:
    return check_selection(state.company, "una compañía")


def check_section(state: WizardState, validator: PolicyValidator) -> StepCheck:
    return check_selection(state.section, "una sección")


def check_operation(state: WizardState, validator: PolicyValidator) -> StepCheck:
    if state.operation is None:
        return _fail("Debe seleccionar el tipo de operación")
    return _ok()


def check_upload(state: WizardState, validator: PolicyValidator) -> StepCheck:
    upload = state.upload
    if upload is None:
        return _fail("Debe subir el PDF de la póliza")
    if not upload.name.lower().endswith('.pdf'):
        return _fail("Solo se aceptan archivos PDF")
    if upload.size <= 0:
        return _fail("El archivo está vacío")
    if upload.size > MAX_UPLOAD_BYTES:
        return _fail("El archivo supera el tamaño máximo de 10 MB")
    if upload.size > LARGE_UPLOAD_BYTES:
        return _ok("Archivo grande, el procesamiento puede demorar")
    return _ok()


def check_process(state: WizardState, validator: PolicyValidator) -> StepCheck:
    if state.is_processing:
        return _fail("El documento se está procesando")
    if state.processing is None or state.draft is None:
        return _fail("El documento aún no fue procesado")

    warnings = []
    if state.processing.mapped_fields == 0:
        warnings.append("No se extrajeron campos del documento")
    elif state.processing.average_confidence < LOW_PROCESSING_CONFIDENCE:
        warnings.append("Confianza de extracción baja, revise los datos")
    return _ok(*warnings)


def check_form(state: WizardState, validator: PolicyValidator) -> StepCheck:
    if state.draft is None:
        return _fail("No hay datos de póliza para validar")

    report = validator.validate(state.draft, state.mapped)
    if report.errors:
        first = report.errors[0]
        return _fail(f"{len(report.errors)} errores de validación ({first.field}: {first.message})")
    return _ok(*(str(w) for w in report.warnings))


def check_success(state: WizardState, validator: PolicyValidator) -> StepCheck:
    if not state.submitted:
        return _fail("La póliza no fue enviada")
    return _ok()


STEP_CHECKS: Dict[StepId, Callable[[WizardState, PolicyValidator], StepCheck]] = {
    StepId.CLIENT: check_client,
    StepId.COMPANY: check_company,
    StepId.SECTION: check_section,
    StepId.OPERATION: check_operation,
    StepId.UPLOAD: check_upload,
    StepId.PROCESS: check_process,
    StepId.FORM: check_form,
    StepId.SUCCESS: check_success,
}


def check_step(step: StepId, state: WizardState, validator: Optional[PolicyValidator] = None) -> StepCheck:
    """Run the completion predicate of a step."""
    return STEP_CHECKS[step](state, validator or PolicyValidator())
