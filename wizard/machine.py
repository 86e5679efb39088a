"""
Wizard State Machine

Drives the policy wizard through the step table.

Rules:
- go_next / complete_step are guarded by the current step's predicate
- go_back is always allowed (except out of the terminal step)
- go_to_step may jump forward only when every step before the target,
  the current one included, is completed
- Submission needs every required step completed and a clean validation
- A denied transition returns TransitionResult(allowed=False, reason=...)
  and leaves the state untouched; it never raises

All updates replace the whole WizardState.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, MutableMapping, Optional, Tuple

from reconcile import ReconciliationResult
from schema import DocumentProcessingError, DraftPolicyRecord, IntakeError
from validation import PolicyValidator, ValidationReport
from vocabulary import VelneoDefaults

from .checks import StepCheck, check_step
from .state import STORAGE_KEY, ProcessingSummary, Selection, UploadedFile, WizardState
from .steps import (
    STEP_TABLE,
    TERMINAL_STEP,
    OperationType,
    StepId,
    active_steps,
    is_skipped,
    next_step,
    previous_step,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a navigation request."""
    allowed: bool
    reason: str = ''
    step: Optional[StepId] = None
    warnings: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class WizardProgress:
    current_index: int
    total_steps: int
    completed_steps: int
    percentage: int
    next_step: Optional[StepId]
    previous_step: Optional[StepId]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'currentStepIndex': self.current_index,
            'totalSteps': self.total_steps,
            'completedSteps': self.completed_steps,
            'percentage': self.percentage,
            'nextStep': self.next_step.value if self.next_step else None,
            'previousStep': self.previous_step.value if self.previous_step else None,
        }


class PolicyWizard:
    """
    State machine for the policy intake wizard.

    Usage:
        wizard = PolicyWizard()
        wizard.complete_step(StepId.CLIENT, {'id': 101, 'displayName': 'ACME SA'})
        wizard.complete_step(StepId.COMPANY, {'id': 2, 'displayName': 'BSE'})

        result = wizard.go_next()
        if not result:
            print(result.reason)
    """

    def __init__(
        self,
        validator: Optional[PolicyValidator] = None,
        defaults: Optional[VelneoDefaults] = None,
        state: Optional[WizardState] = None,
    ):
        self.validator = validator or PolicyValidator()
        self.defaults = defaults or VelneoDefaults()
        self._state = state or WizardState()
        self._listeners: List[Callable[[WizardState], None]] = []

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def current_step(self) -> StepId:
        return self._state.current_step

    def subscribe(self, listener: Callable[[WizardState], None]):
        """Call ``listener`` with every new state."""
        self._listeners.append(listener)

    def _commit(self, state: WizardState):
        self._state = state
        for listener in self._listeners:
            listener(state)

    def _deny(self, reason: str, step: Optional[StepId] = None) -> TransitionResult:
        logger.info(f"Transition denied at {self._state.current_step.value}: {reason}")
        return TransitionResult(False, reason, step or self._state.current_step)

    def check(self, step: Optional[StepId] = None) -> StepCheck:
        """Completion predicate of a step against the current state."""
        return check_step(step or self._state.current_step, self._state, self.validator)

    # Navigation

    def go_next(self) -> TransitionResult:
        state = self._state
        current = state.current_step
        target = next_step(current, state.operation)
        if target is None or target == TERMINAL_STEP:
            return self._deny("No hay un paso siguiente, envíe la póliza para finalizar")

        result = check_step(current, state, self.validator)
        if not result:
            return self._deny(result.reason)

        self._commit(self._enter(state.mark_completed(current), target))
        return TransitionResult(True, step=target, warnings=result.warnings)

    def go_back(self) -> TransitionResult:
        state = self._state
        target = previous_step(state.current_step, state.operation)
        if target is None:
            return self._deny("No hay un paso anterior")

        self._commit(state.evolve(current_step=target, error=None))
        return TransitionResult(True, step=target)

    def go_to_step(self, target: StepId) -> TransitionResult:
        state = self._state
        current = state.current_step

        if is_skipped(target, state.operation):
            return self._deny(f"El paso {target.value} no aplica a esta operación", target)
        if target == current:
            return TransitionResult(True, step=target)
        if target == TERMINAL_STEP and not state.submitted:
            return self._deny("La póliza debe enviarse para finalizar", target)
        if current == TERMINAL_STEP:
            return self._deny("El asistente ya finalizó, reinícielo para continuar", target)

        if target.order > current.order:
            pending = [
                s for s in active_steps(state.operation)
                if s.order < target.order and not state.is_completed(s)
            ]
            if pending:
                return self._deny(f"Faltan completar pasos: {', '.join(s.value for s in pending)}", target)

        self._commit(self._enter(state, target))
        return TransitionResult(True, step=target)

    def complete_step(self, step: StepId, data: Any = None) -> TransitionResult:
        """
        Store the step's data and mark it completed.

        When the step is the current one the wizard moves on to the next step.
        If the predicate fails nothing changes, stored data included.
        """
        state = self._state
        if is_skipped(step, state.operation):
            return self._deny(f"El paso {step.value} no aplica a esta operación", step)

        try:
            candidate = self._with_step_data(state, step, data)
        except (TypeError, ValueError) as e:
            return self._deny(str(e), step)

        result = check_step(step, candidate, self.validator)
        if not result:
            return self._deny(result.reason, step)

        candidate = candidate.mark_completed(step)
        target = step
        if step == candidate.current_step:
            following = next_step(step, candidate.operation)
            if following is not None and following != TERMINAL_STEP:
                target = following
                candidate = self._enter(candidate, following)

        self._commit(candidate)
        return TransitionResult(True, step=target, warnings=result.warnings)

    def reset(self):
        """Back to the first step. Persisted snapshots are left alone."""
        self._commit(WizardState())
        logger.info("Wizard reset")

    # Processing

    def apply_processing_result(
        self,
        result: ReconciliationResult,
        document: Any = None,
    ) -> WizardState:
        """
        Install a reconciliation result as the wizard's draft.

        Args:
            result: Reconciled fields for the uploaded document
            document: Optional DocumentAIResult with file name and timings
        """
        state = self._state
        summary = ProcessingSummary(
            file_name=getattr(document, 'fileName', '') or (state.upload.name if state.upload else ''),
            completeness=float(getattr(document, 'overallCompletenessPercent', 0.0) or result.summary.success_percentage),
            processing_time_ms=int(getattr(document, 'processingTimeMs', 0) or 0),
            mapped_fields=result.summary.mapped_fields,
            average_confidence=result.summary.average_confidence,
            warnings=tuple(result.warnings),
        )

        draft = result.draft.with_context(**state.draft_context())
        new_state = state.evolve(
            draft=draft,
            mapped=dict(result.mapped),
            processing=summary,
            is_processing=False,
            error=None,
        )
        new_state = self._with_issues(new_state)
        self._commit(new_state)
        logger.info(f"Processing result applied: {summary.mapped_fields} fields mapped")
        return new_state

    async def process_document(
        self,
        processor: Callable[[WizardState], Awaitable[Any]],
    ) -> WizardState:
        """
        Run the document processor and apply its result.

        ``processor`` receives the current state and returns a
        ReconciliationResult, or a (ReconciliationResult, DocumentAIResult)
        pair. On cancellation or failure the previous state is restored.

        Raises:
            asyncio.CancelledError: The request was cancelled
            DocumentProcessingError: The processor failed
        """
        before = self._state
        self._commit(before.evolve(is_processing=True, error=None))

        try:
            outcome = await processor(before)
        except asyncio.CancelledError:
            self._commit(before)
            logger.info("Document processing cancelled")
            raise
        except IntakeError as e:
            self._commit(before.evolve(error=str(e)))
            raise
        except Exception as e:
            self._commit(before.evolve(error=str(e)))
            raise DocumentProcessingError(str(e)) from e

        if isinstance(outcome, tuple):
            result, document = outcome
        else:
            result, document = outcome, None

        self._state = before
        return self.apply_processing_result(result, document)

    # Form editing

    def update_draft(self, draft: DraftPolicyRecord, mapped: Optional[Dict[str, Any]] = None) -> WizardState:
        changes = {'draft': draft}
        if mapped is not None:
            changes['mapped'] = dict(mapped)
        new_state = self._with_issues(self._state.evolve(**changes))
        self._commit(new_state)
        return new_state

    def validate(self) -> ValidationReport:
        """Validate the current draft and keep its issues on the state."""
        report = self._report(self._state)
        self._commit(self._state.evolve(validation_issues=tuple(report.errors + report.warnings)))
        return report

    def _report(self, state: WizardState) -> ValidationReport:
        if state.draft is None:
            return ValidationReport()
        return self.validator.validate(state.draft, state.mapped)

    def _with_issues(self, state: WizardState) -> WizardState:
        report = self._report(state)
        return state.evolve(validation_issues=tuple(report.errors + report.warnings))

    # Submission

    def required_steps(self) -> List[StepId]:
        operation = self._state.operation
        return [s for s in active_steps(operation) if STEP_TABLE[s].required]

    def can_submit(self) -> TransitionResult:
        state = self._state
        if state.submitted:
            return TransitionResult(False, "La póliza ya fue enviada", TERMINAL_STEP)

        pending = [
            s for s in self.required_steps()
            if s != StepId.FORM and not state.is_completed(s)
        ]
        if pending:
            return TransitionResult(False, f"Faltan completar pasos: {', '.join(s.value for s in pending)}", pending[0])

        result = check_step(StepId.FORM, state, self.validator)
        if not result:
            return TransitionResult(False, result.reason, StepId.FORM)
        return TransitionResult(True, step=StepId.FORM, warnings=result.warnings)

    async def submit(self, submitter: Callable[[WizardState], Awaitable[Any]]) -> TransitionResult:
        """
        Send the policy through ``submitter`` once the gate passes.

        The submitter's return value is kept as the submission id. Its
        exceptions propagate and leave the state unchanged.
        """
        gate = self.can_submit()
        if not gate:
            logger.info(f"Submission blocked: {gate.reason}")
            return gate

        state = self._state
        response = await submitter(state)

        self._commit(state.evolve(
            completed_steps=state.completed_steps | {StepId.FORM, TERMINAL_STEP},
            current_step=TERMINAL_STEP,
            submitted=True,
            submission_id=response,
            error=None,
        ))
        logger.info(f"Policy submitted (id={response})")
        return TransitionResult(True, step=TERMINAL_STEP, warnings=gate.warnings)

    # Progress

    def progress(self) -> WizardProgress:
        state = self._state
        steps = active_steps(state.operation)
        completed = sum(1 for s in steps if state.is_completed(s))
        current_index = steps.index(state.current_step) if state.current_step in steps else 0
        return WizardProgress(
            current_index=current_index,
            total_steps=len(steps),
            completed_steps=completed,
            percentage=int(round(completed * 100 / len(steps))) if steps else 0,
            next_step=next_step(state.current_step, state.operation),
            previous_step=previous_step(state.current_step, state.operation),
        )

    def first_step_with_errors(self) -> Optional[StepId]:
        """The first active step whose predicate fails, if any."""
        state = self._state
        for step in active_steps(state.operation):
            if step == TERMINAL_STEP:
                continue
            if not check_step(step, state, self.validator):
                return step
        return None

    # Persistence

    def persist(self, storage: MutableMapping[str, str]):
        """Write the snapshot into a key/value store."""
        storage[STORAGE_KEY] = json.dumps(self._state.to_snapshot(), ensure_ascii=False)

    def restore(self, storage: MutableMapping[str, str]) -> bool:
        """Load a snapshot from a key/value store; False when none is usable."""
        raw = storage.get(STORAGE_KEY)
        if not raw:
            return False
        try:
            state = WizardState.from_snapshot(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable wizard snapshot: {e}")
            return False
        self._commit(state)
        return True

    @staticmethod
    def clear_storage(storage: MutableMapping[str, str]):
        storage.pop(STORAGE_KEY, None)

    # Internals

    def _enter(self, state: WizardState, target: StepId) -> WizardState:
        """Move to ``target``, creating an empty draft when the form has none."""
        if target == StepId.FORM and state.draft is None:
            draft = DraftPolicyRecord.empty(
                text_defaults=self.defaults.text_defaults(),
                **state.draft_context(),
            )
            state = state.evolve(draft=draft, mapped={})
        return state.evolve(current_step=target, error=None)

    def _with_step_data(self, state: WizardState, step: StepId, data: Any) -> WizardState:
        if data is None:
            return state
        if step == StepId.CLIENT:
            return state.evolve(client=Selection.coerce(data))
        if step == StepId.COMPANY:
            return state.evolve(company=Selection.coerce(data))
        if step == StepId.SECTION:
            return state.evolve(section=Selection.coerce(data))
        if step == StepId.OPERATION:
            operation = OperationType.parse(data)
            if operation is None:
                raise ValueError(f"Tipo de operación no soportado: {data}")
            return state.evolve(operation=operation)
        if step == StepId.UPLOAD:
            if isinstance(data, UploadedFile):
                return state.evolve(upload=data)
            if isinstance(data, dict):
                return state.evolve(upload=UploadedFile(
                    name=str(data.get('name', '')),
                    size=int(data.get('size') or 0),
                    handle=data.get('handle'),
                ))
            raise TypeError(f"Cannot use {type(data).__name__} as an upload")
        if step == StepId.FORM:
            if isinstance(data, DraftPolicyRecord):
                return state.evolve(draft=data)
            raise TypeError(f"Cannot use {type(data).__name__} as a draft")
        return state
