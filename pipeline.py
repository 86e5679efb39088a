"""
Policy Intake Pipeline

Main orchestration module wiring the vocabulary, the mapping table, the
reconciler, the validator, the override layer and the wizard into one
intake session.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
import logging
import time

import yaml

from decision import TierConfig
from mapping import FieldMappingTable
from reconcile import (
    DocumentAIResult,
    ExtractionReconciler,
    MappedField,
    ReconciliationResult,
    normalize_ai_payload,
)
from review import OverrideLayer
from schema import DraftPolicyRecord, IntakeError, SubmissionError
from submission import SubmissionContext, VelneoPayloadBuilder
from validation import PolicyValidator, ValidationConfig, ValidationReport
from vocabulary import MasterDataLoader, MasterVocabulary, VelneoDefaults, VocabularyResolver
from wizard import PolicyWizard, TransitionResult, WizardState

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for an intake session."""

    # Mapping
    rules_path: Optional[str] = None

    # Components
    defaults: VelneoDefaults = field(default_factory=VelneoDefaults)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    tiers: TierConfig = field(default_factory=TierConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PipelineConfig':
        data = dict(data or {})
        known = {'rules_path', 'defaults', 'validation', 'tiers'}
        for key in sorted(set(data) - known):
            logger.warning(f"Ignoring unknown config key '{key}'")

        return cls(
            rules_path=data.get('rules_path'),
            defaults=VelneoDefaults().with_overrides(data.get('defaults') or {}),
            validation=ValidationConfig.from_dict(data.get('validation') or {}),
            tiers=TierConfig(**(data.get('tiers') or {})),
        )

    @classmethod
    def from_yaml(cls, path: str) -> 'PipelineConfig':
        """Load configuration from a YAML file."""
        logger.info(f"Loading pipeline config from: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'rules_path': self.rules_path,
            'defaults': self.defaults.to_dict(),
            'validation': {
                'max_vigency_days': self.validation.max_vigency_days,
                'premium_ceiling': self.validation.premium_ceiling,
                'supervisor_threshold': self.validation.supervisor_threshold,
                'max_installments': self.validation.max_installments,
            },
            'tiers': self.tiers.to_dict(),
        }


@dataclass
class SessionMetrics:
    """Counters for one intake session."""

    documents_processed: int = 0
    processing_failures: int = 0
    reconciliations: int = 0
    overrides: int = 0
    submissions: int = 0
    total_processing_time: float = 0.0

    def to_dict(self) -> dict:
        return {
            'documents_processed': self.documents_processed,
            'processing_failures': self.processing_failures,
            'reconciliations': self.reconciliations,
            'overrides': self.overrides,
            'submissions': self.submissions,
            'total_processing_time': round(self.total_processing_time, 3),
        }


class IntakeSession:
    """
    Main orchestration class for one policy intake.

    Usage:
        session = IntakeSession(PipelineConfig.from_yaml('config/intake.yaml'))
        await session.load_master_data()

        session.wizard.complete_step(StepId.CLIENT, client)
        ...
        await session.process_document(ai_client)
        session.override('numeroPoliza', 'AB-12345')
        await session.submit(backend)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        vocabulary: Optional[MasterVocabulary] = None,
        master_loader: Optional[MasterDataLoader] = None,
    ):
        self.config = config or PipelineConfig()
        self.master_loader = master_loader
        self.metrics = SessionMetrics()

        if self.config.rules_path:
            self.table = FieldMappingTable.from_yaml(self.config.rules_path)
        else:
            self.table = FieldMappingTable.default()

        self.builder = VelneoPayloadBuilder(
            self.config.defaults,
            self.config.validation.max_lengths.get('observaciones'),
        )
        self._init_components(vocabulary)
        self.wizard = PolicyWizard(self.validator, self.config.defaults)
        self.overrides = OverrideLayer(resolver=self.resolver)
        self.last_document: Optional[DocumentAIResult] = None

    def _init_components(self, vocabulary: Optional[MasterVocabulary]) -> None:
        """(Re)build the vocabulary-dependent components."""
        self.vocabulary = vocabulary or MasterVocabulary.with_builtin_departments()
        self.resolver = VocabularyResolver(self.vocabulary, self.config.defaults)
        self.reconciler = ExtractionReconciler(
            self.table, self.resolver, self.config.defaults, self.config.tiers,
        )
        self.validator = PolicyValidator(self.config.validation, vocabulary=self.vocabulary)

    async def load_master_data(self) -> MasterVocabulary:
        """
        Fetch the backend vocabulary and rebuild the resolver with it.

        Raises:
            MasterDataUnavailableError: The backend could not be reached
        """
        if self.master_loader is None:
            return self.vocabulary

        vocabulary = await self.master_loader.load()
        self._init_components(vocabulary)
        self.wizard.validator = self.validator
        self.overrides.resolver = self.resolver
        return vocabulary

    # Reconciliation

    def reconcile(self, payload: Any) -> ReconciliationResult:
        """
        Reconcile a raw document-AI payload, keeping manual overrides.

        The reconciler runs without the overrides so the fresh AI values
        become the baseline clear_override() restores; the layer then puts
        the overrides back on top.
        """
        extracted = normalize_ai_payload(payload)
        result = self.reconciler.reconcile(
            extracted,
            context=self.wizard.state.draft_context(),
        )
        self.metrics.reconciliations += 1
        return self.overrides.apply(result)

    async def process_document(
        self,
        ai_client: Callable[[Any], Awaitable[Any]],
    ) -> WizardState:
        """
        Send the uploaded file to the document-AI service and apply the result.

        ``ai_client`` receives the upload handle and returns the raw payload.
        Cancellation leaves the wizard as it was.
        """
        async def processor(state: WizardState):
            handle = state.upload.handle if state.upload else None
            raw = await ai_client(handle)
            document = DocumentAIResult.model_validate(raw or {})
            self.last_document = document
            return self.reconcile(document), document

        start = time.time()
        try:
            state = await self.wizard.process_document(processor)
        except IntakeError:
            self.metrics.processing_failures += 1
            raise
        finally:
            self.metrics.total_processing_time += time.time() - start

        self.metrics.documents_processed += 1
        return state

    # Form editing

    def override(self, field_name: str, value: Any, label: str = ''):
        """Apply a manual value and refresh the wizard draft."""
        mapped = self.overrides.override(field_name, value, label)
        self.metrics.overrides += 1
        self._sync_draft()
        return mapped

    def clear_override(self, field_name: str):
        restored = self.overrides.clear(field_name)
        if restored is not None and self.overrides.result is None:
            # No document was processed: fall back to the empty form value
            baseline = DraftPolicyRecord.empty(text_defaults=self.config.defaults.text_defaults())
            restored = replace(restored, mapped_value=baseline[field_name])
        self._sync_draft(restored)
        return restored

    def _sync_draft(self, restored: Optional[MappedField] = None) -> None:
        state = self.wizard.state
        result = self.overrides.result
        if result is not None:
            draft = result.draft.with_context(**state.draft_context())
            self.wizard.update_draft(draft, result.mapped)
            return

        draft = state.draft
        if draft is None:
            return
        mapped = dict(state.mapped)
        if restored is not None:
            draft = draft.with_value(restored.field_name, restored.mapped_value)
            mapped[restored.field_name] = restored
        for name, field_value in self.overrides.overrides().items():
            draft = draft.with_value(name, field_value.mapped_value)
            mapped[name] = field_value
        self.wizard.update_draft(draft, mapped)

    def validate(self) -> ValidationReport:
        return self.wizard.validate()

    # Submission

    def submission_context(self) -> SubmissionContext:
        state = self.wizard.state
        processing = state.processing
        return SubmissionContext(
            processed_with_ai=processing is not None,
            file_name=processing.file_name if processing else '',
            completeness=processing.completeness if processing else None,
            operation=state.operation,
            company_alias=state.company.display_name if state.company else '',
        )

    def build_payload(self) -> Dict[str, Any]:
        state = self.wizard.state
        if state.draft is None:
            raise ValueError("No draft to submit")
        return self.builder.build(state.draft, self.submission_context())

    async def submit(self, backend: Callable[[Dict[str, Any]], Awaitable[Any]]) -> TransitionResult:
        """
        Submit through ``backend`` once the wizard's gate passes.

        Raises:
            SubmissionError: The backend call failed
        """
        async def submitter(state: WizardState):
            payload = self.build_payload()
            try:
                return await backend(payload)
            except IntakeError:
                raise
            except Exception as e:
                raise SubmissionError(str(e)) from e

        result = await self.wizard.submit(submitter)
        if result.allowed:
            self.metrics.submissions += 1
        return result

    def reset(self) -> None:
        """Start over. The loaded vocabulary is kept."""
        self.wizard.reset()
        self.overrides = OverrideLayer(resolver=self.resolver)
        self.last_document = None


def process_payload(
    payload: Any,
    config: Optional[PipelineConfig] = None,
    vocabulary: Optional[MasterVocabulary] = None,
) -> Dict[str, Any]:
    """
    Convenience function: reconcile and validate one document-AI payload.

    Returns:
        Dictionary with the reconciliation result and the validation report
    """
    session = IntakeSession(config, vocabulary)
    result = session.reconcile(payload)
    report = session.validator.validate(result.draft, result.mapped)
    return {
        'result': result,
        'validation': report,
    }


def load_payload(path: str) -> Any:
    """Read a saved document-AI response (JSON or YAML)."""
    text = Path(path).read_text(encoding='utf-8')
    return yaml.safe_load(text)
