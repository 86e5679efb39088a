"""
Exception hierarchy for failures outside the core's control.

Malformed data never raises; these cover backend and AI-service failures
the surrounding application has to report to the operator.
"""


class IntakeError(RuntimeError):
    """Base class for collaborator failures."""


class MasterDataUnavailableError(IntakeError):
    """The backend master data could not be fetched."""


class DocumentProcessingError(IntakeError):
    """The document-AI service failed to process the uploaded file."""


class SubmissionError(IntakeError):
    """The backend rejected or failed to receive the policy."""
