"""Exceptions raised by the verification pipeline."""


class VerificationError(RuntimeError):
    """Base class for verification failures reported to the caller."""


class NotFoundError(VerificationError):
    """The document record or its stored file does not exist."""


class AlreadyVerifiedError(VerificationError):
    """The document was verified before and re-verification was not requested."""


class ExtractionError(VerificationError):
    """Text extraction failed; no confidence can be computed."""


class AnalyzerFailure(VerificationError):
    """An analyzer raised.  Caught inside the pipeline, never surfaced."""

    def __init__(self, analyzer_name: str, message: str):
        super().__init__(f"{analyzer_name}: {message}")
        self.analyzer_name = analyzer_name
        self.message = message
