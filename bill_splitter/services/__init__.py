"""Services package."""

from bill_splitter.services.extraction import (
    ExtractionError,
    ExtractionFailedError,
    GeminiExtractionService,
    MissingApiKeyError,
    UploadRejectedError,
)

__all__ = [
    "ExtractionError",
    "ExtractionFailedError",
    "GeminiExtractionService",
    "MissingApiKeyError",
    "UploadRejectedError",
]
