"""Line item extraction package."""

from bill_splitter.services.extraction.gemini_service import (
    ExtractionError,
    ExtractionFailedError,
    GeminiExtractionService,
    MissingApiKeyError,
    UploadRejectedError,
    extract_json_array,
    parse_items,
)

__all__ = [
    "ExtractionError",
    "ExtractionFailedError",
    "GeminiExtractionService",
    "MissingApiKeyError",
    "UploadRejectedError",
    "extract_json_array",
    "parse_items",
]
