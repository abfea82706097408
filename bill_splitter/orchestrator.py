"""
Main Orchestrator for Bill Splitter

Ties the extraction service to a bill session:

1. Upload → check the photo
2. Extract → Gemini reads the line items
3. Review → user edits the proposed items (front end)
4. Load → items replace the session's ledger, assignment starts over

Everything after step 4 (people, shares, tax, settlement) is done directly
on the BillSession. Every step is audited on the session's audit logger.
"""

from typing import Iterable, Optional
from uuid import UUID

from bill_splitter.audit import AuditLogger, create_correlation_id
from bill_splitter.config import get_settings
from bill_splitter.models.audit import AuditEventBuilder
from bill_splitter.models.bill import ExtractionResult, Item
from bill_splitter.services.extraction import (
    ExtractionFailedError,
    GeminiExtractionService,
    MissingApiKeyError,
    UploadRejectedError,
)
from bill_splitter.session import BillSession


class BillSplitFlow:
    """
    Orchestrates getting a bill's items into a session.

    The flow never assigns shares itself; it only fills the ledger.
    """

    def __init__(
        self,
        session: BillSession,
        extraction_service: Optional[GeminiExtractionService] = None,
    ):
        self._session = session
        self._extraction_service = extraction_service or GeminiExtractionService()

    @property
    def session(self) -> BillSession:
        return self._session

    @property
    def _audit(self) -> AuditLogger:
        return self._session.audit

    async def extract_from_image(
        self,
        image_bytes: bytes,
        filename: str,
        file_size: int,
        mime_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[ExtractionResult], bool, str]:
        """
        Read line items off an uploaded photo.

        Returns:
            (extraction, can_proceed, message)

        If can_proceed is False, extraction is None and message explains why.
        Unexpected errors from Gemini are audited and re-raised.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            upload = self._extraction_service.check_upload(filename, file_size, mime_type)
        except UploadRejectedError as e:
            self._audit.log(AuditEventBuilder.upload_rejected(
                filename=filename,
                reason=str(e),
                correlation_id=correlation_id,
            ))
            return None, False, str(e)

        self._audit.log(AuditEventBuilder.image_uploaded(
            upload_id=upload.upload_id,
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

        try:
            extraction = await self._extraction_service.extract_items(image_bytes, upload)
        except (MissingApiKeyError, ExtractionFailedError) as e:
            self._audit.log(AuditEventBuilder.extraction_failed(
                upload_id=upload.upload_id,
                reason=str(e),
                correlation_id=correlation_id,
            ))
            return None, False, str(e)
        except Exception as e:
            self._audit.log(AuditEventBuilder.external_service_error(
                service="gemini",
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            raise

        self._audit.log(AuditEventBuilder.extraction_completed(
            extraction_id=extraction.extraction_id,
            item_count=len(extraction.items),
            truncated=extraction.truncated,
            correlation_id=correlation_id,
        ))

        if extraction.truncated:
            message = (
                f"⚠️ Extracted {len(extraction.items)} items, but the response was "
                "truncated. The bill may contain more items - please add any that are missing."
            )
        else:
            message = f"✅ Successfully extracted {len(extraction.items)} items from the bill."

        return extraction, True, message

    def load_items(self, items: Iterable[Item]) -> None:
        """
        Load reviewed items into the session.

        Any shares already assigned are discarded.
        """
        self._session.replace_items(items)


def create_app_components() -> BillSplitFlow:
    """
    Factory function to create a fresh session and its flow.

    The Gemini model is configured on first use, so a missing key only
    surfaces when a photo is processed.
    """
    app_settings = get_settings().app
    session = BillSession(min_participants=app_settings.min_participants)
    return BillSplitFlow(session=session)
