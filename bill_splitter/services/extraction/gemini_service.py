"""
Line Item Extraction using Gemini Vision

This service handles:
1. Checking the uploaded photo (image type, size limit)
2. Sending it to Gemini with an extraction prompt
3. Pulling the JSON array of items out of the model's reply
4. Converting it to validated Item models

The items it returns are PROPOSED: the user reviews and edits them before
they are loaded into a bill session.
"""

import json
import re
from decimal import Decimal
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from bill_splitter.config import get_settings
from bill_splitter.models.bill import ExtractionResult, ImageUpload, Item


logger = structlog.get_logger("bill_splitter.extraction")


EXTRACTION_PROMPT = """
Analyze this receipt/bill image and extract ALL menu items with their quantities and prices.

Return ONLY a valid JSON array in this exact format:
[
  {
    "item_name": "Item Name",
    "quantity": 1,
    "unit_price": 12.99
  }
]

IMPORTANT RULES:
- Extract ALL food/beverage/product items from the receipt, do not limit the number
- Skip only headers, restaurant name, totals, tax, tips, service charges, etc.
- If quantity is not specified, assume 1
- Convert total prices to unit prices if quantity > 1
- Use reasonable prices (between 0.50 and 2000.00)
- Include every single item that appears on the bill
- Do not include any explanation, markdown formatting, or extra text
- Return ONLY the JSON array, nothing else
"""

_ARRAY_PATTERN = re.compile(r"\[[\s\S]*?\]")


class ExtractionError(Exception):
    """Base exception for extraction errors."""
    pass


class UploadRejectedError(ExtractionError):
    """The uploaded file is not an acceptable bill photo."""
    pass


class MissingApiKeyError(ExtractionError):
    """Gemini is not configured."""
    pass


class ExtractionFailedError(ExtractionError):
    """The model reply did not contain any usable items."""
    pass


def extract_json_array(text: str) -> str:
    """
    Find the JSON array in a model reply.

    If the reply was cut off mid-array, the incomplete trailing item is
    dropped and the array is closed.

    Raises:
        ExtractionFailedError: no array in the reply
    """
    match = _ARRAY_PATTERN.search(text)
    if match:
        return match.group(0)

    start = text.find("[")
    if start < 0:
        raise ExtractionFailedError("No valid JSON found in Gemini response")

    partial = text[start:]
    last_complete = partial.rfind("}")
    if last_complete < 0:
        return "[]"
    return partial[: last_complete + 1] + "]"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_items(text: str) -> list[Item]:
    """
    Turn a model reply into Items.

    Entries without a name, or without a positive numeric quantity and
    unit price, are skipped.

    Raises:
        ExtractionFailedError: reply is not JSON or has no valid items
    """
    try:
        raw_items = json.loads(extract_json_array(text))
    except json.JSONDecodeError as e:
        raise ExtractionFailedError(f"Gemini returned malformed JSON: {e}") from e

    if not isinstance(raw_items, list):
        raise ExtractionFailedError("Gemini response is not a list of items")

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        name = raw.get("item_name")
        quantity = raw.get("quantity")
        unit_price = raw.get("unit_price")
        if not isinstance(name, str) or not name.strip():
            continue
        if not (_is_number(quantity) and _is_number(unit_price)):
            continue
        if quantity <= 0 or unit_price <= 0:
            continue
        try:
            items.append(Item(
                name=name.strip()[:200],
                quantity=Decimal(str(quantity)),
                unit_price=Decimal(str(unit_price)),
            ))
        except ValidationError:
            # NaN/inf slip through the numeric checks above
            continue

    if not items:
        raise ExtractionFailedError("No valid items extracted")

    return items


class GeminiExtractionService:
    """
    Reads line items off a bill photo with the Gemini vision model.

    BOUNDARIES:
    1. This service ONLY extracts items - it does not touch any session
    2. Every item it returns has a name, quantity > 0 and unit price > 0
    """

    def __init__(self):
        self._app_settings = get_settings().app
        self._model: Optional[Any] = None
        self._timeout: Optional[int] = None

    def _get_model(self):
        """Get or create the Gemini model."""
        if self._model is None:
            try:
                settings = get_settings().gemini
            except ValidationError as e:
                raise MissingApiKeyError(
                    "Google AI API key is not configured. "
                    "Please add GEMINI_API_KEY to your environment variables."
                ) from e

            genai.configure(api_key=settings.api_key)
            self._timeout = settings.request_timeout_seconds
            self._model = genai.GenerativeModel(
                model_name=settings.model_name,
                generation_config={
                    "temperature": settings.temperature,
                    "top_k": 1,
                    "top_p": 1,
                    "max_output_tokens": settings.max_tokens,
                }
            )
        return self._model

    def check_upload(
        self,
        filename: str,
        file_size: int,
        mime_type: str,
    ) -> ImageUpload:
        """
        Validate an upload before it is sent anywhere.

        Raises:
            UploadRejectedError: not an image, or over the size limit
        """
        if file_size > self._app_settings.max_upload_size_bytes:
            raise UploadRejectedError(
                f"File size must be less than {self._app_settings.max_upload_size_mb}MB"
            )
        try:
            return ImageUpload(
                original_filename=filename,
                file_size_bytes=file_size,
                mime_type=mime_type,
            )
        except ValidationError as e:
            raise UploadRejectedError("Only image files are allowed") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, image_bytes: bytes, mime_type: str):
        model = self._get_model()
        request_options = {"timeout": self._timeout} if self._timeout else None
        return await model.generate_content_async(
            [
                EXTRACTION_PROMPT,
                {"mime_type": mime_type, "data": image_bytes},
            ],
            request_options=request_options,
        )

    async def extract_items(
        self,
        image_bytes: bytes,
        upload: ImageUpload,
    ) -> ExtractionResult:
        """
        Extract line items from a bill photo.

        Returns:
            ExtractionResult with the items found

        Raises:
            MissingApiKeyError: Gemini is not configured
            ExtractionFailedError: the model produced nothing usable
        """
        # Fail fast on configuration instead of retrying it
        self._get_model()

        response = await self._generate(image_bytes, upload.mime_type)

        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            raise ExtractionFailedError("No response from Gemini")

        finish_reason = getattr(candidates[0].finish_reason, "name", str(candidates[0].finish_reason))
        truncated = finish_reason == "MAX_TOKENS"

        try:
            text = response.text
        except ValueError as e:
            raise ExtractionFailedError("No response from Gemini") from e

        items = parse_items(text)

        if truncated:
            logger.warning(
                "extraction_truncated",
                item_count=len(items),
                upload_id=str(upload.upload_id),
            )
        else:
            logger.info(
                "extraction_completed",
                item_count=len(items),
                upload_id=str(upload.upload_id),
            )

        return ExtractionResult(
            file_name=upload.original_filename,
            items=items,
            truncated=truncated,
        )
