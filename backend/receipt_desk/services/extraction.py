import json
import base64
import logging
import time
from datetime import datetime, timezone
from typing import Optional, Protocol

from anthropic import AsyncAnthropic

from ..config import Settings, get_settings
from ..exceptions import ExtractionError
from ..models import (
    CURRENCY,
    ExtractedLine,
    ExtractedReceipt,
    LineConfidences,
    ReceiptCreate,
    ReceiptLineCreate,
    ReceiptStatus,
)

logger = logging.getLogger(__name__)


RECEIPT_EXTRACTION_PROMPT = """Analyze this receipt image and extract the following information in JSON format:

{
  "vendor": "Name of the store",
  "date_time": "Date and time in ISO 8601 format (YYYY-MM-DDTHH:MM:SS) if visible",
  "receipt_no": "Receipt or ticket number if visible",
  "currency": "Currency code (MAD, EUR, etc.) - infer from symbols or context",
  "total": 125.50,
  "paid": 130.00,
  "change": 4.50,
  "confidence": 0.85,
  "lines": [
    {
      "description": "Item description exactly as printed",
      "qty": 2,
      "unit_price": 25.00,
      "line_total": 50.00,
      "unit": "One of: kg, g, L, pcs, or null",
      "confidences": {"qty": 0.9, "unit_price": 0.85, "line_total": 0.88, "description": 0.82}
    }
  ]
}

Important:
- All amounts and quantities should be numeric values, not strings
- Confidence values are between 0 and 1 and reflect how legible each value is
- If a field is not visible or cannot be determined, use null
- Copy line totals as printed, even if they do not equal qty x unit_price
- Include all individual items, not grouped totals
- Return ONLY the JSON, no additional text"""


class Extractor(Protocol):
    """Turns one receipt image into structured draft data."""

    async def extract(self, image_data: str | bytes, media_type: str = "image/jpeg") -> ExtractedReceipt:
        ...


class SampleExtractor:
    """Returns a fixed two-line sample regardless of the image."""

    async def extract(self, image_data: str | bytes, media_type: str = "image/jpeg") -> ExtractedReceipt:
        return ExtractedReceipt(
            vendor="Sample Vendor",
            date_time=datetime.now(timezone.utc),
            receipt_no=f"R{int(time.time() * 1000)}",
            currency=CURRENCY,
            total=125.5,
            paid=130.0,
            change=4.5,
            confidence_overall=0.85,
            lines=[
                ExtractedLine(
                    description="Sample Item 1",
                    qty=2,
                    unit_price=25.0,
                    line_total=50.0,
                    unit="pcs",
                    confidences=LineConfidences(qty=0.9, unit_price=0.85, line_total=0.88, description=0.82),
                ),
                ExtractedLine(
                    description="Sample Item 2",
                    qty=1,
                    unit_price=75.5,
                    line_total=75.5,
                    unit="pcs",
                    confidences=LineConfidences(qty=0.95, unit_price=0.80, line_total=0.85, description=0.78),
                ),
            ],
        )


def _number(value, default: Optional[float] = None) -> Optional[float]:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _confidence(value) -> Optional[float]:
    number = _number(value)
    if number is None:
        return None
    return min(max(number, 0.0), 1.0)


def _parse_datetime(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable receipt date {value!r}")
        return None


def parse_extraction_response(data: dict) -> ExtractedReceipt:
    """Convert the model's JSON answer into an ExtractedReceipt."""
    lines = []
    for item in data.get("lines") or []:
        confidences = item.get("confidences") or {}
        lines.append(
            ExtractedLine(
                description=item.get("description") or "",
                qty=_number(item.get("qty"), 1.0),
                unit_price=_number(item.get("unit_price"), 0.0),
                line_total=_number(item.get("line_total"), 0.0),
                unit=item.get("unit") or None,
                confidences=LineConfidences(
                    qty=_confidence(confidences.get("qty")),
                    unit_price=_confidence(confidences.get("unit_price")),
                    line_total=_confidence(confidences.get("line_total")),
                    description=_confidence(confidences.get("description")),
                ) if confidences else None,
            )
        )

    return ExtractedReceipt(
        vendor=data.get("vendor"),
        date_time=_parse_datetime(data.get("date_time")),
        receipt_no=data.get("receipt_no"),
        currency=data.get("currency"),
        total=_number(data.get("total")),
        paid=_number(data.get("paid")),
        change=_number(data.get("change")),
        confidence_overall=_confidence(data.get("confidence")) or 0.0,
        lines=lines,
    )


class ClaudeVisionExtractor:
    """Extracts receipt data with Claude Vision."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def extract(self, image_data: str | bytes, media_type: str = "image/jpeg") -> ExtractedReceipt:
        """
        Parse a receipt image using Claude Vision.

        Args:
            image_data: Base64 encoded image string or raw bytes
            media_type: MIME type of the image (image/jpeg, image/png, etc.)

        Returns:
            ExtractedReceipt with the extracted receipt data

        Raises:
            ExtractionError: If the response contains no parseable JSON
        """
        client = AsyncAnthropic(api_key=self.settings.anthropic_api_key)

        # Ensure image_data is base64 string
        if isinstance(image_data, bytes):
            image_base64 = base64.b64encode(image_data).decode("utf-8")
        else:
            image_base64 = image_data

        message = await client.messages.create(
            model=self.settings.anthropic_model,
            max_tokens=2048,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": media_type,
                                "data": image_base64,
                            },
                        },
                        {
                            "type": "text",
                            "text": RECEIPT_EXTRACTION_PROMPT,
                        },
                    ],
                }
            ],
        )

        response_text = message.content[0].text

        try:
            # Try to find JSON in the response (in case there's extra text)
            json_start = response_text.find("{")
            json_end = response_text.rfind("}") + 1
            if json_start != -1 and json_end > json_start:
                data = json.loads(response_text[json_start:json_end])
            else:
                data = json.loads(response_text)
        except json.JSONDecodeError as e:
            logger.error(f"Extraction response is not JSON: {e}")
            raise ExtractionError("Could not parse extraction response", raw_response=response_text) from e

        return parse_extraction_response(data)


def get_extractor(settings: Optional[Settings] = None) -> Extractor:
    """Return the extractor selected by the ``extractor`` setting."""
    settings = settings or get_settings()
    if settings.extractor == "claude":
        return ClaudeVisionExtractor(settings)
    if settings.extractor != "sample":
        logger.warning(f"Unknown extractor {settings.extractor!r}, using the sample extractor")
    return SampleExtractor()


def draft_from_extraction(extracted: ExtractedReceipt, image_url: Optional[str] = None) -> ReceiptCreate:
    """
    Build a draft receipt from an extraction.

    Lines are numbered in extraction order. The raw extraction is kept in
    ``ocr_raw`` for later review.
    """
    return ReceiptCreate(
        vendor=extracted.vendor or "Unknown vendor",
        date_time=extracted.date_time or datetime.now(timezone.utc),
        receipt_no=extracted.receipt_no,
        currency=CURRENCY,
        total=extracted.total or 0,
        paid=extracted.paid,
        change=extracted.change,
        status=ReceiptStatus.DRAFT,
        confidence_overall=extracted.confidence_overall,
        image_url=image_url,
        ocr_raw=extracted.model_dump(mode="json"),
        lines=[
            ReceiptLineCreate(
                index=i,
                description_raw=line.description,
                qty=line.qty,
                unit_price=line.unit_price,
                line_total=line.line_total,
                unit=line.unit,
                confidences=line.confidences,
            )
            for i, line in enumerate(extracted.lines)
        ],
    )
