"""
Warranty document scanning via the `warranty-ocr` Edge Function.

The function returns loosely extracted strings; to_warranty_draft() turns
them into optional pre-fill hints. Nothing here writes to the Store.
"""
import logging

import requests
from dateutil import parser as date_parser
from dateutil.parser import ParserError
from pydantic import BaseModel, ConfigDict, Field

from homekeep.core.config import settings
from homekeep.core.errors import ProviderUnavailable
from homekeep.schemas.warranty import WarrantyDraft
from homekeep.services.subscription import edge_function_headers

logger = logging.getLogger(__name__)


class OcrExtraction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    item_name: str | None = Field(default=None, alias="itemName")
    manufacturer: str | None = None
    purchase_date: str | None = Field(default=None, alias="purchaseDate")
    expiry_date: str | None = Field(default=None, alias="expiryDate")
    description: str | None = None
    raw_text: str | None = Field(default=None, alias="rawText")


def _parse_date(value: str | None):
    if not value:
        return None
    try:
        return date_parser.parse(value, fuzzy=True)
    except (ParserError, OverflowError, ValueError):
        logger.debug("Dropping unparsable OCR date %r", value)
        return None


def to_warranty_draft(extraction: OcrExtraction) -> WarrantyDraft:
    """Optional hints for the warranty form; blank strings and bad dates become None."""
    return WarrantyDraft(
        item_name=(extraction.item_name or "").strip() or None,
        manufacturer=(extraction.manufacturer or "").strip() or None,
        purchase_date=_parse_date(extraction.purchase_date),
        expiry_date=_parse_date(extraction.expiry_date),
        description=(extraction.description or "").strip() or None,
        raw_text=extraction.raw_text,
    )


class OcrClient:
    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        base = (base_url if base_url is not None else settings.supabase_url).rstrip("/")
        self.url = f"{base}/functions/v1/warranty-ocr"
        self.timeout = timeout or settings.provider_timeout_seconds

    def extract(self, file_base64: str) -> OcrExtraction:
        """Send a data-URL encoded document; returns whatever fields were recognised."""
        try:
            resp = requests.post(
                self.url,
                json={"fileBase64": file_base64},
                headers=edge_function_headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderUnavailable(f"OCR provider unreachable: {exc}") from exc

        if resp.status_code != 200:
            logger.warning("OCR provider returned %s: %s", resp.status_code, resp.text[:200])
            raise ProviderUnavailable(f"OCR provider returned {resp.status_code}")

        try:
            return OcrExtraction.model_validate(resp.json())
        except ValueError as exc:
            raise ProviderUnavailable("OCR provider returned an unreadable response") from exc
