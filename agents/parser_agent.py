# agents/parser_agent.py
import json
import logging
import re
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel

logger = logging.getLogger("agents.parser")

FENCE = "```"
_TAGGED_FENCE = re.compile(r"^```[A-Za-z][\w+-]*")
_NON_AMOUNT_CHARS = re.compile(r"[^0-9.]")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _reject_constant(token: str):
    raise ValueError(f"Non-standard JSON constant: {token}")


_decoder = json.JSONDecoder(parse_constant=_reject_constant)

# Defaults mirror the fallback values requested in the extraction prompt
UNKNOWN = "Unbekannt"
NO_DESCRIPTION = "Keine Beschreibung"
PARSING_FAILED = "Parsing fehlgeschlagen"
RAW_RESPONSE_PREFIX = "Raw AI Response: "


class ExtractedInvoice(BaseModel):
    invoice_number: str
    vendor: str
    amount: Decimal
    invoice_date: date
    description: str


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (optionally tagged, e.g. ```json) around a payload."""
    cleaned = text.strip()
    while True:
        previous = cleaned
        m = _TAGGED_FENCE.match(cleaned)
        if m:
            cleaned = cleaned[m.end():]
        if cleaned.startswith(FENCE):
            cleaned = cleaned[len(FENCE):]
        if cleaned.endswith(FENCE):
            cleaned = cleaned[: -len(FENCE)]
        cleaned = cleaned.strip()
        if cleaned == previous:
            return cleaned


def parse_iso_date(text: str) -> date:
    """Parse a strict YYYY-MM-DD calendar date, raising ValueError otherwise."""
    if not _ISO_DATE.match(text):
        raise ValueError(f"not an ISO date: {text!r}")
    return date.fromisoformat(text)


def _as_text(value: Any) -> str:
    # JSON values rendered the way a tree-model "as text" accessor does
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return ""


class ParserAgent:
    """
    ParserAgent (AI response normalizer)
    - Turns the raw text returned by the extraction model into an ExtractedInvoice
    - Never raises: unreadable responses degrade to a fallback record that keeps the raw text
    """

    def __init__(self):
        self.id = "parser-agent"

    def _parse_fields(self, cleaned: str) -> Optional[ExtractedInvoice]:
        try:
            data, _ = _decoder.raw_decode(cleaned)
            if not isinstance(data, dict):
                data = {}

            amount = Decimal(0)
            if "amount" in data:
                amount_str = _NON_AMOUNT_CHARS.sub("", _as_text(data["amount"]))
                if amount_str:
                    amount = Decimal(amount_str)

            invoice_date = date.today()
            if "date" in data:
                try:
                    invoice_date = parse_iso_date(_as_text(data["date"]))
                except ValueError:
                    invoice_date = date.today()

            return ExtractedInvoice(
                invoice_number=_as_text(data["invoiceNumber"]) if "invoiceNumber" in data else UNKNOWN,
                vendor=_as_text(data["vendor"]) if "vendor" in data else UNKNOWN,
                amount=amount,
                invoice_date=invoice_date,
                description=_as_text(data["description"]) if "description" in data else NO_DESCRIPTION,
            )
        except Exception as e:
            logger.warning("Could not parse AI response as invoice JSON: %s", e)
            return None

    def fallback(self, raw: str) -> ExtractedInvoice:
        return ExtractedInvoice(
            invoice_number=PARSING_FAILED,
            vendor=UNKNOWN,
            amount=Decimal(0),
            invoice_date=date.today(),
            description=RAW_RESPONSE_PREFIX + raw,
        )

    def parse(self, raw: str) -> ExtractedInvoice:
        fields = self._parse_fields(strip_code_fences(raw))
        if fields is None:
            return self.fallback(raw)
        return fields
