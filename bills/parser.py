"""
Bill Record Assembly
====================
Runs every field extractor over a document's logical text and merges the
results into one BillRecord.

Only the basic info (client name + emission date) can fail a bill; every
other field falls back to its default so a batch keeps making progress on
imperfectly recognized bills.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .extractors import (
    extract_basic_info,
    extract_charges,
    extract_taxes,
    extract_tiers,
    extract_total,
)
from .records import BillRecord
from .settings import DEFAULT_SETTINGS, ExtractionSettings

logger = logging.getLogger(__name__)


def extract_bill_data(text: str, filename: str, settings: ExtractionSettings = DEFAULT_SETTINGS) -> Optional[BillRecord]:
    """
    Extract one bill from reconstructed text.

    Args:
        text: Logical document text (see bills.layout)
        filename: Source document name, carried into the record

    Returns:
        BillRecord, or None when client name or emission date is missing
    """
    basic = extract_basic_info(text, settings)
    if basic is None:
        return None

    tiers = extract_tiers(text)
    charges = extract_charges(text)
    taxes = extract_taxes(text)
    total = extract_total(text)

    # Some templates itemize tiers without printing a consumption total
    consumption = basic.consumption_kwh
    if consumption == 0 and tiers:
        consumption = sum(t.kwh for t in tiers)

    return BillRecord(
        filename=filename,
        client_name=basic.client_name,
        emission_date=basic.emission_date,
        period=basic.period,
        days=basic.days,
        consumption_kwh=consumption,
        cuota_servicio_rate=charges.cuota_servicio_rate,
        tiers=tuple(tiers),
        importe_basico=charges.importe_basico,
        taxes=taxes,
        total=total,
    )


@dataclass
class ParseResult:
    """Result of text parsing."""
    record: Optional[BillRecord]
    success: bool
    duration_ms: float
    error: Optional[str] = None


class BillParser:
    """
    Thin wrapper around extract_bill_data that times the run and reports
    the hard-failure case as an error message instead of a bare None.
    """

    MISSING_BASIC_INFO = "Client name or emission date not found"

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or DEFAULT_SETTINGS

    def parse(self, text: str, filename: str) -> ParseResult:
        start_time = time.time()
        record = extract_bill_data(text, filename, self.settings)
        duration_ms = (time.time() - start_time) * 1000

        if record is None:
            logger.warning(f"No basic info in {filename!r} ({len(text)} chars)")
            return ParseResult(
                record=None,
                success=False,
                duration_ms=duration_ms,
                error=self.MISSING_BASIC_INFO,
            )

        logger.info(
            f"Parsed {filename!r}: emission={record.emission_date} "
            f"tiers={len(record.tiers)} taxes={len(record.taxes)} in {duration_ms:.1f}ms"
        )
        return ParseResult(record=record, success=True, duration_ms=duration_ms)
