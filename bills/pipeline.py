"""
Bill Processing Pipeline
========================
PDF bytes -> positioned fragments -> logical text -> BillRecord, one document
at a time, plus a batch runner that keeps going when single documents fail.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .aggregator import sort_by_emission_date
from .job_queue import JobQueue, JobState
from .normalizer import NormalizationService
from .parser import BillParser
from .records import BillRecord
from .settings import DEFAULT_SETTINGS, ExtractionSettings

logger = logging.getLogger(__name__)


def _failure(filename: str, error_code: str, error: str) -> Dict[str, Any]:
    return {
        "success": False,
        "filename": filename,
        "error_code": error_code,
        "error": error,
    }


def process_document(
    job_id: str,
    job_queue: Optional[JobQueue],
    data: bytes,
    filename: str,
    settings: ExtractionSettings = DEFAULT_SETTINGS,
) -> Dict[str, Any]:
    """
    Extract one uploaded bill.

    Returns a payload dict: {"success": True, "filename", "bill"} or
    {"success": False, "filename", "error_code", "error"}. Only truly
    unexpected errors escape as exceptions.
    """
    start_time = time.time()

    def notify(state: JobState, message: str) -> None:
        if job_queue is not None:
            job_queue.update_state(job_id, state, message)

    notify(JobState.EXTRACTING_TEXT, "Extracting text from PDF")
    normalizer = NormalizationService(line_tolerance=settings.line_tolerance)
    norm_result = normalizer.normalize_bytes(data, filename)
    if not norm_result.success:
        logger.warning(f"Normalization failed for {filename}: {norm_result.error}")
        return _failure(filename, "NORMALIZATION_FAILED", norm_result.error or "Normalization failed")

    notify(JobState.PARSING, "Extracting bill fields")
    parse_result = BillParser(settings).parse(norm_result.text, filename)
    if not parse_result.success:
        return _failure(filename, "EXTRACTION_FAILED", parse_result.error or "Extraction failed")

    duration_ms = (time.time() - start_time) * 1000
    logger.info(f"Processed {filename} in {duration_ms:.0f}ms ({norm_result.metadata.get('pages')} pages)")
    return {
        "success": True,
        "filename": filename,
        "bill": parse_result.record.to_dict(),
    }


@dataclass
class BatchResult:
    """Bills in emission-date order plus per-document failures."""
    records: List[BillRecord] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bills": [r.to_dict() for r in self.records],
            "failures": self.failures,
        }


def _process_isolated(index: int, data: bytes, filename: str, settings: ExtractionSettings) -> Dict[str, Any]:
    try:
        return process_document(f"batch-{index}", None, data, filename, settings)
    except Exception as e:
        logger.exception(f"Unhandled exception while processing {filename}")
        return _failure(filename, "EXTRACTION_EXCEPTION", str(e) or "Unknown error")


def process_batch(
    documents: Sequence[Tuple[str, bytes]],
    max_workers: int = 4,
    settings: ExtractionSettings = DEFAULT_SETTINGS,
) -> BatchResult:
    """
    Process (filename, bytes) pairs concurrently.

    Documents are independent; each failure is recorded and the rest of the
    batch carries on. Failures keep upload order.
    """
    result = BatchResult()
    if not documents:
        return result

    workers = max(1, min(max_workers, len(documents)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bill_batch") as executor:
        payloads = list(executor.map(
            lambda item: _process_isolated(item[0], item[1][1], item[1][0], settings),
            enumerate(documents),
        ))

    for payload in payloads:
        if payload.get("success"):
            result.records.append(BillRecord.from_dict(payload["bill"]))
        else:
            result.failures.append(payload)

    sort_by_emission_date(result.records)
    logger.info(f"Batch done: {len(result.records)} bills, {len(result.failures)} failures")
    return result
