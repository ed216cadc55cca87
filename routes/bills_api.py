"""Bills API routes: upload/extract, text parsing, aggregation and job polling."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Tuple

from flask import Blueprint, current_app, jsonify, request

from bills import BillRecord, NormalizationService, compute_summary, extract_bill_data, process_batch
from bills.pipeline import process_document

logger = logging.getLogger(__name__)

bills_bp = Blueprint("bills", __name__)


def _is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "y", "on")


def _error(message: str, error_code: str, status: int):
    return jsonify({"error": message, "error_code": error_code}), status


def _uploaded_documents() -> Tuple[List[Tuple[str, bytes]], List[Dict[str, Any]]]:
    """
    Split multipart `files` into readable PDFs and rejected uploads.
    """
    normalizer = NormalizationService()
    documents: List[Tuple[str, bytes]] = []
    rejected: List[Dict[str, Any]] = []

    for storage in request.files.getlist("files"):
        filename = storage.filename or "upload.pdf"
        if not normalizer.is_supported(filename):
            rejected.append({
                "success": False,
                "filename": filename,
                "error_code": "UNSUPPORTED_FILE",
                "error": "Only PDF files are accepted",
            })
            continue
        documents.append((filename, storage.read()))

    return documents, rejected


@bills_bp.post("/api/bills/extract")
def extract_bills():
    """
    Extract every uploaded PDF and aggregate the ones that succeeded.

    One bad file never fails the request; it is listed under `failures`.
    """
    if not request.files.getlist("files"):
        return _error("No files uploaded (expected multipart field 'files')", "NO_FILES", 400)

    documents, rejected = _uploaded_documents()
    result = process_batch(
        documents,
        max_workers=current_app.config["BILLS_MAX_WORKERS"],
        settings=current_app.config["EXTRACTION_SETTINGS"],
    )
    summary = compute_summary(
        result.records,
        inflation_adjusted=_is_truthy(request.args.get("inflation")),
        cpi=current_app.config["CPI_INDEX"],
    )

    payload = result.to_dict()
    payload["failures"] = rejected + payload["failures"]
    payload["summary"] = summary.to_dict()
    return jsonify(payload)


@bills_bp.post("/api/bills/parse-text")
def parse_text():
    """Extract a bill from text the client already pulled out of the PDF."""
    body = request.get_json(silent=True) or {}
    text = body.get("text")
    if not isinstance(text, str):
        return _error("Field 'text' must be a string", "INVALID_REQUEST", 400)
    filename = str(body.get("filename") or "")

    record = extract_bill_data(text, filename, current_app.config["EXTRACTION_SETTINGS"])
    if record is None:
        return _error("Client name or emission date not found", "EXTRACTION_FAILED", 422)
    return jsonify({"bill": record.to_dict()})


@bills_bp.post("/api/bills/summary")
def summarize_bills():
    """
    Recompute aggregates for bills the client already holds, e.g. when the
    inflation toggle changes.
    """
    body = request.get_json(silent=True) or {}
    raw_bills = body.get("bills")
    if not isinstance(raw_bills, list):
        return _error("Field 'bills' must be a list", "INVALID_REQUEST", 400)

    try:
        records = [BillRecord.from_dict(b) for b in raw_bills]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        return _error(f"Invalid bill payload: {e}", "INVALID_BILL", 400)

    summary = compute_summary(
        records,
        inflation_adjusted=_is_truthy(body.get("inflationAdjusted")),
        cpi=current_app.config["CPI_INDEX"],
    )
    return jsonify({"summary": summary.to_dict()})


@bills_bp.post("/api/bills/jobs")
def submit_jobs():
    """Queue uploads for background extraction; poll /api/bills/jobs/<id>."""
    files = request.files.getlist("files")
    if not files:
        return _error("No files uploaded (expected multipart field 'files')", "NO_FILES", 400)

    queue = current_app.config["JOB_QUEUE"]
    settings = current_app.config["EXTRACTION_SETTINGS"]
    jobs = []
    for storage in files:
        filename = storage.filename or "upload.pdf"
        job_id = uuid.uuid4().hex
        queue.submit(job_id, filename, process_document, storage.read(), filename, settings)
        jobs.append({"job_id": job_id, "filename": filename})

    return jsonify({"jobs": jobs}), 202


@bills_bp.get("/api/bills/jobs/<job_id>")
def get_job(job_id: str):
    status = current_app.config["JOB_QUEUE"].get_status_dict(job_id)
    if status is None:
        return _error(f"Unknown job {job_id}", "JOB_NOT_FOUND", 404)
    return jsonify(status)
