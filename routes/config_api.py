from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from bills import TAX_KEYS, TIER_NAMES

config_api_bp = Blueprint("config_api", __name__)


@config_api_bp.get("/api/config")
def get_config():
    """
    Public settings the frontend needs before rendering the dashboard:
    whether the inflation toggle can be offered and which month it restates to.
    """
    cpi = current_app.config["CPI_INDEX"]
    settings = current_app.config["EXTRACTION_SETTINGS"]
    return jsonify({
        "inflationAvailable": bool(cpi),
        "referencePeriod": cpi.latest_key(),
        "lineTolerance": settings.line_tolerance,
        "taxKeys": list(TAX_KEYS),
        "tierNames": list(TIER_NAMES),
    })


@config_api_bp.get("/health")
def health_check():
    """Liveness probe; reports in-flight extraction jobs."""
    queue = current_app.config["JOB_QUEUE"]
    return jsonify({"status": "ok", "service": "bills", "activeJobs": queue.get_active_count()}), 200
