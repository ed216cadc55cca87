"""
EPE Bill Analyzer - Flask Backend
=================================

OVERVIEW:
Receives EPE (Empresa Provincial de la Energía, Santa Fe) electricity bill
PDFs, extracts tiers, charges, taxes and totals from their text, and returns
the bills plus the aggregates the dashboard charts.

API ENDPOINTS:
- POST /api/bills/extract - Upload PDFs, get bills + failures + summary
- POST /api/bills/parse-text - Extract one bill from already-extracted text
- POST /api/bills/summary - Re-aggregate previously extracted bills
- POST /api/bills/jobs - Queue PDFs for background extraction
- GET /api/bills/jobs/<job_id> - Poll a queued extraction
- GET /api/config - Public settings for the frontend
- GET /health - Liveness probe

KNOWN LIMITATIONS:
- Only the two known EPE bill templates are recognized
- Scanned (image-only) PDFs are not OCR'd
- Job records live in memory; restarting the process drops them
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from flask import Flask
from flask_cors import CORS

from bills import CpiIndex, ExtractionSettings, JobQueue
from config_loader import load_config, load_cpi_index
from logging_setup import init_request_logging, setup_logging
from routes.bills_api import bills_bp
from routes.config_api import config_api_bp

logger = logging.getLogger(__name__)


def create_app(config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Build the Flask app.

    Args:
        config_path: YAML config file (default: $APP_CONFIG_PATH or config.yml)
        overrides: Extra config merged over file + env (used by tests)
    """
    cfg = load_config(config_path, overrides)

    setup_logging(cfg)

    app = Flask(__name__, static_folder=None)
    origins = (cfg.get("app", {}).get("cors", {}) or {}).get("origins", "*")
    CORS(app, origins=origins)
    init_request_logging(app)

    config_file = config_path or os.getenv("APP_CONFIG_PATH", "config.yml")
    base_dir = os.path.dirname(os.path.abspath(config_file))
    cpi = CpiIndex(load_cpi_index(cfg, base_dir))

    bills_cfg = cfg.get("bills", {}) or {}
    max_workers = int(bills_cfg.get("max_workers", 4))
    max_upload_mb = float(bills_cfg.get("max_upload_mb", 20))
    job_retention = float(bills_cfg.get("job_retention_seconds", 3600))

    app.config.update(
        APP_CFG=cfg,
        EXTRACTION_SETTINGS=ExtractionSettings.from_config(cfg),
        CPI_INDEX=cpi,
        BILLS_MAX_WORKERS=max_workers,
        MAX_CONTENT_LENGTH=int(max_upload_mb * 1024 * 1024),
        JOB_QUEUE=JobQueue(max_workers=max_workers, retention_seconds=job_retention),
    )

    app.register_blueprint(bills_bp)
    app.register_blueprint(config_api_bp)

    logger.info(
        f"App ready: workers={max_workers} cpi_entries={len(cpi)} "
        f"line_tolerance={app.config['EXTRACTION_SETTINGS'].line_tolerance}"
    )
    return app
