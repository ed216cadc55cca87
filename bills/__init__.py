"""
Bills Processing Module
=======================
Extracts structured billing data (tiers, charges, taxes, totals) from EPE
electricity bill PDFs and aggregates several bills into dashboard series.
"""

from .currency import parse_currency, title_case
from .layout import PositionedFragment, reconstruct_text
from .records import BillRecord, TierEntry, TAX_KEYS, TIER_NAMES
from .settings import ExtractionSettings
from .parser import BillParser, extract_bill_data
from .aggregator import CpiIndex, compute_summary, sort_by_emission_date
from .normalizer import NormalizationService
from .job_queue import JobQueue
from .pipeline import process_batch, process_document

__all__ = [
    'parse_currency', 'title_case', 'PositionedFragment', 'reconstruct_text',
    'BillRecord', 'TierEntry', 'TAX_KEYS', 'TIER_NAMES', 'ExtractionSettings',
    'BillParser', 'extract_bill_data', 'CpiIndex', 'compute_summary',
    'sort_by_emission_date', 'NormalizationService', 'JobQueue',
    'process_batch', 'process_document',
]
