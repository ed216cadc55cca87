"""
Multi-Bill Aggregation
======================
Orders bills chronologically and derives the series and KPIs the dashboard
charts. Monetary values can optionally be restated in pesos of the latest
CPI month; consumption is a physical quantity and is never adjusted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .records import TAX_KEYS, TIER_NAMES, BillRecord

logger = logging.getLogger(__name__)


def emission_sort_key(record: BillRecord) -> str:
    """DD/MM/YYYY -> YYYYMMDD. Plain string reversal, no calendar parsing."""
    return "".join(reversed(record.emission_date.split("/")))


def sort_by_emission_date(records: List[BillRecord]) -> List[BillRecord]:
    """Sort in place, oldest first, and return the same list."""
    records.sort(key=emission_sort_key)
    return records


def cpi_key_for(emission_date: str) -> Optional[str]:
    """'15/03/2024' -> '03/2024'."""
    parts = emission_date.split("/")
    if len(parts) < 3:
        return None
    return f"{parts[1]}/{parts[2]}"


class CpiIndex:
    """
    Monthly consumer price index keyed by 'MM/YYYY'.
    """

    def __init__(self, values: Optional[Mapping[str, float]] = None):
        self.values: Dict[str, float] = {str(k): float(v) for k, v in (values or {}).items()}

    def __bool__(self) -> bool:
        return bool(self.values)

    def __len__(self) -> int:
        return len(self.values)

    @staticmethod
    def _chronological(key: str):
        month, _, year = key.partition("/")
        try:
            return int(year), int(month)
        except ValueError:
            return -1, -1

    def latest_key(self) -> Optional[str]:
        if not self.values:
            return None
        return max(self.values, key=self._chronological)

    def for_emission_date(self, emission_date: str) -> Optional[float]:
        key = cpi_key_for(emission_date)
        return self.values.get(key) if key else None

    def adjust(self, nominal: float, emission_date: str) -> float:
        """Restate `nominal` in latest-month pesos; pass through when either index is unknown."""
        latest_key = self.latest_key()
        latest = self.values.get(latest_key) if latest_key else None
        bill_cpi = self.for_emission_date(emission_date)
        if not bill_cpi or not latest:
            return nominal
        return nominal * (latest / bill_cpi)


@dataclass
class DashboardSummary:
    """Derived series and KPIs for a set of bills."""
    inflation_adjusted: bool = False
    reference_period: Optional[str] = None
    bill_count: int = 0
    total_consumption_kwh: int = 0
    average_consumption_kwh: float = 0.0
    total_billed: float = 0.0
    last_total: Optional[float] = None
    last_period: Optional[str] = None
    periods: List[str] = field(default_factory=list)
    consumption: List[int] = field(default_factory=list)
    totals: List[float] = field(default_factory=list)
    importe_basico: List[float] = field(default_factory=list)
    daily_consumption: List[float] = field(default_factory=list)
    cost_per_kwh: List[float] = field(default_factory=list)
    taxes_by_key: Dict[str, List[float]] = field(default_factory=dict)
    total_taxes: List[float] = field(default_factory=list)
    tier_prices: Dict[str, List[Optional[float]]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "inflationAdjusted": self.inflation_adjusted,
            "referencePeriod": self.reference_period,
            "billCount": self.bill_count,
            "totalConsumptionKwh": self.total_consumption_kwh,
            "averageConsumptionKwh": self.average_consumption_kwh,
            "totalBilled": self.total_billed,
            "lastTotal": self.last_total,
            "lastPeriod": self.last_period,
            "periods": self.periods,
            "consumption": self.consumption,
            "totals": self.totals,
            "importeBasico": self.importe_basico,
            "dailyConsumption": self.daily_consumption,
            "costPerKwh": self.cost_per_kwh,
            "taxKeys": list(TAX_KEYS),
            "taxesByKey": self.taxes_by_key,
            "totalTaxes": self.total_taxes,
            "tierPrices": self.tier_prices,
        }


def compute_summary(
    records: Iterable[BillRecord],
    inflation_adjusted: bool = False,
    cpi: Optional[CpiIndex] = None,
) -> DashboardSummary:
    """
    Build the dashboard aggregates.

    Args:
        records: Bills in any order; the input is not modified
        inflation_adjusted: Restate monetary values with `cpi`
        cpi: Price index used when inflation_adjusted is set

    Chart series only include bills with consumption > 0. Money KPIs use the
    same bills, or every bill when none has consumption.
    """
    bills = sorted(records, key=emission_sort_key)
    cpi = cpi or CpiIndex()
    adjusting = bool(inflation_adjusted and cpi)
    if inflation_adjusted and not cpi:
        logger.warning("Inflation adjustment requested but no CPI index is configured")

    def value(nominal: float, bill: BillRecord) -> float:
        return cpi.adjust(nominal, bill.emission_date) if adjusting else nominal

    summary = DashboardSummary(
        inflation_adjusted=adjusting,
        reference_period=cpi.latest_key(),
        bill_count=len(bills),
    )
    if not bills:
        return summary

    summary.total_consumption_kwh = sum(b.consumption_kwh for b in bills)
    summary.average_consumption_kwh = summary.total_consumption_kwh / len(bills)

    chart_bills = [b for b in bills if b.consumption_kwh > 0]
    kpi_bills = chart_bills or bills

    last = kpi_bills[-1]
    summary.last_total = value(last.total, last)
    summary.last_period = last.period
    summary.total_billed = sum(value(b.total, b) for b in kpi_bills)

    summary.periods = [b.period for b in chart_bills]
    summary.consumption = [b.consumption_kwh for b in chart_bills]
    summary.totals = [value(b.total, b) for b in chart_bills]
    summary.importe_basico = [value(b.importe_basico, b) for b in chart_bills]
    summary.daily_consumption = [
        round(b.consumption_kwh / b.days, 2) if b.days > 0 else 0 for b in chart_bills
    ]
    summary.cost_per_kwh = [round(value(b.total, b) / b.consumption_kwh, 2) for b in chart_bills]

    summary.taxes_by_key = {
        key: [value(b.taxes.get(key, 0), b) for b in chart_bills] for key in TAX_KEYS
    }
    summary.total_taxes = [sum(value(v, b) for v in b.taxes.values()) for b in chart_bills]

    def tier_price(bill: BillRecord, name: str) -> Optional[float]:
        entry = bill.tier(name)
        if entry is None:
            return None
        if adjusting:
            return round(value(entry.price_per_kwh, bill), 5)
        return entry.price_per_kwh

    summary.tier_prices = {
        name: [tier_price(b, name) for b in chart_bills] for name in TIER_NAMES
    }
    return summary
