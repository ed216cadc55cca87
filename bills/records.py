"""
Bill Records
============
Immutable result of extracting one bill. Serializes to the camelCase shape
the dashboard frontend consumes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

TIER_NAMES = ("Primeros", "Segundos", "Terceros", "Ultimos")

# Fixed label set; order is the dashboard's stacking order
TAX_KEYS = (
    "IVA 21%",
    "C.A.P.",
    "Ley 7797",
    "Ord. Mun. 1618/62",
    "Ord. Mun. 1592/62",
    "Ley 6604-FER",
    "Energías Renovables",
)


@dataclass(frozen=True)
class TierEntry:
    """A consumption bracket billed at its own price."""
    tier: str
    kwh: int
    price_per_kwh: float
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "kwh": self.kwh,
            "pricePerKwh": self.price_per_kwh,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TierEntry":
        return cls(
            tier=str(data["tier"]),
            kwh=int(data.get("kwh", 0)),
            price_per_kwh=float(data.get("pricePerKwh", 0)),
            amount=float(data.get("amount", 0)),
        )


@dataclass(frozen=True)
class BillRecord:
    """
    One assembled bill.

    `taxes` only holds the labels that appeared in the source text; a
    missing key means the line item was not on the bill, not that it was 0.
    """
    filename: str
    client_name: str
    emission_date: str  # DD/MM/YYYY
    period: str = ""
    days: int = 0
    consumption_kwh: int = 0
    cuota_servicio_rate: float = 0.0
    tiers: Tuple[TierEntry, ...] = ()
    importe_basico: float = 0.0
    taxes: Mapping[str, float] = field(default_factory=dict)
    total: float = 0.0

    def __post_init__(self):
        if self.consumption_kwh < 0:
            raise ValueError(f"consumption_kwh must be >= 0, got {self.consumption_kwh}")
        object.__setattr__(self, "tiers", tuple(self.tiers))
        object.__setattr__(self, "taxes", MappingProxyType(dict(self.taxes)))

    def tier(self, name: str) -> Optional[TierEntry]:
        for entry in self.tiers:
            if entry.tier == name:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "filename": self.filename,
            "clientName": self.client_name,
            "emissionDate": self.emission_date,
            "period": self.period,
            "days": self.days,
            "consumptionKwh": self.consumption_kwh,
            "cuotaServicioRate": self.cuota_servicio_rate,
            "tiers": [t.to_dict() for t in self.tiers],
            "importeBasico": self.importe_basico,
            "taxes": dict(self.taxes),
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BillRecord":
        """
        Rebuild a record from its `to_dict()` shape.

        Raises:
            KeyError: if clientName or emissionDate is missing
            ValueError: if a numeric field cannot be converted or consumption is negative
        """
        taxes = data.get("taxes") or {}
        return cls(
            filename=str(data.get("filename", "")),
            client_name=str(data["clientName"]),
            emission_date=str(data["emissionDate"]),
            period=str(data.get("period", "")),
            days=int(data.get("days", 0)),
            consumption_kwh=int(data.get("consumptionKwh", 0)),
            cuota_servicio_rate=float(data.get("cuotaServicioRate", 0)),
            tiers=tuple(TierEntry.from_dict(t) for t in data.get("tiers") or []),
            importe_basico=float(data.get("importeBasico", 0)),
            taxes={str(k): float(v) for k, v in taxes.items()},
            total=float(data.get("total", 0)),
        )
