"""
Field Extractors
================
Regex-based recovery of bill fields from reconstructed text.

Two bill templates are known:
- padded: colon labels, amounts written as "$***1.234,56", PERIODO / CANT. DIAS
- plain: "Días:", tiers as "N kWh x $price = $amount", TOTAL A PAGAR

Every extractor is an ordered table of strategies; the first strategy whose
pattern matches (and whose captured value converts cleanly) wins. Adding a
template variant means adding rows, not branches.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from .currency import parse_currency
from .records import TierEntry
from .settings import DEFAULT_SETTINGS, ExtractionSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternStrategy:
    """One way of reading a field, tuned to one template variant."""
    template: str
    pattern: "re.Pattern"
    convert: Callable[["re.Match"], Any]


def first_match(text: str, strategies: Sequence[PatternStrategy], field_name: str = "") -> Optional[Any]:
    """
    Try strategies in order and return the first converted value.

    A conversion returning None (e.g. an unreadable amount) counts as a miss
    and the next strategy is tried.
    """
    for strategy in strategies:
        match = strategy.pattern.search(text)
        if not match:
            continue
        value = strategy.convert(match)
        if value is None:
            logger.warning(
                f"Unreadable value for {field_name or 'field'} "
                f"({strategy.template} template): {match.group(0)!r}"
            )
            continue
        return value
    return None


def _amount(group: int = 1) -> Callable[["re.Match"], Optional[float]]:
    def convert(match):
        value = parse_currency(match.group(group))
        return None if math.isnan(value) else value
    return convert


def _integer(group: int = 1) -> Callable[["re.Match"], int]:
    return lambda match: int(match.group(group))


def _text(group: int = 1) -> Callable[["re.Match"], str]:
    return lambda match: match.group(group)


# ========== CLIENT NAME ==========

SKIP_WORDS = (
    "EMPRESA", "ENERGÍA", "ENERGIA", "I.V.A", "RESPONSABLE",
    "MALABIA", "ROSARIO", "CONSUMIDOR", "FRANCISCO", "SANTA FE",
    "BOULEVAR", "CODIGO", "LINK PAGOS", "NUMERO", "NÚMERO",
    "FECHA", "CUIT", "PROPIETARIO", "DIRECCIÓN", "DIRECCION",
    "INFORMACION", "INFORMACIÓN", "MEDICION", "MEDICIÓN",
)

COMPANY_BOILERPLATE = re.compile(r"Empresa Provincial.*")
UPPERCASE_NAME = re.compile(r"^[A-ZÁÉÍÓÚÑÜ ]+$")


def extract_client_name(text: str, settings: ExtractionSettings = DEFAULT_SETTINGS) -> Optional[str]:
    """
    Infer the account holder from the first lines of the bill.

    Bills carry no label for the client, so the first short, all-uppercase
    line that is not company/address boilerplate is taken.
    """
    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if line]

    for line in lines[:settings.client_name_scan_lines]:
        cleaned = COMPANY_BOILERPLATE.sub("", re.sub(r"\s+", " ", line)).strip()
        words = [w for w in cleaned.split(" ") if w]

        if not settings.client_name_min_words <= len(words) <= settings.client_name_max_words:
            continue
        if not settings.client_name_min_length <= len(cleaned) <= settings.client_name_max_length:
            continue
        if cleaned != cleaned.upper() or not UPPERCASE_NAME.match(cleaned):
            continue
        if any(word in cleaned for word in SKIP_WORDS):
            continue
        return cleaned

    return None


# ========== BASIC INFO ==========

EMISSION_DATE = re.compile(r"FECHA DE EMISION:\s*(\d{2}/\d{2}/\d{4})")

PERIOD_STRATEGIES = (
    PatternStrategy("padded", re.compile(r"PERIODO\s*(\d+/\d+)"), _text()),
    PatternStrategy("plain", re.compile(r"R\s+\d+\s+\d+\s+\d+\s+\d+\s+\d+\s+(\d+/\d+)"), _text()),
)

DAYS_STRATEGIES = (
    PatternStrategy("padded", re.compile(r"CANT\. DIAS\s*(\d+)"), _integer()),
    PatternStrategy("plain", re.compile(r"D[ií]as:\s*(\d+)"), _integer()),
)

CONSUMPTION_STRATEGIES = (
    PatternStrategy("padded", re.compile(r"Consumo Total:\s*(\d+)\s*kWh"), _integer()),
    PatternStrategy("plain", re.compile(r"CONSUMO.*?(\d+)\s*kWh"), _integer()),
)


@dataclass(frozen=True)
class BasicInfo:
    client_name: str
    emission_date: str
    period: str = ""
    days: int = 0
    consumption_kwh: int = 0


def extract_basic_info(text: str, settings: ExtractionSettings = DEFAULT_SETTINGS) -> Optional[BasicInfo]:
    """
    Client name and emission date are mandatory; without either the bill is
    unusable and None is returned. Period, days and consumption default to
    "", 0 and 0.
    """
    client_name = extract_client_name(text, settings)
    emission = EMISSION_DATE.search(text)
    if not client_name or not emission:
        return None

    period = first_match(text, PERIOD_STRATEGIES, "period")
    days = first_match(text, DAYS_STRATEGIES, "days")
    consumption = first_match(text, CONSUMPTION_STRATEGIES, "consumption")

    return BasicInfo(
        client_name=client_name,
        emission_date=emission.group(1),
        period=period if period is not None else "",
        days=days if days is not None else 0,
        consumption_kwh=consumption if consumption is not None else 0,
    )


# ========== TIERS ==========

# Canonical tier -> spellings seen on bills
TIER_SPELLINGS = {
    "Primeros": ("Primeros",),
    "Segundos": ("Segundos",),
    "Terceros": ("Terceros",),
    "Ultimos": ("Ultimos", "Últimos"),
}


def _tier_strategies(spelling: str):
    name = re.escape(spelling)
    return (
        PatternStrategy(
            "padded",
            re.compile(name + r"\s+(\d+)\s+KWh\s+\(\s*([\d.,]+)\s+\$/kWh\)\s+\$\*+([\d.,]+)", re.IGNORECASE),
            _tier_values,
        ),
        PatternStrategy(
            "plain",
            re.compile(name + r"\s+(\d+)\s+kWh\s+x\s+\$([\d.,]+)\s*=\s+\$([\d.,]+)", re.IGNORECASE),
            _tier_values,
        ),
    )


def _tier_values(match):
    price = parse_currency(match.group(2))
    amount = parse_currency(match.group(3))
    if math.isnan(price) or math.isnan(amount):
        return None
    return int(match.group(1)), price, amount


TIER_STRATEGIES = {
    canonical: [(spelling, _tier_strategies(spelling)) for spelling in spellings]
    for canonical, spellings in TIER_SPELLINGS.items()
}


def extract_tiers(text: str) -> List[TierEntry]:
    """Tiers found on the bill, in canonical order. Missing tiers are skipped."""
    tiers = []
    for canonical, variants in TIER_STRATEGIES.items():
        for spelling, strategies in variants:
            values = first_match(text, strategies, f"tier {spelling}")
            if values is None:
                continue
            kwh, price, amount = values
            tiers.append(TierEntry(tier=canonical, kwh=kwh, price_per_kwh=price, amount=amount))
            break
    return tiers


# ========== CHARGES ==========

CUOTA_STRATEGIES = (
    PatternStrategy("padded", re.compile(r"Cuota\s+de\s+servicio\s*:\s*\$\*+([\d.,]+)", re.IGNORECASE), _amount()),
    PatternStrategy("plain", re.compile(r"Cuota\s+Servicio.*?\$([\d.,]+)", re.IGNORECASE), _amount()),
)

IMPORTE_BASICO_STRATEGIES = (
    PatternStrategy("padded", re.compile(r"Importe Básico\s*:\s*\$\*+([\d.,]+)", re.IGNORECASE), _amount()),
    PatternStrategy("plain", re.compile(r"IMPORTE BASICO.*?\$([\d.,]+)", re.IGNORECASE), _amount()),
)


@dataclass(frozen=True)
class Charges:
    cuota_servicio_rate: float = 0.0
    importe_basico: float = 0.0


def extract_charges(text: str) -> Charges:
    cuota = first_match(text, CUOTA_STRATEGIES, "cuota de servicio")
    importe = first_match(text, IMPORTE_BASICO_STRATEGIES, "importe basico")
    return Charges(
        cuota_servicio_rate=cuota if cuota is not None else 0.0,
        importe_basico=importe if importe is not None else 0.0,
    )


# ========== TAXES ==========

# "N°", "N.°" and "°" variants all occur
TAX_PATTERNS = (
    ("Ley 6604-FER", re.compile(r"Ley N°?6604-FER.*?\$\*+(\d[\d.,]*)", re.IGNORECASE)),
    ("Ord. Mun. 1592/62", re.compile(r"Ord\. Mun\. N\.?°?\s*1592/62.*?\$\*+(\d[\d.,]*)", re.IGNORECASE)),
    ("Ord. Mun. 1618/62", re.compile(r"Ord\. Mun\. N\.?°?\s*1618/62.*?\$\*+(\d[\d.,]*)", re.IGNORECASE)),
    ("Ley 7797", re.compile(r"Ley N\.?°?\s*7797.*?\$\*+(\d[\d.,]*)", re.IGNORECASE)),
    ("C.A.P.", re.compile(r"C\.A\.P\..*?\$\*+(\d[\d.,]*)", re.IGNORECASE)),
    ("Energías Renovables", re.compile(r"Energías Renovables.*?\$\*+(\d[\d.,]*)", re.IGNORECASE)),
    ("IVA 21%", re.compile(r"IVA.*?\$\*+(\d[\d.,]*)", re.IGNORECASE)),
)

_tax_amount = _amount()


def extract_taxes(text: str) -> Dict[str, float]:
    """Only taxes present on the bill get a key; absent ones are not zero-filled."""
    taxes = {}
    for key, pattern in TAX_PATTERNS:
        value = first_match(text, (PatternStrategy("padded", pattern, _tax_amount),), key)
        if value is not None:
            taxes[key] = value
    return taxes


# ========== TOTAL ==========

TOTAL_STRATEGIES = (
    PatternStrategy("padded", re.compile(r"TOTAL\s+\$\*+(\d[\d.,]*)", re.IGNORECASE), _amount()),
    PatternStrategy("padded", re.compile(r"Importe Total.*?\$\*+(\d[\d.,]*)", re.IGNORECASE), _amount()),
    PatternStrategy("plain", re.compile(r"TOTAL A PAGAR.*?\$([\d.,]+)", re.IGNORECASE), _amount()),
)


def extract_total(text: str) -> float:
    total = first_match(text, TOTAL_STRATEGIES, "total")
    return total if total is not None else 0.0
