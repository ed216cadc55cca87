import pymupdf
import pytest

from app import create_app


# Padded template: colon labels, "$***" amounts, PERIODO / CANT. DIAS
PADDED_BILL = """Empresa Provincial de la Energía de Santa Fe
JUAN CARLOS PEREZ
FECHA DE EMISION: 15/03/2024
PERIODO 02/2024   CANT. DIAS 60
Consumo Total: 350 kWh
Cuota de servicio: $***1.234,56
Primeros 150 KWh ( 45,1234 $/kWh) $***6.768,51
Segundos 150 KWh ( 50,5000 $/kWh) $***7.575,00
Terceros 50 KWh ( 60,0000 $/kWh) $***3.000,00
Importe Básico: $***18.578,07
Ley N°6604-FER 1,50% $***278,67
Ord. Mun. N° 1592/62 6,00% $***1.114,68
Ord. Mun. N.° 1618/62 0,60% $***111,47
Ley N° 7797 $***50,00
C.A.P. $***25,00
Energías Renovables $***10,00
IVA 21% $***3.901,39
TOTAL $***24.070,77
"""

# Plain template: no consumption total, "kWh x $" tiers, TOTAL A PAGAR
PLAIN_BILL = """MARIA LUISA GONZALEZ
FECHA DE EMISION: 01/01/2024
R 1 2 3 4 5 11/2023
Días: 31
Primeros 120 kWh x $40,50 = $4.860,00
Segundos 80 kWh x $45,25 = $3.620,00
Últimos 25 kWh x $55,00 = $1.375,00
Cuota Servicio fija $980,00
IMPORTE BASICO del periodo $10.835,00
IVA 21% $***2.275,35
TOTAL A PAGAR hasta vencimiento $13.110,35
"""

# ASCII-only lines that survive PDF font encoding unchanged
PDF_BILL_LINES = [
    "JUAN CARLOS PEREZ",
    "FECHA DE EMISION: 20/12/2023",
    "PERIODO 11/2023 CANT. DIAS 30",
    "Consumo Total: 200 kWh",
    "Primeros 200 KWh ( 40,0000 $/kWh) $***8.000,00",
    "IVA 21% $***1.680,00",
    "TOTAL $***9.680,00",
]


def make_pdf(pages):
    """Build an in-memory PDF, one list of lines per page."""
    doc = pymupdf.open()
    for lines in pages:
        page = doc.new_page()
        y = 72
        for line in lines:
            page.insert_text((72, y), line, fontsize=10)
            y += 14
    data = doc.tobytes()
    doc.close()
    return data


def make_columns_pdf(rows, amount_x=400):
    """One-page PDF whose rows are (label, amount) drawn as separate text objects."""
    doc = pymupdf.open()
    page = doc.new_page()
    y = 72
    for label, amount in rows:
        page.insert_text((72, y), label, fontsize=10)
        if amount:
            page.insert_text((amount_x, y), amount, fontsize=10)
        y += 14
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def padded_bill():
    return PADDED_BILL


@pytest.fixture
def plain_bill():
    return PLAIN_BILL


@pytest.fixture
def bill_pdf():
    return make_pdf([PDF_BILL_LINES])


@pytest.fixture
def app():
    app = create_app(
        config_path="does-not-exist.yml",
        overrides={
            "logging": {"level": "WARNING"},
            "bills": {"max_workers": 2},
            "inflation": {"cpi_index": {"12/2023": 100.0, "01/2024": 120.0, "03/2024": 150.0}},
        },
    )
    app.config["TESTING"] = True
    yield app
    app.config["JOB_QUEUE"].shutdown(wait=True)


@pytest.fixture
def client(app):
    return app.test_client()
