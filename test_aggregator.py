import pytest

from bills.aggregator import CpiIndex, compute_summary, cpi_key_for, sort_by_emission_date
from bills.records import TAX_KEYS, TIER_NAMES, BillRecord, TierEntry


def make_bill(emission_date, total=1000.0, consumption=100, days=30, period=None, taxes=None, tiers=()):
    return BillRecord(
        filename=f"{emission_date.replace('/', '-')}.pdf",
        client_name="JUAN CARLOS PEREZ",
        emission_date=emission_date,
        period=period or emission_date[3:],
        days=days,
        consumption_kwh=consumption,
        tiers=tiers,
        importe_basico=total * 0.8,
        taxes=taxes or {},
        total=total,
    )


CPI = CpiIndex({"12/2023": 100.0, "01/2024": 120.0, "03/2024": 150.0})


def test_sort_by_emission_date_in_place():
    bills = [make_bill("15/03/2024"), make_bill("01/01/2024"), make_bill("20/12/2023")]
    result = sort_by_emission_date(bills)
    assert result is bills
    assert [b.emission_date for b in bills] == ["20/12/2023", "01/01/2024", "15/03/2024"]


def test_sort_is_stable_for_equal_dates():
    first = make_bill("01/01/2024", total=1)
    second = make_bill("01/01/2024", total=2)
    assert sort_by_emission_date([first, second]) == [first, second]


def test_malformed_dates_sort_by_reversed_string():
    bills = [make_bill("15/03/2024"), make_bill("2024")]
    assert [b.emission_date for b in sort_by_emission_date(bills)] == ["2024", "15/03/2024"]


def test_cpi_index():
    assert CPI.latest_key() == "03/2024"
    assert cpi_key_for("20/12/2023") == "12/2023"
    assert CPI.for_emission_date("20/12/2023") == 100.0
    assert CPI.adjust(10.0, "20/12/2023") == pytest.approx(15.0)
    # unknown month passes through
    assert CPI.adjust(10.0, "01/06/2022") == 10.0
    assert CpiIndex().latest_key() is None
    assert CpiIndex().adjust(10.0, "20/12/2023") == 10.0


def test_latest_key_is_chronological_not_lexicographic():
    cpi = CpiIndex({"12/2023": 1.0, "02/2024": 2.0, "11/2024": 3.0, "01/2025": 4.0})
    assert cpi.latest_key() == "01/2025"


def test_summary_kpis_and_series():
    bills = [
        make_bill("15/03/2024", total=3000.0, consumption=300, days=30,
                  taxes={"IVA 21%": 500.0, "C.A.P.": 20.0}),
        make_bill("20/12/2023", total=1000.0, consumption=100, days=0,
                  taxes={"IVA 21%": 200.0}),
    ]
    summary = compute_summary(bills)

    assert summary.bill_count == 2
    assert summary.total_consumption_kwh == 400
    assert summary.average_consumption_kwh == 200
    assert summary.total_billed == pytest.approx(4000.0)
    assert summary.last_total == pytest.approx(3000.0)
    assert summary.last_period == "03/2024"
    assert summary.periods == ["12/2023", "03/2024"]
    assert summary.consumption == [100, 300]
    assert summary.daily_consumption == [0, 10.0]
    assert summary.cost_per_kwh == [10.0, 10.0]
    assert list(summary.taxes_by_key) == list(TAX_KEYS)
    assert summary.taxes_by_key["IVA 21%"] == [200.0, 500.0]
    assert summary.taxes_by_key["C.A.P."] == [0, 20.0]
    assert summary.total_taxes == [200.0, 520.0]


def test_summary_does_not_reorder_input():
    bills = [make_bill("15/03/2024"), make_bill("20/12/2023")]
    compute_summary(bills)
    assert bills[0].emission_date == "15/03/2024"


def test_zero_consumption_bills_are_left_out_of_charts():
    bills = [make_bill("20/12/2023", consumption=0, total=50.0), make_bill("01/01/2024", total=900.0)]
    summary = compute_summary(bills)
    assert summary.periods == ["01/2024"]
    assert summary.total_billed == pytest.approx(900.0)
    # consumption KPIs still count every bill
    assert summary.average_consumption_kwh == 50


def test_money_kpis_fall_back_to_all_bills():
    bills = [make_bill("20/12/2023", consumption=0, total=50.0), make_bill("01/01/2024", consumption=0, total=70.0)]
    summary = compute_summary(bills)
    assert summary.periods == []
    assert summary.total_billed == pytest.approx(120.0)
    assert summary.last_total == pytest.approx(70.0)


def test_empty_collection():
    summary = compute_summary([])
    assert summary.bill_count == 0
    assert summary.average_consumption_kwh == 0
    assert summary.last_total is None


def test_tier_price_evolution():
    bills = [
        make_bill("20/12/2023", tiers=(TierEntry("Primeros", 100, 40.0, 4000.0),)),
        make_bill("01/01/2024", tiers=(TierEntry("Primeros", 80, 42.0, 3360.0), TierEntry("Segundos", 20, 50.0, 1000.0))),
    ]
    summary = compute_summary(bills)
    assert list(summary.tier_prices) == list(TIER_NAMES)
    assert summary.tier_prices["Primeros"] == [40.0, 42.0]
    assert summary.tier_prices["Segundos"] == [None, 50.0]
    assert summary.tier_prices["Ultimos"] == [None, None]


def test_inflation_adjustment_rescales_money_only():
    bills = [
        make_bill("20/12/2023", total=1000.0, consumption=100, taxes={"IVA 21%": 100.0},
                  tiers=(TierEntry("Primeros", 100, 10.0, 1000.0),)),
        make_bill("15/03/2024", total=1500.0, consumption=150),
    ]
    nominal = compute_summary(bills, inflation_adjusted=False, cpi=CPI)
    adjusted = compute_summary(bills, inflation_adjusted=True, cpi=CPI)

    assert adjusted.inflation_adjusted
    assert adjusted.reference_period == "03/2024"
    assert adjusted.totals == [pytest.approx(1500.0), pytest.approx(1500.0)]
    assert adjusted.taxes_by_key["IVA 21%"][0] == pytest.approx(150.0)
    assert adjusted.tier_prices["Primeros"][0] == 15.0
    assert adjusted.total_billed == pytest.approx(3000.0)

    # physical values are untouched
    assert adjusted.consumption == nominal.consumption
    assert adjusted.daily_consumption == nominal.daily_consumption
    assert adjusted.total_consumption_kwh == nominal.total_consumption_kwh


def test_disabled_inflation_equals_nominal_values():
    bills = [make_bill("20/12/2023", total=1000.0), make_bill("15/03/2024", total=1500.0)]
    with_cpi = compute_summary(bills, inflation_adjusted=False, cpi=CPI)
    without_cpi = compute_summary(bills)
    assert with_cpi.totals == [1000.0, 1500.0]
    assert with_cpi.totals == without_cpi.totals
    assert with_cpi.total_billed == without_cpi.total_billed
    assert not with_cpi.inflation_adjusted


def test_bills_outside_index_are_not_adjusted():
    bills = [make_bill("01/06/2022", total=500.0)]
    summary = compute_summary(bills, inflation_adjusted=True, cpi=CPI)
    assert summary.totals == [500.0]


def test_summary_dict_shape():
    data = compute_summary([make_bill("01/01/2024")]).to_dict()
    assert data["taxKeys"] == list(TAX_KEYS)
    assert data["periods"] == ["01/2024"]
    assert set(data["tierPrices"]) == set(TIER_NAMES)
