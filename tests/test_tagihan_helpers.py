from datetime import datetime
from decimal import Decimal

import pytest

from models import TahunAjaran
from utils.tagihan import format_rupiah, kuitansi_number, positive_amount, school_months, status_for


@pytest.mark.parametrize("value, expected", [
    (150000, Decimal("150000")),
    ("75000.50", Decimal("75000.50")),
    (0.5, Decimal("0.5")),
])
def test_positive_amount_accepts_finite_positive_numbers(value, expected):
    assert positive_amount(value) == expected


@pytest.mark.parametrize("value", [None, True, False, 0, -1, "", "abc", "NaN", "sNaN", "Infinity", "-Infinity", float("inf")])
def test_positive_amount_rejects_everything_else(value):
    assert positive_amount(value) is None


def test_school_months_run_july_to_june():
    months = school_months(TahunAjaran(nama="2024/2025", tahun_mulai=2024, tahun_selesai=2025))
    assert len(months) == 12
    assert months[0] == (7, 2024)
    assert months[5] == (12, 2024)
    assert months[6] == (1, 2025)
    assert months[-1] == (6, 2025)


def test_kuitansi_number_fills_template():
    now = datetime(2024, 8, 3, 9, 15)
    assert kuitansi_number(7, now=now) == "KWT/2024/08/03/0007"
    assert kuitansi_number(12, "INV-{tahun}{bulan}-{nomor}", now) == "INV-202408-0012"


def test_status_for_paid_amounts():
    assert status_for(Decimal("0"), Decimal("150000")) == "BELUM_LUNAS"
    assert status_for(Decimal("50000"), Decimal("150000")) == "SEBAGIAN"
    assert status_for(Decimal("150000"), Decimal("150000")) == "LUNAS"
    assert status_for(Decimal("200000"), Decimal("150000")) == "LUNAS"


def test_format_rupiah_uses_dot_grouping():
    assert format_rupiah(Decimal("50000")) == "Rp 50.000"
    assert format_rupiah(1500000) == "Rp 1.500.000"
