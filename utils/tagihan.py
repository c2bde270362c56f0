from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation

from extensions import db
from models import JenisTagihan, JenisTagihanSiswa, Siswa, Tagihan, TahunAjaran
from utils.timezone_helpers import jakarta_now

UNPAID_STATUSES = ("BELUM_LUNAS", "SEBAGIAN")
DEFAULT_KUITANSI_FORMAT = "KWT/{tahun}/{bulan}/{tanggal}/{nomor}"


def positive_amount(value) -> Decimal | None:
    """Parse a money amount from JSON; ``None`` unless it is a finite number above zero."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount if amount > 0 else None


def school_months(tahun_ajaran: TahunAjaran) -> list[tuple[int, int]]:
    """(bulan, tahun) pairs of a school year: July to December, then January to June."""
    first = [(bulan, tahun_ajaran.tahun_mulai) for bulan in range(7, 13)]
    second = [(bulan, tahun_ajaran.tahun_selesai) for bulan in range(1, 7)]
    return first + second


def nominal_for(jenis: JenisTagihan, siswa_id: str) -> Decimal:
    tarif = db.session.execute(
        db.select(JenisTagihanSiswa.nominal_khusus).where(
            JenisTagihanSiswa.siswa_id == siswa_id, JenisTagihanSiswa.jenis_tagihan_id == jenis.id
        )
    ).scalar_one_or_none()
    return tarif if tarif is not None else jenis.nominal


def generate_tagihan(siswa: Siswa, jenis: JenisTagihan, tahun_ajaran: TahunAjaran) -> int:
    """Add the bills of one fee type for one student, skipping periods already billed.

    Monthly fees get twelve bills; every other category gets a single bill.
    Returns how many rows were added.
    """
    rows = db.session.execute(
        db.select(Tagihan.bulan, Tagihan.tahun).where(
            Tagihan.siswa_id == siswa.id,
            Tagihan.jenis_tagihan_id == jenis.id,
            Tagihan.tahun_ajaran_id == tahun_ajaran.id,
        )
    )
    existing = {(row.bulan, row.tahun) for row in rows}
    periods: list[tuple[int | None, int | None]] = []
    for kategori in jenis.kategori_list:
        if kategori == "BULANAN":
            periods.extend(school_months(tahun_ajaran))
        else:
            periods.append((None, None))

    nominal = nominal_for(jenis, siswa.id)
    created = 0
    for bulan, tahun in periods:
        if (bulan, tahun) in existing:
            continue
        existing.add((bulan, tahun))
        db.session.add(Tagihan(
            siswa_id=siswa.id,
            jenis_tagihan_id=jenis.id,
            tahun_ajaran_id=tahun_ajaran.id,
            bulan=bulan,
            tahun=tahun,
            jumlah_tagihan=nominal,
            jumlah_dibayar=Decimal("0"),
            status="BELUM_LUNAS",
        ))
        created += 1
    return created


def status_for(jumlah_dibayar: Decimal, jumlah_tagihan: Decimal) -> str:
    if jumlah_dibayar >= jumlah_tagihan:
        return "LUNAS"
    if jumlah_dibayar > 0:
        return "SEBAGIAN"
    return "BELUM_LUNAS"


def kuitansi_number(counter: int, fmt: str | None = None, now: datetime | None = None) -> str:
    """Receipt number such as ``KWT/2024/08/01/0003`` from a ``{tahun}/{bulan}/{tanggal}/{nomor}`` template."""
    now = now or jakarta_now()
    return (
        (fmt or DEFAULT_KUITANSI_FORMAT)
        .replace("{tahun}", f"{now.year:04d}")
        .replace("{bulan}", f"{now.month:02d}")
        .replace("{tanggal}", f"{now.day:02d}")
        .replace("{nomor}", f"{counter:04d}")
    )


def format_rupiah(amount) -> str:
    return "Rp " + f"{int(Decimal(amount)):,}".replace(",", ".")
