from __future__ import annotations

import calendar
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, redirect, render_template_string

from extensions import db
from models import DatabaseBackup, JenisTagihan, Pembayaran, Siswa, Tagihan
from routes.tahun_ajaran_routes import get_active_tahun_ajaran
from utils import role_required
from utils.backup import format_bytes
from utils.roles import Role, current_user, landing_path
from utils.tagihan import UNPAID_STATUSES
from utils.timezone_helpers import format_jakarta, jakarta_now, to_jakarta

dashboard_bp = Blueprint("dashboard", __name__)

DASHBOARD_TEMPLATE = """<!doctype html>
<html lang="id">
<head><meta charset="utf-8"><title>{{ title }} - {{ app_name }}</title></head>
<body>
  <h1>{{ title }}</h1>
  <p>Halo, {{ user.name }}</p>
  <p>Tahun ajaran aktif: {{ tahun_ajaran.nama if tahun_ajaran else "belum diatur" }}</p>
  <ul>
  {% for label, value in items %}
    <li>{{ label }}: {{ value }}</li>
  {% endfor %}
  </ul>
  <form method="post" action="/logout"><button type="submit">Keluar</button></form>
</body>
</html>"""


def _render(title: str, items: list[tuple[str, object]]):
    return render_template_string(
        DASHBOARD_TEMPLATE,
        app_name=current_app.config.get("APP_NAME", "SPP Sekolah"),
        title=title,
        user=current_user(),
        tahun_ajaran=get_active_tahun_ajaran(),
        items=items,
    )


def _count(stmt) -> int:
    return db.session.scalar(stmt) or 0


@dashboard_bp.route("/")
def home():
    return redirect(landing_path(current_user()))


@dashboard_bp.route("/dashboard")
def dashboard():
    return redirect(landing_path(current_user()))


@dashboard_bp.route("/dashboard/admin")
@role_required(Role.ADMIN)
def admin_dashboard():
    last = db.session.execute(
        db.select(DatabaseBackup).order_by(DatabaseBackup.created_at.desc()).limit(1)
    ).scalar_one_or_none()
    items = [
        ("Jumlah siswa", _count(db.select(db.func.count()).select_from(Siswa))),
        ("Tagihan belum lunas", _count(
            db.select(db.func.count()).select_from(Tagihan).where(Tagihan.status.in_(UNPAID_STATUSES))
        )),
        ("Backup terakhir", f"{format_jakarta(last.created_at)} ({format_bytes(last.filesize)})" if last else "-"),
    ]
    return _render("Dashboard Admin", items)


@dashboard_bp.route("/dashboard/kepsek")
@role_required(Role.KEPALA_SEKOLAH)
def kepsek_dashboard():
    lunas = _count(db.select(db.func.count()).select_from(Tagihan).where(Tagihan.status == "LUNAS"))
    total = _count(db.select(db.func.count()).select_from(Tagihan))
    items = [
        ("Jumlah siswa", _count(db.select(db.func.count()).select_from(Siswa))),
        ("Tagihan lunas", f"{lunas} / {total}"),
    ]
    return _render("Dashboard Kepala Sekolah", items)


@dashboard_bp.route("/dashboard/orangtua")
@role_required(Role.ORANG_TUA)
def orangtua_dashboard():
    user = current_user()
    siswa = db.session.get(Siswa, user.siswa_id) if user.siswa_id else None
    items = [("Siswa", f"{siswa.nama} ({siswa.kelas_nama or '-'})" if siswa else "-")]
    if siswa is not None:
        items.append(("Tagihan belum lunas", _count(
            db.select(db.func.count()).select_from(Tagihan).where(
                Tagihan.siswa_id == siswa.id, Tagihan.status.in_(UNPAID_STATUSES)
            )
        )))
    return _render("Dashboard Orang Tua", items)


EMPTY_STATS = {
    "totalSiswa": 0,
    "totalTagihan": 0,
    "totalTerbayar": 0,
    "totalBelumLunas": 0,
    "persentaseLunas": 0,
    "pembayaranBulanIni": [],
    "tagihanPerJenis": [],
}


def _months_back(value: datetime, months: int) -> datetime:
    month_index = value.year * 12 + value.month - 1 - months
    year, month = divmod(month_index, 12)
    day = min(value.day, calendar.monthrange(year, month + 1)[1])
    return value.replace(year=year, month=month + 1, day=day)


def _monthly_payments(tahun_ajaran_id: str) -> list[dict]:
    since = _months_back(jakarta_now(), 6).astimezone(timezone.utc).replace(tzinfo=None)
    rows = db.session.execute(
        db.select(Pembayaran.jumlah_bayar, Pembayaran.tanggal_bayar)
        .join(Tagihan, Pembayaran.tagihan_id == Tagihan.id)
        .where(Tagihan.tahun_ajaran_id == tahun_ajaran_id, Pembayaran.tanggal_bayar >= since)
    )
    per_month: dict[str, float] = {}
    for jumlah, tanggal in rows:
        key = to_jakarta(tanggal).strftime("%Y-%m")
        per_month[key] = per_month.get(key, 0.0) + float(jumlah)
    return [{"bulan": bulan, "total": total} for bulan, total in sorted(per_month.items())]


@dashboard_bp.route("/api/dashboard/stats", methods=["GET"])
def dashboard_stats():
    """Billing totals of the active academic year for the admin dashboard."""
    try:
        tahun_ajaran = get_active_tahun_ajaran()
        if tahun_ajaran is None:
            return jsonify(EMPTY_STATS)

        total_siswa = _count(
            db.select(db.func.count(Siswa.id)).where(Siswa.tahun_ajaran_id == tahun_ajaran.id, Siswa.aktif.is_(True))
        )
        total_tagihan, total_terbayar = db.session.execute(
            db.select(
                db.func.coalesce(db.func.sum(Tagihan.jumlah_tagihan), 0),
                db.func.coalesce(db.func.sum(Tagihan.jumlah_dibayar), 0),
            ).where(Tagihan.tahun_ajaran_id == tahun_ajaran.id)
        ).one()
        lunas = _count(
            db.select(db.func.count(Tagihan.id))
            .where(Tagihan.tahun_ajaran_id == tahun_ajaran.id, Tagihan.status == "LUNAS")
        )
        semua = _count(db.select(db.func.count(Tagihan.id)).where(Tagihan.tahun_ajaran_id == tahun_ajaran.id))

        per_jenis = []
        fee_types = db.session.execute(
            db.select(JenisTagihan).filter_by(tahun_ajaran_id=tahun_ajaran.id).order_by(JenisTagihan.nama.asc())
        ).scalars()
        for jenis in fee_types:
            bills = jenis.tagihan.all()
            per_jenis.append({
                "nama": jenis.nama,
                "totalTagihan": sum(float(t.jumlah_tagihan) for t in bills),
                "totalTerbayar": sum(float(t.jumlah_dibayar or 0) for t in bills),
                "jumlahLunas": sum(1 for t in bills if t.status == "LUNAS"),
                "jumlahBelumLunas": sum(1 for t in bills if t.status != "LUNAS"),
            })

        total_tagihan = float(total_tagihan)
        total_terbayar = float(total_terbayar)
        return jsonify({
            "totalSiswa": total_siswa,
            "totalTagihan": total_tagihan,
            "totalTerbayar": total_terbayar,
            "totalBelumLunas": total_tagihan - total_terbayar,
            # Half-up rounding of the paid-off share
            "persentaseLunas": int(lunas * 100 / semua + 0.5) if semua else 0,
            "pembayaranBulanIni": _monthly_payments(tahun_ajaran.id),
            "tagihanPerJenis": per_jenis,
            "tahunAjaran": tahun_ajaran.nama,
        })
    except Exception:
        current_app.logger.exception("Error fetching dashboard stats")
        return jsonify({"error": "Internal server error"}), 500
