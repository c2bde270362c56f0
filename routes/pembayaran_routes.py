from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from flask import Blueprint, current_app, jsonify, request

from extensions import db
from models import Pembayaran, Tagihan
from utils.pagination import paginate, pagination_dict
from utils.tagihan import format_rupiah, kuitansi_number, positive_amount, status_for
from utils.timezone_helpers import JAKARTA_TZ, jakarta_now

pembayaran_bp = Blueprint("pembayaran", __name__, url_prefix="/api/pembayaran")


def _utc_naive(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _day_start_utc(day: date) -> datetime:
    """Midnight WIB of ``day`` as naive UTC, matching stored timestamps."""
    return _utc_naive(datetime(day.year, day.month, day.day, tzinfo=JAKARTA_TZ))


def _next_kuitansi(now: datetime) -> str:
    start = _day_start_utc(now.date())
    counter = db.session.scalar(
        db.select(db.func.count(Pembayaran.id)).where(
            Pembayaran.created_at >= start, Pembayaran.created_at < start + timedelta(days=1)
        )
    ) or 0
    fmt = current_app.config.get("KUITANSI_FORMAT")
    # Cancelled receipts leave gaps, so skip numbers already issued
    while True:
        counter += 1
        number = kuitansi_number(counter, fmt, now)
        if db.session.execute(db.select(Pembayaran.id).where(Pembayaran.nomor_kuitansi == number)).first() is None:
            return number


def _pembayaran_row(pembayaran: Pembayaran) -> dict:
    data = pembayaran.to_dict()
    tagihan = pembayaran.tagihan
    siswa = tagihan.siswa
    jenis = tagihan.jenis_tagihan
    data["tagihan"] = {
        "id": tagihan.id,
        "bulan": tagihan.bulan,
        "tahun": tagihan.tahun,
        "siswa": {"id": siswa.id, "nama": siswa.nama, "nipd": siswa.nipd, "kelasNama": siswa.kelas_nama},
        "jenisTagihan": {"nama": jenis.nama, "kategori": jenis.kategori},
    }
    return data


@pembayaran_bp.route("", methods=["GET"])
def list_pembayaran():
    """Paginated payments, newest first; ``startDate``/``endDate`` are inclusive WIB dates."""
    try:
        stmt = db.select(Pembayaran).join(Tagihan, Pembayaran.tagihan_id == Tagihan.id)
        if request.args.get("siswaId"):
            stmt = stmt.where(Tagihan.siswa_id == request.args["siswaId"])
        try:
            if request.args.get("startDate"):
                start = date.fromisoformat(request.args["startDate"][:10])
                stmt = stmt.where(Pembayaran.tanggal_bayar >= _day_start_utc(start))
            if request.args.get("endDate"):
                end = date.fromisoformat(request.args["endDate"][:10])
                stmt = stmt.where(Pembayaran.tanggal_bayar < _day_start_utc(end + timedelta(days=1)))
        except ValueError:
            return jsonify({"error": "Format tanggal tidak valid"}), 400
        stmt = stmt.order_by(Pembayaran.tanggal_bayar.desc())

        result = paginate(stmt)
        return jsonify({
            "data": [_pembayaran_row(p) for p in result.items],
            "pagination": pagination_dict(result),
        })
    except Exception:
        current_app.logger.exception("Error fetching pembayaran")
        return jsonify({"error": "Internal server error"}), 500


@pembayaran_bp.route("", methods=["POST"])
def create_pembayaran():
    """Record a payment against one bill and update the bill's paid total and status.

    Paying more than the outstanding amount is accepted; the excess is noted
    as infaq in the payment's remarks and returned as ``infaq``.
    """
    try:
        payload = request.get_json(silent=True) or {}
        jumlah = positive_amount(payload.get("jumlahBayar"))
        if jumlah is None:
            return jsonify({"error": "Jumlah bayar harus lebih dari 0"}), 400
        tagihan_id = payload.get("tagihanId")
        tagihan = db.session.get(Tagihan, tagihan_id) if tagihan_id else None
        if tagihan is None:
            return jsonify({"error": "Tagihan tidak ditemukan"}), 404

        dibayar = Decimal(tagihan.jumlah_dibayar or 0)
        sisa = Decimal(tagihan.jumlah_tagihan) - dibayar
        infaq = max(jumlah - max(sisa, Decimal("0")), Decimal("0"))
        keterangan = payload.get("keterangan")
        if infaq > 0:
            keterangan = f"{keterangan or ''} [Infaq/Kelebihan: {format_rupiah(infaq)}]".strip()

        now = jakarta_now()
        pembayaran = Pembayaran(
            tagihan_id=tagihan.id,
            jumlah_bayar=jumlah,
            metode_bayar=payload.get("metodeBayar"),
            keterangan=keterangan,
            nomor_kuitansi=_next_kuitansi(now),
            tanggal_bayar=_utc_naive(now),
            created_at=_utc_naive(now),
        )
        db.session.add(pembayaran)
        tagihan.jumlah_dibayar = dibayar + jumlah
        tagihan.status = status_for(tagihan.jumlah_dibayar, Decimal(tagihan.jumlah_tagihan))
        db.session.commit()
        current_app.logger.info("Pembayaran %s recorded for tagihan %s", pembayaran.nomor_kuitansi, tagihan.id)
        return jsonify({**pembayaran.to_dict(), "infaq": float(infaq)}), 201
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error creating pembayaran")
        return jsonify({"error": "Internal server error"}), 500


@pembayaran_bp.route("", methods=["DELETE"])
def delete_pembayaran():
    """Cancel a payment and recompute its bill from the remaining payments."""
    try:
        pembayaran_id = request.args.get("id")
        if not pembayaran_id:
            return jsonify({"error": "ID pembayaran diperlukan"}), 400
        pembayaran = db.session.get(Pembayaran, pembayaran_id)
        if pembayaran is None:
            return jsonify({"error": "Pembayaran tidak ditemukan"}), 404

        tagihan = pembayaran.tagihan
        tagihan.pembayaran.remove(pembayaran)
        db.session.flush()
        total = db.session.scalar(
            db.select(db.func.coalesce(db.func.sum(Pembayaran.jumlah_bayar), 0)).where(Pembayaran.tagihan_id == tagihan.id)
        )
        tagihan.jumlah_dibayar = Decimal(str(total))
        tagihan.status = status_for(tagihan.jumlah_dibayar, Decimal(tagihan.jumlah_tagihan))
        db.session.commit()
        current_app.logger.info("Pembayaran %s cancelled", pembayaran_id)
        return jsonify({"message": "Pembayaran berhasil dibatalkan"})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error deleting pembayaran")
        return jsonify({"error": "Internal server error"}), 500
