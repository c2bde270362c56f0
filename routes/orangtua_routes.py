from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from extensions import db
from models import Siswa
from utils.roles import current_user

orangtua_bp = Blueprint("orangtua", __name__, url_prefix="/api/orangtua")

RECENT_PAYMENTS = 5


@orangtua_bp.route("/data", methods=["GET"])
def orangtua_data():
    """Bills, totals and latest payments of the logged-in parent's child."""
    try:
        user = current_user()
        if user is None or not user.siswa_id:
            return jsonify({"error": "Unauthorized"}), 401
        siswa = db.session.get(Siswa, user.siswa_id)
        if siswa is None:
            return jsonify({"error": "Siswa tidak ditemukan"}), 404

        tagihan = siswa.tagihan
        total_tagihan = sum(float(t.jumlah_tagihan) for t in tagihan)
        total_terbayar = sum(float(t.jumlah_dibayar or 0) for t in tagihan)

        payments = []
        for t in tagihan:
            for p in t.pembayaran:
                row = p.to_dict()
                row.update({"jenisTagihan": t.jenis_tagihan.nama, "bulan": t.bulan, "tahun": t.tahun})
                payments.append((p.tanggal_bayar, row))
        payments.sort(key=lambda item: item[0], reverse=True)

        return jsonify({
            "siswa": {
                "id": siswa.id,
                "nama": siswa.nama,
                "nipd": siswa.nipd,
                "kelas": siswa.kelas_nama,
                "tahunAjaran": siswa.tahun_ajaran.nama if siswa.tahun_ajaran else None,
            },
            "summary": {
                "totalTagihan": total_tagihan,
                "totalTerbayar": total_terbayar,
                "sisaBelumBayar": total_tagihan - total_terbayar,
                "tagihanBelumLunas": sum(1 for t in tagihan if t.status != "LUNAS"),
                "tagihanLunas": sum(1 for t in tagihan if t.status == "LUNAS"),
            },
            "recentPayments": [row for _, row in payments[:RECENT_PAYMENTS]],
            "tagihan": [t.to_dict(with_relations=True) for t in tagihan],
        })
    except Exception:
        current_app.logger.exception("Error fetching orangtua data")
        return jsonify({"error": "Internal server error"}), 500
