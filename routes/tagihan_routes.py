from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from extensions import db
from models import JenisTagihan, Siswa, Tagihan
from routes.tahun_ajaran_routes import get_active_tahun_ajaran

tagihan_bp = Blueprint("tagihan", __name__, url_prefix="/api/tagihan")


@tagihan_bp.route("", methods=["GET"])
def list_tagihan():
    """Bills of one academic year (the active one by default).

    Filters: ``siswaId``, ``kelasNama`` and ``status`` (comma separated).
    """
    try:
        tahun_ajaran_id = request.args.get("tahunAjaranId")
        if not tahun_ajaran_id:
            active = get_active_tahun_ajaran()
            if active is None:
                return jsonify({"data": []})
            tahun_ajaran_id = active.id

        stmt = (
            db.select(Tagihan)
            .join(Siswa, Tagihan.siswa_id == Siswa.id)
            .join(JenisTagihan, Tagihan.jenis_tagihan_id == JenisTagihan.id)
            .where(Tagihan.tahun_ajaran_id == tahun_ajaran_id)
        )
        if request.args.get("siswaId"):
            stmt = stmt.where(Tagihan.siswa_id == request.args["siswaId"])
        if request.args.get("kelasNama"):
            stmt = stmt.where(Siswa.kelas_nama == request.args["kelasNama"])
        statuses = [s.strip() for s in (request.args.get("status") or "").split(",") if s.strip()]
        if statuses:
            stmt = stmt.where(Tagihan.status.in_(statuses))
        stmt = stmt.order_by(
            Siswa.kelas_nama.asc(),
            Siswa.nama.asc(),
            JenisTagihan.kategori.asc(),
            Tagihan.tahun.asc(),
            Tagihan.bulan.asc(),
        )

        data = []
        for tagihan in db.session.execute(stmt).scalars():
            row = tagihan.to_dict(with_relations=True)
            siswa = tagihan.siswa
            row["siswa"] = {
                "id": siswa.id,
                "nama": siswa.nama,
                "nipd": siswa.nipd,
                "kelasNama": siswa.kelas_nama,
            }
            data.append(row)
        return jsonify({"data": data})
    except Exception:
        current_app.logger.exception("Error fetching tagihan")
        return jsonify({"error": "Internal server error"}), 500
