from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from extensions import db
from models import JenisTagihan, JenisTagihanSiswa, Pembayaran, Siswa, Tagihan, TahunAjaran
from routes.tahun_ajaran_routes import get_active_tahun_ajaran
from utils.tagihan import generate_tagihan, positive_amount

jenis_tagihan_bp = Blueprint("jenis_tagihan", __name__, url_prefix="/api/jenis-tagihan")

KATEGORI = ("BULANAN", "TAHUNAN", "INSIDENTAL")


def _clean_kategori(value) -> str | None:
    parts = [p.strip().upper() for p in str(value or "").split(",") if p.strip()]
    if not parts or any(p not in KATEGORI for p in parts):
        return None
    return ",".join(dict.fromkeys(parts))


def _payment_count(jenis_tagihan_id: str) -> int:
    return db.session.scalar(
        db.select(db.func.count(Pembayaran.id))
        .join(Tagihan, Pembayaran.tagihan_id == Tagihan.id)
        .where(Tagihan.jenis_tagihan_id == jenis_tagihan_id)
    ) or 0


@jenis_tagihan_bp.route("", methods=["GET"])
def list_jenis_tagihan():
    try:
        tahun_ajaran_id = request.args.get("tahunAjaranId")
        if not tahun_ajaran_id:
            active = get_active_tahun_ajaran()
            if active is None:
                return jsonify({"data": []})
            tahun_ajaran_id = active.id
        rows = db.session.execute(
            db.select(JenisTagihan).filter_by(tahun_ajaran_id=tahun_ajaran_id).order_by(JenisTagihan.nama.asc())
        ).scalars().all()
        return jsonify({"data": [row.to_dict() for row in rows]})
    except Exception:
        current_app.logger.exception("Error fetching jenis tagihan")
        return jsonify({"error": "Internal server error"}), 500


@jenis_tagihan_bp.route("", methods=["POST"])
def create_jenis_tagihan():
    """Create a fee type and bill every active student of its academic year."""
    try:
        payload = request.get_json(silent=True) or {}
        nama = (payload.get("nama") or "").strip()
        kategori = _clean_kategori(payload.get("kategori"))
        nominal = positive_amount(payload.get("nominal"))
        if not nama or kategori is None:
            return jsonify({"error": "Nama dan kategori wajib diisi"}), 400
        if nominal is None:
            return jsonify({"error": "Nominal harus lebih dari 0"}), 400

        tahun_ajaran_id = payload.get("tahunAjaranId")
        tahun_ajaran = db.session.get(TahunAjaran, tahun_ajaran_id) if tahun_ajaran_id else get_active_tahun_ajaran()
        if tahun_ajaran is None:
            return jsonify({"error": "Tahun ajaran aktif tidak ditemukan"}), 400

        jenis = JenisTagihan(nama=nama, kategori=kategori, nominal=nominal, tahun_ajaran_id=tahun_ajaran.id)
        db.session.add(jenis)
        db.session.flush()

        students = db.session.execute(
            db.select(Siswa).filter_by(tahun_ajaran_id=tahun_ajaran.id, status="AKTIF")
        ).scalars().all()
        created = sum(generate_tagihan(siswa, jenis, tahun_ajaran) for siswa in students)
        db.session.commit()
        current_app.logger.info("Jenis tagihan %s created, %d tagihan generated", jenis.nama, created)
        return jsonify({**jenis.to_dict(), "tagihanDibuat": created}), 201
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error creating jenis tagihan")
        return jsonify({"error": "Internal server error"}), 500


@jenis_tagihan_bp.route("", methods=["PATCH"])
def toggle_jenis_tagihan():
    try:
        payload = request.get_json(silent=True) or {}
        jenis_id = payload.get("id")
        if not jenis_id:
            return jsonify({"error": "ID tidak ditemukan"}), 400
        jenis = db.session.get(JenisTagihan, jenis_id)
        if jenis is None:
            return jsonify({"error": "Jenis tagihan tidak ditemukan"}), 404
        jenis.aktif = bool(payload.get("aktif"))
        db.session.commit()
        return jsonify({
            "success": True,
            "data": jenis.to_dict(),
            "message": "Jenis tagihan diaktifkan" if jenis.aktif else "Jenis tagihan dinonaktifkan",
        })
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error updating jenis tagihan")
        return jsonify({"error": "Internal server error"}), 500


@jenis_tagihan_bp.route("/<jenis_id>", methods=["PUT"])
def update_jenis_tagihan(jenis_id: str):
    """Update name, category, nominal or active flag; existing bills keep their amounts."""
    try:
        jenis = db.session.get(JenisTagihan, jenis_id)
        if jenis is None:
            return jsonify({"error": "Jenis tagihan tidak ditemukan"}), 404
        payload = request.get_json(silent=True) or {}
        if "nama" in payload:
            nama = (payload.get("nama") or "").strip()
            if not nama:
                return jsonify({"error": "Nama wajib diisi"}), 400
            jenis.nama = nama
        if "kategori" in payload:
            kategori = _clean_kategori(payload.get("kategori"))
            if kategori is None:
                db.session.rollback()
                return jsonify({"error": "Kategori tidak valid"}), 400
            jenis.kategori = kategori
        if "nominal" in payload:
            nominal = positive_amount(payload.get("nominal"))
            if nominal is None:
                db.session.rollback()
                return jsonify({"error": "Nominal harus lebih dari 0"}), 400
            jenis.nominal = nominal
        if "aktif" in payload:
            jenis.aktif = bool(payload["aktif"])
        db.session.commit()
        return jsonify(jenis.to_dict())
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error updating jenis tagihan")
        return jsonify({"error": "Internal server error"}), 500


@jenis_tagihan_bp.route("/<jenis_id>", methods=["DELETE"])
def delete_jenis_tagihan(jenis_id: str):
    """Delete a fee type with its bills, or only deactivate it once payments exist."""
    try:
        jenis = db.session.get(JenisTagihan, jenis_id)
        if jenis is None:
            return jsonify({"error": "Jenis tagihan tidak ditemukan"}), 404

        if _payment_count(jenis_id):
            jenis.aktif = False
            db.session.commit()
            current_app.logger.info("Jenis tagihan %s deactivated (has payments)", jenis_id)
            return jsonify({"message": "Jenis tagihan dinonaktifkan karena sudah ada pembayaran"})

        db.session.execute(db.delete(Tagihan).where(Tagihan.jenis_tagihan_id == jenis_id))
        db.session.execute(db.delete(JenisTagihanSiswa).where(JenisTagihanSiswa.jenis_tagihan_id == jenis_id))
        db.session.delete(jenis)
        db.session.commit()
        current_app.logger.info("Jenis tagihan %s deleted", jenis_id)
        return jsonify({"message": "Jenis tagihan berhasil dihapus"})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error deleting jenis tagihan")
        return jsonify({"error": "Internal server error"}), 500
