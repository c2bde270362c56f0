from __future__ import annotations

from typing import Optional

from flask import Blueprint, current_app, jsonify, request

from extensions import db
from models import TahunAjaran

tahun_ajaran_bp = Blueprint("tahun_ajaran", __name__, url_prefix="/api/manajemen/tahun-ajaran")

_FIELDS = {"nama": "nama", "tahunMulai": "tahun_mulai", "tahunSelesai": "tahun_selesai"}


def get_active_tahun_ajaran() -> Optional[TahunAjaran]:
    return db.session.execute(
        db.select(TahunAjaran).filter_by(aktif=True).limit(1)
    ).scalar_one_or_none()


def _coerce(key: str, value):
    if value is None or key == "nama":
        return value
    return int(value)


@tahun_ajaran_bp.route("", methods=["GET"])
def list_tahun_ajaran():
    try:
        rows = db.session.execute(
            db.select(TahunAjaran).order_by(TahunAjaran.tahun_mulai.desc())
        ).scalars().all()
        return jsonify([row.to_dict(with_counts=True) for row in rows])
    except Exception:
        current_app.logger.exception("Error fetching tahun ajaran")
        return jsonify({"error": "Failed to fetch data"}), 500


@tahun_ajaran_bp.route("", methods=["POST"])
def create_tahun_ajaran():
    """Create an academic year. No uniqueness or overlap checks are made."""
    try:
        payload = request.get_json(silent=True) or {}
        row = TahunAjaran(**{attr: _coerce(key, payload.get(key)) for key, attr in _FIELDS.items()})
        db.session.add(row)
        db.session.commit()
        return jsonify(row.to_dict())
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error creating tahun ajaran")
        return jsonify({"error": "Failed to create data"}), 500


@tahun_ajaran_bp.route("/<tahun_ajaran_id>", methods=["PUT"])
def update_tahun_ajaran(tahun_ajaran_id: str):
    try:
        row = db.session.get(TahunAjaran, tahun_ajaran_id)
        if row is None:
            return jsonify({"error": "Tahun ajaran not found"}), 404
        payload = request.get_json(silent=True) or {}
        # Only keys present in the body are changed
        for key, attr in _FIELDS.items():
            if key in payload:
                setattr(row, attr, _coerce(key, payload[key]))
        db.session.commit()
        return jsonify(row.to_dict())
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error updating tahun ajaran")
        return jsonify({"error": "Failed to update data"}), 500


@tahun_ajaran_bp.route("/<tahun_ajaran_id>", methods=["DELETE"])
def delete_tahun_ajaran(tahun_ajaran_id: str):
    try:
        row = db.session.get(TahunAjaran, tahun_ajaran_id)
        if row is None:
            return jsonify({"error": "Tahun ajaran not found"}), 404
        if row.aktif:
            return jsonify({"error": "Cannot delete active tahun ajaran"}), 400
        if row.siswa.count() or row.tagihan.count():
            return jsonify({"error": "Cannot delete tahun ajaran with related data"}), 400
        db.session.delete(row)
        db.session.commit()
        return jsonify({"success": True})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error deleting tahun ajaran")
        return jsonify({"error": "Failed to delete data"}), 500


@tahun_ajaran_bp.route("/<tahun_ajaran_id>/set-aktif", methods=["POST"])
def set_aktif(tahun_ajaran_id: str):
    """Make one academic year the only active one.

    Deactivating the others and activating the target share one transaction,
    so a missing target or a failure leaves the previous active year in place.
    """
    try:
        target = db.session.get(TahunAjaran, tahun_ajaran_id)
        if target is None:
            db.session.rollback()
            return jsonify({"error": "Tahun ajaran not found"}), 404
        db.session.execute(
            db.update(TahunAjaran)
            .where(TahunAjaran.id != target.id)
            .values(aktif=False)
        )
        target.aktif = True
        db.session.commit()
        current_app.logger.info("Tahun ajaran %s (%s) set active", target.nama, target.id)
        return jsonify({"success": True})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error setting aktif")
        return jsonify({"error": "Failed to set aktif"}), 500
