from __future__ import annotations

from datetime import date

from flask import Blueprint, current_app, jsonify, request

from extensions import db
from models import JenisTagihan, JenisTagihanSiswa, Siswa, SiswaHistori, Tagihan, TahunAjaran, User
from routes.tahun_ajaran_routes import get_active_tahun_ajaran
from utils.pagination import paginate, pagination_dict
from utils.roles import Role
from utils.tagihan import UNPAID_STATUSES, generate_tagihan, positive_amount
from utils.users import create_user

siswa_bp = Blueprint("siswa", __name__, url_prefix="/api/siswa")

# JSON key -> column for the editable profile fields
PROFILE_FIELDS = {
    "nama": "nama",
    "kelasNama": "kelas_nama",
    "jenisKelamin": "jenis_kelamin",
    "tempatLahir": "tempat_lahir",
    "alamat": "alamat",
    "namaOrangTua": "nama_orang_tua",
    "noTelepon": "no_telepon",
}


class InvalidTanggal(ValueError):
    pass


def _parse_tanggal(value) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise InvalidTanggal(value) from exc


def _apply_profile(siswa: Siswa, payload: dict) -> None:
    # "kelas" is the older name of the class field
    if "kelas" in payload and "kelasNama" not in payload:
        payload = {**payload, "kelasNama": payload["kelas"]}
    for key, column in PROFILE_FIELDS.items():
        if key in payload:
            setattr(siswa, column, payload[key])
    if "tanggalLahir" in payload:
        siswa.tanggal_lahir = _parse_tanggal(payload["tanggalLahir"])


def _siswa_detail(siswa: Siswa) -> dict:
    data = siswa.to_dict()
    ta = siswa.tahun_ajaran
    data["tahunAjaran"] = ta.to_dict() if ta else None
    tagihan = sorted(
        siswa.tagihan,
        key=lambda t: (t.jenis_tagihan.kategori if t.jenis_tagihan else "", t.tahun or 0, t.bulan or 0),
    )
    data["tagihan"] = [t.to_dict(with_relations=True) for t in tagihan]
    return data


@siswa_bp.route("", methods=["GET"])
def list_siswa():
    """Paginated student list.

    ``status`` defaults to active students; ``TIDAK_AKTIF`` lists the inactive
    ones and ``all`` drops the filter. ``search`` matches name or NIPD.
    """
    try:
        stmt = db.select(Siswa)
        status = request.args.get("status")
        if status == "TIDAK_AKTIF":
            stmt = stmt.where(Siswa.status == "TIDAK_AKTIF")
        elif status != "all":
            stmt = stmt.where(Siswa.status == "AKTIF")
        if request.args.get("tahunAjaranId"):
            stmt = stmt.where(Siswa.tahun_ajaran_id == request.args["tahunAjaranId"])
        if request.args.get("siswaId"):
            stmt = stmt.where(Siswa.id == request.args["siswaId"])
        search = (request.args.get("search") or "").strip()
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(db.or_(Siswa.nama.ilike(pattern), Siswa.nipd.ilike(pattern)))
        stmt = stmt.order_by(Siswa.kelas_nama.asc(), Siswa.nama.asc())

        result = paginate(stmt)
        data = []
        for siswa in result.items:
            row = siswa.to_dict()
            row["tahunAjaran"] = {"nama": siswa.tahun_ajaran.nama} if siswa.tahun_ajaran else None
            data.append(row)
        return jsonify({"data": data, "pagination": pagination_dict(result)})
    except Exception:
        current_app.logger.exception("Error fetching siswa")
        return jsonify({"error": "Internal server error"}), 500


@siswa_bp.route("", methods=["POST"])
def create_siswa():
    """Register a student, their parent login and the bills of the academic year."""
    try:
        payload = request.get_json(silent=True) or {}
        nipd = (payload.get("nipd") or "").strip()
        nama = (payload.get("nama") or "").strip()
        if not nipd or not nama:
            return jsonify({"error": "NIPD dan nama wajib diisi"}), 400

        tahun_ajaran_id = payload.get("tahunAjaranId")
        if tahun_ajaran_id:
            tahun_ajaran = db.session.get(TahunAjaran, tahun_ajaran_id)
            if tahun_ajaran is None:
                return jsonify({"error": "Tahun ajaran tidak ditemukan"}), 400
        else:
            tahun_ajaran = get_active_tahun_ajaran()
            if tahun_ajaran is None:
                return jsonify({"error": "Tahun ajaran aktif tidak ditemukan"}), 400

        taken = db.session.execute(db.select(Siswa.id).where(Siswa.nipd == nipd)).first() \
            or db.session.execute(db.select(User.id).where(User.nipd == nipd)).first()
        if taken:
            return jsonify({"error": "NIPD sudah terdaftar"}), 400

        try:
            siswa = Siswa(nipd=nipd, tahun_ajaran_id=tahun_ajaran.id, tahun_masuk=tahun_ajaran.tahun_mulai)
            _apply_profile(siswa, {**payload, "nama": nama})
        except InvalidTanggal:
            return jsonify({"error": "Tanggal lahir tidak valid"}), 400
        db.session.add(siswa)
        db.session.flush()

        create_user(siswa.nama_orang_tua or nama, Role.ORANG_TUA, nipd=nipd, siswa_id=siswa.id)

        fee_types = db.session.execute(
            db.select(JenisTagihan).filter_by(tahun_ajaran_id=tahun_ajaran.id, aktif=True)
        ).scalars().all()
        created = sum(generate_tagihan(siswa, jenis, tahun_ajaran) for jenis in fee_types)
        db.session.commit()
        current_app.logger.info("Siswa %s (%s) created with %d tagihan", siswa.nama, siswa.nipd, created)
        return jsonify(siswa.to_dict()), 201
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error creating siswa")
        return jsonify({"error": "Internal server error"}), 500


@siswa_bp.route("/<siswa_id>", methods=["GET"])
def get_siswa(siswa_id: str):
    try:
        siswa = db.session.get(Siswa, siswa_id)
        if siswa is None:
            return jsonify({"error": "Siswa tidak ditemukan"}), 404
        return jsonify(_siswa_detail(siswa))
    except Exception:
        current_app.logger.exception("Error fetching siswa")
        return jsonify({"error": "Internal server error"}), 500


@siswa_bp.route("/<siswa_id>", methods=["PUT"])
def update_siswa(siswa_id: str):
    try:
        siswa = db.session.get(Siswa, siswa_id)
        if siswa is None:
            return jsonify({"error": "Siswa tidak ditemukan"}), 404
        payload = request.get_json(silent=True) or {}
        try:
            _apply_profile(siswa, payload)
        except InvalidTanggal:
            db.session.rollback()
            return jsonify({"error": "Tanggal lahir tidak valid"}), 400
        if not siswa.nama:
            db.session.rollback()
            return jsonify({"error": "Nama wajib diisi"}), 400
        db.session.commit()
        return jsonify(siswa.to_dict())
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error updating siswa")
        return jsonify({"error": "Internal server error"}), 500


@siswa_bp.route("/<siswa_id>", methods=["DELETE"])
def delete_siswa(siswa_id: str):
    """Remove a student.

    A student with any recorded payment is only deactivated; otherwise the
    student, their bills, history, special tariffs and parent login are deleted.
    """
    try:
        siswa = db.session.get(Siswa, siswa_id)
        if siswa is None:
            return jsonify({"error": "Siswa tidak ditemukan"}), 404

        has_payments = db.session.execute(
            db.select(Tagihan.id).where(Tagihan.siswa_id == siswa_id, Tagihan.jumlah_dibayar > 0).limit(1)
        ).first()
        if has_payments:
            siswa.status = "TIDAK_AKTIF"
            siswa.aktif = False
            db.session.commit()
            current_app.logger.info("Siswa %s deactivated (has payments)", siswa_id)
            return jsonify({"message": "Siswa berhasil dinonaktifkan (memiliki riwayat pembayaran)"})

        db.session.execute(db.delete(User).where(User.siswa_id == siswa_id))
        db.session.execute(db.delete(SiswaHistori).where(SiswaHistori.siswa_id == siswa_id))
        db.session.delete(siswa)
        db.session.commit()
        current_app.logger.info("Siswa %s deleted", siswa_id)
        return jsonify({"message": "Siswa berhasil dihapus"})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error deleting siswa")
        return jsonify({"error": "Gagal menghapus siswa"}), 500


@siswa_bp.route("/<siswa_id>/tarif-khusus", methods=["GET"])
def list_tarif_khusus(siswa_id: str):
    try:
        rows = db.session.execute(
            db.select(JenisTagihanSiswa).filter_by(siswa_id=siswa_id)
        ).scalars().all()
        return jsonify({"tarifKhusus": [row.to_dict(with_jenis=True) for row in rows]})
    except Exception:
        current_app.logger.exception("Error fetching tarif khusus")
        return jsonify({"error": "Failed to fetch"}), 500


@siswa_bp.route("/<siswa_id>/tarif-khusus", methods=["POST"])
def set_tarif_khusus(siswa_id: str):
    """Create or replace a student's special tariff for one fee type.

    With ``updateTagihanBelumLunas`` the student's unpaid and partially paid
    bills of that type in the academic year are repriced as well.
    """
    try:
        payload = request.get_json(silent=True) or {}
        nominal = positive_amount(payload.get("nominalKhusus"))
        if nominal is None:
            return jsonify({"error": "Nominal khusus harus lebih dari 0"}), 400

        siswa = db.session.get(Siswa, siswa_id)
        if siswa is None:
            return jsonify({"error": "Siswa tidak ditemukan"}), 404
        jenis_tagihan_id = payload.get("jenisTagihanId")
        if not jenis_tagihan_id or db.session.get(JenisTagihan, jenis_tagihan_id) is None:
            return jsonify({"error": "Jenis tagihan tidak ditemukan"}), 404
        alasan = payload.get("alasan")

        tarif = db.session.execute(
            db.select(JenisTagihanSiswa).filter_by(siswa_id=siswa_id, jenis_tagihan_id=jenis_tagihan_id)
        ).scalar_one_or_none()
        if tarif is None:
            tarif = JenisTagihanSiswa(siswa_id=siswa_id, jenis_tagihan_id=jenis_tagihan_id)
            db.session.add(tarif)
        tarif.nominal_khusus = nominal
        tarif.alasan = alasan

        tahun_ajaran_id = payload.get("tahunAjaranId") or siswa.tahun_ajaran_id
        updated_count = 0
        if payload.get("updateTagihanBelumLunas"):
            result = db.session.execute(
                db.update(Tagihan)
                .where(
                    Tagihan.siswa_id == siswa_id,
                    Tagihan.jenis_tagihan_id == jenis_tagihan_id,
                    Tagihan.status.in_(UNPAID_STATUSES),
                    Tagihan.tahun_ajaran_id == tahun_ajaran_id,
                )
                .values(jumlah_tagihan=nominal)
            )
            updated_count = result.rowcount or 0

        db.session.add(SiswaHistori(
            siswa_id=siswa_id,
            tahun_ajaran_id=tahun_ajaran_id,
            kelas_nama=siswa.kelas_nama,
            tipe_aksi="TARIF_KHUSUS",
            keterangan=f"Tarif khusus: {alasan or 'Tidak ada keterangan'}. {updated_count} tagihan diupdate.",
        ))
        db.session.commit()
        return jsonify({"success": True, "tarifKhusus": tarif.to_dict(), "updatedCount": updated_count})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error setting tarif khusus")
        return jsonify({"error": "Failed to set tarif khusus"}), 500


@siswa_bp.route("/<siswa_id>/tarif-khusus/<tarif_id>", methods=["DELETE"])
def delete_tarif_khusus(siswa_id: str, tarif_id: str):
    try:
        tarif = db.session.get(JenisTagihanSiswa, tarif_id)
        # A tariff is only reachable through the student that owns it
        if tarif is None or tarif.siswa_id != siswa_id:
            return jsonify({"error": "Tarif khusus tidak ditemukan"}), 404
        db.session.delete(tarif)
        db.session.commit()
        current_app.logger.info("Tarif khusus %s deleted for siswa %s", tarif_id, siswa_id)
        return jsonify({"success": True})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error deleting tarif khusus")
        return jsonify({"error": "Failed to delete"}), 500
