from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from flask import Blueprint, current_app, jsonify, request, send_file

from extensions import db
from models import DatabaseBackup, Pembayaran, Siswa, Tagihan, iso_utc
from utils.backup import (
    InvalidBackupName,
    is_sqlite_file,
    remove_backup_file,
    resolve_backup_path,
    restore_database,
    snapshot_database,
    store_upload,
)

backup_bp = Blueprint("backup", __name__, url_prefix="/api/backup")


def _record_backup(path) -> DatabaseBackup:
    backup = DatabaseBackup(filename=path.name, filesize=path.stat().st_size)
    db.session.add(backup)
    return backup


@backup_bp.route("", methods=["GET"])
def list_backups():
    try:
        limit = int(current_app.config.get("BACKUP_LIST_LIMIT", 20))
        backups = db.session.execute(
            db.select(DatabaseBackup).order_by(DatabaseBackup.created_at.desc()).limit(limit)
        ).scalars().all()
        return jsonify({"data": [b.to_dict() for b in backups]})
    except Exception:
        current_app.logger.exception("Error fetching backups")
        return jsonify({"error": "Failed to fetch backups"}), 500


@backup_bp.route("", methods=["POST"])
def create_backup():
    try:
        path = snapshot_database("backup")
        backup = _record_backup(path)
        db.session.commit()
        current_app.logger.info("Database backup created: %s", backup.filename)
        return jsonify(backup.to_dict())
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error creating backup")
        return jsonify({"error": "Failed to create backup"}), 500


@backup_bp.route("", methods=["PUT"])
def restore_backup():
    """Restore the database from a file already in the backup directory."""
    try:
        payload = request.get_json(silent=True) or {}
        filename = payload.get("filename")
        if not filename:
            return jsonify({"error": "Filename diperlukan"}), 400
        try:
            path = resolve_backup_path(filename)
        except InvalidBackupName:
            return jsonify({"error": "Filename tidak valid"}), 400
        if not path.is_file():
            return jsonify({"error": "File backup tidak ditemukan"}), 404

        pre_restore = restore_database(path)
        _record_backup(pre_restore)
        db.session.commit()
        current_app.logger.info("Database restored from %s (saved %s)", path.name, pre_restore.name)
        return jsonify({
            "message": "Database berhasil di-restore",
            "preRestoreBackup": pre_restore.name,
        })
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error restoring database")
        return jsonify({"error": "Failed to restore database"}), 500


@backup_bp.route("/upload-restore", methods=["POST"])
def upload_restore():
    try:
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            return jsonify({"error": "File tidak ditemukan"}), 400
        if not upload.filename.lower().endswith(".db"):
            return jsonify({"error": "File harus berformat .db"}), 400
        data = upload.read()
        if not is_sqlite_file(data):
            return jsonify({"error": "File bukan database SQLite yang valid"}), 400

        uploaded = store_upload(data)
        pre_restore = restore_database(uploaded)
        _record_backup(pre_restore)
        _record_backup(uploaded)
        db.session.commit()
        current_app.logger.info("Database restored from upload %s (saved %s)", uploaded.name, pre_restore.name)
        return jsonify({
            "message": "Database berhasil di-restore dari file upload",
            "preRestoreBackup": pre_restore.name,
        })
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error restoring from upload")
        return jsonify({"error": "Gagal restore database dari file upload"}), 500


@backup_bp.route("/<backup_id>", methods=["DELETE"])
def delete_backup(backup_id: str):
    try:
        backup = db.session.get(DatabaseBackup, backup_id)
        if backup is None:
            return jsonify({"error": "Backup not found"}), 404

        try:
            remove_backup_file(backup.filename)
        except InvalidBackupName:
            current_app.logger.warning("Backup %s has an unusable filename %r; removing record only", backup.id, backup.filename)

        db.session.delete(backup)
        db.session.commit()
        current_app.logger.info("Backup deleted: %s", backup.filename)
        return jsonify({"success": True})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error deleting backup")
        return jsonify({"error": "Failed to delete backup"}), 500


@backup_bp.route("/download/<filename>", methods=["GET"])
def download_backup(filename: str):
    try:
        try:
            path = resolve_backup_path(filename)
        except InvalidBackupName:
            return jsonify({"error": "File not found"}), 404
        if not path.is_file():
            return jsonify({"error": "File not found"}), 404
        return send_file(
            path,
            mimetype="application/octet-stream",
            as_attachment=True,
            download_name=path.name,
        )
    except Exception:
        current_app.logger.exception("Error downloading backup")
        return jsonify({"error": "Failed to download"}), 500


def _count(model) -> int:
    return db.session.scalar(db.select(db.func.count()).select_from(model)) or 0


def _last_backup_at():
    created_at = db.session.scalar(
        db.select(DatabaseBackup.created_at).order_by(DatabaseBackup.created_at.desc()).limit(1)
    )
    return iso_utc(created_at)


def _in_app_context(app, func: Callable[[], Any]) -> Callable[[], Any]:
    def run():
        with app.app_context():
            return func()

    return run


@backup_bp.route("/stats", methods=["GET"])
def backup_stats():
    """Row counts and last backup time; the four reads run concurrently."""
    try:
        app = current_app._get_current_object()
        reads = {
            "siswa": lambda: _count(Siswa),
            "tagihan": lambda: _count(Tagihan),
            "pembayaran": lambda: _count(Pembayaran),
            "lastBackup": _last_backup_at,
        }
        workers = int(app.config.get("STATS_MAX_WORKERS", 4))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {key: pool.submit(_in_app_context(app, func)) for key, func in reads.items()}
            return jsonify({key: future.result() for key, future in futures.items()})
    except Exception:
        current_app.logger.exception("Error fetching stats")
        return jsonify({"error": "Failed to fetch stats"}), 500
