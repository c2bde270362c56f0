import io
from datetime import datetime

from extensions import db
from models import DatabaseBackup, Pembayaran, TahunAjaran


def _add_backup(app, backup_dir, filename, content=b"data", created_at=None, write_file=True):
    if write_file:
        (backup_dir / filename).write_bytes(content)
    with app.app_context():
        row = DatabaseBackup(filename=filename, filesize=len(content))
        if created_at is not None:
            row.created_at = created_at
        db.session.add(row)
        db.session.commit()
        return row.id


def _backup_count(app):
    with app.app_context():
        return db.session.scalar(db.select(db.func.count()).select_from(DatabaseBackup))


def test_delete_missing_backup_returns_404_without_changes(app, client, backup_dir):
    _add_backup(app, backup_dir, "backup-a.db")
    response = client.delete("/api/backup/does-not-exist")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Backup not found"}
    assert (backup_dir / "backup-a.db").exists()
    assert _backup_count(app) == 1


def test_delete_removes_file_and_record_then_download_404(app, client, backup_dir):
    backup_id = _add_backup(app, backup_dir, "backup-b.db")
    response = client.delete(f"/api/backup/{backup_id}")
    assert response.status_code == 200
    assert response.get_json() == {"success": True}
    assert not (backup_dir / "backup-b.db").exists()
    assert _backup_count(app) == 0
    assert client.get("/api/backup/download/backup-b.db").status_code == 404


def test_delete_record_when_file_already_gone(app, client, backup_dir):
    backup_id = _add_backup(app, backup_dir, "backup-c.db", write_file=False)
    response = client.delete(f"/api/backup/{backup_id}")
    assert response.status_code == 200
    assert _backup_count(app) == 0


def test_download_returns_attachment(app, client, backup_dir):
    _add_backup(app, backup_dir, "backup-d.db", content=b"SQLite format 3\x00abc")
    response = client.get("/api/backup/download/backup-d.db")
    assert response.status_code == 200
    assert response.data == b"SQLite format 3\x00abc"
    assert response.mimetype == "application/octet-stream"
    disposition = response.headers["Content-Disposition"]
    assert disposition.startswith("attachment")
    assert "backup-d.db" in disposition
    response.close()


def test_download_missing_file_is_404_even_with_record(app, client, backup_dir):
    _add_backup(app, backup_dir, "backup-e.db", write_file=False)
    response = client.get("/api/backup/download/backup-e.db")
    assert response.status_code == 404
    assert response.get_json() == {"error": "File not found"}


def test_download_rejects_names_outside_backup_dir(client, backup_dir):
    (backup_dir.parent / "secret.txt").write_text("top secret")
    for name in ("..%5Csecret.txt", ".hidden", "..", "a..b"):
        response = client.get(f"/api/backup/download/{name}")
        assert response.status_code == 404
        assert response.get_json() == {"error": "File not found"}


def test_stats_without_backups(client):
    response = client.get("/api/backup/stats")
    assert response.status_code == 200
    assert response.get_json() == {"siswa": 0, "tagihan": 0, "pembayaran": 0, "lastBackup": None}


def test_stats_counts_and_latest_backup(app, client, backup_dir, make_siswa, make_jenis_tagihan, make_tagihan):
    siswa_id = make_siswa()
    make_siswa(nipd="2024002", nama="Siti Aisyah")
    jenis_id = make_jenis_tagihan()
    tagihan_id = make_tagihan(siswa_id, jenis_id)
    make_tagihan(siswa_id, jenis_id)
    with app.app_context():
        db.session.add(Pembayaran(tagihan_id=tagihan_id, jumlah_bayar=50000))
        db.session.commit()
    newest = datetime(2024, 8, 1, 10, 30, 0)
    _add_backup(app, backup_dir, "backup-old.db", created_at=datetime(2024, 7, 1, 8, 0, 0))
    _add_backup(app, backup_dir, "backup-new.db", created_at=newest)

    data = client.get("/api/backup/stats").get_json()
    assert data == {
        "siswa": 2,
        "tagihan": 2,
        "pembayaran": 1,
        "lastBackup": "2024-08-01T10:30:00+00:00",
    }


def test_create_backup_copies_database(app, client, backup_dir):
    response = client.post("/api/backup")
    assert response.status_code == 200
    data = response.get_json()
    assert data["filename"].startswith("backup-")
    assert data["filename"].endswith(".db")
    path = backup_dir / data["filename"]
    assert path.read_bytes().startswith(b"SQLite format 3\x00")
    assert data["filesize"] == path.stat().st_size
    assert _backup_count(app) == 1


def test_list_backups_newest_first(app, client, backup_dir):
    _add_backup(app, backup_dir, "backup-1.db", created_at=datetime(2024, 1, 1))
    _add_backup(app, backup_dir, "backup-2.db", created_at=datetime(2024, 2, 1))
    data = client.get("/api/backup").get_json()["data"]
    assert [b["filename"] for b in data] == ["backup-2.db", "backup-1.db"]


def test_create_backup_fails_for_non_sqlite(app, client):
    app.config["SQLALCHEMY_DATABASE_URI"] = "postgresql://spp@localhost/spp"
    response = client.post("/api/backup")
    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to create backup"}


def test_restore_validates_input(client, backup_dir):
    assert client.put("/api/backup", json={}).status_code == 400
    assert client.put("/api/backup", json={"filename": "../spp-test.db"}).status_code == 400
    assert client.put("/api/backup", json={"filename": "missing.db"}).status_code == 404


def test_restore_replaces_database_and_keeps_pre_restore_copy(app, client, backup_dir, make_tahun_ajaran):
    filename = client.post("/api/backup").get_json()["filename"]
    make_tahun_ajaran(nama="2025/2026", mulai=2025, selesai=2026)

    response = client.put("/api/backup", json={"filename": filename})
    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Database berhasil di-restore"
    assert body["preRestoreBackup"].startswith("pre-restore-")
    assert (backup_dir / body["preRestoreBackup"]).exists()

    with app.app_context():
        assert db.session.scalar(db.select(db.func.count()).select_from(TahunAjaran)) == 0
        names = db.session.execute(db.select(DatabaseBackup.filename)).scalars().all()
    # The restored snapshot predates its own record, so only the pre-restore copy is listed
    assert names == [body["preRestoreBackup"]]


def test_upload_restore_rejects_bad_files(client):
    assert client.post("/api/backup/upload-restore", data={}, content_type="multipart/form-data").status_code == 400

    response = client.post(
        "/api/backup/upload-restore",
        data={"file": (io.BytesIO(b"SQLite format 3\x00"), "dump.sql")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert response.get_json() == {"error": "File harus berformat .db"}

    response = client.post(
        "/api/backup/upload-restore",
        data={"file": (io.BytesIO(b"not a database"), "fake.db")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert response.get_json() == {"error": "File bukan database SQLite yang valid"}


def test_upload_restore_records_both_files(app, client, backup_dir, make_tahun_ajaran):
    filename = client.post("/api/backup").get_json()["filename"]
    payload = (backup_dir / filename).read_bytes()
    make_tahun_ajaran()

    response = client.post(
        "/api/backup/upload-restore",
        data={"file": (io.BytesIO(payload), "restore-me.db")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    pre_restore = response.get_json()["preRestoreBackup"]
    assert (backup_dir / pre_restore).exists()
    uploaded = [p.name for p in backup_dir.iterdir() if p.name.startswith("uploaded-")]
    assert len(uploaded) == 1

    with app.app_context():
        assert db.session.scalar(db.select(db.func.count()).select_from(TahunAjaran)) == 0
        names = set(db.session.execute(db.select(DatabaseBackup.filename)).scalars().all())
    assert names == {pre_restore, uploaded[0]}
