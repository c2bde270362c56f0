from decimal import Decimal

import pytest

from app import create_app
from config import Config
from extensions import db
from models import JenisTagihan, Siswa, Tagihan, TahunAjaran


@pytest.fixture
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test_secret"
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'spp-test.db'}"
        BACKUP_DIRECTORY = str(tmp_path / "backups")
        RATELIMIT_ENABLED = False
        AUTO_CREATE_TABLES = True

    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def backup_dir(app):
    from pathlib import Path
    return Path(app.config["BACKUP_DIRECTORY"])


@pytest.fixture
def login_as(client):
    def _login(role, user_id="user-1", name="Tester", siswa_id=None):
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
            sess["role"] = role
            sess["name"] = name
            if siswa_id:
                sess["siswa_id"] = siswa_id
        return client

    return _login


@pytest.fixture
def make_tahun_ajaran(app):
    def _make(nama="2024/2025", mulai=2024, selesai=2025, aktif=False) -> str:
        with app.app_context():
            row = TahunAjaran(nama=nama, tahun_mulai=mulai, tahun_selesai=selesai, aktif=aktif)
            db.session.add(row)
            db.session.commit()
            return row.id

    return _make


@pytest.fixture
def make_siswa(app):
    def _make(nipd="2024001", nama="Ahmad Fauzi", tahun_ajaran_id=None, kelas="1A", status="AKTIF") -> str:
        with app.app_context():
            row = Siswa(
                nipd=nipd,
                nama=nama,
                kelas_nama=kelas,
                tahun_ajaran_id=tahun_ajaran_id,
                status=status,
                aktif=status == "AKTIF",
            )
            db.session.add(row)
            db.session.commit()
            return row.id

    return _make


@pytest.fixture
def make_jenis_tagihan(app):
    def _make(nama="SPP", nominal=150000, tahun_ajaran_id=None, kategori="BULANAN") -> str:
        with app.app_context():
            row = JenisTagihan(nama=nama, kategori=kategori, nominal=Decimal(nominal), tahun_ajaran_id=tahun_ajaran_id)
            db.session.add(row)
            db.session.commit()
            return row.id

    return _make


@pytest.fixture
def make_tagihan(app):
    def _make(siswa_id, jenis_tagihan_id, tahun_ajaran_id=None, jumlah=150000, status="BELUM_LUNAS",
              bulan=None, tahun=None, dibayar=0) -> str:
        with app.app_context():
            row = Tagihan(
                siswa_id=siswa_id,
                jenis_tagihan_id=jenis_tagihan_id,
                tahun_ajaran_id=tahun_ajaran_id,
                bulan=bulan,
                tahun=tahun,
                jumlah_tagihan=Decimal(jumlah),
                jumlah_dibayar=Decimal(dibayar),
                status=status,
            )
            db.session.add(row)
            db.session.commit()
            return row.id

    return _make
