import pytest

from extensions import db
from utils.roles import Role
from utils.security import is_hashed
from utils.users import create_user


@pytest.fixture
def users(app, make_siswa):
    siswa_id = make_siswa(nipd="2024001")
    with app.app_context():
        admin = create_user("Bendahara Sekolah", Role.ADMIN, email="Admin@Sekolah.sch.id", password="admin123")
        kepsek = create_user("Kepala Sekolah", Role.KEPALA_SEKOLAH, email="kepsek@sekolah.sch.id", password="admin123")
        parent = create_user("Budi Santoso", Role.ORANG_TUA, nipd="2024001", siswa_id=siswa_id)
        db.session.commit()
        assert is_hashed(admin.password)
        return {"admin": admin.id, "kepsek": kepsek.id, "parent": parent.id, "siswa": siswa_id}


def test_login_page_renders(client):
    assert client.get("/login").status_code == 200


def test_staff_login_sets_session(client, users):
    response = client.post("/login", data={"email": "admin@sekolah.sch.id", "password": "admin123"})
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/dashboard/admin")
    with client.session_transaction() as sess:
        assert sess["user_id"] == users["admin"]
        assert sess["role"] == "ADMIN"


def test_headmaster_login_with_json(client, users):
    response = client.post("/login", json={"email": "kepsek@sekolah.sch.id", "password": "admin123"})
    assert response.headers["Location"].endswith("/dashboard/kepsek")


def test_wrong_password_is_rejected(client, users):
    response = client.post("/login", data={"email": "admin@sekolah.sch.id", "password": "nope"})
    assert response.status_code == 401
    assert b"Email atau password salah" in response.data


def test_missing_credentials(client):
    assert client.post("/login", data={"email": "admin@sekolah.sch.id"}).status_code == 400


def test_parent_login_by_nipd(client, users):
    response = client.post("/login", data={"nipd": "2024001"})
    assert response.headers["Location"].endswith("/dashboard/orangtua")
    with client.session_transaction() as sess:
        assert sess["siswa_id"] == users["siswa"]
    assert client.get("/dashboard/orangtua").status_code == 200


def test_unknown_nipd(client, users):
    assert client.post("/login", data={"nipd": "9999999"}).status_code == 401


def test_logout_clears_session(client, users):
    client.post("/login", data={"email": "admin@sekolah.sch.id", "password": "admin123"})
    response = client.post("/logout")
    assert response.headers["Location"].endswith("/login")
    assert client.get("/").headers["Location"].endswith("/login")
