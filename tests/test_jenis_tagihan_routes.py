import pytest

from extensions import db
from models import JenisTagihan, Pembayaran, Tagihan


@pytest.fixture
def tahun_aktif(make_tahun_ajaran):
    return make_tahun_ajaran(nama="2024/2025", mulai=2024, selesai=2025, aktif=True)


def _bills(app, jenis_id):
    with app.app_context():
        return db.session.execute(db.select(Tagihan).filter_by(jenis_tagihan_id=jenis_id)).scalars().all()


def test_list_is_empty_without_active_year(client, make_tahun_ajaran):
    make_tahun_ajaran(aktif=False)
    assert client.get("/api/jenis-tagihan").get_json() == {"data": []}


def test_list_active_year_sorted_by_name(client, tahun_aktif, make_tahun_ajaran, make_jenis_tagihan):
    lama = make_tahun_ajaran(nama="2023/2024", mulai=2023, selesai=2024)
    make_jenis_tagihan(nama="Seragam", kategori="TAHUNAN", tahun_ajaran_id=tahun_aktif)
    make_jenis_tagihan(nama="Buku", kategori="TAHUNAN", tahun_ajaran_id=tahun_aktif)
    make_jenis_tagihan(nama="SPP", tahun_ajaran_id=lama)

    data = client.get("/api/jenis-tagihan").get_json()["data"]
    assert [j["nama"] for j in data] == ["Buku", "Seragam"]
    assert [j["nama"] for j in client.get(f"/api/jenis-tagihan?tahunAjaranId={lama}").get_json()["data"]] == ["SPP"]


def test_create_bills_active_students_only(app, client, tahun_aktif, make_siswa):
    aktif_id = make_siswa(nipd="2024001", tahun_ajaran_id=tahun_aktif)
    make_siswa(nipd="2024002", nama="Keluar", tahun_ajaran_id=tahun_aktif, status="TIDAK_AKTIF")

    response = client.post("/api/jenis-tagihan", json={"nama": "SPP", "kategori": "bulanan", "nominal": 150000})
    assert response.status_code == 201
    body = response.get_json()
    assert body["kategori"] == "BULANAN"
    assert body["nominal"] == 150000.0
    assert body["aktif"] is True
    assert body["tagihanDibuat"] == 12

    bills = _bills(app, body["id"])
    assert {t.siswa_id for t in bills} == {aktif_id}
    assert len(bills) == 12


def test_create_validates_input(client, make_tahun_ajaran):
    response = client.post("/api/jenis-tagihan", json={"nama": "SPP", "kategori": "BULANAN", "nominal": 1000})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Tahun ajaran aktif tidak ditemukan"}

    make_tahun_ajaran(aktif=True)
    assert client.post("/api/jenis-tagihan", json={"kategori": "BULANAN", "nominal": 1000}).status_code == 400
    assert client.post("/api/jenis-tagihan", json={"nama": "X", "kategori": "HARIAN", "nominal": 1000}).status_code == 400
    for nominal in (0, -10, "NaN", "Infinity", None):
        response = client.post("/api/jenis-tagihan", json={"nama": "X", "kategori": "TAHUNAN", "nominal": nominal})
        assert response.status_code == 400


def test_patch_toggles_active_flag(client, tahun_aktif, make_jenis_tagihan):
    jenis_id = make_jenis_tagihan(tahun_ajaran_id=tahun_aktif)
    response = client.patch("/api/jenis-tagihan", json={"id": jenis_id, "aktif": False})
    assert response.status_code == 200
    body = response.get_json()
    assert body["data"]["aktif"] is False
    assert body["message"] == "Jenis tagihan dinonaktifkan"

    assert client.patch("/api/jenis-tagihan", json={"aktif": True}).status_code == 400
    assert client.patch("/api/jenis-tagihan", json={"id": "missing", "aktif": True}).status_code == 404


def test_put_updates_fields(client, tahun_aktif, make_jenis_tagihan):
    jenis_id = make_jenis_tagihan(tahun_ajaran_id=tahun_aktif)
    response = client.put(f"/api/jenis-tagihan/{jenis_id}", json={"nama": "SPP Baru", "nominal": "175000"})
    assert response.status_code == 200
    assert response.get_json()["nama"] == "SPP Baru"
    assert response.get_json()["nominal"] == 175000.0

    assert client.put(f"/api/jenis-tagihan/{jenis_id}", json={"nominal": 0}).status_code == 400
    assert client.put("/api/jenis-tagihan/missing", json={"nama": "X"}).status_code == 404


def test_delete_without_payments_removes_bills(app, client, tahun_aktif, make_siswa):
    make_siswa(tahun_ajaran_id=tahun_aktif)
    jenis_id = client.post(
        "/api/jenis-tagihan", json={"nama": "Seragam", "kategori": "TAHUNAN", "nominal": 500000}
    ).get_json()["id"]
    assert len(_bills(app, jenis_id)) == 1

    response = client.delete(f"/api/jenis-tagihan/{jenis_id}")
    assert response.status_code == 200
    assert response.get_json() == {"message": "Jenis tagihan berhasil dihapus"}
    assert _bills(app, jenis_id) == []
    with app.app_context():
        assert db.session.get(JenisTagihan, jenis_id) is None


def test_delete_with_payments_only_deactivates(app, client, tahun_aktif, make_siswa):
    make_siswa(tahun_ajaran_id=tahun_aktif)
    jenis_id = client.post(
        "/api/jenis-tagihan", json={"nama": "Seragam", "kategori": "TAHUNAN", "nominal": 500000}
    ).get_json()["id"]
    tagihan_id = _bills(app, jenis_id)[0].id
    with app.app_context():
        db.session.add(Pembayaran(tagihan_id=tagihan_id, jumlah_bayar=100000))
        db.session.commit()

    response = client.delete(f"/api/jenis-tagihan/{jenis_id}")
    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(JenisTagihan, jenis_id).aktif is False
    assert len(_bills(app, jenis_id)) == 1
    assert client.delete("/api/jenis-tagihan/missing").status_code == 404
