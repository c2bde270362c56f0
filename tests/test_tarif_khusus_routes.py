from decimal import Decimal

import pytest

from extensions import db
from models import JenisTagihanSiswa, SiswaHistori, Tagihan


@pytest.fixture
def siswa_with_fee(make_tahun_ajaran, make_siswa, make_jenis_tagihan):
    ta_id = make_tahun_ajaran(aktif=True)
    siswa_id = make_siswa(tahun_ajaran_id=ta_id)
    jenis_id = make_jenis_tagihan(tahun_ajaran_id=ta_id)
    return ta_id, siswa_id, jenis_id


def _url(siswa_id, tarif_id=None):
    base = f"/api/siswa/{siswa_id}/tarif-khusus"
    return f"{base}/{tarif_id}" if tarif_id else base


def test_set_rejects_non_positive_amount(app, client, siswa_with_fee):
    _, siswa_id, jenis_id = siswa_with_fee
    for amount in (None, 0, -5000, "abc", "NaN", "Infinity", "-Infinity", True):
        response = client.post(_url(siswa_id), json={"jenisTagihanId": jenis_id, "nominalKhusus": amount})
        assert response.status_code == 400
        assert response.get_json() == {"error": "Nominal khusus harus lebih dari 0"}
    with app.app_context():
        assert db.session.execute(db.select(JenisTagihanSiswa)).scalars().all() == []


def test_set_unknown_siswa_is_404(client, siswa_with_fee):
    _, _, jenis_id = siswa_with_fee
    response = client.post(_url("missing"), json={"jenisTagihanId": jenis_id, "nominalKhusus": 100000})
    assert response.status_code == 404


def test_set_creates_then_updates_same_row(app, client, siswa_with_fee):
    _, siswa_id, jenis_id = siswa_with_fee
    first = client.post(_url(siswa_id), json={"jenisTagihanId": jenis_id, "nominalKhusus": 100000, "alasan": "Yatim"})
    assert first.status_code == 200
    body = first.get_json()
    assert body["success"] is True
    assert body["updatedCount"] == 0
    assert body["tarifKhusus"]["nominalKhusus"] == 100000.0

    second = client.post(_url(siswa_id), json={"jenisTagihanId": jenis_id, "nominalKhusus": 75000})
    assert second.get_json()["tarifKhusus"]["id"] == body["tarifKhusus"]["id"]

    with app.app_context():
        rows = db.session.execute(db.select(JenisTagihanSiswa)).scalars().all()
        assert len(rows) == 1
        assert rows[0].nominal_khusus == Decimal("75000")
        histori = db.session.execute(db.select(SiswaHistori)).scalars().all()
        assert [h.tipe_aksi for h in histori] == ["TARIF_KHUSUS", "TARIF_KHUSUS"]


def test_set_reprices_unpaid_bills_only(app, client, siswa_with_fee, make_tagihan):
    ta_id, siswa_id, jenis_id = siswa_with_fee
    unpaid = make_tagihan(siswa_id, jenis_id, ta_id, status="BELUM_LUNAS")
    partial = make_tagihan(siswa_id, jenis_id, ta_id, status="SEBAGIAN")
    paid = make_tagihan(siswa_id, jenis_id, ta_id, status="LUNAS")

    response = client.post(_url(siswa_id), json={
        "jenisTagihanId": jenis_id,
        "nominalKhusus": 50000,
        "updateTagihanBelumLunas": True,
    })
    assert response.get_json()["updatedCount"] == 2

    with app.app_context():
        amounts = {t.id: t.jumlah_tagihan for t in db.session.execute(db.select(Tagihan)).scalars()}
    assert amounts[unpaid] == Decimal("50000")
    assert amounts[partial] == Decimal("50000")
    assert amounts[paid] == Decimal("150000")


def test_list_includes_fee_type(client, siswa_with_fee):
    _, siswa_id, jenis_id = siswa_with_fee
    client.post(_url(siswa_id), json={"jenisTagihanId": jenis_id, "nominalKhusus": 100000})
    data = client.get(_url(siswa_id)).get_json()["tarifKhusus"]
    assert len(data) == 1
    assert data[0]["jenisTagihan"] == {"nama": "SPP", "nominal": 150000.0, "kategori": "BULANAN"}


def test_delete_own_tariff(app, client, siswa_with_fee):
    _, siswa_id, jenis_id = siswa_with_fee
    tarif_id = client.post(_url(siswa_id), json={"jenisTagihanId": jenis_id, "nominalKhusus": 100000}).get_json()["tarifKhusus"]["id"]

    response = client.delete(_url(siswa_id, tarif_id))
    assert response.status_code == 200
    assert response.get_json() == {"success": True}
    with app.app_context():
        assert db.session.get(JenisTagihanSiswa, tarif_id) is None


def test_delete_checks_owner(app, client, siswa_with_fee, make_siswa):
    _, siswa_id, jenis_id = siswa_with_fee
    other_id = make_siswa(nipd="2024999", nama="Lain")
    tarif_id = client.post(_url(siswa_id), json={"jenisTagihanId": jenis_id, "nominalKhusus": 100000}).get_json()["tarifKhusus"]["id"]

    assert client.delete(_url(other_id, tarif_id)).status_code == 404
    assert client.delete(_url(siswa_id, "missing")).status_code == 404
    with app.app_context():
        assert db.session.get(JenisTagihanSiswa, tarif_id) is not None
