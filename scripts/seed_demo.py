import argparse
import os
import random
import string
import sys
from decimal import Decimal

# Ensure project root is importable when running from scripts/
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app import create_app
from extensions import db
from models import (
    DatabaseBackup,
    JenisTagihan,
    JenisTagihanSiswa,
    Pembayaran,
    Siswa,
    SiswaHistori,
    Tagihan,
    TahunAjaran,
    User,
)
from utils.roles import Role
from utils.tagihan import generate_tagihan, kuitansi_number, status_for
from utils.users import create_user


STUDENTS = [
    # (nipd, nama, kelas, jenis kelamin, orang tua)
    ("2024001", "Ahmad Fauzi", "1A", "L", "Budi Santoso"),
    ("2024002", "Siti Aisyah", "1A", "P", "Hadi Wijaya"),
    ("2024003", "Muhammad Rizki", "1B", "L", "Agus Pratama"),
    ("2024004", "Fatimah Zahra", "2A", "P", "Rudi Hartono"),
    ("2024005", "Abdullah Rahman", "2B", "L", "Dedi Kurniawan"),
    ("2024006", "Aisyah Putri", "3A", "P", "Eko Prasetyo"),
    ("2024007", "Ridwan Hakim", "4A", "L", "Bambang Susilo"),
    ("2024008", "Nurul Hidayah", "5A", "P", "Ahmad Yani"),
    ("2024009", "Farhan Maulana", "6A", "L", "Sutrisno Hadi"),
    ("2024010", "Dewi Safitri", "6B", "P", "Joko Widodo"),
]

FEE_TYPES = [
    ("SPP", "BULANAN", 150000),
    ("Uang Pangkal", "TAHUNAN", 1500000),
    ("Seragam", "TAHUNAN", 500000),
    ("Buku Paket", "TAHUNAN", 350000),
]


def random_phone() -> str:
    return "08" + "".join(random.choice(string.digits) for _ in range(10))


def wipe() -> None:
    for model in (Pembayaran, Tagihan, SiswaHistori, JenisTagihanSiswa, JenisTagihan,
                  User, Siswa, TahunAjaran, DatabaseBackup):
        db.session.execute(db.delete(model))
    db.session.commit()


def seed(password: str) -> None:
    lama = TahunAjaran(nama="2023/2024", tahun_mulai=2023, tahun_selesai=2024, aktif=False)
    aktif = TahunAjaran(nama="2024/2025", tahun_mulai=2024, tahun_selesai=2025, aktif=True)
    db.session.add_all([lama, aktif])
    db.session.flush()

    create_user("Bendahara Sekolah", Role.ADMIN, email="admin@sekolah.sch.id", password=password)
    create_user("Kepala Sekolah", Role.KEPALA_SEKOLAH, email="kepsek@sekolah.sch.id", password=password)

    fee_types = []
    for nama, kategori, nominal in FEE_TYPES:
        jenis = JenisTagihan(nama=nama, kategori=kategori, nominal=Decimal(nominal), tahun_ajaran_id=aktif.id)
        db.session.add(jenis)
        fee_types.append(jenis)
    db.session.flush()

    receipt = 0
    for nipd, nama, kelas, jk, ortu in STUDENTS:
        siswa = Siswa(
            nipd=nipd,
            nama=nama,
            kelas_nama=kelas,
            jenis_kelamin=jk,
            nama_orang_tua=ortu,
            no_telepon=random_phone(),
            tahun_masuk=2024,
            tahun_ajaran_id=aktif.id,
        )
        db.session.add(siswa)
        db.session.flush()
        create_user(ortu, Role.ORANG_TUA, nipd=nipd, siswa_id=siswa.id)

        for jenis in fee_types:
            generate_tagihan(siswa, jenis, aktif)
        db.session.flush()

        # Pay a random share of the bills, some only partly
        for tagihan in db.session.execute(db.select(Tagihan).filter_by(siswa_id=siswa.id)).scalars().all():
            paid = random.choice([Decimal("0"), tagihan.jumlah_tagihan / 2, tagihan.jumlah_tagihan])
            if not paid:
                continue
            receipt += 1
            db.session.add(Pembayaran(
                tagihan_id=tagihan.id,
                jumlah_bayar=paid,
                metode_bayar="TUNAI",
                nomor_kuitansi=kuitansi_number(receipt, "DEMO/{tahun}/{nomor}"),
            ))
            tagihan.jumlah_dibayar = paid
            tagihan.status = status_for(paid, tagihan.jumlah_tagihan)
    db.session.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the SPP database with demo data")
    parser.add_argument("--password", default="admin123", help="Password for the admin and headmaster users")
    parser.add_argument("--keep", action="store_true", help="Do not wipe existing rows first")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if not args.keep:
            wipe()
            print("✓ Data lama dihapus")
        seed(args.password)
        print(f"✓ {len(STUDENTS)} siswa, {len(FEE_TYPES)} jenis tagihan, 2 tahun ajaran dibuat")


if __name__ == "__main__":
    main()
