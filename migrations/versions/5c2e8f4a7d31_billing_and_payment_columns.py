"""Student profile, monthly bill and receipt columns.

Revision ID: 5c2e8f4a7d31
Revises: 1a7c3e9d2b10
Create Date: 2026-10-19 14:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5c2e8f4a7d31"
down_revision = "1a7c3e9d2b10"
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("siswa") as batch:
        batch.add_column(sa.Column("tempat_lahir", sa.String(length=100), nullable=True))
        batch.add_column(sa.Column("tanggal_lahir", sa.Date(), nullable=True))
        batch.add_column(sa.Column("alamat", sa.Text(), nullable=True))
        batch.add_column(sa.Column("status", sa.String(length=20), nullable=False, server_default="AKTIF"))
        batch.add_column(sa.Column("aktif", sa.Boolean(), nullable=False, server_default=sa.true()))
        batch.add_column(sa.Column("updated_at", sa.DateTime(), nullable=True))
        batch.create_index("ix_siswa_status", ["status"])

    with op.batch_alter_table("jenis_tagihan") as batch:
        batch.alter_column("kategori", existing_type=sa.String(length=20), type_=sa.String(length=60))
        batch.add_column(sa.Column("aktif", sa.Boolean(), nullable=False, server_default=sa.true()))
        batch.add_column(sa.Column("updated_at", sa.DateTime(), nullable=True))

    with op.batch_alter_table("tagihan") as batch:
        batch.add_column(sa.Column("bulan", sa.Integer(), nullable=True))
        batch.add_column(sa.Column("tahun", sa.Integer(), nullable=True))
        batch.add_column(sa.Column("jumlah_dibayar", sa.Numeric(12, 2), nullable=False, server_default="0"))
        batch.create_index("ix_tagihan_jenis_tagihan_id", ["jenis_tagihan_id"])

    with op.batch_alter_table("pembayaran") as batch:
        batch.add_column(sa.Column("metode_bayar", sa.String(length=30), nullable=True))
        batch.add_column(sa.Column("keterangan", sa.Text(), nullable=True))
        batch.add_column(sa.Column("nomor_kuitansi", sa.String(length=60), nullable=True))
        batch.add_column(sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()))
        batch.create_unique_constraint("uq_pembayaran_nomor_kuitansi", ["nomor_kuitansi"])
        batch.create_index("ix_pembayaran_tanggal_bayar", ["tanggal_bayar"])
        batch.create_index("ix_pembayaran_created_at", ["created_at"])


def downgrade():
    with op.batch_alter_table("pembayaran") as batch:
        batch.drop_index("ix_pembayaran_created_at")
        batch.drop_index("ix_pembayaran_tanggal_bayar")
        batch.drop_constraint("uq_pembayaran_nomor_kuitansi", type_="unique")
        batch.drop_column("created_at")
        batch.drop_column("nomor_kuitansi")
        batch.drop_column("keterangan")
        batch.drop_column("metode_bayar")

    with op.batch_alter_table("tagihan") as batch:
        batch.drop_index("ix_tagihan_jenis_tagihan_id")
        batch.drop_column("jumlah_dibayar")
        batch.drop_column("tahun")
        batch.drop_column("bulan")

    with op.batch_alter_table("jenis_tagihan") as batch:
        batch.drop_column("updated_at")
        batch.drop_column("aktif")
        batch.alter_column("kategori", existing_type=sa.String(length=60), type_=sa.String(length=20))

    with op.batch_alter_table("siswa") as batch:
        batch.drop_index("ix_siswa_status")
        batch.drop_column("updated_at")
        batch.drop_column("aktif")
        batch.drop_column("status")
        batch.drop_column("alamat")
        batch.drop_column("tanggal_lahir")
        batch.drop_column("tempat_lahir")
