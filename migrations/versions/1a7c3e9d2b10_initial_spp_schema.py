"""initial SPP schema

Revision ID: 1a7c3e9d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "1a7c3e9d2b10"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', sa.String(length=36), primary_key=True)


def upgrade():
    op.create_table(
        'tahun_ajaran',
        _id(),
        sa.Column('nama', sa.String(length=20), nullable=False),
        sa.Column('tahun_mulai', sa.Integer(), nullable=False),
        sa.Column('tahun_selesai', sa.Integer(), nullable=False),
        sa.Column('aktif', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'siswa',
        _id(),
        sa.Column('nipd', sa.String(length=30), nullable=False, unique=True),
        sa.Column('nama', sa.String(length=150), nullable=False),
        sa.Column('kelas_nama', sa.String(length=20), nullable=True),
        sa.Column('jenis_kelamin', sa.String(length=1), nullable=True),
        sa.Column('nama_orang_tua', sa.String(length=150), nullable=True),
        sa.Column('no_telepon', sa.String(length=20), nullable=True),
        sa.Column('tahun_masuk', sa.Integer(), nullable=True),
        sa.Column('tahun_ajaran_id', sa.String(length=36), sa.ForeignKey('tahun_ajaran.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_siswa_tahun_ajaran_id', 'siswa', ['tahun_ajaran_id'])

    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('password', sa.String(length=255), nullable=True),
        sa.Column('nama', sa.String(length=150), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('nipd', sa.String(length=30), nullable=True, unique=True),
        sa.Column('siswa_id', sa.String(length=36), sa.ForeignKey('siswa.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'jenis_tagihan',
        _id(),
        sa.Column('nama', sa.String(length=100), nullable=False),
        sa.Column('kategori', sa.String(length=20), nullable=False),
        sa.Column('nominal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tahun_ajaran_id', sa.String(length=36), sa.ForeignKey('tahun_ajaran.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_jenis_tagihan_tahun_ajaran_id', 'jenis_tagihan', ['tahun_ajaran_id'])

    op.create_table(
        'jenis_tagihan_siswa',
        _id(),
        sa.Column('siswa_id', sa.String(length=36), sa.ForeignKey('siswa.id'), nullable=False),
        sa.Column('jenis_tagihan_id', sa.String(length=36), sa.ForeignKey('jenis_tagihan.id'), nullable=False),
        sa.Column('nominal_khusus', sa.Numeric(12, 2), nullable=False),
        sa.Column('alasan', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('siswa_id', 'jenis_tagihan_id', name='uq_tarif_khusus_siswa_jenis'),
    )
    op.create_index('ix_jenis_tagihan_siswa_siswa_id', 'jenis_tagihan_siswa', ['siswa_id'])

    op.create_table(
        'tagihan',
        _id(),
        sa.Column('siswa_id', sa.String(length=36), sa.ForeignKey('siswa.id'), nullable=False),
        sa.Column('jenis_tagihan_id', sa.String(length=36), sa.ForeignKey('jenis_tagihan.id'), nullable=False),
        sa.Column('tahun_ajaran_id', sa.String(length=36), sa.ForeignKey('tahun_ajaran.id'), nullable=True),
        sa.Column('jumlah_tagihan', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='BELUM_LUNAS'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_tagihan_siswa_id', 'tagihan', ['siswa_id'])
    op.create_index('ix_tagihan_tahun_ajaran_id', 'tagihan', ['tahun_ajaran_id'])

    op.create_table(
        'pembayaran',
        _id(),
        sa.Column('tagihan_id', sa.String(length=36), sa.ForeignKey('tagihan.id'), nullable=False),
        sa.Column('jumlah_bayar', sa.Numeric(12, 2), nullable=False),
        sa.Column('tanggal_bayar', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_pembayaran_tagihan_id', 'pembayaran', ['tagihan_id'])

    op.create_table(
        'siswa_histori',
        _id(),
        sa.Column('siswa_id', sa.String(length=36), sa.ForeignKey('siswa.id'), nullable=False),
        sa.Column('tahun_ajaran_id', sa.String(length=36), sa.ForeignKey('tahun_ajaran.id'), nullable=True),
        sa.Column('kelas_nama', sa.String(length=20), nullable=True),
        sa.Column('tipe_aksi', sa.String(length=30), nullable=False),
        sa.Column('keterangan', sa.Text(), nullable=True),
        sa.Column('tanggal_aksi', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_siswa_histori_siswa_id', 'siswa_histori', ['siswa_id'])

    op.create_table(
        'database_backup',
        _id(),
        sa.Column('filename', sa.String(length=255), nullable=False, unique=True),
        sa.Column('filesize', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_database_backup_created_at', 'database_backup', ['created_at'])


def downgrade():
    op.drop_index('ix_database_backup_created_at', table_name='database_backup')
    op.drop_table('database_backup')
    op.drop_index('ix_siswa_histori_siswa_id', table_name='siswa_histori')
    op.drop_table('siswa_histori')
    op.drop_index('ix_pembayaran_tagihan_id', table_name='pembayaran')
    op.drop_table('pembayaran')
    op.drop_index('ix_tagihan_tahun_ajaran_id', table_name='tagihan')
    op.drop_index('ix_tagihan_siswa_id', table_name='tagihan')
    op.drop_table('tagihan')
    op.drop_index('ix_jenis_tagihan_siswa_siswa_id', table_name='jenis_tagihan_siswa')
    op.drop_table('jenis_tagihan_siswa')
    op.drop_index('ix_jenis_tagihan_tahun_ajaran_id', table_name='jenis_tagihan')
    op.drop_table('jenis_tagihan')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_siswa_tahun_ajaran_id', table_name='siswa')
    op.drop_table('siswa')
    op.drop_table('tahun_ajaran')
