import uuid
from datetime import datetime, timezone

from extensions import db


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_utc(value):
    # Timestamps are stored naive and are always UTC
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat()


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), unique=True, nullable=True)
    password = db.Column(db.String(255), nullable=True)
    nama = db.Column(db.String(150), nullable=False)
    role = db.Column(db.String(20), nullable=False, index=True)  # ADMIN / KEPALA_SEKOLAH / ORANG_TUA
    # Parents log in with their child's NIPD
    nipd = db.Column(db.String(30), unique=True, nullable=True)
    siswa_id = db.Column(db.String(36), db.ForeignKey('siswa.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow)

    def __repr__(self):
        return f'<User {self.nama} ({self.role})>'


class TahunAjaran(db.Model):
    __tablename__ = 'tahun_ajaran'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    nama = db.Column(db.String(20), nullable=False)
    tahun_mulai = db.Column(db.Integer, nullable=False)
    tahun_selesai = db.Column(db.Integer, nullable=False)
    aktif = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    siswa = db.relationship('Siswa', backref='tahun_ajaran', lazy='dynamic')
    tagihan = db.relationship('Tagihan', backref='tahun_ajaran', lazy='dynamic')

    def to_dict(self, with_counts: bool = False) -> dict:
        data = {
            'id': self.id,
            'nama': self.nama,
            'tahunMulai': self.tahun_mulai,
            'tahunSelesai': self.tahun_selesai,
            'aktif': bool(self.aktif),
            'createdAt': iso_utc(self.created_at),
            'updatedAt': iso_utc(self.updated_at),
        }
        if with_counts:
            data['_count'] = {'siswa': self.siswa.count(), 'tagihan': self.tagihan.count()}
        return data

    def __repr__(self):
        return f'<TahunAjaran {self.nama} aktif={self.aktif}>'


class Siswa(db.Model):
    __tablename__ = 'siswa'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    nipd = db.Column(db.String(30), unique=True, nullable=False)
    nama = db.Column(db.String(150), nullable=False)
    kelas_nama = db.Column(db.String(20))
    jenis_kelamin = db.Column(db.String(1))
    nama_orang_tua = db.Column(db.String(150))
    no_telepon = db.Column(db.String(20))
    tempat_lahir = db.Column(db.String(100))
    tanggal_lahir = db.Column(db.Date)
    alamat = db.Column(db.Text)
    tahun_masuk = db.Column(db.Integer)
    tahun_ajaran_id = db.Column(db.String(36), db.ForeignKey('tahun_ajaran.id'), nullable=True, index=True)
    status = db.Column(db.String(20), nullable=False, default='AKTIF', index=True)  # AKTIF / TIDAK_AKTIF
    aktif = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    tarif_khusus = db.relationship('JenisTagihanSiswa', backref='siswa', cascade="all, delete-orphan")
    tagihan = db.relationship('Tagihan', backref='siswa', cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'nipd': self.nipd,
            'nama': self.nama,
            'kelasNama': self.kelas_nama,
            'jenisKelamin': self.jenis_kelamin,
            'tempatLahir': self.tempat_lahir,
            'tanggalLahir': self.tanggal_lahir.isoformat() if self.tanggal_lahir else None,
            'alamat': self.alamat,
            'namaOrangTua': self.nama_orang_tua,
            'noTelepon': self.no_telepon,
            'tahunMasuk': self.tahun_masuk,
            'tahunAjaranId': self.tahun_ajaran_id,
            'status': self.status,
            'aktif': bool(self.aktif),
            'createdAt': iso_utc(self.created_at),
            'updatedAt': iso_utc(self.updated_at),
        }

    def __repr__(self):
        return f'<Siswa {self.nama} ({self.nipd})>'


class JenisTagihan(db.Model):
    __tablename__ = 'jenis_tagihan'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    nama = db.Column(db.String(100), nullable=False)
    # BULANAN / TAHUNAN / INSIDENTAL, comma separated when a fee spans several
    kategori = db.Column(db.String(60), nullable=False)
    nominal = db.Column(db.Numeric(12, 2), nullable=False)
    aktif = db.Column(db.Boolean, nullable=False, default=True)
    tahun_ajaran_id = db.Column(db.String(36), db.ForeignKey('tahun_ajaran.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    tagihan = db.relationship('Tagihan', backref='jenis_tagihan', lazy='dynamic')

    @property
    def kategori_list(self) -> list:
        return [k.strip() for k in (self.kategori or '').split(',') if k.strip()]

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'nama': self.nama,
            'kategori': self.kategori,
            'nominal': float(self.nominal),
            'aktif': bool(self.aktif),
            'tahunAjaranId': self.tahun_ajaran_id,
            'createdAt': iso_utc(self.created_at),
            'updatedAt': iso_utc(self.updated_at),
        }

    def __repr__(self):

        return f'<JenisTagihan {self.nama} {self.nominal}>'


class JenisTagihanSiswa(db.Model):
    """Per-student special tariff overriding a fee type's nominal."""

    __tablename__ = 'jenis_tagihan_siswa'
    __table_args__ = (
        db.UniqueConstraint('siswa_id', 'jenis_tagihan_id', name='uq_tarif_khusus_siswa_jenis'),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    siswa_id = db.Column(db.String(36), db.ForeignKey('siswa.id'), nullable=False, index=True)
    jenis_tagihan_id = db.Column(db.String(36), db.ForeignKey('jenis_tagihan.id'), nullable=False)
    nominal_khusus = db.Column(db.Numeric(12, 2), nullable=False)
    alasan = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    jenis_tagihan = db.relationship('JenisTagihan')

    def to_dict(self, with_jenis: bool = False) -> dict:
        data = {
            'id': self.id,
            'siswaId': self.siswa_id,
            'jenisTagihanId': self.jenis_tagihan_id,
            'nominalKhusus': float(self.nominal_khusus),
            'alasan': self.alasan,
            'createdAt': iso_utc(self.created_at),
            'updatedAt': iso_utc(self.updated_at),
        }
        if with_jenis and self.jenis_tagihan is not None:
            data['jenisTagihan'] = {
                'nama': self.jenis_tagihan.nama,
                'nominal': float(self.jenis_tagihan.nominal),
                'kategori': self.jenis_tagihan.kategori,
            }
        return data


class Tagihan(db.Model):
    __tablename__ = 'tagihan'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    siswa_id = db.Column(db.String(36), db.ForeignKey('siswa.id'), nullable=False, index=True)
    jenis_tagihan_id = db.Column(db.String(36), db.ForeignKey('jenis_tagihan.id'), nullable=False, index=True)
    tahun_ajaran_id = db.Column(db.String(36), db.ForeignKey('tahun_ajaran.id'), nullable=True, index=True)
    # Monthly bills carry the calendar month and year; one-off bills leave both empty
    bulan = db.Column(db.Integer)
    tahun = db.Column(db.Integer)
    jumlah_tagihan = db.Column(db.Numeric(12, 2), nullable=False)
    jumlah_dibayar = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default='BELUM_LUNAS')  # BELUM_LUNAS / SEBAGIAN / LUNAS
    created_at = db.Column(db.DateTime, default=_utcnow)

    pembayaran = db.relationship(
        'Pembayaran',
        backref='tagihan',
        cascade="all, delete-orphan",
        order_by='Pembayaran.tanggal_bayar.desc()',
    )

    def to_dict(self, with_relations: bool = False) -> dict:
        data = {
            'id': self.id,
            'siswaId': self.siswa_id,
            'jenisTagihanId': self.jenis_tagihan_id,
            'tahunAjaranId': self.tahun_ajaran_id,
            'bulan': self.bulan,
            'tahun': self.tahun,
            'jumlahTagihan': float(self.jumlah_tagihan),
            'jumlahDibayar': float(self.jumlah_dibayar or 0),
            'status': self.status,
            'createdAt': iso_utc(self.created_at),
        }
        if with_relations:
            jenis = self.jenis_tagihan
            data['jenisTagihan'] = {
                'id': jenis.id,
                'nama': jenis.nama,
                'kategori': jenis.kategori,
                'nominal': float(jenis.nominal),
            } if jenis is not None else None
            data['pembayaran'] = [p.to_dict() for p in self.pembayaran]
        return data

    def __repr__(self):
        return f'<Tagihan SiswaID={self.siswa_id} Jumlah={self.jumlah_tagihan} {self.status}>'


class Pembayaran(db.Model):
    __tablename__ = 'pembayaran'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    tagihan_id = db.Column(db.String(36), db.ForeignKey('tagihan.id'), nullable=False, index=True)
    jumlah_bayar = db.Column(db.Numeric(12, 2), nullable=False)
    metode_bayar = db.Column(db.String(30))
    keterangan = db.Column(db.Text)
    nomor_kuitansi = db.Column(db.String(60), unique=True, nullable=True)
    tanggal_bayar = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'tagihanId': self.tagihan_id,
            'jumlahBayar': float(self.jumlah_bayar),
            'metodeBayar': self.metode_bayar,
            'keterangan': self.keterangan,
            'nomorKuitansi': self.nomor_kuitansi,
            'tanggalBayar': iso_utc(self.tanggal_bayar),
            'createdAt': iso_utc(self.created_at),
        }

    def __repr__(self):
        return f'<Pembayaran TagihanID={self.tagihan_id} Bayar={self.jumlah_bayar}>'



class SiswaHistori(db.Model):
    __tablename__ = 'siswa_histori'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    siswa_id = db.Column(db.String(36), db.ForeignKey('siswa.id'), nullable=False, index=True)
    tahun_ajaran_id = db.Column(db.String(36), db.ForeignKey('tahun_ajaran.id'), nullable=True)
    kelas_nama = db.Column(db.String(20))
    tipe_aksi = db.Column(db.String(30), nullable=False)
    keterangan = db.Column(db.Text)
    tanggal_aksi = db.Column(db.DateTime, nullable=False, default=_utcnow)


class DatabaseBackup(db.Model):
    __tablename__ = 'database_backup'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    filename = db.Column(db.String(255), unique=True, nullable=False)
    filesize = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'filename': self.filename,
            'filesize': self.filesize,
            'createdAt': iso_utc(self.created_at),
        }

    def __repr__(self):
        return f'<DatabaseBackup {self.filename}>'
