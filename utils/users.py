from __future__ import annotations

from typing import Optional

from extensions import db
from models import User
from utils.roles import Role
from utils.security import hash_password, verify_password


def get_user_by_email(email: str) -> Optional[User]:
    email = (email or "").strip().lower()
    if not email:
        return None
    return db.session.execute(db.select(User).filter_by(email=email)).scalar_one_or_none()


def authenticate_staff(email: str, password: str) -> Optional[User]:
    """Admin / headmaster login by email and password."""
    user = get_user_by_email(email)
    if user is None or not user.password:
        return None
    if Role.parse(user.role) not in (Role.ADMIN, Role.KEPALA_SEKOLAH):
        return None
    if not verify_password(user.password, password):
        return None
    return user


def authenticate_parent(nipd: str) -> Optional[User]:
    """Parent login by the child's NIPD."""
    nipd = (nipd or "").strip()
    if not nipd:
        return None
    user = db.session.execute(db.select(User).filter_by(nipd=nipd)).scalar_one_or_none()
    if user is None or Role.parse(user.role) is not Role.ORANG_TUA:
        return None
    return user


def create_user(nama: str, role: Role, email: str | None = None, password: str | None = None,
                nipd: str | None = None, siswa_id: str | None = None) -> User:
    user = User(
        nama=nama,
        role=role.value,
        email=(email or "").strip().lower() or None,
        password=hash_password(password) if password else None,
        nipd=nipd,
        siswa_id=siswa_id,
    )
    db.session.add(user)
    return user
