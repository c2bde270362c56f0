from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from flask import g, session

LOGIN_PATH = "/login"


class Role(str, Enum):
    ADMIN = "ADMIN"
    KEPALA_SEKOLAH = "KEPALA_SEKOLAH"
    ORANG_TUA = "ORANG_TUA"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        try:
            return cls(value)
        except ValueError:
            return None


DASHBOARD_PATHS: Mapping[Role, str] = {
    Role.ADMIN: "/dashboard/admin",
    Role.KEPALA_SEKOLAH: "/dashboard/kepsek",
    Role.ORANG_TUA: "/dashboard/orangtua",
}


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: str
    role: Role
    siswa_id: Optional[str] = None


def load_current_user() -> None:
    """Populate ``g.current_user`` from the session for the current request."""
    g.current_user = None
    user_id = session.get("user_id")
    role = Role.parse(session.get("role"))
    if user_id and role is not None:
        g.current_user = CurrentUser(
            id=user_id,
            name=session.get("name") or "",
            role=role,
            siswa_id=session.get("siswa_id"),
        )


def current_user() -> Optional[CurrentUser]:
    return g.get("current_user")


def landing_path(user: Optional[CurrentUser]) -> str:
    """Where the root and dashboard-root pages send ``user``."""
    if user is None:
        return LOGIN_PATH
    return DASHBOARD_PATHS.get(user.role, LOGIN_PATH)
