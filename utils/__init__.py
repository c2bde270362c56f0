from __future__ import annotations

from functools import wraps
from typing import Callable, TypeVar, Any, cast
from flask import redirect

from utils.roles import LOGIN_PATH, Role, current_user

F = TypeVar("F", bound=Callable[..., Any])


def role_required(*roles: Role) -> Callable[[F], F]:
    """Decorator that requires a logged-in user holding one of ``roles``.

    - Without a session user, or with any other role, redirects to ``/login``.
    - With no roles given, any logged-in user is accepted.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            user = current_user()
            if user is None or (roles and user.role not in roles):
                return redirect(LOGIN_PATH)
            return func(*args, **kwargs)

        return cast(F, wrapper)

    return decorator


admin_required = role_required(Role.ADMIN)
