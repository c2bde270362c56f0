from flask import Blueprint, render_template_string, request, redirect, session, current_app

from extensions import limiter
from utils.roles import DASHBOARD_PATHS, LOGIN_PATH, Role, current_user, landing_path
from utils.users import authenticate_parent, authenticate_staff

auth_bp = Blueprint('auth', __name__)

LOGIN_TEMPLATE = """<!doctype html>
<html lang="id">
<head><meta charset="utf-8"><title>Login - {{ app_name }}</title></head>
<body>
  <h1>{{ app_name }}</h1>
  {% if error %}<p class="error">{{ error }}</p>{% endif %}
  <form method="post">
    <h2>Admin / Kepala Sekolah</h2>
    <input type="email" name="email" placeholder="Email">
    <input type="password" name="password" placeholder="Password">
    <button type="submit">Masuk</button>
  </form>
  <form method="post">
    <h2>Orang Tua</h2>
    <input type="text" name="nipd" placeholder="NIPD">
    <button type="submit">Masuk</button>
  </form>
</body>
</html>"""


def _login_form_values() -> dict:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _render_login(error=None, status=200):
    return render_template_string(
        LOGIN_TEMPLATE,
        app_name=current_app.config.get('APP_NAME', 'SPP Sekolah'),
        error=error,
    ), status


@auth_bp.route('/login', methods=['GET', 'POST'])
@limiter.limit(lambda: current_app.config.get('LOGIN_RATE_LIMIT', '10 per minute'), methods=['POST'])
def login():
    """Staff log in with email + password, parents with their child's NIPD."""
    if request.method == 'GET':
        user = current_user()
        if user is not None:
            return redirect(landing_path(user))
        return _render_login()

    values = _login_form_values()
    nipd = (values.get('nipd') or '').strip()
    if nipd:
        user = authenticate_parent(nipd)
        error = 'NIPD tidak ditemukan'
    else:
        email = (values.get('email') or '').strip()
        password = values.get('password') or ''
        if not email or not password:
            return _render_login('Email dan password harus diisi', 400)
        user = authenticate_staff(email, password)
        error = 'Email atau password salah'

    if user is None:
        current_app.logger.info('Failed login attempt from %s', request.remote_addr)
        return _render_login(error, 401)

    role = Role(user.role)
    session.clear()
    session['user_id'] = user.id
    session['role'] = role.value
    session['name'] = user.nama
    if user.siswa_id:
        session['siswa_id'] = user.siswa_id
    session.permanent = True
    return redirect(DASHBOARD_PATHS[role])


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    session.clear()
    return redirect(LOGIN_PATH)
