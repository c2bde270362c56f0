from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
# Batch mode lets ALTER-style migrations run on SQLite
migrate = Migrate(render_as_batch=True)

# In-memory rate limiter (sufficient for single-instance deployments).
# Storage and on/off switch come from RATELIMIT_* config keys.
limiter = Limiter(get_remote_address)
