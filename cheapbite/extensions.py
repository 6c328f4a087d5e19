"""
Shared Flask extension instances.

Created unbound here and attached to the app in create_app() so that models,
blueprints and services can import them without a circular dependency.
"""
from apscheduler.schedulers.background import BackgroundScheduler
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

db            = SQLAlchemy()
login_manager = LoginManager()
csrf          = CSRFProtect()
limiter       = Limiter(key_func=get_remote_address)
migrate       = Migrate()

# Background jobs: notification fan-out and cancellable image analysis.
scheduler     = BackgroundScheduler(job_defaults={"misfire_grace_time": None, "coalesce": False})
