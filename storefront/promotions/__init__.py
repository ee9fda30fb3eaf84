from flask import Blueprint

bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")

from . import routes  # noqa: E402,F401
