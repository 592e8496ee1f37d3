from flask import Blueprint

bp = Blueprint("cron", __name__)

from dailypicks.routes.cron import routes  # noqa: F401, E402
