# app/routes/dashboard.py
from flask import Blueprint

from app.db.session import get_session
from app.routes.common import ok, require_login
from app.services.dashboard_service import DashboardService

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


@dashboard_bp.route('/stats', methods=['GET'])
def stats():
    db = get_session()
    try:
        user = require_login(db)
        return ok(DashboardService(db).stats(user))
    finally:
        db.close()
