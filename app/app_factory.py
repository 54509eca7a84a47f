'''
Flask application factory.

Assembles the app (config, storage handle, sessions, notification
dispatcher, blueprints, error handlers) without starting it. Used by
run.py, WSGI servers and the test suite.
'''
# app/app_factory.py
import atexit
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_session import Session
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from app.db.session import Database
from app.errors import DomainError, ErrorType
from app.logger import get_logger
from app.services.notification_service import NotificationDispatcher

load_dotenv()

logger = get_logger(__name__)

# project root (absolute)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load_config(config_name: str = 'development') -> dict:
    """Read configuration from the environment (.env already loaded)."""
    testing = config_name == 'testing'

    secret_key = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    if isinstance(secret_key, bytes):
        secret_key = secret_key.decode('utf-8')

    upload_folder = os.getenv('UPLOAD_FOLDER', os.path.join(BASE_DIR, 'uploads'))

    return {
        'ENV_NAME': config_name,
        'TESTING': testing,
        'SECRET_KEY': secret_key,
        'DATABASE_URL': os.getenv('DATABASE_URL', f"sqlite:///{os.path.join(BASE_DIR, 'job_tracker.db')}"),
        'UPLOAD_FOLDER': upload_folder,
        'MAX_CONTENT_LENGTH': int(os.getenv('MAX_UPLOAD_SIZE', 10485760)),  # 10MB
        'BCRYPT_ROUNDS': int(os.getenv('BCRYPT_ROUNDS', 4 if testing else 12)),
        'NOTIFICATIONS_SYNC': _env_flag('NOTIFICATIONS_SYNC', testing),
        'NOTIFICATION_WORKERS': int(os.getenv('NOTIFICATION_WORKERS', 2)),
        # server-side sessions
        'SESSION_TYPE': 'filesystem',
        'SESSION_PERMANENT': False,
        'SESSION_KEY_PREFIX': 'job_tracker:',
        'SESSION_FILE_DIR': os.getenv('SESSION_FILE_DIR', os.path.join(BASE_DIR, 'flask_session')),
    }


def create_app(config_name='development', overrides=None):
    """Application factory."""
    app = Flask(__name__)
    app.config.update(load_config(config_name))
    if overrides:
        app.config.update(overrides)

    os.makedirs(os.path.join(app.config['UPLOAD_FOLDER'], 'quotes'), exist_ok=True)
    os.makedirs(app.config['SESSION_FILE_DIR'], exist_ok=True)

    # storage handle + notification workers, both closed at process exit
    database = Database(app.config['DATABASE_URL'])
    dispatcher = NotificationDispatcher(
        database,
        sync=app.config['NOTIFICATIONS_SYNC'],
        max_workers=app.config['NOTIFICATION_WORKERS'],
    )
    app.extensions['database'] = database
    app.extensions['notifications'] = dispatcher
    atexit.register(database.dispose)
    atexit.register(dispatcher.shutdown)

    Session(app)

    from app.routes.auth import auth_bp
    from app.routes.customer import customer_bp
    from app.routes.job import job_bp
    from app.routes.estimate import estimate_bp
    from app.routes.user import user_bp
    from app.routes.notification import notification_bp
    from app.routes.dashboard import dashboard_bp
    from app.routes.audit import audit_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(customer_bp)
    app.register_blueprint(job_bp)
    app.register_blueprint(estimate_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(audit_bp)

    @app.route('/health')
    def health():
        return jsonify({'success': True, 'data': {'status': 'ok'}})

    register_error_handlers(app)

    logger.info(f"App created ({config_name})")
    return app


HTTP_ERROR_TYPES = {
    400: ErrorType.VALIDATION_ERROR,
    401: ErrorType.UNAUTHORIZED,
    403: ErrorType.FORBIDDEN,
    404: ErrorType.NOT_FOUND,
    409: ErrorType.CONFLICT,
}


def _error_body(message, error_type: ErrorType, details=None) -> dict:
    body = {'success': False, 'error': message, 'errorType': error_type.value}
    if details is not None:
        body['details'] = details
    return body


def register_error_handlers(app):
    """Every failure leaves as the JSON error envelope."""

    @app.errorhandler(DomainError)
    def domain_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(ValidationError)
    def validation_error(error):
        details = [
            {'field': '.'.join(str(p) for p in err['loc']), 'message': err['msg']}
            for err in error.errors()
        ]
        return jsonify(_error_body('Validation failed', ErrorType.VALIDATION_ERROR, details)), 400

    @app.errorhandler(HTTPException)
    def http_error(error):
        code = error.code or 500
        error_type = HTTP_ERROR_TYPES.get(
            code,
            ErrorType.INTERNAL_ERROR if code >= 500 else ErrorType.VALIDATION_ERROR,
        )
        return jsonify(_error_body(error.description or error.name, error_type)), code

    @app.errorhandler(Exception)
    def internal_error(error):
        logger.exception(f"Unhandled error: {error}")
        return jsonify(_error_body('Internal server error', ErrorType.INTERNAL_ERROR)), 500
