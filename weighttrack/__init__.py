import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask, flash, jsonify, redirect, render_template, request, url_for
from flask_cors import CORS
from flask_jwt_extended import get_current_user, verify_jwt_in_request
from sqlalchemy.exc import SQLAlchemyError

from weighttrack.config import config
from weighttrack.extensions import db, ma, jwt, migrate, socketio, limiter
from weighttrack.models import User
from weighttrack.filters import register_filters
from weighttrack.utils.decorators import wants_json
from domain.errors import DomainError

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def configure_logging(app):
    """Console logging always, a rotating file outside of tests."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    log_file = app.config.get('LOG_FILE')
    if log_file and not app.testing:
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1024 * 1024, backupCount=5)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        logging.getLogger('domain').addHandler(file_handler)

    app.logger.setLevel(level)
    logging.getLogger('domain').setLevel(level)


def configure_jwt(app):
    def _login_required_response(msg):
        if request.path.startswith('/api/') or wants_json():
            return jsonify({"success": False, "msg": msg}), 401
        flash(msg, 'error')
        return redirect(url_for('auth.login_page', next=request.path))

    @jwt.unauthorized_loader
    def unauthorized_callback(reason):
        return _login_required_response("Please log in to continue")

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return _login_required_response("Your session is invalid, please log in again")

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return _login_required_response("Your session has expired, please log in again")

    @jwt.user_lookup_loader
    def user_lookup_callback(_jwt_header, jwt_data):
        identity = jwt_data["sub"]
        return db.session.get(User, int(identity))

    @jwt.user_lookup_error_loader
    def user_lookup_error_callback(_jwt_header, jwt_data):
        return _login_required_response("Account not found")


def register_error_handlers(app):
    @app.errorhandler(DomainError)
    def handle_domain_error(error):
        db.session.rollback()
        if wants_json():
            return jsonify(error.to_dict()), error.status_code
        flash(error.message, 'error')
        return redirect(request.referrer or url_for('dashboard.dashboard'))

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        db.session.rollback()
        app.logger.exception("Database error on %s %s", request.method, request.path)
        if wants_json():
            return jsonify({"success": False, "msg": "Internal server error"}), 500
        return render_template('errors/500.html'), 500

    @app.errorhandler(403)
    def forbidden(error):
        if wants_json():
            return jsonify({"success": False, "msg": "Forbidden"}), 403
        return render_template('errors/403.html'), 403

    @app.errorhandler(404)
    def not_found(error):
        if wants_json():
            return jsonify({"success": False, "msg": "Not found"}), 404
        return render_template('errors/404.html'), 404


def create_app(config_name=None):
    config_name = config_name or os.getenv('FLASK_CONFIG', 'development')
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    if not app.config.get('UPLOAD_FOLDER'):
        app.config['UPLOAD_FOLDER'] = os.path.join(app.static_folder, 'uploads', 'progress')

    configure_logging(app)

    db.init_app(app)
    ma.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    CORS(app, supports_credentials=True, resources={r"/*": {
        "origins": app.config['CORS_ORIGINS'],
        "allow_headers": ["Content-Type", "X-CSRF-TOKEN"],
        "methods": ["GET", "POST", "OPTIONS"]
    }})
    socketio.init_app(
        app,
        async_mode=app.config['SOCKETIO_ASYNC_MODE'],
        cors_allowed_origins=app.config['CORS_ORIGINS'],
    )

    configure_jwt(app)
    register_error_handlers(app)
    register_filters(app)

    @app.context_processor
    def inject_user():
        csrf_token = request.cookies.get(app.config['JWT_ACCESS_CSRF_COOKIE_NAME'], '')
        try:
            verify_jwt_in_request(optional=True)
            return dict(user=get_current_user(), csrf_token=csrf_token)
        except Exception:
            return dict(user=None, csrf_token=csrf_token)

    from weighttrack.routes.home import home_bp
    from weighttrack.routes.auth import auth_bp
    from weighttrack.routes.dashboard import dashboard_bp
    from weighttrack.routes.weight import weight_bp
    from weighttrack.routes.teams import teams_bp
    from weighttrack.routes.challenges import challenges_bp
    from weighttrack.routes.posts import posts_bp
    from weighttrack.routes.achievements import achievements_bp, achievements_api_bp
    from weighttrack.routes.messages import messages_bp
    from weighttrack.routes.profile import profile_bp
    from weighttrack.services import realtime  # noqa: F401  registers socket handlers

    app.register_blueprint(home_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(weight_bp, url_prefix="/progress")
    app.register_blueprint(teams_bp, url_prefix="/teams")
    app.register_blueprint(challenges_bp)
    app.register_blueprint(posts_bp)
    app.register_blueprint(achievements_bp, url_prefix="/achievements")
    app.register_blueprint(achievements_api_bp, url_prefix="/api/achievements")
    app.register_blueprint(messages_bp, url_prefix="/messages")
    app.register_blueprint(profile_bp, url_prefix="/settings")

    return app
