from flask import Flask, request, jsonify, redirect, url_for
from jinja2 import StrictUndefined
from config import Config
from studysync.extensions import db, migrate, login_manager
from studysync.errors import register_error_handlers
from studysync.logging_config import setup_logging
from studysync.services.page_cache import page_cache


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logging(app)

    if app.config.get("STRICT_TEMPLATES"):
        app.jinja_env.undefined = StrictUndefined

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    page_cache.init_app(app)

    register_error_handlers(app)

    # Register blueprints
    from studysync.routes.auth import auth_bp
    from studysync.routes.pages import pages_bp
    from studysync.routes.chat import chat_bp
    from studysync.routes.actions import actions_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(pages_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(actions_bp)

    # User loader
    from studysync.models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        if request.path.startswith("/api/") or request.path.startswith("/actions/"):
            return jsonify({"success": False, "message": "Not authenticated", "code": "NOT_AUTHENTICATED"}), 401
        return redirect(url_for("auth.login", next=request.path))

    # Create tables on first run
    with app.app_context():
        from studysync import models  # noqa
        db.create_all()

    app.logger.info("StudySync app created")
    return app
