from flask import Flask, jsonify
from dotenv import load_dotenv
from config import Config
from .extensions import db, login_manager, mail, migrate, celery, csrf
from .models import User
from .celery_utils import init_celery
from .errors import configure_logging, register_error_handlers

load_dotenv()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # Initialize Extensions
    db.init_app(app)
    mail.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Initialize Celery
    init_celery(app, celery)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Unauthorized', 'message': 'Please log in.'}), 401

    register_error_handlers(app)

    # Register Blueprints
    from .blueprints.main import main_bp
    from .blueprints.auth import auth_bp
    from .blueprints.admin import admin_bp
    from .blueprints.finance import finance_bp
    from .blueprints.modifications import modifications_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(finance_bp, url_prefix='/finance')
    app.register_blueprint(modifications_bp, url_prefix='/modifications')

    from .commands import register_commands
    register_commands(app)

    # With Flask-Migrate, 'flask db upgrade' is the production path;
    # create_all keeps development and tests self-contained.
    with app.app_context():
        db.create_all()

    return app
