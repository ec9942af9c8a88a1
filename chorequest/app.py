"""ChoreQuest Flask application - Main entry point."""

import os
import sys
import logging
from pathlib import Path
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

# Import db from models (models.py creates the SQLAlchemy instance)
from models import db
from errors import ChoreQuestError, InternalError
from repository import init_repository, get_repository

logger = logging.getLogger(__name__)

# Initialize Flask-Migrate
migrate = Migrate()


def create_app(config_name=None):
    """Application factory pattern for Flask app creation."""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    from config import config
    app.config.from_object(config[config_name])

    # Ensure data directory exists (skip for in-memory and external databases)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///') \
            and app.config['SQLALCHEMY_DATABASE_URI'] != "sqlite:///:memory:":
        data_dir = Path(app.config['DATA_DIR'])
        data_dir.mkdir(parents=True, exist_ok=True)

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # ProxyFix handles reverse proxy headers (X-Forwarded-For, etc.)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    init_repository(app)

    register_error_handlers(app)
    register_routes(app)

    with app.app_context():
        init_storage(app)

    return app


def init_storage(app):
    """Create missing tables and seed the achievement catalog (and demo data if enabled)."""
    from seed_db import seed_achievements, seed_demo_data

    if app.config['REPOSITORY_BACKEND'] == 'sqlalchemy':
        db.create_all()

    repo = get_repository()
    seed_achievements(repo)
    if app.config.get('SEED_DEMO_DATA'):
        seed_demo_data(repo)


def register_error_handlers(app):
    """Render every error as {'error', 'message', 'details'}."""

    @app.errorhandler(ChoreQuestError)
    def handle_chorequest_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({
            'error': error.name.replace(' ', ''),
            'message': error.description,
            'details': None
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.error(f"Unhandled error: {error}", exc_info=True)
        get_repository().rollback()
        return jsonify(InternalError('An internal error occurred').to_dict()), 500


def register_routes(app):
    """Register all application routes."""

    from routes import (
        auth_bp, families_bp, users_bp, chores_bp, rewards_bp,
        redemptions_bp, achievements_bp, external_bp
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(families_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(chores_bp)
    app.register_blueprint(rewards_bp)
    app.register_blueprint(redemptions_bp)
    app.register_blueprint(achievements_bp)
    app.register_blueprint(external_bp)

    @app.route('/health')
    def health():
        """Health check endpoint for monitoring."""
        try:
            get_repository().ping()
            db_status = 'healthy'
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            db_status = f'unhealthy: {str(e)}'

        return jsonify({
            'status': 'healthy' if db_status == 'healthy' else 'degraded',
            'database': db_status,
            'backend': app.config['REPOSITORY_BACKEND']
        })


if __name__ == '__main__':
    # Run development server
    create_app().run(host='0.0.0.0', port=8099, debug=True)
