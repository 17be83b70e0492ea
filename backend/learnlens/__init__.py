# learnlens/__init__.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import RequestEntityTooLarge

from config import DevelopmentConfig, ProductionConfig, TestingConfig
from learnlens.logging_config import setup_logging

load_dotenv()

logger = logging.getLogger(__name__)

db = SQLAlchemy()

# after db = SQLAlchemy()
migrate = Migrate()

CONFIGS = {
    "production": ProductionConfig,
    "testing": TestingConfig,
    "development": DevelopmentConfig,
}


def create_app(config_object=None):
    """
    Build the Flask application serving the dashboard API.

    Args:
        config_object: Optional config class. When omitted the class is picked
            from FLASK_ENV (production, testing, anything else = development).
    """
    setup_logging()
    app = Flask(__name__)

    # Select config based on environment
    if config_object is None:
        env = os.getenv("FLASK_ENV", "development")
        config_object = CONFIGS.get(env, DevelopmentConfig)
    app.config.from_object(config_object)

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    # Initialize database
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        from learnlens.models import model  # noqa: F401  register tables
        db.create_all()

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        return jsonify({"success": False, "error": "File size should be less than 5MB"}), 413

    # Register all routes in one place
    from learnlens.routes import register_routes
    register_routes(app)

    logger.info("LearnLens API ready (%s)", config_object.__name__)
    return app
