# runcoach/__init__.py

import logging
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify, request
from .config import DevelopmentConfig, ProductionConfig, TestingConfig
from .extensions import cors, jwt, limiter
from .plans.errors import PlanError
import os

CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def create_app(config_object=None):
    app = Flask(__name__)

    # Load configuration based on FLASK_ENV unless one is passed in
    if config_object is None:
        env = os.getenv('FLASK_ENV', 'development')
        config_object = CONFIGS.get(env, DevelopmentConfig)
    app.config.from_object(config_object)

    origins = [o.strip() for o in app.config["CORS_ORIGIN"].split(",") if o.strip()]
    cors.init_app(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)

    # Initialize JWT and rate limiter
    jwt.init_app(app)
    limiter.init_app(app)

    from runcoach.plans.routes import plans_bp
    from runcoach.profile.routes import profile_bp
    from runcoach.strava.routes import strava_bp

    app.register_blueprint(plans_bp, url_prefix="/plans")
    app.register_blueprint(profile_bp, url_prefix="/profile")
    app.register_blueprint(strava_bp, url_prefix="/strava")

    # Set up logging if not in debug mode
    if not app.debug and not app.testing:
        handler = RotatingFileHandler('error.log', maxBytes=100000, backupCount=3)
        handler.setLevel(logging.ERROR)
        formatter = logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        )
        handler.setFormatter(formatter)
        app.logger.addHandler(handler)

    @app.errorhandler(PlanError)
    def plan_error(error):
        log = app.logger.error if error.status_code >= 500 else app.logger.warning
        log(f"{error.kind} on {request.path}: {error}")
        return jsonify(error.to_dict()), error.status_code

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Server Error: {error}, Path: {request.path}")
        return jsonify({"error": "Internal Server Error"}), 500

    return app
