import logging

from flask import Flask
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .extensions import db, migrate, jwt, mail
from .routes import courses, enrollments, learning, certificates, fees
from .utils.errors import register_error_handlers


def create_app(config_class=Config):
    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)
    CORS(app, resources={r"/*": {"origins": "*"}})
    app.config.from_object(config_class)

    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"].upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)

    register_error_handlers(app)

    # Register blueprints
    app.register_blueprint(learning.bp)
    app.register_blueprint(courses.bp, url_prefix="/courses")
    app.register_blueprint(enrollments.bp, url_prefix="/enrollments")
    app.register_blueprint(certificates.bp, url_prefix="/certificates")
    app.register_blueprint(fees.bp, url_prefix="/fees")

    app.logger.info("LMS service started with database %s", app.config["SQLALCHEMY_DATABASE_URI"].split("@")[-1])

    return app
