import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "default-secret")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///lms.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-secret")

    # Mail Configuration
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.zoho.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "True")
    MAIL_USE_SSL = _env_flag("MAIL_USE_SSL", "False")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = (
        os.getenv("MAIL_SENDER_NAME", "SAT Academy"),
        os.getenv("MAIL_SENDER_EMAIL", "no-reply@sat-academy.org"),
    )
    NOTIFY_ON_CERTIFICATE = _env_flag("NOTIFY_ON_CERTIFICATE", "True")

    # Progress & certificates
    COMPLETION_THRESHOLD = 90
    CERTIFICATE_NUMBER_PREFIX = os.getenv("CERTIFICATE_NUMBER_PREFIX", "CERT-SAT")
    CERTIFICATE_INSTRUCTOR_NAME = os.getenv(
        "CERTIFICATE_INSTRUCTOR_NAME", "Sahibzada Shariq Ahmed Tariqi"
    )
    CERTIFICATE_INSTRUCTOR_TITLE = os.getenv(
        "CERTIFICATE_INSTRUCTOR_TITLE", "Spiritual Guide & Islamic Scholar"
    )

    # Fees
    DEFAULT_MONTHLY_FEE = float(os.getenv("DEFAULT_MONTHLY_FEE", 5000))
    FEE_DUE_DAY = int(os.getenv("FEE_DUE_DAY", 10))
    AUTO_BLOCK_REASON = "Fee defaulter - automatic block"
    MANUAL_BLOCK_REASON = "Fee defaulter"

    # Defaults applied to every newly created class
    CLASS_DEFAULTS = {
        "section": "Main Content",
        "is_locked": False,
        "is_published": True,
        "is_preview": False,
    }


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    MAIL_SUPPRESS_SEND = True
    LOG_LEVEL = "WARNING"
