import os
from datetime import timedelta


def _env_int(name, default):
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_bool(name, default):
    v = os.environ.get(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)

    # money is held in paise
    CURRENCY = os.environ.get("CURRENCY", "INR")
    FREE_SHIPPING_THRESHOLD = _env_int("FREE_SHIPPING_THRESHOLD", 99900)
    STANDARD_SHIPPING = _env_int("STANDARD_SHIPPING", 5000)
    TAX_RATE_PERCENT = _env_int("TAX_RATE_PERCENT", 18)
    SELLER_STATE = os.environ.get("SELLER_STATE", "Gujarat")
    ESTIMATED_DELIVERY = os.environ.get("ESTIMATED_DELIVERY", "5-7 days")

    # unpaid online orders hold stock for this long
    RESERVATION_TTL_MINUTES = _env_int("RESERVATION_TTL_MINUTES", 30)
    ADMIN_CANCEL_RESTOCKS = _env_bool("ADMIN_CANCEL_RESTOCKS", True)

    PAYMENT_GATEWAY = os.environ.get("PAYMENT_GATEWAY", "razorpay")
    RAZORPAY_KEY_ID = os.environ.get("RAZORPAY_KEY_ID", "")
    RAZORPAY_KEY_SECRET = os.environ.get("RAZORPAY_KEY_SECRET", "")
    RAZORPAY_BASE_URL = os.environ.get("RAZORPAY_BASE_URL", "https://api.razorpay.com/v1")
    RAZORPAY_TIMEOUT = 10.0

    SELLER = {
        "name": os.environ.get("COMPANY_NAME", "Tractor Parts"),
        "address": os.environ.get("COMPANY_ADDRESS", "Gujarat, India"),
        "phone": os.environ.get("COMPANY_PHONE", "9876543210"),
        "email": os.environ.get("COMPANY_EMAIL", "support@tractorparts.example"),
        "gstin": os.environ.get("COMPANY_GSTIN", "24ABCDE1234F1Z5"),
    }

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_JSON = _env_bool("LOG_JSON", False)

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config.setdefault(
                "SQLALCHEMY_DATABASE_URI",
                f"sqlite:///{os.path.join(app.instance_path, 'storefront.db')}",
            )
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"
    PAYMENT_GATEWAY = "fake"
    RAZORPAY_KEY_ID = "rzp_test_key"
    RAZORPAY_KEY_SECRET = "rzp_test_secret"
    LOG_LEVEL = "WARNING"
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}

    @staticmethod
    def init_app(app):
        pass
