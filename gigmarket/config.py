import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///gigmarket.db")

    CORS_ORIGINS = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000"
    )

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Contact unlock fee (BRL), charged once per order
    CONTACT_UNLOCK_FEE = float(os.getenv("CONTACT_UNLOCK_FEE", "4.99"))
    PAYMENT_INTENT_EXPIRY_MINUTES = 30
    PAYMENT_POLL_INTERVAL_SECONDS = 3
    PAYMENT_DESCRIPTION = "Taxa de desbloqueio de contato"

    MERCADOPAGO_ACCESS_TOKEN = os.getenv("MP_ACCESS_TOKEN")
    MERCADOPAGO_API_URL = os.getenv("MP_API_URL", "https://api.mercadopago.com")
    MERCADOPAGO_TIMEOUT = int(os.getenv("MP_TIMEOUT", 10))

    CHAT_EXPIRY_DAYS = 5
    DEFAULT_SEARCH_RADIUS_KM = float(os.getenv("DEFAULT_SEARCH_RADIUS_KM", 50))

    STALE_ORDER_WARNING_DAYS = 2
    STALE_ORDER_DELETE_DAYS = 3

class DevelopmentConfig(Config):
    DEBUG = True

class ProductionConfig(Config):
    DEBUG = False

class TestingConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"


CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
