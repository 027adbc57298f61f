import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///gig_orders.db")

    CORS_ORIGINS = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000"
    )

    ACCESS_EXPIRES = int(os.getenv("ACCESS_EXPIRES", 86400))
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=ACCESS_EXPIRES)

    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")

    # optimistic-lock retries for a single order write
    ORDER_SAVE_MAX_RETRIES = int(os.getenv("ORDER_SAVE_MAX_RETRIES", 3))

    # "record": a failed refund is logged on the order and the cancellation stands
    # "block": a failed refund aborts the cancellation
    REFUND_FAILURE_POLICY = os.getenv("REFUND_FAILURE_POLICY", "record")

    # deducted from the seller payout on delivery acceptance
    PLATFORM_FEE_RATE = os.getenv("PLATFORM_FEE_RATE", "0.10")
    VAT_RATE = os.getenv("VAT_RATE", "0.0132")

    MY_ORDERS_STATUSES = ("accepted", "delivered", "complete", "cancel")

class DevelopmentConfig(Config):
    DEBUG = True

class ProductionConfig(Config):
    DEBUG = False

class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
