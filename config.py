import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as camcrew.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "camcrew.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # tables normally come from `flask db upgrade`
    CREATE_TABLES_ON_STARTUP = os.getenv("CREATE_TABLES_ON_STARTUP", "false").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "camcrew_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Payment gateway: "payos" or "stripe"
    PAYMENT_GATEWAY = os.getenv("PAYMENT_GATEWAY", "payos")
    GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))

    PAYOS_CLIENT_ID = os.getenv("PAYOS_CLIENT_ID")
    PAYOS_API_KEY = os.getenv("PAYOS_API_KEY")
    PAYOS_CHECKSUM_KEY = os.getenv("PAYOS_CHECKSUM_KEY")
    PAYOS_API_URL = os.getenv("PAYOS_API_URL", "https://api-merchant.payos.vn")
    PAYOS_VERIFY_WEBHOOK_SIGNATURE = os.getenv("PAYOS_VERIFY_WEBHOOK_SIGNATURE", "false").lower() == "true"

    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "vnd")  # zero-decimal, amounts pass through

    # Frontend base for gateway return/cancel redirects
    CLIENT_URL = os.getenv("CLIENT_URL", "https://camcrew.vercel.app")

    # PAYING bookings older than this are cancelled by `flask sweep-stale-bookings`
    BOOKING_PAYMENT_TTL_MINUTES = int(os.getenv("BOOKING_PAYMENT_TTL_MINUTES", "30"))

    # Membership prices in smallest currency unit
    MEMBERSHIP_PRICES = {
        "ONE_MONTH": int(os.getenv("MEMBERSHIP_PRICE_ONE_MONTH", "99000")),
        "SIX_MONTH": int(os.getenv("MEMBERSHIP_PRICE_SIX_MONTH", "499000")),
    }

    # Dates inside notification text (vi-VN style day/month/year)
    DATE_DISPLAY_FORMAT = os.getenv("DATE_DISPLAY_FORMAT", "%d/%m/%Y")

    NOTIFICATION_MAX_ATTEMPTS = 3

    # Pagination
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    # Basic app settings
    DEBUG = False
