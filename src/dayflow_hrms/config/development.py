import os

from . import env_flag

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

MONGO_CONFIG = {
    "uri": os.getenv("MONGO_URI", "mongodb://127.0.0.1:27017/workzen_hrms"),
    "database": os.getenv("MONGO_DB", ""),
}

JWT_SECRET = os.getenv("JWT_SECRET", "workzen-secret-key-change-in-production")
JWT_EXPIRE = os.getenv("JWT_EXPIRE", "1d")

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
PORT = int(os.getenv("PORT", "5000"))

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

RATE_LIMIT = int(os.getenv("RATE_LIMIT", "100"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"))

# Provident fund is reported on the payslip; set to true to also subtract it from net pay
PF_DEDUCTED_FROM_NET = env_flag("PF_DEDUCTED_FROM_NET", False)

# If enabled, app creates collection indexes on startup (idempotent)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", True)
# Optional: also seed one demo account per role
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", False)
