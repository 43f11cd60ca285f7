import os

SECRET_KEY = "test-secret"

MONGO_CONFIG = {
    "uri": os.getenv("MONGO_URI", "mongodb://127.0.0.1:27017/workzen_hrms_test"),
    "database": os.getenv("MONGO_DB", ""),
}

JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
JWT_EXPIRE = "1h"

FRONTEND_URL = "http://localhost:3000"
PORT = 5001

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

RATE_LIMIT = 0
RATE_LIMIT_WINDOW_SECONDS = 900

PF_DEDUCTED_FROM_NET = False

AUTO_INIT_DB = False
AUTO_SEED_DB = False
