import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timetrack_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

TEMPLATE_APPLY_WINDOW_YEARS = int(os.getenv("TEMPLATE_APPLY_WINDOW_YEARS", "1"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
