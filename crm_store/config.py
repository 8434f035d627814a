"""
Runtime configuration for the CRM store.
Environment variables override the defaults so deployments can adapt without editing code.
"""
import os
from pathlib import Path

# Application private storage
DATA_DIR = Path(os.getenv("CRM_STORE_DATA_DIR", "./data"))
DB_FILE = os.getenv("CRM_STORE_DB_FILE", "crm.db")
DATABASE_PATH = DATA_DIR / DB_FILE

# Backups
BACKUP_DIR = Path(os.getenv("CRM_STORE_BACKUP_DIR", str(DATA_DIR / "backups")))
BACKUP_PREFIX = os.getenv("CRM_STORE_BACKUP_PREFIX", "crm_backup")
BACKUP_EXTENSION = ".db"
MAX_BACKUPS = int(os.getenv("CRM_STORE_MAX_BACKUPS", "5"))
BACKUP_INTERVAL_HOURS = float(os.getenv("CRM_STORE_BACKUP_INTERVAL_HOURS", "2"))
BACKUP_INTERVAL_MILLIS = int(BACKUP_INTERVAL_HOURS * 60 * 60 * 1000)
BACKUP_TASK_NAME = "database-backup-task"

# Key-value flags live outside the backed-up database so a restore never rewinds them
PREFERENCES_PATH = DATA_DIR / os.getenv("CRM_STORE_PREFERENCES_FILE", "preferences.db")

# Preference keys
AUTO_BACKUP_ENABLED_KEY = "auto_backup_enabled"
LAST_BACKUP_KEY = "last_backup_timestamp"
BACKUP_COUNT_KEY = "backup_count"

# Logging
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/crm-store"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"
LOG_DIR = os.getenv("CRM_STORE_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("CRM_STORE_LOG_FILE", "app.log")

# HTTP API
API_KEY = os.getenv("CRM_STORE_API_KEY", "change-me")
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CRM_STORE_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
