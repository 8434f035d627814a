"""
Custom exceptions for the CRM store.
Provides specific exception types for the backup lifecycle and schema migrations.
"""


class CrmStoreException(Exception):
    """Base exception for the CRM store"""
    pass


class SourceMissingException(CrmStoreException):
    """Raised when the live database file is absent at backup time"""
    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"Database file not found at path: {self.path}")


class BackupMissingException(CrmStoreException):
    """Raised when a restore or export target does not exist"""
    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"Backup file not found: {self.path}")


class InvalidBackupException(CrmStoreException):
    """Raised when a restore target is not a usable SQLite database"""
    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Invalid backup file {self.path}: {reason}")


class StorageIOException(CrmStoreException):
    """Raised when a copy, delete or mkdir fails"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Storage {operation} failed: {details}")


class SchedulerUnavailableException(CrmStoreException):
    """Raised when the periodic backup trigger cannot be (un)registered"""
    def __init__(self, message: str):
        super().__init__(f"Scheduler unavailable: {message}")


class MigrationFailedException(CrmStoreException):
    """Raised when a migration step fails. Fatal for startup."""
    def __init__(self, step_name: str, cause: Exception):
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Migration '{step_name}' failed: {cause}")
