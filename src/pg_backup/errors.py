"""
Errors raised while configuring, running and rotating backups.
"""
from typing import Optional


class BackupError(RuntimeError):
    """
    Base class for all errors of pg_backup.
    """


class ConfigError(BackupError):
    """
    No usable configuration could be loaded.
    """


class BackupPermissionError(BackupError, PermissionError):
    """
    The current OS user is not the configured backup user.
    """


class CatalogQueryError(BackupError):
    """
    Listing the databases of the server failed.
    """


class DumpError(BackupError):
    """
    A dump utility (or the compression of its output) failed.
    """

    def __init__(self, database: Optional[str], mode, fmt, cause: str):
        """
        :param database: database name. None for globals.
        :param mode: DumpMode of the failed dump
        :param fmt: DumpFormat of the failed dump
        :param cause: human readable reason
        """
        self.database = database
        self.mode = mode
        self.fmt = fmt
        self.cause = cause
        target = database if database else 'global objects'
        super().__init__(f'Failed to dump {target} ({mode.value}, {fmt.value}): {cause}')


class PruneError(BackupError):
    """
    An expired generation directory could not be removed.
    """

    def __init__(self, path, cause: str):
        self.path = path
        self.cause = cause
        super().__init__(f'Failed to remove {path}: {cause}')
