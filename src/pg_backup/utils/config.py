"""
config handling for dynaconf
"""
import os
import pwd
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dynaconf import Dynaconf, ValidationError, Validator
from loguru import logger

from pg_backup.errors import BackupPermissionError, ConfigError
from pg_backup.utils.converters import split_list

CONFIG_FILE_NAME = 'pg_backup.toml'
DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / 'data' / 'default.toml'


@dataclass(frozen=True)
class Configuration:
    """
    Resolved settings of one invocation. Built once and passed around.
    """
    backup_dir: Path
    host: str = 'localhost'
    port: int = 5432
    user: str = 'postgres'
    password: str = field(default='', repr=False)
    maintenance_db: str = 'postgres'
    pg_dump: str = 'pg_dump'
    pg_dumpall: str = 'pg_dumpall'
    backup_user: str = ''
    schema_only: Tuple[str, ...] = ()
    plain: bool = True
    custom: bool = False
    globals: bool = False
    day_of_week: int = 7
    days_to_keep: int = 14
    weeks_to_keep: int = 8
    log_dir: Optional[Path] = None
    log_level: str = 'INFO'

    @classmethod
    def from_settings(cls, settings: Dynaconf) -> 'Configuration':
        """
        Build the configuration from parsed dynaconf settings.
        :param settings: settings returned by parse_config
        :return: Configuration
        """
        log_dir = settings('logging.dir', default=None)
        return cls(
            backup_dir=Path(settings('backup.dir')),
            host=settings('postgres.host', default='localhost'),
            port=settings('postgres.port', cast='@int', default=5432),
            user=settings('postgres.user', default='postgres'),
            password=str(settings('postgres.password', default='') or ''),
            maintenance_db=settings('postgres.maintenance_db', default='postgres'),
            pg_dump=settings('postgres.pg_dump', default='pg_dump'),
            pg_dumpall=settings('postgres.pg_dumpall', default='pg_dumpall'),
            backup_user=str(settings('backup.user', default='') or ''),
            schema_only=tuple(split_list(settings('backup.schema_only', default=''))),
            plain=settings('backup.plain', cast='@bool', default=True),
            custom=settings('backup.custom', cast='@bool', default=False),
            globals=settings('backup.globals', cast='@bool', default=False),
            day_of_week=settings('rotation.day_of_week', cast='@int', default=7),
            days_to_keep=settings('rotation.days_to_keep', cast='@int', default=14),
            weeks_to_keep=settings('rotation.weeks_to_keep', cast='@int', default=8),
            log_dir=Path(log_dir) if log_dir else None,
            log_level=str(settings('logging.level', default='INFO')).upper(),
        )


def config_search_paths() -> Tuple[Path, ...]:
    """
    Locations checked for a config file if none is given. First match wins.
    """
    return (
        Path.cwd() / CONFIG_FILE_NAME,
        Path(sys.argv[0]).resolve().parent / CONFIG_FILE_NAME,
        Path('/etc') / CONFIG_FILE_NAME,
    )


def _readable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def find_config_file(config_file: Optional[Path] = None) -> Path:
    """
    Resolve the config file to use.
    :param config_file: explicitly given file. Searched for if not set.
    :return: path of a readable config file
    """
    if config_file:
        config_file = Path(config_file)
        if not _readable(config_file):
            raise ConfigError(f"Config file '{config_file}' not readable")
        return config_file
    for candidate in config_search_paths():
        if _readable(candidate):
            return candidate
    raise ConfigError(f'No readable {CONFIG_FILE_NAME} found')


def parse_config(config_file: Path) -> Dynaconf:
    """
    Parse the packaged defaults and the given config file with dynaconf.
    :param config_file: user config file
    :return: validated settings
    """
    settings = Dynaconf(
        envvar_prefix='PG_BACKUP',
        settings_files=[str(DEFAULT_CONFIG), str(config_file)],
        merge_enabled=True,
        validators=[
            Validator('backup.dir', must_exist=True, ne=''),
            Validator('postgres.port', cast=int, gte=0),
            Validator('rotation.day_of_week', cast=int, gte=1, lte=7),
            Validator('rotation.days_to_keep', cast=int, gte=0),
            Validator('rotation.weeks_to_keep', cast=int, gte=0),
        ]
    )
    try:
        settings.validators.validate()
    except ValidationError as e:
        raise ConfigError(f'Invalid config {config_file}: {e}') from e
    return settings


def load_configuration(config_file: Optional[Path] = None) -> Configuration:
    """
    Find, parse and validate the config.
    :param config_file: explicitly given config file
    :return: Configuration
    """
    path = find_config_file(config_file)
    logger.info(f'Using config file: {path}')
    try:
        return Configuration.from_settings(parse_config(path))
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(f'Failed to load config {path}: {e}') from e


def current_user() -> str:
    """
    Name of the effective OS user.
    """
    return pwd.getpwuid(os.geteuid()).pw_name


def check_backup_user(config: Configuration) -> None:
    """
    Make sure that we run as the configured backup user.
    :param config: configuration
    """
    if not config.backup_user:
        return
    user = current_user()
    if user != config.backup_user:
        raise BackupPermissionError(
            f"Script must be run as '{config.backup_user}', current user is '{user}'")
