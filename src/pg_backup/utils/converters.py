"""
helpers for converting values from one format to a different one
"""
import re
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

DATE_FORMAT = '%Y-%m-%d'
TIMESTAMP_FORMAT = '%Y-%m-%d_%H%M%S'
SCHEMA_SUFFIX = '_schema'
GLOBALS_NAME = 'globals'

# characters which must never end up in a file name
_UNSAFE_CHARS = re.compile(r'[/\\%\x00-\x1f\x7f]')


def format_date(day: date) -> str:
    """
    Convert the given date to the prefix of a generation directory.
    :param day: date of the run
    :return: formatted date
    """
    return day.strftime(DATE_FORMAT)


def format_timestamp(timestamp: datetime) -> str:
    """
    Convert the given datetime object to the name of an unrotated backup dir.
    :param timestamp: datetime object
    :return: formatted time
    """
    return timestamp.strftime(TIMESTAMP_FORMAT)


def parse_dir_name(dir_path: str or Path) -> Optional[dict]:
    """
    Parse the name of a backup directory.
    2024-01-31-daily, 2024-01-28-weekly or 2024-01-31_101500
    :param dir_path: path or name of the directory
    :return: dict with keys: date, label (None for unrotated backups), path
        or None if the name does not belong to a backup directory.
    """
    name = Path(dir_path).name
    match = re.fullmatch(r'(\d{4}-\d{2}-\d{2})(?:-(daily|weekly)|_(\d{6}))', name)
    if not match:
        return None
    try:
        if match.group(3):
            day = datetime.strptime(f'{match.group(1)}_{match.group(3)}', TIMESTAMP_FORMAT)
        else:
            day = datetime.strptime(match.group(1), DATE_FORMAT)
    except ValueError:
        return None
    return {
        'date': day,
        'label': match.group(2),
        'path': Path(dir_path),
    }


def safe_file_name(database: str) -> str:
    """
    Make a database name usable as a file name.
    Path separators, % and control characters are percent-encoded.
    A trailing _schema and the name globals are encoded as well, they would
    clash with schema only and globals dumps.
    Every other name is returned unchanged.
    :param database: database name as returned by the catalog
    :return: file name component
    """
    name = _UNSAFE_CHARS.sub(lambda m: f'%{ord(m.group(0)):02X}', database)
    if name.endswith(SCHEMA_SUFFIX):
        name = f'{name[:-len(SCHEMA_SUFFIX)]}%5F{SCHEMA_SUFFIX[1:]}'
    elif name == GLOBALS_NAME:
        name = f'%{ord(name[0]):02X}{name[1:]}'
    return name


def split_list(value: str or List[str] or None) -> List[str]:
    """
    Split a comma separated config value.
    Lists are accepted as well. Whitespace and empty entries are dropped.
    :param value: raw config value
    :return: list of names
    """
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [str(x).strip() for x in value if str(x).strip()]
