"""
Daily / weekly rotation of backup directories.
"""
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Set

from loguru import logger

from pg_backup.backends.base import Backend
from pg_backup.errors import PruneError
from pg_backup.utils.config import Configuration
from pg_backup.utils.datatypes import GenerationLabel, PruneResult

SECONDS_PER_DAY = 24 * 60 * 60


def select_generation(today: date, config: Configuration) -> GenerationLabel:
    """
    Weekly on the configured day of the week (1 = Monday), daily otherwise.
    :param today: date of the run
    :param config: configuration
    :return: label of the generation to create
    """
    if today.isoweekday() == config.day_of_week:
        return GenerationLabel.WEEKLY
    return GenerationLabel.DAILY


def expiry_days(label: GenerationLabel, config: Configuration) -> int:
    """
    Retention of a generation in days.
    """
    if label is GenerationLabel.WEEKLY:
        return config.weeks_to_keep * 7
    return config.days_to_keep


def age_in_days(path: Path, now: datetime) -> int:
    """
    Full days since the last modification of path. (like find -mtime)
    """
    return int((now.timestamp() - path.stat().st_mtime) // SECONDS_PER_DAY)


def expired_generations(directories: Iterable[Path], label: GenerationLabel,
                        now: datetime, config: Configuration) -> Set[Path]:
    """
    Get the directories of the given generation that are older than its retention.
    Other generations and plain files are never returned.
    :param directories: entries of the backup root
    :param label: generation of the current run
    :param now: current time
    :param config: configuration
    :return: directories to prune
    """
    threshold = expiry_days(label, config)
    expired = set()
    for path in directories:
        path = Path(path)
        if not path.name.endswith(label.suffix):
            continue
        if path.is_symlink() or not path.is_dir():
            continue
        if age_in_days(path, now) > threshold:
            expired.add(path)
    return expired


def prune(backend: Backend, paths: Iterable[Path]) -> PruneResult:
    """
    Remove expired directories. Failures are logged and skipped.
    :param backend: storage backend
    :param paths: directories to remove
    :return: PruneResult
    """
    result = PruneResult()
    for path in sorted(paths):
        logger.info(f'Deleting expired backup: {path}')
        try:
            backend.remove(path)
        except PruneError as e:
            logger.warning(f'{e} Continuing with the backup.')
            result.failed.append(path)
            continue
        result.removed.append(path)
    return result


def rotate(backend: Backend, label: GenerationLabel, now: datetime,
           config: Configuration) -> PruneResult:
    """
    Prune the expired directories of the given generation.
    Never raises for storage errors.
    :param backend: storage backend
    :param label: generation of the current run
    :param now: current time
    :param config: configuration
    :return: PruneResult
    """
    days = expiry_days(label, config)
    logger.info(f'Pruning {label.value} backups older than {days} days.')
    try:
        existing = backend.get_existing_backups()
        expired = expired_generations(existing, label, now, config)
    except OSError as e:
        logger.warning(f'Could not check for expired {label.value} backups: {e}')
        return PruneResult()
    return prune(backend, expired)
