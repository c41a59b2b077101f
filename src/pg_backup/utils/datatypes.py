"""
Contains classes representing backup runs and the files they produce.
"""
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .converters import (GLOBALS_NAME, SCHEMA_SUFFIX, format_date, format_timestamp,
                         safe_file_name)

IN_PROGRESS_SUFFIX = '.in_progress'


class GenerationLabel(Enum):
    """
    Rotation category of a backup directory.
    """
    DAILY = 'daily'
    WEEKLY = 'weekly'

    @property
    def suffix(self) -> str:
        """
        suffix of the directory names of this generation
        """
        return f'-{self.value}'


class DumpMode(Enum):
    """
    What a dump contains.
    """
    GLOBALS = 'globals'
    SCHEMA = 'schema'
    FULL = 'full'


class DumpFormat(Enum):
    """
    Output format of a dump.
    PLAIN is gzip compressed SQL, CUSTOM the native archive format of pg_dump.
    """
    PLAIN = 'plain'
    CUSTOM = 'custom'


class RunState(Enum):
    """
    Progress of a backup run.
    """
    START = 'start'
    DIRECTORY_CREATED = 'directory_created'
    GLOBALS_DONE = 'globals_done'
    SCHEMA_ONLY_DONE = 'schema_only_done'
    FULL_DONE = 'full_done'
    COMPLETE = 'complete'
    ABORTED = 'aborted'


class Artifact:
    """
    One output file of a backup run.
    """

    def __init__(self, database: Optional[str], mode: DumpMode, fmt: DumpFormat):
        """
        :param database: database name. None for globals.
        :param mode: content of the dump
        :param fmt: output format
        """
        if mode is DumpMode.GLOBALS:
            if fmt is not DumpFormat.PLAIN:
                raise ValueError('Global objects can only be dumped in plain format.')
            if database:
                raise ValueError('Global objects are not bound to a database.')
        elif not database:
            raise ValueError(f'A database is required for {mode.value} dumps.')
        self.database = database
        self.mode = mode
        self.fmt = fmt

    def __str__(self):
        return self.file_name

    def __repr__(self):
        return f'Artifact({self.database!r}, {self.mode}, {self.fmt})'

    def __eq__(self, other):
        if not isinstance(other, Artifact):
            return NotImplemented
        return (self.database, self.mode, self.fmt) == (other.database, other.mode, other.fmt)

    def __hash__(self):
        return hash((self.database, self.mode, self.fmt))

    @property
    def file_name(self) -> str:
        """
        final file name of the artifact
        """
        if self.mode is DumpMode.GLOBALS:
            base = GLOBALS_NAME
        elif self.mode is DumpMode.SCHEMA:
            base = f'{safe_file_name(self.database)}{SCHEMA_SUFFIX}'
        else:
            base = safe_file_name(self.database)
        extension = '.sql.gz' if self.fmt is DumpFormat.PLAIN else '.custom'
        return f'{base}{extension}'

    @property
    def in_progress_name(self) -> str:
        """
        file name while the dump is still being written
        """
        return f'{self.file_name}{IN_PROGRESS_SUFFIX}'


class BackupRun:
    """
    Represents one invocation writing into one backup directory.
    """

    def __init__(self, backup_dir: Path, label: Optional[GenerationLabel] = None,
                 timestamp: Optional[datetime] = None):
        """
        :param backup_dir: root backup dir
        :param label: generation of the run. None for an unrotated backup.
        :param timestamp: start of the run. now by default.
        """
        self.backup_dir = Path(backup_dir)
        self.label = label
        self.timestamp = timestamp if timestamp else datetime.now()
        self.state = RunState.START
        self.artifacts: List[Artifact] = []

    def __str__(self):
        kind = f'{self.label.value} backup' if self.label else 'Backup'
        return f'{kind.capitalize()} {self.path.name}'

    @property
    def path(self) -> Path:
        """
        target directory of the run
        """
        if self.label:
            return self.backup_dir / f'{format_date(self.timestamp)}{self.label.suffix}'
        return self.backup_dir / format_timestamp(self.timestamp)

    @property
    def complete(self) -> bool:
        return self.state is RunState.COMPLETE


class PruneResult:
    """
    Outcome of removing expired generations.
    """

    def __init__(self):
        self.removed: List[Path] = []
        self.failed: List[Path] = []

    def __str__(self):
        return f'{len(self.removed)} removed, {len(self.failed)} failed'

    @property
    def ok(self) -> bool:
        return not self.failed
