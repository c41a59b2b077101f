"""
Sequences the dumps of one backup run: globals, schema only databases, full databases.
"""
from typing import List

from loguru import logger

from pg_backup.errors import DumpError
from pg_backup.postgres.client import Client
from pg_backup.postgres.dumper import Dumper
from pg_backup.utils.config import Configuration
from pg_backup.utils.datatypes import BackupRun, DumpFormat, DumpMode, RunState


class BackupCoordinator:
    """
    Runs the dumps of a backup run in a fixed order.
    The first failing dump aborts the run. Already written artifacts stay on disk.
    """

    def __init__(self, config: Configuration, client: Client, dumper: Dumper):
        """
        :param config: configuration
        :param client: catalog client used for classifying the databases
        :param dumper: executes the dumps
        """
        self.config = config
        self.client = client
        self.dumper = dumper

    @property
    def formats(self) -> List[DumpFormat]:
        """
        enabled dump formats in the order they are written
        """
        formats = []
        if self.config.plain:
            formats.append(DumpFormat.PLAIN)
        if self.config.custom:
            formats.append(DumpFormat.CUSTOM)
        return formats

    def run(self, backup_run: BackupRun) -> BackupRun:
        """
        Execute the run.
        :param backup_run: run to populate
        :return: the completed run
        :raises DumpError: on the first failing dump. The run is marked as aborted.
        """
        try:
            self._run(backup_run)
        except DumpError:
            backup_run.state = RunState.ABORTED
            raise
        return backup_run

    def _run(self, backup_run: BackupRun):
        backup_run.path.mkdir(parents=True, exist_ok=True)
        backup_run.state = RunState.DIRECTORY_CREATED
        logger.info(f'Writing backups into: {backup_run.path}')

        if not self.formats:
            logger.warning('Neither plain nor custom backups are enabled. '
                           'Only global objects will be dumped.')

        if self.config.globals:
            logger.info('Backing up global objects (roles, privileges, tablespaces)')
            backup_run.artifacts.append(
                self.dumper.dump(backup_run.path, None, DumpMode.GLOBALS, DumpFormat.PLAIN))
            backup_run.state = RunState.GLOBALS_DONE
        else:
            logger.info('Skipping globals backup (disabled)')

        schema_only, full = self.client.classify(self.config.schema_only)

        self._dump_databases(backup_run, schema_only, DumpMode.SCHEMA)
        backup_run.state = RunState.SCHEMA_ONLY_DONE
        self._dump_databases(backup_run, full, DumpMode.FULL)
        backup_run.state = RunState.FULL_DONE

        backup_run.state = RunState.COMPLETE
        logger.info(f'{backup_run} completed with {len(backup_run.artifacts)} files.')

    def _dump_databases(self, backup_run: BackupRun, databases: List[str], mode: DumpMode):
        kind = 'Schema-only' if mode is DumpMode.SCHEMA else 'Full'
        if not databases:
            logger.info(f'No databases matched for {kind.lower()} backup')
            return
        logger.info(f'{kind} backups for databases: {", ".join(databases)}')
        for database in databases:
            logger.info(f'{kind} backup for database: {database}')
            for fmt in self.formats:
                backup_run.artifacts.append(
                    self.dumper.dump(backup_run.path, database, mode, fmt))
