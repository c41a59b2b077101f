"""
Shared pytest fixtures.

Dumps run as real child processes: the pg_dump command line is replaced by
a small python script that writes a fake dump or fails on request.
"""
import sys
from pathlib import Path

import pytest
from loguru import logger

from pg_backup.postgres.client import partition_databases
from pg_backup.postgres.dumper import Dumper
from pg_backup.utils.config import Configuration


class ScriptDumper(Dumper):
    """
    Dumper running python instead of pg_dump.
    """

    def __init__(self, fail=(), killed=(), **kwargs):
        """
        :param fail: (database, mode, fmt) tuples exiting with code 1
        :param killed: (database, mode, fmt) tuples killed after writing half a dump
        """
        super().__init__(**kwargs)
        self.fail = set(fail)
        self.killed = set(killed)
        self.calls = []

    def command(self, artifact, output=None):
        key = (artifact.database, artifact.mode, artifact.fmt)
        self.calls.append(key)
        content = f'-- {artifact.mode.value} dump of {artifact.database}\n'
        if output:
            write = f"f = open({str(output)!r}, 'w'); f.write({content!r}); f.flush()"
        else:
            write = f"import sys; sys.stdout.write({content!r}); sys.stdout.flush()"
        if key in self.killed:
            end = 'import os, signal; os.kill(os.getpid(), signal.SIGKILL)'
        else:
            end = f'raise SystemExit({1 if key in self.fail else 0})'
        return [sys.executable, '-c', f'{write}\n{end}']


class FakeClient:
    """
    Catalog client returning a fixed list of databases.
    """

    def __init__(self, databases=(), **kwargs):
        self.databases = list(databases)
        self.kwargs = kwargs
        self.classified = False

    def classify(self, schema_only=None):
        self.classified = True
        return partition_databases(self.databases, schema_only)


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()


@pytest.fixture
def backup_dir(tmp_path) -> Path:
    path = tmp_path / 'backups'
    path.mkdir()
    return path


@pytest.fixture
def make_config(backup_dir):
    def factory(**kwargs) -> Configuration:
        return Configuration(backup_dir=backup_dir, **kwargs)
    return factory


@pytest.fixture
def script_dumper():
    return ScriptDumper


@pytest.fixture
def fake_client():
    return FakeClient
