"""
Runs pg_dump / pg_dumpall and writes the artifacts of a backup run.
"""
import gzip
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from psycopg.conninfo import make_conninfo

from pg_backup.errors import DumpError
from pg_backup.utils.datatypes import Artifact, DumpFormat, DumpMode

CHUNK_SIZE = 1024 * 1024


class Dumper:
    """
    Creates one artifact per call.
    Output is written to <name>.in_progress and renamed once the dump succeeded.
    A failed dump leaves the .in_progress file behind.
    """

    def __init__(self, host: str = 'localhost', port: int = 5432,
                 user: str = 'postgres', password: str = '',
                 pg_dump: str = 'pg_dump', pg_dumpall: str = 'pg_dumpall'):
        """
        :param host: default: localhost
        :param port: default: 5432
        :param user: default: postgres
        :param password: exported as PGPASSWORD if set
        :param pg_dump: pg_dump executable
        :param pg_dumpall: pg_dumpall executable
        """
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._pg_dump = pg_dump
        self._pg_dumpall = pg_dumpall

    @property
    def env(self) -> Dict[str, str]:
        """
        environment of the dump processes
        """
        env = os.environ.copy()
        if self._password:
            env['PGPASSWORD'] = self._password
        return env

    def _connection_args(self) -> List[str]:
        return ['-h', self._host, '-p', str(self._port), '-U', self._user, '-w']

    def command(self, artifact: Artifact, output: Optional[Path] = None) -> List[str]:
        """
        Build the dump command for the given artifact.
        :param artifact: artifact to create
        :param output: target file. Only used for the custom format.
            Plain dumps are written to stdout.
        :return: command line
        """
        if artifact.mode is DumpMode.GLOBALS:
            return [self._pg_dumpall, '-g', *self._connection_args()]
        cmd = [self._pg_dump, '-Fc' if artifact.fmt is DumpFormat.CUSTOM else '-Fp']
        if artifact.mode is DumpMode.SCHEMA:
            cmd.append('-s')
        cmd.extend(self._connection_args())
        if artifact.fmt is DumpFormat.CUSTOM:
            cmd.extend(['-f', str(output)])
        # conninfo keeps names like -s or a=b from being read as options
        cmd.append(f'--dbname={make_conninfo(dbname=artifact.database)}')
        return cmd

    def dump(self, target_dir: Path, database: Optional[str], mode: DumpMode,
             fmt: DumpFormat) -> Artifact:
        """
        Dump a database (or the global objects) into target_dir.
        :param target_dir: directory of the backup run
        :param database: database name. None for globals.
        :param mode: content of the dump
        :param fmt: output format
        :return: the created artifact
        """
        artifact = Artifact(database, mode, fmt)
        target_dir = Path(target_dir)
        final_path = target_dir / artifact.file_name
        in_progress = target_dir / artifact.in_progress_name

        if fmt is DumpFormat.PLAIN:
            returncode = self._dump_compressed(artifact, in_progress)
        else:
            returncode = self._dump_custom(artifact, in_progress)
        if returncode != 0:
            raise DumpError(database, mode, fmt, f'dump exited with code {returncode}')

        os.replace(in_progress, final_path)
        logger.debug(f'Created {final_path}')
        return artifact

    def _dump_compressed(self, artifact: Artifact, path: Path) -> int:
        """
        Stream stdout of the dump through gzip into path.
        :return: exit code of the dump
        """
        cmd = self.command(artifact)
        try:
            with gzip.open(path, 'wb') as compressed:
                with subprocess.Popen(cmd, stdout=subprocess.PIPE, env=self.env) as process:
                    try:
                        shutil.copyfileobj(process.stdout, compressed, CHUNK_SIZE)
                    except OSError:
                        process.kill()
                        raise
        except FileNotFoundError as e:
            if e.filename == cmd[0]:
                raise DumpError(artifact.database, artifact.mode, artifact.fmt,
                                f'command not found: {cmd[0]}') from e
            raise DumpError(artifact.database, artifact.mode, artifact.fmt, str(e)) from e
        except OSError as e:
            raise DumpError(artifact.database, artifact.mode, artifact.fmt,
                            f'compression failed: {e}') from e
        return process.returncode

    def _dump_custom(self, artifact: Artifact, path: Path) -> int:
        """
        Let pg_dump write its custom format archive to path.
        :return: exit code of the dump
        """
        cmd = self.command(artifact, path)
        try:
            result = subprocess.run(cmd, env=self.env)
        except FileNotFoundError as e:
            raise DumpError(artifact.database, artifact.mode, artifact.fmt,
                            f'command not found: {cmd[0]}') from e
        except OSError as e:
            raise DumpError(artifact.database, artifact.mode, artifact.fmt, str(e)) from e
        return result.returncode
