"""
PostgreSQL client / catalog queries
"""
from typing import Iterable, List, Optional, Tuple

import psycopg
from loguru import logger

from pg_backup.errors import CatalogQueryError

ELIGIBLE_DATABASES_QUERY = (
    'SELECT datname FROM pg_catalog.pg_database '
    'WHERE datallowconn AND NOT datistemplate '
    'ORDER BY datname'
)


class Client:
    """
    PostgreSQL client. Only used for reading the catalog.
    """

    def __init__(self, host: str = 'localhost', port: int = 5432,
                 user: str = 'postgres', password: str = '',
                 dbname: str = 'postgres'):
        """
        Init a new client.
        :param host: default: localhost
        :param port: default: 5432
        :param user: default: postgres
        :param password: default: '' (libpq falls back to ~/.pgpass)
        :param dbname: database to connect to. default: postgres
        """
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._dbname = dbname

    def connect(self) -> psycopg.Connection:
        """
        Open a new connection to PostgreSQL.
        :return: connection
        """
        logger.debug(f'Connecting to PostgreSQL at {self._host}:{self._port}...')
        return psycopg.connect(
            host=self._host,
            port=self._port,
            user=self._user,
            password=self._password or None,
            dbname=self._dbname,
            autocommit=True,
        )

    def list_databases(self) -> List[str]:
        """
        Get all databases that accept connections and are not templates.
        :return: sorted list of database names
        """
        try:
            with self.connect() as conn:
                rows = conn.execute(ELIGIBLE_DATABASES_QUERY).fetchall()
        except psycopg.Error as e:
            raise CatalogQueryError(f'Failed to list databases: {e}') from e
        return sorted({row[0] for row in rows})

    def classify(self, schema_only: Optional[Iterable[str]] = None) -> Tuple[List[str], List[str]]:
        """
        Split the eligible databases into schema only and full backups.
        A failing catalog query is not fatal. Both lists are empty in that case.
        :param schema_only: names of databases backed up without data
        :return: 2-Tuple (schema only databases, full databases), both sorted
        """
        try:
            databases = self.list_databases()
        except CatalogQueryError as e:
            logger.warning(f'{e} Continuing without databases.')
            return [], []
        return partition_databases(databases, schema_only)


def partition_databases(databases: Iterable[str],
                        schema_only: Optional[Iterable[str]] = None) -> Tuple[List[str], List[str]]:
    """
    Split databases by exact name match against the schema only list.
    :param databases: eligible databases
    :param schema_only: names of databases backed up without data
    :return: 2-Tuple (schema only databases, full databases), both sorted
    """
    wanted = set(schema_only or ())
    eligible = sorted(set(databases))
    return ([x for x in eligible if x in wanted],
            [x for x in eligible if x not in wanted])
