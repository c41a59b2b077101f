"""
Creates rotated backups of a PostgreSQL server with pg_dump and pg_dumpall.
"""
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from pg_backup.backends.disk import DiskBackend
from pg_backup.coordinator import BackupCoordinator
from pg_backup.errors import BackupPermissionError, ConfigError, DumpError
from pg_backup.postgres.client import Client
from pg_backup.postgres.dumper import Dumper
from pg_backup.rotation import rotate, select_generation
from pg_backup.utils.config import Configuration, check_backup_user, load_configuration
from pg_backup.utils.converters import parse_dir_name
from pg_backup.utils.datatypes import IN_PROGRESS_SUFFIX, BackupRun, GenerationLabel
from pg_backup.utils.logging import setup_logging
from pg_backup.version import __VERSION__


class CtxArgs:
    """
    Cache object for arguments between click group and commands.
    """

    def __init__(self, config_file: Optional[Path], config: Configuration,
                 backend: DiskBackend):
        self.config_file = config_file
        self.config = config
        self.backend = backend

    def coordinator(self) -> BackupCoordinator:
        config = self.config
        client = Client(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            dbname=config.maintenance_db,
        )
        dumper = Dumper(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            pg_dump=config.pg_dump,
            pg_dumpall=config.pg_dumpall,
        )
        return BackupCoordinator(config, client, dumper)


def execute_run(args: CtxArgs, label: Optional[GenerationLabel], now: datetime) -> BackupRun:
    """
    Run all dumps for a new backup run. Exits the process if a dump fails.
    :param args: context
    :param label: generation of the run. None for an unrotated backup.
    :param now: start of the run
    :return: the completed run
    """
    backup_run = BackupRun(args.config.backup_dir, label=label, timestamp=now)
    try:
        return args.coordinator().run(backup_run)
    except DumpError as e:
        logger.critical(f'Backup failed! {e}')
        logger.critical(f'Incomplete backup left in {backup_run.path}')
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.option(
    '-c',
    '--config',
    'config_file',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Config file. By default ./pg_backup.toml, pg_backup.toml next to this script'
         ' and /etc/pg_backup.toml are tried in this order.',
)
@click.pass_context
@click.version_option(version=__VERSION__, prog_name='pg-backup')
def main(ctx, config_file):
    """
    Create rotated PostgreSQL backups.
    Runs the rotated backup if no command is given.
    """
    # stderr only until the configured level and log dir are known
    setup_logging()
    try:
        config = load_configuration(config_file)
        setup_logging(config.log_level, config.log_dir)
        check_backup_user(config)
    except (ConfigError, BackupPermissionError) as e:
        logger.critical(str(e))
        sys.exit(1)
    except OSError as e:
        logger.critical(f'Could not set up logging: {e}')
        sys.exit(1)

    if not config.backup_dir.is_dir():
        logger.info(f'Creating backup directory: {config.backup_dir}')
        try:
            config.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.critical(f'Could not create backup directory {config.backup_dir}: {e}')
            sys.exit(1)

    ctx.obj = CtxArgs(config_file, config, DiskBackend(config.backup_dir))
    if ctx.invoked_subcommand is None:
        ctx.invoke(rotated_command)


@main.command('rotated')
@click.pass_context
def rotated_command(ctx):
    """
    Perform a daily or weekly backup and prune expired ones.
    The weekly backup is created on the configured day of the week.
    """
    args: CtxArgs = ctx.obj
    now = datetime.now()
    label = select_generation(now.date(), args.config)
    if label is GenerationLabel.WEEKLY:
        logger.info(f'Weekly backup day (weekday {now.isoweekday()}).')
    else:
        logger.info('Running daily backup.')

    rotate(args.backend, label, now, args.config)
    execute_run(args, label, now)
    logger.info('Rotated backup completed successfully.')


@main.command('backup')
@click.pass_context
def backup_command(ctx):
    """
    Perform a single backup into a timestamped directory.
    Nothing is rotated or pruned.
    """
    args: CtxArgs = ctx.obj
    execute_run(args, None, datetime.now())
    logger.info('Backup completed successfully.')


@main.command('list')
@click.pass_context
def list_command(ctx):
    """
    List all existing backup directories.
    """
    args: CtxArgs = ctx.obj
    backups = []
    for path in args.backend.get_existing_backups():
        data = parse_dir_name(path)
        if data and path.is_dir():
            backups.append(data)
    if len(backups) == 0:
        click.secho('None! You have to create a backup first...', fg='red',
                    file=sys.stderr)
        sys.exit(1)

    output = click.style('Listing backups:\n', fg='green', bold=True)
    for data in sorted(backups, key=lambda x: x['date']):
        files = Counter(
            'incomplete' if x.name.endswith(IN_PROGRESS_SUFFIX) else 'complete'
            for x in data['path'].iterdir()
        )
        output += click.style(f'{data["path"].name}', fg='cyan')
        output += f' ({data["label"] or "unrotated"}): {files["complete"]} files'
        if files['incomplete']:
            output += click.style(f', {files["incomplete"]} incomplete', fg='red')
        output += '\n'
    click.echo(output, nl=False)


if __name__ == '__main__':
    main()
