from datetime import datetime

import pytest

from pg_backup.coordinator import BackupCoordinator
from pg_backup.errors import DumpError
from pg_backup.utils.datatypes import (BackupRun, DumpFormat, DumpMode, GenerationLabel,
                                       RunState)

NOW = datetime(2024, 1, 31, 3, 0)


def new_run(config):
    return BackupRun(config.backup_dir, GenerationLabel.DAILY, NOW)


def file_names(path):
    return sorted(x.name for x in path.iterdir())


def test_schema_only_and_full_databases(make_config, fake_client, script_dumper):
    config = make_config(schema_only=('reporting',))
    coordinator = BackupCoordinator(config, fake_client(['app', 'reporting']), script_dumper())

    backup_run = coordinator.run(new_run(config))

    assert backup_run.state is RunState.COMPLETE
    assert backup_run.complete
    assert [x.file_name for x in backup_run.artifacts] == ['reporting_schema.sql.gz', 'app.sql.gz']
    assert file_names(backup_run.path) == ['app.sql.gz', 'reporting_schema.sql.gz']
    assert backup_run.path.name == '2024-01-31-daily'


def test_run_order(make_config, fake_client, script_dumper):
    config = make_config(schema_only=('zeta', 'audit'), globals=True, custom=True)
    dumper = script_dumper()
    coordinator = BackupCoordinator(
        config, fake_client(['zeta', 'billing', 'audit', 'app']), dumper)

    coordinator.run(new_run(config))

    assert dumper.calls == [
        (None, DumpMode.GLOBALS, DumpFormat.PLAIN),
        ('audit', DumpMode.SCHEMA, DumpFormat.PLAIN),
        ('audit', DumpMode.SCHEMA, DumpFormat.CUSTOM),
        ('zeta', DumpMode.SCHEMA, DumpFormat.PLAIN),
        ('zeta', DumpMode.SCHEMA, DumpFormat.CUSTOM),
        ('app', DumpMode.FULL, DumpFormat.PLAIN),
        ('app', DumpMode.FULL, DumpFormat.CUSTOM),
        ('billing', DumpMode.FULL, DumpFormat.PLAIN),
        ('billing', DumpMode.FULL, DumpFormat.CUSTOM),
    ]


def test_globals_failure_aborts_before_classification(make_config, fake_client, script_dumper):
    config = make_config(globals=True)
    client = fake_client(['app'])
    dumper = script_dumper(fail=[(None, DumpMode.GLOBALS, DumpFormat.PLAIN)])
    backup_run = new_run(config)

    with pytest.raises(DumpError):
        BackupCoordinator(config, client, dumper).run(backup_run)

    assert backup_run.state is RunState.ABORTED
    assert not client.classified
    assert file_names(backup_run.path) == ['globals.sql.gz.in_progress']


def test_globals_are_never_custom(make_config, fake_client, script_dumper):
    config = make_config(globals=True, plain=False, custom=True)
    dumper = script_dumper()

    backup_run = BackupCoordinator(config, fake_client([]), dumper).run(new_run(config))

    assert dumper.calls == [(None, DumpMode.GLOBALS, DumpFormat.PLAIN)]
    assert file_names(backup_run.path) == ['globals.sql.gz']


def test_plain_and_custom_for_one_database(make_config, fake_client, script_dumper):
    config = make_config(plain=True, custom=True)

    backup_run = BackupCoordinator(config, fake_client(['app']), script_dumper()).run(
        new_run(config))

    assert file_names(backup_run.path) == ['app.custom', 'app.sql.gz']
    assert len(backup_run.artifacts) == 2


@pytest.mark.parametrize('failing', [DumpFormat.PLAIN, DumpFormat.CUSTOM])
def test_failure_stops_remaining_databases(make_config, fake_client, script_dumper, failing):
    config = make_config(plain=True, custom=True)
    dumper = script_dumper(fail=[('alpha', DumpMode.FULL, failing)])
    backup_run = new_run(config)

    with pytest.raises(DumpError) as e:
        BackupCoordinator(config, fake_client(['alpha', 'beta']), dumper).run(backup_run)

    assert e.value.database == 'alpha'
    assert backup_run.state is RunState.ABORTED
    assert not any(database == 'beta' for database, _, _ in dumper.calls)
    assert not any(x.startswith('beta') for x in file_names(backup_run.path))


def test_schema_failure_stops_full_backups(make_config, fake_client, script_dumper):
    config = make_config(schema_only=('reporting',))
    dumper = script_dumper(fail=[('reporting', DumpMode.SCHEMA, DumpFormat.PLAIN)])
    backup_run = new_run(config)

    with pytest.raises(DumpError):
        BackupCoordinator(config, fake_client(['app', 'reporting']), dumper).run(backup_run)

    assert file_names(backup_run.path) == ['reporting_schema.sql.gz.in_progress']
    assert backup_run.artifacts == []


def test_earlier_artifacts_stay_after_abort(make_config, fake_client, script_dumper):
    config = make_config(globals=True)
    dumper = script_dumper(fail=[('billing', DumpMode.FULL, DumpFormat.PLAIN)])
    backup_run = new_run(config)

    with pytest.raises(DumpError):
        BackupCoordinator(config, fake_client(['app', 'billing']), dumper).run(backup_run)

    assert file_names(backup_run.path) == [
        'app.sql.gz', 'billing.sql.gz.in_progress', 'globals.sql.gz']
    assert [x.file_name for x in backup_run.artifacts] == ['globals.sql.gz', 'app.sql.gz']


def test_no_databases_found(make_config, fake_client, script_dumper):
    config = make_config(globals=True)

    backup_run = BackupCoordinator(config, fake_client([]), script_dumper()).run(
        new_run(config))

    assert backup_run.complete
    assert file_names(backup_run.path) == ['globals.sql.gz']


def test_no_formats_enabled(make_config, fake_client, script_dumper):
    config = make_config(plain=False, custom=False)
    dumper = script_dumper()

    backup_run = BackupCoordinator(config, fake_client(['app']), dumper).run(new_run(config))

    assert backup_run.complete
    assert dumper.calls == []
    assert file_names(backup_run.path) == []


def test_existing_directory_is_reused(make_config, fake_client, script_dumper):
    config = make_config()
    backup_run = new_run(config)
    backup_run.path.mkdir()

    BackupCoordinator(config, fake_client(['app']), script_dumper()).run(backup_run)

    assert file_names(backup_run.path) == ['app.sql.gz']


def test_runs_are_deterministic(make_config, fake_client, script_dumper):
    config = make_config(schema_only=('reporting',), custom=True)
    results = []
    for _ in range(2):
        backup_run = BackupCoordinator(
            config, fake_client(['reporting', 'billing', 'app']), script_dumper()
        ).run(new_run(config))
        results.append([x.file_name for x in backup_run.artifacts])

    assert results[0] == results[1]


def test_schema_suffix_database_keeps_its_own_file(make_config, fake_client, script_dumper):
    config = make_config(schema_only=('x',))

    backup_run = BackupCoordinator(config, fake_client(['x', 'x_schema']), script_dumper()).run(
        new_run(config))

    assert file_names(backup_run.path) == ['x%5Fschema.sql.gz', 'x_schema.sql.gz']
    assert len({x.file_name for x in backup_run.artifacts}) == 2


def test_database_named_globals_keeps_its_own_file(make_config, fake_client, script_dumper):
    config = make_config(globals=True)

    backup_run = BackupCoordinator(config, fake_client(['globals']), script_dumper()).run(
        new_run(config))

    assert file_names(backup_run.path) == ['%67lobals.sql.gz', 'globals.sql.gz']
