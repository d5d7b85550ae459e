from pathlib import Path

import pytest

from conftest import make_repo
from rpos.domain.errors import PersistenceError
from rpos.repositories.sqlite_repo import SqliteRepository


def test_fresh_database_is_migrated_to_latest(tmp_path: Path):
    repo = make_repo(tmp_path)

    assert repo.schema_version() == 2
    assert list(tmp_path.glob("*.bak")) == []


def test_init_is_idempotent_and_skips_backup(tmp_path: Path):
    repo = make_repo(tmp_path)
    repo.init_db()
    repo.init_db()

    assert repo.schema_version() == 2
    assert list(tmp_path.glob("*.bak")) == []


def test_pending_migration_takes_backup(tmp_path: Path):
    repo = make_repo(tmp_path)
    conn = repo._conn()
    conn.execute("DELETE FROM schema_migrations WHERE version = 2")
    conn.close()

    repo.run_migrations()

    assert repo.schema_version() == 2
    assert len(list(tmp_path.glob("pos.pre_migration_*.bak"))) == 1


def test_migration_failure_restores_db(tmp_path: Path):
    class BrokenMigrationRepo(SqliteRepository):
        def _migration_v2_settings(self, cur):
            raise RuntimeError("forced migration failure")

    repo = make_repo(tmp_path, "broken.db")
    conn = repo._conn()
    conn.execute("DELETE FROM schema_migrations WHERE version = 2")
    conn.close()
    before = repo.schema_version()

    broken = BrokenMigrationRepo(tmp_path / "broken.db")

    with pytest.raises(PersistenceError, match="Original database restored"):
        broken.run_migrations()

    assert repo.schema_version() == before == 1


def test_unreachable_database_is_a_persistence_error(tmp_path: Path):
    repo = SqliteRepository(tmp_path / "missing_dir" / "x.db")

    with pytest.raises(PersistenceError):
        repo.init_db()
