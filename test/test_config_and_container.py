from pathlib import Path

import pytest

from rpos.application.container import build_container, build_repository
from rpos.config import Settings, get_app_paths, load_settings
from rpos.domain.errors import ValidationError
from rpos.domain.pnl import CogsPolicy
from rpos.domain.sku import RandomSkuPolicy
from rpos.repositories.postgrest_repo import PostgrestRepository
from rpos.repositories.sqlite_repo import SqliteRepository


def test_defaults():
    s = load_settings({})

    assert s == Settings()
    assert s.backend == "sqlite"
    assert s.store_timeout == 10.0


def test_env_overrides():
    s = load_settings({
        "RPOS_BACKEND": "PostgREST",
        "RPOS_POSTGREST_URL": "https://example.supabase.co",
        "RPOS_POSTGREST_KEY": "anon",
        "RPOS_STORE_TIMEOUT": "2.5",
        "RPOS_SKU_POLICY": "random",
        "RPOS_COGS_POLICY": "strict",
        "RPOS_SEED_DEMO": "yes",
    })

    assert s.backend == "postgrest"
    assert s.store_timeout == 2.5
    assert s.sku_policy == "random"
    assert s.cogs_policy == "strict"
    assert s.seed_demo is True


@pytest.mark.parametrize("env, message", [
    ({"RPOS_BACKEND": "mysql"}, "RPOS_BACKEND"),
    ({"RPOS_STORE_TIMEOUT": "0"}, "RPOS_STORE_TIMEOUT"),
    ({"RPOS_STORE_TIMEOUT": "soon"}, "RPOS_STORE_TIMEOUT"),
    ({"RPOS_STORE_TIMEOUT": "nan"}, "RPOS_STORE_TIMEOUT"),
    ({"RPOS_STORE_TIMEOUT": "inf"}, "RPOS_STORE_TIMEOUT"),
    ({"RPOS_STORE_TIMEOUT": "-Infinity"}, "RPOS_STORE_TIMEOUT"),
    ({"RPOS_SKU_POLICY": "uuid"}, "RPOS_SKU_POLICY"),
    ({"RPOS_COGS_POLICY": "ignore"}, "RPOS_COGS_POLICY"),
    ({"RPOS_BACKEND": "postgrest"}, "RPOS_POSTGREST_URL"),
])
def test_invalid_settings_are_rejected(env, message):
    with pytest.raises(ValidationError, match=message):
        load_settings(env)


def test_app_paths_honour_home_override(tmp_path: Path):
    paths = get_app_paths(env={"RPOS_HOME": str(tmp_path / "pos")})

    assert paths.base_dir == tmp_path / "pos"
    assert paths.db_path == tmp_path / "pos" / "retail_pos.db"
    assert paths.logs_dir.is_dir()


def test_build_repository_picks_backend(tmp_path: Path):
    assert isinstance(build_repository(tmp_path / "a.db", Settings()), SqliteRepository)
    hosted = build_repository(
        tmp_path / "a.db",
        Settings(backend="postgrest", postgrest_url="https://x.test/", postgrest_key="k", store_timeout=3),
    )
    assert isinstance(hosted, PostgrestRepository)
    assert hosted.base_url == "https://x.test"
    assert hosted.timeout == 3.0


def test_container_wires_services_and_seeds_demo(tmp_path: Path):
    container = build_container(
        tmp_path / "pos.db", Settings(sku_policy="random", cogs_policy="strict", seed_demo=True)
    )

    assert isinstance(container.inventory.sku_policy, RandomSkuPolicy)
    assert container.reporting.cogs_policy is CogsPolicy.STRICT
    assert len(container.inventory.list_products()) == 5
    assert container.reporting.settings is container.company


def test_container_without_seed_starts_empty(tmp_path: Path):
    container = build_container(tmp_path / "pos.db")

    assert container.inventory.list_products() == []
