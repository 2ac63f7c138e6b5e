"""Tests for roll argument construction and project path pre-flight."""

import os
from pathlib import Path

import pytest

from rolldev_mcp import commands
from rolldev_mcp.config import RollConfig
from rolldev_mcp.errors import MissingArgumentError, PathNotFoundError


def test_static_argument_vectors():
    assert commands.start_project_args() == ["env", "up"]
    assert commands.stop_project_args() == ["env", "down"]
    assert commands.start_svc_args() == ["svc", "up"]
    assert commands.stop_svc_args() == ["svc", "down"]
    assert commands.status_args() == ["status"]


def test_db_query_args():
    assert commands.db_query_args("SELECT 1") == ["db", "-e", "SELECT 1"]


def test_php_script_args_with_extras():
    assert commands.php_script_args("bin/test.php", ["--a", "b"]) == [
        "cli",
        "php",
        "bin/test.php",
        "--a",
        "b",
    ]
    assert commands.php_script_args("x.php") == ["cli", "php", "x.php"]


def test_magento_cli_args():
    assert commands.magento_cli_args("cache:flush") == ["magento", "cache:flush"]
    assert commands.magento_cli_args("indexer:reindex", ["catalog_product_price"]) == [
        "magento",
        "indexer:reindex",
        "catalog_product_price",
    ]


def test_composer_args_split_on_whitespace():
    assert commands.composer_args("require symfony/console") == [
        "composer",
        "require",
        "symfony/console",
    ]
    assert commands.composer_args("  install   --no-dev ") == ["composer", "install", "--no-dev"]


def test_magento2_init_args():
    assert commands.magento2_init_args("test-project", "2.4.7", "/tmp/test") == [
        "magento2-init",
        "test-project",
        "2.4.7",
        "/tmp/test",
    ]
    assert commands.magento2_init_args("test-project") == ["magento2-init", "test-project"]
    assert commands.magento2_init_args("test-project", "", None) == [
        "magento2-init",
        "test-project",
    ]


@pytest.mark.parametrize(
    "build",
    [
        lambda: commands.db_query_args(""),
        lambda: commands.php_script_args(None),
        lambda: commands.magento_cli_args("   "),
        lambda: commands.composer_args(""),
        lambda: commands.magento2_init_args(""),
    ],
)
def test_required_inputs(build):
    with pytest.raises(MissingArgumentError):
        build()


@pytest.mark.parametrize("value", ["", None])
def test_resolve_project_path_missing(value):
    with pytest.raises(MissingArgumentError, match="project_path is required"):
        commands.resolve_project_path(value)


def test_resolve_project_path_not_found(tmp_path: Path):
    missing = tmp_path / "missing"
    with pytest.raises(PathNotFoundError) as exc_info:
        commands.resolve_project_path(str(missing))
    assert str(missing) in str(exc_info.value)
    assert exc_info.value.code == "PATH_NOT_FOUND"


def test_resolve_project_path_strips_trailing_slashes(project_dir: Path):
    assert commands.resolve_project_path(f"{project_dir}///") == str(project_dir)


def test_resolve_project_path_relative(project_dir: Path):
    # hermetic_env chdirs into tmp_path, which contains project_dir
    assert commands.resolve_project_path("shop/") == os.path.abspath("shop")


def test_command_specs_cover_all_tools():
    assert len(commands.COMMAND_SPECS) == 10
    families = {spec.tool: spec.timeout_family for spec in commands.COMMAND_SPECS.values()}
    assert families["rolldev_composer"] == "dependency"
    assert families["rolldev_magento2_init"] == "init"
    assert families["rolldev_db_query"] == "general"


def test_default_timeouts_per_family():
    roll = RollConfig()
    assert roll.timeout_for("general") == 300
    assert roll.timeout_for("dependency") == 600
    assert roll.timeout_for("init") == 900
