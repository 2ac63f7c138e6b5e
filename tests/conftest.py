from pathlib import Path
import os
import stat
import sys

from _pytest.monkeypatch import MonkeyPatch
import pytest

# Ensure repo root is importable when running without an editable install.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rolldev_mcp.config import RollDevMcpConfig  # noqa: E402

SAMPLE_STATUS = """\
Found the following running environments:

ai-demo a magento2 project
  Project Directory: /Users/dev/ai-demo
  Project URL: https://app.ai-demo.test
  Docker Network: ai-demo_default
  Containers Running: 9

test-project a magento2 project
  Project Directory: /Users/dev/test-project
  Project URL: https://app.test-project.test
  Docker Network: test-project_default
  Containers Running: 5

RollDev Services
NAME              STATE
rolldev-dnsmasq   running
rolldev-mailhog   running
"""

# Stand-in for the roll CLI: prints its cwd and argv, or canned status output.
FAKE_ROLL = """\
#!/bin/sh
if [ "$1" = "status" ]; then
  printf '%s' "$FAKE_ROLL_STATUS"
else
  echo "cwd=$(pwd)"
  echo "args=$*"
fi
if [ -n "$FAKE_ROLL_STDERR" ]; then
  printf '%s\\n' "$FAKE_ROLL_STDERR" >&2
fi
exit "${FAKE_ROLL_EXIT:-0}"
"""


@pytest.fixture(scope="session", autouse=True)
def _session_env(tmp_path_factory: pytest.TempPathFactory) -> None:
    """
    Session-level hermetic env that does not depend on the function-scoped
    `monkeypatch` fixture (avoids ScopeMismatch).
    """
    home = tmp_path_factory.mktemp("home")
    mp = MonkeyPatch()
    mp.setenv("HOME", str(home))
    for name in list(os.environ):
        if name.startswith("ROLLDEV_"):
            mp.delenv(name)
    try:
        yield
    finally:
        mp.undo()


@pytest.fixture(autouse=True)
def hermetic_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Autouse: each test runs in its own tmp cwd, and log files stay inside tmp.
    """
    monkeypatch.chdir(tmp_path)
    tmpdir = tmp_path / "systmp"
    tmpdir.mkdir()
    monkeypatch.setattr("tempfile.tempdir", str(tmpdir))
    return tmp_path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """An existing project directory."""
    path = tmp_path / "shop"
    path.mkdir()
    return path


@pytest.fixture
def fake_roll(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Executable fake `roll` script; behavior is driven by FAKE_ROLL_* env vars."""
    if os.name != "posix":
        pytest.skip("fake roll script needs a POSIX shell")
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "roll"
    script.write_text(FAKE_ROLL)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("FAKE_ROLL_STATUS", SAMPLE_STATUS)
    return script


@pytest.fixture
def config(fake_roll: Path) -> RollDevMcpConfig:
    """Config pointing at the fake roll binary with short timeouts."""
    cfg = RollDevMcpConfig()
    cfg.roll.binary = str(fake_roll)
    cfg.roll.timeout = 10
    cfg.roll.dependency_timeout = 20
    cfg.roll.init_timeout = 30
    cfg.roll.kill_grace = 1.0
    return cfg
