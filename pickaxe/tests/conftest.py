"""Unit tests configuration file."""

import shutil
from pathlib import Path

import pytest

from pickaxe.generator import load_dir

FIXTURE_DIR = Path(__file__).parent / "generator"


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def schema_dir():
    return FIXTURE_DIR


@pytest.fixture
def schema():
    return load_dir(FIXTURE_DIR)


@pytest.fixture
def handler_source():
    return (FIXTURE_DIR / "packet_handler.rs").read_text(encoding="utf-8")


@pytest.fixture
def project(tmp_path):
    """A server project whose packet handler is a copy of the fixture."""
    target = tmp_path / "src" / "network" / "packet_handler.rs"
    target.parent.mkdir(parents=True)
    shutil.copy(FIXTURE_DIR / "packet_handler.rs", target)
    return tmp_path
