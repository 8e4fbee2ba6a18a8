"""Shared pytest fixtures for hackmud-sync tests."""

from pathlib import Path

import pytest

from hackmud_sync.core import async_utils
from hackmud_sync.errors import TransformError


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring real filesystem notifications"
    )


def _fake_transform(code: str, extension: str) -> str:
    if "SYNTAX ERROR" in code:
        raise TransformError("unexpected token")
    return code.strip()


@pytest.fixture
def fake_transformer():
    """Deterministic stand-in for the minifier.

    Rejects any source containing ``SYNTAX ERROR`` and otherwise returns
    the stripped source, so blank sources produce empty output.
    """
    return _fake_transform


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    path = tmp_path / "src"
    path.mkdir()
    return path


@pytest.fixture
def hackmud_dir(tmp_path: Path) -> Path:
    path = tmp_path / "hackmud"
    path.mkdir()
    return path


@pytest.fixture
def write_sources(source_dir: Path):
    """Factory fixture creating source files (relative path -> content)."""

    def _write(files: dict[str, str]) -> None:
        for rel_path, content in files.items():
            path = source_dir / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

    return _write


@pytest.fixture
def make_users(hackmud_dir: Path):
    """Factory fixture creating ``<user>.key`` identity markers."""

    def _make(*users: str) -> None:
        for user in users:
            (hackmud_dir / f"{user}.key").write_text("")

    return _make


@pytest.fixture
def deployed(hackmud_dir: Path):
    """Return the deployed path of ``name`` for ``user``."""

    def _deployed(user: str, name: str) -> Path:
        return hackmud_dir / user / "scripts" / f"{name}.js"

    return _deployed


@pytest.fixture(autouse=True)
def _reset_semaphore():
    """The semaphore binds to the loop it first waits on; never share it."""
    yield
    async_utils._semaphore = None
