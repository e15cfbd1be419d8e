from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from print_driver_upgrader import logging_config


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    logging_config._reset_for_tests()
    yield
    logging_config._reset_for_tests()


def _tagged_handlers() -> list[logging.Handler]:
    return [handler for handler in logging.getLogger().handlers if getattr(handler, logging_config._HANDLER_TAG, False)]


def test_configure_logging_writes_timestamped_lines(tmp_path: Path) -> None:
    log_path = logging_config.configure_logging(tmp_path / "logs" / "upgrade.log", console=False)
    logging.getLogger("services.upgrade").info("HP Universal Printing PCL 6 upgraded")
    for handler in _tagged_handlers():
        handler.flush()
    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert lines[-1].endswith("INFO [services.upgrade] HP Universal Printing PCL 6 upgraded")
    assert lines[-1][:4].isdigit()


def test_configure_logging_is_idempotent(tmp_path: Path) -> None:
    first = logging_config.configure_logging(tmp_path / "a.log")
    second = logging_config.configure_logging(tmp_path / "b.log")
    assert first == second == tmp_path / "a.log"
    assert len(_tagged_handlers()) == 2


def test_log_file_is_appended_across_runs(tmp_path: Path) -> None:
    log_path = tmp_path / "upgrade.log"
    log_path.write_text("previous run\n", encoding="utf-8")
    logging_config.configure_logging(log_path, console=False)
    logging.getLogger("test").info("next run")
    logging_config._reset_for_tests()
    content = log_path.read_text(encoding="utf-8")
    assert content.startswith("previous run\n")
    assert "next run" in content


def test_resolve_log_path_honours_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PRINT_DRIVER_UPGRADE_LOG_FILE", raising=False)
    monkeypatch.setenv("PRINT_DRIVER_UPGRADE_LOG_DIR", str(tmp_path / "dir"))
    assert logging_config.resolve_log_path() == tmp_path / "dir" / "upgrade.log"
    monkeypatch.setenv("PRINT_DRIVER_UPGRADE_LOG_FILE", str(tmp_path / "explicit.log"))
    assert logging_config.resolve_log_path() == tmp_path / "explicit.log"


def test_resolve_log_path_defaults_to_application_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PRINT_DRIVER_UPGRADE_LOG_FILE", raising=False)
    monkeypatch.delenv("PRINT_DRIVER_UPGRADE_LOG_DIR", raising=False)
    monkeypatch.setenv("PRINT_DRIVER_UPGRADE_HOME", str(tmp_path / "home"))
    assert logging_config.resolve_log_path() == tmp_path / "home" / "logs" / "upgrade.log"
