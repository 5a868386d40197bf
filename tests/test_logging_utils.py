from __future__ import annotations

import logging
from pathlib import Path

import pytest

from llm_autosetup.logging_utils import configure_logging


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield root
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    for attr in ("_llm_autosetup_configured", "_llm_autosetup_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
    root.setLevel(level)


def test_appends_to_requested_file(tmp_path: Path, clean_root_logger) -> None:
    target = tmp_path / "logs" / "setup.log"
    target.parent.mkdir()
    target.write_text("previous run\n", encoding="utf-8")

    assert configure_logging(str(target), also_console=False) == str(target)
    logging.getLogger("llm_autosetup.test").info("decision recorded")
    for h in clean_root_logger.handlers:
        h.flush()

    text = target.read_text(encoding="utf-8")
    assert text.startswith("previous run\n")
    assert "decision recorded" in text


def test_second_call_keeps_first_path(tmp_path: Path, clean_root_logger) -> None:
    first = configure_logging(str(tmp_path / "a.log"), also_console=False)
    handlers = len(clean_root_logger.handlers)

    assert configure_logging(str(tmp_path / "b.log"), also_console=False) == first
    assert len(clean_root_logger.handlers) == handlers


def test_unwritable_path_falls_back_to_cwd(tmp_path: Path, monkeypatch, clean_root_logger) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    chosen = configure_logging(str(blocker / "sub" / "setup.log"), also_console=False)
    assert chosen == str(tmp_path / "llm-auto-setup.log")


def test_file_keeps_debug_output(tmp_path: Path, clean_root_logger) -> None:
    target = tmp_path / "setup.log"
    configure_logging(str(target), level=logging.INFO, also_console=False)
    logging.getLogger("llm_autosetup.lib.command").debug("STDOUT pulled 4.7 GB")
    for h in clean_root_logger.handlers:
        h.flush()

    text = target.read_text(encoding="utf-8")
    assert "==== llm-auto-setup session" in text
    assert "STDOUT pulled 4.7 GB" in text
