"""Tests for log sinks, level filtering and cleanup."""

import tempfile
from pathlib import Path

import pytest

from rebasecat.core.log import (
    ConsoleSink,
    FileSink,
    Logger,
    LogfireSink,
    OTLPSink,
    setup_logger,
)


@pytest.fixture(autouse=True)
def restore_console_logging():
    yield
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "rebasecat-tests",
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


def file_logger(tmp_path, level="info", **file_options):
    log_file = tmp_path / "test.log"
    logger = setup_logger(
        log_root=tmp_path,
        run_name="test",
        console=ConsoleSink(enabled=False),
        otlp=OTLPSink(enabled=False),
        file=FileSink(enabled=True, level=level, path=str(log_file), **file_options),
        logfire=LogfireSink(enabled=False),
    )
    return logger, log_file


@pytest.mark.parametrize(
    "level,included,excluded",
    [
        ("spew", ["SPEW", "TRACE", "DEBUG", "INFO"], []),
        ("trace", ["TRACE", "DEBUG", "INFO"], ["SPEW"]),
        ("info", ["INFO", "WARN", "ERROR"], ["SPEW", "TRACE", "DEBUG"]),
        ("error", ["ERROR"], ["DEBUG", "INFO", "WARN"]),
    ],
)
def test_file_level_filtering(tmp_path, level, included, excluded):
    logger, log_file = file_logger(tmp_path, level=level)

    logger.spew("SPEW message")
    logger.trace("TRACE message")
    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.warn("WARN message")
    logger.error("ERROR message")
    logger.close()

    content = log_file.read_text()
    for name in included:
        assert f"{name} message" in content
    for name in excluded:
        assert f"{name} message" not in content


def test_text_format_with_fields(tmp_path):
    logger, log_file = file_logger(
        tmp_path, format_template="[{level}] {message}"
    )

    logger.info("Staged file", path="src/a.py")
    logger.close()

    line = log_file.read_text().strip()
    assert line.startswith("[info] Staged file")
    assert "path='src/a.py'" in line


def test_escaped_messages_stay_on_one_line(tmp_path):
    logger, log_file = file_logger(
        tmp_path,
        format_template="{message}",
        escape_special_characters=True,
    )

    logger.info("Round failed:\nFile a.py: rejected")
    logger.close()

    content = log_file.read_text()
    assert content.startswith("Round failed:\\nFile a.py: rejected")
    assert content.count("\n") == 1


def test_logger_closes_file_via_context_manager(tmp_path):
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(tmp_path / "test.log")),
        otlp=OTLPSink(enabled=False),
        logfire=LogfireSink(enabled=False),
    )
    logger.setup(log_root=tmp_path, run_name="test")

    assert not logger.file._file.closed
    with pytest.raises(ValueError), logger:
        raise ValueError("boom")
    assert logger.file._file.closed


def test_config_close_cascades_to_sinks(tmp_path):
    from rebasecat.core.config import Config, LLMConfig

    config = Config(
        logger=Logger(
            console=ConsoleSink(enabled=False),
            file=FileSink(enabled=True, path=str(tmp_path / "cascade.log")),
            otlp=OTLPSink(enabled=False),
            logfire=LogfireSink(enabled=False),
        ),
        llm=LLMConfig(model="test:model"),
        log_root=tmp_path,
    )
    assert not config.logger.file._file.closed

    config.close()

    assert config.logger.file._file.closed
