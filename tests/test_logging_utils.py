import logging
from pathlib import Path

from hybridlink.common.logging_utils import setup_logger


def test_setup_logger_adds_stream_handler() -> None:
    logger = logging.getLogger("hybridlink-test-stream")
    logger.propagate = False
    logger.handlers.clear()

    setup_logger(logger, logging.DEBUG)
    setup_logger(logger, logging.DEBUG)

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)


def test_setup_logger_with_file(tmp_path: Path) -> None:
    logger = logging.getLogger("hybridlink-test-file")
    logger.propagate = False
    logger.handlers.clear()
    log_file = tmp_path / "logs" / "hybridlink.log"

    setup_logger(logger, logging.INFO, log_file)
    logger.info("Generating key pair ...")
    for handler in logger.handlers:
        handler.flush()

    assert "Generating key pair ..." in log_file.read_text()
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
