# clearing_ui/core/log.py
import os

from loguru import logger

from .config import Settings, get_settings

_file_sink_id: int | None = None


def configure_logging(settings: Settings | None = None) -> str:
    """
    Send loguru output to <LOG_DIR>/app.log as well as stderr.

    Safe to call more than once; the file sink is only added the first time.
    Returns the log file path.
    """
    global _file_sink_id
    s = settings or get_settings()
    log_dir = os.path.abspath(s.LOG_DIR)
    log_path = os.path.join(log_dir, "app.log")
    if _file_sink_id is not None:
        return log_path

    os.makedirs(log_dir, exist_ok=True)
    _file_sink_id = logger.add(
        log_path, level=s.LOG_LEVEL, rotation="10 MB", retention="10 days"
    )
    logger.debug("File logging enabled at {}", log_path)
    return log_path
