"""
Frame Enhancer Logger

Centralized logging for pipeline stages, relayed frames and errors.
Console gets INFO and up; the optional log file gets every stage timing,
tagged with the thread that ran it (relay worker, job workers, Flask).
"""

import logging
import os
from datetime import datetime

LOG_NAME = "frame_enhancer"
CONSOLE_FORMAT = '%(message)s'
FILE_FORMAT = '%(asctime)s | %(levelname)-7s | %(threadName)-12s | %(message)s'


def setup_logger(name: str = LOG_NAME, log_file: bool = True, log_dir: str = None,
                 console_level: int = logging.INFO) -> logging.Logger:
    """
    Build the enhancer logger.

    Args:
        name: Logger name
        log_file: Also write DEBUG output to <log_dir>/<name>.log
        log_dir: Directory for the log file (defaults to this module's folder)
        console_level: Threshold for the console handler

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream = logging.StreamHandler()
    stream.setLevel(console_level)
    stream.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(stream)

    if log_file:
        directory = log_dir or os.path.dirname(os.path.abspath(__file__))
        os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(directory, f"{name}.log"), mode='a')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%H:%M:%S'))
        logger.addHandler(file_handler)

    return logger


_logger = None

def get_logger() -> logging.Logger:
    """Get or create the global logger (console only until configured)."""
    global _logger
    if _logger is None:
        _logger = setup_logger(log_file=False)
    return _logger


def configure(log_file: bool = False, log_dir: str = None) -> logging.Logger:
    """Replace the global logger, e.g. to enable the log file from config."""
    global _logger
    _logger = setup_logger(log_file=log_file, log_dir=log_dir)
    return _logger


def log_stage(profile: str, stage: str, elapsed_ms: float, skipped: bool = False):
    """Log a single pipeline stage."""
    logger = get_logger()
    if skipped:
        logger.debug(f"[STAGE] {profile}/{stage}: skipped")
    else:
        logger.debug(f"[STAGE] {profile}/{stage}: {elapsed_ms:.1f} ms")


def log_frame(report, width: int, height: int):
    """Log a completed enhancement."""
    logger = get_logger()
    logger.info(
        f"[FRAME] {report.profile} {width}x{height} "
        f"{report.processing_time_ms} ms, {report.resolution_increase:+d}% detail"
    )


def log_dropped_frame(frame_id: int, dropped_total: int):
    """Log a queued frame superseded by a newer one."""
    logger = get_logger()
    logger.debug(f"[RELAY] Frame {frame_id} dropped (total dropped: {dropped_total})")


def log_job(job_id: int, status: str, details: str = ""):
    """Log a background job transition."""
    logger = get_logger()
    logger.debug(f"[JOB] {job_id}: {status} {details}".rstrip())


def log_error(message: str, exc: Exception = None):
    """Log an error."""
    logger = get_logger()
    if exc:
        logger.error(f"[ERROR] {message}: {exc}")
    else:
        logger.error(f"[ERROR] {message}")


def log_session_start(role: str = "server", **settings):
    """Log a session marker with the settings the process runs with."""
    logger = get_logger()
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    logger.info(f"\n{'=' * 50}")
    logger.info(f"  Enhancer {role} started: {timestamp}")
    for key, value in sorted(settings.items()):
        logger.info(f"  {key}: {value}")
    logger.info(f"{'=' * 50}")
