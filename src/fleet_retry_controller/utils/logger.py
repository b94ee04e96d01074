# logger.py
import logging
import os

from rich.console import Console
from rich.logging import RichHandler


# This module sets up a logger for the application.
def setup_logging(config, worker_name="proc", verbose=False, log_file=None):
    prefix = f"{worker_name}.{os.getpid()}"

    # Handle both cases: config dict passed directly or full config with 'logging' key
    logging_config = config.get('logging', config) if isinstance(config, dict) else {}

    log_file = log_file or logging_config.get('file')
    log_level = 'DEBUG' if verbose else str(logging_config.get('level') or 'INFO').upper()
    level = getattr(logging, log_level, logging.INFO)

    # Log lines go to stderr so stdout stays free for the statistics report
    handlers = [RichHandler(console=Console(stderr=True), show_path=False, log_time_format="%Y-%m-%d %H:%M:%S")]
    handlers[0].setFormatter(logging.Formatter(f"[{prefix}] %(message)s"))

    if log_file:
        # Create the directory if it doesn't exist
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            f"[{prefix}] %(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # urllib3 retries and connection chatter only matter when debugging
    logging.getLogger('urllib3').setLevel(logging.DEBUG if verbose else logging.WARNING)
