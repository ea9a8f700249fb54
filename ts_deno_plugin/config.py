"""
Logging setup and environment configuration for the Deno plugin.
"""

import os
import sys
import logging
import logging.handlers
from pathlib import Path


def setup_logging(log_level: str = None, log_file: str = None):
    """Setup logging configuration for the plugin process.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
    """
    # Get log level from environment or use INFO as default
    level = (log_level or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    numeric_level = getattr(logging, level, logging.INFO)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # tsserver owns stdout
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.info(f"Logging configured with level: {level}")


def get_config():
    """Get plugin configuration from environment variables."""
    return {
        'DENO_DIR': os.environ.get('DENO_DIR'),
        'LOG_LEVEL': os.environ.get('LOG_LEVEL', 'INFO'),
        'LOG_FILE': os.environ.get('LOG_FILE'),
    }
