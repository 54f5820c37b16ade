"""
Logging configuration for the Manual Pilot backend.
Provides console and file logging with proper formatting and rotation.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from config import Config

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ('httpx', 'httpcore', 'werkzeug', 'engineio', 'socketio', 'google', 'PIL')


def setup_logging():
    """
    Configure application-wide logging.
    Creates logs directory and sets up both console and file handlers.
    """
    Config.ensure_directories()

    # Console handler - INFO level; step descriptions are Chinese text
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    if hasattr(console_handler.stream, 'reconfigure'):
        console_handler.stream.reconfigure(encoding='utf-8', errors='replace')

    # File handler with rotation - DEBUG level for detailed debugging
    file_handler = RotatingFileHandler(
        os.path.join(Config.LOGS_DIR, 'app.log'),
        maxBytes=10485760,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info("[SYSTEM] Logging configured successfully")
