"""
Logging setup for StudySync.

Console output plus a rotating file under LOG_DIR. The Flask app logger
is the ``studysync`` logger, so modules can use either ``current_app.logger``
or ``logging.getLogger(__name__)``.
"""

import os
import logging
import logging.handlers
from flask.logging import default_handler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(module)s: %(message)s"


def setup_logging(app):
    """
    Configure the app logger from LOG_LEVEL and LOG_DIR.

    Returns the configured logger.
    """
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    logger = app.logger
    logger.setLevel(level)
    logger.removeHandler(default_handler)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "studysync.log"),
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    logger.info(f"Logging initialized: level={logging.getLevelName(level)}, dir={log_dir}")
    return logger
