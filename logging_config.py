# logging_config.py
import logging
import os
from logging.handlers import RotatingFileHandler
from dotenv import load_dotenv

load_dotenv()
# Use an environment variable for the log file, with a default
LOG_FILE = os.environ.get("LOG_FILE_PATH", "/tmp/hexbear_app.log")


def setup_logging(level=logging.INFO):
    """Configures a rotating file logger for the entire application."""
    logger = logging.getLogger()

    # Avoid adding handlers multiple times
    if any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return

    logger.setLevel(level)

    # 10MB per file, keep last 5 files
    handler = RotatingFileHandler(LOG_FILE, maxBytes=10*1024*1024, backupCount=5)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
