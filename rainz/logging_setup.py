"""
Logging configuration shared by the CLI and the API server.

Console output goes to stdout; the full log is appended to a UTF-8 file
under logs/.
"""

import logging
import sys
from pathlib import Path

from rainz.config import Settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(settings: Settings) -> None:
    """Configure the root logger from settings (LOG_LEVEL, LOG_FILE)."""
    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path, mode='a', encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
