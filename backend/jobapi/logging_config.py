"""
Logging setup shared by the API server and the command-line runner.

Console output keeps the ANSI colors used in progress lines; the log file
gets the same messages with the color codes stripped.
"""

import logging
import re

from jobapi.config import settings


# Custom formatter to strip ANSI color codes from file logs
class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        message = super().format(record)
        return self.ansi_escape.sub('', message)


def setup_logging(level: str = None):
    """Configure root logging with a color-stripped file handler and a console handler."""
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, (level or settings.log_level).upper())

    file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
    file_handler.setFormatter(ColorStripFormatter(settings.log_format))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(settings.log_format))

    logging.basicConfig(
        level=level,
        handlers=[file_handler, console_handler],
        force=True  # Override any existing configuration
    )

    # Run loggers live under "scraper."; keep them at the configured level
    logging.getLogger('scraper').setLevel(level)
