import logging
import sys

_LOGGER_NAME = "taskpilot"
_CONFIGURED_ATTR = "_taskpilot_handler"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _parse_level(raw: str) -> int:
    return getattr(logging, raw.strip().upper(), logging.INFO)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stdout handler to the package logger once."""
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(_parse_level(level))

    if not any(getattr(h, _CONFIGURED_ATTR, False) for h in logger.handlers):
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        setattr(handler, _CONFIGURED_ATTR, True)
        logger.addHandler(handler)

    return logger
