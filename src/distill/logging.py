import logging
import sys

from pythonjsonlogger import jsonlogger

_HANDLER_NAME = "distill-json"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configures structured JSON logging for the application.

    Installs a JSON formatter that includes timestamp, level, logger name and
    message on a stdout stream handler attached to the root logger. Calling
    it again only updates the level, so the front end and tests can both
    invoke it safely.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG".

    Returns:
        logging.Logger: The configured root logger instance.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        return root_logger

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s"
    )
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.set_name(_HANDLER_NAME)
    stream_handler.setFormatter(formatter)

    root_logger.handlers = []
    root_logger.addHandler(stream_handler)

    # Chatty HTTP client loggers stay at WARNING unless debugging.
    for logger_name in ["httpx", "httpcore", "urllib3", "google_genai"]:
        logging.getLogger(logger_name).setLevel(
            logging.DEBUG if root_logger.level <= logging.DEBUG else logging.WARNING
        )

    return root_logger
