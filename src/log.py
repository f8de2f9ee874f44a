import json
import logging
from typing import Any, Dict

from src.config import APP_NAME, LOG_LEVEL


# =================================================
# Structured JSON logging
# =================================================
class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": APP_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


def _configure_service_logger() -> logging.Logger:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    service_logger = logging.getLogger(APP_NAME)
    service_logger.setLevel(LOG_LEVEL)
    service_logger.handlers = [handler]
    service_logger.propagate = False
    return service_logger


logger = _configure_service_logger()


def get_logger(name: str) -> logging.Logger:
    """Child of the service logger, so every module shares the JSON handler."""
    return logger.getChild(name)
