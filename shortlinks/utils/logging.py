"""JSON logging for the shortlinks Lambdas

Each handler package calls `initialize_logging()` from its `__init__.py`, so
logging is configured before the handler module (and its service) is imported.

Every record is written to stdout as one JSON object. Fields passed through
`extra` are copied next to the standard ones:

    logger.info('Link created.', extra={'event': 'LINK_CREATED', 'shortcode': 'aB3xZ9'})

    {"timestamp": "2025-10-15T12:00:00.000Z", "level": "INFO",
     "logger": "shortlinks.lambdas.shorten_url.app", "message": "Link created.",
     "event": "LINK_CREATED", "shortcode": "aB3xZ9"}

The level is read from the LOG_LEVEL environment variable (default INFO).
"""

import os
import json
import logging
import logging.config
from datetime import datetime, UTC
from typing import Any

from shortlinks.constants import ENV


# Attributes every LogRecord carries; anything else came in through `extra`
RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Render LogRecords, including their `extra` fields, as JSON lines"""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        return created.isoformat(timespec='milliseconds').replace('+00:00', 'Z')

    def format(self, record: logging.LogRecord) -> str:
        log = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        log.update((key, value) for key, value in vars(record).items() if key not in RECORD_ATTRS)

        if record.exc_info:
            log['exception'] = self.formatException(record.exc_info)

        return json.dumps(log, default=str)


def logging_config(level: str) -> dict[str, Any]:
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {'json': {'()': JsonFormatter}},
        'handlers': {
            'stdout': {
                'class': 'logging.StreamHandler',
                'formatter': 'json',
                'stream': 'ext://sys.stdout',
            }
        },
        'root': {'level': level.upper(), 'handlers': ['stdout']},
    }


def initialize_logging() -> None:
    logging.config.dictConfig(logging_config(os.getenv(ENV.App.LOG_LEVEL, 'INFO')))
