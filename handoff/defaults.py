"""Default values for handoff."""

from enum import IntEnum


class EXITCODES(IntEnum):
    """Exit codes for the handoff command line."""

    SUCCESS = 0
    """Successful execution."""
    ERROR = 1
    """General unspecified error, including unreadable input files."""
    CONFIGURATION_ERROR = 2
    """An error in the session configuration."""
    SESSION_ERROR = 3
    """A unit did not finish or the consumed items did not match the produced ones."""


DEFAULT_QUEUE_CAPACITY = 5
DEFAULT_ITEM_PREFIX = "Item-"
DEFAULT_SINK_NAME = "main"
DEFAULT_SALES_DATA = "pipeline_examples/sales_data.csv"
DEFAULT_TOP_N = 5
DEFAULT_LOG_FORMAT = "%(asctime)-15s %(threadName)-22s %(name)-12s %(levelname)-8s: %(message)s"
DEFAULT_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# dictconfig as described in
# https://docs.python.org/3/library/logging.config.html#configuration-dictionary-schema
DEFAULT_LOG_CONFIG: dict = {
    "version": 1,
    "formatters": {
        "handoff": {
            "format": DEFAULT_LOG_FORMAT,
            "datefmt": DEFAULT_LOG_DATE_FORMAT,
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "handoff",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "root": {"level": "INFO", "handlers": ["console"]},
    },
    "filters": {},
    "disable_existing_loggers": False,
}
