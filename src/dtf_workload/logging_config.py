import logging
import logging.config
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "/tmp/dtf-workload.log")

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)-6s %(name)8s:%(lineno)d %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": sys.stdout,
        },
        "file": {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": LOG_FILE,
            "mode": "a",
        },
    },
    "loggers": {
        "dtf_workload": {
            "level": LOG_LEVEL,
            "handlers": ["console", "file"],
            "propagate": False, # Don't pass 'dtf_workload' logs up to the root logger
        },
        "uvicorn.access": {
             "level": "WARNING", # Quiets the noisy access logs
             "handlers": ["console", "file"],
             "propagate": False,
        },
        "web3": {
            "level": "WARNING", # Provider retries and middleware chatter
            "handlers": ["console", "file"],
            "propagate": False,
        },
        "urllib3": {
            "level": "WARNING",
            "handlers": ["console", "file"],
            "propagate": False,
        },
    },
    # Default for all other loggers
    "root": {
        "level": "WARNING",
        "handlers": ["console", "file"],
    },
}

def setup_logging():
    """ Apply the logging configuration. """
    logging.config.dictConfig(LOGGING_CONFIG)
    os.environ.setdefault("PYTHONUNBUFFERED", "1")
