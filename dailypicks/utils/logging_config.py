"""
Logging setup for Daily Slate Pick'em

Console output always; rotating files (app, errors, background jobs) when
LOG_TO_FILE is set. Records emitted inside a request carry its method, URL
and client address; records from scheduler jobs show "job" instead.
"""

import copy
import logging
import logging.handlers
import os

from flask import has_request_context, request

DATEFMT = "%Y-%m-%d %H:%M:%S"
BASE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Loggers whose records also go to scheduler.log
JOB_LOGGERS = (
    "dailypicks.services.scheduler_service",
    "dailypicks.services.slate_state",
    "dailypicks.services.slate_builder",
    "dailypicks.services.finalization",
    "dailypicks.providers",
)

QUIET_LOGGERS = (
    "werkzeug",
    "urllib3",
    "requests",
    "flask_limiter",
    "apscheduler",
    "engineio",
    "socketio",
)


class RequestContextFilter(logging.Filter):
    """Stamp records with the originating request, or 'job' outside one"""

    def filter(self, record):
        if has_request_context():
            record.origin = f"{request.method} {request.path}"
            record.remote_addr = request.remote_addr or "-"
        else:
            record.origin = "job"
            record.remote_addr = "-"
        return True


class ColoredFormatter(logging.Formatter):
    """Level-colored console output for development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # Other handlers share the record
        record = copy.copy(record)
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_handler(log_dir, filename, level, fmt, max_mb, backups):
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, filename),
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATEFMT))
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(app):
    """Configure the root logger from LOG_LEVEL, LOG_TO_CONSOLE, LOG_TO_FILE and LOG_DIR"""
    log_level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # create_app may run more than once per process (tests, CLI)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for name in JOB_LOGGERS:
        job_logger = logging.getLogger(name)
        for handler in job_logger.handlers[:]:
            job_logger.removeHandler(handler)

    if app.config.get("LOG_TO_CONSOLE", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        if app.debug:
            console_handler.setFormatter(
                ColoredFormatter(
                    BASE_FORMAT + " [%(filename)s:%(lineno)d]", datefmt="%H:%M:%S"
                )
            )
        else:
            console_handler.setFormatter(logging.Formatter(BASE_FORMAT, datefmt=DATEFMT))
        console_handler.addFilter(RequestContextFilter())
        root_logger.addHandler(console_handler)

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(
                log_dir,
                "dailypicks.log",
                log_level,
                BASE_FORMAT + " [%(origin)s] [%(remote_addr)s]",
                max_mb=10,
                backups=5,
            )
        )
        root_logger.addHandler(
            _rotating_handler(
                log_dir,
                "errors.log",
                logging.ERROR,
                BASE_FORMAT + " [%(pathname)s:%(lineno)d] [%(origin)s]",
                max_mb=5,
                backups=3,
            )
        )

        job_handler = _rotating_handler(
            log_dir, "scheduler.log", logging.INFO, BASE_FORMAT, max_mb=5, backups=3
        )
        for name in JOB_LOGGERS:
            logging.getLogger(name).addHandler(job_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - Level: {logging.getLevelName(log_level)}")
