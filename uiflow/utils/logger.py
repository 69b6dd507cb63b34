# uiflow/utils/logger.py
"""
Centralized logging setup for uiflow.

This module configures the root logger with a JSON formatter on stdout so
step traces and failures from every chain come out as structured records
tagged with the browser session they belong to.
"""
import logging
import os
import sys
from typing import Any, MutableMapping

from pythonjsonlogger import jsonlogger

from uiflow.exceptions import ConfigurationError
from uiflow.utils.config import get_config
from uiflow.utils.log_sinks import SessionIdFilter

_LOGGING_CONFIGURED = False


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Extends the standard logging adapter to support structured logging.

    Any dictionary passed via `extra` is nested under `extra_data` so the
    JSON formatter renders it as one object rather than loose fields that
    could clash with reserved LogRecord attributes.
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        """Processes the log message and keyword arguments.

        :param msg: The original log message.
        :type msg: str
        :param kwargs: The keyword arguments passed to the log call.
        :type kwargs: MutableMapping[str, Any]
        :return: The processed message and keyword arguments.
        :rtype: tuple[str, MutableMapping[str, Any]]
        """
        original_extra_content = kwargs.get("extra")
        if original_extra_content is not None:
            kwargs["extra"] = {"extra_data": original_extra_content}
        return msg, kwargs


def _configured_level() -> str:
    try:
        return str(get_config().get("logging", {}).get("level", "info")).upper()
    except ConfigurationError:
        return os.getenv("UIFLOW_LOG_LEVEL", "info").upper()


def setup_logger(
    name: str,
) -> StructuredLoggerAdapter:
    """Sets up the root logger and returns a structured child logger.

    On the first call the root logger gets a JSON stdout handler; later
    calls only look up the named logger.

    :param name: The name of the logger, typically `__name__`.
    :type name: str
    :return: A `StructuredLoggerAdapter` instance ready for use.
    :rtype: StructuredLoggerAdapter
    """
    global _LOGGING_CONFIGURED

    if not _LOGGING_CONFIGURED:
        root_logger = logging.getLogger()

        log_level_str = _configured_level()
        level = getattr(logging, log_level_str, logging.INFO)
        root_logger.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(session_id)s %(message)s"
        )
        console_handler.setFormatter(formatter)
        console_handler.addFilter(SessionIdFilter())
        root_logger.addHandler(console_handler)

        root_logger.debug(f"Root logger configured with JSON stdout handler. Level: {log_level_str}")
        _LOGGING_CONFIGURED = True

    logger_instance = logging.getLogger(name)
    return StructuredLoggerAdapter(logger_instance, {})
