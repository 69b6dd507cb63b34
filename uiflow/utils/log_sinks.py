# uiflow/utils/log_sinks.py
"""
Logging filters that attach the active browser session to every record.
"""
import contextvars
import logging
from typing import Optional

# Set by session setup so that loggers anywhere below a chain can tag
# their records without the session id being passed around.
session_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "session_id", default=None
)


class SessionIdFilter(logging.Filter):
    """
    A logging filter that injects the current session_id from the contextvar
    into the log record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Adds the session_id to the log record if it exists in the context.

        :param record: The log record being processed.
        :type record: logging.LogRecord
        :return: Always returns True to allow the record to be processed.
        :rtype: bool
        """
        record.session_id = session_id_context.get()
        return True
