"""Logging helpers: a TRACE level below DEBUG for per-step VM output."""

import logging

TRACE_LEVEL = logging.DEBUG - 5


def init_tracer():
    """Initialize the logger "trace" mode."""
    from colorama import Fore, Style, init

    init()

    logging.addLevelName(TRACE_LEVEL, f"{Fore.YELLOW}TRACE{Style.RESET_ALL}")

    def trace(self, message, *args, **kwargs):
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(TRACE_LEVEL, message, args, **kwargs)

    setattr(logging, "TRACE", TRACE_LEVEL)
    setattr(logging.getLoggerClass(), "trace", trace)
