"""
Structured logging for the Mallard assistant.

structlog on top of the standard logging module, configured once at start-up
from AppConfig. Records go to stderr: stdout belongs to the interactive
session, and the default WARNING level keeps routine records out of sight.

Usage:
    logger = get_module_logger()
    logger.info("Loaded table schema", table_name="orders", trace_id=current_trace_id())
"""

import json
import logging
import sys
from typing import Any, Optional

import structlog

from mallard.config import AppConfig
from mallard.config_constants import LogFormat

PACKAGE_PREFIX = 'mallard.'

LEVEL_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}
RESET = '\033[0m'

# Keys rendered in the fixed part of a console line
_CONSOLE_FIXED_KEYS = frozenset({'timestamp', 'level', 'module', 'event', 'trace_id', 'logger'})

_logging_configured = False


def _add_module_info(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    """
    Add a short 'module' field.

    "mallard.services.conversation_service" becomes
    "services.conversation_service"; other loggers keep their full name.
    """
    logger_name = event_dict.get('logger') or 'unknown'
    if logger_name.startswith(PACKAGE_PREFIX):
        event_dict['module'] = '.'.join(logger_name.split('.')[-2:])
    else:
        event_dict['module'] = logger_name
    return event_dict


def _pretty_json_renderer(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> str:
    return json.dumps(event_dict, indent=2, ensure_ascii=False, default=str)


def _console_formatter(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> str:
    """
    Render one line: time, colored level, module, event, short trace ID,
    then the remaining fields as key=value pairs.
    """
    level = str(event_dict.get('level', '')).upper()
    color = LEVEL_COLORS.get(level, '')

    parts = [
        str(event_dict.get('timestamp', '')),
        f"{color}{level:<8}{RESET if color else ''}",
        f"{event_dict.get('module', '')}:",
        str(event_dict.get('event', '')),
    ]

    trace_id = event_dict.get('trace_id')
    if trace_id:
        parts.append(f"[{trace_id[:8]}]")

    extras = [f"{key}={value}" for key, value in event_dict.items() if key not in _CONSOLE_FIXED_KEYS]
    if extras:
        parts.append("| " + " ".join(extras))

    return " ".join(parts)


def configure_logging(config: Optional[AppConfig] = None) -> None:
    """
    Configure logging for the process. Later calls are ignored.

    Args:
        config: Level and renderer; AppConfig() defaults when omitted
    """
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    config = config or AppConfig()

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, config.log_level.value),
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _add_module_info,
            _pretty_json_renderer if config.log_format == LogFormat.JSON else _console_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return the structlog logger called name (usually a module's __name__)."""
    return structlog.get_logger(name)


def get_module_logger() -> structlog.stdlib.BoundLogger:
    """Return a logger named after the module that calls this function."""
    caller_globals = sys._getframe(1).f_globals
    return get_logger(caller_globals.get('__name__', 'unknown'))
