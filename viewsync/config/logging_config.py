# viewsync/config/logging_config.py
# =============================================================================
# File: viewsync/config/logging_config.py
# Description: Logging configuration using the Rich framework
# =============================================================================

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key, '').lower()
    return value in ('true', '1', 'yes', 'on') if value else default


def get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


VIEWSYNC_THEME = Theme({
    "debug": "magenta dim",
    "info": "green",
    "warning": "dark_goldenrod",
    "error": "red",
    "critical": "bold red",
    "timestamp": "grey70",
    "logger_name": "grey35",
    "message": "grey85",
})

PLAIN_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(name)-40s] %(message)s"
PLAIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ViewSyncRichHandler(RichHandler):
    """RichHandler with a compact single-line layout for worker logs"""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('show_time', False)
        kwargs.setdefault('show_level', False)
        kwargs.setdefault('show_path', False)
        kwargs.setdefault('enable_link_path', False)
        kwargs.setdefault('markup', True)
        kwargs.setdefault('rich_tracebacks', True)
        kwargs.setdefault('tracebacks_show_locals', False)
        super().__init__(*args, **kwargs)

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')

        level_style = record.levelname.lower() if record.levelname in (
            'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'
        ) else 'message'
        level_str = f"[{level_style}]{record.levelname:>7}[/{level_style}]"

        logger_name = record.name
        if len(logger_name) > 30:
            parts = logger_name.split('.')
            if len(parts) > 2:
                logger_name = f"{parts[0]}...{parts[-1]}"
        logger_str = f"[logger_name]{logger_name:>30}[/logger_name]"

        message = record.getMessage()
        if get_env_bool('LOG_CALLER_INFO', False) and record.pathname:
            message = f"{message} [{record.filename}:{record.lineno}]"

        return f"[timestamp]{time_str}[/timestamp] {level_str} {logger_str}  {message}"


class ProductionFormatter(logging.Formatter):
    """JSON formatter for production environments"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for extra in ("event_id", "document_path", "user_id"):
            if hasattr(record, extra):
                log_obj[extra] = getattr(record, extra)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


def logger_name_for_env_key(env_key: str) -> str:
    """
    Logger named by a LOGLEVEL_* variable.

    The key loses the difference between "." and "_", so it is matched
    against the loggers that already exist:
    LOGLEVEL_VIEWSYNC_USER_ACCOUNT_CASCADE -> viewsync.user_account.cascade
    Unknown keys fall back to reading every "_" as ".".
    """
    suffix = env_key[len('LOGLEVEL_'):].upper()
    for name in sorted(logging.root.manager.loggerDict):
        if name.replace('.', '_').upper() == suffix:
            return name
    return suffix.lower().replace('_', '.')


def get_logger_level_from_env(logger_name: str, default_level: int) -> int:
    """
    Get logger level from environment variable.

    "viewsync.chat.projectors" -> LOGLEVEL_VIEWSYNC_CHAT_PROJECTORS
    """
    env_name = f"LOGLEVEL_{logger_name.replace('.', '_').upper()}"

    level_str = os.getenv(env_name, '').upper()
    if level_str:
        level_map = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'WARN': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL,
        }
        return level_map.get(level_str, default_level)

    return default_level


def setup_logging(
        service_name: str = "viewsync",
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
        enable_json: Optional[bool] = None,
) -> None:
    """
    Configure logging with the Rich framework.

    Args:
        service_name: Name of the service (e.g., "worker")
        log_level: Override log level (defaults to LOG_LEVEL env, then INFO)
        log_file: Optional rotating log file path (defaults to LOG_FILE env)
        enable_json: JSON lines instead of Rich output (defaults to LOG_JSON_FORMAT env)
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE")

    if enable_json is None:
        enable_json = get_env_bool('LOG_JSON_FORMAT', False)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    use_rich = not enable_json and (sys.stdout.isatty() or get_env_bool("FORCE_COLOR", False))

    if use_rich:
        console = Console(
            theme=VIEWSYNC_THEME,
            force_terminal=get_env_bool("FORCE_COLOR", False),
            width=get_env_int('LOG_CONSOLE_WIDTH', 0) or None,
        )
        root_logger.addHandler(ViewSyncRichHandler(console=console))

    elif enable_json:
        json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setFormatter(ProductionFormatter())
        root_logger.addHandler(json_handler)

    else:
        plain_handler = logging.StreamHandler(sys.stdout)
        plain_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATE_FORMAT))
        root_logger.addHandler(plain_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=get_env_int('LOG_MAX_SIZE_MB', 100) * 1024 * 1024,
            backupCount=get_env_int('LOG_BACKUP_COUNT', 5),
            encoding=os.getenv('LOG_FILE_ENCODING', 'utf-8'),
        )
        # Always plain for files
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    default_noise_config = {
        "asyncio": logging.WARNING,
        "httpx": logging.WARNING,
        "httpcore": logging.WARNING,
        "botocore": logging.WARNING,
        "aiobotocore": logging.WARNING,
        "asyncpg": logging.WARNING,
        "prometheus_client": logging.WARNING,
        "viewsync.retry": logging.WARNING,
    }

    for logger_name, default_level in default_noise_config.items():
        logging.getLogger(logger_name).setLevel(get_logger_level_from_env(logger_name, default_level))

    # Explicit LOGLEVEL_* overrides for our own loggers
    for key, value in os.environ.items():
        if key.startswith('LOGLEVEL_VIEWSYNC_'):
            logger_name_from_env = logger_name_for_env_key(key)
            level_value = getattr(logging, value.upper(), None)
            if isinstance(level_value, int):
                logging.getLogger(logger_name_from_env).setLevel(level_value)

    logging.getLogger(f"{service_name}.startup").info(f"Logging configured for {service_name} service")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
