"""
Centralized logging configuration for the soulbound ledger.
Provides component-specific loggers with separate log files.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import get_config

LOGGER_PREFIX = "soulbound"

DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - "
    "%(funcName)s() - %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class ComponentLogger:
    """Manages component-specific logging with separate files."""

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False
    _log_dir: Optional[Path] = None
    _to_file = True
    _level = logging.INFO

    # Component definitions with their log levels
    COMPONENTS = {
        'ledger': {'level': logging.INFO, 'file': 'ledger.log'},
        'host': {'level': logging.INFO, 'file': 'host.log'},
        'api': {'level': logging.INFO, 'file': 'api.log'},
        'database': {'level': logging.INFO, 'file': 'database.log'},
        'main': {'level': logging.INFO, 'file': 'main.log'},
        'error': {'level': logging.ERROR, 'file': 'errors.log'},  # Centralized error log
    }

    @classmethod
    def initialize(
        cls,
        log_dir: Optional[str] = None,
        debug: bool = False,
        to_file: Optional[bool] = None,
    ) -> None:
        """
        Initialize the logging system with component-specific loggers.

        Args:
            log_dir: Directory for log files. Defaults to config.app.log_dir
            debug: Enable debug logging for all components
            to_file: Write rotating log files. Defaults to config.app.log_to_file
        """
        if cls._initialized:
            return

        config = get_config()
        cls._to_file = config.app.log_to_file if to_file is None else to_file
        debug = debug or config.server.debug
        configured_level = logging.getLevelName(config.app.log_level.upper())
        if not isinstance(configured_level, int):
            configured_level = logging.INFO
        cls._level = logging.DEBUG if debug else configured_level

        session_dir = datetime.now().strftime("%Y%m%d_%H%M%S")
        if cls._to_file:
            base_dir = Path(log_dir) if log_dir else Path(config.app.log_dir)
            # Session-specific subdirectory
            cls._log_dir = base_dir / session_dir
            cls._log_dir.mkdir(parents=True, exist_ok=True)

        # Create loggers for each component
        for component_name, component_config in cls.COMPONENTS.items():
            level = logging.DEBUG if debug else max(component_config['level'], cls._level)
            cls._loggers[component_name] = cls._build_logger(
                component_name, level, component_config['file']
            )

        if cls._to_file:
            # A unified log file for all components
            unified_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / 'unified.log',
                maxBytes=20 * 1024 * 1024,  # 20MB
                backupCount=3,
                encoding='utf-8'
            )
            unified_handler.setLevel(cls._level)
            unified_handler.setFormatter(
                logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
            )
            for logger in cls._loggers.values():
                logger.addHandler(unified_handler)

        # Mark as initialized before logging to avoid recursion
        cls._initialized = True

        main_logger = cls._loggers['main']
        main_logger.info("=" * 80)
        main_logger.info("Soulbound Ledger Logging System Initialized")
        main_logger.info(f"Session: {session_dir}")
        main_logger.info(f"Log directory: {cls._log_dir}")
        main_logger.info(f"Debug mode: {debug}")
        main_logger.info("=" * 80)

    @classmethod
    def _build_logger(cls, component: str, level: int, file_name: str) -> logging.Logger:
        """Create a component logger with its file and console handlers."""
        logger = logging.getLogger(f"{LOGGER_PREFIX}.{component}")

        # Clear existing handlers
        logger.handlers.clear()
        logger.propagate = False
        logger.setLevel(level)

        if cls._to_file:
            # File handler with rotation
            file_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / file_name,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
            )
            logger.addHandler(file_handler)

        # Console handler for errors and critical
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.ERROR if cls._to_file else level)
        console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt='%H:%M:%S'))
        logger.addHandler(console_handler)

        return logger

    @classmethod
    def get_logger(cls, component: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name (ledger, host, api, database, ...)
                      Can also be a module path like 'soulbound_ledger.store.host'

        Returns:
            Logger instance for the component
        """
        if not cls._initialized:
            cls.initialize()

        # Handle module paths - extract component from __name__ format
        if component.startswith('soulbound_ledger.'):
            parts = component.split('.')
            if parts[1] == 'api' or parts[-1] == 'main':
                component = 'api'
            elif parts[1] in ('db',) or parts[-1] in ('event_store', 'transaction_log'):
                component = 'database'
            elif parts[1] == 'store':
                component = 'host'
            elif parts[1] == 'domain':
                component = 'ledger'
            else:
                component = 'main'

        if component not in cls._loggers:
            # Create a new component logger on-demand
            cls._loggers[component] = cls._build_logger(
                component, cls._level, f'{component}.log'
            )

        return cls._loggers[component]

    @classmethod
    def log_exception(cls, component: str, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an exception with context to both component and error logs.

        Args:
            component: Component where the exception occurred
            exc: The exception to log
            context: Additional context information
        """
        component_logger = cls.get_logger(component)
        error_logger = cls.get_logger('error')

        # Build context string
        context_str = ""
        if context:
            context_str = " | Context: " + ", ".join(f"{k}={v}" for k, v in context.items())

        component_logger.error(f"Exception in {component}: {type(exc).__name__}: {exc}{context_str}", exc_info=exc)
        error_logger.error(f"[{component}] {type(exc).__name__}: {exc}{context_str}", exc_info=exc)

    @classmethod
    def get_log_directory(cls) -> Optional[Path]:
        """Get the current log directory path."""
        return cls._log_dir

    @classmethod
    def shutdown(cls) -> None:
        """Close all handlers and forget the loggers so initialize() can run again."""
        for logger in cls._loggers.values():
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
        cls._loggers = {}
        cls._log_dir = None
        cls._initialized = False


# Convenience functions
def get_logger(component: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return ComponentLogger.get_logger(component)


def initialize_logging(log_dir: Optional[str] = None, debug: bool = False) -> None:
    """Initialize the logging system."""
    ComponentLogger.initialize(log_dir=log_dir, debug=debug)


def log_exception(component: str, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with context."""
    ComponentLogger.log_exception(component, exc, context)


def get_log_directory() -> Optional[Path]:
    """Get the current log directory path."""
    return ComponentLogger.get_log_directory()
