# ============================================================================
# MODULE CONTEXT - LOGGING
# ============================================================================
# STATUS: Core Infrastructure - shared by every module
# PURPOSE: JSON-only structured logging for Azure Functions with Application Insights
# EXPORTS: ComponentType, LogLevel, ComponentConfig, JSONFormatter, LoggerFactory, log_exceptions
# DEPENDENCIES: enum, dataclasses, typing, datetime, logging, json, traceback (stdlib only)
# PATTERNS: JSON-only output, component-specific loggers, exception decorator
# ENTRY_POINTS: LoggerFactory.create_logger(), @log_exceptions decorator
# ============================================================================

"""
Structured Logger

Every component (feature client, GeoJSON converter, validator, HTTP
triggers, health checks) obtains its logger from LoggerFactory so that all
output is one JSON object per line, with the component type and name
attached as ``customDimensions`` for Application Insights.

Usage:
    from util_logger import LoggerFactory, ComponentType

    logger = LoggerFactory.create_logger(ComponentType.CLIENT, "FeatureClient")
    logger.info("Fetching features", extra={'custom_dimensions': {'layer_id': 12}})
"""

import inspect
import json
import logging
import os
import sys
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Dict, Optional, Tuple, Type


# ============================================================================
# COMPONENT TYPES
# ============================================================================

class ComponentType(Enum):
    """
    Component types of the application layers.

    Each layer has its own default log level.
    """
    TRIGGER = "trigger"        # HTTP entry points
    SERVICE = "service"        # Conversion and health logic
    CLIENT = "client"          # Remote feature service access
    VALIDATOR = "validator"    # Deployment self-test suite


# ============================================================================
# LOG LEVELS
# ============================================================================

class LogLevel(Enum):
    """Standard Python log levels as enum for type safety."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)


# ============================================================================
# COMPONENT CONFIGURATION
# ============================================================================

@dataclass
class ComponentConfig:
    """Per-component logging settings."""
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO
    max_message_length: int = 1000


# ============================================================================
# JSON FORMATTER
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in Azure Functions.
    Outputs logs in a format that Application Insights can automatically parse.
    """

    def __init__(self, max_message_length: int = 1000):
        super().__init__()
        self.max_message_length = max_message_length

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Python LogRecord to format

        Returns:
            JSON string with structured log data
        """
        message = record.getMessage()
        if len(message) > self.max_message_length:
            message = message[:self.max_message_length] + "..."

        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': message,
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY
# ============================================================================

class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(ComponentType.VALIDATOR, "ServiceValidator")
        logger.info("Starting validation suite")
    """

    default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    _created: Dict[str, logging.Logger] = {}
    _level_override: Optional[LogLevel] = None

    DEFAULT_CONFIGS = {
        ComponentType.TRIGGER: ComponentConfig(
            component_type=ComponentType.TRIGGER,
            log_level=default_level
        ),
        ComponentType.SERVICE: ComponentConfig(
            component_type=ComponentType.SERVICE,
            log_level=default_level
        ),
        ComponentType.CLIENT: ComponentConfig(
            component_type=ComponentType.CLIENT,
            log_level=default_level,
            max_message_length=2000  # query URLs can be long
        ),
        ComponentType.VALIDATOR: ComponentConfig(
            component_type=ComponentType.VALIDATOR,
            log_level=default_level,
            max_message_length=5000  # formatted suite summary
        )
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str
    ) -> logging.Logger:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "FeatureClient")

        Returns:
            Configured Python logger
        """
        config = cls.DEFAULT_CONFIGS.get(
            component_type,
            ComponentConfig(component_type=component_type)
        )

        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)

        log_level = config.log_level.to_python_level()
        if cls._level_override is not None:
            log_level = cls._level_override.to_python_level()
        logger.setLevel(log_level)

        # Remove existing handlers to avoid duplicates
        logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(JSONFormatter(max_message_length=config.max_message_length))
        logger.addHandler(handler)

        # Allow propagation to Azure's root logger for Application Insights
        logger.propagate = True

        original_log = logger._log

        def log_with_dimensions(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
            """Inject component fields as custom dimensions."""
            if extra is None:
                extra = {}

            custom_dims = {}
            custom_dims['component_type'] = component_type.value
            custom_dims['component_name'] = name

            if 'custom_dimensions' in extra:
                custom_dims.update(extra['custom_dimensions'])

            extra['custom_dimensions'] = custom_dims

            original_log(level, msg, args, exc_info=exc_info, extra=extra,
                         stack_info=stack_info, stacklevel=stacklevel)

        logger._log = log_with_dimensions

        cls._created[logger_name] = logger
        return logger

    @classmethod
    def set_level(cls, level: LogLevel) -> None:
        """Change the level of every logger this factory created or will create (CLI verbosity)."""
        cls._level_override = level
        python_level = level.to_python_level()
        for logger in cls._created.values():
            logger.setLevel(python_level)
            for handler in logger.handlers:
                handler.setLevel(python_level)

# ============================================================================
# EXCEPTION DECORATOR
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None,
                   expected: Tuple[Type[Exception], ...] = ()):
    """
    Decorator to log exceptions with full context, then re-raise them.

    Works on plain functions and on coroutine functions.

    Args:
        component_type: Optional component type for creating logger
        component_name: Optional component name for creating logger
        logger: Optional existing logger to use
        expected: Exception types the caller anticipates; logged at WARNING
            without a traceback

    Example:
        @log_exceptions(ComponentType.CLIENT, "FeatureClient")
        async def fetch(...):
            ...
    """
    def decorator(func):
        def _resolve_logger() -> logging.Logger:
            if logger:
                return logger
            if component_type and component_name:
                return LoggerFactory.create_logger(component_type, component_name)
            return LoggerFactory.create_logger(ComponentType.SERVICE, func.__module__ or "unknown")

        def _log_failure(e: Exception, args, kwargs) -> None:
            dimensions = {
                'function_name': func.__name__,
                'function_module': func.__module__,
                'exception_type': type(e).__name__,
                'exception_message': str(e),
                'function_args': str(args)[:500],
                'function_kwargs': str(kwargs)[:500]
            }

            if isinstance(e, expected):
                _resolve_logger().warning(
                    f"{type(e).__name__} in {func.__name__}: {e}",
                    extra={'custom_dimensions': dimensions}
                )
                return

            dimensions['traceback'] = traceback.format_exc()
            _resolve_logger().error(
                f"Exception in {func.__name__}",
                exc_info=True,
                extra={'custom_dimensions': dimensions}
            )

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(e, args, kwargs)
                    raise
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_failure(e, args, kwargs)
                raise
        return wrapper
    return decorator
