"""Structured JSON logging configuration for the Fleet Safety Risk Engine."""

import json
import logging
import logging.handlers
import os
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_SERVICE_NAME = "fleet-safety-risk-engine"
AUDIT_LOGGER_NAME = "fleet_safety.audit"

# Correlation ID shared by every log record emitted while handling one request
correlation_id_context: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_RESERVED_RECORD_FIELDS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'message', 'exc_info',
    'exc_text', 'stack_info', 'correlation_id', 'taskName',
})


class CorrelationIDFilter(logging.Filter):
    """Add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to the log record."""
        record.correlation_id = correlation_id_context.get() or "unknown"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per log record."""

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, 'correlation_id', 'unknown'),
        }

        if record.module:
            log_entry["module"] = record.module
        if record.funcName and record.funcName != '<module>':
            log_entry["function"] = record.funcName
        if record.lineno:
            log_entry["line"] = record.lineno

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_FIELDS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class LoggingConfig:
    """Centralized logging configuration."""

    def __init__(self,
                 log_level: str = "INFO",
                 service_name: str = DEFAULT_SERVICE_NAME,
                 log_dir: Optional[str] = None,
                 max_file_size: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 5,
                 enable_console: bool = True,
                 enable_file: bool = True):
        """
        Initialize logging configuration.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            service_name: Service name for log entries and log file names
            log_dir: Directory for log files (defaults to logs/ in project root)
            max_file_size: Maximum size per log file in bytes
            backup_count: Number of rotated log files to keep
            enable_console: Whether to log to stdout
            enable_file: Whether to log to rotating files
        """
        self.log_level = getattr(logging, log_level.upper())
        self.service_name = service_name
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.enable_console = enable_console
        self.enable_file = enable_file

        if log_dir:
            self.log_dir = Path(log_dir)
        else:
            project_root = Path(__file__).parent.parent.parent.parent
            self.log_dir = project_root / "logs"

        if self.enable_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    def _rotating_handler(self, filename: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        return handler

    def setup_logging(self) -> None:
        """Configure the root logger."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        root_logger.setLevel(self.log_level)

        correlation_filter = CorrelationIDFilter()
        json_formatter = JSONFormatter(service_name=self.service_name)

        handlers = []
        if self.enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self.log_level)
            handlers.append(console_handler)

        if self.enable_file:
            handlers.append(self._rotating_handler(f"{self.service_name}.log", self.log_level))
            # Errors are duplicated into their own file for alerting
            handlers.append(self._rotating_handler(f"{self.service_name}-errors.log", logging.ERROR))
            # Audit trail of risk recalculations and review decisions
            audit_handler = self._rotating_handler(f"{self.service_name}-audit.log", logging.INFO)
            audit_handler.addFilter(logging.Filter(AUDIT_LOGGER_NAME))
            handlers.append(audit_handler)

        for handler in handlers:
            handler.addFilter(correlation_filter)
            handler.setFormatter(json_formatter)
            root_logger.addHandler(handler)

        self._configure_third_party_loggers()

    def _configure_third_party_loggers(self) -> None:
        """Configure third-party library loggers to reduce noise."""
        for name in (
            'sqlalchemy.engine',
            'sqlalchemy.dialects',
            'sqlalchemy.pool',
            'sqlalchemy.orm',
            'asyncpg',
            'uvicorn.access',
            'fastapi',
            'httpx',
        ):
            logging.getLogger(name).setLevel(logging.WARNING)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for the current context."""
    correlation_id_context.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return correlation_id_context.get()


def clear_correlation_id() -> None:
    """Clear correlation ID from current context."""
    correlation_id_context.set(None)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


def get_audit_logger() -> logging.Logger:
    """Get the logger whose records form the audit trail."""
    return logging.getLogger(AUDIT_LOGGER_NAME)


def setup_logging_from_env() -> LoggingConfig:
    """Setup logging configuration from environment variables."""
    config = LoggingConfig(
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
        service_name=os.getenv('SERVICE_NAME', DEFAULT_SERVICE_NAME),
        log_dir=os.getenv('LOG_DIR'),
        max_file_size=int(os.getenv('LOG_MAX_FILE_SIZE', '10485760')),
        backup_count=int(os.getenv('LOG_BACKUP_COUNT', '5')),
        enable_console=os.getenv('LOG_ENABLE_CONSOLE', 'true').lower() == 'true',
        enable_file=os.getenv('LOG_ENABLE_FILE', 'true').lower() == 'true'
    )

    config.setup_logging()
    return config


def log_with_extra(logger: logging.Logger, level: int, message: str, **extra) -> None:
    """Log a message with extra fields."""
    logger.log(level, message, extra=extra)


def log_request(logger: logging.Logger, method: str, path: str, **extra) -> None:
    """Log an HTTP request."""
    log_with_extra(
        logger,
        logging.INFO,
        f"HTTP Request: {method} {path}",
        request_method=method,
        request_path=path,
        **extra
    )


def log_response(logger: logging.Logger, method: str, path: str, status_code: int, duration_ms: float, **extra) -> None:
    """Log an HTTP response, at WARNING for 4xx and ERROR for 5xx."""
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO

    log_with_extra(
        logger,
        level,
        f"HTTP Response: {method} {path} -> {status_code} ({duration_ms:.2f}ms)",
        request_method=method,
        request_path=path,
        response_status=status_code,
        response_duration_ms=round(duration_ms, 2),
        **extra
    )


def log_database_operation(logger: logging.Logger, operation: str, table: str, **extra) -> None:
    """Log a database operation."""
    log_with_extra(
        logger,
        logging.DEBUG,
        f"Database {operation}: {table}",
        db_operation=operation,
        db_table=table,
        **extra
    )


def log_business_rule_violation(logger: logging.Logger, rule: str, details: str, **extra) -> None:
    """Log a business rule violation."""
    log_with_extra(
        logger,
        logging.WARNING,
        f"Business rule violation: {rule} - {details}",
        business_rule=rule,
        violation_details=details,
        **extra
    )


def log_risk_assessment(
    logger: logging.Logger,
    trip_id: str,
    total_score: int,
    risk_level: str,
    compliance_status: str,
    **extra
) -> None:
    """Log a computed risk breakdown."""
    level = logging.WARNING if compliance_status == "non_compliant" else logging.INFO
    log_with_extra(
        logger,
        level,
        f"Risk assessed for trip {trip_id}: {total_score} ({risk_level}, {compliance_status})",
        trip_id=trip_id,
        risk_total_score=total_score,
        risk_level=risk_level,
        compliance_status=compliance_status,
        **extra
    )


def log_audit_event(action: str, entity_id: str, actor_id: Optional[str] = None, **details) -> None:
    """Emit an audit trail record.

    Persisting the audit trail is left to log shipping; this only
    guarantees a structured record with the action and its details.
    """
    log_with_extra(
        get_audit_logger(),
        logging.INFO,
        f"Audit: {action} on {entity_id}",
        audit_action=action,
        audit_entity_id=entity_id,
        audit_actor_id=actor_id,
        audit_details=details,
    )
