import structlog
import logging
import sys
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
import os


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "trackhabit-assistant"
) -> None:
    """Setup structured logging configuration"""

    # Configure Python logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO)
    )

    # Processors for structlog
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
    ]

    # Add appropriate renderer based on format
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Set service name in context
    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
        version=os.getenv("SERVICE_VERSION", "unknown")
    )


def add_service_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add request context to all log entries"""

    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()

    context = structlog.contextvars.get_contextvars()

    request_id = context.get("request_id")
    if request_id:
        event_dict["request_id"] = request_id

    user_id = context.get("user_id")
    if user_id:
        event_dict["user_id"] = user_id

    return event_dict


class AssistantLogger:
    """Specialized logger for chat-turn events"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def log_context_fragment(
        self,
        user_id: str,
        fragment: str,
        ok: bool,
        item_count: int = 0,
        error: Optional[str] = None
    ):
        """Log the outcome of one context read"""

        log = self.logger.info if ok else self.logger.warning
        log(
            "context_fragment",
            user_id=user_id,
            fragment=fragment,
            ok=ok,
            item_count=item_count,
            error=error
        )

    def log_model_call(
        self,
        model: str,
        duration_ms: float,
        success: bool = True,
        status_code: Optional[int] = None,
        reply_length: int = 0,
        error: Optional[str] = None
    ):
        """Log one request to the completion API"""

        log = self.logger.info if success else self.logger.error
        log(
            "model_call",
            model=model,
            duration_ms=duration_ms,
            success=success,
            status_code=status_code,
            reply_length=reply_length,
            error=error
        )

    def log_action_applied(
        self,
        user_id: str,
        action: str,
        success: bool = True,
        output_data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None
    ):
        """Log the outcome of one intent"""

        log = self.logger.info if success else self.logger.error
        log(
            "action_applied",
            user_id=user_id,
            action=action,
            success=success,
            output_data=output_data or {},
            error=error
        )

    def log_chat_turn(
        self,
        user_id: str,
        intents: int,
        applied: List[str],
        failed_fragments: Optional[List[str]] = None
    ):
        """Log the summary of a completed chat turn"""

        self.logger.info(
            "chat_turn",
            user_id=user_id,
            intents=intents,
            applied=applied,
            failed_fragments=failed_fragments or []
        )


# Global logger instance
assistant_logger = AssistantLogger("trackhabit")


class MetricsCollector:
    """Collect metrics and export them through the log stream"""

    def __init__(self):
        self.metrics: Dict[str, Any] = {}

    def record_latency(self, operation: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        """Record operation latency"""

        key = f"latency.{operation}"
        if key not in self.metrics:
            self.metrics[key] = {
                "count": 0,
                "sum": 0,
                "min": float('inf'),
                "max": 0
            }

        self.metrics[key]["count"] += 1
        self.metrics[key]["sum"] += duration_ms
        self.metrics[key]["min"] = min(self.metrics[key]["min"], duration_ms)
        self.metrics[key]["max"] = max(self.metrics[key]["max"], duration_ms)

        assistant_logger.logger.debug(
            "metric",
            metric_type="latency",
            operation=operation,
            duration_ms=duration_ms,
            tags=tags or {}
        )

    def increment_counter(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        """Increment a counter metric"""

        if name not in self.metrics:
            self.metrics[name] = 0
        self.metrics[name] += value

        assistant_logger.logger.debug(
            "metric",
            metric_type="counter",
            name=name,
            value=value,
            tags=tags or {}
        )

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get summary of all metrics"""

        summary = {}
        for key, value in self.metrics.items():
            if isinstance(value, dict) and "count" in value:
                # Latency metric
                summary[key] = {
                    "count": value["count"],
                    "avg": value["sum"] / value["count"] if value["count"] > 0 else 0,
                    "min": value["min"] if value["min"] != float('inf') else 0,
                    "max": value["max"]
                }
            else:
                summary[key] = value

        return summary


# Global metrics collector
metrics = MetricsCollector()
