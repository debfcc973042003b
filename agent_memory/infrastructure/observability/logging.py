import structlog
import logging
import sys
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
import os


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "agent-memory"
) -> None:
    """Setup structured logging configuration"""

    # Configure Python logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO)
    )

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

    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
        version=os.getenv("SERVICE_VERSION", "unknown")
    )


def add_service_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add orchestration and session identifiers to all log entries"""

    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()

    bound = structlog.contextvars.get_contextvars()
    for field in ("orchestration_id", "session_id", "user_id"):
        if field not in event_dict and bound.get(field):
            event_dict[field] = bound[field]

    return event_dict


class AgentLogger:
    """Structured events for memory and orchestration activity"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def log_tool_execution(
        self,
        tool_name: str,
        orchestration_id: str,
        step: int,
        duration_ms: float,
        success: bool = True,
        reasoning: Optional[str] = None
    ):
        self.logger.info(
            "tool_execution",
            tool_name=tool_name,
            orchestration_id=orchestration_id,
            step=step,
            duration_ms=duration_ms,
            success=success,
            reasoning=reasoning
        )

    def log_memory_update(
        self,
        user_id: str,
        scope: str,
        key: str,
        action: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.logger.info(
            "memory_update",
            user_id=user_id,
            scope=scope,
            key=key,
            action=action,
            details=details or {}
        )

    def log_orchestration_transition(
        self,
        orchestration_id: str,
        from_status: Optional[str],
        to_status: str,
        planned_tools: Optional[List[str]] = None,
        **kwargs
    ):
        self.logger.info(
            "orchestration_transition",
            orchestration_id=orchestration_id,
            from_status=from_status,
            to_status=to_status,
            planned_tools=planned_tools or [],
            **kwargs
        )
