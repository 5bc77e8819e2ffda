"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring and
tracing of workflow runs, including:
- Run lifecycle events (started, completed)
- Tool invocations with credit and token usage
- LLM model calls made through pydantic-ai
- Database operation monitoring
- Error tracking

The helpers below are no-ops until :func:`initialize_logfire` has configured
Logfire, so the engine can call them unconditionally.
"""

import logging
from typing import Any, Optional

import logfire

from .config import settings

logger = logging.getLogger(__name__)

_configured = False


def is_logfire_configured() -> bool:
    return _configured


def initialize_logfire(
    token: Optional[str] = None,
    service_name: Optional[str] = None,
    environment: Optional[str] = None,
    enabled: Optional[bool] = None,
) -> bool:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    This function sets up Logfire with automatic instrumentation for:
    - Pydantic AI model calls
    - SQLAlchemy database operations
    - HTTPX HTTP requests

    Arguments default to the values in settings. The initialization is skipped
    when Logfire is disabled or no token is available.

    Returns:
        True if Logfire is configured after the call.
    """
    global _configured

    cfg = settings.logfire
    if not (cfg.enabled if enabled is None else enabled):
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return _configured

    token = token or cfg.token
    if not token:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return _configured

    try:
        logfire.configure(
            token=token,
            service_name=service_name or cfg.service_name,
            environment=environment or cfg.environment,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return _configured

    for name, instrument in (
        ("Pydantic AI", logfire.instrument_pydantic_ai),
        ("SQLAlchemy", logfire.instrument_sqlalchemy),
        ("HTTPX", logfire.instrument_httpx),
    ):
        try:
            instrument()
            logger.info(f"Logfire: {name} instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument {name}: {e}")

    _configured = True
    logger.info(f"Logfire monitoring initialized: service={service_name or cfg.service_name}")
    return _configured


def log_run_started(run_id: str, user_id: str, mode: str, goal: Optional[str] = None) -> None:
    """
    Log the start of a workflow run.

    Args:
        run_id: The unique identifier for the run
        user_id: The user the run is billed to
        mode: Execution mode (graph or linear)
        goal: The natural-language goal for linear runs
    """
    if not _configured:
        return
    try:
        logfire.info("Workflow run started", run_id=run_id, user_id=user_id, mode=mode, goal=goal)
    except Exception:
        logger.debug(f"Could not log run start to Logfire: run_id={run_id}")


def log_run_completed(run_id: str, status: str, credits: int, duration_ms: float) -> None:
    """
    Log the completion of a workflow run.

    Args:
        run_id: The unique identifier for the run
        status: The terminal status (succeeded, failed, cancelled)
        credits: Total credits charged to the run
        duration_ms: The duration of the run in milliseconds
    """
    if not _configured:
        return
    try:
        logfire.info(
            "Workflow run completed",
            run_id=run_id,
            status=status,
            credits=credits,
            duration_ms=duration_ms,
        )
    except Exception:
        logger.debug(f"Could not log run completion to Logfire: run_id={run_id}")


def log_tool_call(run_id: str, tool: str, status: str, credits: int, tokens_in: int, tokens_out: int) -> None:
    """Log one tool invocation with its usage."""
    if not _configured:
        return
    try:
        logfire.info(
            "Tool call finished",
            run_id=run_id,
            tool=tool,
            status=status,
            credits=credits,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
        )
    except Exception:
        logger.debug(f"Could not log tool call to Logfire: tool={tool}")


def log_error(error_type: str, error_message: str, context: Optional[dict[str, Any]] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    if not _configured:
        return
    try:
        logfire.error(f"{error_type}: {error_message}", **(context or {}))
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
