# ABOUTME: Structured logging configuration using loguru for turn orchestration traces.
# ABOUTME: Supports context fields (room, token, phase, agent_id) and file/console output.

import sys
from pathlib import Path
from typing import Any

from loguru import logger


# Default log format with structured context
DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | "
    "{extra}"
)


def setup_logging(
    log_level: str = "INFO",
    log_dir: str | Path | None = None,
    console_output: bool = True,
    file_output: bool = True,
    format_string: str | None = None,
    rotation: str = "100 MB",
    retention: str = "30 days",
    compression: str = "zip"
) -> None:
    """
    Configure loguru for structured turn logging.

    This setup enables:
    - Structured context fields via logger.bind()
    - Console output with color formatting
    - File output with rotation and compression

    Usage:
        >>> setup_logging(log_level="DEBUG", log_dir="logs")
        >>> logger = get_logger()
        >>> logger.bind(room="room_001").info("Host started")

    Args:
        log_level: Minimum log level ("DEBUG", "INFO", "WARNING", "ERROR")
        log_dir: Directory for log files (default: "logs" in working directory)
        console_output: Enable console logging (default: True)
        file_output: Enable file logging (default: True)
        format_string: Custom format string (default: structured format)
        rotation: When to rotate log files (default: "100 MB")
        retention: How long to keep old logs (default: "30 days")
        compression: Compression for rotated logs (default: "zip")

    Raises:
        ValueError: If log_level is invalid
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    log_level = log_level.upper()
    if log_level not in valid_levels:
        raise ValueError(
            f"Invalid log level: '{log_level}'. "
            f"Must be one of: {', '.join(sorted(valid_levels))}"
        )

    # Remove default handler
    logger.remove()

    fmt = format_string or DEFAULT_FORMAT

    if console_output:
        logger.add(
            sys.stderr,
            format=fmt,
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=True,
        )

    if file_output:
        log_dir = Path("logs") if log_dir is None else Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / "turn_orchestrator_{time:YYYY-MM-DD}.log"
        logger.add(
            str(log_file),
            format=fmt,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            backtrace=True,
            diagnose=True,
            enqueue=True,  # Thread-safe
        )

    logger.info(
        f"Logging configured: level={log_level}, "
        f"console={console_output}, file={file_output}"
    )


def get_logger() -> Any:
    """
    Get configured loguru logger instance.

    Returns:
        Configured loguru logger instance
    """
    return logger


def log_turn_event(
    message: str,
    phase: str,
    room_id: str,
    token: str | None = None,
    agent_id: str | None = None,
    level: str = "INFO",
    **extra_context: Any
) -> None:
    """
    Log a turn event with the standard context fields.

    Usage:
        >>> log_turn_event(
        ...     "Attack applied",
        ...     phase="attack",
        ...     room_id="room_001",
        ...     token="agent_a:3:1700000000000",
        ...     agent_id="agent_a",
        ...     damage=2,
        ... )

    Args:
        message: Log message
        phase: Current turn phase
        room_id: Room governed by the orchestrator
        token: Turn token value, if a turn is active
        agent_id: Optional agent identifier
        level: Log level (default: "INFO")
        **extra_context: Additional context fields
    """
    context = {
        "phase": phase,
        "room": room_id,
        **extra_context
    }

    if token:
        context["token"] = token
    if agent_id:
        context["agent_id"] = agent_id

    bound_logger = logger.bind(**context)

    level = level.upper()
    if level == "DEBUG":
        bound_logger.debug(message)
    elif level == "WARNING":
        bound_logger.warning(message)
    elif level == "ERROR":
        bound_logger.error(message)
    else:
        bound_logger.info(message)


def log_phase_transition(
    from_phase: str,
    to_phase: str,
    room_id: str,
    token: str,
    duration_ms: float | None = None
) -> None:
    """
    Log a phase transition with timing information.

    Args:
        from_phase: Previous phase
        to_phase: New phase
        room_id: Room identifier
        token: Turn token value
        duration_ms: Optional duration of previous phase in milliseconds
    """
    context = {
        "from_phase": from_phase,
        "to_phase": to_phase,
        "room": room_id,
        "token": token,
    }

    if duration_ms is not None:
        context["duration_ms"] = duration_ms

    logger.bind(**context).info(
        f"Phase transition: {from_phase} -> {to_phase}"
    )


def log_negotiation_event(
    stage: str,
    request_id: str,
    sender_id: str,
    receiver_id: str,
    **extra_context: Any
) -> None:
    """
    Log one stage of a green negotiation (request, answer, close).

    Args:
        stage: Protocol stage name
        request_id: Green request identifier
        sender_id: Agent that drew the card
        receiver_id: Agent asked to answer
        **extra_context: Additional context fields
    """
    logger.bind(
        stage=stage,
        request_id=request_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        **extra_context
    ).info(f"Negotiation {stage}: {sender_id} -> {receiver_id}")
