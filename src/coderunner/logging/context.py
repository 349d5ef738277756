import structlog


def bind_session(project_id: str) -> None:
    """Attach the current project id to every subsequent log line."""
    structlog.contextvars.bind_contextvars(project_id=project_id)


def get_bound_session() -> str | None:
    """Get project id from current context."""
    return structlog.contextvars.get_contextvars().get("project_id")


def clear_session() -> None:
    """Drop the project id from the logging context."""
    structlog.contextvars.unbind_contextvars("project_id")
