from .config import get_logger, setup_logging
from .context import bind_session, clear_session, get_bound_session

__all__ = ["setup_logging", "get_logger", "bind_session", "clear_session", "get_bound_session"]
