from .config import Settings, get_settings
from .errors import AppError, ErrorKind

__all__ = ["Settings", "get_settings", "AppError", "ErrorKind"]
