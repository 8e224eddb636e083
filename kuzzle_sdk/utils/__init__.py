from .config import Config
from .logger import get_logger, setup_logger

__all__ = ["Config", "get_logger", "setup_logger"]
