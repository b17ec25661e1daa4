"""
Core module - Contains configuration, logging, errors and the crypto engine.
"""

from councilvault.core.config import CouncilConfig
from councilvault.core.logging import configure_logging, get_secure_logger, SecureLogFilter

__all__ = ["CouncilConfig", "configure_logging", "get_secure_logger", "SecureLogFilter"]
