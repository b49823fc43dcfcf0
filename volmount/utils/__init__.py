"""Utilities package"""

from volmount.utils.logger import get_logger, setup_logging
from volmount.utils.sanitize import sanitize_sensitive_data, to_message
from volmount.utils.timeout import with_timeout

__all__ = ['get_logger', 'setup_logging', 'sanitize_sensitive_data', 'to_message', 'with_timeout']
