"""
Structured logging for Backend SatStack.

JSON logs with timestamp, event_type and bound context (address_id, provider).
"""

from backend_satstack.satstack_logging.logger import bind_address, get_logger

__all__ = ["bind_address", "get_logger"]
