"""
Structured logging for Backend Bubbles.

JSON logs with timestamp, wallet_id and event_type. Use get_logger() in all
modules for aggregation-friendly output.
"""

from backend_bubbles.bubbles_logging.logger import bind_wallet, get_logger

__all__ = ["bind_wallet", "get_logger"]
