"""Utility modules."""

from refood.utils.logging import setup_logging
from refood.utils.messages import MessageTemplates

__all__ = ["setup_logging", "MessageTemplates"]
