"""Remote service access."""

from refood.client.http import RefoodClient

__all__ = ["RefoodClient"]
