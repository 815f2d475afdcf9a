"""Gateway transports."""

from .base import GatewayAdapter, GatewayReply
from .gateway import HttpGatewayAdapter

__all__ = ["GatewayAdapter", "GatewayReply", "HttpGatewayAdapter"]
