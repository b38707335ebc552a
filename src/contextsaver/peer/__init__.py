"""contextsaver peer — the MCP connection to the wrapped server."""

from .client import PeerClient, connect_peer

__all__ = ["PeerClient", "connect_peer"]
