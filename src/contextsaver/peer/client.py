"""
MCP peer client.

Owns one ``mcp.ClientSession`` over a stdio subprocess for its whole
lifetime: spawn + handshake in ``connect()``, release in ``close()``.
Discovery and invocation results come back as contextsaver types, never as
SDK objects.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import mcp.types as types
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError

from contextsaver import __version__
from contextsaver.core.errors import PeerConnectionError, PeerError, PeerInvocationError
from contextsaver.core.types import (
    ConnectionSpec,
    PromptDescriptor,
    ResourceDescriptor,
    ToolDescriptor,
)

logger = logging.getLogger(__name__)


def _dump(obj: Any) -> dict[str, Any]:
    return obj.model_dump(mode="json", by_alias=True, exclude_none=True)


def _cause(e: Exception) -> str:
    if isinstance(e, McpError):
        return e.error.message
    return str(e) or type(e).__name__


def _error_text(result: types.CallToolResult) -> str:
    parts = [c.text for c in result.content if isinstance(c, types.TextContent)]
    return "\n".join(parts) or "tool reported an error without a message"


class PeerClient:
    """One live connection to a capability-providing MCP server."""

    def __init__(self, spec: ConnectionSpec, client_name: str = "mcp-context-saver-client"):
        self.spec = spec
        self.client_name = client_name
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> ClientSession:
        if self._session is None:
            raise PeerError(f"Not connected to {self.spec.command}")
        return self._session

    # --- Lifecycle ---

    async def connect(self) -> PeerClient:
        if self._session is not None:
            return self
        params = StdioServerParameters(command=self.spec.command, args=list(self.spec.args))
        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(
                ClientSession(
                    read,
                    write,
                    client_info=types.Implementation(name=self.client_name, version=__version__),
                )
            )
            await session.initialize()
        except Exception as e:
            await stack.aclose()
            raise PeerConnectionError(f"Failed to connect to MCP server: {e}") from e
        self._stack = stack
        self._session = session
        logger.info(f"Connected to MCP server {self.spec.command} {' '.join(self.spec.args)}".rstrip())
        return self

    async def close(self) -> None:
        """Release the session and subprocess. Safe to call more than once."""
        stack, self._stack, self._session = self._stack, None, None
        if stack is not None:
            await stack.aclose()
            logger.debug(f"Closed connection to {self.spec.command}")

    async def __aenter__(self) -> PeerClient:
        return await self.connect()

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # --- Discovery ---

    async def list_tools(self) -> list[ToolDescriptor]:
        try:
            resp = await self.session.list_tools()
        except Exception as e:
            raise PeerError(f"Failed to list tools: {_cause(e)}") from e
        return [ToolDescriptor.model_validate(_dump(t)) for t in resp.tools or []]

    async def list_resources(self) -> list[ResourceDescriptor]:
        try:
            resp = await self.session.list_resources()
        except Exception as e:
            raise PeerError(f"Failed to list resources: {_cause(e)}") from e
        return [ResourceDescriptor.model_validate(_dump(r)) for r in resp.resources or []]

    async def list_prompts(self) -> list[PromptDescriptor]:
        try:
            resp = await self.session.list_prompts()
        except Exception as e:
            raise PeerError(f"Failed to list prompts: {_cause(e)}") from e
        return [PromptDescriptor.model_validate(_dump(p)) for p in resp.prompts or []]

    async def list_optional(self, kind: str) -> list[ResourceDescriptor] | list[PromptDescriptor]:
        """Resources/prompts are protocol extensions; a peer without them yields []."""
        if kind == "resources":
            fetch = self.list_resources
        elif kind == "prompts":
            fetch = self.list_prompts
        else:
            raise ValueError(f"'{kind}' is not an optional capability kind")
        try:
            return await fetch()
        except PeerError as e:
            logger.info(f"Server does not support {kind}: {e}")
            return []

    # --- Invocation ---

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Invoke ``name`` and return its content blocks. Failures raise PeerInvocationError."""
        try:
            result = await self.session.call_tool(name, arguments=arguments or {})
        except Exception as e:
            raise PeerInvocationError(name, _cause(e)) from e
        if result.isError:
            raise PeerInvocationError(name, _error_text(result))
        return [_dump(c) for c in result.content]


@asynccontextmanager
async def connect_peer(spec: ConnectionSpec, client_name: str = "mcp-context-saver-client") -> AsyncIterator[PeerClient]:
    """Scoped peer connection: closed exactly once on every exit path."""
    peer = PeerClient(spec, client_name=client_name)
    await peer.connect()
    try:
        yield peer
    finally:
        await peer.close()
