"""
Expert server — one serve session exposing a single MCP tool.

Session lifecycle:
    UNSTARTED → LOADING → CONNECTED → SERVING → SHUTTING_DOWN → STOPPED

Loading or connecting failures end the session before it ever serves.
``shutdown()`` is the one operation a host wires to its termination signals;
on shutdown the peer connection is closed first, then the serving transport,
each attempted even if the other fails.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from enum import Enum
from pathlib import Path
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from contextsaver import __version__
from contextsaver.config import ContextSaverConfig, load_config
from contextsaver.coordination.expert import ExpertCoordinator
from contextsaver.core.errors import (
    ContextSaverError,
    InvalidRequestError,
    PeerConnectionError,
    UnknownEntryPointError,
)
from contextsaver.core.types import ExpertDescriptor, ExpertMode, ExpertQuery
from contextsaver.descriptors import load_descriptor, slugify
from contextsaver.discovery.analyzer import PeerFactory
from contextsaver.peer import PeerClient
from contextsaver.planners import BasePlanner, create_planner

logger = logging.getLogger("contextsaver.server")


class SessionState(str, Enum):
    UNSTARTED = "unstarted"
    LOADING = "loading"
    CONNECTED = "connected"
    SERVING = "serving"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


def build_expert_tool(descriptor: ExpertDescriptor) -> types.Tool:
    """The single entry point. Its name is stable across sessions for one descriptor."""
    return types.Tool(
        name=slugify(descriptor.name),
        description=descriptor.description,
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Your request or question"},
                "mode": {
                    "type": "string",
                    "enum": [m.value for m in ExpertMode],
                    "description": "Operation mode",
                },
            },
            "required": ["query"],
        },
    )


def _validation_message(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
    )


class ExpertServer:
    """Holds the descriptor, the live peer connection and the one exposed tool."""

    def __init__(
        self,
        descriptor_path: Path | str,
        config: ContextSaverConfig,
        planner: BasePlanner | None = None,
        peer_factory: PeerFactory = PeerClient,
    ):
        self.descriptor_path = Path(descriptor_path)
        self.config = config
        self._planner = planner
        self._owns_planner = planner is None
        self._peer_factory = peer_factory

        self.state = SessionState.UNSTARTED
        self.descriptor: ExpertDescriptor | None = None
        self.peer: PeerClient | None = None
        self.coordinator: ExpertCoordinator | None = None
        self.expert_tool: types.Tool | None = None

        self._query_lock = asyncio.Lock()
        self._stop = asyncio.Event()

    # --- Startup ---

    async def start(self) -> None:
        self.config.require_credential()

        self.state = SessionState.LOADING
        try:
            self.descriptor = load_descriptor(self.descriptor_path)
            logger.info(f"Loaded expert '{self.descriptor.name}' from {self.descriptor_path}")

            if self._planner is None:
                self._planner = create_planner(self.config.planner)

            peer = self._peer_factory(self.descriptor.connection_spec, client_name=self.config.client_name)
            try:
                await peer.connect()
            except PeerConnectionError as e:
                cause = e.__cause__ or e
                raise PeerConnectionError(f"Failed to connect to wrapped server: {cause}") from e
        except ContextSaverError:
            self.state = SessionState.STOPPED
            await self._close_planner()
            raise

        self.peer = peer
        self.coordinator = ExpertCoordinator(
            self.descriptor, peer, self._planner, temperature=self.config.planner.temperature
        )
        self.expert_tool = build_expert_tool(self.descriptor)
        self.state = SessionState.CONNECTED
        logger.info(f"Connected to wrapped server; exposing tool '{self.expert_tool.name}'")

    # --- Entry point ---

    def list_entry_points(self) -> list[types.Tool]:
        if self.expert_tool is None:
            raise InvalidRequestError("Expert server has not been started")
        return [self.expert_tool]

    async def call_entry_point(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        if self.expert_tool is None or self.coordinator is None:
            raise InvalidRequestError("Expert server has not been started")
        if name != self.expert_tool.name:
            raise UnknownEntryPointError(name)
        try:
            request = ExpertQuery.model_validate(arguments or {})
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid arguments for {name}: {_validation_message(e)}") from e

        async with self._query_lock:
            result = await self.coordinator.handle_query(request.query, request.mode)
        return [types.TextContent(type="text", text=json.dumps(result, indent=2))]

    def build_mcp_server(self) -> Server:
        server = Server(self.config.server_name, version=__version__)

        @server.list_tools()
        async def _list_tools() -> list[types.Tool]:
            return self.list_entry_points()

        @server.call_tool()
        async def _call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
            return await self.call_entry_point(name, arguments)

        return server

    # --- Serving ---

    async def run_stdio(self) -> None:
        """Start and serve over stdio until the transport ends or shutdown() is called."""
        await self.run_transport(stdio_server)

    async def run_transport(self, transport: Callable[[], AbstractAsyncContextManager[tuple[Any, Any]]]) -> None:
        """
        Open ``transport``, then start the session inside it and serve.

        The peer connection has to be entered after the transport so that it
        is the innermost scope: shutdown closes it first, in this task.
        """
        async with transport() as (read_stream, write_stream):
            if self.state is SessionState.UNSTARTED:
                await self.start()
            await self.serve_streams(read_stream, write_stream)

    async def serve_streams(self, read_stream, write_stream) -> None:
        server = self.build_mcp_server()
        self.state = SessionState.SERVING
        serve_task = asyncio.create_task(
            server.run(read_stream, write_stream, server.create_initialization_options())
        )
        stop_task = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_task.cancel()
            await self._close(serve_task)

    def shutdown(self) -> None:
        """Request shutdown. Safe to call from a signal handler."""
        logger.info("Shutdown requested")
        self._stop.set()

    async def _close(self, serve_task: asyncio.Task | None = None) -> None:
        self.state = SessionState.SHUTTING_DOWN

        if self.peer is not None:
            try:
                await self.peer.close()
            except Exception as e:
                logger.error(f"Error closing wrapped server connection: {e}")

        if serve_task is not None:
            if not serve_task.done():
                serve_task.cancel()
            try:
                await serve_task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
            except Exception as e:
                logger.error(f"Error closing serving transport: {e}")

        await self._close_planner()

        self.state = SessionState.STOPPED
        logger.info("Expert server stopped")

    async def _close_planner(self) -> None:
        if self._owns_planner and self._planner is not None:
            await self._planner.close()
            self._planner = None


# ---------------------------------------------------------------------------
# Hosting
# ---------------------------------------------------------------------------

async def serve(descriptor_path: Path | str, config: ContextSaverConfig | None = None) -> None:
    """Host one expert session on stdio with SIGINT/SIGTERM wired to shutdown."""
    # stdout carries the MCP protocol
    logging.basicConfig(stream=sys.stderr, level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    session = ExpertServer(descriptor_path, config or load_config())
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, session.shutdown)
        except NotImplementedError:
            logger.debug(f"Signal handlers unavailable for {sig.name} on this platform")
    await session.run_stdio()


def run(descriptor_path: Path | str, config: ContextSaverConfig | None = None) -> None:
    asyncio.run(serve(descriptor_path, config))
