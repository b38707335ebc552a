"""
Discovery Engine — turns a running MCP server into an Expert Descriptor.

Connect, enumerate tools/resources/prompts, ask the planner to summarize the
server, persist the result. The peer connection opened here is closed
exactly once whatever happens after it was opened.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path

from contextsaver.config import ContextSaverConfig, load_config
from contextsaver.core.errors import AnalysisError
from contextsaver.core.parsing import parse_structured_response
from contextsaver.core.types import (
    AnalysisResult,
    CapabilityManifest,
    ConnectionSpec,
    ExpertAnalysis,
    ExpertDescriptor,
    Provenance,
)
from contextsaver.descriptors import save_descriptor
from contextsaver.peer import PeerClient
from contextsaver.planners import BasePlanner, create_planner

logger = logging.getLogger("contextsaver.discovery")

PeerFactory = Callable[..., PeerClient]


ANALYSIS_PROMPT = """\
You are analyzing an MCP (Model Context Protocol) server's capabilities to generate an expert tool configuration.

The server provides the following capabilities:

TOOLS ({tool_count}):
{tools}

RESOURCES ({resource_count}):
{resources}

PROMPTS ({prompt_count}):
{prompts}

Based on these capabilities, generate a JSON configuration with the following structure:
{{
  "expertName": "A concise, descriptive name for this expert (e.g., 'File System Expert', 'Database Manager')",
  "expertDescription": "A clear description of what this MCP server does and its primary capabilities",
  "systemPrompt": "A system prompt for an LLM to understand how to coordinate with this MCP server. Include key capabilities and usage guidance.",
  "capabilities": {{
    "tools": ["list", "of", "tool", "names"],
    "resources": ["list", "of", "resource", "uris"],
    "prompts": ["list", "of", "prompt", "names"]
  }}
}}

Generate ONLY valid JSON without any markdown formatting or additional text."""


def build_analysis_prompt(manifest: CapabilityManifest) -> str:
    data = manifest.to_dict()
    tools, resources, prompts = manifest.counts()
    return ANALYSIS_PROMPT.format(
        tool_count=tools,
        tools=json.dumps(data["tools"], indent=2),
        resource_count=resources,
        resources=json.dumps(data["resources"], indent=2),
        prompt_count=prompts,
        prompts=json.dumps(data["prompts"], indent=2),
    )


class DiscoveryEngine:
    """
    Produces validated Expert Descriptors.

    Usage:
        engine = DiscoveryEngine(load_config())
        result = await engine.analyze("node", ["server.js"])
    """

    def __init__(
        self,
        config: ContextSaverConfig,
        planner: BasePlanner | None = None,
        peer_factory: PeerFactory = PeerClient,
    ):
        self.config = config
        self._planner = planner
        self._owns_planner = planner is None
        self._peer_factory = peer_factory

    @property
    def planner(self) -> BasePlanner:
        if self._planner is None:
            self._planner = create_planner(self.config.planner)
        return self._planner

    async def close(self) -> None:
        """Close the planner if this engine created it."""
        if self._owns_planner and self._planner is not None:
            await self._planner.close()
            self._planner = None

    async def analyze(self, server_path: str, args: Sequence[str] = ()) -> AnalysisResult:
        self.config.require_credential()

        spec = ConnectionSpec(command=server_path, args=list(args))
        peer = self._peer_factory(spec, client_name=f"{self.config.server_name}-analyzer")
        await peer.connect()
        try:
            manifest = await self.discover_capabilities(peer)
            analysis = await self.summarize(manifest)
        finally:
            await peer.close()

        descriptor = ExpertDescriptor(
            name=analysis.expert_name,
            description=analysis.expert_description,
            server_path=server_path,
            args=list(args),
            guidance=analysis.system_prompt,
            capabilities=manifest,
            provenance=Provenance(
                analyzed_at=datetime.now(UTC).isoformat(),
                tool_count=len(manifest.tools),
                resource_count=len(manifest.resources),
                prompt_count=len(manifest.prompts),
            ),
        )
        path = save_descriptor(descriptor, Path(self.config.configs_dir))

        return AnalysisResult(
            expert_name=descriptor.name,
            expert_description=descriptor.description,
            guidance=descriptor.guidance,
            capabilities=manifest,
            config_path=path,
        )

    async def discover_capabilities(self, peer: PeerClient) -> CapabilityManifest:
        """Tools are mandatory; resources and prompts degrade to [] independently."""
        logger.info("Discovering tools...")
        tools = await peer.list_tools()
        logger.info(f"Found {len(tools)} tools")

        logger.info("Discovering resources...")
        resources = await peer.list_optional("resources")
        logger.info(f"Found {len(resources)} resources")

        logger.info("Discovering prompts...")
        prompts = await peer.list_optional("prompts")
        logger.info(f"Found {len(prompts)} prompts")

        return CapabilityManifest(tools=tools, resources=resources, prompts=prompts)

    async def summarize(self, manifest: CapabilityManifest) -> ExpertAnalysis:
        prompt = build_analysis_prompt(manifest)
        try:
            text = await self.planner.generate(prompt, temperature=self.config.planner.temperature)
        except Exception as e:
            raise AnalysisError(str(e)) from e

        parsed = parse_structured_response(text, ExpertAnalysis)
        if not parsed.ok:
            raise AnalysisError(parsed.error or "unparsable planner output")
        analysis = parsed.unwrap()

        echoed = set(analysis.capabilities.tools)
        missing = [n for n in manifest.tool_names() if n not in echoed]
        if missing:
            logger.debug(f"Planner summary did not mention tools: {', '.join(missing)}")
        return analysis


async def analyze_server(
    server_path: str,
    args: Sequence[str] = (),
    config: ContextSaverConfig | None = None,
    planner: BasePlanner | None = None,
    peer_factory: PeerFactory = PeerClient,
) -> AnalysisResult:
    """Analyze an MCP server and write its Expert Descriptor."""
    engine = DiscoveryEngine(config or load_config(), planner=planner, peer_factory=peer_factory)
    try:
        return await engine.analyze(server_path, args)
    finally:
        await engine.close()
