"""Expert coordinator — answers one natural-language query against the wrapped peer."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from contextsaver.core.errors import CoordinationError, InvalidRequestError, PeerInvocationError
from contextsaver.core.parsing import parse_structured_response
from contextsaver.core.types import (
    ExpertDescriptor,
    ExpertMode,
    InvocationPlan,
    InvocationResult,
    ToolDescriptor,
)
from contextsaver.peer import PeerClient
from contextsaver.planners import BasePlanner

logger = logging.getLogger("contextsaver.coordination")

USAGE_HINT = "Ask me to perform tasks and I'll use the appropriate tools from the wrapped server."

COORDINATION_PROMPT = """\
{guidance}

Available tools:
{tools}

User query: {query}

Based on the user's query and available tools, determine which tool(s) to use and with what arguments.
Respond with a JSON object in this format:
{{
  "toolCalls": [
    {{
      "name": "tool_name",
      "arguments": {{ ... }}
    }}
  ],
  "explanation": "Brief explanation of what you're doing"
}}

Respond ONLY with valid JSON."""


def build_coordination_prompt(guidance: str, tools: list[ToolDescriptor], query: str) -> str:
    return COORDINATION_PROMPT.format(
        guidance=guidance,
        tools=json.dumps([t.to_dict() for t in tools], indent=2),
        query=query,
    )


def _coerce_mode(mode: ExpertMode | str | None) -> ExpertMode:
    if mode is None:
        return ExpertMode.EXECUTE
    try:
        return ExpertMode(mode)
    except ValueError:
        allowed = ", ".join(m.value for m in ExpertMode)
        raise InvalidRequestError(f"Invalid mode '{mode}'. Expected one of: {allowed}") from None


class ExpertCoordinator:
    """
    Maps queries to structured invocations on one peer.

    The descriptor is read, never mutated. The peer is used by one query at
    a time; planned calls run strictly in plan order.
    """

    def __init__(
        self,
        descriptor: ExpertDescriptor,
        peer: PeerClient,
        planner: BasePlanner,
        temperature: float = 0.3,
    ):
        self.descriptor = descriptor
        self.peer = peer
        self.planner = planner
        self.temperature = temperature

    async def handle_query(self, query: str, mode: ExpertMode | str | None = None) -> dict[str, Any]:
        effective = _coerce_mode(mode)
        logger.info(f"{self.descriptor.name}: {effective.value} query")
        if effective is ExpertMode.DISCOVER:
            return await self.discover()
        if effective is ExpertMode.EXPLAIN:
            return await self.explain()
        return await self.execute(query)

    # --- Modes ---

    async def discover(self) -> dict[str, Any]:
        """Fresh enumeration of the peer. No planner call."""
        tools, resources, prompts = await asyncio.gather(
            self.peer.list_tools(),
            self.peer.list_optional("resources"),
            self.peer.list_optional("prompts"),
        )
        return {
            "summary": (
                f"{self.descriptor.name} provides {len(tools)} tools, "
                f"{len(resources)} resources, and {len(prompts)} prompts"
            ),
            "tools": [t.to_dict() for t in tools],
            "resources": [r.to_dict() for r in resources],
            "prompts": [p.to_dict() for p in prompts],
        }

    async def explain(self) -> dict[str, Any]:
        """Describe the expert from the descriptor plus a fresh tool listing. No planner call."""
        tools = await self.peer.list_tools()
        return {
            "description": self.descriptor.description,
            "systemPrompt": self.descriptor.guidance,
            "availableTools": ", ".join(t.name for t in tools) or "none",
            "usage": USAGE_HINT,
        }

    async def execute(self, query: str) -> dict[str, Any]:
        tools = await self.peer.list_tools()
        plan = await self.plan(query, tools)
        logger.info(f"Plan has {len(plan.tool_calls)} call(s): {plan.explanation}")
        results = await self.run_plan(plan)
        return {"explanation": plan.explanation, "results": [r.to_dict() for r in results]}

    # --- Steps ---

    async def plan(self, query: str, tools: list[ToolDescriptor]) -> InvocationPlan:
        prompt = build_coordination_prompt(self.descriptor.guidance, tools, query)
        try:
            text = await self.planner.generate(prompt, temperature=self.temperature)
        except Exception as e:
            raise CoordinationError(str(e)) from e

        parsed = parse_structured_response(text, InvocationPlan)
        if not parsed.ok:
            raise CoordinationError(parsed.error or "unparsable planner output")
        return parsed.unwrap()

    async def run_plan(self, plan: InvocationPlan) -> list[InvocationResult]:
        # Each call only sees the arguments the planner supplied up front;
        # outputs are not threaded into later calls.
        results: list[InvocationResult] = []
        for call in plan.tool_calls:
            try:
                content = await self.peer.call_tool(call.name, call.arguments)
            except PeerInvocationError as e:
                logger.warning(f"Tool '{call.name}' failed: {e}")
                results.append(InvocationResult(tool=call.name, error=str(e)))
                continue
            logger.debug(f"Tool '{call.name}' succeeded")
            results.append(InvocationResult(tool=call.name, result=content))
        return results
