"""Tests for the expert coordinator (execute / discover / explain)."""

import json

import pytest

from conftest import FakePeer, ScriptedPlanner
from contextsaver.coordination import ExpertCoordinator, build_coordination_prompt
from contextsaver.core.errors import CoordinationError, InvalidRequestError, PeerError
from contextsaver.core.types import ExpertMode, PromptDescriptor, ResourceDescriptor
from contextsaver.planners import PlannerError


def _plan(*calls, explanation="doing it"):
    return json.dumps({
        "toolCalls": [{"name": n, "arguments": a} for n, a in calls],
        "explanation": explanation,
    })


def _coordinator(descriptor, peer, *responses):
    planner = ScriptedPlanner(*responses)
    return ExpertCoordinator(descriptor, peer, planner), planner


class TestExecute:
    @pytest.mark.asyncio
    async def test_single_call(self, descriptor, fake_peer):
        coord, planner = _coordinator(descriptor, fake_peer, _plan(("add", {"a": 15, "b": 27}), explanation="Adding"))
        out = await coord.handle_query("Please add 15 and 27")

        assert fake_peer.calls == [("add", {"a": 15, "b": 27})]
        assert out == {"explanation": "Adding", "results": [{"tool": "add", "result": [{"type": "text", "text": "42"}]}]}
        assert "Please add 15 and 27" in planner.prompts[0]
        assert descriptor.guidance in planner.prompts[0]
        assert planner.temperatures == [0.3]

    @pytest.mark.asyncio
    async def test_calls_run_in_plan_order(self, descriptor, fake_peer):
        coord, _ = _coordinator(descriptor, fake_peer, _plan(
            ("getCurrentTime", {}), ("echo", {"message": "hi"}), ("add", {"a": 1, "b": 2}),
        ))
        out = await coord.execute("several things")
        assert [c[0] for c in fake_peer.calls] == ["getCurrentTime", "echo", "add"]
        assert [r["tool"] for r in out["results"]] == ["getCurrentTime", "echo", "add"]

    @pytest.mark.asyncio
    async def test_failed_call_does_not_stop_the_rest(self, descriptor, fake_peer):
        coord, _ = _coordinator(descriptor, fake_peer, _plan(
            ("doesNotExist", {}), ("echo", {"message": "still here"}),
        ))
        out = await coord.execute("try both")

        assert len(out["results"]) == 2
        assert out["results"][0] == {"tool": "doesNotExist", "error": "Unknown tool: doesNotExist"}
        assert out["results"][1]["result"][0]["text"] == "Echo: still here"

    @pytest.mark.asyncio
    async def test_handler_exception_isolated(self, descriptor, fake_peer):
        coord, _ = _coordinator(descriptor, fake_peer, _plan(("add", {"a": 1}), ("add", {"a": 1, "b": 1})))
        out = await coord.execute("add badly then well")
        assert "error" in out["results"][0]
        assert out["results"][1]["result"][0]["text"] == "2"

    @pytest.mark.asyncio
    async def test_empty_plan(self, descriptor, fake_peer):
        coord, _ = _coordinator(descriptor, fake_peer, json.dumps({"explanation": "nothing applies"}))
        out = await coord.execute("what is love")
        assert out == {"explanation": "nothing applies", "results": []}
        assert fake_peer.calls == []

    @pytest.mark.asyncio
    async def test_unparsable_plan_makes_no_calls(self, descriptor, fake_peer):
        coord, _ = _coordinator(descriptor, fake_peer, "I would call add with 15 and 27.")
        with pytest.raises(CoordinationError, match="Failed to coordinate with wrapped server") as exc:
            await coord.execute("Please add 15 and 27")
        assert exc.value.stage == "planner"
        assert fake_peer.calls == []

    @pytest.mark.asyncio
    async def test_call_without_name_rejects_whole_plan(self, descriptor, fake_peer):
        coord, _ = _coordinator(descriptor, fake_peer, json.dumps({
            "toolCalls": [{"name": "echo", "arguments": {"message": "x"}}, {"arguments": {}}],
        }))
        with pytest.raises(CoordinationError):
            await coord.execute("q")
        assert fake_peer.calls == []

    @pytest.mark.asyncio
    async def test_planner_failure(self, descriptor, fake_peer):
        coord, _ = _coordinator(descriptor, fake_peer, PlannerError("Rate limit exceeded.", "openai", 429))
        with pytest.raises(CoordinationError, match="Rate limit exceeded"):
            await coord.execute("q")
        assert fake_peer.calls == []

    @pytest.mark.asyncio
    async def test_tool_listing_failure_propagates(self, descriptor):
        peer = FakePeer(supports_tools=False)
        coord, planner = _coordinator(descriptor, peer, _plan())
        with pytest.raises(PeerError):
            await coord.execute("q")
        assert planner.prompts == []


class TestDiscover:
    @pytest.mark.asyncio
    async def test_summary_and_listing(self, descriptor):
        peer = FakePeer(resources=[ResourceDescriptor(uri="file:///a", name="a")])
        coord, planner = _coordinator(descriptor, peer)
        out = await coord.handle_query("anything", ExpertMode.DISCOVER)

        assert out["summary"] == "Demo Tools Expert provides 3 tools, 1 resources, and 0 prompts"
        assert [t["name"] for t in out["tools"]] == ["echo", "add", "getCurrentTime"]
        assert out["resources"] == [{"uri": "file:///a", "name": "a"}]
        assert planner.prompts == []
        assert peer.calls == []

    @pytest.mark.asyncio
    async def test_repeatable(self, descriptor, fake_peer):
        coord, _ = _coordinator(descriptor, fake_peer)
        first = await coord.handle_query("x", "discover")
        second = await coord.handle_query("x", "discover")
        assert [t["name"] for t in first["tools"]] == [t["name"] for t in second["tools"]]

    @pytest.mark.asyncio
    async def test_unsupported_optional_kinds(self, descriptor):
        peer = FakePeer(prompts=[PromptDescriptor(name="p")], supports_resources=False)
        coord, _ = _coordinator(descriptor, peer)
        out = await coord.discover()
        assert out["resources"] == []
        assert out["prompts"] == [{"name": "p", "arguments": []}]


class TestExplain:
    @pytest.mark.asyncio
    async def test_fields(self, descriptor, fake_peer):
        coord, planner = _coordinator(descriptor, fake_peer)
        out = await coord.handle_query("help", "explain")

        assert out["description"] == descriptor.description
        assert out["systemPrompt"] == descriptor.guidance
        assert out["availableTools"] == "echo, add, getCurrentTime"
        assert "usage" in out
        assert planner.prompts == []

    @pytest.mark.asyncio
    async def test_no_tools(self, descriptor):
        coord, _ = _coordinator(descriptor, FakePeer(tools=[]))
        out = await coord.explain()
        assert out["availableTools"] == "none"


class TestModes:
    @pytest.mark.asyncio
    async def test_default_mode_is_execute(self, descriptor, fake_peer):
        coord, planner = _coordinator(descriptor, fake_peer, _plan())
        await coord.handle_query("hi")
        assert len(planner.prompts) == 1

    @pytest.mark.asyncio
    async def test_invalid_mode_rejected_before_any_work(self, descriptor, fake_peer):
        coord, planner = _coordinator(descriptor, fake_peer, _plan())
        with pytest.raises(InvalidRequestError, match="Invalid mode 'summarize'"):
            await coord.handle_query("hi", "summarize")
        assert planner.prompts == []
        assert fake_peer.list_calls == []


class TestCoordinationPrompt:
    def test_contains_guidance_tools_and_query(self, descriptor):
        prompt = build_coordination_prompt("GUIDE", list(descriptor.capabilities.tools), "add stuff")
        assert prompt.startswith("GUIDE")
        assert '"name": "getCurrentTime"' in prompt
        assert "User query: add stuff" in prompt
        assert '"toolCalls"' in prompt
