"""Unit tests for RunState: decisions, serialization and restore."""

import json

import pytest

from relay.agent.run.state import Decision, Interruption, RunState, coerce_decision, find_agent
from relay.agent.runner import Runner
from relay.agent.testing import tool_call, tool_response
from relay.exceptions import RelayError
from relay.model.message import ToolCall

EMAIL_ARGS = {"to": "ana@example.com", "subject": "Invoice", "html": "<p>Attached.</p>"}


@pytest.fixture
def desk(make_agent, email_tool):
  """Triage agent that hands off to a billing agent with a gated email tool."""
  billing = make_agent(
    [tool_response(tool_call("send_email", EMAIL_ARGS)), "Invoice sent."],
    name="Billing",
    tools=[email_tool],
  )
  triage = make_agent([tool_response(tool_call("transfer_to_billing"))], name="Triage", handoffs=[billing])
  return triage, billing


@pytest.mark.unit
class TestCoerceDecision:
  @pytest.mark.parametrize("value", [True, "approve", "approved", "YES", " y ", Decision.approved])
  def test_approvals(self, value):
    assert coerce_decision(value) == Decision.approved

  @pytest.mark.parametrize("value", [False, "reject", "rejected", "no", "N", Decision.rejected])
  def test_rejections(self, value):
    assert coerce_decision(value) == Decision.rejected

  @pytest.mark.parametrize("value", ["maybe", "", 1, None])
  def test_unrecognised(self, value):
    with pytest.raises(ValueError):
      coerce_decision(value)


@pytest.mark.unit
class TestInterruption:
  def test_parsed_arguments(self):
    interruption = Interruption(call_id="c1", agent_name="A", tool_name="t", arguments='{"x": 1}')
    assert interruption.parsed_arguments == {"x": 1}

  @pytest.mark.parametrize("raw", ["{bad", "[1]", ""])
  def test_unparseable_arguments(self, raw):
    assert Interruption(call_id="c1", agent_name="A", tool_name="t", arguments=raw).parsed_arguments == {}

  def test_dict_round_trip(self):
    interruption = Interruption(call_id="c1", agent_name="A", tool_name="t", arguments='{"x": 1}')
    assert Interruption.from_dict(interruption.to_dict()) == interruption


@pytest.mark.unit
class TestSerialization:
  @pytest.mark.asyncio
  async def test_json_round_trip(self, desk):
    triage, billing = desk
    paused = await Runner().arun(triage, "Email me my invoice")
    assert paused.is_paused
    assert paused.state.agent is billing

    paused.state.approve(paused.interruptions[0])
    data = json.loads(paused.state.to_json())
    assert data["version"] == 1
    assert data["agent"] == "Billing"
    assert data["decisions"] == {paused.interruptions[0].call_id: "approved"}

    restored = RunState.from_json(paused.state.to_json(), triage)
    assert restored.agent is billing
    assert restored.transcript == paused.state.transcript
    assert restored.batch == paused.state.batch
    assert restored.interruptions == paused.state.interruptions
    assert restored.decisions == paused.state.decisions
    assert restored.turn == paused.state.turn
    assert restored.run_id == paused.state.run_id
    assert restored.usage == paused.state.usage

  @pytest.mark.asyncio
  async def test_resume_from_restored_state(self, desk, outbox):
    triage, billing = desk
    runner = Runner()
    paused = await runner.arun(triage, "Email me my invoice")
    blob = paused.state.to_json()

    restored = RunState.from_json(blob, triage)
    restored.approve_all()
    result = await runner.aresume(restored)

    assert result.is_completed
    assert result.final_output == "Invoice sent."
    assert result.last_agent is billing
    assert len(outbox) == 1

  @pytest.mark.asyncio
  async def test_from_json_accepts_a_mapping(self, desk):
    triage, _ = desk
    paused = await Runner().arun(triage, "Email me my invoice")
    restored = RunState.from_json(paused.state.to_dict(), triage)
    assert isinstance(restored.batch[0], ToolCall)

  @pytest.mark.asyncio
  async def test_unsupported_version(self, desk):
    triage, _ = desk
    paused = await Runner().arun(triage, "Email me my invoice")
    data = paused.state.to_dict()
    data["version"] = 99
    with pytest.raises(RelayError, match="version"):
      RunState.from_dict(data, triage)

  @pytest.mark.asyncio
  async def test_unreachable_agent(self, desk, make_agent):
    triage, _ = desk
    paused = await Runner().arun(triage, "Email me my invoice")
    with pytest.raises(RelayError, match="not reachable"):
      RunState.from_dict(paused.state.to_dict(), make_agent(name="Stranger"))


@pytest.mark.unit
class TestFindAgent:
  def test_breadth_first(self, make_agent):
    leaf = make_agent(name="Leaf")
    middle = make_agent(name="Middle", handoffs=[leaf])
    root = make_agent(name="Root", handoffs=[middle])
    assert find_agent(root, "Leaf") is leaf
    assert find_agent(root, "Root") is root
    assert find_agent(root, "Nobody") is None


@pytest.mark.unit
class TestStateDecisions:
  def _state(self, make_agent):
    interruptions = [
      Interruption(call_id="a", agent_name="Assistant", tool_name="send_email"),
      Interruption(call_id="b", agent_name="Assistant", tool_name="send_email"),
    ]
    return RunState(agent=make_agent(), transcript=[], batch=[], interruptions=interruptions)

  def test_unresolved(self, make_agent):
    state = self._state(make_agent)
    state.approve("a")
    assert [i.call_id for i in state.unresolved()] == ["b"]

  def test_merged_decisions_leave_the_state_alone(self, make_agent):
    state = self._state(make_agent)
    state.approve("a")
    merged = state.merged_decisions({"b": "no"})
    assert merged == {"a": Decision.approved, "b": Decision.rejected}
    assert state.decisions == {"a": Decision.approved}

  def test_later_decision_replaces_earlier(self, make_agent):
    state = self._state(make_agent)
    state.approve("a")
    state.reject("a")
    assert state.decisions["a"] == Decision.rejected
