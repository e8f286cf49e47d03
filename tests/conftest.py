"""
Root conftest: shared fixtures for the entire test suite.

Every test runs against ``MockModel``; nothing here touches the network.

Fixture guide:
  - ``weather_tool`` / ``weather_calls``: plain tool with a call log
  - ``email_tool`` / ``outbox``: approval-gated tool with a side-effect log
  - ``make_agent``: factory for agents backed by a scripted model
"""

from typing import Any, Dict, List

import pytest

from relay.agent.agent import Agent
from relay.agent.testing import MockModel
from relay.tool.decorator import tool
from relay.tool.function import Function


@pytest.fixture
def weather_calls() -> List[str]:
  return []


@pytest.fixture
def weather_tool(weather_calls) -> Function:
  @tool
  def get_weather(city: str) -> Dict[str, Any]:
    """Get the current weather for a city.

    Args:
      city: Name of the city.
    """
    weather_calls.append(city)
    return {"city": city, "temp": 30}

  return get_weather


@pytest.fixture
def outbox() -> List[Dict[str, str]]:
  return []


@pytest.fixture
def email_tool(outbox) -> Function:
  @tool(needs_approval=True)
  async def send_email(to: str, subject: str, html: str) -> str:
    """Send an email.

    Args:
      to: Recipient address.
      subject: Subject line.
      html: HTML body.
    """
    outbox.append({"to": to, "subject": subject, "html": html})
    return f"Email sent to {to}"

  return send_email


@pytest.fixture
def make_agent():
  """Build an agent around a MockModel scripted with *responses*."""

  def factory(responses=None, name: str = "Assistant", **kwargs: Any) -> Agent:
    model = kwargs.pop("model", None) or MockModel(responses=responses)
    return Agent(name=name, model=model, **kwargs)

  return factory
