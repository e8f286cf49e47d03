"""
Weather assistant with a real HTTP tool.

This example shows how to:
- Define an async tool with the @tool decorator
- Call a public API (Open-Meteo, no key needed) with httpx
- Continue the conversation by passing the transcript back in

Requirements:
    pip install "relay-agents[examples]"
    export OPENAI_API_KEY=sk-...
"""

import httpx

from relay import Agent, run, tool, user
from relay.model.openai import OpenAIChat

GEOCODE_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"


@tool
async def get_weather(city: str) -> dict:
  """Get the current weather for a city.

  Args:
    city: City name, e.g. "Mumbai".
  """
  async with httpx.AsyncClient(timeout=10.0) as client:
    geo = await client.get(GEOCODE_URL, params={"name": city, "count": 1})
    geo.raise_for_status()
    matches = geo.json().get("results") or []
    if not matches:
      # Raised errors reach the model as a tool error it can explain
      raise ValueError(f"Unknown city: {city}")
    place = matches[0]

    forecast = await client.get(
      FORECAST_URL,
      params={"latitude": place["latitude"], "longitude": place["longitude"], "current": "temperature_2m,wind_speed_10m"},
    )
    forecast.raise_for_status()
    current = forecast.json()["current"]

  return {
    "city": place["name"],
    "country": place.get("country"),
    "temperature_c": current["temperature_2m"],
    "wind_kmh": current["wind_speed_10m"],
  }


def main():
  agent = Agent(
    name="Weather Assistant",
    model=OpenAIChat(id="gpt-4o-mini"),
    tools=[get_weather],
    instructions="You answer weather questions. Always use the get_weather tool; never guess.",
  )

  result = run(agent, "What's the weather like in Mumbai right now?")
  print("Assistant:", result.final_output)

  print("\nTool calls:")
  for call, tool_result in zip(result.tool_calls, result.tool_results):
    print(f"  - {call.tool_name}({call.arguments}) -> {tool_result.content}")

  # Next turn: the transcript is the conversation memory
  result = run(agent, result.history + [user("And how does that compare with Pune?")])
  print("\nAssistant:", result.final_output)
  print(f"\n[{len(result.history)} transcript items, {result.usage.total_tokens} tokens]")


if __name__ == "__main__":
  main()
