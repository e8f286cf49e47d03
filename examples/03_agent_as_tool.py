"""
Agents as tools.

This example shows how to:
- Expose an agent to another agent with as_tool()
- Keep control with the orchestrator (unlike a handoff)
- Return structured output from a nested agent

Requirements:
    export OPENAI_API_KEY=sk-...
"""

from pydantic import BaseModel, Field

from relay import Agent, run


class Sentiment(BaseModel):
  label: str = Field(description="positive, neutral or negative")
  confidence: float


spanish = Agent(name="Spanish Translator", model="gpt-4o-mini", instructions="Translate the text into Spanish. Reply with the translation only.")
french = Agent(name="French Translator", model="gpt-4o-mini", instructions="Translate the text into French. Reply with the translation only.")
sentiment = Agent(
  name="Sentiment",
  model="gpt-4o-mini",
  instructions="Classify the sentiment of the text.",
  output_schema=Sentiment,
)

orchestrator = Agent(
  name="Orchestrator",
  model="gpt-4o-mini",
  instructions="Use your tools to translate and analyse text. Combine their answers into one reply.",
  tools=[
    spanish.as_tool("translate_to_spanish", "Translate text into Spanish."),
    french.as_tool("translate_to_french", "Translate text into French."),
    sentiment.as_tool("classify_sentiment", "Classify the sentiment of text."),
  ],
)


def main():
  result = run(orchestrator, "Translate 'I love rainy Sundays' into Spanish and French, and tell me its sentiment.")
  print(result.final_output)

  print("\nNested runs:")
  for tool_result in result.tool_results:
    print(f"  {tool_result.tool_name}: {tool_result.content}")


if __name__ == "__main__":
  main()
