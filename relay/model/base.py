"""Model backend interface used by the agent loop."""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from relay.model.message import TranscriptItem
from relay.model.response import ModelResponse, ModelResponseDelta


class Model(ABC):
  """A language model the loop can call.

  Subclasses implement :meth:`ainvoke`. Streaming backends override
  :meth:`ainvoke_stream`; the default implementation emits the whole answer as
  one fragment.

  ``tools`` and ``handoffs`` are declarations in the OpenAI function format:
  ``{"name": ..., "description": ..., "parameters": {...}}``.
  """

  id: str = "model"
  provider: str = "unknown"

  @abstractmethod
  async def ainvoke(
    self,
    *,
    instructions: Optional[str],
    messages: Sequence[TranscriptItem],
    tools: Optional[List[Dict[str, Any]]] = None,
    handoffs: Optional[List[Dict[str, Any]]] = None,
    output_schema: Optional[Any] = None,
  ) -> ModelResponse: ...

  async def ainvoke_stream(
    self,
    *,
    instructions: Optional[str],
    messages: Sequence[TranscriptItem],
    tools: Optional[List[Dict[str, Any]]] = None,
    handoffs: Optional[List[Dict[str, Any]]] = None,
    output_schema: Optional[Any] = None,
  ) -> AsyncIterator[ModelResponseDelta]:
    response = await self.ainvoke(
      instructions=instructions,
      messages=messages,
      tools=tools,
      handoffs=handoffs,
      output_schema=output_schema,
    )
    if response.content:
      yield ModelResponseDelta(content=response.content)
    yield ModelResponseDelta(response=response)

  def __repr__(self) -> str:
    return f"{type(self).__name__}(id={self.id!r})"
