"""Agent definition: identity, instructions, model binding, tools, guardrails and handoffs."""

import inspect
import re
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Type, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from relay.agent.guardrail.base import validate_guardrail
from relay.exceptions import AgentDefinitionError, OutputContractViolation, RelayError
from relay.model.base import Model
from relay.tool.function import Function

if TYPE_CHECKING:
  from relay.agent.config import RunConfig

Instructions = Union[str, Callable[[Any], Union[str, Awaitable[str]]], None]

HANDOFF_PREFIX = "transfer_to_"


def handoff_tool_name(agent_name: str) -> str:
  """``"Sales Advisor"`` -> ``"transfer_to_sales_advisor"``."""
  slug = re.sub(r"[^a-z0-9_]+", "_", agent_name.lower()).strip("_")
  return f"{HANDOFF_PREFIX}{slug}"[:64]


class Agent:
  """
  A named bundle of instructions, a model and capabilities.

  Tools are fixed once built and checked for name clashes up front. Handoffs
  may be extended later with :meth:`add_handoffs` (or by assigning
  ``handoffs``) so agents can hand control back and forth. Use :meth:`clone`
  to derive a variant.

  Example:
      from relay import Agent, run, tool

      @tool
      def get_weather(city: str) -> dict:
          \"\"\"Get the current weather for a city.\"\"\"
          return {"city": city, "temp": 30}

      agent = Agent(
          name="Weather Assistant",
          instructions="Answer weather questions.",
          model="gpt-4o-mini",
          tools=[get_weather],
      )
      result = run(agent, "What's the weather in Mumbai?")
      print(result.final_output)
  """

  def __init__(
    self,
    *,
    name: str,
    instructions: Instructions = None,
    model: Union[str, Model, None] = None,
    tools: Optional[Sequence[Union[Function, Callable[..., Any]]]] = None,
    input_guardrails: Optional[Sequence[Any]] = None,
    output_guardrails: Optional[Sequence[Any]] = None,
    handoffs: Optional[Sequence["Agent"]] = None,
    output_schema: Optional[Type[Any]] = None,
    handoff_description: Optional[str] = None,
  ):
    """
    Build an agent.

    Args:
        name: Unique, human readable name. Used in handoff tool names and in
            resumable state.
        instructions: System instructions, or a (sync or async) callable
            ``(context) -> str`` evaluated before every model call.
        model: Model instance, or a model id string for :class:`OpenAIChat`.
            Defaults to ``OpenAIChat()``.
        tools: ``Function`` objects or plain callables (wrapped with
            ``Function.from_callable``).
        input_guardrails: Checks run against the newest user message.
        output_guardrails: Checks run against the candidate final output.
        handoffs: Agents this agent may delegate the conversation to.
        output_schema: Type the final answer must parse into (usually a
            pydantic model). Without one the final output is plain text.
        handoff_description: Shown to other agents' models in the handoff
            tool declaration.

    Raises:
        AgentDefinitionError: on duplicate tool names, handoff/tool name
            clashes or malformed guardrails.
    """
    if not name or not name.strip():
      raise AgentDefinitionError("Agent name must be a non-empty string")
    self.name = name
    self.instructions = instructions
    self.model: Model = self._resolve_model(model)
    self.tools: Tuple[Function, ...] = tuple(self._coerce_tool(t) for t in tools or ())
    self.input_guardrails: Tuple[Any, ...] = self._check_guardrails(input_guardrails, "input")
    self.output_guardrails: Tuple[Any, ...] = self._check_guardrails(output_guardrails, "output")
    self.output_schema = output_schema
    self.handoff_description = handoff_description

    self._tools_dict: Dict[str, Function] = {}
    for fn in self.tools:
      if fn.name in self._tools_dict:
        raise AgentDefinitionError(f"Agent '{name}' declares tool '{fn.name}' more than once")
      self._tools_dict[fn.name] = fn

    self.handoffs = handoffs or ()

    self._output_adapter: Optional[TypeAdapter] = TypeAdapter(output_schema) if output_schema is not None else None

  @property
  def handoffs(self) -> Tuple["Agent", ...]:
    return self._handoffs

  @handoffs.setter
  def handoffs(self, targets: Sequence["Agent"]) -> None:
    targets = tuple(targets)
    index: Dict[str, "Agent"] = {}
    for target in targets:
      if not isinstance(target, Agent):
        raise AgentDefinitionError(f"Handoff targets of '{self.name}' must be Agent instances, got {type(target).__name__}")
      tool_name = handoff_tool_name(target.name)
      if tool_name in self._tools_dict:
        raise AgentDefinitionError(f"Handoff to '{target.name}' clashes with tool '{tool_name}' on agent '{self.name}'")
      if tool_name in index:
        raise AgentDefinitionError(f"Agent '{self.name}' declares a handoff to '{target.name}' more than once")
      index[tool_name] = target
    self._handoffs = targets
    self._handoffs_dict = index

  def add_handoffs(self, *targets: "Agent") -> "Agent":
    """Declare more handoff targets after construction.

    Agents that hand off to each other can only be wired this way, since
    one of them has to exist before the other:

        reception = Agent(name="Reception", handoffs=[sales])
        sales.add_handoffs(reception)

    Checks are the same as in the constructor. Returns ``self``.
    """
    self.handoffs = self._handoffs + targets
    return self

  # ------------------------------------------------------------------
  # Construction helpers
  # ------------------------------------------------------------------

  @staticmethod
  def _resolve_model(model: Union[str, Model, None]) -> Model:
    if isinstance(model, Model):
      return model
    if model is None or isinstance(model, str):
      from relay.model.openai import OpenAIChat

      return OpenAIChat(id=model) if model else OpenAIChat()
    raise AgentDefinitionError(f"model must be a Model instance or a model id string, got {type(model).__name__}")

  @staticmethod
  def _coerce_tool(t: Any) -> Function:
    if isinstance(t, Function):
      return t
    if callable(t):
      return Function.from_callable(t)
    raise AgentDefinitionError(f"Tools must be Function objects or callables, got {type(t).__name__}")

  @staticmethod
  def _check_guardrails(guardrails: Optional[Sequence[Any]], guardrail_type: str) -> Tuple[Any, ...]:
    checked = tuple(guardrails or ())
    for guardrail in checked:
      try:
        validate_guardrail(guardrail, guardrail_type)
      except TypeError as e:
        raise AgentDefinitionError(str(e)) from e
    return checked

  # ------------------------------------------------------------------
  # Accessors used by the loop
  # ------------------------------------------------------------------

  async def get_instructions(self, context: Any) -> Optional[str]:
    """Resolve instructions for one model call."""
    if self.instructions is None or isinstance(self.instructions, str):
      return self.instructions
    value = self.instructions(context)
    if inspect.isawaitable(value):
      value = await value
    return value

  def get_tool(self, name: str) -> Optional[Function]:
    return self._tools_dict.get(name)

  def get_handoff(self, name: str) -> Optional["Agent"]:
    """Look up a handoff target by tool name (``transfer_to_x``) or agent name."""
    if name in self._handoffs_dict:
      return self._handoffs_dict[name]
    for target in self.handoffs:
      if target.name == name:
        return target
    return None

  def is_handoff(self, tool_name: str) -> bool:
    return tool_name in self._handoffs_dict

  def tool_declarations(self) -> List[Dict[str, Any]]:
    return [fn.to_dict() for fn in self.tools]

  def handoff_declarations(self) -> List[Dict[str, Any]]:
    declarations = []
    for tool_name, target in self._handoffs_dict.items():
      description = f"Handoff to the {target.name} agent to handle the request."
      if target.handoff_description:
        description = f"{description} {target.handoff_description}"
      declarations.append(
        {
          "name": tool_name,
          "description": description,
          "parameters": {"type": "object", "properties": {}, "required": [], "additionalProperties": False},
        }
      )
    return declarations

  def parse_output(self, text: str) -> Any:
    """Turn final answer text into the declared output type.

    Raises:
        OutputContractViolation: when the text does not satisfy ``output_schema``.
    """
    if self._output_adapter is None:
      return text
    try:
      return self._output_adapter.validate_json(text)
    except ValidationError as e:
      raise OutputContractViolation(self.name, text, str(e)) from e

  # ------------------------------------------------------------------
  # Derivation
  # ------------------------------------------------------------------

  def clone(self, **overrides: Any) -> "Agent":
    """Copy this agent with some constructor arguments replaced."""
    params = {
      "name": self.name,
      "instructions": self.instructions,
      "model": self.model,
      "tools": self.tools,
      "input_guardrails": self.input_guardrails,
      "output_guardrails": self.output_guardrails,
      "handoffs": self.handoffs,
      "output_schema": self.output_schema,
      "handoff_description": self.handoff_description,
    }
    params.update(overrides)
    return Agent(**params)

  def as_tool(
    self,
    tool_name: Optional[str] = None,
    tool_description: Optional[str] = None,
    *,
    config: Optional["RunConfig"] = None,
  ) -> Function:
    """Expose this agent as a tool of another agent.

    Calling the tool runs this agent on the ``input`` text in a fresh,
    independent run (sharing only the context) and returns its final output.
    Unlike a handoff, control stays with the calling agent.

    A nested run that pauses for approval or is blocked by a guardrail
    raises, so the calling model sees an ``execution_failed`` tool error.
    """
    agent = self

    async def run_agent(input: str, context: Any = None) -> Any:
      """
      Args:
          input: The request to hand to the agent.
      """
      from relay.agent.runner import Runner

      result = await Runner(config=config).arun(agent, input, context)
      if result.is_paused:
        names = ", ".join(i.tool_name for i in result.interruptions)
        raise RelayError(f"Agent '{agent.name}' needs approval for {names}, which is not supported when running as a tool")
      if result.is_blocked:
        detail = result.guardrail.detail if result.guardrail else None
        raise RelayError(f"Agent '{agent.name}' refused the request: {detail or 'guardrail tripped'}")
      final_output = result.final_output
      if isinstance(final_output, BaseModel):
        return final_output.model_dump(mode="json")
      return final_output

    default_name = re.sub(r"[^a-zA-Z0-9_-]+", "_", self.name).strip("_").lower()[:64]
    return Function.from_callable(
      run_agent,
      name=tool_name or default_name,
      description=tool_description or self.handoff_description or f"Ask the {self.name} agent.",
    )

  def __repr__(self) -> str:
    return f"Agent(name={self.name!r}, tools={[t.name for t in self.tools]}, handoffs={[h.name for h in self.handoffs]})"
