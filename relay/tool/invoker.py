"""Validate and invoke a tool, normalizing every failure into a ToolError."""

import asyncio
import inspect
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from relay.exceptions import ToolError, ToolErrorKind
from relay.model.message import ToolCall, ToolResult
from relay.tool.function import Function
from relay.utils.log import log_debug, log_warning
from relay.utils.serialize import to_jsonable


@dataclass
class ToolOutcome:
  """Result of one invocation: a value or a :class:`ToolError`, never both."""

  value: Any = None
  error: Optional[ToolError] = None

  @property
  def ok(self) -> bool:
    return self.error is None

  @classmethod
  def failure(cls, kind: ToolErrorKind, detail: str, tool_name: Optional[str] = None) -> "ToolOutcome":
    return cls(error=ToolError(kind, detail, tool_name=tool_name))

  def to_result(self, call: ToolCall) -> ToolResult:
    if self.error is not None:
      return ToolResult(
        call_id=call.id,
        tool_name=call.tool_name,
        error=self.error.detail,
        error_kind=self.error.kind.value,
      )
    return ToolResult(call_id=call.id, tool_name=call.tool_name, value=self.value)


def parse_arguments(raw_arguments: Union[str, Mapping[str, Any], None]) -> Dict[str, Any]:
  """Decode raw model arguments into a dict.

  Raises:
      ToolError: ``invalid_arguments`` for malformed JSON or a non-object payload.
  """
  if raw_arguments is None:
    return {}
  if isinstance(raw_arguments, Mapping):
    return dict(raw_arguments)
  if not raw_arguments.strip():
    return {}
  try:
    parsed = json.loads(raw_arguments)
  except json.JSONDecodeError as e:
    raise ToolError(ToolErrorKind.invalid_arguments, f"Arguments are not valid JSON: {e.msg}") from e
  if not isinstance(parsed, dict):
    raise ToolError(ToolErrorKind.invalid_arguments, f"Arguments must be a JSON object, got {type(parsed).__name__}")
  return parsed


def _describe_validation_error(error: ValidationError) -> str:
  parts = []
  for err in error.errors():
    location = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
    parts.append(f"{location}: {err.get('msg')}")
  return "; ".join(parts)


async def invoke_tool(function: Function, raw_arguments: Union[str, Mapping[str, Any], None], context: Any) -> ToolOutcome:
  """Validate ``raw_arguments`` against the tool schema and run the tool.

  Never raises for tool-local failures; ``asyncio.CancelledError`` still
  propagates so a cancelled run observes no outcome.
  """
  try:
    arguments = parse_arguments(raw_arguments)
    kwargs = function.validate_arguments(arguments)
  except ToolError as e:
    e.tool_name = function.name
    return ToolOutcome(error=e)
  except ValidationError as e:
    return ToolOutcome.failure(ToolErrorKind.invalid_arguments, _describe_validation_error(e), function.name)
  except (ValueError, TypeError) as e:
    return ToolOutcome.failure(ToolErrorKind.invalid_arguments, str(e), function.name)

  if function.entrypoint is None:
    return ToolOutcome.failure(ToolErrorKind.execution_failed, f"Tool '{function.name}' has no entrypoint", function.name)

  if function.context_param is not None:
    kwargs[function.context_param] = context

  log_debug(f"Invoking tool '{function.name}' with {sorted(arguments)}")
  try:
    if inspect.iscoroutinefunction(function.entrypoint):
      result = await function.entrypoint(**kwargs)
    else:
      result = await asyncio.to_thread(function.entrypoint, **kwargs)
      if inspect.isawaitable(result):
        result = await result
  except Exception as e:
    log_warning(f"Tool '{function.name}' failed: {type(e).__name__}: {e}")
    return ToolOutcome(error=ToolError(ToolErrorKind.execution_failed, f"{type(e).__name__}: {e}", tool_name=function.name, cause=e))

  return ToolOutcome(value=to_jsonable(result))
