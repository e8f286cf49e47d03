"""Function: a named callable with a declared input schema."""

import inspect
import re
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, get_type_hints

from pydantic import BaseModel, ConfigDict, Field, create_model, field_validator

# Parameters with these names receive the run context instead of model arguments.
CONTEXT_PARAM_NAMES = ("context", "run_context")

_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


def _empty_parameters() -> Dict[str, Any]:
  return {"type": "object", "properties": {}, "required": []}


class Function(BaseModel):
  """A tool the model can call.

  Attributes:
    name: Unique (per agent) tool name shown to the model.
    description: What the tool does; shown to the model.
    parameters: JSON schema of the arguments object.
    entrypoint: The callable invoked with validated keyword arguments.
    needs_approval: When True the loop pauses for an approve/reject decision
      before invoking the tool.
    args_model: Pydantic model used to validate arguments before invocation.
    context_param: Name of the entrypoint parameter that receives the run context.
  """

  model_config = ConfigDict(arbitrary_types_allowed=True)

  name: str
  description: Optional[str] = None
  parameters: Dict[str, Any] = Field(default_factory=_empty_parameters)
  entrypoint: Optional[Callable[..., Any]] = None
  needs_approval: bool = False
  args_model: Optional[Type[BaseModel]] = None
  context_param: Optional[str] = None

  @field_validator("name")
  @classmethod
  def _check_name(cls, value: str) -> str:
    if not _NAME_PATTERN.match(value):
      raise ValueError(f"Invalid tool name {value!r}: use 1-64 letters, digits, '_' or '-'")
    return value

  def to_dict(self) -> Dict[str, Any]:
    """Declaration sent to the model (name, description, parameters)."""
    return self.model_dump(include={"name", "description", "parameters"}, exclude_none=True)

  @classmethod
  def from_callable(
    cls,
    c: Callable[..., Any],
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    needs_approval: bool = False,
    args_model: Optional[Type[BaseModel]] = None,
  ) -> "Function":
    """Build a Function from a plain (sync or async) callable.

    The arguments schema comes from ``args_model`` when given, otherwise from
    the callable's signature and type hints. ``Args:`` entries of a Google
    style docstring become parameter descriptions.
    """
    fn_name = name or c.__name__
    summary, arg_docs = _parse_docstring(inspect.getdoc(c))
    context_param = _find_context_param(c)
    if args_model is None:
      args_model = _args_model_from_signature(c, fn_name, arg_docs)
    return cls(
      name=fn_name,
      description=description or summary,
      parameters=schema_for(args_model),
      entrypoint=c,
      needs_approval=needs_approval,
      args_model=args_model,
      context_param=context_param,
    )

  def validate_arguments(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Return validated keyword arguments for the entrypoint.

    Raises:
        pydantic.ValidationError: when ``args_model`` rejects the arguments.
        ValueError: when required keys are missing or unknown keys are given.
    """
    if self.args_model is not None:
      validated = self.args_model.model_validate(arguments)
      return {field: getattr(validated, field) for field in type(validated).model_fields}

    properties = self.parameters.get("properties", {})
    missing = [key for key in self.parameters.get("required", []) if key not in arguments]
    if missing:
      raise ValueError(f"Missing required argument(s): {', '.join(missing)}")
    if self.parameters.get("additionalProperties") is False:
      unknown = [key for key in arguments if key not in properties]
      if unknown:
        raise ValueError(f"Unexpected argument(s): {', '.join(unknown)}")
    return dict(arguments)

  def __repr__(self) -> str:
    return f"Function(name={self.name!r}, needs_approval={self.needs_approval})"


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def schema_for(model: Type[BaseModel]) -> Dict[str, Any]:
  """JSON schema of an arguments model, without pydantic's titles."""
  schema = model.model_json_schema()
  schema.pop("title", None)
  for prop in schema.get("properties", {}).values():
    if isinstance(prop, dict):
      prop.pop("title", None)
  schema.setdefault("required", [])
  return schema


def _find_context_param(c: Callable[..., Any]) -> Optional[str]:
  for param_name in inspect.signature(c).parameters:
    if param_name in CONTEXT_PARAM_NAMES:
      return param_name
  return None


def _args_model_from_signature(c: Callable[..., Any], fn_name: str, arg_docs: Dict[str, str]) -> Type[BaseModel]:
  try:
    hints = get_type_hints(c, include_extras=True)
  except Exception:
    hints = {}

  fields: Dict[str, Tuple[Any, Any]] = {}
  for param_name, param in inspect.signature(c).parameters.items():
    if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
      continue
    if param_name in CONTEXT_PARAM_NAMES or param_name in ("self", "cls"):
      continue
    annotation = hints.get(param_name, Any)
    default = ... if param.default is inspect.Parameter.empty else param.default
    fields[param_name] = (annotation, Field(default, description=arg_docs.get(param_name)))

  model_name = "".join(part.capitalize() for part in re.split(r"[_-]", fn_name) if part) + "Args"
  return create_model(model_name, __config__=ConfigDict(extra="forbid"), **fields)  # type: ignore[call-overload]


def _parse_docstring(doc: Optional[str]) -> Tuple[Optional[str], Dict[str, str]]:
  """Split a Google style docstring into (summary, {arg: description})."""
  if not doc:
    return None, {}

  summary_lines: List[str] = []
  arg_docs: Dict[str, str] = {}
  section: Optional[str] = None
  current: Optional[str] = None

  for raw in doc.splitlines():
    line = raw.strip()
    if line.lower().rstrip(":") in ("args", "arguments", "parameters", "returns", "raises", "yields", "example", "examples"):
      section = line.lower().rstrip(":")
      current = None
      continue
    if section is None:
      if not line and summary_lines:
        section = "body"
      elif line:
        summary_lines.append(line)
    elif section in ("args", "arguments", "parameters") and line:
      match = re.match(r"^(\w+)\s*(\([^)]*\))?\s*:\s*(.*)$", line)
      if match:
        current = match.group(1)
        arg_docs[current] = match.group(3)
      elif current is not None:
        arg_docs[current] = f"{arg_docs[current]} {line}".strip()

  return (" ".join(summary_lines) or None), arg_docs
