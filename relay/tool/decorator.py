"""``@tool`` decorator.

Usage::

    @tool
    def get_weather(city: str) -> str:
        \"\"\"Fetch the current weather for the given city.\"\"\"
        ...

    @tool(needs_approval=True)
    async def send_email(to: str, subject: str, html: str) -> str:
        ...
"""

from typing import Any, Callable, Optional, Type, Union

from pydantic import BaseModel

from relay.tool.function import Function


def tool(
  fn: Optional[Callable[..., Any]] = None,
  *,
  name: Optional[str] = None,
  description: Optional[str] = None,
  needs_approval: bool = False,
  args_model: Optional[Type[BaseModel]] = None,
) -> Union[Function, Callable[[Callable[..., Any]], Function]]:
  """Turn a function into a :class:`Function`.

  Supports both ``@tool`` and ``@tool(name=..., needs_approval=...)``.
  """
  if fn is not None:
    return Function.from_callable(fn, name=name, description=description, needs_approval=needs_approval, args_model=args_model)

  def decorator(f: Callable[..., Any]) -> Function:
    return Function.from_callable(f, name=name, description=description, needs_approval=needs_approval, args_model=args_model)

  return decorator
