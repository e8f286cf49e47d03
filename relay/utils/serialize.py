"""JSON helpers for tool values and run state."""

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel


def json_serializer(obj: Any) -> Any:
  """``default=`` hook for :func:`json.dumps`."""
  if isinstance(obj, BaseModel):
    return obj.model_dump(mode="json")
  if is_dataclass(obj) and not isinstance(obj, type):
    return asdict(obj)
  if isinstance(obj, Enum):
    return obj.value
  if isinstance(obj, (set, frozenset, tuple)):
    return list(obj)
  return str(obj)


def to_jsonable(value: Any) -> Any:
  """Convert a tool return value into plain JSON data.

  Strings, numbers, ``None``, lists and dicts pass through unchanged when they
  already serialize; everything else goes through :func:`json_serializer`.
  """
  if value is None or isinstance(value, (str, int, float, bool)):
    return value
  if isinstance(value, BaseModel):
    return value.model_dump(mode="json")
  return json.loads(json.dumps(value, default=json_serializer, ensure_ascii=False))


def dumps(value: Any) -> str:
  if isinstance(value, str):
    return value
  return json.dumps(value, default=json_serializer, ensure_ascii=False)
