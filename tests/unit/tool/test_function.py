"""Unit tests for Function: schema generation, naming and argument validation."""

from typing import List, Optional

import pytest
from pydantic import BaseModel, ValidationError

from relay.tool.function import Function


def lookup_order(order_id: str, include_items: bool = False) -> dict:
  """Look up an order.

  Args:
    order_id: The order number printed on the receipt.
    include_items: Whether to list the line items.
  """
  return {"order_id": order_id}


class RefundArgs(BaseModel):
  order_id: str
  reasons: List[str]


@pytest.mark.unit
class TestFromCallable:
  def test_name_and_description_from_function(self):
    fn = Function.from_callable(lookup_order)
    assert fn.name == "lookup_order"
    assert fn.description == "Look up an order."

  def test_schema_from_signature(self):
    fn = Function.from_callable(lookup_order)
    params = fn.parameters
    assert params["type"] == "object"
    assert params["required"] == ["order_id"]
    assert params["properties"]["order_id"]["type"] == "string"
    assert params["properties"]["order_id"]["description"] == "The order number printed on the receipt."
    assert params["properties"]["include_items"]["default"] is False
    assert params["additionalProperties"] is False

  def test_titles_are_stripped(self):
    fn = Function.from_callable(lookup_order)
    assert "title" not in fn.parameters
    assert "title" not in fn.parameters["properties"]["order_id"]

  def test_context_parameter_is_hidden(self):
    def greet(name: str, context=None) -> str:
      return name

    fn = Function.from_callable(greet)
    assert fn.context_param == "context"
    assert list(fn.parameters["properties"]) == ["name"]

  def test_overrides(self):
    fn = Function.from_callable(lookup_order, name="orders", description="Orders.", needs_approval=True)
    assert fn.name == "orders"
    assert fn.description == "Orders."
    assert fn.needs_approval is True

  def test_explicit_args_model(self):
    def refund(order_id: str, reasons: list) -> str:
      return "ok"

    fn = Function.from_callable(refund, args_model=RefundArgs)
    assert fn.args_model is RefundArgs
    assert fn.parameters["properties"]["reasons"]["type"] == "array"

  def test_to_dict_is_the_model_declaration(self):
    fn = Function.from_callable(lookup_order)
    declaration = fn.to_dict()
    assert set(declaration) == {"name", "description", "parameters"}


@pytest.mark.unit
class TestName:
  @pytest.mark.parametrize("name", ["get_weather", "send-email", "a" * 64])
  def test_valid_names(self, name):
    assert Function(name=name).name == name

  @pytest.mark.parametrize("name", ["", "has space", "a" * 65, "dotted.name"])
  def test_invalid_names(self, name):
    with pytest.raises(ValidationError):
      Function(name=name)


@pytest.mark.unit
class TestValidateArguments:
  def test_valid_arguments(self):
    fn = Function.from_callable(lookup_order)
    assert fn.validate_arguments({"order_id": "A1"}) == {"order_id": "A1", "include_items": False}

  def test_missing_argument(self):
    fn = Function.from_callable(lookup_order)
    with pytest.raises(ValidationError):
      fn.validate_arguments({})

  def test_unknown_argument(self):
    fn = Function.from_callable(lookup_order)
    with pytest.raises(ValidationError):
      fn.validate_arguments({"order_id": "A1", "extra": 1})

  def test_wrong_type_is_not_coerced_silently(self):
    fn = Function.from_callable(lookup_order)
    with pytest.raises(ValidationError):
      fn.validate_arguments({"order_id": "A1", "include_items": "definitely"})

  def test_schema_only_function(self):
    fn = Function(
      name="raw",
      parameters={"type": "object", "properties": {"q": {"type": "string"}}, "required": ["q"], "additionalProperties": False},
    )
    assert fn.validate_arguments({"q": "x"}) == {"q": "x"}
    with pytest.raises(ValueError, match="Missing"):
      fn.validate_arguments({})
    with pytest.raises(ValueError, match="Unexpected"):
      fn.validate_arguments({"q": "x", "z": 1})

  def test_optional_argument(self):
    def search(query: str, limit: Optional[int] = None) -> list:
      return []

    fn = Function.from_callable(search)
    assert fn.validate_arguments({"query": "q"}) == {"query": "q", "limit": None}
