"""
Relay Tools: tool decorator, Function class and invoker.

Usage:
    from relay.tool import tool, Function
"""

from relay.tool.decorator import tool
from relay.tool.function import Function
from relay.tool.invoker import ToolOutcome, invoke_tool

__all__ = ["tool", "Function", "ToolOutcome", "invoke_tool"]
