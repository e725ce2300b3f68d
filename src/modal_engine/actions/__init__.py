"""Expression evaluation and action execution."""

from .evaluator import ExpressionContext, ExpressionEvaluator, branch_key
from .executor import ActionExecutor

__all__ = [
    "ActionExecutor",
    "ExpressionContext",
    "ExpressionEvaluator",
    "branch_key",
]
