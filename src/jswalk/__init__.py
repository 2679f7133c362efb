"""
jswalk - A tree-walking JavaScript-core evaluator

Runs ESTree syntax trees (parsed with esprima) directly against a live
object model: prototype chains with accessor descriptors, hoisting,
``this`` binding and language-level exceptions that stay separate from
engine faults.
"""

__version__ = "0.1.0"

from .engine import Engine
from .errors import JSError, JSNotImplementedError, JSSyntaxError, JSThrow
from .values import UNDEFINED, NULL

__all__ = [
    "Engine",
    "JSError",
    "JSNotImplementedError",
    "JSSyntaxError",
    "JSThrow",
    "UNDEFINED",
    "NULL",
]
