"""JavaScript error types and exceptions."""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .context import Context


class JSError(Exception):
    """Base class for all errors raised by the engine."""

    def __init__(self, message: str = "", name: str = "Error"):
        self.message = message
        self.name = name
        super().__init__(f"{name}: {message}" if message else name)


class JSSyntaxError(JSError):
    """Source text could not be parsed into a syntax tree."""

    def __init__(self, message: str = "", line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        if line > 0:
            formatted_message = f"{message} (line {line}, column {column})"
        else:
            formatted_message = message
        super().__init__(formatted_message, "SyntaxError")


class JSNotImplementedError(JSError):
    """Internal fault: the engine reached a construct it does not support.

    These are never visible to a program's ``catch`` clauses.
    """

    def __init__(self, context: Optional["Context"], details: str):
        self.context = context
        self.details = details
        super().__init__(f"{details}{format_stack(context)}", "InternalError")


class JSThrow(JSError):
    """A language-level thrown value travelling up to a ``catch`` clause."""

    def __init__(
        self, context: Optional["Context"], value: Any, description: Optional[str] = None
    ):
        self.context = context
        self.value = value
        text = description if description is not None else _try_stringify(context, value)
        super().__init__(f"{text}{format_stack(context)}", "Uncaught")


def _try_stringify(context: Optional["Context"], value: Any) -> str:
    if context is None:
        return ""
    try:
        return context.to_string(value)
    except (JSError, RecursionError):
        # The original failure must win over a failure to describe it
        return ""


def format_location(node: Any) -> str:
    """Format the ``line:column`` start of a syntax node."""
    loc = getattr(node, "loc", None)
    if loc is None:
        return "<native>"
    return f"{loc.start.line}:{loc.start.column}"


def format_stack(context: Optional["Context"]) -> str:
    """Render the chain of evaluation contexts, innermost first."""
    lines = []
    while context is not None:
        entry = context.scope.call_stack_entry
        name = entry.name if entry is not None else "<program>"
        lines.append(f"\n    at {name} ({format_location(context.node)})")
        context = entry.caller if entry is not None else None
    return "".join(lines)
