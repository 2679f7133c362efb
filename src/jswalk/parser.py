"""Source text to syntax tree, through esprima.

Trees are esprima's ESTree node objects. Every node carries ``range``
(source offsets) and ``loc`` (line and column), which the evaluator
uses for error messages and call-stack formatting.
"""

import re
from typing import Any, Tuple

import esprima

from .errors import JSSyntaxError

_LINE_PREFIX = re.compile(r"^Line \d+: ")


def parse_script(source: str) -> Any:
    """Parse a script into an esprima ``Program`` node.

    Raises:
        JSSyntaxError: If the source is not a valid script
    """
    try:
        return esprima.parseScript(source, range=True, loc=True)
    except esprima.Error as exc:
        message = _LINE_PREFIX.sub("", exc.message)
        raise JSSyntaxError(message, exc.lineNumber or 0, exc.column or 0) from exc


def parse_function(params: str, body: str) -> Tuple[Any, str]:
    """Parse the pieces handed to the Function constructor.

    Returns the ``FunctionExpression`` node and the synthesized source
    text its ranges point into.
    """
    source = f"(function anonymous({params}\n) {{\n{body}\n}})"
    program = parse_script(source)

    # A body like "}); (function() {" would close the wrapper early
    if len(program.body) != 1 or program.body[0].type != "ExpressionStatement":
        raise JSSyntaxError("Invalid function body")
    node = program.body[0].expression
    if node.type != "FunctionExpression":
        raise JSSyntaxError("Invalid function body")
    return node, source
