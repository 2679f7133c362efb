"""Lexical scopes and the tree-walking evaluator."""

import operator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple, Union

from .context import Context
from .errors import JSThrow
from .values import (
    UNDEFINED,
    NULL,
    AccessorDescriptor,
    JSObject,
    JSValue,
    array_index,
    js_divide,
    js_pow,
    js_remainder,
    primitive_to_string,
    to_boolean,
    to_int32,
    to_uint32,
    type_tag,
)

if TYPE_CHECKING:
    from .engine import Engine


class Signal(Enum):
    """Loop control raised out of a statement."""

    BREAK = "break"
    CONTINUE = "continue"


@dataclass
class ReturnValue:
    """A ``return`` travelling up to the enclosing function."""

    value: JSValue


@dataclass
class CallStackEntry:
    """One function activation: the calling context and the callee's name."""

    caller: Context
    name: str


# What a statement completes with: normally None
Completion = Union[None, Signal, ReturnValue]

_NUMERIC_OPERATORS = {
    "-": operator.sub,
    "*": operator.mul,
    "/": js_divide,
    "%": js_remainder,
    "**": js_pow,
    "&": lambda a, b: float(to_int32(a) & to_int32(b)),
    "|": lambda a, b: float(to_int32(a) | to_int32(b)),
    "^": lambda a, b: float(to_int32(a) ^ to_int32(b)),
    "<<": lambda a, b: float(to_int32(to_int32(a) << (to_uint32(b) & 31))),
    ">>": lambda a, b: float(to_int32(a) >> (to_uint32(b) & 31)),
    ">>>": lambda a, b: float(to_uint32(a) >> (to_uint32(b) & 31)),
}

_RELATIONAL_OPERATORS = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}

_FUNCTION_TYPES = ("FunctionExpression", "ArrowFunctionExpression")


class Scope:
    """A lexical environment that also evaluates the syntax evaluated in it."""

    def __init__(
        self,
        engine: "Engine",
        parent: Optional["Scope"],
        this_value: JSValue,
        variables: Optional[Dict[str, JSValue]] = None,
        call_stack_entry: Optional[CallStackEntry] = None,
        source: Optional[str] = None,
        constants: Optional[Set[str]] = None,
    ):
        self.engine = engine
        self.parent = parent
        self.this_value = this_value
        self.variables: Dict[str, JSValue] = variables if variables is not None else {}
        self.constants: Set[str] = constants if constants is not None else set()
        self.call_stack_entry = call_stack_entry
        self.source = source

    def create_child_scope(
        self,
        this_value: Optional[JSValue] = None,
        variables: Optional[Dict[str, JSValue]] = None,
        call_stack_entry: Optional[CallStackEntry] = None,
        source: Optional[str] = None,
    ) -> "Scope":
        """Create a nested scope; unspecified parts are inherited."""
        return Scope(
            self.engine,
            self,
            self.this_value if this_value is None else this_value,
            variables,
            call_stack_entry or self.call_stack_entry,
            source if source is not None else self.source,
        )

    def create_context(self, node: Any) -> Context:
        return Context(node, self)

    def source_text(self, node: Any) -> Optional[str]:
        """Return the source slice a node was parsed from, when known."""
        if self.source is None or node is None or node.range is None:
            return None
        start, end = node.range
        return self.source[start:end]

    # Programs and hoisting

    def evaluate_script(self, program: Any, source: Optional[str] = None) -> JSValue:
        """Run a program against this scope's bindings.

        Returns the value of the last top-level expression statement.
        """
        program_scope = Scope(
            self.engine,
            self.parent,
            self.this_value,
            self.variables,
            self.call_stack_entry,
            source,
            self.constants,
        )
        program_scope.hoist_declarations(program.body)

        completion = UNDEFINED
        for statement in program.body:
            if statement.type == "ExpressionStatement":
                completion = program_scope.evaluate_expression(statement.expression)
                continue
            result = program_scope.evaluate_statement(statement)
            if result is not None:
                raise program_scope.create_context(statement).new_not_implemented_error(
                    f"unexpected {type(result).__name__} at top level"
                )
        return completion

    def hoist_declarations(self, statements: List[Any]) -> None:
        """Bind ``var`` names and function declarations before any statement runs.

        Nested function bodies are not entered.
        """
        for statement in statements:
            self._hoist(statement)

    def _hoist(self, node: Any) -> None:
        if node is None:
            return
        kind = node.type

        if kind == "VariableDeclaration":
            if node.kind != "var":
                return
            for declarator in node.declarations:
                if declarator.id.type != "Identifier":
                    raise self.create_context(declarator).new_not_implemented_error(
                        f"unsupported variable declaration type: {declarator.id.type}"
                    )
                self.variables.setdefault(declarator.id.name, UNDEFINED)

        elif kind == "FunctionDeclaration":
            self.variables[node.id.name] = self.function_value(node, node.id.name)

        elif kind == "BlockStatement":
            self.hoist_declarations(node.body)

        elif kind == "IfStatement":
            self._hoist(node.consequent)
            self._hoist(node.alternate)

        elif kind == "ForStatement":
            self._hoist(node.init)
            self._hoist(node.body)

        elif kind in ("ForInStatement", "ForOfStatement"):
            self._hoist(node.left)
            self._hoist(node.body)

        elif kind in ("WhileStatement", "DoWhileStatement", "LabeledStatement"):
            self._hoist(node.body)

        elif kind == "TryStatement":
            self._hoist(node.block)
            if node.handler is not None:
                self._hoist(node.handler.body)
            self._hoist(node.finalizer)

        elif kind == "SwitchStatement":
            for case in node.cases:
                self.hoist_declarations(case.consequent)

    # Variables

    def lookup(self, name: str) -> Optional["Scope"]:
        """Find the nearest scope binding ``name``."""
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.variables:
                return scope
            scope = scope.parent
        return None

    def evaluate_identifier(self, node: Any) -> JSValue:
        scope = self.lookup(node.name)
        if scope is None:
            # Reads of unbound names are not an error
            return UNDEFINED
        return scope.variables[node.name]

    def assign_identifier(self, node: Any, value: JSValue) -> None:
        scope = self.lookup(node.name)
        if scope is None:
            raise self.create_context(node).new_reference_error(f"{node.name} is not defined")
        if node.name in scope.constants:
            raise self.create_context(node).new_type_error("Assignment to constant variable.")
        scope.variables[node.name] = value

    def declare(self, name: str, value: JSValue, kind: str) -> None:
        """Bind a ``let`` or ``const`` name in this scope."""
        self.variables[name] = value
        if kind == "const":
            self.constants.add(name)
        else:
            self.constants.discard(name)

    # Statements

    def evaluate_statements(self, statements: List[Any]) -> Completion:
        for statement in statements:
            result = self.evaluate_statement(statement)
            if result is not None:
                return result
        return None

    def evaluate_statement(self, node: Any) -> Completion:
        """Evaluate a statement."""
        kind = node.type

        if kind == "ExpressionStatement":
            self.evaluate_expression(node.expression)

        elif kind == "VariableDeclaration":
            self.evaluate_variable_declaration(node)

        elif kind in ("FunctionDeclaration", "EmptyStatement"):
            # Function declarations were bound while hoisting
            pass

        elif kind == "BlockStatement":
            return self.evaluate_block(node.body)

        elif kind == "IfStatement":
            if to_boolean(self.evaluate_expression(node.test)):
                return self.evaluate_statement(node.consequent)
            if node.alternate is not None:
                return self.evaluate_statement(node.alternate)

        elif kind == "ForStatement":
            return self.evaluate_for_statement(node)

        elif kind == "ForInStatement":
            return self.evaluate_for_in_statement(node)

        elif kind == "WhileStatement":
            while to_boolean(self.evaluate_expression(node.test)):
                result = self.evaluate_statement(node.body)
                if result is Signal.BREAK:
                    break
                if isinstance(result, ReturnValue):
                    return result

        elif kind == "DoWhileStatement":
            while True:
                result = self.evaluate_statement(node.body)
                if result is Signal.BREAK:
                    break
                if isinstance(result, ReturnValue):
                    return result
                if not to_boolean(self.evaluate_expression(node.test)):
                    break

        elif kind == "SwitchStatement":
            return self.evaluate_switch_statement(node)

        elif kind in ("BreakStatement", "ContinueStatement"):
            if node.label is not None:
                raise self.create_context(node).new_not_implemented_error(
                    f"labeled {kind} is not supported"
                )
            return Signal.BREAK if kind == "BreakStatement" else Signal.CONTINUE

        elif kind == "LabeledStatement":
            return self.evaluate_statement(node.body)

        elif kind == "ReturnStatement":
            if node.argument is None:
                return ReturnValue(UNDEFINED)
            return ReturnValue(self.evaluate_expression(node.argument))

        elif kind == "ThrowStatement":
            value = self.evaluate_expression(node.argument)
            raise self.create_context(node).new_thrown_value(value)

        elif kind == "TryStatement":
            return self.evaluate_try_statement(node)

        else:
            raise self.create_context(node).new_not_implemented_error(
                f"not supported statement type {kind}"
            )

        return None

    def evaluate_variable_declaration(self, node: Any) -> None:
        for declarator in node.declarations:
            target = declarator.id
            if target.type != "Identifier":
                raise self.create_context(declarator).new_not_implemented_error(
                    f"unsupported variable declaration type: {target.type}"
                )

            if node.kind == "var":
                if declarator.init is not None:
                    value = self.evaluate_named_expression(declarator.init, target.name)
                    self.assign_identifier(target, value)
            else:
                value = UNDEFINED
                if declarator.init is not None:
                    value = self.evaluate_named_expression(declarator.init, target.name)
                self.declare(target.name, value, node.kind)

    def evaluate_block(
        self, statements: List[Any], variables: Optional[Dict[str, JSValue]] = None
    ) -> Completion:
        """Run statements in a fresh child scope."""
        block_scope = self.create_child_scope(variables=variables)
        # Functions declared in the block close over the block's bindings
        for statement in statements:
            if statement.type == "FunctionDeclaration":
                block_scope.variables[statement.id.name] = block_scope.function_value(
                    statement, statement.id.name
                )
        return block_scope.evaluate_statements(statements)

    def evaluate_for_statement(self, node: Any) -> Completion:
        loop_scope = self.create_child_scope()

        init = node.init
        if init is not None:
            if init.type == "VariableDeclaration":
                loop_scope.evaluate_variable_declaration(init)
            else:
                loop_scope.evaluate_expression(init)

        while node.test is None or to_boolean(loop_scope.evaluate_expression(node.test)):
            result = loop_scope.evaluate_statement(node.body)
            if result is Signal.BREAK:
                break
            if isinstance(result, ReturnValue):
                return result
            if node.update is not None:
                loop_scope.evaluate_expression(node.update)

        return None

    def evaluate_for_in_statement(self, node: Any) -> Completion:
        iterated = self.evaluate_expression(node.right)
        if iterated is UNDEFINED or iterated is NULL:
            return None

        context = self.create_context(node)
        keys = context.own_keys(context.to_object(iterated))

        loop_scope = self.create_child_scope()
        left = node.left
        for key in keys:
            if left.type == "VariableDeclaration":
                target = left.declarations[0].id
                if target.type != "Identifier":
                    raise self.create_context(left).new_not_implemented_error(
                        f"unsupported for-in target {target.type}"
                    )
                if left.kind == "var":
                    loop_scope.assign_identifier(target, key)
                else:
                    loop_scope.declare(target.name, key, left.kind)
            else:
                loop_scope.assign_to(left, key)

            result = loop_scope.evaluate_statement(node.body)
            if result is Signal.BREAK:
                break
            if isinstance(result, ReturnValue):
                return result

        return None

    def evaluate_switch_statement(self, node: Any) -> Completion:
        discriminant = self.evaluate_expression(node.discriminant)
        switch_scope = self.create_child_scope()
        context = self.create_context(node)

        start = None
        for index, case in enumerate(node.cases):
            if case.test is None:
                continue
            if context.strict_equals(discriminant, switch_scope.evaluate_expression(case.test)):
                start = index
                break
        if start is None:
            start = next((i for i, case in enumerate(node.cases) if case.test is None), None)
        if start is None:
            return None

        # Fall through from the matching case
        for case in node.cases[start:]:
            result = switch_scope.evaluate_statements(case.consequent)
            if result is Signal.BREAK:
                return None
            if result is not None:
                return result
        return None

    def evaluate_try_statement(self, node: Any) -> Completion:
        """try/catch/finally.

        Only thrown values are caught. The finalizer runs after normal
        completion and with a thrown value pending; if it completes
        abruptly itself, its completion replaces the pending one.
        """
        pending: Optional[JSThrow] = None
        result: Completion = None

        try:
            result = self.evaluate_block(node.block.body)
        except JSThrow as exc:
            if node.handler is None:
                pending = exc
            else:
                try:
                    result = self.evaluate_catch_clause(node.handler, exc.value)
                except JSThrow as inner:
                    pending = inner

        if node.finalizer is not None:
            final_result = self.evaluate_block(node.finalizer.body)
            if final_result is not None:
                return final_result

        if pending is not None:
            raise pending
        return result

    def evaluate_catch_clause(self, handler: Any, value: JSValue) -> Completion:
        variables = {}
        param = handler.param
        if param is not None:
            if param.type != "Identifier":
                raise self.create_context(param).new_not_implemented_error(
                    f"unsupported catch parameter {param.type}"
                )
            variables[param.name] = value
        return self.evaluate_block(handler.body.body, variables)

    # Expressions

    def evaluate_expression(self, node: Any) -> JSValue:
        """Evaluate an expression to a value."""
        kind = node.type

        if kind == "Literal":
            return self.evaluate_literal(node)

        elif kind == "Identifier":
            return self.evaluate_identifier(node)

        elif kind == "ThisExpression":
            return self.this_value

        elif kind == "TemplateLiteral":
            context = self.create_context(node)
            parts = []
            for index, quasi in enumerate(node.quasis):
                parts.append(quasi.value.cooked)
                if index < len(node.expressions):
                    value = self.evaluate_expression(node.expressions[index])
                    parts.append(context.to_string(value))
            return "".join(parts)

        elif kind == "ArrayExpression":
            elements = []
            for element in node.elements:
                if element is None:
                    elements.append(UNDEFINED)
                elif element.type == "SpreadElement":
                    raise self.create_context(element).new_not_implemented_error(
                        "spread elements are not supported"
                    )
                else:
                    elements.append(self.evaluate_expression(element))
            return self.create_context(node).construct_array(elements)

        elif kind == "ObjectExpression":
            return self.evaluate_object_expression(node)

        elif kind in _FUNCTION_TYPES:
            return self.function_value(node)

        elif kind == "UnaryExpression":
            return self.evaluate_unary_expression(node)

        elif kind == "UpdateExpression":
            return self.evaluate_update_expression(node)

        elif kind == "BinaryExpression":
            left = self.evaluate_expression(node.left)
            right = self.evaluate_expression(node.right)
            return self.apply_binary_operator(node, node.operator, left, right)

        elif kind == "LogicalExpression":
            left = self.evaluate_expression(node.left)
            if node.operator == "&&":
                return self.evaluate_expression(node.right) if to_boolean(left) else left
            if node.operator == "||":
                return left if to_boolean(left) else self.evaluate_expression(node.right)
            raise self.create_context(node).new_not_implemented_error(
                f"unsupported operator {node.operator}"
            )

        elif kind == "ConditionalExpression":
            if to_boolean(self.evaluate_expression(node.test)):
                return self.evaluate_expression(node.consequent)
            return self.evaluate_expression(node.alternate)

        elif kind == "SequenceExpression":
            value = UNDEFINED
            for expression in node.expressions:
                value = self.evaluate_expression(expression)
            return value

        elif kind == "AssignmentExpression":
            return self.evaluate_assignment_expression(node)

        elif kind == "MemberExpression":
            obj = self.evaluate_expression(node.object)
            return self.read_member(node, obj, self.evaluate_property_key(node))

        elif kind == "CallExpression":
            return self.evaluate_call_expression(node)

        elif kind == "NewExpression":
            callee = self.evaluate_expression(node.callee)
            args = self.evaluate_arguments(node.arguments)
            return self.create_context(node).construct_object(callee, args)

        raise self.create_context(node).new_not_implemented_error(
            f"unsupported expression {kind}"
        )

    def evaluate_named_expression(self, node: Any, name: str) -> JSValue:
        """Evaluate ``node``, naming an anonymous function after its binding."""
        if node.type in _FUNCTION_TYPES and node.id is None:
            return self.function_value(node, name)
        return self.evaluate_expression(node)

    def evaluate_literal(self, node: Any) -> JSValue:
        if node.regex is not None:
            raise self.create_context(node).new_not_implemented_error(
                "regular expression literals are not supported"
            )
        value = node.value
        if value is None:
            return NULL
        if isinstance(value, (bool, str)):
            return value
        return float(value)

    def evaluate_object_expression(self, node: Any) -> JSObject:
        result = self.engine.new_object()

        for prop in node.properties:
            if prop.type != "Property":
                raise self.create_context(prop).new_not_implemented_error(
                    f"unsupported property type {prop.type}"
                )
            name = self.evaluate_property_key(prop)

            if prop.kind == "init":
                if prop.method:
                    value = self.function_value(prop.value, name, is_constructor=False)
                else:
                    value = self.evaluate_named_expression(prop.value, name)
                self.engine.define_property(result, name, value)
                continue

            # get/set halves of one property share a descriptor
            accessor = self.function_value(prop.value, name, is_constructor=False)
            descriptor = result.own_properties.get(name)
            if not isinstance(descriptor, AccessorDescriptor):
                descriptor = AccessorDescriptor()
                self.engine.define_property(result, name, descriptor)
            if prop.kind == "get":
                descriptor.getter = accessor
            else:
                descriptor.setter = accessor

        return result

    def evaluate_property_key(self, node: Any) -> str:
        """Name of the property an object literal entry or member expression refers to."""
        key = node.key if node.type == "Property" else node.property
        if node.computed:
            return self.create_context(node).to_string(self.evaluate_expression(key))
        if key.type == "Identifier":
            return key.name
        if key.type == "Literal":
            return primitive_to_string(self.evaluate_literal(key))
        raise self.create_context(key).new_not_implemented_error(
            f"unsupported property key {key.type}"
        )

    def evaluate_unary_expression(self, node: Any) -> JSValue:
        op = node.operator

        if op == "delete":
            return self.evaluate_delete(node)

        value = self.evaluate_expression(node.argument)
        context = self.create_context(node)

        if op == "typeof":
            return self.typeof_value(value)
        if op == "-":
            return -context.to_number(value)
        if op == "+":
            return context.to_number(value)
        if op == "!":
            return not to_boolean(value)
        if op == "~":
            return float(~to_int32(context.to_number(value)))
        if op == "void":
            return UNDEFINED

        raise context.new_not_implemented_error(f"unsupported operator {op}")

    def typeof_value(self, value: JSValue) -> str:
        if self.engine.is_function(value):
            return "function"
        if value is NULL:
            return "object"
        return type_tag(value)

    def evaluate_delete(self, node: Any) -> bool:
        argument = node.argument
        if argument.type == "Identifier":
            # Variable bindings cannot be deleted
            return False
        if argument.type != "MemberExpression":
            self.evaluate_expression(argument)
            return True

        obj = self.evaluate_expression(argument.object)
        name = self.evaluate_property_key(argument)
        context = self.create_context(node)
        if obj is UNDEFINED or obj is NULL:
            raise context.new_type_error(f"Cannot convert {type_tag(obj)} to object")
        if not isinstance(obj, JSObject):
            return True

        descriptor = context.get_own_property_descriptor(obj, name)
        if descriptor is None:
            return True
        if not descriptor.configurable:
            return False
        if name in obj.own_properties:
            del obj.own_properties[name]
        elif "elements" in obj.internal_fields:
            del obj.internal_fields["elements"][array_index(name)]
        return True

    def evaluate_update_expression(self, node: Any) -> float:
        target = node.argument
        obj, name = self.evaluate_target(target)
        if name is None:
            old_value = self.evaluate_identifier(target)
        else:
            old_value = self.read_member(target, obj, name)

        old_number = self.create_context(node).to_number(old_value)
        new_number = old_number + 1 if node.operator == "++" else old_number - 1

        if name is None:
            self.assign_identifier(target, new_number)
        else:
            self.assign_member(target, obj, name, new_number)
        return new_number if node.prefix else old_number

    def evaluate_assignment_expression(self, node: Any) -> JSValue:
        target = node.left
        obj, name = self.evaluate_target(target)

        if node.operator == "=":
            if name is None:
                value = self.evaluate_named_expression(node.right, target.name)
            else:
                value = self.evaluate_expression(node.right)
        else:
            # Compound assignment reads the target before the right-hand side
            if name is None:
                current = self.evaluate_identifier(target)
            else:
                current = self.read_member(target, obj, name)
            right = self.evaluate_expression(node.right)
            value = self.apply_binary_operator(node, node.operator[:-1], current, right)

        if name is None:
            self.assign_identifier(target, value)
        else:
            self.assign_member(target, obj, name, value)
        return value

    def evaluate_target(self, target: Any) -> Tuple[JSValue, Optional[str]]:
        """Evaluate the object and key of an assignment target.

        Identifiers give ``(UNDEFINED, None)``: they resolve at write time.
        """
        if target.type == "Identifier":
            return UNDEFINED, None
        if target.type == "MemberExpression":
            obj = self.evaluate_expression(target.object)
            return obj, self.evaluate_property_key(target)
        raise self.create_context(target).new_not_implemented_error(
            f"unsupported left value type {target.type}"
        )

    def assign_to(self, target: Any, value: JSValue) -> None:
        obj, name = self.evaluate_target(target)
        if name is None:
            self.assign_identifier(target, value)
        else:
            self.assign_member(target, obj, name, value)

    def read_member(self, node: Any, obj: JSValue, name: str) -> JSValue:
        context = self.create_context(node)
        if obj is UNDEFINED or obj is NULL:
            raise context.new_type_error(
                f"Cannot read property '{name}' of {type_tag(obj)}"
            )
        return context.read_property(context.to_object(obj), name)

    def assign_member(self, node: Any, obj: JSValue, name: str, value: JSValue) -> None:
        context = self.create_context(node)
        if obj is UNDEFINED or obj is NULL:
            raise context.new_type_error(
                f"Cannot set property '{name}' of {type_tag(obj)}"
            )
        if not isinstance(obj, JSObject):
            # Writes to primitives are dropped
            return
        context.assign_property(obj, name, value)

    def apply_binary_operator(
        self, node: Any, op: str, left: JSValue, right: JSValue
    ) -> JSValue:
        context = self.create_context(node)

        if op == "+":
            # Only operands that already are strings concatenate
            if isinstance(left, str) or isinstance(right, str):
                return context.to_string(left) + context.to_string(right)
            return context.to_number(left) + context.to_number(right)

        numeric = _NUMERIC_OPERATORS.get(op)
        if numeric is not None:
            return numeric(context.to_number(left), context.to_number(right))

        relational = _RELATIONAL_OPERATORS.get(op)
        if relational is not None:
            return relational(context.to_number(left), context.to_number(right))

        if op == "===":
            return context.strict_equals(left, right)
        if op == "!==":
            return not context.strict_equals(left, right)
        if op == "==":
            return context.loose_equals(left, right)
        if op == "!=":
            return not context.loose_equals(left, right)
        if op == "instanceof":
            return context.is_instance_of(left, right)
        if op == "in":
            return context.is_in(left, right)

        raise context.new_not_implemented_error(f"unsupported operator {op}")

    def evaluate_arguments(self, nodes: List[Any]) -> List[JSValue]:
        args = []
        for node in nodes:
            if node.type == "SpreadElement":
                raise self.create_context(node).new_not_implemented_error(
                    "spread arguments are not supported"
                )
            args.append(self.evaluate_expression(node))
        return args

    def evaluate_call_expression(self, node: Any) -> JSValue:
        callee_node = node.callee
        if callee_node.type == "MemberExpression":
            # The object is evaluated once and becomes ``this``
            this_arg = self.evaluate_expression(callee_node.object)
            name = self.evaluate_property_key(callee_node)
            callee = self.read_member(callee_node, this_arg, name)
        elif callee_node.type == "Super":
            raise self.create_context(callee_node).new_not_implemented_error(
                "super calls are not supported"
            )
        else:
            this_arg = UNDEFINED
            callee = self.evaluate_expression(callee_node)

        args = self.evaluate_arguments(node.arguments)
        context = self.create_context(node)

        if not self.engine.is_function(callee):
            text = self.source_text(callee_node)
            if text is None:
                raise context.new_reference_error(f"cannot call non-function {type_tag(callee)}")
            raise context.new_reference_error(f"{text} is not a function")

        return context.execute_function(callee, this_arg, args)

    # Functions

    def function_value(
        self, node: Any, name: Optional[str] = None, is_constructor: bool = True
    ) -> JSObject:
        """Create a closure over this scope for a function node.

        Arrows are never constructors; callers pass ``is_constructor=False``
        for method shorthand and accessors.
        """
        if node.generator or node.isAsync:
            raise self.create_context(node).new_not_implemented_error(
                "generator and async functions are not supported"
            )
        for param in node.params:
            if param.type != "Identifier":
                raise self.create_context(param).new_not_implemented_error(
                    f"parameter type {param.type} is not supported"
                )

        is_arrow = node.type == "ArrowFunctionExpression"
        if name is None and node.id is not None:
            name = node.id.name
        own_name = node.id.name if node.type == "FunctionExpression" and node.id else None

        def invoke(context, this_arg, args, new_target):
            variables: Dict[str, JSValue] = {}
            if own_name is not None:
                variables[own_name] = function
            if not is_arrow:
                variables["arguments"] = self.arguments_object(args)
            for index, param in enumerate(node.params):
                variables[param.name] = args[index] if index < len(args) else UNDEFINED

            call_scope = self.create_child_scope(
                this_value=self.this_value if is_arrow else this_arg,
                variables=variables,
                call_stack_entry=CallStackEntry(context, name or "<anonymous>"),
            )

            if node.expression:
                return call_scope.evaluate_expression(node.body)

            call_scope.hoist_declarations(node.body.body)
            result = call_scope.evaluate_statements(node.body.body)
            if isinstance(result, ReturnValue):
                return result.value
            if result is not None:
                raise call_scope.create_context(node).new_not_implemented_error(
                    f"{result.value} escaped a function body"
                )
            return UNDEFINED

        function = self.engine.function_value(
            invoke,
            name,
            is_constructor=is_constructor and not is_arrow,
            length=len(node.params),
        )
        source_text = self.source_text(node)
        if source_text is not None:
            function.internal_fields["source_text"] = source_text
        return function

    def arguments_object(self, args: List[JSValue]) -> JSObject:
        arguments = self.engine.new_object()
        self.engine.define_property(arguments, "length", float(len(args)), enumerable=False)
        for index, value in enumerate(args):
            self.engine.define_property(arguments, str(index), value)
        return arguments
