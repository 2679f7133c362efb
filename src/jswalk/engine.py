"""JavaScript execution engine."""

import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from .context import Context
from .errors import JSNotImplementedError, JSThrow
from .parser import parse_function, parse_script
from .scope import Scope
from .values import (
    UNDEFINED,
    NULL,
    AccessorDescriptor,
    DataDescriptor,
    JSObject,
    JSValue,
    PropertyDescriptor,
    array_index,
    number_to_string,
    to_boolean,
    type_tag,
)

logger = logging.getLogger(__name__)

# Every script-level call costs a few dozen interpreter frames
RECURSION_LIMIT = 20000

MAX_ARRAY_LENGTH = 0xFFFFFFFF

Invoke = Callable[[Context, JSValue, List[JSValue], JSValue], JSValue]


def _arg(args: List[JSValue], index: int) -> JSValue:
    return args[index] if index < len(args) else UNDEFINED


def _array_own_property(
    context: Context, array: JSObject, name: str
) -> Optional[PropertyDescriptor]:
    if name == "length":
        return DataDescriptor(
            float(array.internal_fields["length"]), enumerable=False, configurable=False
        )
    index = array_index(name)
    elements = array.internal_fields["elements"]
    if index is not None and index in elements:
        return DataDescriptor(elements[index])
    return None


def _array_set_property(context: Context, array: JSObject, name: str, value: JSValue) -> bool:
    elements = array.internal_fields["elements"]
    if name == "length":
        length = context.to_number(value)
        if length < 0 or length > MAX_ARRAY_LENGTH or not length.is_integer():
            raise context.new_range_error("Invalid array length")
        new_length = int(length)
        for index in [i for i in elements if i >= new_length]:
            del elements[index]
        array.internal_fields["length"] = new_length
        return True
    index = array_index(name)
    if index is None:
        return False
    elements[index] = value
    if index >= array.internal_fields["length"]:
        array.internal_fields["length"] = index + 1
    return True


def _array_keys(context: Context, array: JSObject) -> List[str]:
    return [str(i) for i in sorted(array.internal_fields["elements"])]


def _string_own_property(
    context: Context, wrapper: JSObject, name: str
) -> Optional[PropertyDescriptor]:
    text = wrapper.internal_fields["primitive_value"]
    if name == "length":
        return DataDescriptor(
            float(len(text)), writable=False, enumerable=False, configurable=False
        )
    index = array_index(name)
    if index is not None and index < len(text):
        return DataDescriptor(text[index], writable=False, configurable=False)
    return None


def _string_keys(context: Context, wrapper: JSObject) -> List[str]:
    return [str(i) for i in range(len(wrapper.internal_fields["primitive_value"]))]


def _raise_recursion_limit() -> None:
    """Raise the interpreter recursion limit to at least RECURSION_LIMIT; never lower it."""
    if sys.getrecursionlimit() < RECURSION_LIMIT:
        sys.setrecursionlimit(RECURSION_LIMIT)


# Process-wide, once, when the module is imported
_raise_recursion_limit()


class Engine:
    """JavaScript engine: built-in objects, the global scope and host configuration.

    Importing this module raises the process recursion limit (see
    ``RECURSION_LIMIT``); constructing an engine does not touch it.
    """

    def __init__(
        self,
        log_fn: Optional[Callable[[str], Any]] = None,
        max_call_depth: int = 400,
        this_value: Any = None,
        variables: Optional[Dict[str, Any]] = None,
    ):
        """Create a new engine.

        Args:
            log_fn: Sink for the ``log`` global, called with one string per call
                (defaults to ``print``)
            max_call_depth: Maximum number of nested function calls
            this_value: Top-level ``this`` (defaults to a fresh plain object)
            variables: Globals to pre-seed, as Python values
        """
        self.log_fn = log_fn if log_fn is not None else print
        self.max_call_depth = max_call_depth
        self.call_depth = 0

        self.root_prototype = JSObject(NULL)
        self.function_prototype = JSObject(self.root_prototype)
        self.intrinsics: Dict[str, JSObject] = {}

        self.global_scope = Scope(self, None, UNDEFINED)
        self._context = self.global_scope.create_context(None)
        self._setup_globals()

        self.global_scope.this_value = (
            self.new_object() if this_value is None else self._to_js(this_value)
        )
        for name, value in (variables or {}).items():
            self.set(name, value)

        logger.debug("Engine ready with %d globals", len(self.global_scope.variables))

    def _setup_globals(self) -> None:
        """Set up built-in global objects and functions."""
        variables = self.global_scope.variables

        variables["Object"] = self._create_object_constructor()
        variables["Function"] = self._create_function_constructor()

        # Error constructors come early: every later fault is built from them
        error = self._create_error_constructor("Error")
        variables["Error"] = error
        for error_name in ("TypeError", "ReferenceError", "RangeError"):
            variables[error_name] = self._create_error_constructor(error_name, error)

        variables["Array"] = self._create_array_constructor()
        variables["String"] = self._create_wrapper_constructor(
            "String", "", lambda context, value: context.to_string(value)
        )
        variables["Number"] = self._create_wrapper_constructor(
            "Number", 0.0, lambda context, value: context.to_number(value)
        )
        variables["Boolean"] = self._create_wrapper_constructor(
            "Boolean", False, lambda context, value: to_boolean(value)
        )
        variables["Symbol"] = self.function_value(
            lambda context, this_arg, args, new_target: UNDEFINED,
            "Symbol",
            is_constructor=False,
        )
        variables["Reflect"] = self._create_reflect_object()

        variables["NaN"] = float("nan")
        variables["Infinity"] = float("inf")
        variables["undefined"] = UNDEFINED

        variables["log"] = self.function_value(self._log, "log")

    # Object model

    def new_object(self, proto: Optional[JSObject] = None) -> JSObject:
        return JSObject(self.root_prototype if proto is None else proto)

    def is_function(self, value: JSValue) -> bool:
        return isinstance(value, JSObject) and value.proto is self.function_prototype

    def define_property(
        self,
        obj: JSObject,
        name: str,
        value: Any,
        writable: bool = True,
        enumerable: bool = True,
        configurable: bool = True,
    ) -> None:
        """Create or replace an own property from a value or a ready descriptor."""
        if isinstance(value, (DataDescriptor, AccessorDescriptor)):
            obj.own_properties[name] = value
        else:
            obj.own_properties[name] = DataDescriptor(value, writable, enumerable, configurable)

    def function_value(
        self,
        invoke: Invoke,
        name: Optional[str] = None,
        prototype: Optional[JSObject] = None,
        is_constructor: bool = True,
        length: int = 0,
    ) -> JSObject:
        """Wrap an invoke behaviour into a function object.

        The function's ``prototype`` gets a ``constructor`` back link,
        including when an existing prototype object is passed in.
        """
        if prototype is None:
            prototype = self.new_object()

        result = JSObject(
            self.function_prototype,
            internal_fields={"invoke": invoke, "is_constructor": is_constructor},
        )
        self.define_property(prototype, "constructor", result, enumerable=False)
        self.define_property(result, "prototype", prototype, enumerable=False)
        self.define_property(result, "name", name or "", writable=False, enumerable=False)
        self.define_property(
            result, "length", float(length), writable=False, enumerable=False
        )
        return result

    def make_array(
        self, array: JSObject, elements: List[JSValue], length: Optional[int] = None
    ) -> None:
        """Turn an allocated object into an array holding ``elements``.

        Entries live in a dict keyed by index next to an explicit length, so
        holes cost nothing. ``length`` defaults to ``len(elements)``.
        """
        array.internal_fields["elements"] = dict(enumerate(elements))
        array.internal_fields["length"] = len(elements) if length is None else length
        array.internal_fields["get_own_property_descriptor"] = _array_own_property
        array.internal_fields["set_own_property"] = _array_set_property
        array.internal_fields["own_property_keys"] = _array_keys

    def is_array(self, value: JSValue) -> bool:
        return isinstance(value, JSObject) and "elements" in value.internal_fields

    # Operations exposed to the host, evaluated outside any script node

    def to_boolean(self, value: JSValue) -> bool:
        return self._context.to_boolean(value)

    def to_number(self, value: JSValue) -> float:
        return self._context.to_number(value)

    def to_string(self, value: JSValue) -> str:
        return self._context.to_string(value)

    def to_primitive(self, value: JSValue, hint: str = "default") -> JSValue:
        return self._context.to_primitive(value, hint)

    def read_property(self, obj: JSObject, name: str) -> JSValue:
        return self._context.read_property(obj, name)

    def assign_property(self, obj: JSObject, name: str, value: JSValue) -> None:
        self._context.assign_property(obj, name, value)

    def execute_function(
        self,
        callee: JSValue,
        this_arg: JSValue,
        args: List[JSValue],
        new_target: JSValue = UNDEFINED,
    ) -> JSValue:
        return self._context.execute_function(callee, this_arg, args, new_target)

    def construct_object(
        self,
        constructor: JSValue,
        args: List[JSValue],
        new_target_constructor: Optional[JSValue] = None,
    ) -> JSObject:
        return self._context.construct_object(constructor, args, new_target_constructor)

    def is_instance_of(self, left: JSValue, right: JSValue) -> bool:
        return self._context.is_instance_of(left, right)

    def is_in(self, left: JSValue, right: JSValue) -> bool:
        return self._context.is_in(left, right)

    # Built-ins

    def _log(self, context: Context, this_arg: JSValue, args: List[JSValue], new_target: JSValue) -> JSValue:
        """The ``log`` global: stringify arguments and hand one line to the sink."""
        self.log_fn(" ".join(context.to_string(arg) for arg in args))
        return UNDEFINED

    def _method(self, obj: JSObject, name: str, invoke: Invoke, length: int = 0) -> None:
        """Install a non-constructor built-in function as a hidden property."""
        function = self.function_value(invoke, name, is_constructor=False, length=length)
        self.define_property(obj, name, function, enumerable=False)

    def _create_object_constructor(self) -> JSObject:
        """Create the Object constructor with static methods."""
        object_prototype = self.root_prototype

        def object_constructor(context, this_arg, args, new_target):
            value = _arg(args, 0)
            if value is UNDEFINED or value is NULL:
                return self.new_object()
            return context.to_object(value)

        constructor = self.function_value(
            object_constructor, "Object", prototype=object_prototype, length=1
        )
        self.intrinsics["Object"] = constructor

        def proto_toString(context, this_arg, args, new_target):
            return "[object Object]"

        def proto_valueOf(context, this_arg, args, new_target):
            return context.to_object(this_arg)

        def proto_hasOwnProperty(context, this_arg, args, new_target):
            name = context.to_string(_arg(args, 0))
            obj = context.to_object(this_arg)
            return context.get_own_property_descriptor(obj, name) is not None

        self._method(object_prototype, "toString", proto_toString)
        self._method(object_prototype, "valueOf", proto_valueOf)
        self._method(object_prototype, "hasOwnProperty", proto_hasOwnProperty, 1)

        def to_descriptor(context, attributes):
            """Convert a descriptor object into a property descriptor, defaults off."""
            if not isinstance(attributes, JSObject):
                raise context.new_type_error("Property description must be an object")

            def flag(name):
                return to_boolean(context.read_property(attributes, name))

            def has(name):
                return context.get_property_descriptor(attributes, name) is not None

            if has("get") or has("set"):
                if has("value") or has("writable"):
                    raise context.new_type_error(
                        "Invalid property descriptor. Cannot both specify accessors and a value or writable attribute"
                    )
                getter = context.read_property(attributes, "get")
                setter = context.read_property(attributes, "set")
                for accessor in (getter, setter):
                    if accessor is not UNDEFINED and not self.is_function(accessor):
                        raise context.new_type_error(
                            f"Getter must be a function: {context.to_string(accessor)}"
                        )
                return AccessorDescriptor(getter, setter, flag("enumerable"), flag("configurable"))

            return DataDescriptor(
                context.read_property(attributes, "value"),
                flag("writable"),
                flag("enumerable"),
                flag("configurable"),
            )

        def define_property(context, this_arg, args, new_target):
            """Object.defineProperty(obj, prop, descriptor)."""
            obj = _arg(args, 0)
            if not isinstance(obj, JSObject):
                raise context.new_type_error("Object.defineProperty called on non-object")
            name = context.to_string(_arg(args, 1))
            descriptor = to_descriptor(context, _arg(args, 2))

            existing = obj.own_properties.get(name)
            if existing is not None and not existing.configurable:
                raise context.new_type_error(f"Cannot redefine property: {name}")

            self.define_property(obj, name, descriptor)
            return obj

        def get_own_property_descriptor(context, this_arg, args, new_target):
            """Object.getOwnPropertyDescriptor(obj, prop)."""
            obj = context.to_object(_arg(args, 0))
            descriptor = context.get_own_property_descriptor(obj, context.to_string(_arg(args, 1)))
            if descriptor is None:
                return UNDEFINED

            result = self.new_object()
            if isinstance(descriptor, DataDescriptor):
                self.define_property(result, "value", descriptor.value)
                self.define_property(result, "writable", descriptor.writable)
            else:
                self.define_property(result, "get", descriptor.getter)
                self.define_property(result, "set", descriptor.setter)
            self.define_property(result, "enumerable", descriptor.enumerable)
            self.define_property(result, "configurable", descriptor.configurable)
            return result

        def get_prototype_of(context, this_arg, args, new_target):
            return context.to_object(_arg(args, 0)).proto

        def create_fn(context, this_arg, args, new_target):
            """Object.create(proto, properties)."""
            proto = _arg(args, 0)
            if proto is not NULL and not isinstance(proto, JSObject):
                raise context.new_type_error(
                    f"Object prototype may only be an Object or null: {context.to_string(proto)}"
                )
            obj = JSObject(proto)

            properties = _arg(args, 1)
            if properties is not UNDEFINED:
                properties = context.to_object(properties)
                for key in context.own_keys(properties):
                    attributes = context.read_property(properties, key)
                    self.define_property(obj, key, to_descriptor(context, attributes))
            return obj

        def keys_fn(context, this_arg, args, new_target):
            obj = context.to_object(_arg(args, 0))
            return context.construct_array(context.own_keys(obj))

        self._method(constructor, "defineProperty", define_property, 3)
        self._method(constructor, "getOwnPropertyDescriptor", get_own_property_descriptor, 2)
        self._method(constructor, "getPrototypeOf", get_prototype_of, 1)
        self._method(constructor, "create", create_fn, 2)
        self._method(constructor, "keys", keys_fn, 1)

        return constructor

    def _create_function_constructor(self) -> JSObject:
        """Create the Function constructor and the shared Function.prototype methods."""

        def function_constructor(context, this_arg, args, new_target):
            """Function(arg1, ..., body): compile a function in the global scope."""
            texts = [context.to_string(arg) for arg in args]
            params = ",".join(texts[:-1])
            body = texts[-1] if texts else ""
            node, source = parse_function(params, body)
            scope = self.global_scope.create_child_scope(source=source)
            return scope.function_value(node, "anonymous")

        constructor = self.function_value(
            function_constructor, "Function", prototype=self.function_prototype, length=1
        )
        self.intrinsics["Function"] = constructor

        def call_fn(context, this_arg, args, new_target):
            return context.execute_function(this_arg, _arg(args, 0), args[1:])

        def apply_fn(context, this_arg, args, new_target):
            arg_list = _arg(args, 1)
            if arg_list is UNDEFINED or arg_list is NULL:
                call_args = []
            else:
                call_args = context.to_list(arg_list)
            return context.execute_function(this_arg, _arg(args, 0), call_args)

        def toString_fn(context, this_arg, args, new_target):
            if not self.is_function(this_arg):
                raise context.new_type_error(
                    "Function.prototype.toString requires that 'this' be a Function"
                )
            source_text = this_arg.internal_fields.get("source_text")
            if source_text is not None:
                return source_text
            name = context.to_string(context.read_property(this_arg, "name"))
            return f"function {name}() {{ [native code] }}"

        self._method(self.function_prototype, "call", call_fn, 1)
        self._method(self.function_prototype, "apply", apply_fn, 2)
        self._method(self.function_prototype, "toString", toString_fn)

        return constructor

    def _create_error_constructor(
        self, error_name: str, base: Optional[JSObject] = None
    ) -> JSObject:
        """Create an Error constructor (Error, TypeError, ReferenceError, RangeError)."""
        if base is None:
            error_prototype = self.new_object()
        else:
            error_prototype = JSObject(self._context.read_property(base, "prototype"))
        self.define_property(error_prototype, "name", error_name, enumerable=False)
        self.define_property(error_prototype, "message", "", enumerable=False)

        def error_constructor(context, this_arg, args, new_target):
            if new_target is UNDEFINED:
                # Error("x") behaves like new Error("x")
                return context.construct_object(constructor, args)
            message = _arg(args, 0)
            if message is not UNDEFINED:
                self.define_property(
                    this_arg, "message", context.to_string(message), enumerable=False
                )
            return UNDEFINED

        constructor = self.function_value(
            error_constructor, error_name, prototype=error_prototype, length=1
        )
        self.intrinsics[error_name] = constructor

        if base is None:

            def toString_fn(context, this_arg, args, new_target):
                if not isinstance(this_arg, JSObject):
                    raise context.new_type_error(
                        "Error.prototype.toString called on non-object"
                    )
                name = context.read_property(this_arg, "name")
                name = "Error" if name is UNDEFINED else context.to_string(name)
                message = context.read_property(this_arg, "message")
                message = "" if message is UNDEFINED else context.to_string(message)
                if not name:
                    return message
                if not message:
                    return name
                return f"{name}: {message}"

            self._method(error_prototype, "toString", toString_fn)

        return constructor

    def _create_array_constructor(self) -> JSObject:
        """Create the Array constructor; elements live in internal fields."""
        array_prototype = self.new_object()

        def array_constructor(context, this_arg, args, new_target):
            if new_target is UNDEFINED:
                return UNDEFINED
            if len(args) == 1 and isinstance(args[0], float):
                length = args[0]
                if length < 0 or length > MAX_ARRAY_LENGTH or not length.is_integer():
                    raise context.new_range_error("Invalid array length")
                self.make_array(this_arg, [], int(length))
            else:
                self.make_array(this_arg, args)
            return UNDEFINED

        constructor = self.function_value(
            array_constructor, "Array", prototype=array_prototype, length=1
        )
        self.intrinsics["Array"] = constructor

        def join_fn(context, this_arg, args, new_target):
            separator = _arg(args, 0)
            separator = "," if separator is UNDEFINED else context.to_string(separator)
            items = context.to_list(context.to_object(this_arg))
            return separator.join(
                "" if item is UNDEFINED or item is NULL else context.to_string(item)
                for item in items
            )

        def toString_fn(context, this_arg, args, new_target):
            return context.execute_method(context.to_object(this_arg), "join", [])

        def is_array(context, this_arg, args, new_target):
            return self.is_array(_arg(args, 0))

        self._method(array_prototype, "join", join_fn, 1)
        self._method(array_prototype, "toString", toString_fn)
        self._method(constructor, "isArray", is_array, 1)

        return constructor

    def _create_wrapper_constructor(
        self,
        name: str,
        default: JSValue,
        coerce: Callable[[Context, JSValue], JSValue],
    ) -> JSObject:
        """Create String, Number or Boolean: coercion when called, wrapper objects with new."""
        prototype = self.new_object()
        tag = type_tag(default)

        def wrapper_constructor(context, this_arg, args, new_target):
            value = coerce(context, args[0]) if args else default
            if new_target is UNDEFINED:
                return value
            this_arg.internal_fields["primitive_value"] = value
            if tag == "string":
                this_arg.internal_fields["get_own_property_descriptor"] = _string_own_property
                this_arg.internal_fields["own_property_keys"] = _string_keys
            return UNDEFINED

        constructor = self.function_value(
            wrapper_constructor, name, prototype=prototype, length=1
        )
        self.intrinsics[name] = constructor

        def this_primitive(context, this_arg, method_name):
            if type_tag(this_arg) == tag:
                return this_arg
            if isinstance(this_arg, JSObject):
                value = this_arg.internal_fields.get("primitive_value", UNDEFINED)
                if type_tag(value) == tag:
                    return value
            raise context.new_type_error(
                f"{name}.prototype.{method_name} requires that 'this' be a {name}"
            )

        def valueOf_fn(context, this_arg, args, new_target):
            return this_primitive(context, this_arg, "valueOf")

        def toString_fn(context, this_arg, args, new_target):
            value = this_primitive(context, this_arg, "toString")
            if tag == "number":
                return number_to_string(value)
            if tag == "boolean":
                return "true" if value else "false"
            return value

        self._method(prototype, "valueOf", valueOf_fn)
        self._method(prototype, "toString", toString_fn)

        return constructor

    def _create_reflect_object(self) -> JSObject:
        """Create the Reflect object."""
        reflect = self.new_object()

        def construct_fn(context, this_arg, args, new_target):
            """Reflect.construct(target, argumentsList, newTarget)."""
            target = _arg(args, 0)
            target_new = args[2] if len(args) > 2 else target
            return context.construct_object(target, context.to_list(_arg(args, 1)), target_new)

        self._method(reflect, "construct", construct_fn, 2)
        return reflect

    # Host interface

    def eval(self, code: str) -> Any:
        """Evaluate JavaScript code and return the result.

        Args:
            code: JavaScript source code to evaluate

        Returns:
            The value of the last top-level expression statement,
            converted to Python types

        Raises:
            JSSyntaxError: If the code has syntax errors
            JSThrow: If a thrown value is not caught by the program
            JSNotImplementedError: If the code uses an unsupported construct
        """
        return self._to_python(self.run_code(code))

    def run_code(self, code: str) -> JSValue:
        """Parse and run JavaScript code, returning the raw completion value."""
        program = parse_script(code)
        return self.evaluate_program(program, code)

    def evaluate_program(self, program: Any, source: Optional[str] = None) -> JSValue:
        """Run an already-parsed program node in the global scope."""
        logger.debug("Running program with %d statements", len(program.body))
        try:
            return self.global_scope.evaluate_script(program, source)
        except JSThrow as exc:
            logger.debug("Uncaught thrown value: %s", exc.message)
            raise
        except JSNotImplementedError as exc:
            logger.debug("Unsupported construct: %s", exc.message)
            raise

    def get(self, name: str) -> Any:
        """Get a global variable.

        Args:
            name: Variable name

        Returns:
            The value of the variable, converted to Python types
        """
        value = self.global_scope.variables.get(name, UNDEFINED)
        return self._to_python(value)

    def set(self, name: str, value: Any) -> None:
        """Set a global variable.

        Args:
            name: Variable name
            value: Value to set (Python value, will be converted)
        """
        self.global_scope.variables[name] = self._to_js(value)

    def _to_python(self, value: JSValue) -> Any:
        """Convert a JavaScript value to Python."""
        if value is UNDEFINED or value is NULL:
            return None
        if isinstance(value, (bool, float, str)):
            return value
        if self.is_function(value):
            return value
        if self.is_array(value):
            elements = value.internal_fields["elements"]
            return [
                self._to_python(elements.get(index, UNDEFINED))
                for index in range(value.internal_fields["length"])
            ]
        if isinstance(value, JSObject):
            return {
                key: self._to_python(self.read_property(value, key))
                for key in self._context.own_keys(value)
            }
        return value

    def _to_js(self, value: Any) -> JSValue:
        """Convert a Python value to JavaScript."""
        if value is None:
            return NULL
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            return value
        # Already JS values - pass through
        if isinstance(value, JSObject) or value is UNDEFINED or value is NULL:
            return value
        if isinstance(value, (list, tuple)):
            return self._context.construct_array([self._to_js(elem) for elem in value])
        if isinstance(value, dict):
            obj = self.new_object()
            for k, v in value.items():
                self.define_property(obj, str(k), self._to_js(v))
            return obj
        # Python callables become JS functions
        if callable(value):
            return self._wrap_callable(value)
        return UNDEFINED

    def _wrap_callable(self, fn: Callable[..., Any]) -> JSObject:
        def invoke(context, this_arg, args, new_target):
            return self._to_js(fn(*[self._to_python(arg) for arg in args]))

        return self.function_value(
            invoke, getattr(fn, "__name__", None), is_constructor=False
        )
