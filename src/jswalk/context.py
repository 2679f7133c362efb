"""Evaluation context: property resolution, coercion and invocation.

A ``Context`` pairs the syntax node being evaluated with the scope it
is evaluated in, so every error raised through it can report where it
happened and which activations led there.
"""

from typing import TYPE_CHECKING, Any, List, Optional

from .errors import JSNotImplementedError, JSThrow
from .values import (
    UNDEFINED,
    NULL,
    AccessorDescriptor,
    DataDescriptor,
    JSObject,
    JSValue,
    PropertyDescriptor,
    primitive_to_number,
    primitive_to_string,
    to_boolean,
    type_tag,
)

if TYPE_CHECKING:
    from .scope import Scope


class Context:
    """Where an operation happens: a syntax node and the scope evaluating it."""

    def __init__(self, node: Any, scope: "Scope"):
        self.node = node
        self.scope = scope
        self.engine = scope.engine

    # Property resolution

    def get_own_property_descriptor(
        self, obj: JSObject, name: str
    ) -> Optional[PropertyDescriptor]:
        compute = obj.internal_fields.get("get_own_property_descriptor")
        if compute is not None:
            computed = compute(self, obj, name)
            if computed is not None:
                return computed
        return obj.own_properties.get(name)

    def get_property_descriptor(
        self, obj: JSObject, name: str
    ) -> Optional[PropertyDescriptor]:
        descriptor = self.get_own_property_descriptor(obj, name)
        if descriptor is not None:
            return descriptor
        if obj.proto is NULL:
            return None
        return self.get_property_descriptor(obj.proto, name)

    def read_property(self, obj: JSObject, name: str) -> JSValue:
        descriptor = self.get_property_descriptor(obj, name)
        if descriptor is None:
            return UNDEFINED
        return self.read_descriptor_value(obj, descriptor)

    def read_descriptor_value(
        self, obj: JSObject, descriptor: PropertyDescriptor
    ) -> JSValue:
        if isinstance(descriptor, DataDescriptor):
            return descriptor.value
        if descriptor.getter is UNDEFINED:
            return UNDEFINED
        return self.execute_function(descriptor.getter, obj, [])

    def assign_property(self, obj: JSObject, name: str, value: JSValue) -> None:
        """Store through setters and writability; create the property on a miss."""
        intercept = obj.internal_fields.get("set_own_property")
        if intercept is not None and intercept(self, obj, name, value):
            return

        descriptor = self.get_property_descriptor(obj, name)
        if descriptor is None:
            self.engine.define_property(obj, name, value)
            return

        if isinstance(descriptor, AccessorDescriptor):
            if descriptor.setter is not UNDEFINED:
                self.execute_function(descriptor.setter, obj, [value])
            return

        if not descriptor.writable:
            return
        if obj.own_properties.get(name) is descriptor:
            descriptor.value = value
        else:
            # Inherited data property: shadow it
            self.engine.define_property(obj, name, value)

    def own_keys(self, obj: JSObject) -> List[str]:
        """Own enumerable property names in insertion order."""
        keys = []
        list_exotic = obj.internal_fields.get("own_property_keys")
        if list_exotic is not None:
            keys.extend(list_exotic(self, obj))
        for name, descriptor in obj.own_properties.items():
            if descriptor.enumerable and name not in keys:
                keys.append(name)
        return keys

    # Coercion

    def to_primitive(self, value: JSValue, hint: str = "default") -> JSValue:
        """Convert an object to a primitive value (ToPrimitive).

        hint can be "default", "number", or "string"
        """
        if not isinstance(value, JSObject):
            return value

        if hint == "string":
            method_order = ("toString", "valueOf")
        else:
            method_order = ("valueOf", "toString")

        for method_name in method_order:
            method = self.read_property(value, method_name)
            if not self.engine.is_function(method):
                continue
            result = self.execute_function(method, value, [])
            if not isinstance(result, JSObject):
                return result

        raise self.new_type_error("Cannot convert object to primitive value")

    def to_boolean(self, value: JSValue) -> bool:
        return to_boolean(value)

    def to_number(self, value: JSValue) -> float:
        return primitive_to_number(self.to_primitive(value, "number"))

    def to_string(self, value: JSValue) -> str:
        return primitive_to_string(self.to_primitive(value, "string"))

    def to_object(self, value: JSValue) -> JSObject:
        """Box primitives with their wrapper constructors."""
        if isinstance(value, JSObject):
            return value
        if value is UNDEFINED or value is NULL:
            raise self.new_type_error(
                f"Cannot convert {primitive_to_string(value)} to object"
            )
        wrapper = {"boolean": "Boolean", "number": "Number", "string": "String"}
        constructor = self.engine.intrinsics[wrapper[type_tag(value)]]
        return self.construct_object(constructor, [value])

    def to_list(self, array_like: JSValue) -> List[JSValue]:
        """Read ``length`` and the indexed entries of an array-like object."""
        if not isinstance(array_like, JSObject):
            raise self.new_type_error("argument list must be an object")
        length = self.to_number(self.read_property(array_like, "length"))
        if length != length or length <= 0:
            return []
        if length == float("inf"):
            raise self.new_range_error("Invalid array length")
        return [self.read_property(array_like, str(i)) for i in range(int(length))]

    # Equality

    def strict_equals(self, left: JSValue, right: JSValue) -> bool:
        """JavaScript === operator."""
        tag = type_tag(left)
        if tag != type_tag(right):
            return False
        if tag in ("undefined", "null"):
            return True
        if tag == "object":
            return left is right
        # NaN never equals itself and +0 equals -0, as for Python floats
        return left == right

    def loose_equals(self, left: JSValue, right: JSValue) -> bool:
        """JavaScript == operator."""
        left_tag = type_tag(left)
        right_tag = type_tag(right)
        if left_tag == right_tag:
            return self.strict_equals(left, right)

        nullish = ("undefined", "null")
        if left_tag in nullish or right_tag in nullish:
            return left_tag in nullish and right_tag in nullish

        if left_tag == "object":
            return self.loose_equals(self.to_primitive(left), right)
        if right_tag == "object":
            return self.loose_equals(left, self.to_primitive(right))

        return primitive_to_number(left) == primitive_to_number(right)

    # Operators on objects

    def is_instance_of(self, left: JSValue, right: JSValue) -> bool:
        if not self.engine.is_function(right):
            raise self.new_type_error("Right-hand side of 'instanceof' is not callable")
        if not isinstance(left, JSObject):
            return False
        # One step only: the immediate prototype is compared
        return left.proto is self.read_property(right, "prototype")

    def is_in(self, left: JSValue, right: JSValue) -> bool:
        if not isinstance(left, str):
            raise self.new_not_implemented_error(
                f"unsupported left operand of in operator {type_tag(left)}"
            )
        if not isinstance(right, JSObject):
            raise self.new_not_implemented_error(
                f"unsupported right operand of in operator {type_tag(right)}"
            )
        return self.get_property_descriptor(right, left) is not None

    # Invocation

    def execute_function(
        self,
        callee: JSValue,
        this_arg: JSValue,
        args: List[JSValue],
        new_target: JSValue = UNDEFINED,
    ) -> JSValue:
        if not self.engine.is_function(callee):
            raise self.new_reference_error(f"cannot call non-function {type_tag(callee)}")

        internal_fields = callee.internal_fields
        if new_target is not UNDEFINED and not internal_fields["is_constructor"]:
            raise self.new_type_error("function is not a constructor")

        engine = self.engine
        if engine.call_depth >= engine.max_call_depth:
            raise self.new_range_error("Maximum call stack size exceeded")

        engine.call_depth += 1
        try:
            return internal_fields["invoke"](self, this_arg, args, new_target)
        finally:
            engine.call_depth -= 1

    def execute_method(self, obj: JSObject, method_name: str, args: List[JSValue]) -> JSValue:
        return self.execute_function(self.read_property(obj, method_name), obj, args)

    def construct_object(
        self,
        constructor: JSValue,
        args: List[JSValue],
        new_target_constructor: Optional[JSValue] = None,
    ) -> JSObject:
        """The ``new`` protocol, with a separate new-target for the prototype."""
        if new_target_constructor is None:
            new_target_constructor = constructor

        for candidate, role in ((constructor, "constructor"), (new_target_constructor, "new target")):
            if not self.engine.is_function(candidate):
                raise self.new_type_error(f"{role} is not a function: {type_tag(candidate)}")
            if not candidate.internal_fields["is_constructor"]:
                raise self.new_type_error(f"{role} is not a constructor")

        proto = self.read_property(new_target_constructor, "prototype")
        if not isinstance(proto, JSObject):
            raise self.new_type_error(f"prototype cannot be {type_tag(proto)}")

        this_arg = JSObject(proto)
        result = self.execute_function(constructor, this_arg, args, this_arg)
        return result if isinstance(result, JSObject) else this_arg

    def construct_array(self, elements: List[JSValue]) -> JSObject:
        array = JSObject(self.read_property(self.engine.intrinsics["Array"], "prototype"))
        self.engine.make_array(array, elements)
        return array

    # Errors

    def new_not_implemented_error(self, details: str) -> JSNotImplementedError:
        return JSNotImplementedError(self, details)

    def new_thrown_value(self, value: JSValue) -> JSThrow:
        return JSThrow(self, value)

    def new_error(self, constructor_name: str, message: str) -> JSThrow:
        """Build an instance of a built-in error constructor, ready to raise."""
        constructor = self.engine.intrinsics[constructor_name]
        error = JSObject(self.read_property(constructor, "prototype"))
        self.engine.define_property(error, "message", message, enumerable=False)
        # Built-in errors are described without running script code
        return JSThrow(self, error, f"{constructor_name}: {message}")

    def new_type_error(self, message: str) -> JSThrow:
        return self.new_error("TypeError", message)

    def new_reference_error(self, message: str) -> JSThrow:
        return self.new_error("ReferenceError", message)

    def new_range_error(self, message: str) -> JSThrow:
        return self.new_error("RangeError", message)
