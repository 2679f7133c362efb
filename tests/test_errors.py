"""Tests for thrown values, engine faults and parse errors."""

import pytest

from jswalk import Engine, JSError, JSNotImplementedError, JSSyntaxError, JSThrow
from jswalk.errors import format_location
from jswalk.parser import parse_function, parse_script
from jswalk.values import NULL


class TestThrownValues:
    """Uncaught values surface as JSThrow with a call-stack description."""

    def test_primitive(self):
        engine = Engine()
        with pytest.raises(JSThrow) as excinfo:
            engine.eval("throw 1")
        exc = excinfo.value
        assert exc.value == 1
        assert exc.name == "Uncaught"
        assert str(exc) == "Uncaught: 1\n    at <program> (1:0)"

    def test_context_points_at_throw(self):
        engine = Engine()
        with pytest.raises(JSThrow) as excinfo:
            engine.eval('var x = 1;\nthrow "bad";')
        assert excinfo.value.context.node.type == "ThrowStatement"
        assert excinfo.value.message == "bad\n    at <program> (2:0)"

    def test_stack_through_calls(self):
        engine = Engine()
        source = (
            "function inner() {\n"
            '  throw new Error("deep");\n'
            "}\n"
            "function outer() {\n"
            "  inner();\n"
            "}\n"
            "outer();"
        )
        with pytest.raises(JSThrow) as excinfo:
            engine.eval(source)
        assert excinfo.value.message == (
            "Error: deep"
            "\n    at inner (2:2)"
            "\n    at outer (5:2)"
            "\n    at <program> (7:0)"
        )

    def test_getter_frame(self):
        engine = Engine()
        with pytest.raises(JSThrow) as excinfo:
            engine.eval("[0].join.call({ length: 1, get 0() { throw 2; } })")
        assert "\n    at 0 (" in excinfo.value.message

    def test_builtin_error_description(self):
        engine = Engine()
        with pytest.raises(JSThrow) as excinfo:
            engine.eval("null.x")
        assert str(excinfo.value) == (
            "Uncaught: TypeError: Cannot read property 'x' of null\n    at <program> (1:0)"
        )

    def test_host_side_errors_have_native_location(self):
        engine = Engine()
        obj = engine.run_code("Object.create(null)")
        with pytest.raises(JSThrow) as excinfo:
            engine.to_number(obj)
        assert excinfo.value.message.endswith("\n    at <program> (<native>)")

    def test_unprintable_value(self):
        """A value that cannot be stringified is still thrown."""
        engine = Engine()
        with pytest.raises(JSThrow) as excinfo:
            engine.eval("throw Object.create(null)")
        assert excinfo.value.value.proto is NULL
        assert excinfo.value.message == "\n    at <program> (1:0)"

    def test_custom_to_string_used(self):
        engine = Engine()
        with pytest.raises(JSThrow) as excinfo:
            engine.eval('throw { toString: function () { return "custom"; } }')
        assert excinfo.value.message.startswith("custom\n")

    def test_is_js_error(self):
        engine = Engine()
        with pytest.raises(JSError):
            engine.eval("throw 'x'")


class TestBuiltinErrors:
    """Faults raised by the engine are ordinary error objects."""

    @pytest.mark.parametrize(
        "source,name,message",
        [
            ("undefined.x", "TypeError", "Cannot read property 'x' of undefined"),
            ("null.x = 1", "TypeError", "Cannot set property 'x' of null"),
            ("missing = 1", "ReferenceError", "missing is not defined"),
            ("var f = 1; f()", "ReferenceError", "f is not a function"),
            ("new Array(1.5)", "RangeError", "Invalid array length"),
            ("const c = 1; c++", "TypeError", "Assignment to constant variable."),
            ("new (function () {}.call)()", "TypeError", "constructor is not a constructor"),
        ],
    )
    def test_fault(self, source, name, message):
        engine = Engine()
        with pytest.raises(JSThrow) as excinfo:
            engine.eval(source)
        error = excinfo.value.value
        assert engine.read_property(error, "name") == name
        assert engine.read_property(error, "message") == message

    def test_errors_have_prototype_chain(self):
        engine = Engine()
        result = engine.eval(
            """
            var e;
            try { null.x; } catch (err) { e = err; }
            [Object.getPrototypeOf(e) === TypeError.prototype,
             Object.getPrototypeOf(TypeError.prototype) === Error.prototype,
             String(e)]
        """
        )
        assert result == [True, True, "TypeError: Cannot read property 'x' of null"]


class TestNotImplemented:
    """Unsupported constructs are engine faults, not thrown values."""

    def test_generator(self):
        engine = Engine()
        with pytest.raises(JSNotImplementedError) as excinfo:
            engine.eval("function* g() {}")
        exc = excinfo.value
        assert exc.name == "InternalError"
        assert exc.details == "generator and async functions are not supported"

    def test_class(self):
        engine = Engine()
        with pytest.raises(JSNotImplementedError) as excinfo:
            engine.eval("class A {}")
        assert "ClassDeclaration" in excinfo.value.details

    def test_destructuring(self):
        engine = Engine()
        with pytest.raises(JSNotImplementedError) as excinfo:
            engine.eval("var [a] = [1]")
        assert "ArrayPattern" in excinfo.value.details

    def test_stack_inside_function(self):
        engine = Engine()
        with pytest.raises(JSNotImplementedError) as excinfo:
            engine.eval("function f() { return /x/; }\nf();")
        assert excinfo.value.message.endswith("\n    at f (1:22)\n    at <program> (2:0)")

    def test_not_a_thrown_value(self):
        engine = Engine()
        with pytest.raises(JSNotImplementedError):
            engine.eval("var caught = false; try { class B {} } catch (e) { caught = true; }")
        assert engine.get("caught") is False


class TestSyntaxErrors:
    def test_position(self):
        engine = Engine()
        with pytest.raises(JSSyntaxError) as excinfo:
            engine.eval("var x = 1;\nvar y = ;")
        exc = excinfo.value
        assert exc.line == 2
        assert exc.name == "SyntaxError"
        assert "(line 2, column" in str(exc)
        assert not exc.message.startswith("Line")

    def test_nothing_runs(self):
        engine = Engine()
        with pytest.raises(JSSyntaxError):
            engine.eval("var ran = true; var = 1")
        assert engine.get("ran") is None

    def test_function_constructor_bad_body(self):
        engine = Engine()
        with pytest.raises(JSSyntaxError):
            engine.eval('Function("return (")')

    def test_function_constructor_escape(self):
        engine = Engine()
        with pytest.raises(JSSyntaxError) as excinfo:
            engine.eval('Function("}) + (function () {")')
        assert "Invalid function body" in str(excinfo.value)


class TestParser:
    def test_parse_script(self):
        program = parse_script("1 + 2")
        statement = program.body[0]
        assert statement.type == "ExpressionStatement"
        assert list(statement.range) == [0, 5]
        assert format_location(statement) == "1:0"

    def test_parse_function(self):
        node, source = parse_function("a,b", "return a")
        assert node.type == "FunctionExpression"
        assert [param.name for param in node.params] == ["a", "b"]
        assert source.startswith("(function anonymous(a,b")

    def test_format_location_without_node(self):
        assert format_location(None) == "<native>"
