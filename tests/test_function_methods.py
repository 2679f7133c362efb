"""Test Function.prototype methods: call, apply, toString."""

from jswalk import Engine


class TestFunctionCall:
    """Test Function.prototype.call()."""

    def test_call_with_this(self):
        """Call with specific this value."""
        engine = Engine()
        result = engine.eval(
            """
            var obj = { x: 5 };
            function getX() { return this.x; }
            getX.call(obj)
        """
        )
        assert result == 5

    def test_call_with_args(self):
        """Call with arguments."""
        engine = Engine()
        result = engine.eval(
            """
            function add(a, b) { return a + b; }
            add.call(null, 3, 4)
        """
        )
        assert result == 7

    def test_call_on_method(self):
        """Call method with different this."""
        engine = Engine()
        result = engine.eval(
            """
            var obj1 = { name: "obj1" };
            var obj2 = { name: "obj2" };
            function getName() { return this.name; }
            getName.call(obj2)
        """
        )
        assert result == "obj2"


class TestFunctionApply:
    """Test Function.prototype.apply()."""

    def test_apply_with_this(self):
        """Apply with specific this value."""
        engine = Engine()
        result = engine.eval(
            """
            var obj = { x: 10 };
            function getX() { return this.x; }
            getX.apply(obj)
        """
        )
        assert result == 10

    def test_apply_with_array_args(self):
        """Apply with array of arguments."""
        engine = Engine()
        result = engine.eval(
            """
            function add(a, b, c) { return a + b + c; }
            add.apply(null, [1, 2, 3])
        """
        )
        assert result == 6

    def test_apply_for_max(self):
        """Use apply to spread array to custom function."""
        engine = Engine()
        result = engine.eval(
            """
            function findMax(a, b, c, d, e) {
                var max = a;
                if (b > max) max = b;
                if (c > max) max = c;
                if (d > max) max = d;
                if (e > max) max = e;
                return max;
            }
            var numbers = [5, 3, 8, 1, 9];
            findMax.apply(null, numbers)
        """
        )
        assert result == 9

    def test_apply_empty_args(self):
        """Apply with no arguments array."""
        engine = Engine()
        result = engine.eval(
            """
            function count() { return arguments.length; }
            count.apply(null)
        """
        )
        assert result == 0

    def test_apply_array_like(self):
        """Apply reads length and indices from any object."""
        engine = Engine()
        result = engine.eval(
            """
            function join3(a, b, c) { return a + b + c; }
            join3.apply(null, { length: 3, 0: "x", 1: "y", 2: "z" })
        """
        )
        assert result == "xyz"


class TestFunctionToString:
    """Test Function.prototype.toString()."""

    def test_source_text(self):
        """Script functions print their own source."""
        engine = Engine()
        result = engine.eval("var f = function (a, b) { return a * b; }; f.toString()")
        assert result == "function (a, b) { return a * b; }"

    def test_arrow_source_text(self):
        """Arrow functions print their source too."""
        engine = Engine()
        assert engine.eval("var g = x => x + 1; '' + g") == "x => x + 1"

    def test_native(self):
        """Built-ins print a native stub."""
        engine = Engine()
        assert engine.eval("Object.keys.toString()") == "function keys() { [native code] }"
