"""
Evaluator tests for UPL
"""

import logging

import pytest
from ast_nodes import Node
from error_handling import UPLParseError, UPLRuntimeError
from interpreter import apply_infix_operator, create_debug_interpreter, eval_node, evaluate
from objects import FALSE, NULL, TRUE, Array, Environment, Error, Function, Integer, String


class TestArithmetic:
  """Integer and boolean expressions"""

  @pytest.mark.parametrize("source, expected", [
    ("5", 5),
    ("-10", -10),
    ("5 + 5 + 5 + 5 - 10", 10),
    ("2 * 2 * 2 * 2 * 2", 32),
    ("-50 + 100 + -50", 0),
    ("5 * 2 + 10", 20),
    ("5 + 2 * 10", 25),
    ("50 / 2 * 2 + 10", 60),
    ("2 * (5 + 10)", 30),
    ("3 * (3 * 3) + 10", 37),
    ("(5 + 10 * 2 + 15 / 3) * 2 + -10", 50),
    ("4 * (2 + 3)", 20),
  ])
  def test_integer_expressions(self, run, source, expected):
    assert run(source) == Integer(expected)

  @pytest.mark.parametrize("source, expected", [
    ("7 / 2", 3),
    ("-7 / 2", -3),
    ("7 / -2", -3),
    ("-7 / -2", 3),
  ])
  def test_division_truncates_toward_zero(self, run, source, expected):
    assert run(source) == Integer(expected)

  def test_division_by_zero(self, run):
    assert run("1 / 0") == Error("division by zero")

  def test_overflow_wraps_around(self, run):
    assert run("9223372036854775807 + 1") == Integer(-2 ** 63)
    assert run("-9223372036854775807 - 2") == Integer(2 ** 63 - 1)
    assert run("4611686018427387904 * 2") == Integer(-2 ** 63)

  @pytest.mark.parametrize("source, expected", [
    ("true", TRUE),
    ("false", FALSE),
    ("1 < 2", TRUE),
    ("1 > 2", FALSE),
    ("1 == 1", TRUE),
    ("1 != 1", FALSE),
    ("true == true", TRUE),
    ("true != false", TRUE),
    ("(1 < 2) == true", TRUE),
    ("(1 > 2) == false", TRUE),
    ("(1 > 2) == true", FALSE),
  ])
  def test_boolean_expressions(self, run, source, expected):
    assert run(source) is expected

  @pytest.mark.parametrize("source, expected", [
    ("!true", FALSE),
    ("!false", TRUE),
    ("!!true", TRUE),
    ("!5", TRUE),
    ("!!5", FALSE),
  ])
  def test_bang_operator(self, run, source, expected):
    assert run(source) is expected

  def test_equality_of_other_values_is_identity(self, run):
    assert run("[1] == [1]") is FALSE
    assert run("let a = [1]; a == a") is TRUE
    assert run("1 == true") is FALSE


class TestStrings:

  def test_string_literal(self, run):
    assert run('"Hello World!"') == String("Hello World!")

  def test_concatenation(self, run):
    assert run('"Hello" + " " + "World!"') == String("Hello World!")

  def test_only_plus_is_supported(self, run):
    assert run('"a" - "b"') == Error("unsupported operator: 'string' - 'string'")
    assert run('"a" == "a"') == Error("unsupported operator: 'string' == 'string'")


class TestErrors:
  """Runtime mistakes become Error objects"""

  @pytest.mark.parametrize("source, message", [
    ("5 + true;", "unsupported operator: 'int' + 'bool'"),
    ("5 + true; 5;", "unsupported operator: 'int' + 'bool'"),
    ("-true", "unsupported operator: -'bool'"),
    ("true + false;", "unsupported operator: 'bool' + 'bool'"),
    ("5; true + false; 5", "unsupported operator: 'bool' + 'bool'"),
    ("if (10 > 1) { true + false; }", "unsupported operator: 'bool' + 'bool'"),
    ("if (10 > 1) { if (10 > 1) { return true + false; } return 1; }",
     "unsupported operator: 'bool' + 'bool'"),
    ("foobar", "undefined name: 'foobar'"),
    ("5(1)", "not a function: int"),
    ('{"a": 1}[fn(x) { x }]', "unusable as hash key: function"),
    ("{[1]: 2}", "unusable as hash key: array"),
    ("1[0]", "index operator not supported: int"),
  ])
  def test_error_messages(self, run, source, message):
    assert run(source) == Error(message)

  def test_error_stops_evaluation(self, run, capsys):
    result = run('5 + true; print("never");')
    assert result == Error("unsupported operator: 'int' + 'bool'")
    assert capsys.readouterr().out == ""

  def test_error_in_argument_stops_call(self, run, capsys):
    result = run('print(1, foo, print("never"))')
    assert result == Error("undefined name: 'foo'")
    assert capsys.readouterr().out == ""

  def test_error_in_array_element(self, run):
    assert run("[1, -true, 3]") == Error("unsupported operator: -'bool'")

  def test_error_in_let_is_not_bound(self, interpreter, run):
    assert run("let x = -true;") == Error("unsupported operator: -'bool'")
    assert interpreter.environment.get("x") is None


class TestStatements:

  @pytest.mark.parametrize("source, expected", [
    ("let a = 5; a;", 5),
    ("let a = 5 * 5; a;", 25),
    ("let a = 5; let b = a; b;", 5),
    ("let a = 5; let b = a; let c = a + b + 5; c;", 15),
    ("let a = 1; let a = 2; a", 2),
  ])
  def test_let_statements(self, run, source, expected):
    assert run(source) == Integer(expected)

  def test_let_has_no_value(self, run):
    assert run("let a = 5;") is None

  def test_empty_program_has_no_value(self, run):
    assert run("") is None

  @pytest.mark.parametrize("source, expected", [
    ("return 10;", 10),
    ("return 10; 9;", 10),
    ("return 2 * 5; 9;", 10),
    ("9; return 2 * 5; 9;", 10),
    ("if (10 > 1) { if (10 > 1) { return 10; } return 1; }", 10),
  ])
  def test_return_statements(self, run, source, expected):
    assert run(source) == Integer(expected)

  @pytest.mark.parametrize("source, expected", [
    ("if (true) { 10 }", Integer(10)),
    ("if (false) { 10 }", NULL),
    ("if (1 < 2) { 10 }", Integer(10)),
    ("if (1 > 2) { 10 }", NULL),
    ("if (1 > 2) { 10 } else { 20 }", Integer(20)),
    ("if (1 < 2) { 10 } else { 20 }", Integer(10)),
    ("if (1) { 10 } else { 20 }", Integer(20)),
    ("if (true) { }", NULL),
    ("if (true) { let x = 1; }", NULL),
  ])
  def test_if_expressions(self, run, source, expected):
    assert run(source) == expected


class TestFunctions:

  def test_function_object(self, run):
    result = run("fn(x) { x + 2; };")
    assert isinstance(result, Function)
    assert [p.name for p in result.params] == ["x"]
    assert str(result.body) == "(x + 2)"
    assert result.inspect() == "fn(x) {\n(x + 2)\n}"

  @pytest.mark.parametrize("source, expected", [
    ("let identity = fn(x) { x; }; identity(5);", 5),
    ("let identity = fn(x) { return x; }; identity(5);", 5),
    ("let double = fn(x) { x * 2; }; double(5);", 10),
    ("let add = fn(x, y) { x + y; }; add(5, 5);", 10),
    ("let add = fn(x, y) { x + y; }; add(5 + 5, add(5, 5));", 20),
    ("fn(x) { x; }(5)", 5),
  ])
  def test_function_application(self, run, source, expected):
    assert run(source) == Integer(expected)

  def test_closures(self, run):
    source = """
    let newAdder = fn(x) { fn(y) { x + y }; };
    let addTwo = newAdder(2);
    addTwo(5);
    """
    assert run(source) == Integer(7)
    assert run("newAdder(2)(5)") == Integer(7)

  def test_closure_sees_later_bindings(self, run):
    assert run("let f = fn() { later }; let later = 3; f()") == Integer(3)

  def test_parameters_shadow_outer_bindings(self, interpreter, run):
    assert run("let x = 1; let f = fn(x) { let x = x + 10; x }; f(5)") == Integer(15)
    assert interpreter.environment.get("x") == Integer(1)

  def test_recursion(self, run):
    source = """
    let fib = fn(n) { if (n < 2) { return n; } fib(n - 1) + fib(n - 2) };
    fib(10);
    """
    assert run(source) == Integer(55)

  def test_higher_order_functions(self, run):
    source = "let twice = fn(f, x) { f(f(x)) }; twice(fn(n) { n * 3 }, 2)"
    assert run(source) == Integer(18)

  def test_return_only_leaves_innermost_function(self, run):
    source = "let inner = fn() { return 1; }; let outer = fn() { inner(); 2 }; outer()"
    assert run(source) == Integer(2)

  def test_wrong_number_of_arguments(self, run):
    assert run("fn(x, y) { x }(1)") == Error("wrong number of arguments: want=2, got=1")

  def test_user_bindings_shadow_builtins(self, run):
    assert run("let len = fn(x) { 42 }; len([1, 2])") == Integer(42)


class TestCollections:

  def test_array_literal(self, run):
    assert run("[1, 2 * 2, 3 + 3]") == Array((Integer(1), Integer(4), Integer(6)))

  @pytest.mark.parametrize("source, expected", [
    ("[1, 2, 3][0]", Integer(1)),
    ("[1, 2, 3][1]", Integer(2)),
    ("let i = 0; [1][i];", Integer(1)),
    ("[1, 2, 3][1 + 1];", Integer(3)),
    ("let myArray = [1, 2, 3]; myArray[0] + myArray[1] + myArray[2];", Integer(6)),
    ("[1, 2][2]", Error("list index out of range")),
    ("[1, 2][-1]", Error("list index out of range")),
    ("[1, 2][-3]", Error("list index out of range")),
  ])
  def test_array_index(self, run, source, expected):
    assert run(source) == expected

  def test_hash_literal(self, run):
    result = run('let two = "two"; {"one": 10 - 9, two: 1 + 1, 4: 4, true: 5}')
    assert result.inspect() == "{4: 4, one: 1, true: 5, two: 2}"
    assert len(result.pairs) == 4

  @pytest.mark.parametrize("source, expected", [
    ('{"foo": 5}["foo"]', Integer(5)),
    ('{"foo": 5}["bar"]', NULL),
    ('let key = "foo"; {"foo": 5}[key]', Integer(5)),
    ('{}["foo"]', NULL),
    ("{5: 5}[5]", Integer(5)),
    ("{true: 5}[true]", Integer(5)),
    ("{false: 5}[false]", Integer(5)),
  ])
  def test_hash_index(self, run, source, expected):
    assert run(source) == expected

  def test_later_duplicate_key_wins(self, run):
    assert run('{"a": 1, "a": 2}["a"]') == Integer(2)


class TestEntryPoints:
  """evaluate(), the interpreter facade and host level faults"""

  def test_evaluate_refuses_on_parse_errors(self, capsys):
    env = Environment()
    result, errors = evaluate('print("side effect"); let = 1;', env)
    assert result is None
    assert [e.message for e in errors] == ["expected: IDENTIFIER, but got: ="]
    assert capsys.readouterr().out == ""

  def test_environment_persists_between_calls(self, interpreter):
    interpreter.evaluate("let x = 10;")
    interpreter.evaluate("let add = fn(y) { x + y };")
    result, errors = interpreter.evaluate("add(5)")
    assert errors == []
    assert result == Integer(15)

  def test_pure_expressions_are_idempotent(self, run):
    run("let a = 3; let f = fn(n) { n * a };")
    assert run("f(4) + [1, 2][1]") == run("f(4) + [1, 2][1]")

  def test_unknown_node_is_a_host_fault(self):
    with pytest.raises(UPLRuntimeError, match="Unknown node type"):
      eval_node(Node(), Environment())

  def test_apply_infix_operator(self):
    assert apply_infix_operator("<", Integer(1), Integer(2)) is TRUE
    assert apply_infix_operator("+", NULL, NULL) == Error("unsupported operator: 'null' + 'null'")

  def test_run_file(self, interpreter, tmp_path):
    script = tmp_path / "script.upl"
    script.write_text("let x = 2;\nx * 21;\n")
    assert interpreter.run_file(str(script)) == Integer(42)

  def test_run_file_with_parse_errors(self, interpreter, tmp_path):
    script = tmp_path / "broken.upl"
    script.write_text("let 5;\n")
    with pytest.raises(UPLParseError) as excinfo:
      interpreter.run_file(str(script))
    assert len(excinfo.value.errors) == 1
    assert "broken.upl:1:5: expected: IDENTIFIER, but got: INTEGER" in str(excinfo.value)

  def test_debug_interpreter_logs_nodes(self, caplog):
    caplog.set_level(logging.DEBUG, logger="interpreter")
    result, _ = create_debug_interpreter().evaluate("1 + 2")
    assert result == Integer(3)
    assert "Evaluating: Program (1)" in caplog.text
    assert "Evaluating: InfixExpr (+)" in caplog.text
    assert "Evaluating: IntegerLiteral (2)" in caplog.text
