"""
Tests for the runtime object model and environments
"""

import pytest
from objects import (
  FALSE, NULL, TRUE, Array, Boolean, Builtin, Environment, Error, Hash, HashKey,
  HashPair, Integer, ReturnValue, String, native_bool,
)
from interpreter import eval_node
from parsing import create_parser


class TestRendering:

  @pytest.mark.parametrize("value, expected", [
    (Integer(-42), "-42"),
    (TRUE, "true"),
    (FALSE, "false"),
    (String("raw text"), "raw text"),
    (NULL, "null"),
    (Array((Integer(1), String("a"), NULL)), "[1, a, null]"),
    (Array(), "[]"),
    (Error("boom"), "Error: boom"),
    (ReturnValue(Integer(3)), "3"),
    (Builtin("len", lambda *args: NULL), "builtin function"),
  ])
  def test_inspect(self, value, expected):
    assert value.inspect() == expected
    assert str(value) == expected

  def test_hash_renders_sorted(self):
    b, a = String("b"), String("a")
    pairs = {
      b.hash_key(): HashPair(b, Integer(2)),
      a.hash_key(): HashPair(a, Integer(1)),
    }
    assert Hash(pairs).inspect() == "{a: 1, b: 2}"

  def test_type_names(self):
    assert [v.type_name for v in (Integer(1), TRUE, String(""), Array(), Hash(), NULL)] == [
      "int", "bool", "string", "array", "hash", "null",
    ]
    assert ReturnValue(NULL).type_name == "return value"
    assert Error("x").type_name == "error"


class TestSingletons:

  def test_native_bool_returns_singletons(self):
    assert native_bool(True) is TRUE
    assert native_bool(False) is FALSE

  def test_booleans_compare_by_identity(self):
    assert TRUE == TRUE
    assert Boolean(True) != TRUE


class TestHashKeys:

  def test_equal_values_share_keys(self):
    assert String("name").hash_key() == String("name").hash_key()
    assert Integer(7).hash_key() == Integer(7).hash_key()
    assert TRUE.hash_key() == HashKey("bool", True)

  def test_keys_differ_across_types(self):
    assert Integer(1).hash_key() != TRUE.hash_key()
    assert String("1").hash_key() != Integer(1).hash_key()


class TestEnvironment:

  def test_get_and_set(self):
    env = Environment()
    assert env.set("x", Integer(1)) == Integer(1)
    assert env.get("x") == Integer(1)
    assert env.get("missing") is None
    assert "x" in env

  def test_child_reads_through_to_outer(self):
    outer = Environment()
    outer.set("x", Integer(1))
    inner = outer.child()
    assert inner.get("x") == Integer(1)
    assert inner.outer is outer

  def test_set_writes_locally(self):
    outer = Environment()
    outer.set("x", Integer(1))
    inner = outer.child()
    inner.set("x", Integer(2))
    assert inner.get("x") == Integer(2)
    assert outer.get("x") == Integer(1)

  def test_children_share_the_outer_environment(self):
    outer = Environment()
    inner = outer.child()
    outer.set("late", Integer(5))
    assert inner.get("late") == Integer(5)


class TestFunctionObjects:

  def test_function_renders_body(self):
    program, _ = create_parser().parse_string("fn(a, b) { a * b }")
    fn = eval_node(program, Environment())
    assert fn.inspect() == "fn(a, b) {\n(a * b)\n}"
    assert fn.type_name == "function"
