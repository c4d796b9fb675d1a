"""
Test configuration for UPL tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from interpreter import create_interpreter
from parsing import create_parser


@pytest.fixture
def parser():
  """Provide a fresh parser for each test"""
  return create_parser()


@pytest.fixture
def interpreter():
  """Provide an interpreter with an empty root environment"""
  return create_interpreter()


@pytest.fixture
def run(interpreter):
  """Evaluate source text, failing the test on parse errors"""
  def run_source(source):
    result, errors = interpreter.evaluate(source)
    assert errors == [], [str(e) for e in errors]
    return result
  return run_source
