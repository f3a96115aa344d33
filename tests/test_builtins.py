import pytest

from foxdream.errors import FoxRuntimeError
from foxdream.interpreter import Interpreter
from foxdream.parser import parse_program
from foxdream.types import ArrayVal, is_compatible


def output(capsys, source):
    Interpreter().run(parse_program(source))
    return capsys.readouterr().out.splitlines()


def failure(source):
    with pytest.raises(FoxRuntimeError) as info:
        Interpreter().run(parse_program(source))
    return info.value.err.message


def test_constants(capsys):
    assert output(capsys, 'print _VERSION, _MYSQL, _MSSQL') == ['1.0', '1', '2']


def test_alltrim_and_len(capsys):
    assert output(capsys, 'print alltrim("  fox  "), len("abc"), len(5)') == ['fox', '3', '0']
    assert failure('alltrim(5)') == 'Wrong argument type, expected: String, got: Double'
    assert failure('alltrim()') == 'Wrong number of arguments, expected: 1, got: 0'


def test_tick_and_tack(capsys):
    assert output(capsys, 'local t = tick()\nprint tack(t) >= 0, t > 0') == ['true', 'true']


def test_builtins_are_constants():
    assert failure('len = 1').startswith('Invalid constant assignment')


def test_array_methods(capsys):
    source = '''local a = createobject("array", 1, 2)
a.add(3)
print a, a.len(), a.get(0), a.contains(2), a.indexof(3), a.indexof(9)
print a.set(0, 9), a[0]
a.remove(2)
print a'''
    assert output(capsys, source) == ['[1, 2, 3]', '3', '1', 'true', '2', '-1', '1', '9', '[9, 3]']


def test_array_errors():
    assert failure('local a = createobject("array")\na.foo()') == 'Function not defined for this data type.'
    assert failure('local a = createobject("array")\na.get(4)') == 'Index 4 out of bounds for length 0'
    assert failure('local a = createobject("array")\na.get("x")') == (
        'Invalid argument type for this function, expecting integer.')


def test_array_rejects_infinite_index():
    huge = '1' + '0' * 309
    source = f'local a = createobject("array", 1)\na.get({huge})'
    assert failure(source) == 'Invalid argument type for this function, expecting integer.'
    assert failure(f'local a = createobject("array", 1)\nprint a[-{huge}]') == (
        'Invalid argument type for this function, expecting integer.')


def test_array_prototype_is_shared(capsys):
    source = 'local a = createobject("array", 1)\nlocal b = createobject("array", 2)\nprint a, a == b'
    assert output(capsys, source) == ['[1, 2]', 'true']


def test_unknown_prototype():
    assert failure('createobject("nothing")') == 'Undefined variable `nothing`.'


def test_compatibility_rule_is_substring_based():
    assert is_compatible('x', 'String')
    assert is_compatible(ArrayVal(), 'Array')
    assert not is_compatible(1.0, 'String')
    assert is_compatible(None, 'null')
