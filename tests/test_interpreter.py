import pytest

from foxdream.errors import FoxRuntimeError
from foxdream.interpreter import Interpreter
from foxdream.parser import parse_program


def run(source, **options):
    interp = Interpreter(**options)
    interp.run(parse_program(source))
    return interp


def output(capsys, source):
    run(source)
    return capsys.readouterr().out.splitlines()


def failure(source):
    with pytest.raises(FoxRuntimeError) as info:
        run(source)
    return info.value.err.message


def test_plus_overloads(capsys):
    source = 'print 5 + "3", "3" + 5, 5 + "abc", 5 + .t., 5 + null, "a" + null'
    assert output(capsys, source) == ['53', '35', '5', '6', '5', 'anull']
    source = 'print 5 + "nan", 5 + "inf", 5 + "1_0", 5 + "Infinity", 5 + " 2.5e1 "'
    assert output(capsys, source) == ['5', '5', '5', '5Infinity', '5 2.5e1 ']


def test_division(capsys):
    assert output(capsys, 'print 10.0 / 4, 7 / 2 * 2') == ['2.5', '7']
    assert failure('print 10 / 0') == 'Division by zero.'


def test_arithmetic_requires_numbers():
    assert failure('print "a" - 1') == 'Operands must be a number.'
    assert failure('print "a" < "b"') == 'Operands must be a number.'
    assert failure('print .t. + 1') == 'Incompatible types.'


def test_equality_and_truthiness(capsys):
    source = 'print 1 == 1, null == null, 1 == null, .t. == 1, "a" != "b"'
    assert output(capsys, source) == ['true', 'true', 'false', 'false', 'true']
    source = 'if 0\nprint "zero"\nendif\nif ""\nprint "empty"\nendif\nif null\nprint "null"\nendif'
    assert output(capsys, source) == ['zero', 'empty']


def test_logical_operators_return_operands(capsys):
    assert output(capsys, 'print null or "x", 0 and 5, .f. and 1, !null') == ['x', '5', 'false', 'true']


def test_for_with_step(capsys):
    assert output(capsys, 'for i = 1 to 5 step 2\nprint i\nendfor') == ['1', '3', '5']
    assert output(capsys, 'for i = 3 to 1 step -1\nprint i\nendfor') == ['3', '2', '1']
    assert output(capsys, 'for i = 5 to 1\nprint i\nendfor') == []


def test_loop_and_exit(capsys):
    source = '''for i = 1 to 5
  if i == 2
    loop
  endif
  if i == 4
    exit
  endif
  print i
endfor'''
    assert output(capsys, source) == ['1', '3']


def test_do_while_and_do(capsys):
    source = 'local i = 0\ndo while i < 3\ni += 1\nprint i\nenddo'
    assert output(capsys, source) == ['1', '2', '3']
    source = 'local i = 10\ndo\nprint i\ni = i + 1\nwhile i < 3'
    assert output(capsys, source) == ['10']


def test_do_case(capsys):
    source = 'do case\ncase 1 == 2\nprint "x"\nendcase\nprint "done"'
    assert output(capsys, source) == ['done']
    source = '''local n = 2
do case
case n == 1
  print "one"
case n == 5, n == 2
  print "two"
case .t.
  print "other"
otherwise
  print "none"
endcase'''
    assert output(capsys, source) == ['two']


def test_defers_run_in_reverse_before_caller_sees_value(capsys):
    source = '''function f
  defer
    print "A"
  enddefer
  defer
    print "B"
  enddefer
  return 42
endfunc
print f()'''
    assert output(capsys, source) == ['B', 'A', '42']


def test_defers_skipped_without_return(capsys):
    source = 'function g\ndefer\nprint "A"\nenddefer\nprint "body"\nendfunc\ng()'
    assert output(capsys, source) == ['body']


def test_multiple_assignment(capsys):
    assert output(capsys, '(a, b) = 1, 2\nprint a, b') == ['1', '2']
    assert output(capsys, '(_, b) = 1, 2\nprint b') == ['2']
    assert failure('(a, b) = 1').startswith('Wrong number of values')
    assert failure('(a) = 1, 2').startswith('Wrong number of variables')


def test_multiple_return_values_are_flattened(capsys):
    source = 'function two\nreturn 1, 2\nendfunc\n(a, b) = two()\nprint a + b'
    assert output(capsys, source) == ['3']
    source = 'function two\nreturn 1, 2\nendfunc\nlocal (x, y, z) = two(), 3\nprint z'
    assert output(capsys, source) == ['3']


def test_constants():
    assert failure('const X = 1\nconst X = 2').startswith('Constants cannot be redefined')
    assert failure('const X = 1\nX = 2').startswith('Invalid constant assignment')
    assert failure('const X = 1\nfunction f\nlocal x = 2\nendfunc\nf()').startswith(
        'Constants cannot be redefined')


def test_closures_share_the_captured_scope(capsys):
    source = '''function make
  local value = 1
  function get
    return value
  endfunc
  function put(v)
    value = v
  endfunc
  return get, put
endfunc
(getter, setter) = make()
setter(5)
print getter()'''
    assert output(capsys, source) == ['5']


def test_counter_closure(capsys):
    source = '''function counter
  local n = 0
  function inc
    n += 1
    return n
  endfunc
  return inc
endfunc
local c = counter()
c()
print c()'''
    assert output(capsys, source) == ['2']


def test_named_arguments_and_defaults(capsys):
    source = '''function greet(name, greeting as salute = "Hello")
  return greeting + ", " + name
endfunc
print greet("Ann", salute: "Hi")
print greet("Bob", _)'''
    assert output(capsys, source) == ['Hi, Ann', 'Hello, Bob']


def test_call_errors():
    fn = 'function greet(name, greeting as salute = "Hello")\nreturn name\nendfunc\n'
    assert failure(fn + 'greet("Ann")').startswith('Wrong number of arguments')
    assert failure(fn + 'greet("Ann", nope: 1)') == 'Alias not found: `nope`'
    assert failure('local x = 1\nx()') == 'Not a function: 1'


def test_arity_is_checked_before_arguments_run():
    source = '''local hits = 0
function bump
hits = hits + 1
return hits
endfunc
function one(a)
endfunc
one(bump(), bump())'''
    interp = Interpreter()
    with pytest.raises(FoxRuntimeError, match='Wrong number of arguments'):
        interp.run(parse_program(source))
    assert interp.global_env.lookup('hits') == 0


def test_recursion(capsys):
    source = '''function fact(n)
  if n <= 1
    return 1
  endif
  return n * fact(n - 1)
endfunc
print fact(10)'''
    assert output(capsys, source) == ['3628800']


def test_modules(capsys):
    source = '''module m
  local x = 3
  function double(v)
    return v * 2
  endfunc
endmodule
print m.double(m.x)'''
    assert output(capsys, source) == ['6']
    assert failure('module m\nendmodule\nm = 1').startswith('Invalid constant assignment')


def test_public_and_typed_locals(capsys):
    assert output(capsys, 'function f\npublic g = 7\nendfunc\nf()\nprint g') == ['7']
    source = 'local s as string, n as number, b as boolean, o as object\nprint len(s), n, b, o'
    assert output(capsys, source) == ['0', '0', 'false', 'null']


def test_conditional_expressions(capsys):
    source = 'local x = "big" if 5 > 3 else "small"\nlocal y = "yes" if .f.\nprint x, y'
    assert output(capsys, source) == ['big', 'null']


def test_release_and_undefined():
    assert failure('local x = 1\nrelease x\nprint x') == 'Undefined variable `x`.'


def test_top_level_return_stops_the_unit(capsys):
    assert output(capsys, 'print 1\nreturn 5\nprint 2') == ['1']


def test_member_access_on_plain_value_returns_it(capsys):
    assert output(capsys, 'local n = 5\nprint n.foo') == ['5']


def test_scope_objects(capsys):
    source = '''local o = createobject("empty")
o.name = "fox"
o["age"] = 3
o.age += 1
print o.name, o["age"], o'''
    assert output(capsys, source) == ['fox', '4', '{name:fox, age:4}']


def test_classes_are_declared_but_not_constructed(capsys):
    source = 'class Animal\nname = "x"\nfunction speak\nreturn 1\nendfunc\nendclass\nprint Animal'
    assert output(capsys, source) == ['class(Animal)']
    message = failure('class Animal\nendclass\nlocal a = Animal()')
    assert 'not supported' in message
    assert failure('local Base = 1\nclass Dog as Base\nendclass') == 'Superclass must be a class.'


def test_print_formats(capsys):
    source = '? 1.5, 2, "a", .t., null\nprint("x", "y")\nfunction f\nendfunc\nprint f'
    assert output(capsys, source) == ['1.5', '2', 'a', 'true', 'null', 'x', 'y', 'fn(f)']


def test_number_formats(capsys):
    huge = '1' + '0' * 309
    source = f'print 10000000, 12345678.9, 9999999, 0.001, 0.0001, 1 / 4, {huge}, -{huge}'
    assert output(capsys, source) == [
        '1.0E7', '1.23456789E7', '9999999', '0.001', '1.0E-4', '0.25', 'Infinity', '-Infinity']


def test_error_carries_position():
    with pytest.raises(FoxRuntimeError) as info:
        run('local a = 1\nprint a / 0')
    err = info.value.err
    assert (err.line, err.column, err.lexeme) == (2, 9, '/')


def test_step_budget():
    with pytest.raises(FoxRuntimeError, match='Execution step limit exceeded.'):
        run('do while .t.\nenddo', max_steps=50)


def test_step_budget_applies_per_run():
    interp = Interpreter(max_steps=3)
    for _ in range(5):
        interp.run(parse_program('x = 1'))
    assert interp.steps == 1


def test_scope_is_restored_after_errors():
    interp = Interpreter()
    with pytest.raises(FoxRuntimeError):
        interp.run(parse_program('function f\nlocal y = 1 / 0\nendfunc\nf()'))
    assert interp.environment is interp.global_env


def test_debug_trace(tmp_path):
    debug_file = tmp_path / 'debug.txt'
    interp = run('function f\nendfunc\nf()', debug_level=4, debug_file=str(debug_file))
    interp.close()
    text = debug_file.read_text()
    assert 'function f' in text
    assert 'call fn(f)' in text
