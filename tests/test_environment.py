import pytest

from foxdream.environment import Environment
from foxdream.errors import FoxRuntimeError


def test_names_are_case_insensitive():
    env = Environment()
    env.define('Name', 1.0)
    assert env.lookup('NAME') == 1.0
    env.assign('name', 2.0)
    assert env.lookup('Name') == 2.0


def test_assign_to_undefined_defines_in_the_assigned_scope():
    parent = Environment()
    child = Environment(parent)
    child.assign('x', 1.0)
    assert 'x' in child.values
    assert 'x' not in parent.values


def test_assign_updates_the_owning_scope():
    parent = Environment()
    parent.define('x', 1.0)
    child = Environment(parent)
    child.assign('x', 5.0)
    assert parent.lookup('x') == 5.0
    assert 'x' not in child.values


def test_lookup_of_undefined_name_fails():
    with pytest.raises(FoxRuntimeError, match='Undefined variable `nope`.'):
        Environment().lookup('nope')


def test_constants_cannot_be_redefined_or_assigned():
    env = Environment()
    env.define('X', 1.0, constant=True)
    with pytest.raises(FoxRuntimeError, match='Constants cannot be redefined'):
        env.define('x', 2.0)
    with pytest.raises(FoxRuntimeError, match='Invalid constant assignment'):
        env.assign('X', 2.0)
    with pytest.raises(FoxRuntimeError, match='Constants cannot be redefined'):
        Environment(env).define('X', 3.0, constant=True)


def test_release_unbinds_from_owner():
    parent = Environment()
    parent.define('x', 1.0)
    child = Environment(parent)
    child.release('X')
    assert parent.resolve('x') is None
    child.release('missing')
