"""Tree-walking interpreter for the FoxDream language.

``execute`` runs a statement and returns either None or one of the
control signals from ``foxdream.errors`` (return, loop, exit).  Blocks,
loops and function calls inspect the signal they get back and decide
whether to keep going, so control flow never travels through exceptions.
Reportable problems raise ``FoxRuntimeError``.
"""

from __future__ import annotations

from typing import Any, List, Optional

from .ast import (
    Binary, Block, Call, Class, ComplexAssignment, Conditional, Const,
    CreateObject, Defer, Do, DoCase, DoWhile, Exit, Expr, ExpressionStmt, For,
    Function, Identifier, If, Literal, Logical, Loop, Macro, Member, Module,
    MultipleAssignment, NamedArgument, Print, Program, Release, Return,
    SimpleAssignment, Stmt, This, Unary, VarDeclaration,
)
from .environment import Environment
from .errors import ExitSignal, FoxRuntimeError, LoopSignal, ReturnSignal, Signal
from .parser import Resolver, parse_program
from .scanner import Category, Kind, Token
from .std.core import populate_core_environment
from .std.db import populate_db_environment
from .types import (
    ArgValue, ArrayVal, CallableValue, ValueTag, is_equal, is_number,
    is_truthy, number_text, parse_decimal, to_string,
)

LOOP = LoopSignal()
EXIT = ExitSignal()

TYPE_DEFAULTS = {'string': '', 'number': 0.0, 'boolean': False}


class FunctionValue(CallableValue):
    """A user function together with the scope it was declared in."""
    tag = ValueTag.FUNCTION

    def __init__(self, declaration: Function, closure: Environment):
        self.declaration = declaration
        self.closure = closure

    def __str__(self) -> str:
        return f"fn({self.declaration.name})"

    def arity(self) -> int:
        return len(self.declaration.params)

    def param_info(self) -> Optional[List[str]]:
        return [str(p.name) for p in self.declaration.params]

    def call(self, interpreter: 'Interpreter', arguments: List[ArgValue], callee: Any) -> Any:
        return interpreter.call_function(self, arguments)


class ClassValue(CallableValue):
    """A declared class. Instantiation is not implemented."""
    tag = ValueTag.CLASS

    def __init__(self, declaration: Class, superclass: Optional['ClassValue'], closure: Environment):
        self.declaration = declaration
        self.superclass = superclass
        self.closure = closure

    def __str__(self) -> str:
        return f"class({self.declaration.name})"

    def find_method(self, name: str) -> Optional[Function]:
        for method in self.declaration.methods:
            if str(method.name).lower() == name.lower():
                return method
        if self.superclass is not None:
            return self.superclass.find_method(name)
        return None

    def arity(self) -> int:
        init = self.find_method('init')
        return len(init.params) if init is not None else 0

    def validate_arguments(self) -> bool:
        return False

    def call(self, interpreter: 'Interpreter', arguments: List[ArgValue], callee: Any) -> Any:
        raise FoxRuntimeError(getattr(callee, 'token', None),
                              f"Creating instances of class `{self.declaration.name}` is not supported.")


class Interpreter:
    """Executes FoxDream programs against a global scope preloaded with builtins."""
    def __init__(self, debug_level: int = 0, debug_file: str = 'debug.txt',
                 max_steps: Optional[int] = None):
        self.global_env = Environment()
        populate_core_environment(self.global_env)
        populate_db_environment(self.global_env)
        self.environment = self.global_env
        self.debug_level = debug_level
        self.debug_fp = open(debug_file, 'w') if debug_level > 0 else None
        self.max_steps = max_steps
        self.steps = 0

    def debug(self, msg: str, level: int = 1):
        if self.debug_level >= level and self.debug_fp:
            self.debug_fp.write(msg + '\n')
            self.debug_fp.flush()

    def close(self):
        if self.debug_fp:
            self.debug_fp.close()
            self.debug_fp = None

    def run(self, program: Program):
        self.steps = 0
        self.interpret(program.body)

    def interpret(self, statements: List[Stmt]):
        """Run top-level statements; a stray signal ends the unit silently."""
        try:
            for stmt in statements:
                if isinstance(self.execute(stmt), Signal):
                    break
        except RecursionError:
            self.environment = self.global_env
            raise FoxRuntimeError(None, "Maximum recursion depth exceeded.")

    def execute_block(self, statements: List[Stmt], env: Environment) -> Optional[Signal]:
        previous = self.environment
        self.environment = env
        try:
            for stmt in statements:
                signal = self.execute(stmt)
                if signal is not None:
                    return signal
            return None
        finally:
            self.environment = previous

    # Statements

    def execute(self, stmt: Stmt) -> Optional[Signal]:
        self.steps += 1
        if self.max_steps is not None and self.steps > self.max_steps:
            raise FoxRuntimeError(stmt.token, "Execution step limit exceeded.")
        self.debug(f"[{stmt.token.line}] {type(stmt).__name__}", 4)

        if isinstance(stmt, ExpressionStmt):
            self.evaluate(stmt.expression)
            return None
        if isinstance(stmt, Print):
            for expr in stmt.expressions:
                print(to_string(self.evaluate(expr)))
            return None
        if isinstance(stmt, SimpleAssignment):
            self.assign_target(stmt.target, self.evaluate(stmt.value))
            return None
        if isinstance(stmt, ComplexAssignment):
            current = self.evaluate(stmt.target)
            value = self.evaluate(stmt.value)
            self.assign_target(stmt.target, self.arithmetic(stmt.token, current, value))
            return None
        if isinstance(stmt, MultipleAssignment):
            self.multiple_assignment(stmt.targets, stmt.values)
            return None
        if isinstance(stmt, VarDeclaration):
            self.declare_variables(stmt)
            return None
        if isinstance(stmt, Const):
            value = self.evaluate(stmt.value)
            self.environment.define(stmt.name, value, constant=True)
            self.debug(f"const {stmt.name} = {to_string(value)}", 2)
            return None
        if isinstance(stmt, Block):
            return self.execute_block(stmt.statements, Environment(self.environment))
        if isinstance(stmt, If):
            if is_truthy(self.evaluate(stmt.condition)):
                return self.execute(stmt.then_branch)
            if stmt.else_branch is not None:
                return self.execute(stmt.else_branch)
            return None
        if isinstance(stmt, DoCase):
            for branch in stmt.branches:
                if any(is_truthy(self.evaluate(c)) for c in branch.conditions):
                    return self.execute(branch.body)
            if stmt.otherwise is not None:
                return self.execute(stmt.otherwise)
            return None
        if isinstance(stmt, DoWhile):
            while is_truthy(self.evaluate(stmt.condition)):
                signal = self.execute(stmt.body)
                if isinstance(signal, ExitSignal):
                    break
                if isinstance(signal, ReturnSignal):
                    return signal
            return None
        if isinstance(stmt, Do):
            while True:
                signal = self.execute(stmt.body)
                if isinstance(signal, ExitSignal):
                    break
                if isinstance(signal, ReturnSignal):
                    return signal
                if not is_truthy(self.evaluate(stmt.condition)):
                    break
            return None
        if isinstance(stmt, For):
            return self.execute_for(stmt)
        if isinstance(stmt, Exit):
            return EXIT
        if isinstance(stmt, Loop):
            return LOOP
        if isinstance(stmt, Return):
            values = [self.evaluate(v) for v in stmt.values]
            if not values:
                return ReturnSignal(None)
            if len(values) == 1:
                return ReturnSignal(values[0])
            return ReturnSignal(tuple(values))
        if isinstance(stmt, Function):
            self.environment.define(stmt.name, FunctionValue(stmt, self.environment), constant=True)
            self.debug(f"function {stmt.name}({len(stmt.params)} params)", 2)
            return None
        if isinstance(stmt, Class):
            self.declare_class(stmt)
            return None
        if isinstance(stmt, Module):
            module_env = Environment(self.environment)
            self.execute_block(stmt.body, module_env)
            self.environment.define(stmt.name, module_env, constant=True)
            self.debug(f"module {stmt.name}", 2)
            return None
        if isinstance(stmt, Release):
            for target in stmt.targets:
                self.environment.release(target.token)
            return None
        if isinstance(stmt, Defer):
            # defer blocks only run as part of a function return
            self.debug(f"[{stmt.token.line}] defer outside of a function ignored", 1)
            return None
        raise FoxRuntimeError(stmt.token, f"Unknown statement {type(stmt).__name__}")

    def execute_for(self, stmt: For) -> Optional[Signal]:
        name = stmt.variable.token
        for_env = Environment(self.environment)
        start = self.evaluate(stmt.start)
        for_env.define(name, start)
        end = self.evaluate(stmt.end)
        if not is_number(start) or not is_number(end):
            raise FoxRuntimeError(stmt.token, "Incompatible types in 'FOR' statement.")
        step = 1.0
        if stmt.step is not None:
            step = self.evaluate(stmt.step)
            if not is_number(step):
                raise FoxRuntimeError(stmt.token, "The STEP value must be a number.")

        def finished(current: float) -> bool:
            return current > end if step > 0 else current < end if step < 0 else False

        if finished(start):
            return None
        while True:
            signal = self.execute_block(stmt.body.statements, for_env)
            if isinstance(signal, ExitSignal):
                break
            if isinstance(signal, ReturnSignal):
                return signal
            current = for_env.lookup(name)
            if not is_number(current):
                raise FoxRuntimeError(name, "Incompatible types in 'FOR' statement.")
            current += step
            for_env.assign(name, current)
            if finished(current):
                break
        return None

    def declare_variables(self, stmt: VarDeclaration):
        target = self.global_env if stmt.scope == 'public' else self.environment
        if stmt.values is not None:
            targets = [Identifier(d.name) for d in stmt.declarators]
            self.multiple_assignment(targets, stmt.values, target)
            return
        for declarator in stmt.declarators:
            if declarator.initializer is not None:
                value = self.evaluate(declarator.initializer)
            elif declarator.type_name is not None:
                value = TYPE_DEFAULTS.get(str(declarator.type_name).lower())
            else:
                value = None
            target.define(declarator.name, value)

    def declare_class(self, stmt: Class):
        superclass = None
        if stmt.superclass is not None:
            superclass = self.evaluate(stmt.superclass)
            if not isinstance(superclass, ClassValue):
                raise FoxRuntimeError(stmt.superclass.token, "Superclass must be a class.")
        self.environment.define(stmt.name, ClassValue(stmt, superclass, self.environment), constant=True)
        self.debug(f"class {stmt.name}", 2)

    def multiple_assignment(self, targets: List[Expr], value_exprs: List[Expr],
                            define_in: Optional[Environment] = None):
        values: List[Any] = []
        for expr in value_exprs:
            result = self.evaluate(expr)
            if isinstance(result, tuple):
                values.extend(result)
            else:
                values.append(result)
        token = targets[0].token
        if len(targets) < len(values):
            raise FoxRuntimeError(token, f"Wrong number of variables, expected: {len(values)}, got: {len(targets)}")
        if len(targets) > len(values):
            raise FoxRuntimeError(token, f"Wrong number of values, expected: {len(targets)}, got: {len(values)}")
        for target, value in zip(targets, values):
            if isinstance(target, Identifier) and target.name == '_':
                continue
            if define_in is not None:
                define_in.define(target.token, value)
            else:
                self.assign_target(target, value)

    def assign_target(self, target: Expr, value: Any):
        if isinstance(target, Identifier):
            self.environment.assign(target.token, value)
            return
        if isinstance(target, Member):
            obj = self.evaluate(target.obj)
            if not target.computed:
                if isinstance(obj, Environment):
                    obj.assign(target.prop.token, value)
                    return
            else:
                key = self.evaluate(target.prop)
                if isinstance(obj, Environment) and isinstance(key, str):
                    obj.assign(key, value, token=target.token)
                    return
                if isinstance(obj, ArrayVal):
                    obj.elements[obj.check_index(target.token, key)] = value
                    return
        raise FoxRuntimeError(target.token, "Invalid assignment target.")

    # Expressions

    def evaluate(self, expr: Expr) -> Any:
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, Identifier):
            return self.environment.lookup(expr.token)
        if isinstance(expr, Logical):
            left = self.evaluate(expr.left)
            if expr.token.kind is Kind.LOGICAL_OR:
                return left if is_truthy(left) else self.evaluate(expr.right)
            return left if not is_truthy(left) else self.evaluate(expr.right)
        if isinstance(expr, Binary):
            left = self.evaluate(expr.left)
            right = self.evaluate(expr.right)
            return self.binary(expr.token, left, right)
        if isinstance(expr, Unary):
            operand = self.evaluate(expr.operand)
            category = expr.token.category
            if category is Category.BANG:
                return not is_truthy(operand)
            if not is_number(operand):
                raise FoxRuntimeError(expr.token, "Operand must be a number.")
            return -operand if category is Category.MINUS else operand
        if isinstance(expr, Member):
            return self.evaluate_member(expr)
        if isinstance(expr, Call):
            return self.evaluate_call(expr)
        if isinstance(expr, CreateObject):
            prototype = self.global_env.lookup(expr.name.literal, token=expr.name)
            if isinstance(prototype, ArrayVal):
                prototype.elements.extend(self.evaluate(a) for a in expr.arguments)
            return prototype
        if isinstance(expr, Conditional):
            if is_truthy(self.evaluate(expr.condition)):
                return self.evaluate(expr.consequence)
            if expr.alternative is not None:
                return self.evaluate(expr.alternative)
            return None
        if isinstance(expr, NamedArgument):
            return self.evaluate(expr.value)
        if isinstance(expr, (This, Macro)):
            return None
        raise FoxRuntimeError(expr.token, f"Unknown expression {type(expr).__name__}")

    def evaluate_member(self, expr: Member) -> Any:
        obj = self.evaluate(expr.obj)
        lookup = getattr(obj, 'lookup', None)
        if not expr.computed:
            if lookup is not None:
                return lookup(expr.prop.token)
            return obj
        key = self.evaluate(expr.prop)
        if lookup is not None and isinstance(key, str):
            return lookup(key, token=expr.token)
        if isinstance(obj, ArrayVal) and is_number(key):
            return obj.elements[obj.check_index(expr.token, key)]
        return obj

    def evaluate_call(self, expr: Call) -> Any:
        callee = self.evaluate(expr.callee)
        if not isinstance(callee, CallableValue):
            raise FoxRuntimeError(expr.token, f"Not a function: {to_string(callee)}")
        if callee.validate_arguments() and len(expr.arguments) != callee.arity():
            raise FoxRuntimeError(expr.token, f"Wrong number of arguments, expected: {callee.arity()}, got: {len(expr.arguments)}")
        arguments: List[ArgValue] = []
        for arg in expr.arguments:
            if isinstance(arg.value, Identifier) and arg.value.name == '_':
                value = None
            else:
                value = self.evaluate(arg.value)
            arguments.append(ArgValue(arg.token, arg.alias, value))
        self.debug(f"call {to_string(callee)} with {len(arguments)} arguments", 3)
        return callee.call(self, arguments, expr.callee)

    def call_function(self, function: FunctionValue, arguments: List[ArgValue]) -> Any:
        declaration = function.declaration
        env = Environment(function.closure)
        previous = self.environment
        self.environment = env
        try:
            for param in declaration.params:
                default = self.evaluate(param.default) if param.default is not None else None
                env.define(param.name, default)
        finally:
            self.environment = previous
        for position, arg in enumerate(arguments):
            if arg.name is None:
                if position < len(declaration.params) and arg.value is not None:
                    env.assign(declaration.params[position].name, arg.value)
                continue
            param = self.find_parameter(declaration, arg.name)
            if param is None:
                raise FoxRuntimeError(arg.token, f"Alias not found: `{arg.name}`")
            env.assign(param.name, arg.value)
        signal = self.execute_block(declaration.body, env)
        if not isinstance(signal, ReturnSignal):
            return None
        for defer in reversed(declaration.defers):
            self.execute_block(defer.body.statements, env)
        return signal.value

    @staticmethod
    def find_parameter(declaration: Function, name: str):
        key = name.lower()
        for param in declaration.params:
            if str(param.name).lower() == key or (param.alias or '').lower() == key:
                return param
        return None

    def binary(self, token: Token, left: Any, right: Any) -> Any:
        category = token.category
        if category is Category.EQUAL:
            return is_equal(left, right)
        if category is Category.NOT_EQ:
            return not is_equal(left, right)
        if category in (Category.GREATER, Category.GREATER_EQ, Category.LESS, Category.LESS_EQ):
            if not is_number(left) or not is_number(right):
                raise FoxRuntimeError(token, "Operands must be a number.")
            if category is Category.GREATER:
                return left > right
            if category is Category.GREATER_EQ:
                return left >= right
            if category is Category.LESS:
                return left < right
            return left <= right
        return self.arithmetic(token, left, right)

    def arithmetic(self, token: Token, left: Any, right: Any) -> Any:
        category = token.category
        if category is Category.PLUS:
            if isinstance(left, str):
                return left + to_string(right)
            if is_number(left):
                if is_number(right):
                    return left + right
                coerced = parse_decimal(number_text(right))
                if coerced is None:
                    return left
                if isinstance(right, str):
                    return to_string(left) + right
                return left + coerced
            raise FoxRuntimeError(token, "Incompatible types.")
        if not is_number(left) or not is_number(right):
            raise FoxRuntimeError(token, "Operands must be a number.")
        if category is Category.MINUS:
            return left - right
        if category is Category.MUL:
            return left * right
        if category is Category.DIV:
            if right == 0:
                raise FoxRuntimeError(token, "Division by zero.")
            return left / right
        raise FoxRuntimeError(token, f"Unknown operator `{token}`.")


def run_program(source: str, debug_level: int = 0, resolver: Optional[Resolver] = None) -> Interpreter:
    """Parse and run ``source``; returns the interpreter so callers can inspect globals."""
    program = parse_program(source, resolver)
    interpreter = Interpreter(debug_level=debug_level)
    interpreter.run(program)
    return interpreter
