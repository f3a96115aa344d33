"""Recursive-descent parser for the FoxDream language.

Every compound statement ends with its own terminating keyword followed
by a statement separator.  A syntax error does not stop the parser: it
records the error, skips ahead to the next statement boundary and
carries on, so one pass can report several independent mistakes.
"""

from __future__ import annotations

from typing import Callable, FrozenSet, List, Optional

from .ast import (
    Binary, Block, Call, CaseBranch, Class, Conditional, Const, CreateObject,
    Declarator, Defer, Do, DoCase, DoWhile, Exit, Expr, ExpressionStmt, For,
    Function, Identifier, If, Literal, Logical, Loop, Member, Module,
    MultipleAssignment, NamedArgument, Parameter, Print, Program, Release,
    Return, SimpleAssignment, ComplexAssignment, Stmt, This, Unary,
    VarDeclaration,
)
from .errors import ErrorVal, FoxSyntaxError
from .scanner import Category, Kind, Scanner, Token

Resolver = Callable[[str], Optional[str]]

# Tokens that may start a new statement; used to resynchronize after errors.
STATEMENT_STARTS = {
    Kind.CLASS, Kind.FUNCTION, Kind.LOCAL, Kind.PUBLIC, Kind.FOR,
    Kind.IF, Kind.WHILE, Kind.PRINT, Kind.RETURN,
}


class ParseError(Exception):
    """Raised inside the parser to unwind to the nearest declaration."""


class Parser:
    def __init__(self, source: str, resolver: Optional[Resolver] = None,
                 first_line: int = 1, importing: FrozenSet[str] = frozenset()):
        scanner = Scanner(source, first_line)
        self.tokens: List[Token] = scanner.scan_tokens()
        self.errors: List[ErrorVal] = list(scanner.errors)
        self.resolver = resolver
        self.importing = importing
        self.current = 0

    def parse(self) -> List[Stmt]:
        statements: List[Stmt] = []
        while not self.is_at_end():
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)
        return statements

    # Token helpers

    def peek(self) -> Token:
        return self.tokens[self.current]

    def peek_next(self) -> Token:
        if self.current + 1 < len(self.tokens):
            return self.tokens[self.current + 1]
        return self.tokens[-1]

    def previous(self) -> Token:
        return self.tokens[self.current - 1]

    def is_at_end(self) -> bool:
        return self.peek().kind is Kind.EOF

    def check(self, *kinds: Kind) -> bool:
        return not self.is_at_end() and self.peek().kind in kinds

    def advance(self) -> Token:
        if not self.is_at_end():
            self.current += 1
        return self.previous()

    def match(self, *kinds: Kind) -> bool:
        if self.check(*kinds):
            self.advance()
            return True
        return False

    def consume(self, kind: Kind, message: str) -> Token:
        if self.check(kind):
            return self.advance()
        raise self.error(self.peek(), message)

    def end_of_statement(self, what: str) -> Token:
        if self.peek().kind is Kind.SEPARATOR:
            return self.advance()
        raise self.error(self.peek(), f"Expect new line after {what}.")

    def error(self, token: Token, message: str) -> ParseError:
        self.errors.append(ErrorVal.at(token, 'SyntaxError', message))
        return ParseError(message)

    def synchronize(self):
        self.advance()
        while not self.is_at_end():
            if self.previous().kind is Kind.SEPARATOR:
                return
            if self.peek().kind in STATEMENT_STARTS:
                return
            self.advance()

    def block_until(self, opener: Token, *terminators: Kind) -> Block:
        """Collect declarations until one of ``terminators`` is the next token."""
        statements: List[Stmt] = []
        while not self.check(*terminators):
            if self.is_at_end():
                expected = ' or '.join(f"`{k.name.lower()}`" for k in terminators)
                raise self.error(self.peek(), f"Expect {expected} to close `{opener}`.")
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)
        return Block(opener, statements)

    # Declarations

    def declaration(self) -> Optional[Stmt]:
        try:
            if self.match(Kind.LOCAL):
                return self.var_declaration('local')
            if self.match(Kind.PUBLIC):
                return self.var_declaration('public')
            if self.match(Kind.CONST):
                return self.const_declaration()
            if self.match(Kind.FUNCTION):
                return self.function_declaration()
            if self.match(Kind.MODULE):
                return self.module_declaration()
            if self.match(Kind.CLASS):
                return self.class_declaration()
            return self.statement()
        except ParseError:
            self.synchronize()
            return None

    def var_declaration(self, scope: str) -> VarDeclaration:
        keyword = self.previous()
        if self.match(Kind.LPAREN):
            declarators = [self.declarator(allow_initializer=False)]
            while self.match(Kind.COMMA):
                declarators.append(self.declarator(allow_initializer=False))
            self.consume(Kind.RPAREN, "Expect `)` after variable list.")
            self.consume(Kind.SIMPLE_ASSIGN, "Expect `=` after variable list.")
            values = self.expression_list()
            self.end_of_statement('variable declaration')
            return VarDeclaration(keyword, scope, declarators, values)
        declarators = [self.declarator()]
        while self.match(Kind.COMMA):
            declarators.append(self.declarator())
        self.end_of_statement('variable declaration')
        return VarDeclaration(keyword, scope, declarators)

    def declarator(self, allow_initializer: bool = True) -> Declarator:
        name = self.consume(Kind.IDENTIFIER, "Expect variable name.")
        type_name = None
        if self.match(Kind.AS):
            type_name = self.consume(Kind.IDENTIFIER, "Expect type name after `as`.")
        initializer = None
        if allow_initializer and self.match(Kind.SIMPLE_ASSIGN):
            initializer = self.conditional_tail(self.expression())
        return Declarator(name, type_name, initializer)

    def const_declaration(self) -> Const:
        keyword = self.previous()
        name = self.consume(Kind.IDENTIFIER, "Expect constant name.")
        self.consume(Kind.SIMPLE_ASSIGN, "Expect `=` after constant name.")
        value = self.conditional_tail(self.expression())
        self.end_of_statement('constant declaration')
        return Const(keyword, name, value)

    def function_declaration(self) -> Function:
        keyword = self.previous()
        name = self.consume(Kind.IDENTIFIER, "Expect function name.")
        params: List[Parameter] = []
        if self.match(Kind.LPAREN):
            if not self.check(Kind.RPAREN):
                params.append(self.parameter())
                while self.match(Kind.COMMA):
                    params.append(self.parameter())
            self.consume(Kind.RPAREN, "Expect `)` after parameters.")
        self.end_of_statement('function name')
        body: List[Stmt] = []
        defers: List[Defer] = []
        while not self.check(Kind.ENDFUNC):
            if self.is_at_end():
                raise self.error(self.peek(), f"Expect `endfunc` to close function `{name}`.")
            stmt = self.declaration()
            if isinstance(stmt, Defer):
                defers.append(stmt)
            elif stmt is not None:
                body.append(stmt)
        self.advance()
        self.end_of_statement('`endfunc`')
        return Function(keyword, name, params, body, defers)

    def parameter(self) -> Parameter:
        name = self.consume(Kind.IDENTIFIER, "Expect parameter name.")
        alias = None
        if self.match(Kind.AS):
            alias = str(self.consume(Kind.IDENTIFIER, "Expect alias name after `as`."))
        default = None
        if self.match(Kind.SIMPLE_ASSIGN):
            default = self.expression()
        return Parameter(name, alias, default)

    def module_declaration(self) -> Module:
        keyword = self.previous()
        name = self.consume(Kind.IDENTIFIER, "Expect module name.")
        self.end_of_statement('module name')
        body = self.block_until(keyword, Kind.ENDMODULE)
        self.advance()
        self.end_of_statement('`endmodule`')
        return Module(keyword, name, body.statements)

    def class_declaration(self) -> Class:
        keyword = self.previous()
        name = self.consume(Kind.IDENTIFIER, "Expect class name.")
        superclass = None
        if self.match(Kind.AS):
            superclass = Identifier(self.consume(Kind.IDENTIFIER, "Expect superclass name after `as`."))
        self.end_of_statement('class name')
        properties: List[Stmt] = []
        methods: List[Function] = []
        while not self.check(Kind.ENDCLASS):
            if self.is_at_end():
                raise self.error(self.peek(), f"Expect `endclass` to close class `{name}`.")
            if self.match(Kind.FUNCTION):
                methods.append(self.function_declaration())
                continue
            member = self.peek()
            stmt = self.statement()
            if not isinstance(stmt, (SimpleAssignment, MultipleAssignment)):
                raise self.error(member, "Only property assignments and methods are allowed inside a class.")
            properties.append(stmt)
        self.advance()
        self.end_of_statement('`endclass`')
        return Class(keyword, name, superclass, properties, methods)

    # Statements

    def statement(self) -> Stmt:
        if self.match(Kind.PRINT, Kind.QUESTION):
            return self.print_statement()
        if self.match(Kind.RETURN):
            return self.return_statement()
        if self.match(Kind.IF):
            return self.if_statement()
        if self.match(Kind.DO):
            return self.do_statement()
        if self.match(Kind.EXIT):
            keyword = self.previous()
            self.end_of_statement('`exit`')
            return Exit(keyword)
        if self.match(Kind.LOOP):
            keyword = self.previous()
            self.end_of_statement('`loop`')
            return Loop(keyword)
        if self.match(Kind.FOR):
            return self.for_statement()
        if self.match(Kind.LPAREN):
            return self.multiple_assignment()
        if self.match(Kind.IMPORT):
            return self.import_statement()
        if self.match(Kind.RELEASE):
            return self.release_statement()
        if self.match(Kind.DEFER):
            return self.defer_statement()
        return self.expression_statement()

    def print_statement(self) -> Print:
        keyword = self.previous()
        if self.match(Kind.LPAREN):
            expressions = self.expression_list()
            self.consume(Kind.RPAREN, "Expect `)` after print arguments.")
        else:
            expressions = self.expression_list()
        self.end_of_statement('print statement')
        return Print(keyword, expressions)

    def return_statement(self) -> Return:
        keyword = self.previous()
        values: List[Expr] = []
        if not self.check(Kind.SEPARATOR):
            values.append(self.conditional_tail(self.expression()))
            while self.match(Kind.COMMA):
                values.append(self.conditional_tail(self.expression()))
        self.end_of_statement('return value')
        return Return(keyword, values)

    def if_statement(self) -> If:
        keyword = self.previous()
        condition = self.expression()
        self.match(Kind.THEN)
        self.end_of_statement('if condition')
        then_branch = self.block_until(keyword, Kind.ELSE, Kind.ENDIF)
        else_branch = None
        if self.match(Kind.ELSE):
            self.end_of_statement('`else`')
            else_branch = self.block_until(keyword, Kind.ENDIF)
        self.advance()
        self.end_of_statement('`endif`')
        return If(keyword, condition, then_branch, else_branch)

    def do_statement(self) -> Stmt:
        keyword = self.previous()
        if self.match(Kind.CASE):
            return self.do_case(keyword)
        if self.match(Kind.WHILE):
            condition = self.expression()
            self.end_of_statement('while condition')
            body = self.block_until(keyword, Kind.ENDDO)
            self.advance()
            self.end_of_statement('`enddo`')
            return DoWhile(keyword, condition, body)
        self.end_of_statement('`do`')
        statements: List[Stmt] = []
        while not self.match(Kind.WHILE):
            if self.is_at_end():
                raise self.error(self.peek(), "Expect `while` to close `do` block.")
            statements.append(self.statement())
        condition = self.expression()
        self.end_of_statement('while condition')
        return Do(keyword, Block(keyword, statements), condition)

    def do_case(self, keyword: Token) -> DoCase:
        self.end_of_statement('`do case`')
        branches: List[CaseBranch] = []
        while self.match(Kind.CASE):
            conditions = self.expression_list()
            self.end_of_statement('case condition')
            body = self.block_until(keyword, Kind.CASE, Kind.OTHERWISE, Kind.ENDCASE)
            branches.append(CaseBranch(conditions, body))
        otherwise = None
        if self.match(Kind.OTHERWISE):
            self.end_of_statement('`otherwise`')
            otherwise = self.block_until(keyword, Kind.ENDCASE)
        self.consume(Kind.ENDCASE, "Expect `endcase` to close `do case`.")
        self.end_of_statement('`endcase`')
        return DoCase(keyword, branches, otherwise)

    def for_statement(self) -> For:
        keyword = self.previous()
        variable = Identifier(self.consume(Kind.IDENTIFIER, "Expect loop variable after `for`."))
        self.consume(Kind.SIMPLE_ASSIGN, "Expect `=` after loop variable.")
        start = self.expression()
        self.consume(Kind.TO, "Expect `to` after start value.")
        end = self.expression()
        step = None
        if self.match(Kind.STEP):
            step = self.expression()
        self.end_of_statement('for clause')
        body = self.block_until(keyword, Kind.ENDFOR)
        self.advance()
        self.end_of_statement('`endfor`')
        return For(keyword, variable, start, end, step, body)

    def multiple_assignment(self) -> MultipleAssignment:
        paren = self.previous()
        targets = [self.assignment_target()]
        while self.match(Kind.COMMA):
            targets.append(self.assignment_target())
        self.consume(Kind.RPAREN, "Expect `)` after assignment targets.")
        self.consume(Kind.SIMPLE_ASSIGN, "Expect `=` after assignment targets.")
        values = self.expression_list()
        self.end_of_statement('multiple assignment')
        return MultipleAssignment(paren, targets, values)

    def assignment_target(self) -> Expr:
        token = self.peek()
        target = self.expression()
        if not isinstance(target, (Identifier, Member)):
            raise self.error(token, "Invalid assignment target.")
        return target

    def import_statement(self) -> Optional[Stmt]:
        keyword = self.previous()
        name = self.consume(Kind.IDENTIFIER, "Expect module name after `import`.")
        self.end_of_statement('import')
        key = str(name).lower()
        if key in self.importing:
            raise self.error(name, f"Circular import of module `{name}`.")
        source = self.resolver(str(name)) if self.resolver is not None else None
        if source is None:
            raise self.error(name, "Invalid module path or file name.")
        # the wrapper line is numbered 0 so the imported text keeps its own line numbers
        nested = Parser(f"module {name}\n{source}\nendmodule\n", self.resolver,
                        first_line=0, importing=self.importing | {key})
        statements = nested.parse()
        self.errors.extend(nested.errors)
        if not statements:
            raise self.error(keyword, f"Module `{name}` could not be imported.")
        return statements[0]

    def release_statement(self) -> Release:
        keyword = self.previous()
        targets: List[Identifier] = []
        while True:
            token = self.peek()
            target = self.expression()
            if not isinstance(target, Identifier):
                raise self.error(token, "Only variables can be released.")
            targets.append(target)
            if not self.match(Kind.COMMA):
                break
        self.end_of_statement('release')
        return Release(keyword, targets)

    def defer_statement(self) -> Defer:
        keyword = self.previous()
        self.end_of_statement('`defer`')
        body = self.block_until(keyword, Kind.ENDDEFER)
        self.advance()
        self.end_of_statement('`enddefer`')
        return Defer(keyword, body)

    def expression_statement(self) -> Stmt:
        start = self.peek()
        expr = self.expression()
        if self.match(Kind.SIMPLE_ASSIGN, Kind.COMPLEX_ASSIGN):
            operator = self.previous()
            if not isinstance(expr, (Identifier, Member)):
                raise self.error(start, "Invalid assignment target.")
            value = self.conditional_tail(self.expression())
            self.end_of_statement('assignment')
            if operator.kind is Kind.SIMPLE_ASSIGN:
                return SimpleAssignment(operator, expr, value)
            return ComplexAssignment(operator, expr, value)
        self.end_of_statement('expression')
        return ExpressionStmt(start, expr)

    # Expressions

    def expression_list(self) -> List[Expr]:
        expressions = [self.expression()]
        while self.match(Kind.COMMA):
            expressions.append(self.expression())
        return expressions

    def conditional_tail(self, expr: Expr) -> Expr:
        """Parse an optional ``if cond [else alt]`` following ``expr``."""
        if not self.match(Kind.IF):
            return expr
        keyword = self.previous()
        condition = self.expression()
        alternative = None
        if self.match(Kind.ELSE):
            alternative = self.expression()
        return Conditional(keyword, condition, expr, alternative)

    def expression(self) -> Expr:
        return self.logical_or()

    def logical_or(self) -> Expr:
        expr = self.logical_and()
        while self.match(Kind.LOGICAL_OR):
            operator = self.previous()
            expr = Logical(operator, expr, self.logical_and())
        return expr

    def logical_and(self) -> Expr:
        expr = self.equality()
        while self.match(Kind.LOGICAL_AND):
            operator = self.previous()
            expr = Logical(operator, expr, self.equality())
        return expr

    def equality(self) -> Expr:
        expr = self.comparison()
        while self.match(Kind.EQUALITY_OPERATOR):
            operator = self.previous()
            expr = Binary(operator, expr, self.comparison())
        return expr

    def comparison(self) -> Expr:
        expr = self.term()
        while self.match(Kind.RELATIONAL_OPERATOR):
            operator = self.previous()
            expr = Binary(operator, expr, self.term())
        return expr

    def term(self) -> Expr:
        expr = self.factor()
        while self.match(Kind.TERM_OPERATOR):
            operator = self.previous()
            expr = Binary(operator, expr, self.factor())
        return expr

    def factor(self) -> Expr:
        expr = self.unary()
        while self.match(Kind.FACTOR_OPERATOR):
            operator = self.previous()
            expr = Binary(operator, expr, self.unary())
        return expr

    def unary(self) -> Expr:
        if self.match(Kind.LOGICAL_NOT, Kind.TERM_OPERATOR):
            operator = self.previous()
            return Unary(operator, self.unary())
        return self.call()

    def call(self) -> Expr:
        expr = self.primary()
        while True:
            if self.match(Kind.DOT):
                dot = self.previous()
                name = self.peek()
                if name.category not in (Category.IDENTIFIER, Category.KEYWORD):
                    raise self.error(name, "Expect property name after `.`.")
                self.advance()
                expr = Member(dot, expr, Identifier(name))
            elif self.match(Kind.LBRACKET):
                bracket = self.previous()
                index = self.expression()
                self.consume(Kind.RBRACKET, "Expect `]` after index.")
                expr = Member(bracket, expr, index, computed=True)
            elif self.match(Kind.LPAREN):
                paren = self.previous()
                expr = Call(paren, expr, self.arguments())
            else:
                return expr

    def arguments(self) -> List[NamedArgument]:
        arguments: List[NamedArgument] = []
        if not self.check(Kind.RPAREN):
            arguments.append(self.argument())
            while self.match(Kind.COMMA):
                arguments.append(self.argument())
        self.consume(Kind.RPAREN, "Expect `)` after arguments.")
        return arguments

    def argument(self) -> NamedArgument:
        token = self.peek()
        if token.kind is Kind.IDENTIFIER and self.peek_next().kind is Kind.COLON:
            self.advance()
            self.advance()
            return NamedArgument(token, str(token), self.expression())
        return NamedArgument(token, None, self.expression())

    def primary(self) -> Expr:
        token = self.peek()
        if token.category is Category.LITERAL:
            self.advance()
            return Literal(token, token.literal)
        if self.match(Kind.IDENTIFIER):
            return Identifier(token)
        if self.match(Kind.THIS):
            return This(token)
        if self.match(Kind.CREATEOBJECT):
            self.consume(Kind.LPAREN, "Expect `(` after `createobject`.")
            name = self.consume(Kind.STRING, "Expect prototype name string.")
            arguments: List[Expr] = []
            while self.match(Kind.COMMA):
                arguments.append(self.expression())
            self.consume(Kind.RPAREN, "Expect `)` after createobject arguments.")
            return CreateObject(token, name, arguments)
        if self.match(Kind.LPAREN):
            expr = self.expression()
            self.consume(Kind.RPAREN, "Expect `)` after expression.")
            return expr
        if token.kind is Kind.EOF:
            raise self.error(token, "Unexpected end of input.")
        raise self.error(token, "Expect expression.")


def parse(source: str, resolver: Optional[Resolver] = None) -> List[Stmt]:
    """Parse ``source`` into its top-level statements.

    Raises FoxSyntaxError carrying every error found if the source is not
    valid; nothing is returned in that case.
    """
    parser = Parser(source, resolver)
    try:
        statements = parser.parse()
    except RecursionError:
        raise FoxSyntaxError([ErrorVal('SyntaxError', "Maximum nesting depth exceeded.")])
    if parser.errors:
        raise FoxSyntaxError(parser.errors)
    return statements


def parse_program(source: str, resolver: Optional[Resolver] = None) -> Program:
    return Program(parse(source, resolver))
