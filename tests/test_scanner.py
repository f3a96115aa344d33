import lark
import pytest

from foxdream.errors import FoxSyntaxError
from foxdream.scanner import Category, Kind, Scanner, scan


def kinds(source):
    return [t.kind for t in scan(source)]


def test_number_separators_are_stripped():
    tokens = scan('1_000 2_5.5')
    assert tokens[0].literal == 1000.0
    assert tokens[1].literal == 25.5
    assert tokens[0] == '1_000'


def test_blank_lines_collapse_into_one_separator():
    assert kinds('a\n\n\nb') == [Kind.IDENTIFIER, Kind.SEPARATOR, Kind.IDENTIFIER, Kind.SEPARATOR, Kind.EOF]
    assert kinds('a\n\n\nb') == kinds('a\nb')


def test_no_separator_before_first_token():
    assert kinds('\n\n// comment\nx') == [Kind.IDENTIFIER, Kind.SEPARATOR, Kind.EOF]


def test_semicolon_before_newline_separates():
    assert kinds('a;\nb') == [Kind.IDENTIFIER, Kind.SEPARATOR, Kind.IDENTIFIER, Kind.SEPARATOR, Kind.EOF]
    assert kinds('a ;  \nb') == kinds('a;\nb')


def test_lone_semicolon_is_ignored():
    assert kinds('a; b') == [Kind.IDENTIFIER, Kind.IDENTIFIER, Kind.SEPARATOR, Kind.EOF]


def test_comments_are_discarded():
    source = 'x // trailing\n/* block\ncomment */ y'
    assert kinds(source) == [Kind.IDENTIFIER, Kind.SEPARATOR, Kind.IDENTIFIER, Kind.SEPARATOR, Kind.EOF]


def test_string_escapes():
    assert scan(r'"a\tb\n"')[0].literal == 'a\tb\n'
    assert scan(r"'it\'s'")[0].literal == "it's"
    assert scan(r'"say \"hi\""')[0].literal == 'say "hi"'


def test_backtick_strings_are_raw():
    assert scan(r'`a\nb`')[0].literal == 'a\\nb'


def test_literal_keywords_resolve_at_scan_time():
    tokens = scan('.t. .F. true false .null. null')
    assert [t.literal for t in tokens[:6]] == [True, False, True, False, None, None]
    assert all(t.category is Category.LITERAL for t in tokens[:6])


def test_keywords_are_case_insensitive():
    assert kinds('LOCAL x')[0] is Kind.LOCAL
    assert kinds('EndFunc')[0] is Kind.ENDFUNC


def test_keyword_prefix_stays_identifier():
    assert kinds('trueish iffy android')[:3] == [Kind.IDENTIFIER] * 3


def test_logical_operators():
    assert kinds('a .and. b or c')[:5] == [
        Kind.IDENTIFIER, Kind.LOGICAL_AND, Kind.IDENTIFIER, Kind.LOGICAL_OR, Kind.IDENTIFIER]
    assert kinds('!a')[0] is Kind.LOGICAL_NOT


@pytest.mark.parametrize('lexeme, kind, category', [
    ('+', Kind.TERM_OPERATOR, Category.PLUS),
    ('-', Kind.TERM_OPERATOR, Category.MINUS),
    ('*', Kind.FACTOR_OPERATOR, Category.MUL),
    ('/', Kind.FACTOR_OPERATOR, Category.DIV),
    ('+=', Kind.COMPLEX_ASSIGN, Category.PLUS),
    ('/=', Kind.COMPLEX_ASSIGN, Category.DIV),
    ('<=', Kind.RELATIONAL_OPERATOR, Category.LESS_EQ),
    ('>', Kind.RELATIONAL_OPERATOR, Category.GREATER),
    ('==', Kind.EQUALITY_OPERATOR, Category.EQUAL),
    ('!=', Kind.EQUALITY_OPERATOR, Category.NOT_EQ),
    ('!', Kind.LOGICAL_NOT, Category.BANG),
    ('=', Kind.SIMPLE_ASSIGN, Category.ASSIGNMENT),
])
def test_operator_categories(lexeme, kind, category):
    token = scan(lexeme)[0]
    assert token.kind is kind
    assert token.category is category


def test_tokens_are_lark_tokens_with_positions():
    tokens = scan('x\n  yy')
    token = tokens[2]
    assert isinstance(token, lark.Token)
    assert token.type == 'IDENTIFIER'
    assert token == 'yy'
    assert (token.line, token.column) == (2, 3)


def test_unknown_character_is_reported_and_skipped():
    scanner = Scanner('a @ b')
    tokens = scanner.scan_tokens()
    assert [t.kind for t in tokens] == [Kind.IDENTIFIER, Kind.IDENTIFIER, Kind.SEPARATOR, Kind.EOF]
    assert len(scanner.errors) == 1
    assert scanner.errors[0].column == 3
    with pytest.raises(FoxSyntaxError):
        scan('a @ b')


def test_source_ends_with_separator_and_eof():
    tokens = scan('x')
    assert tokens[-1].kind is Kind.EOF
    assert tokens[-2].kind is Kind.SEPARATOR
