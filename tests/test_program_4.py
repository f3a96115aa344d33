from pathlib import Path

from foxdream.interpreter import Interpreter
from foxdream.parser import parse_program

EXAMPLES = Path(__file__).resolve().parent.parent / 'examples'


def test_program_4(capsys):
    source = (EXAMPLES / 'program_4.prg').read_text(encoding='utf-8')
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out = capsys.readouterr().out.strip()
    assert out == 'c\n2\nw1 w3 w4'
