"""
xmlfmt: XML-like templates with embedded Python expressions and control flow.

    >>> import xmlfmt
    >>> page = xmlfmt.compile('<p class=["big": big]>"Hello " {name}</p>')
    >>> page.render(name = "World", big = True)
    '<p class="big ">Hello World</p>'
"""

from xmlfmt.errors import TemplateError, LexError, ParseError, RenderError
from xmlfmt.lexer import Lexer, Token, tokenize
from xmlfmt.formatting import format_value
from xmlfmt.structs import StringSink
from xmlfmt.renderer import render, Fragment
from xmlfmt.document import Document
from xmlfmt.parser import Parser, parse, compile
