"""
Lexer: conversion of template source text to a flat list of tokens.

@see grammar.py for the list of token kinds.
"""

import ast
from collections import namedtuple

from parsimonious.grammar import Grammar as Parsimonious
from parsimonious.exceptions import ParseError as ParsimoniousError

from xmlfmt.config import FILENAME
from xmlfmt.errors import LexError
from xmlfmt.grammar import grammar, NAME_StartChar, NAME_Char


OPENING = {'(': ')', '{': '}', '[': ']'}


#####################################################################################################################################################
#####
#####  GRAMMAR
#####

class Grammar(Parsimonious):

    default = None      # class-level default instance, shared by all lexers

    def __init__(self):
        placeholders = {'NAME_START': NAME_StartChar, 'NAME_CHAR': NAME_Char}
        super(Grammar, self).__init__(grammar % placeholders)

Grammar.default = Grammar()


#####################################################################################################################################################
#####
#####  TOKENS
#####

class Token(namedtuple('Token', 'kind text start end')):
    """
    A token of template source. `kind` is the name of the grammar rule that matched the token;
    `start` and `end` are absolute offsets of the token in the template source, even if the token was obtained
    from tokenization of a group's interior.
    """
    __slots__ = ()

    @property
    def inner(self):
        """(start, end) offsets of the interior of a group token: (...) {...} [...]"""
        return self.start + 1, self.end - 1

    def __str__(self): return self.text


def literal_value(source, token, filename = None):
    """Decode a `string` token into the text it represents, with escape sequences resolved like in Python."""
    try:
        value = ast.literal_eval(token.text)
    except (SyntaxError, ValueError) as ex:
        raise LexError(f"malformed quoted literal ({ex})", source, token.start, filename) from ex
    assert isinstance(value, str)
    return value


#####################################################################################################################################################
#####
#####  LEXER
#####

class Lexer:
    """
    Tokenizer of template source. Can tokenize the whole template, or any region of it (the interior of a group).
    Offsets of returned tokens and positions reported in LexError are always absolute, relative to the beginning of `source`.
    """
    grammar  = None
    filename = None

    def __init__(self, filename = FILENAME):
        self.grammar = Grammar.default
        self.filename = filename

    def tokenize(self, source, start = 0, end = None):
        """Convert source[start:end] to a list of Tokens. Raise LexError if any part of the text can't be tokenized."""
        tree = self._parse('tokens', source, start, end)
        tokens = []

        # tree layout:  ws (token ws)*
        for item in tree.children[1].children:
            node = item.children[0].children[0]             # the specific alternative of <token> that matched
            tokens.append(Token(node.expr_name, node.text, start + node.start, start + node.end))

        return tokens

    def split(self, source, start, end, sep, maxsplit = -1):
        """
        Split source[start:end] at top-level occurrences of the character `sep`, i.e., occurrences that are not
        inside a quoted string nor inside any bracketed group. Return a list of (start, end) pairs of pieces.
        At most `maxsplit` splits are done if maxsplit >= 0.
        """
        tree = self._parse('chunks', source, start, end)
        pieces = []
        left = start

        for chunk in tree.children:
            if chunk.text != sep or maxsplit == 0: continue         # strings & groups are never equal to a 1-char `sep`
            pieces.append((left, start + chunk.start))
            left = start + chunk.end
            maxsplit -= 1

        pieces.append((left, end))
        return pieces

    def segments(self, source, start, end):
        """
        Split raw contents of a doctype or processing instruction into Tokens of two kinds:
        'brace' for {...} expression slots, and 'raw_text' for everything else.
        """
        tree = self._parse('raw', source, start, end)
        segments = []
        for item in tree.children:
            node = item.children[0]
            segments.append(Token(node.expr_name, node.text, start + node.start, start + node.end))
        return segments

    def _parse(self, rule, source, start, end):
        if end is None: end = len(source)
        try:
            return self.grammar[rule].parse(source[start:end])
        except ParsimoniousError as ex:
            pos = start + ex.pos
            raise LexError(self._diagnose(source, pos, end), source, pos, self.filename) from None

    @staticmethod
    def _diagnose(source, pos, end):
        """Name the reason why tokenization stopped at `pos`."""
        if pos >= end: return "unexpected end of template"
        char = source[pos]

        if source.startswith('</', pos):
            return "illegal closing tag, only a tag name is allowed between '</' and '>'"
        if source.startswith('<?', pos):
            return "unterminated processing instruction, missing '?>'"
        if source.startswith('<!', pos):
            return "unterminated declaration, missing '>'"
        if char in '"\'':
            return "unterminated quoted literal"
        if char == '{':
            return "unterminated expression slot, missing '}'"
        if char in OPENING:
            return f"unterminated group, missing '{OPENING[char]}'"

        return f"unexpected character {char!r}"


def tokenize(source, filename = FILENAME):
    """Tokenize the entire `source` with a default Lexer."""
    return Lexer(filename).tokenize(source)
