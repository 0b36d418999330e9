"""
Parser of xmlfmt templates: conversion of a token list to a Document Tree.

Recursive descent with one token of lookahead. Bracketed groups are single tokens (see grammar.py), which are
tokenized again, or split at top-level separators, when the parser enters their interior. All Python code embedded
in the template (expressions, targets, patterns) is compiled here, so a template that parses successfully
never raises SyntaxError during rendering.
"""

import logging

from xmlfmt.config import FILENAME, EMPTY_LIST, EMPTY_LIST_MODES, CACHE_SIZE
from xmlfmt.errors import ParseError
from xmlfmt.lexer import Lexer, literal_value
from xmlfmt.expressions import Expression, Target, Patterns
from xmlfmt.cache import LRUCache
from xmlfmt.document import Document, Body, Literal, Slot, Static, ConditionalList, Attribute, Element, \
                            Doctype, ProcessingInstruction, Comment, CData, Condition, PatternCondition, If, Match, For, Let

logger = logging.getLogger(__name__)


def trim_spec(spec):
    """
    Remove layout whitespace around a format specifier: trailing whitespace, and leading whitespace
    that contains a line break. A single leading space is kept, because it is the sign flag of format().
    """
    spec = spec.rstrip()
    lead = spec[:len(spec) - len(spec.lstrip())]
    return spec.lstrip() if '\n' in lead else spec


# human-readable names of token kinds, for error messages
DESCRIPTIONS = {
    'comment_open':  "'<!--'",
    'comment_close': "'-->'",
    'cdata_open':    "'<![CDATA['",
    'cdata_close':   "']]>'",
    'slash_gt':      "'/>'",
    'arrow':         "'=>'",
    'eq':            "'='",
    'lt':            "'<'",
    'gt':            "'>'",
    'semi':          "';'",
    'comma':         "','",
    'colon':         "':'",
}


#####################################################################################################################################################
#####
#####  TOKEN STREAM
#####

class Tokens:
    """Cursor over a list of tokens. `end` is the offset in template source where the tokenized region ends."""

    def __init__(self, tokens, end):
        self.tokens = tokens
        self.index = 0
        self.end = end

    def peek(self):
        """Next token without consuming it; None at the end of stream."""
        if self.index < len(self.tokens): return self.tokens[self.index]
        return None

    def next(self):
        token = self.peek()
        if token is not None: self.index += 1
        return token

    def at(self, kind, text = None):
        """True if the next token is of a given `kind` (and has a given `text`)."""
        token = self.peek()
        return token is not None and token.kind == kind and (text is None or token.text == text)

    def __bool__(self): return self.index < len(self.tokens)


#####################################################################################################################################################
#####
#####  PARSER
#####

class Parser:
    """
    Template parser. Configuration options:
    - filename:    name of the template reported in error messages and assigned to compiled Python code
    - empty_list:  'keep' or 'omit'; rendering of a conditional attribute list with no true entries:
                   attr="" or the attribute left out

    A Parser instance keeps the source being parsed in its attributes, so it must not be used by
    multiple threads at once. Module-level parse() and compile() create a new Parser for each call.
    """

    config_default = {
        'filename':     FILENAME,
        'empty_list':   EMPTY_LIST,
    }

    config   = None
    filename = None
    lexer    = None
    source   = None         # template source of the current parse() call

    def __init__(self, **config):
        unknown = set(config) - set(self.config_default)
        if unknown: raise TypeError(f"unknown configuration option(s): {', '.join(sorted(unknown))}")

        self.config = {**self.config_default, **config}
        if self.config['empty_list'] not in EMPTY_LIST_MODES:
            raise ValueError(f"incorrect value of 'empty_list' option ({self.config['empty_list']!r}), must be one of {EMPTY_LIST_MODES}")

        self.filename = self.config['filename']
        self.lexer = Lexer(self.filename)

    def parse(self, source):
        """Compile `source` to a Document. Raise LexError or ParseError on failure; nothing is returned partially."""
        self.source = source
        try:
            toks = Tokens(self.lexer.tokenize(source), len(source))
            nodes = self._parse_nodes(toks)
        finally:
            self.source = None

        tree = Document(Body(nodes, 0), source, self.filename)
        logger.debug("compiled template %s: %s nodes, %s characters of source", self.filename, tree.size(), len(source))
        return tree

    ###  BODY  ###

    def _parse_nodes(self, toks, element = None):
        """
        Parse a sequence of sibling nodes until the end of `toks`, or until a closing tag if inside an `element`
        (given as the token of its opening '<'). The closing tag is left in `toks`.
        """
        nodes = []
        while toks:
            token = toks.peek()
            if token.kind == 'close_tag':
                if element is not None: return nodes
                raise self._error(f"unexpected closing tag {token.text}, there is no open element to be closed", token.start)
            nodes.append(self._parse_node(toks))

        if element is not None:
            raise self._error("unclosed element", element.start, expected = "closing tag")
        return nodes

    def _parse_node(self, toks):
        token = toks.peek()
        kind = token.kind

        if kind == 'lt':
            return self._parse_element(toks)
        if kind == 'doctype':
            toks.next()
            return Doctype(self._parse_raw(token.start + 2, token.end - 1), token.start)
        if kind == 'pi':
            toks.next()
            return ProcessingInstruction(self._parse_raw(token.start + 2, token.end - 2), token.start)
        if kind == 'comment_open':
            return self._parse_wrapped(toks, Comment, 'comment_close')
        if kind == 'cdata_open':
            return self._parse_wrapped(toks, CData, 'cdata_close')
        if kind in ('string', 'number', 'brace'):
            return self._parse_text(toks)

        if kind == 'name':
            word = token.text
            if word == 'if':    return self._parse_if(toks)
            if word == 'match': return self._parse_match(toks)
            if word == 'for':   return self._parse_for(toks)
            if word == 'let':   return self._parse_let(toks)
            if word == 'else':  raise self._error("'else' without a preceding 'if'", token.start)
            raise self._error(f"unexpected name '{word}', text must be written as a quoted literal", token.start)

        raise self._error(f"unexpected {self._describe(token)}", token.start,
                          expected = "element, text literal, {expression} or control-flow statement")

    def _parse_text(self, toks):
        """Literal or Slot node."""
        token = toks.next()
        if token.kind == 'string': return Literal(literal_value(self.source, token, self.filename), token.start)
        if token.kind == 'number': return Literal(token.text, token.start)
        assert token.kind == 'brace'
        return self._parse_slot(token)

    def _parse_block(self, toks, after):
        """A {...} block of nodes following the `after` token of a control-flow statement."""
        token = toks.next()
        if token is None or token.kind != 'brace':
            raise self._error(f"missing block after '{after.text}'", token.start if token else toks.end, expected = "{...}")
        start, end = token.inner
        inner = Tokens(self.lexer.tokenize(self.source, start, end), end)
        return Body(self._parse_nodes(inner), token.start)

    ###  MARKUP  ###

    def _parse_element(self, toks):
        lt = toks.next()
        name = toks.next()
        if name is None or name.kind != 'name':
            raise self._error("missing tag name after '<'", name.start if name else lt.end, expected = "tag name")

        attrs = []
        while True:
            token = toks.peek()
            if token is None:
                raise self._error(f"unterminated tag <{name.text}", lt.start, expected = "'>' or '/>'")
            if token.kind == 'slash_gt':
                toks.next()
                return Element(name.text, attrs, selfclosing = True, pos = lt.start)
            if token.kind == 'gt':
                toks.next()
                break
            if token.kind != 'name':
                raise self._error(f"unexpected {self._describe(token)} in tag <{name.text}", token.start,
                                  expected = "attribute, '>' or '/>'")
            attrs.append(self._parse_attribute(toks))

        children = self._parse_nodes(toks, lt)
        close = toks.next()
        closing = close.text[2:-1].strip()
        return Element(name.text, attrs, False, Body(children, token.end), closing, lt.start)

    def _parse_attribute(self, toks):
        name = toks.next()
        eq = toks.next()
        if eq is None or eq.kind != 'eq':
            raise self._error(f"missing value of attribute '{name.text}'", eq.start if eq else toks.end, expected = "'='")

        token = toks.next()
        kind = token.kind if token else None
        if kind == 'string':
            value = Static(literal_value(self.source, token, self.filename), token.start)
        elif kind == 'number':
            value = Static(token.text, token.start)
        elif kind == 'brace':
            value = self._parse_slot(token)
        elif kind == 'bracket':
            value = self._parse_list(token)
        else:
            raise self._error(f"incorrect value of attribute '{name.text}'", token.start if token else toks.end,
                              expected = "quoted literal, number, {expression} or [conditional list]")

        return Attribute(name.text, value, name.start)

    def _parse_slot(self, token):
        """
        Interior of a {expr;spec} token. The specifier is everything after the first top-level semicolon,
        without trailing whitespace and without leading whitespace that spans a line break.
        """
        start, end = token.inner
        pieces = self.lexer.split(self.source, start, end, ';', maxsplit = 1)
        expr = self._expression(*pieces[0], what = "expression slot")

        spec = None
        if len(pieces) > 1:
            spec_start, spec_end = pieces[1]
            spec = trim_spec(self.source[spec_start:spec_end]) or None

        return Slot(expr, spec, token.start)

    def _parse_list(self, token):
        """Interior of a ["literal": condition, ...] token. A trailing comma is allowed, as well as an empty list []."""
        start, end = token.inner
        pieces = self.lexer.split(self.source, start, end, ',')
        entries = []

        for i, (entry_start, entry_end) in enumerate(pieces):
            if not self.source[entry_start:entry_end].strip():
                if i == len(pieces) - 1: continue
                raise self._error("empty entry in conditional list", entry_start, expected = '"literal": condition')

            parts = self.lexer.split(self.source, entry_start, entry_end, ':', maxsplit = 1)
            if len(parts) < 2:
                raise self._error("missing ':' in conditional list entry", self._lstrip(entry_start, entry_end),
                                  expected = '"literal": condition')

            (lit_start, lit_end), (cond_start, cond_end) = parts
            lit = self.lexer.tokenize(self.source, lit_start, lit_end)
            if len(lit) != 1 or lit[0].kind != 'string':
                raise self._error("conditional list entry must start with a quoted literal", self._lstrip(lit_start, lit_end))

            literal = literal_value(self.source, lit[0], self.filename)
            entries.append((literal, self._expression(cond_start, cond_end, what = "condition")))

        return ConditionalList(entries, self.config['empty_list'] == 'omit', token.start)

    def _parse_raw(self, start, end):
        """Raw contents of a doctype or processing instruction, possibly with {...} slots inside."""
        nodes = []
        for segment in self.lexer.segments(self.source, start, end):
            if segment.kind == 'brace': nodes.append(self._parse_slot(segment))
            else: nodes.append(Literal(segment.text, segment.start))
        return nodes

    def _parse_wrapped(self, toks, cls, close):
        """Comment or CDATA section: literals and slots between an opening and a closing delimiter."""
        opening = toks.next()
        content = []
        while not toks.at(close):
            token = toks.peek()
            if token is None:
                raise self._error(f"unterminated {cls.__name__.lower()}", opening.start, expected = DESCRIPTIONS[close])
            if token.kind not in ('string', 'number', 'brace'):
                raise self._error(f"unexpected {self._describe(token)} inside {cls.__name__.lower()}", token.start,
                                  expected = "text literal or {expression}")
            content.append(self._parse_text(toks))
        toks.next()
        return cls(content, opening.start)

    ###  CONTROL FLOW  ###

    def _parse_if(self, toks):
        keyword = toks.next()
        branches = [self._parse_branch(toks, keyword)]
        elsebody = None

        while toks.at('name', 'else'):
            otherwise = toks.next()
            if toks.at('name', 'if'):
                branches.append(self._parse_branch(toks, toks.next()))
                continue
            elsebody = self._parse_block(toks, otherwise)
            break

        return If(branches, elsebody, keyword.start)

    def _parse_branch(self, toks, keyword):
        """Condition and body of an if-branch:  (cond) {...}  or  let PATTERN = (expr) {...}"""
        if toks.at('name', 'let'):
            let = toks.next()
            start, end, eq = self._collect(toks, let, 'pattern', 'eq')
            patterns = self._patterns([(start, end)], let.start)
            expr = self._parse_group_expr(toks, eq)
            condition = PatternCondition(patterns, expr, let.start)
        else:
            condition = Condition(self._parse_group_expr(toks, keyword))

        body = self._parse_block(toks, keyword)
        return condition, body

    def _parse_match(self, toks):
        keyword = toks.next()
        subject = self._parse_group_expr(toks, keyword)

        block = toks.next()
        if block is None or block.kind != 'brace':
            raise self._error("missing block of match arms", block.start if block else toks.end, expected = "{...}")

        start, end = block.inner
        arms = Tokens(self.lexer.tokenize(self.source, start, end), end)
        regions, bodies = [], []

        while arms:
            first = arms.peek()
            pattern_start, pattern_end, arrow = self._collect(arms, first, 'pattern', 'arrow', including = True)
            regions.append((pattern_start, pattern_end))
            bodies.append(self._parse_block(arms, arrow))
            if arms.at('comma'): arms.next()

        patterns = self._patterns(regions, keyword.start) if regions else None
        return Match(subject, patterns, bodies, keyword.start)

    def _parse_for(self, toks):
        keyword = toks.next()
        start, end, _in = self._collect(toks, keyword, 'loop variable', 'name', 'in')
        target = self._target(start, end)
        iterable = self._parse_group_expr(toks, _in)
        body = self._parse_block(toks, keyword)
        return For(target, iterable, body, keyword.start)

    def _parse_let(self, toks):
        keyword = toks.next()
        start, end, eq = self._collect(toks, keyword, 'assignment target', 'eq')
        target = self._target(start, end)
        expr_start, expr_end, _ = self._collect(toks, eq, 'expression', 'semi')
        expr = self._expression(expr_start, expr_end)
        return Let(target, expr, keyword.start)

    def _parse_group_expr(self, toks, after):
        """(expr) group that must follow the `after` token of a control-flow statement."""
        token = toks.next()
        if token is None or token.kind != 'paren':
            raise self._error(f"'{after.text}' must be followed by an expression in parentheses",
                              token.start if token else toks.end, expected = "parenthesized expression")
        return self._expression(*token.inner)

    ###  UTILITIES  ###

    def _collect(self, toks, after, what, kind, text = None, including = False):
        """
        Consume tokens up to the first token of a given `kind` (and `text`), which is consumed, too.
        Return (start, end, stop) where (start, end) is the region spanned by the tokens before the stop token.
        If `including`, the search starts with the next token, which is `after`, otherwise `after` precedes the tokens.
        """
        start = end = None
        while True:
            token = toks.next()
            if token is None:
                raise self._error(f"unterminated {what}", after.start, expected = self._expected(kind, text))
            if token.kind == kind and (text is None or token.text == text): break
            if start is None: start = token.start
            end = token.end

        if start is None:
            ref = "" if including else f" after '{after.text}'"
            raise self._error(f"missing {what}{ref}", token.start)
        return start, end, token

    def _expression(self, start, end, what = "expression"):
        source = self.source[start:end]
        if not source.strip():
            raise self._error(f"empty {what}", start)
        pos = self._lstrip(start, end)
        try:
            return Expression(source, pos, self.filename)
        except (SyntaxError, ValueError) as ex:
            raise self._error(f"invalid Python {what} ({source.strip()}): {getattr(ex, 'msg', ex)}", pos) from None

    def _target(self, start, end):
        source = self.source[start:end]
        try:
            return Target(source, start, self.filename)
        except (SyntaxError, ValueError) as ex:
            raise self._error(f"invalid assignment target ({source.strip()}): {getattr(ex, 'msg', ex)}", start) from None

    def _patterns(self, regions, pos):
        """Compile patterns of `regions` into a single Patterns object. Each pattern is checked separately first."""
        sources = []
        for start, end in regions:
            source = self.source[start:end]
            try:
                Patterns.check(source, self.filename)
            except (SyntaxError, ValueError) as ex:
                raise self._error(f"invalid pattern ({source.strip()}): {getattr(ex, 'msg', ex)}", start) from None
            sources.append(source)
        try:
            return Patterns(sources, self.filename)
        except SyntaxError as ex:
            raise self._error(f"incorrect list of patterns: {ex.msg}", pos) from None

    def _lstrip(self, start, end):
        """Offset of the first non-whitespace character in source[start:end]."""
        text = self.source[start:end]
        return start + len(text) - len(text.lstrip())

    @staticmethod
    def _describe(token):
        if token.kind in DESCRIPTIONS: return DESCRIPTIONS[token.kind]
        text = token.text if len(token.text) <= 20 else token.text[:17] + '...'
        return f"{token.kind.replace('_', ' ')} '{text}'"

    @staticmethod
    def _expected(kind, text = None):
        return f"'{text}'" if text else DESCRIPTIONS.get(kind, kind)

    def _error(self, msg, pos, expected = None):
        return ParseError(msg, self.source, pos, self.filename, expected)


#####################################################################################################################################################
#####
#####  MODULE-LEVEL API
#####

def parse(source, **config):
    """Compile `source` to a Document with a new Parser configured by `config`."""
    return Parser(**config).parse(source)


_cache = LRUCache(CACHE_SIZE)

def compile(source, **config):
    """
    Like parse(), but the compiled Documents are cached and reused when the same source is compiled again
    with the same configuration. Documents are immutable, so they can be safely shared.
    """
    key = (source, tuple(sorted(config.items())))
    tree = _cache.get(key)
    if tree is not None:
        logger.debug("compile cache hit for %s", config.get('filename', FILENAME))
        return tree

    logger.debug("compile cache miss for %s", config.get('filename', FILENAME))
    tree = parse(source, **config)
    _cache.set(key, tree)
    return tree

compile.cache_clear = _cache.clear
compile.cache = _cache
