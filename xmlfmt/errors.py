"""
Exceptions raised during compilation (lexing, parsing) and rendering of templates.
"""

########################################################################################################################################################

def location(source, pos):
    """Convert an absolute offset in `source` to a pair of 1-based (line, column) numbers."""
    line = source.count('\n', 0, pos) + 1
    column = pos - (source.rfind('\n', 0, pos) + 1) + 1
    return line, column

def fragment(source, pos, length = 20):
    """Piece of `source` starting at `pos`, up to the end of the line, for inclusion in error messages."""
    text = source[pos:pos + length]
    return text.split('\n', 1)[0]


########################################################################################################################################################

class TemplateError(Exception):
    """
    Base class for all errors reported by xmlfmt. When the position of the error in template source is known,
    the message is extended with line & column numbers, and a fragment of the source text at this position.
    """
    msg      = None         # bare error message, without position info
    pos      = None         # absolute offset in template source, or None
    line     = None
    column   = None
    text     = None         # fragment of source at `pos`
    filename = None
    
    def __init__(self, msg, source = None, pos = None, filename = None):
        self.msg = msg
        self.pos = pos
        self.filename = filename
        if source is not None and pos is not None:
            self.line, self.column = location(source, pos)
            self.text = fragment(source, pos)
        super().__init__(self.make_msg(msg))
        
    def make_msg(self, msg):
        if self.line is None: return msg
        if self.filename:
            return msg + " in '%s', line %s, column %s (%s)" % (self.filename, self.line, self.column, self.text)
        else:
            return msg + " at line %s, column %s (%s)" % (self.line, self.column, self.text)


class LexError(TemplateError):
    """Malformed token: unterminated literal or expression group, illegal closing-tag syntax, unknown character."""

class ParseError(TemplateError):
    """
    Grammar violation: unexpected token, missing closing delimiter, unparenthesized control-flow expression,
    or a Python expression/pattern that doesn't compile.
    """
    expected = None         # description of the construct that was expected at `pos`, if any
    
    def __init__(self, msg, source = None, pos = None, filename = None, expected = None):
        self.expected = expected
        if expected: msg = f"{msg}, expected {expected}"
        super().__init__(msg, source, pos, filename)

class RenderError(TemplateError):
    """
    Failure while evaluating an expression, binding a pattern, formatting a value, or writing to the output sink.
    The exception that caused the failure is chained as __cause__.
    Output that was written to the sink before the failure is NOT retracted, so the sink may be left
    with a truncated document.
    """
