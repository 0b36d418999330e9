"""
Runtime data structures of template rendering.
"""

from xmlfmt.config import FILENAME
from xmlfmt.errors import RenderError


########################################################################################################################################################

class StringSink:
    """Output sink that collects written text in memory. Used by render() when no sink was provided."""

    def __init__(self):
        self.parts = []

    def write(self, text):
        self.parts.append(text)

    def getvalue(self):
        return ''.join(self.parts)

    def __str__(self): return self.getvalue()


class State:
    """
    State of a single rendering of a document: current scope of variables and the output sink.
    Each render creates its own State, hence a document tree can be rendered concurrently by multiple threads.
    Nodes of the tree never keep any runtime data of their own.

    The scope is a plain dict that serves as globals for all Python code executed by the template.
    Bodies that bind new variables replace `scope` with a copy for the duration of their rendering,
    so that bindings never leak to the enclosing body nor to the caller's context.
    """
    sink     = None     # object with a write(text) method
    scope    = None     # dict of variables visible at the current point of rendering
    source   = None     # template source, for reporting error positions
    filename = None

    def __init__(self, sink, scope, source = None, filename = FILENAME):
        self.sink = sink
        self.scope = scope
        self.source = source
        self.filename = filename

    def write(self, text, pos = None):
        try:
            self.sink.write(text)
        except Exception as ex:
            raise self.error(f"failed to write to the output sink: {ex.__class__.__name__}: {ex}", pos) from ex

    def error(self, msg, pos = None):
        """Create (not raise) a RenderError located at `pos` in the template source."""
        return RenderError(msg, self.source, pos, self.filename)
