"""
Rendering of compiled documents against a context of variables.
"""

import logging

from xmlfmt.errors import RenderError
from xmlfmt.structs import State, StringSink

logger = logging.getLogger(__name__)


########################################################################################################################################################

def render(tree, context = None, sink = None, **variables):
    """
    Render a compiled Document `tree`, with variables from `context` (a mapping) and `variables` (keyword args)
    visible to all expressions of the template. Output is written to `sink` (any object with a write(text) method)
    and None is returned; or, if `sink` is None, the output is collected and returned as a string.

    The context is copied before rendering and never modified. On failure, RenderError is raised, and the output
    written so far is NOT retracted: the sink may be left with a truncated document.
    """
    scope = dict(context) if context is not None else {}
    scope.update(variables)

    out = StringSink() if sink is None else sink
    state = State(out, scope, tree.source, tree.filename)

    try:
        tree.body.render(state, scope)
    except RenderError as ex:
        logger.debug("rendering of %s failed: %s", tree.filename, ex)
        raise

    if sink is None: return out.getvalue()


class Fragment:
    """
    A document bound to a context, rendered lazily every time its text is requested.
    A Fragment can be passed as a value to a slot of another template, which allows composing templates:
    the fragment is then streamed directly to the other template's sink.
    """
    tree      = None
    context   = None
    variables = None

    def __init__(self, tree, context = None, variables = None):
        self.tree = tree
        self.context = context
        self.variables = variables or {}

    def write_to(self, sink):
        render(self.tree, self.context, sink, **self.variables)

    def __str__(self):
        return render(self.tree, self.context, **self.variables)

    def __format__(self, spec):
        return format(str(self), spec)

    def __repr__(self):
        return f"Fragment({self.tree!r})"
