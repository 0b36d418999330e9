"""
Document Tree: compiled representation of a template.

The tree is built once by the parser and never modified afterwards. All runtime data live in a State object
(structs.py) created anew for each rendering, so a single tree can be rendered any number of times,
also concurrently. Every node knows how to render itself: render(state) writes the node's output to state.sink.

Node classes:
- text:      Literal, Slot
- markup:    Element (with Attribute values: Static, Slot, ConditionalList), Doctype, ProcessingInstruction, Comment, CData
- control:   If, Match, For, Let
- grouping:  Body
"""

from xmlfmt.config import FILENAME
from xmlfmt.errors import RenderError
from xmlfmt.formatting import format_value
from xmlfmt.renderer import render, Fragment


########################################################################################################################################################
#####
#####  UTILITIES
#####

def truth(expr, state):
    """Evaluate `expr` and convert the result to bool. Some objects (numpy arrays) refuse to be converted."""
    value = expr.evaluate(state)
    try:
        return bool(value)
    except Exception as ex:
        raise state.error(f"truth value of ({expr.source.strip()}) is undefined: {ex.__class__.__name__}: {ex}", expr.pos) from ex


########################################################################################################################################################
#####
#####  BASE
#####

class Node:
    pos = None          # offset of the node in template source

    def render(self, state):
        raise NotImplementedError

    def subnodes(self):
        """Direct descendants of this node in the tree."""
        return ()

    def walk(self):
        """Generate this node and all its descendants, depth-first, in document order."""
        yield self
        for node in self.subnodes():
            yield from node.walk()

    def __repr__(self): return f"{self.__class__.__name__}()"


class Body(Node):
    """
    An ordered sequence of sibling nodes: top level of a document, children of an element,
    or a block of a control-flow statement. A body that contains `let` statements renders in a copy of the scope,
    so the variables bound by `let` are visible to subsequent siblings only, and disappear when the body ends.
    """
    nodes = None        # tuple of Nodes
    binds = False       # True if any of `nodes` is a Let, which requires a private scope for this body

    def __init__(self, nodes, pos = None):
        self.nodes = tuple(nodes)
        self.binds = any(isinstance(node, Let) for node in self.nodes)
        self.pos = pos

    def render(self, state, scope = None):
        """
        Render all nodes in order. If `scope` is given, it's used as the scope of the body instead of
        the current one; the caller must pass a fresh dict that can be modified.
        """
        if scope is None:
            if not self.binds:
                for node in self.nodes: node.render(state)
                return
            scope = dict(state.scope)

        outer = state.scope
        state.scope = scope
        try:
            for node in self.nodes: node.render(state)
        finally:
            state.scope = outer

    def subnodes(self):     return self.nodes
    def __len__(self):      return len(self.nodes)
    def __iter__(self):     return iter(self.nodes)
    def __repr__(self):     return f"Body({list(self.nodes)!r})"


########################################################################################################################################################
#####
#####  TEXT
#####

class Literal(Node):
    """Fixed text, written to the output as is."""
    text = None

    def __init__(self, text, pos = None):
        self.text = text
        self.pos = pos

    def render(self, state):    state.write(self.text, self.pos)
    def __repr__(self):         return f"Literal({self.text!r})"


class Static(Literal):
    """Fixed value of an attribute."""
    def value(self, state):     return self.text
    def __repr__(self):         return f"Static({self.text!r})"


class Slot(Node):
    """
    Python expression embedded in text or in attribute value:  {expr} or {expr;spec}
    The value is converted to text by format_value() with the format specifier `spec`.
    A Fragment value without a specifier is streamed directly to the output.
    """
    expr = None         # Expression
    spec = None         # format specifier without layout whitespace; None if missing or empty

    def __init__(self, expr, spec = None, pos = None):
        self.expr = expr
        self.spec = spec
        self.pos = pos

    def format(self, state, value):
        try:
            return format_value(value, self.spec)
        except RenderError:
            raise
        except Exception as ex:
            raise state.error(f"can't format value of ({self.expr.source.strip()}) with specifier {self.spec!r}: "
                              f"{ex.__class__.__name__}: {ex}", self.pos) from ex

    def value(self, state):
        """Formatted text of this slot, for use as an attribute value."""
        return self.format(state, self.expr.evaluate(state))

    def render(self, state):
        value = self.expr.evaluate(state)
        if isinstance(value, Fragment) and not self.spec:
            value.write_to(state.sink)
        else:
            state.write(self.format(state, value), self.pos)

    def __repr__(self):
        return f"Slot({self.expr.source.strip()!r}, {self.spec!r})" if self.spec else f"Slot({self.expr.source.strip()!r})"


########################################################################################################################################################
#####
#####  MARKUP
#####

class ConditionalList(Node):
    """
    Attribute value composed of literals that are included conditionally:  class=["menu": True, "dark": dark]
    Every literal whose condition is true is followed by a single space, so the value has a trailing space
    when non-empty. When all conditions are false, the value is empty; with `omit_empty`, the whole attribute
    is left out of the tag.
    """
    entries    = None       # tuple of (literal, Expression) pairs
    omit_empty = False

    def __init__(self, entries, omit_empty = False, pos = None):
        self.entries = tuple(entries)
        self.omit_empty = omit_empty
        self.pos = pos

    def value(self, state):
        text = ''.join(literal + ' ' for literal, condition in self.entries if truth(condition, state))
        if not text and self.omit_empty: return None
        return text

    def __repr__(self): return f"ConditionalList({[(lit, cond.source.strip()) for lit, cond in self.entries]!r})"


class Attribute(Node):
    """Attribute of an element, rendered as: ` name="value"`. Not rendered at all if value() returns None."""
    name  = None
    value = None        # Static, Slot or ConditionalList

    def __init__(self, name, value, pos = None):
        self.name = name
        self.value = value
        self.pos = pos

    def render(self, state):
        text = self.value.value(state)
        if text is None: return
        state.write(f' {self.name}="{text}"', self.pos)

    def subnodes(self): return (self.value,)
    def __repr__(self): return f"Attribute({self.name!r}, {self.value!r})"


class Element(Node):
    """
    An element:  <name attrs...>children</closing>  or  <name attrs... />
    The name in the closing tag is stored separately and is never compared with `name`.
    """
    name        = None
    attrs       = None      # tuple of Attributes
    selfclosing = False
    children    = None      # Body; None for a self-closing element
    closing     = None      # name in the closing tag; None for a self-closing element

    def __init__(self, name, attrs, selfclosing = False, children = None, closing = None, pos = None):
        assert not (selfclosing and children)
        self.name = name
        self.attrs = tuple(attrs)
        self.selfclosing = selfclosing
        self.children = children
        self.closing = closing
        self.pos = pos

    def render(self, state):
        state.write('<' + self.name, self.pos)
        for attr in self.attrs:
            attr.render(state)
        if self.selfclosing:
            state.write(' />', self.pos)
            return
        state.write('>', self.pos)
        self.children.render(state)
        state.write(f'</{self.closing}>', self.pos)

    def subnodes(self):
        return self.attrs + ((self.children,) if self.children is not None else ())

    def __repr__(self):
        if self.selfclosing: return f"Element({self.name!r}, {list(self.attrs)!r}, selfclosing = True)"
        return f"Element({self.name!r}, {list(self.attrs)!r}, {self.children!r}, closing = {self.closing!r})"


class Wrapper(Node):
    """Base class for nodes that wrap literals and slots between a fixed prefix and suffix."""
    prefix  = None
    suffix  = None
    content = None          # tuple of Literal/Slot nodes

    def __init__(self, content, pos = None):
        self.content = tuple(content)
        self.pos = pos

    def render(self, state):
        state.write(self.prefix, self.pos)
        for node in self.content:
            node.render(state)
        state.write(self.suffix, self.pos)

    def subnodes(self):     return self.content
    def __repr__(self):     return f"{self.__class__.__name__}({list(self.content)!r})"

class Doctype(Wrapper):
    prefix = '<!'
    suffix = '>'

class ProcessingInstruction(Wrapper):
    prefix = '<?'
    suffix = '?>'

class Comment(Wrapper):
    prefix = '<!-- '
    suffix = ' -->'

class CData(Wrapper):
    prefix = '<![CDATA['
    suffix = ']]>'


########################################################################################################################################################
#####
#####  CONTROL FLOW
#####

class Condition:
    """Plain condition of an if-branch: truth value of an expression."""
    expr = None

    def __init__(self, expr):
        self.expr = expr

    def check(self, state):
        """Return (passed, scope), where `scope` is a new scope for the branch body, or None to keep the current one."""
        return truth(self.expr, state), None

    def __repr__(self): return f"Condition({self.expr.source.strip()!r})"


class PatternCondition:
    """Condition of an if-let branch:  if let PATTERN = (expr) {...}  The variables captured by PATTERN are visible in the branch body."""
    patterns = None         # Patterns, with a single pattern
    expr     = None
    pos      = None

    def __init__(self, patterns, expr, pos = None):
        self.patterns = patterns
        self.expr = expr
        self.pos = pos

    def check(self, state):
        value = self.expr.evaluate(state)
        scope = dict(state.scope)
        arm = self.patterns.select(state, scope, value, self.pos)
        return arm is not None, scope

    def __repr__(self): return f"PatternCondition({self.patterns.sources[0]!r}, {self.expr.source.strip()!r})"


class If(Node):
    """if (cond) {...} else if (cond) {...} else {...}  Only the first branch whose condition holds is rendered."""
    branches = None         # tuple of (Condition or PatternCondition, Body) pairs
    elsebody = None         # Body or None

    def __init__(self, branches, elsebody = None, pos = None):
        self.branches = tuple(branches)
        self.elsebody = elsebody
        self.pos = pos

    def render(self, state):
        for condition, body in self.branches:
            passed, scope = condition.check(state)
            if passed:
                body.render(state, scope)
                return
        if self.elsebody is not None:
            self.elsebody.render(state)

    def subnodes(self):
        bodies = tuple(body for _, body in self.branches)
        return bodies + ((self.elsebody,) if self.elsebody is not None else ())

    def __repr__(self): return f"If({list(self.branches)!r}, {self.elsebody!r})"


class Match(Node):
    """
    match (subject) { PATTERN => {...} ... }
    The body of the first arm whose pattern matches is rendered, with the pattern's captured variables in scope.
    No output if no pattern matches.
    """
    subject  = None         # Expression
    patterns = None         # Patterns; None if there are no arms
    bodies   = None         # tuple of Bodies, one per pattern

    def __init__(self, subject, patterns, bodies, pos = None):
        self.subject = subject
        self.patterns = patterns
        self.bodies = tuple(bodies)
        self.pos = pos

    def render(self, state):
        value = self.subject.evaluate(state)
        if self.patterns is None: return
        scope = dict(state.scope)
        arm = self.patterns.select(state, scope, value, self.pos)
        if arm is not None:
            self.bodies[arm].render(state, scope)

    def subnodes(self):     return self.bodies
    def __repr__(self):     return f"Match({self.subject.source.strip()!r}, {self.patterns!r}, {list(self.bodies)!r})"


class For(Node):
    """for TARGET in (iterable) {...}  The body is rendered once per item, in a fresh scope with TARGET assigned."""
    target   = None         # Target
    iterable = None         # Expression
    body     = None         # Body

    def __init__(self, target, iterable, body, pos = None):
        self.target = target
        self.iterable = iterable
        self.body = body
        self.pos = pos

    def render(self, state):
        items = self.iterable.evaluate(state)
        try:
            iterator = iter(items)
        except Exception as ex:
            raise state.error(f"value of ({self.iterable.source.strip()}) is not iterable: {ex}", self.iterable.pos) from ex

        while True:
            try:
                item = next(iterator)
            except StopIteration:
                break
            except Exception as ex:
                raise state.error(f"iteration over ({self.iterable.source.strip()}) failed: {ex.__class__.__name__}: {ex}",
                                  self.iterable.pos) from ex

            scope = dict(state.scope)
            self.target.bind(state, scope, item)
            self.body.render(state, scope)

    def subnodes(self):     return (self.body,)
    def __repr__(self):     return f"For({self.target.source.strip()!r}, {self.iterable.source.strip()!r}, {self.body!r})"


class Let(Node):
    """let TARGET = expr;  Binds variables for the subsequent siblings in the same body. Produces no output."""
    target = None
    expr   = None

    def __init__(self, target, expr, pos = None):
        self.target = target
        self.expr = expr
        self.pos = pos

    def render(self, state):
        value = self.expr.evaluate(state)
        self.target.bind(state, state.scope, value)

    def __repr__(self): return f"Let({self.target.source.strip()!r}, {self.expr.source.strip()!r})"


########################################################################################################################################################
#####
#####  DOCUMENT
#####

class Document:
    """
    Compiled template: the root Body plus the template source, for reporting positions of rendering errors.
    Immutable and reusable; render() can be called any number of times, with different contexts.
    """
    body     = None
    source   = None
    filename = None

    def __init__(self, body, source, filename = FILENAME):
        self.body = body
        self.source = source
        self.filename = filename

    def render(self, context = None, sink = None, **variables):
        """Shortcut for xmlfmt.render(self, ...). Returns a string if `sink` is None."""
        return render(self, context, sink, **variables)

    def bind(self, context = None, **variables):
        """Bind the document to a context and return a lazily rendered Fragment."""
        return Fragment(self, context, variables)

    def walk(self):
        """Generate all nodes of the tree, depth-first, in document order, excluding the root Body."""
        for node in self.body.walk():
            if node is not self.body: yield node

    def size(self):     return sum(1 for _ in self.walk())
    def __repr__(self): return f"Document({self.filename!r}, {self.body!r})"
