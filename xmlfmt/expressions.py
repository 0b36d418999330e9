"""
Python code embedded in templates: expressions, assignment targets and match patterns.
All code is compiled once, when the template is parsed; rendering only executes the compiled code objects
against the current scope (a dict used as globals).
"""

import ast

from xmlfmt.config import FILENAME


# reserved names that are temporarily put in the scope while executing generated code;
# they can't be bound by targets and patterns, and their values from the context are restored after use
VALUE    = '__value__'
SUBJECT  = '__subject__'
ARM      = '__arm__'
RESERVED = {VALUE, SUBJECT, ARM}
MISSING  = object()


def oneline(source):
    """Patterns and targets are embedded in generated statements, hence they can't span multiple lines."""
    return ' '.join(source.splitlines())

def names(node):
    """All identifiers that are read or bound anywhere inside an AST subtree, including pattern captures."""
    found = set()
    for sub in ast.walk(node):
        if isinstance(sub, ast.Name): found.add(sub.id)
        elif isinstance(sub, (ast.MatchAs, ast.MatchStar)) and sub.name: found.add(sub.name)
        elif isinstance(sub, ast.MatchMapping) and sub.rest: found.add(sub.rest)
    return found

def reject_reserved(node):
    clash = names(node) & RESERVED
    if clash: raise SyntaxError(f"reserved name '{min(clash)}' can't be used here")


#####################################################################################################################################################
#####
#####  EXPRESSION
#####

class Expression:
    """
    A Python expression, like `point[0]` or `x * 5`. Compiled in 'eval' mode; the source is enclosed in parentheses,
    so it may span multiple lines. SyntaxError is raised by the constructor if the code doesn't compile.
    """
    source = None       # source code of the expression, as it occurs in the template
    pos    = None       # offset of the expression in template source
    code   = None       # compiled code object

    def __init__(self, source, pos = None, filename = FILENAME):
        self.source = source
        self.pos = pos
        self.code = compile(f"({source})", filename, 'eval')

    def evaluate(self, state):
        try:
            return eval(self.code, state.scope)
        except Exception as ex:
            raise state.error(f"error while evaluating ({self.source.strip()}): {ex.__class__.__name__}: {ex}", self.pos) from ex

    def __repr__(self): return f"Expression({self.source.strip()!r})"


#####################################################################################################################################################
#####
#####  TARGET
#####

class Target:
    """
    An assignment target of `let` and `for`: a name, a tuple of names `a, (b, c)`, a starred name `first, *rest`.
    Compiled as the target of a dummy for-loop, which makes any valid Python target acceptable.
    """
    source = None
    pos    = None
    code   = None

    def __init__(self, source, pos = None, filename = FILENAME):
        self.source = source
        self.pos = pos
        tree = ast.parse(f"for {oneline(source)} in ({VALUE},): pass", filename)
        reject_reserved(tree.body[0].target)
        self.code = compile(tree, filename, 'exec')

    def bind(self, state, scope, value):
        """Assign `value` to the target, inside `scope`."""
        saved = scope.pop(VALUE, MISSING)
        scope[VALUE] = value
        try:
            exec(self.code, scope)
        except Exception as ex:
            raise state.error(f"can't assign to ({self.source.strip()}): {ex.__class__.__name__}: {ex}", self.pos) from ex
        finally:
            del scope[VALUE]
            if saved is not MISSING: scope[VALUE] = saved

    def __repr__(self): return f"Target({self.source.strip()!r})"


#####################################################################################################################################################
#####
#####  PATTERNS
#####

class Patterns:
    """
    An ordered list of Python structural patterns, optionally with guards (`Ok(x) if x > 0`).
    All patterns are compiled together into a single match statement, with one `case` per pattern:

        match __subject__:
            case P1:
                __arm__ = 0
            case P2:
                __arm__ = 1

    Every pattern can also be compiled separately with check(), to report a SyntaxError at the position of the faulty pattern.
    """
    sources = None      # list of source codes of patterns
    code    = None

    def __init__(self, sources, filename = FILENAME):
        self.sources = [oneline(src) for src in sources]
        tree = ast.parse(self._statement(), filename)
        for case in tree.body[0].cases:
            self._check_case(case)
        self.code = compile(tree, filename, 'exec')

    @classmethod
    def check(cls, source, filename = FILENAME):
        """Compile a single pattern to check its syntax; raise SyntaxError on failure."""
        tree = ast.parse(f"match {SUBJECT}:\n    case {oneline(source)}:\n        pass\n", filename)
        cls._check_case(tree.body[0].cases[0])
        compile(tree, filename, 'exec')

    @staticmethod
    def _check_case(case):
        reject_reserved(case.pattern)
        if case.guard is not None: reject_reserved(case.guard)

    def _statement(self):
        lines = [f"match {SUBJECT}:"]
        for i, src in enumerate(self.sources):
            lines.append(f"    case {src}:")
            lines.append(f"        {ARM} = {i}")
        return '\n'.join(lines) + '\n'

    def select(self, state, scope, value, pos = None):
        """
        Match `value` against the patterns, in order. Return the index of the first pattern that matched,
        or None if none did. Variables captured by the pattern are assigned in `scope`.
        """
        saved = {name: scope.pop(name) for name in (SUBJECT, ARM) if name in scope}
        scope[SUBJECT] = value
        try:
            exec(self.code, scope)
        except Exception as ex:
            raise state.error(f"error while matching a pattern: {ex.__class__.__name__}: {ex}", pos) from ex
        finally:
            del scope[SUBJECT]
            arm = scope.pop(ARM, None)
            scope.update(saved)
        return arm

    def __len__(self): return len(self.sources)
    def __repr__(self): return f"Patterns({self.sources!r})"
