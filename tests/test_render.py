"""
Run:
$  pytest -v tests/test_render.py
"""

import io, re, pytest
from dataclasses import dataclass

import xmlfmt
from xmlfmt import compile, parse, render, Fragment, StringSink
from xmlfmt.errors import RenderError

#####################################################################################################################################################
#####
#####  UTILITIES
#####

def merge_spaces(s, pat = re.compile(r'\s+')):
    """Merge multiple spaces, replace newlines and tabs with spaces, strip leading/trailing space."""
    return pat.sub(' ', s).strip()

@dataclass
class Ok:
    value: object

@dataclass
class Err:
    value: object

class BrokenSink:
    """Sink that accepts `limit` writes and fails afterwards."""
    def __init__(self, limit):
        self.parts = []
        self.limit = limit
    def write(self, text):
        if len(self.parts) >= self.limit: raise IOError("disk full")
        self.parts.append(text)

#####################################################################################################################################################
#####
#####  TESTS
#####

def test_001_basic():
    src = """
        <svg width="200" height="200">
            <line x1="0" y1="0" x2={point[0]} y2={point[1]} stroke="black" stroke-width="2" />
            <text x={point[1]} y={point[0]}>"Hello '" {name} "'!"</text>
        </svg>
    """
    out = """<svg width="200" height="200"><line x1="0" y1="0" x2="20" y2="30" stroke="black" stroke-width="2" />""" \
          """<text x="30" y="20">Hello 'World'!</text></svg>"""
    assert render(parse(src), point = (20, 30), name = "World") == out

def test_002_format_specifiers():
    src = """<span data-value={value}>{value;#x?}</span>"""
    assert compile(src).render(value = 42) == '<span data-value="42">0x2a</span>'

    src = """{pi;.3f} {n;>5} {s;?} {s;!r:>6} {n;05d}"""
    assert render(parse(src), pi = 3.14159, n = 42, s = 'ab') == "3.142   42'ab'  'ab'00042"

def test_003_tags():
    src = """
        <!doctype html>
        <?xml version="1.0" encoding="UTF-8"?>
        <tag-name></tag-name>
        <ns:self-closing-tag />
        <!-- "comment" -->
        <![CDATA["cdata"]]>
    """
    out = """<!doctype html><?xml version="1.0" encoding="UTF-8"?><tag-name></tag-name><ns:self-closing-tag /><!-- comment --><![CDATA[cdata]]>"""
    assert parse(src).render() == out

    src = """<?xml version="{v}"?><!-- "v=" {v} -->"""
    assert parse(src).render(v = '1.1') == '<?xml version="1.1"?><!-- v=1.1 -->'

def test_004_control_flow():
    src = """
        if let str(name) = (opt) {
            <h1>"Hello " {name}</h1>
        }
        else if (switch) {
            <h1>"Hello User"</h1>
        }
        if (switch) {
            match (result) {
                Ok(f) => { <i>{f}</i> }
                Err(i) => { <b>{i}</b> }
            }
            <ul>
            for i in (range(1, 6)) {
                let times_five = i * 5;
                <li>{i}"*5="{times_five}</li>
            }
            </ul>
        }
        else {
            <p>"No contents"</p>
        }
    """
    out = """<h1>Hello World</h1><b>13</b><ul><li>1*5=5</li><li>2*5=10</li><li>3*5=15</li><li>4*5=20</li><li>5*5=25</li></ul>"""
    tree = parse(src)
    context = {'Ok': Ok, 'Err': Err}
    assert tree.render(context, opt = "World", switch = True, result = Err(13)) == out

    out = """<h1>Hello User</h1><i>2.5</i><ul><li>1*5=5</li><li>2*5=10</li><li>3*5=15</li><li>4*5=20</li><li>5*5=25</li></ul>"""
    assert tree.render(context, opt = None, switch = True, result = Ok(2.5)) == out
    assert tree.render(context, opt = None, switch = False, result = Ok(2.5)) == "<p>No contents</p>"

def test_005_conditional_lists():
    src = """<div class=["class-a": has_a, "class-b": has_b]><span style=["color: red;": make_red]></span></div>"""
    out = """<div class="class-a "><span style="color: red; "></span></div>"""
    assert parse(src).render(has_a = True, has_b = False, make_red = True) == out

    src = """<p class=["a": True, "b": False, "c": True] />"""
    assert parse(src).render() == '<p class="a c " />'

    src = """<div id="x" class=["a": x]></div>"""
    assert parse(src).render(x = 0) == '<div id="x" class=""></div>'
    assert parse(src, empty_list = 'omit').render(x = 0) == '<div id="x"></div>'
    assert parse(src, empty_list = 'omit').render(x = 1) == '<div id="x" class="a "></div>'
    assert parse('<br class=[] />').render() == '<br class="" />'

def test_006_branch_exclusivity():
    src = """if (c1) { "1" } else if (c2) { "2" } else { "3" }"""
    tree = parse(src)
    for c1 in (False, True):
        for c2 in (False, True):
            expected = "1" if c1 else "2" if c2 else "3"
            assert tree.render(c1 = c1, c2 = c2) == expected

    tree = parse("""<p>if (c1) { "1" } else if (c2) { "2" }</p>""")
    assert tree.render(c1 = False, c2 = False) == "<p></p>"

def test_007_tag_names_not_matched():
    assert parse("<open></close>").render() == "<open></close>"
    assert parse("<a><b></a></b>").render() == "<a><b></a></b>"

def test_008_loops():
    assert parse("for i in (range(1, 4)) { <li>{i}</li> }").render() == "<li>1</li><li>2</li><li>3</li>"
    assert parse("for i in (items) { <li>{i}</li> }").render(items = []) == ""
    assert parse('for k, v in (d.items()) { {k}"="{v}";" }').render(d = {'a': 1, 'b': 2}) == "a=1;b=2;"
    assert parse('for first, *rest in (rows) { {first}":"{len(rest)} }').render(rows = [(1, 2, 3), (4,)]) == "1:24:0"

    # nested loops with a comprehension referring to loop variables
    src = """for i in (range(3)) { for j in (range(i)) { {[j * k for k in range(i)]} } }"""
    assert parse(src).render() == "[0][0, 0][0, 1]"

def test_009_no_escaping():
    src = """<a title={t}>"<b>&amp;\\"" {t}</a>"""
    assert parse(src).render(t = '<i>"&"</i>') == """<a title="<i>"&"</i>"><b>&amp;"<i>"&"</i></a>"""

def test_010_let_scoping():
    src = """
        let x = 1;
        <a>let x = x + 1; let y = 10; {x} {y}</a>
        {x}
        for i in (range(2)) { let x = i * 100; {x}"," }
        {x}
    """
    assert parse(src).render() == "<a>210</a>10,100,1"

    # bindings of match arms and if-let are confined to their bodies
    src = """match (v) { [a, b] => { {a + b} } } if let (c, d) = (v) { {c - d} } {a if 'a' in globals() else '-'}"""
    assert parse(src).render(v = [5, 2]) == "73-"

    # the caller's context is never modified
    context = {'n': 1}
    assert parse("let n = n + 1; {n}").render(context) == "2"
    assert context == {'n': 1}

def test_011_match():
    src = """
        match (v) {
            0 => { "zero" }
            int(n) if n < 0 => { "negative" }
            int(n) => { "positive" }
            {"name": str(name)} => { "dict " {name} }
            [x, *_] => { "list " {x} }
        }
    """
    tree = parse(src)
    assert tree.render(v = 0) == "zero"
    assert tree.render(v = -5) == "negative"
    assert tree.render(v = 7) == "positive"
    assert tree.render(v = {'name': 'Bob'}) == "dict Bob"
    assert tree.render(v = ['a', 'b']) == "list a"
    assert tree.render(v = 'str') == ""                                  # no arm matched, nothing rendered

def test_012_sink():
    sink = io.StringIO()
    tree = parse("""<p>{x}</p>""")
    assert tree.render(sink = sink, x = 5) is None
    assert sink.getvalue() == "<p>5</p>"

    sink = StringSink()
    render(tree, {'x': 1}, sink)
    render(tree, {'x': 2}, sink)
    assert sink.getvalue() == "<p>1</p><p>2</p>"

def test_013_render_errors():
    tree = parse("""<ul>for i in (items) { <li>{10 // i}</li> }</ul>""")
    sink = StringSink()
    with pytest.raises(RenderError, match = 'ZeroDivisionError') as ex_info:
        tree.render(sink = sink, items = [5, 0, 1])
    ex = ex_info.value
    assert isinstance(ex.__cause__, ZeroDivisionError)
    assert (ex.line, ex.column) == (1, 29)
    assert sink.getvalue() == "<ul><li>2</li><li>"                      # partial output is not retracted

    # the tree stays reusable after a failure
    assert tree.render(items = [1, 2]) == "<ul><li>10</li><li>5</li></ul>"

    with pytest.raises(RenderError, match = 'NameError'):
        parse("{missing}").render()
    with pytest.raises(RenderError, match = "can't format value"):
        parse("{s;d}").render(s = "text")
    with pytest.raises(RenderError, match = 'not iterable'):
        parse("for i in (n) { {i} }").render(n = 5)
    with pytest.raises(RenderError, match = "can't assign"):
        parse("for a, b in (items) { {a} }").render(items = [(1, 2, 3)])
    with pytest.raises(RenderError, match = 'output sink') as ex_info:
        parse("<a>{x}</a>").render(sink = BrokenSink(2), x = 1)
    assert isinstance(ex_info.value.__cause__, IOError)

def test_014_fragments():
    item = parse("""<li>{label}</li>""")
    page = parse("""<ul>for x in (items) { {x} }</ul>""")
    items = [item.bind(label = "a"), item.bind({'label': "b"})]
    assert isinstance(items[0], Fragment)
    assert str(items[0]) == "<li>a</li>"
    assert page.render(items = items) == "<ul><li>a</li><li>b</li></ul>"

    # a fragment with a format specifier is formatted as a string
    assert parse("""{f;>12}""").render(f = items[0]) == "  <li>a</li>"
    assert format(items[1], '') == "<li>b</li>"

    sink = io.StringIO()
    items[0].write_to(sink)
    assert sink.getvalue() == "<li>a</li>"

def test_015_compile_cache():
    compile.cache_clear()
    src = """<p>{x}</p>"""
    t1 = compile(src)
    t2 = compile(src)
    t3 = compile(src, filename = 'other.xml')
    assert t1 is t2
    assert t1 is not t3
    assert t3.filename == 'other.xml'
    compile.cache_clear()
    assert compile(src) is not t1

def test_016_multiline():
    src = """
        <p title={
            ", ".join(
                names
            )
        }>
            {
              len(names)
              ;
              03d
            }
        </p>
    """
    assert merge_spaces(parse(src).render(names = ['a', 'b'])) == '<p title="a, b">002</p>'

def test_017_package_api():
    assert xmlfmt.compile is compile
    assert xmlfmt.format_value(42, '#x?') == '0x2a'
    assert [t.kind for t in xmlfmt.tokenize('<a>')] == ['lt', 'name', 'gt']
    assert xmlfmt.Parser().parse('"x"').render() == 'x'

def test_018_sign_space_spec():
    assert parse("{n; d}").render(n = 5) == " 5"
    assert parse("{n; d}").render(n = -5) == "-5"
    assert parse("{n;+d }").render(n = 5) == "+5"
    assert parse("{s;\n    >4}").render(s = "ab") == "  ab"                  # whitespace with a line break is layout
    assert parse("{s; }").render(s = "ab") == "ab"

def test_019_reserved_names_in_context():
    tree = parse('match (v) { 1 => {"one"} } {__arm__}')
    assert tree.render({'__arm__': 7}, v = 2) == "7"
    assert tree.render({'__arm__': 7}, v = 1) == "one7"
    assert parse('if let [x] = (v) { {x} } {__subject__}').render({'__subject__': 's'}, v = [3]) == "3s"
    assert parse('for i in (xs) { {i} } {__value__}').render({'__value__': 'v'}, xs = [1, 2]) == "12v"
