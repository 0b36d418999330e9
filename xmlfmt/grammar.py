"""
Lexical grammar of xmlfmt templates.

A template is a flat stream of tokens separated by optional whitespace. Whitespace between tokens is never
part of the output: all text must be written as quoted literals, which makes the grammar independent of
indentation and line layout.

Bracketed groups (...) {...} [...] are matched as single tokens, with proper nesting and skipping of quoted
strings inside. Their interpretation depends on where they occur, and is decided by the parser:
 (...)  a Python expression: condition, scrutinee or iterable of a control-flow construct
 {...}  an expression slot {expr;spec} in text or attribute value; or a block of nodes after a control-flow header
 [...]  a conditional attribute list:  ["literal": condition, ...]
The interior of a group is tokenized again, on demand, with the same grammar (rule `tokens`),
or split into pieces at top-level separators (rules `chunks`, `raw`).

Sample template:

    <!doctype html>
    <ul class=["menu": True, "dark": dark]>
        for i, item in (enumerate(items)) {
            let url = base + item.path;
            <li><a href={url}>{i;02}". " {item.title}</a></li>
        }
    </ul>
    if (footer) { <p>{footer}</p> } else { <!-- "no footer" --> }
"""

########################################################################################################################################################
grammar = r"""

###  TOKEN STREAM

tokens           =  ws (token ws)*

# the order of alternatives matters: multi-character delimiters must be tried before their prefixes
token            =  comment_open / comment_close / cdata_open / cdata_close / doctype / pi / close_tag / slash_gt / arrow / operator / eq / lt / gt / semi / comma / colon / string / number / name / paren / brace / bracket

###  MARKUP DELIMITERS

comment_open     =  "<!--"
comment_close    =  "-->"
cdata_open       =  "<![CDATA["
cdata_close      =  "]]>"
doctype          =  ~r"<!(?![-\[])[^>]*>"                               # <!doctype ...> declaration, contents kept raw
pi               =  ~r"<\?.*?\?>"s                                       # <?...?> processing instruction, contents kept raw
close_tag        =  ~r"</\s*[%(NAME_START)s][%(NAME_CHAR)s]*\s*>"        # a closing tag accepts a name only: </tag/> and </tag attr=...> are lexical errors
slash_gt         =  "/>"
lt               =  ~r"<(?![/?!])"                                       # not a start of closing tag, doctype or PI
gt               =  ">"

###  PUNCTUATION

arrow            =  "=>"
operator         =  ~r"==|!=|<=|>=|<<|>>|\*\*|//|->|:=|[-+*/%%@&|^~!.?]"      # Python operators that may occur in patterns & expressions outside groups
eq               =  "="
semi             =  ";"
comma            =  ","
colon            =  ":"

###  LITERALS & NAMES

string           =  ~r'"(?:[^"\\]|\\.)*"'s / ~r"'(?:[^'\\]|\\.)*'"s      # "..." or '...' with Python escape sequences
number           =  ~r"[0-9][0-9_]*(\.[0-9][0-9_]*)?([eE][+-]?[0-9]+)?[a-zA-Z0-9_]*"
name             =  ~r"[%(NAME_START)s][%(NAME_CHAR)s]*"                 # tag & attribute names, keywords, Python identifiers

###  GROUPS

paren            =  "(" inner* ")"
brace            =  "{" inner* "}"
bracket          =  "[" inner* "]"
inner            =  string / paren / brace / bracket / ~r"[^()\[\]{}'\"]+"

###  SPLITTING of group interiors

chunks           =  chunk*                                               # single characters at top level, strings & groups as a whole
chunk            =  string / paren / brace / bracket / ~r"[^()\[\]{}'\"]"

raw              =  (brace / raw_text)*                                  # raw contents of <!...> and <?...?>, with {...} slots
raw_text         =  ~r"[^{]+"

ws               =  ~r"\s*"

"""
###
###  Regex patterns for character sets allowed in names of tags and attributes, to be put inside [...] in a regex.
###  These are XML identifiers, which differ from typical names in programming languages:
###   1) national Unicode characters are allowed, specified by ranges of unicode point values
###   2) special characters are allowed on further positions in the string:  ':' (colon) '.' (dot) '-' (minus);
###      unlike in XML, colon is NOT allowed as the 1st character, as it would collide with ':' separators of conditional lists
###  Specification: http://www.w3.org/TR/REC-xml/#NT-NameStartChar
###

# human-readable:  [_A-Za-z] | [\u00C0-\u00D6] | [\u00D8-\u00F6] | [\u00F8-\u02FF] | [\u0370-\u037D] | [\u037F-\u1FFF] | [\u200C-\u200D] | [\u2070-\u218F] | [\u2C00-\u2FEF] | [\u3001-\uD7FF] | [\uF900-\uFDCF] | [\uFDF0-\uFFFD] | [\U00010000-\U000EFFFF]
NAME_StartChar = u"_A-Za-z\u00C0-\u00D6\u00D8-\u00F6\u00F8-\u02FF\u0370-\u037D\u037F-\u1FFF\u200C-\u200D\u2070-\u218F\u2C00-\u2FEF\u3001-\uD7FF\uF900-\uFDCF\uFDF0-\uFFFD\U00010000-\U000EFFFF"

# human-readable:  NAME_StartChar | [0-9.:-] | [\u00B7] | [\u0300-\u036F] | [\u203F-\u2040]
NAME_Char      = NAME_StartChar + r"0-9\.\-:" + u"\u00B7\u0300-\u036F\u203F-\u2040"
