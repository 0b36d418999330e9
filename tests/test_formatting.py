"""
Run:
$  pytest -v tests/test_formatting.py
"""

import pytest
from decimal import Decimal

from xmlfmt.formatting import format_value

#####################################################################################################################################################
#####
#####  TESTS
#####

def test_001_default():
    assert format_value(42) == '42'
    assert format_value('text', None) == 'text'
    assert format_value(None, '') == 'None'
    assert format_value([1, 'a']) == "[1, 'a']"
    assert format_value(2.5) == '2.5'

def test_002_python_specs():
    assert format_value(3.14159, '.2f') == '3.14'
    assert format_value(42, '>6') == '    42'
    assert format_value(42, '08b') == '00101010'
    assert format_value('ab', '*^6') == '**ab**'
    assert format_value(1234567, ',') == '1,234,567'
    assert format_value(0.25, '.0%') == '25%'
    assert format_value(Decimal('1.50'), '.1f') == '1.5'

def test_003_debug_marker():
    assert format_value(42, '#x?') == '0x2a'
    assert format_value(42, '?') == '42'
    assert format_value(1.5, '.3f?') == '1.500'
    assert format_value('a', '?') == "'a'"
    assert format_value('a', '>5?') == "  'a'"
    assert format_value(None, '?') == 'None'
    assert format_value(['x'], '?') == "['x']"

def test_004_conversions():
    assert format_value('a', '!r') == "'a'"
    assert format_value('a', '!r:>5') == "  'a'"
    assert format_value('a', '!r>5') == "  'a'"
    assert format_value('a', '!r?') == "'a'"                 # debug marker doesn't apply repr() twice
    assert format_value('ż', '!a') == "'\\u017c'"
    assert format_value(5, '!s:>3') == '  5'

def test_005_errors():
    with pytest.raises(ValueError):
        format_value('text', 'd')
    with pytest.raises(ValueError):
        format_value(42, '!q')
    with pytest.raises(TypeError):
        format_value(object(), '>10')
