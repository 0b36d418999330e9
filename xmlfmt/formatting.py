"""
Format dispatcher: conversion of slot values to text according to a format specifier.

A specifier is what follows ';' in a slot:  {value;spec}
The syntax is Python's format mini-language, extended with two optional markers:

    [!conversion[:]] format_spec [?]

- conversion: !r !s !a apply repr(), str(), ascii() to the value before formatting, like in str.format()
- trailing '?': debug representation; non-numeric values are formatted through their repr(),
  while numbers are formatted as usual, so {42;#x?} gives '0x2a' and {"a";?} gives "'a'"
"""

from numbers import Number


CONVERSIONS = {'r': repr, 's': str, 'a': ascii}
DEBUG = '?'


def format_value(value, spec = None):
    """
    Convert `value` to text according to `spec`. Raise ValueError or TypeError if the specifier is invalid
    or not supported by the value's type.
    """
    if not spec: return format(value, '')
    converted = False

    if spec[0] == '!' and spec[1:2] in CONVERSIONS:
        value = CONVERSIONS[spec[1]](value)
        converted = True
        spec = spec[2:]
        if spec.startswith(':'): spec = spec[1:]
    elif spec[0] == '!':
        raise ValueError(f"unknown conversion in format specifier {spec!r}")

    if spec.endswith(DEBUG):
        spec = spec[:-1]
        if not (converted or isinstance(value, Number)): value = repr(value)

    return format(value, spec)
