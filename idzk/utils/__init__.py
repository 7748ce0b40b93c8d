import re

from petlib.bn import Bn


_DECIMAL = re.compile(r"[0-9]+")
_HEX = re.compile(r"0[xX][0-9a-fA-F]+")


def ensure_bn(x):
    """
    Ensure that value is big number.

    >>> isinstance(ensure_bn(42), Bn)
    True
    >>> isinstance(ensure_bn(Bn(42)), Bn)
    True
    >>> int(ensure_bn(2 ** 300)) == 2 ** 300
    True
    """
    if isinstance(x, Bn):
        return x
    return Bn.from_decimal(str(int(x)))


def sum_scalars(arr, modulus):
    """
    Sum an array of integers under a modulus.

    >>> sum_scalars([5, 7], 10)
    2
    """
    res = 0
    for elem in arr:
        res = (res + int(elem)) % modulus
    return res


def parse_int_literal(text):
    """
    Parse a decimal or ``0x``-prefixed hexadecimal integer literal.

    Returns None if the text is not a non-negative integer literal.

    >>> parse_int_literal("42")
    42
    >>> parse_int_literal(" 0x2a ")
    42
    >>> parse_int_literal("driver_license") is None
    True
    """
    text = str(text).strip()
    if _DECIMAL.fullmatch(text):
        return int(text)
    if _HEX.fullmatch(text):
        return int(text, 16)
    return None
