import pytest

from idzk.consts import INFINITY_ENCODING
from idzk.curves import get_curve
from idzk.ec import (
    CurveArithmetic,
    InsecureArithmetic,
    decode_scalar,
    encode_scalar,
    make_arithmetic,
)
from idzk.exceptions import ConfigurationError, MalformedEncodingError


def test_scalar_encoding():
    assert encode_scalar(255) == "ff"
    assert decode_scalar("ff", 1000) == 255
    assert decode_scalar("0", 1000) == 0
    with pytest.raises(MalformedEncodingError):
        decode_scalar("ff", 255)
    with pytest.raises(MalformedEncodingError):
        decode_scalar("-1", 1000)
    with pytest.raises(MalformedEncodingError):
        decode_scalar("", 1000)
    with pytest.raises(MalformedEncodingError):
        decode_scalar(255, 1000)


def test_point_encoding(arithmetic):
    g = arithmetic.generator()
    x, y = get_curve("secp256k1").generator
    assert arithmetic.encode_point(g) == "{:x}:{:x}".format(x, y)
    assert arithmetic.decode_point(arithmetic.encode_point(g)) == g


def test_infinity_encoding(arithmetic):
    assert arithmetic.encode_point(arithmetic.infinity()) == INFINITY_ENCODING
    assert arithmetic.decode_point(INFINITY_ENCODING).is_infinite()


@pytest.mark.parametrize("text", ["FF", "0ff", "00", " ff", "+ff", "0xff"])
def test_decode_scalar_rejects_non_canonical(text):
    with pytest.raises(MalformedEncodingError):
        decode_scalar(text, 1000)


def test_decode_point_rejects_non_canonical(arithmetic):
    x, y = arithmetic.encode_point(arithmetic.generator()).split(":")
    for text in ["{}:{}".format(x.upper(), y), "{}:{}".format(x, y.upper()), "0{}:{}".format(x, y)]:
        with pytest.raises(MalformedEncodingError):
            arithmetic.decode_point(text)


@pytest.mark.parametrize(
    "text", ["", "1", "1:2", "zz:11", "1:2:3", None, "ff" * 40 + ":1"]
)
def test_decode_point_rejects(arithmetic, text):
    with pytest.raises(MalformedEncodingError):
        arithmetic.decode_point(text)


def test_arithmetic(arithmetic):
    g = arithmetic.generator()
    three = arithmetic.scalar_multiply(g, 3)
    four = arithmetic.scalar_multiply(g, 4)
    assert arithmetic.point_add(three, four) == arithmetic.scalar_multiply(g, 7)
    assert arithmetic.linear_combination([3, 4], [g, g]) == arithmetic.scalar_multiply(g, 7)
    assert arithmetic.scalar_multiply(g, -1) == arithmetic.scalar_multiply(g, arithmetic.order - 1)


def test_pedersen_h(arithmetic):
    h = arithmetic.pedersen_h()
    assert h == arithmetic.pedersen_h()
    assert h != arithmetic.generator()
    assert arithmetic.group.check_point(h)


def test_make_arithmetic_sound(curve):
    arithmetic = make_arithmetic(curve)
    assert isinstance(arithmetic, CurveArithmetic)
    assert arithmetic.sound


def test_make_arithmetic_unavailable_curve(curve, monkeypatch):
    def broken(nid):
        raise Exception("unsupported")

    monkeypatch.setattr("idzk.ec.EcGroup", broken)
    with pytest.raises(ConfigurationError):
        make_arithmetic(curve)

    with pytest.warns(UserWarning):
        fallback = make_arithmetic(curve, allow_insecure_fallback=True)
    assert isinstance(fallback, InsecureArithmetic)
    assert not fallback.sound
