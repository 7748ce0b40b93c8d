"""
Elliptic-curve arithmetic.

All production arithmetic goes through petlib, which wraps OpenSSL's ``EC_POINT`` and ``BIGNUM``
implementations. Points travel on the wire as ``"<x hex>:<y hex>"`` affine coordinates.

>>> from idzk.curves import get_curve
>>> ec = CurveArithmetic(get_curve("secp256k1"))
>>> g = ec.generator()
>>> ec.decode_point(ec.encode_point(g)) == g
True
>>> ec.point_add(ec.scalar_multiply(g, 3), ec.scalar_multiply(g, 4)) == ec.scalar_multiply(g, 7)
True

:py:class:`InsecureArithmetic` is a stand-in that keeps the engine alive when the curve library
cannot provide a curve. Its points are :py:class:`UnsoundPoint` instances and it reports
``sound = False``; nothing built on it is a proof.
"""

import hashlib
import logging
import re
import warnings

import attr
from petlib.ec import EcGroup, EcPt

from idzk.consts import INFINITY_ENCODING, PEDERSEN_H_LABEL
from idzk.exceptions import ConfigurationError, MalformedEncodingError
from idzk.utils import ensure_bn


logger = logging.getLogger(__name__)

_HEX_SCALAR = re.compile(r"0|[1-9a-f][0-9a-f]*")


def encode_scalar(value):
    """
    Encode a scalar as lower-case hex.

    >>> encode_scalar(255)
    'ff'
    """
    return "{:x}".format(int(value))


def decode_scalar(text, order):
    """
    Decode a hex scalar and check it lies in ``[0, order)``.

    Only the canonical encoding is accepted: lower-case, no leading zeros.

    >>> decode_scalar("ff", 1000)
    255
    >>> decode_scalar("FF", 1000)
    Traceback (most recent call last):
    ...
    idzk.exceptions.MalformedEncodingError: Invalid scalar encoding: 'FF'
    """
    if not isinstance(text, str) or not _HEX_SCALAR.fullmatch(text):
        raise MalformedEncodingError("Invalid scalar encoding: {!r}".format(text))
    value = int(text, 16)
    if value >= order:
        raise MalformedEncodingError("Scalar is not reduced modulo the group order")
    return value


def _split_coordinates(text):
    if not isinstance(text, str):
        raise MalformedEncodingError("Point encoding must be a string")
    parts = text.split(":")
    if len(parts) != 2 or not all(_HEX_SCALAR.fullmatch(part) for part in parts):
        raise MalformedEncodingError("Invalid point encoding: {!r}".format(text))
    return int(parts[0], 16), int(parts[1], 16)


class CurveArithmetic:
    """
    Point arithmetic on a registered curve, backed by petlib.

    Args:
        params (:py:class:`idzk.curves.CurveParams`): Curve parameters.

    Raises:
        ConfigurationError: If the library's curve disagrees with the registry.
    """

    sound = True

    def __init__(self, params):
        self.params = params
        self.order = params.n
        self.group = EcGroup(params.nid)

        if int(self.group.order()) != params.n:
            raise ConfigurationError(
                "Library group order does not match registry for {}".format(params.name)
            )
        gx, gy = self.group.generator().get_affine()
        if (int(gx), int(gy)) != params.generator:
            raise ConfigurationError(
                "Library generator does not match registry for {}".format(params.name)
            )
        self._pedersen_h = None

    @property
    def curve_name(self):
        return self.params.name

    def generator(self):
        return self.group.generator()

    def infinity(self):
        return self.group.infinite()

    def pedersen_h(self):
        """
        Second Pedersen generator, hashed onto the curve from a fixed label.
        """
        if self._pedersen_h is None:
            self._pedersen_h = self.group.hash_to_point(PEDERSEN_H_LABEL)
        return self._pedersen_h

    def hash_to_point(self, data):
        return self.group.hash_to_point(data)

    def scalar_multiply(self, point, scalar):
        return ensure_bn(int(scalar) % self.order) * point

    def point_add(self, p1, p2):
        return p1 + p2

    def linear_combination(self, scalars, points):
        """Compute :math:`k_0 P_0 + k_1 P_1 + ... + k_n P_n`."""
        result = self.infinity()
        for k, pt in zip(scalars, points):
            result = result + self.scalar_multiply(pt, k)
        return result

    def encode_point(self, point):
        if point.is_infinite():
            return INFINITY_ENCODING
        x, y = point.get_affine()
        return "{:x}:{:x}".format(int(x), int(y))

    def decode_point(self, text):
        """
        Parse and validate a point.

        Raises:
            MalformedEncodingError: If the text is not a valid encoding of a point on this curve.
        """
        if text == INFINITY_ENCODING:
            return self.infinity()
        x, y = _split_coordinates(text)
        if x >= self.params.p or y >= self.params.p:
            raise MalformedEncodingError("Coordinates exceed the field modulus")

        width = self.params.field_bytes
        blob = b"\x04" + x.to_bytes(width, "big") + y.to_bytes(width, "big")
        try:
            point = EcPt.from_binary(blob, self.group)
        # petlib reports every OpenSSL failure with a bare Exception.
        except Exception as e:
            raise MalformedEncodingError("Point is not on {}".format(self.curve_name)) from e
        if not self.group.check_point(point):
            raise MalformedEncodingError("Point is not on {}".format(self.curve_name))
        return point


@attr.s(frozen=True)
class UnsoundPoint:
    """
    Coordinates produced by :py:class:`InsecureArithmetic`. Not a curve point.
    """

    x = attr.ib()
    y = attr.ib()
    sound = attr.ib(default=False, init=False)


class InsecureArithmetic:
    """
    Non-cryptographic coordinate arithmetic.

    Multiplies and adds coordinates modulo ``p`` without any regard for the curve equation. Only
    exists so an engine configured for a curve the library cannot provide still starts; every
    generator refuses to prove on top of it and every verifier rejects.
    """

    sound = False

    def __init__(self, params):
        warnings.warn(
            "Using non-cryptographic fallback arithmetic for {}; no proof will be produced".format(
                params.name
            )
        )
        self.params = params
        self.order = params.n

    @property
    def curve_name(self):
        return self.params.name

    def generator(self):
        return UnsoundPoint(self.params.gx, self.params.gy)

    def infinity(self):
        return UnsoundPoint(0, 0)

    def hash_to_point(self, data):
        digest = hashlib.sha512(data).digest()
        half = len(digest) // 2
        p = self.params.p
        return UnsoundPoint(
            int.from_bytes(digest[:half], "big") % p, int.from_bytes(digest[half:], "big") % p
        )

    def pedersen_h(self):
        return self.hash_to_point(PEDERSEN_H_LABEL)

    def scalar_multiply(self, point, scalar):
        p = self.params.p
        return UnsoundPoint(point.x * scalar % p, point.y * scalar % p)

    def point_add(self, p1, p2):
        p = self.params.p
        return UnsoundPoint((p1.x + p2.x) % p, (p1.y + p2.y) % p)

    def linear_combination(self, scalars, points):
        result = self.infinity()
        for k, pt in zip(scalars, points):
            result = self.point_add(result, self.scalar_multiply(pt, k))
        return result

    def encode_point(self, point):
        return "{:x}:{:x}".format(point.x, point.y)

    def decode_point(self, text):
        return UnsoundPoint(*_split_coordinates(text))


def make_arithmetic(params, allow_insecure_fallback=False):
    """
    Build the arithmetic for a curve.

    Args:
        params (:py:class:`idzk.curves.CurveParams`): Curve parameters.
        allow_insecure_fallback (bool): If the curve library cannot provide the curve, return
            :py:class:`InsecureArithmetic` instead of failing.

    Raises:
        ConfigurationError: If the library cannot provide the curve and the fallback is disabled.
    """
    try:
        return CurveArithmetic(params)
    except ConfigurationError:
        raise
    # petlib reports unsupported curves with a bare Exception.
    except Exception as e:
        if not allow_insecure_fallback:
            raise ConfigurationError(
                "Curve library cannot provide {}: {}".format(params.name, e)
            ) from e
        logger.warning(
            "Curve library cannot provide %s, falling back to insecure arithmetic", params.name
        )
        return InsecureArithmetic(params)
