"""
Registry of the supported elliptic curves.

Parameters are the published domain parameters (SEC 2 for secp256k1, FIPS 186-4 for the NIST
curves). The ``nid`` is the OpenSSL curve identifier used to instantiate the curve in petlib.

>>> params = get_curve("secp256k1")
>>> params.key_length
256
>>> sorted(supported_curves())
['P-384', 'P-521', 'secp256k1']
"""

from types import MappingProxyType

import attr

from idzk.exceptions import UnknownCurveError


@attr.s(frozen=True)
class CurveParams:
    """
    Immutable domain parameters of a short Weierstrass curve.

    Args:
        name: Registry name.
        nid: OpenSSL numeric identifier of the curve.
        p: Prime modulus of the base field.
        n: Order of the group generated by ``(gx, gy)``.
        gx: Affine x-coordinate of the base point.
        gy: Affine y-coordinate of the base point.
        key_length: Nominal key length in bits.
    """

    name = attr.ib()
    nid = attr.ib()
    p = attr.ib(repr=False)
    n = attr.ib(repr=False)
    gx = attr.ib(repr=False)
    gy = attr.ib(repr=False)
    key_length = attr.ib()

    @property
    def generator(self):
        return (self.gx, self.gy)

    @property
    def field_bytes(self):
        """Length in bytes of a field element."""
        return (self.p.bit_length() + 7) // 8


_CURVES = {
    "secp256k1": CurveParams(
        name="secp256k1",
        nid=714,
        p=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F,
        n=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
        gx=0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
        gy=0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
        key_length=256,
    ),
    "P-384": CurveParams(
        name="P-384",
        nid=715,
        p=2 ** 384 - 2 ** 128 - 2 ** 96 + 2 ** 32 - 1,
        n=int(
            "ffffffffffffffffffffffffffffffffffffffffffffffff"
            "c7634d81f4372ddf581a0db248b0a77aecec196accc52973",
            16,
        ),
        gx=int(
            "aa87ca22be8b05378eb1c71ef320ad746e1d3b628ba79b98"
            "59f741e082542a385502f25dbf55296c3a545e3872760ab7",
            16,
        ),
        gy=int(
            "3617de4a96262c6f5d9e98bf9292dc29f8f41dbd289a147c"
            "e9da3113b5f0b8c00a60b1ce1d7e819d7a431d7c90ea0e5f",
            16,
        ),
        key_length=384,
    ),
    "P-521": CurveParams(
        name="P-521",
        nid=716,
        p=2 ** 521 - 1,
        n=int(
            "01ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff"
            "fa51868783bf2f966b7fcc0148f709a5d03bb5c9b8899c47aebb6fb71e91386409",
            16,
        ),
        gx=int(
            "00c6858e06b70404e9cd9e3ecb662395b4429c648139053fb521f828af606b4d"
            "3dbaa14b5e77efe75928fe1dc127a2ffa8de3348b3c1856a429bf97e7e31c2e5bd66",
            16,
        ),
        gy=int(
            "011839296a789a3bc0045c8a5fb42c7d1bd998f54449579b446817afbd17273e"
            "662c97ee72995ef42640c550b9013fad0761353c7086a272c24088be94769fd16650",
            16,
        ),
        key_length=521,
    ),
}

CURVES = MappingProxyType(_CURVES)


def supported_curves():
    return tuple(CURVES.keys())


def get_curve(name):
    """
    Look up curve parameters by name.

    Raises:
        UnknownCurveError: If the curve is not registered. No other curve is substituted.
    """
    try:
        return CURVES[name]
    except (KeyError, TypeError):
        raise UnknownCurveError(
            "Unknown curve {!r}, supported curves are: {}".format(
                name, ", ".join(supported_curves())
            )
        )
