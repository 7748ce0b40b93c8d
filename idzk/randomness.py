"""
Randomness and hashing collaborator.

The engine never draws entropy or hashes by itself; it asks a :py:class:`RandomnessProvider`.

>>> provider = SystemRandomness()
>>> 0 <= provider.random_scalar(2 ** 64) < 2 ** 64
True
>>> len(provider.hash("SHA-384", b"data"))
48
"""

import abc
import hashlib

from idzk.utils import ensure_bn


HASH_ALGORITHMS = {
    "SHA-256": hashlib.sha256,
    "SHA-384": hashlib.sha384,
    "SHA-512": hashlib.sha512,
}


class RandomnessProvider(metaclass=abc.ABCMeta):
    """
    Source of secure random scalars and of hash digests.
    """

    @abc.abstractmethod
    def random_scalar(self, order):
        """
        Draw a uniformly random integer in ``[0, order)`` from a cryptographically secure source.
        """

    @abc.abstractmethod
    def hash(self, algorithm, data):
        """
        Hash ``data`` with the named algorithm (``"SHA-256"``, ``"SHA-384"``, ``"SHA-512"``).

        Returns:
            bytes: The digest.
        """


class SystemRandomness(RandomnessProvider):
    """
    Default provider: OpenSSL's CSPRNG through petlib, and :py:mod:`hashlib`.
    """

    def random_scalar(self, order):
        return int(ensure_bn(order).random())

    def hash(self, algorithm, data):
        try:
            hash_fn = HASH_ALGORITHMS[algorithm]
        except KeyError:
            raise ValueError("Unsupported hash algorithm: {!r}".format(algorithm))
        return hash_fn(data).digest()
