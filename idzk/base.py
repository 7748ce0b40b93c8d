"""
Common classes, including single-use nonces and subclassable interactive provers and verifiers.
"""

import abc
import threading

import attr
import msgpack

from idzk.exceptions import NonceReuseError


class Nonce:
    """
    Secret randomizer behind a sigma-protocol commitment. It can be consumed exactly once.

    >>> k = Nonce(42)
    >>> k.consume()
    42
    >>> k.consume()
    Traceback (most recent call last):
    ...
    idzk.exceptions.NonceReuseError: Nonce already consumed
    """

    __slots__ = ("_value", "_lock")

    def __init__(self, value):
        self._value = value
        self._lock = threading.Lock()

    @property
    def consumed(self):
        return self._value is None

    def consume(self):
        with self._lock:
            if self._value is None:
                raise NonceReuseError("Nonce already consumed")
            value, self._value = self._value, None
        return value

    def __repr__(self):
        return "Nonce(<consumed>)" if self.consumed else "Nonce(<hidden>)"


@attr.s
class SimulationTranscript:
    """
    Simulated proof transcript: the response and challenge are picked first and the commitment
    is solved for.
    """

    commitment = attr.ib()
    challenge = attr.ib()
    response = attr.ib()


def _encode_element(elem):
    if isinstance(elem, (str, bytes)):
        return elem
    if isinstance(elem, int):
        return "{:x}".format(elem)
    if isinstance(elem, (list, tuple)):
        return [_encode_element(e) for e in elem]
    raise TypeError("Cannot hash element of type {}".format(type(elem).__name__))


def build_fiat_shamir_challenge(hash_fn, algorithm, order, *elements, context_digest=""):
    """Generate a Fiat-Shamir challenge.

    Elements are packed with msgpack, so the encoding is length-prefixed and unambiguous.

    >>> import hashlib
    >>> h = lambda alg, data: hashlib.sha256(data).digest()
    >>> c = build_fiat_shamir_challenge(h, "SHA-256", 101, "a:b", 7)
    >>> 0 <= c < 101
    True
    >>> c == build_fiat_shamir_challenge(h, "SHA-256", 101, "a:b", 7, context_digest="ff")
    False

    Args:
        hash_fn: Callable ``(algorithm, data) -> digest``.
        algorithm: Hash algorithm name.
        order: Group order; the challenge is reduced modulo it.
        elements: Items to hash (encoded points, scalars, strings).
        context_digest: Digest of the full public statement.
    """
    payload = msgpack.packb(
        [_encode_element(e) for e in elements] + [context_digest], use_bin_type=True
    )
    digest = hash_fn(algorithm, payload)
    return int.from_bytes(digest, "big") % order


class Prover(metaclass=abc.ABCMeta):
    """
    Abstract interface representing the prover of an interactive sigma protocol.

    Args:
        manager (:py:class:`idzk.sigma.SigmaProtocolManager`): Protocol helper for the curve.
    """

    def __init__(self, manager):
        self.manager = manager

    @abc.abstractmethod
    def commit(self):
        """
        Draw fresh nonces and return the commitment.
        """

    @abc.abstractmethod
    def compute_response(self, challenge):
        """
        Compute the response to a challenge. Consumes the nonces drawn in :py:meth:`commit`.
        """


class Verifier(metaclass=abc.ABCMeta):
    """
    Abstract interface representing the verifier of an interactive sigma protocol.
    """

    def __init__(self, manager):
        self.manager = manager
        self.commitment = None
        self.challenge = None

    def send_challenge(self, commitment):
        """
        Store the received commitment and draw a random challenge.
        """
        self.commitment = commitment
        self.challenge = self.manager.interactive_challenge()
        return self.challenge

    @abc.abstractmethod
    def check_response(self, response):
        """
        Check the verification equation for the stored commitment and challenge.
        """

    def verify(self, response):
        """
        Verify the response of an interactive sigma protocol.

        Returns:
            bool: True if verification succeeded, False otherwise.
        """
        if self.commitment is None or self.challenge is None:
            return False
        return self.check_response(response)
