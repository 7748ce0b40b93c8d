r"""
Schnorr proof of knowledge of a discrete logarithm.

.. math::
    PK\{ x: Y = x G \}

The prover draws a fresh nonce :math:`k`, sends :math:`R = k G`, gets the challenge
:math:`c = H(R \| G \| Y \| ctx)` and answers :math:`s = k + c x \bmod n`. The verifier recomputes
:math:`c` and checks :math:`s G = R + c Y`.

Example:

>>> from idzk.curves import get_curve
>>> from idzk.ec import CurveArithmetic
>>> from idzk.randomness import SystemRandomness
>>> from idzk.sigma import SigmaProtocolManager
>>> manager = SigmaProtocolManager(CurveArithmetic(get_curve("secp256k1")), SystemRandomness())
>>> g = manager.arithmetic.generator()
>>> y = manager.arithmetic.scalar_multiply(g, 42)
>>> schnorr = SchnorrProofGenerator(manager)
>>> proof = schnorr.generate(g, y, 42, b"context")
>>> schnorr.verify(proof, b"context")
True
>>> schnorr.verify(proof, b"another context")
False
"""

import logging

from idzk.base import Prover, Verifier
from idzk.ec import encode_scalar
from idzk.exceptions import FalseStatementError, RandomnessUnavailableError, VerificationError
from idzk.records import SchnorrProof


logger = logging.getLogger(__name__)


class SchnorrProofGenerator:
    """
    Non-interactive Schnorr proofs on one curve.

    Args:
        manager (:py:class:`idzk.sigma.SigmaProtocolManager`): Protocol helper for the curve.
    """

    def __init__(self, manager):
        self.manager = manager

    def generate(self, generator, public_key, secret, context, hash_function="SHA-256"):
        """
        Prove knowledge of ``secret`` with ``public_key = secret * generator``.

        Args:
            generator: Base point :math:`G`.
            public_key: :math:`Y`.
            secret: :math:`x`.
            context (bytes): Canonical statement context the proof is bound to.
            hash_function: Name of the challenge hash.

        Raises:
            FalseStatementError: If :math:`Y \neq x G`.
        """
        manager = self.manager
        manager.require_sound()
        arithmetic = manager.arithmetic

        secret = int(secret) % manager.order
        if arithmetic.scalar_multiply(generator, secret) != public_key:
            raise FalseStatementError("Secret does not match the public key")

        ctx = manager.context_digest(hash_function, context)
        (nonce,), commitment = manager.commit(generator)
        challenge = manager.challenge(
            hash_function, commitment, generator, public_key, context_digest=ctx
        )
        response = manager.compute_response(nonce, challenge, secret)

        return SchnorrProof(
            commitment=arithmetic.encode_point(commitment),
            challenge=encode_scalar(challenge),
            response=encode_scalar(response),
            public_key=arithmetic.encode_point(public_key),
            generator=arithmetic.encode_point(generator),
            curve=manager.curve_name,
            order=encode_scalar(manager.order),
            hash_function=hash_function,
            context=ctx,
        )

    def verify(self, proof, context=None):
        """
        Verify a Schnorr proof.

        Args:
            proof (:py:class:`idzk.records.SchnorrProof`): The proof.
            context (bytes): If given, the proof must be bound to this statement context.

        Returns:
            bool: False for invalid or malformed proofs. Never raises.
        """
        manager = self.manager
        if not manager.arithmetic.sound:
            return False
        try:
            manager.check_curve(proof)
            if proof.order != encode_scalar(manager.order):
                return False
            if context is not None and manager.context_digest(proof.hash_function, context) != proof.context:
                return False
            g = manager.arithmetic.decode_point(proof.generator)
            y = manager.arithmetic.decode_point(proof.public_key)
            r = manager.arithmetic.decode_point(proof.commitment)
            c = manager.decode_scalar(proof.challenge)
            s = manager.decode_scalar(proof.response)
            expected = manager.challenge(proof.hash_function, r, g, y, context_digest=proof.context)
        except (VerificationError, RandomnessUnavailableError, TypeError, ValueError) as e:
            logger.debug("Rejecting malformed Schnorr proof: %s", e)
            return False
        return c == expected and manager.check_equation([g], [s], r, c, y)


class SchnorrProver(Prover):
    """
    Interactive Schnorr prover.
    """

    def __init__(self, manager, generator, public_key, secret):
        super().__init__(manager)
        self.generator = generator
        self.public_key = public_key
        self.secret = int(secret) % manager.order
        self.nonce = None

    def commit(self):
        (self.nonce,), commitment = self.manager.commit(self.generator)
        return commitment

    def compute_response(self, challenge):
        return self.manager.compute_response(self.nonce, challenge, self.secret)


class SchnorrVerifier(Verifier):
    """
    Interactive Schnorr verifier.
    """

    def __init__(self, manager, generator, public_key):
        super().__init__(manager)
        self.generator = generator
        self.public_key = public_key

    def check_response(self, response):
        return self.manager.check_equation(
            [self.generator], [response], self.commitment, self.challenge, self.public_key
        )
