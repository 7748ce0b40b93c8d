r"""
Sigma protocols and the Fiat-Shamir transform.

:py:class:`SigmaProtocolManager` runs the three moves of a sigma protocol for

.. math::
    PK\{ x: Y = x G \}

on a chosen curve: commitment :math:`A = k G` with a fresh single-use nonce :math:`k`, challenge
:math:`c = H(A \| G \| Y \| ctx)` where :math:`ctx` is the digest of the full public statement,
and response :math:`z = k + c x \bmod n`. It also packages transcripts as standalone Fiat-Shamir
records that can be re-checked without the engine.

>>> from idzk.curves import get_curve
>>> from idzk.ec import CurveArithmetic
>>> from idzk.randomness import SystemRandomness
>>> manager = SigmaProtocolManager(CurveArithmetic(get_curve("secp256k1")), SystemRandomness())
>>> g = manager.arithmetic.generator()
>>> y = manager.arithmetic.scalar_multiply(g, 7)
>>> sigma = manager.prove_sigma("discrete_log", g, y, 7, "y = g^x", b"context")
>>> manager.verify_sigma(sigma)
True
>>> manager.verify_fiat_shamir(manager.fiat_shamir_transform(sigma, "discrete_log"))
True
"""

import logging

from idzk.base import Nonce, SimulationTranscript, build_fiat_shamir_challenge
from idzk.consts import ATTRIBUTE_LABEL, HASH_FUNCTIONS, TRANSFORM_TYPES
from idzk.ec import decode_scalar, encode_scalar
from idzk.exceptions import (
    FalseStatementError,
    InsecureArithmeticError,
    RandomnessUnavailableError,
    UnsupportedStatementError,
    VerificationError,
)
from idzk.records import FiatShamirProof, SigmaProtocolProof
from idzk.utils import parse_int_literal


logger = logging.getLogger(__name__)


def hash_function_for(statement_type):
    try:
        return HASH_FUNCTIONS[statement_type]
    except KeyError:
        raise UnsupportedStatementError(
            "Unsupported statement type: {!r}".format(statement_type)
        )


def transform_type_for(statement_type):
    try:
        return TRANSFORM_TYPES[statement_type]
    except KeyError:
        raise UnsupportedStatementError(
            "Unsupported statement type: {!r}".format(statement_type)
        )


class SigmaProtocolManager:
    """
    Commit, challenge and response helper for one curve.

    Args:
        arithmetic: :py:class:`idzk.ec.CurveArithmetic` of the curve.
        randomness (:py:class:`idzk.randomness.RandomnessProvider`): Source of nonces and hashes.
    """

    def __init__(self, arithmetic, randomness):
        self.arithmetic = arithmetic
        self.randomness = randomness

    @property
    def order(self):
        return self.arithmetic.order

    @property
    def curve_name(self):
        return self.arithmetic.curve_name

    def require_sound(self):
        """
        Refuse to go on if the arithmetic is the non-cryptographic fallback.
        """
        if not self.arithmetic.sound:
            raise InsecureArithmeticError(
                "No sound curve arithmetic available for {}".format(self.curve_name)
            )

    def random_scalar(self):
        """
        Draw a uniform scalar in :math:`[1, n-1]`.
        """
        while True:
            try:
                value = int(self.randomness.random_scalar(self.order))
            except Exception as e:
                raise RandomnessUnavailableError("Randomness source failed: {}".format(e)) from e
            if not 0 <= value < self.order:
                raise RandomnessUnavailableError("Randomness source returned an unreduced scalar")
            if value != 0:
                return value

    def hash(self, algorithm, data):
        try:
            return self.randomness.hash(algorithm, data)
        except Exception as e:
            raise RandomnessUnavailableError("Hash function {} failed: {}".format(algorithm, e)) from e

    def context_digest(self, algorithm, context):
        """
        Hex digest of the canonical statement context.
        """
        return self.hash(algorithm, context).hex()

    def attribute_scalar(self, value):
        """
        Map a public attribute to a scalar: integer literals map to themselves, anything else is
        hashed under a fixed domain-separation label.
        """
        literal = parse_int_literal(value)
        if literal is not None:
            return literal % self.order
        digest = self.hash("SHA-256", ATTRIBUTE_LABEL + str(value).strip().encode("utf-8"))
        return int.from_bytes(digest, "big") % self.order

    def _encode(self, elem):
        if isinstance(elem, (str, bytes, int, list, tuple)):
            return elem
        return self.arithmetic.encode_point(elem)

    def challenge(self, algorithm, *elements, context_digest=""):
        """
        Non-interactive challenge over points, scalars and strings, bound to the statement digest.
        """
        return build_fiat_shamir_challenge(
            self.hash,
            algorithm,
            self.order,
            *[self._encode(e) for e in elements],
            context_digest=context_digest
        )

    def interactive_challenge(self):
        """
        Verifier-chosen random challenge for interactive runs.
        """
        return self.random_scalar()

    def commit(self, *bases):
        """
        Draw one fresh nonce per base and compute :math:`A = k_0 B_0 + ... + k_m B_m`.

        Returns:
            tuple: The list of :py:class:`idzk.base.Nonce` and the commitment.
        """
        values = [self.random_scalar() for _ in bases]
        commitment = self.arithmetic.linear_combination(values, bases)
        return [Nonce(v) for v in values], commitment

    def compute_response(self, nonce, challenge, secret):
        """
        :math:`z = k + c x \\bmod n`. Consumes the nonce.
        """
        k = nonce.consume()
        return (k + challenge * secret) % self.order

    def simulate(self, base, target, challenge=None):
        """
        Simulate a transcript for :math:`PK\\{ x: T = x B \\}` without knowing :math:`x`.

        The response (and the challenge, unless given) are drawn first and the commitment is
        solved for: :math:`A = z B - c T`.
        """
        if challenge is None:
            challenge = self.random_scalar()
        response = self.random_scalar()
        commitment = self.arithmetic.point_add(
            self.arithmetic.scalar_multiply(base, response),
            self.arithmetic.scalar_multiply(target, (-challenge) % self.order),
        )
        return SimulationTranscript(commitment=commitment, challenge=challenge, response=response)

    def check_equation(self, bases, responses, commitment, challenge, target):
        """
        Check :math:`z_0 B_0 + ... + z_m B_m = A + c T`.
        """
        lhs = self.arithmetic.linear_combination(responses, bases)
        rhs = self.arithmetic.point_add(
            commitment, self.arithmetic.scalar_multiply(target, challenge)
        )
        return lhs == rhs

    def decode_scalar(self, text):
        return decode_scalar(text, self.order)

    def check_curve(self, record):
        if record.curve != self.curve_name:
            raise VerificationError(
                "Record is for curve {}, not {}".format(record.curve, self.curve_name)
            )

    def prove_sigma(self, statement_type, generator, public_value, secret, relation, context):
        """
        Generate a non-interactive sigma-protocol transcript for :math:`Y = x G`.

        Raises:
            FalseStatementError: If :math:`Y \\neq x G`.
        """
        self.require_sound()
        algorithm = hash_function_for(statement_type)
        secret = int(secret) % self.order
        if self.arithmetic.scalar_multiply(generator, secret) != public_value:
            raise FalseStatementError("Secret is not the discrete logarithm of the public value")

        ctx = self.context_digest(algorithm, context)
        (nonce,), commitment = self.commit(generator)
        challenge = self.challenge(
            algorithm, commitment, generator, public_value, relation, context_digest=ctx
        )
        response = self.compute_response(nonce, challenge, secret)

        return SigmaProtocolProof(
            commitment=self.arithmetic.encode_point(commitment),
            challenge=encode_scalar(challenge),
            response=encode_scalar(response),
            statement=relation,
            generator=self.arithmetic.encode_point(generator),
            public_value=self.arithmetic.encode_point(public_value),
            order=encode_scalar(self.order),
            curve=self.curve_name,
            hash_function=algorithm,
            context=ctx,
        )

    def verify_sigma(self, proof, context=None):
        """
        Verify a sigma-protocol transcript.

        Args:
            proof (:py:class:`idzk.records.SigmaProtocolProof`): The transcript.
            context (bytes): If given, the transcript must be bound to this statement context.

        Returns:
            bool: Never raises on malformed input.
        """
        if not self.arithmetic.sound:
            return False
        try:
            self.check_curve(proof)
            if proof.order != encode_scalar(self.order):
                return False
            if context is not None and self.context_digest(proof.hash_function, context) != proof.context:
                return False
            g = self.arithmetic.decode_point(proof.generator)
            y = self.arithmetic.decode_point(proof.public_value)
            a = self.arithmetic.decode_point(proof.commitment)
            c = self.decode_scalar(proof.challenge)
            z = self.decode_scalar(proof.response)
            expected = self.challenge(
                proof.hash_function, a, g, y, proof.statement, context_digest=proof.context
            )
        except (VerificationError, RandomnessUnavailableError, TypeError, ValueError) as e:
            logger.debug("Rejecting malformed sigma transcript: %s", e)
            return False
        return c == expected and self.check_equation([g], [z], a, c, y)

    def fiat_shamir_transform(self, sigma_proof, statement_type):
        """
        Package a sigma transcript as a standalone Fiat-Shamir record.
        """
        return FiatShamirProof(
            commitment=sigma_proof.commitment,
            challenge=sigma_proof.challenge,
            response=sigma_proof.response,
            hash_function=sigma_proof.hash_function,
            transform_type=transform_type_for(statement_type),
            statement=sigma_proof.statement,
            generator=sigma_proof.generator,
            public_value=sigma_proof.public_value,
            curve=sigma_proof.curve,
            context=sigma_proof.context,
        )

    def verify_fiat_shamir(self, proof, statement_type=None, relation=None, context=None):
        """
        Recompute the challenge of a Fiat-Shamir record and check its verification equation.

        Args:
            proof (:py:class:`idzk.records.FiatShamirProof`): The record.
            statement_type: If given, hash function and transform type must match it.
            relation: If given, the record must have been proved for this relation.
            context (bytes): If given, the record must be bound to this statement context.
        """
        try:
            if statement_type is not None:
                if proof.hash_function != hash_function_for(statement_type):
                    return False
                if proof.transform_type != transform_type_for(statement_type):
                    return False
        except UnsupportedStatementError:
            return False
        if relation is not None and proof.statement != relation:
            return False

        sigma = SigmaProtocolProof(
            commitment=proof.commitment,
            challenge=proof.challenge,
            response=proof.response,
            statement=proof.statement,
            generator=proof.generator,
            public_value=proof.public_value,
            order=encode_scalar(self.order),
            curve=proof.curve,
            hash_function=proof.hash_function,
            context=proof.context,
        )
        return self.verify_sigma(sigma, context=context)
