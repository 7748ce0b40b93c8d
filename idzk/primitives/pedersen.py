r"""
Pedersen commitments and proofs about their openings.

A commitment to :math:`m` with randomizer :math:`r` is :math:`C = m G + r H`, where :math:`H` is
hashed onto the curve so that nobody knows :math:`\log_G H`. Three proofs are supported:

- knowledge of an opening, :math:`PK\{ (m, r): C = m G + r H \}`,
- range, see :py:mod:`idzk.primitives.rangeproof`,
- set membership, see :py:mod:`idzk.primitives.setmembership`.

None of the records carries the opening.

>>> from idzk.curves import get_curve
>>> from idzk.ec import CurveArithmetic
>>> from idzk.randomness import SystemRandomness
>>> from idzk.sigma import SigmaProtocolManager
>>> manager = SigmaProtocolManager(CurveArithmetic(get_curve("secp256k1")), SystemRandomness())
>>> pedersen = PedersenProofGenerator(manager)
>>> proof = pedersen.generate_commitment_proof(42, context=b"context")
>>> pedersen.verify(proof, b"context")
True
"""

import logging

from idzk.base import Prover, Verifier
from idzk.ec import encode_scalar
from idzk.exceptions import FalseStatementError, RandomnessUnavailableError, VerificationError
from idzk.primitives.rangeproof import prove_range, verify_range
from idzk.primitives.setmembership import prove_membership, verify_membership
from idzk.records import PedersenCommitmentProof, RangeProof, SetMembershipProof


logger = logging.getLogger(__name__)


class PedersenProofGenerator:
    """
    Pedersen commitments and proofs on one curve.

    Args:
        manager (:py:class:`idzk.sigma.SigmaProtocolManager`): Protocol helper for the curve.
    """

    def __init__(self, manager):
        self.manager = manager

    @property
    def g(self):
        return self.manager.arithmetic.generator()

    @property
    def h(self):
        return self.manager.arithmetic.pedersen_h()

    def commit(self, message, randomizer):
        """
        Compute :math:`C = m G + r H`.
        """
        return self.manager.arithmetic.linear_combination(
            [int(message), int(randomizer)], [self.g, self.h]
        )

    def generate_commitment_proof(
        self, message, randomizer=None, commitment=None, context=b"", hash_function="SHA-384"
    ):
        """
        Prove knowledge of an opening of a commitment.

        Args:
            message: The committed value. Non-integer values are hashed to a scalar.
            randomizer: The commitment randomizer; drawn fresh if omitted.
            commitment: An existing commitment to prove an opening of. Computed if omitted.
            context (bytes): Canonical statement context the proof is bound to.
            hash_function: Name of the challenge hash.

        Raises:
            FalseStatementError: If ``commitment`` is not :math:`m G + r H`.
        """
        manager = self.manager
        manager.require_sound()
        arithmetic = manager.arithmetic
        g, h = self.g, self.h

        m = manager.attribute_scalar(message)
        r = manager.random_scalar() if randomizer is None else int(randomizer) % manager.order
        expected = self.commit(m, r)
        if commitment is None:
            commitment = expected
        elif commitment != expected:
            raise FalseStatementError("Opening does not match the commitment")

        ctx = manager.context_digest(hash_function, context)
        (k1, k2), announcement = manager.commit(g, h)
        challenge = manager.challenge(
            hash_function, announcement, commitment, g, h, context_digest=ctx
        )
        z1 = manager.compute_response(k1, challenge, m)
        z2 = manager.compute_response(k2, challenge, r)

        return PedersenCommitmentProof(
            commitment=arithmetic.encode_point(commitment),
            g=arithmetic.encode_point(g),
            h=arithmetic.encode_point(h),
            announcement=arithmetic.encode_point(announcement),
            challenge=encode_scalar(challenge),
            response1=encode_scalar(z1),
            response2=encode_scalar(z2),
            curve=manager.curve_name,
            hash_function=hash_function,
            context=ctx,
        )

    def generate_range_proof(self, value, upper, lower=0, context=b"", hash_function="SHA-512"):
        """
        Commit to ``value`` and prove ``lower <= value < upper``.
        """
        return prove_range(self.manager, value, lower, upper, hash_function, context)

    def generate_set_membership_proof(self, value, members, context=b"", hash_function="SHA-256"):
        """
        Commit to ``value`` and prove it is one of ``members``.
        """
        return prove_membership(self.manager, value, members, hash_function, context)

    def _verify_opening(self, proof, context):
        manager = self.manager
        arithmetic = manager.arithmetic
        try:
            manager.check_curve(proof)
            if context is not None and manager.context_digest(proof.hash_function, context) != proof.context:
                return False
            com = arithmetic.decode_point(proof.commitment)
            g = arithmetic.decode_point(proof.g)
            h = arithmetic.decode_point(proof.h)
            a = arithmetic.decode_point(proof.announcement)
            c = manager.decode_scalar(proof.challenge)
            z1 = manager.decode_scalar(proof.response1)
            z2 = manager.decode_scalar(proof.response2)
            expected = manager.challenge(proof.hash_function, a, com, g, h, context_digest=proof.context)
        except (VerificationError, RandomnessUnavailableError, TypeError, ValueError) as e:
            logger.debug("Rejecting malformed commitment proof: %s", e)
            return False
        return c == expected and manager.check_equation([g, h], [z1, z2], a, c, com)

    def verify(self, proof, context=None):
        """
        Verify any Pedersen proof record.

        The record's bases must be this curve's :math:`G` and :math:`H`.

        Returns:
            bool: False for invalid or malformed proofs. Never raises.
        """
        arithmetic = self.manager.arithmetic
        if not arithmetic.sound:
            return False
        if proof.g != arithmetic.encode_point(self.g) or proof.h != arithmetic.encode_point(self.h):
            return False

        if isinstance(proof, PedersenCommitmentProof):
            return self._verify_opening(proof, context)
        if isinstance(proof, RangeProof):
            return verify_range(self.manager, proof, context)
        if isinstance(proof, SetMembershipProof):
            return verify_membership(self.manager, proof, context)
        return False


class PedersenOpeningProver(Prover):
    """
    Interactive prover of knowledge of an opening :math:`(m, r)`.
    """

    def __init__(self, manager, message, randomizer):
        super().__init__(manager)
        self.message = int(message) % manager.order
        self.randomizer = int(randomizer) % manager.order
        self.nonces = None

    def commit(self):
        arithmetic = self.manager.arithmetic
        self.nonces, announcement = self.manager.commit(
            arithmetic.generator(), arithmetic.pedersen_h()
        )
        return announcement

    def compute_response(self, challenge):
        k1, k2 = self.nonces
        return (
            self.manager.compute_response(k1, challenge, self.message),
            self.manager.compute_response(k2, challenge, self.randomizer),
        )


class PedersenOpeningVerifier(Verifier):
    """
    Interactive verifier of knowledge of an opening of ``commitment``.
    """

    def __init__(self, manager, commitment):
        super().__init__(manager)
        self.commitment_value = commitment

    def check_response(self, response):
        arithmetic = self.manager.arithmetic
        return self.manager.check_equation(
            [arithmetic.generator(), arithmetic.pedersen_h()],
            list(response),
            self.commitment,
            self.challenge,
            self.commitment_value,
        )
