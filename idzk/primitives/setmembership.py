r"""
Set membership: ZK proof that a committed value is one of a public list.

.. math::

    PK \{ r: \bigvee_j C - s_j G = r H \}

For each member :math:`s_j` the verifier forms :math:`D_j = C - s_j G`. Only the branch of the
committed member has a known discrete logarithm with respect to :math:`H`; all the others are
simulated.

>>> from idzk.curves import get_curve
>>> from idzk.ec import CurveArithmetic
>>> from idzk.randomness import SystemRandomness
>>> from idzk.sigma import SigmaProtocolManager
>>> manager = SigmaProtocolManager(CurveArithmetic(get_curve("secp256k1")), SystemRandomness())
>>> members = ["passport", "driver_license"]
>>> proof = prove_membership(manager, "passport", members, "SHA-256", b"context")
>>> verify_membership(manager, proof, b"context")
True
"""

import logging

from idzk.composition import OrProver, verify_or
from idzk.ec import encode_scalar
from idzk.exceptions import FalseStatementError, RandomnessUnavailableError, VerificationError
from idzk.records import SetMembershipProof


logger = logging.getLogger(__name__)


def _branch_targets(manager, com, g, members):
    arithmetic = manager.arithmetic
    return [
        arithmetic.point_add(
            com, arithmetic.scalar_multiply(g, -manager.attribute_scalar(member))
        )
        for member in members
    ]


def _challenge(manager, hash_function, com, g, h, members, commitments, ctx):
    return manager.challenge(
        hash_function, com, g, h, list(members), list(commitments), context_digest=ctx
    )


def prove_membership(manager, value, members, hash_function, context, randomizer=None):
    """
    Commit to ``value`` and prove it is one of ``members``.

    Args:
        manager (:py:class:`idzk.sigma.SigmaProtocolManager`): Protocol helper.
        value: The secret value.
        members: The public list of accepted values.
        hash_function: Name of the challenge hash.
        context (bytes): Canonical statement context the proof is bound to.
        randomizer: Commitment randomizer; drawn fresh if omitted.

    Raises:
        FalseStatementError: If the value is not a member.
    """
    manager.require_sound()
    arithmetic = manager.arithmetic
    members = [str(m).strip() for m in members]
    if not members:
        raise FalseStatementError("Empty member set")

    secret = manager.attribute_scalar(value)
    scalars = [manager.attribute_scalar(m) for m in members]
    try:
        true_idx = scalars.index(secret)
    except ValueError:
        raise FalseStatementError("Value is not in the member set")

    g = arithmetic.generator()
    h = arithmetic.pedersen_h()
    if randomizer is None:
        randomizer = manager.random_scalar()
    com = arithmetic.linear_combination([secret, randomizer], [g, h])

    prover = OrProver(manager, h, _branch_targets(manager, com, g, members), true_idx, randomizer)
    commitments = [arithmetic.encode_point(a) for a in prover.commit()]

    ctx = manager.context_digest(hash_function, context)
    challenge = _challenge(manager, hash_function, com, g, h, members, commitments, ctx)
    challenges, responses = prover.compute_response(challenge)

    return SetMembershipProof(
        commitment=arithmetic.encode_point(com),
        g=arithmetic.encode_point(g),
        h=arithmetic.encode_point(h),
        members=members,
        branch_commitments=commitments,
        branch_challenges=[encode_scalar(c) for c in challenges],
        responses=[encode_scalar(z) for z in responses],
        challenge=encode_scalar(challenge),
        curve=manager.curve_name,
        hash_function=hash_function,
        context=ctx,
    )


def verify_membership(manager, proof, context=None):
    """
    Verify a set-membership proof.

    Returns:
        bool: False for invalid or malformed proofs. Never raises.
    """
    if not manager.arithmetic.sound:
        return False
    try:
        manager.check_curve(proof)
        if context is not None and manager.context_digest(proof.hash_function, context) != proof.context:
            return False
        arithmetic = manager.arithmetic
        com = arithmetic.decode_point(proof.commitment)
        g = arithmetic.decode_point(proof.g)
        h = arithmetic.decode_point(proof.h)
        challenge = manager.decode_scalar(proof.challenge)
        expected = _challenge(
            manager,
            proof.hash_function,
            com,
            g,
            h,
            proof.members,
            proof.branch_commitments,
            proof.context,
        )
        if not proof.members or challenge != expected:
            return False
        return verify_or(
            manager,
            h,
            _branch_targets(manager, com, g, proof.members),
            [arithmetic.decode_point(a) for a in proof.branch_commitments],
            [manager.decode_scalar(c) for c in proof.branch_challenges],
            [manager.decode_scalar(z) for z in proof.responses],
            challenge,
        )
    except (VerificationError, RandomnessUnavailableError, TypeError, ValueError) as e:
        logger.debug("Rejecting malformed set-membership proof: %s", e)
        return False
