r"""
Range proof: ZK proof that a committed value lies within a range.

.. math::

    PK \{ (r, x): \underbrace{C = x G + r H}_{Commitment} \land \underbrace{l \leq x < u}_{Range} \}

This module implements a Schoenmakers' range proof, a conjuction of or-proofs for each bit of the
value. A generic range :math:`[l, u)` is reduced to two power-of-two ranges: :math:`x - l` and
:math:`x - l + 2^k - (u - l)` must both fit in :math:`k` bits.

See "`Efficient Protocols for Set Membership and Range Proofs`_" by Camenisch et al., 2008.

.. _`Efficient Protocols for Set Membership and Range Proofs`:
    https://infoscience.epfl.ch/record/128718/files/CCS08.pdf

>>> from idzk.curves import get_curve
>>> from idzk.ec import CurveArithmetic
>>> from idzk.randomness import SystemRandomness
>>> from idzk.sigma import SigmaProtocolManager
>>> manager = SigmaProtocolManager(CurveArithmetic(get_curve("secp256k1")), SystemRandomness())
>>> proof = prove_range(manager, 3, 0, 5, "SHA-512", b"context")
>>> verify_range(manager, proof, b"context")
True
"""

import logging

from idzk.composition import OrProver, verify_or
from idzk.ec import encode_scalar
from idzk.exceptions import FalseStatementError, RandomnessUnavailableError, VerificationError
from idzk.records import BitDecomposition, RangeProof


logger = logging.getLogger(__name__)


def decompose_into_n_bits(value, n):
    """
    Array of bits, least significant bit first

    >>> decompose_into_n_bits(6, 4)
    [0, 1, 1, 0]
    """
    if value < 0:
        raise ValueError("Can't represent negative values")

    base = [(value >> b) & 1 for b in range(value.bit_length())]

    extra_bits = n - len(base)
    if extra_bits < 0:
        raise ValueError("Not enough bits to represent value")

    return base + [0] * extra_bits


def range_parameters(lower, upper):
    """
    Number of bits and the offsets of the two power-of-two decompositions for :math:`[l, u)`.

    >>> range_parameters(18, 151)
    (8, (0, 123))
    >>> range_parameters(0, 16)
    (4, (0, 0))
    """
    span = upper - lower
    if span <= 0:
        raise ValueError("Empty range [{}, {})".format(lower, upper))
    num_bits = (span - 1).bit_length()
    offset = 2 ** num_bits - span
    return num_bits, (0, offset)


class PowerTwoRangeProver:
    r"""
    Prover for :math:`PK \{ (r, w): T = w G + r H \land 0 \leq w < 2^k \}`.

    Args:
        manager (:py:class:`idzk.sigma.SigmaProtocolManager`): Protocol helper.
        g: First commitment base point :math:`G`
        h: Second commitment base point :math:`H`
        num_bits: The number of bits :math:`k`
        value: The shifted value :math:`w`
        randomizer: Randomizer of the commitment :math:`r`
    """

    def __init__(self, manager, g, h, num_bits, value, randomizer):
        self.manager = manager
        self.g = g
        self.h = h
        self.num_bits = num_bits
        self.bits = decompose_into_n_bits(value, num_bits)
        self.randomizer = randomizer
        self.bit_commitments = None
        self.rand = None
        self.or_provers = None

    def precommit(self):
        """
        Commit to the bit-decomposition of the value.
        """
        arithmetic = self.manager.arithmetic
        order = self.manager.order
        randomizers = [self.manager.random_scalar() for _ in range(self.num_bits)]

        self.bit_commitments = [
            arithmetic.linear_combination([b, alpha], [self.g, self.h])
            for b, alpha in zip(self.bits, randomizers)
        ]

        # Compute revealed randomizer
        rand = 0
        for i, alpha in enumerate(randomizers):
            rand = (rand + alpha * 2 ** i) % order
        self.rand = (rand - self.randomizer) % order

        minus_g = arithmetic.scalar_multiply(self.g, order - 1)
        self.or_provers = [
            OrProver(
                self.manager,
                self.h,
                [com, arithmetic.point_add(com, minus_g)],
                bit,
                alpha,
            )
            for com, bit, alpha in zip(self.bit_commitments, self.bits, randomizers)
        ]
        return self.bit_commitments, self.rand

    def commit(self):
        return [prover.commit() for prover in self.or_provers]

    def compute_response(self, challenge):
        return [prover.compute_response(challenge) for prover in self.or_provers]


def _shift(arithmetic, point, g, amount):
    return arithmetic.point_add(point, arithmetic.scalar_multiply(g, amount))


def _challenge(manager, hash_function, com, g, h, lower, upper, num_bits, decompositions, ctx):
    return manager.challenge(
        hash_function,
        com,
        g,
        h,
        str(lower),
        str(upper),
        num_bits,
        [
            [d.offset, d.rand, list(d.bit_commitments), [list(p) for p in d.branch_commitments]]
            for d in decompositions
        ],
        context_digest=ctx,
    )


def prove_range(manager, value, lower, upper, hash_function, context, randomizer=None):
    """
    Commit to ``value`` and prove that ``lower <= value < upper``.

    Args:
        manager (:py:class:`idzk.sigma.SigmaProtocolManager`): Protocol helper.
        value: The secret value.
        lower: Inclusive lower bound.
        upper: Exclusive upper bound.
        hash_function: Name of the challenge hash.
        context (bytes): Canonical statement context the proof is bound to.
        randomizer: Commitment randomizer; drawn fresh if omitted.

    Raises:
        FalseStatementError: If the value is outside of the range.
    """
    manager.require_sound()
    arithmetic = manager.arithmetic
    value, lower, upper = int(value), int(lower), int(upper)

    num_bits, offsets = range_parameters(lower, upper)
    if not lower <= value < upper:
        raise FalseStatementError("Value outside of range [{}, {})".format(lower, upper))

    g = arithmetic.generator()
    h = arithmetic.pedersen_h()
    if randomizer is None:
        randomizer = manager.random_scalar()
    com = arithmetic.linear_combination([value, randomizer], [g, h])

    provers = [
        PowerTwoRangeProver(manager, g, h, num_bits, value - lower + offset, randomizer)
        for offset in offsets
    ]
    precommitments = [prover.precommit() for prover in provers]
    commitments = [prover.commit() for prover in provers]

    headers = [
        BitDecomposition(
            offset=offset,
            rand=encode_scalar(rand),
            bit_commitments=[arithmetic.encode_point(c) for c in bit_coms],
            branch_commitments=[[arithmetic.encode_point(a) for a in pair] for pair in coms],
            branch_challenges=[],
            responses=[],
        )
        for offset, (bit_coms, rand), coms in zip(offsets, precommitments, commitments)
    ]

    ctx = manager.context_digest(hash_function, context)
    challenge = _challenge(manager, hash_function, com, g, h, lower, upper, num_bits, headers, ctx)

    decompositions = []
    for header, prover in zip(headers, provers):
        answers = prover.compute_response(challenge)
        decompositions.append(
            BitDecomposition(
                offset=header.offset,
                rand=header.rand,
                bit_commitments=header.bit_commitments,
                branch_commitments=header.branch_commitments,
                branch_challenges=[[encode_scalar(c) for c in chals] for chals, _ in answers],
                responses=[[encode_scalar(z) for z in resps] for _, resps in answers],
            )
        )

    return RangeProof(
        commitment=arithmetic.encode_point(com),
        g=arithmetic.encode_point(g),
        h=arithmetic.encode_point(h),
        lower=lower,
        upper=upper,
        num_bits=num_bits,
        decompositions=decompositions,
        challenge=encode_scalar(challenge),
        curve=manager.curve_name,
        hash_function=hash_function,
        context=ctx,
    )


def verify_range(manager, proof, context=None):
    """
    Verify a range proof.

    Args:
        manager (:py:class:`idzk.sigma.SigmaProtocolManager`): Protocol helper.
        proof (:py:class:`idzk.records.RangeProof`): The proof.
        context (bytes): If given, the proof must be bound to this statement context.

    Returns:
        bool: False for invalid or malformed proofs. Never raises.
    """
    if not manager.arithmetic.sound:
        return False
    try:
        return _verify_range(manager, proof, context)
    except (VerificationError, RandomnessUnavailableError, TypeError, ValueError) as e:
        logger.debug("Rejecting malformed range proof: %s", e)
        return False


def _verify_range(manager, proof, context):
    arithmetic = manager.arithmetic
    order = manager.order
    manager.check_curve(proof)
    if context is not None and manager.context_digest(proof.hash_function, context) != proof.context:
        return False

    com = arithmetic.decode_point(proof.commitment)
    g = arithmetic.decode_point(proof.g)
    h = arithmetic.decode_point(proof.h)
    lower, upper = int(proof.lower), int(proof.upper)
    if proof.lower != str(lower) or proof.upper != str(upper):
        return False
    num_bits, offsets = range_parameters(lower, upper)
    if proof.num_bits != num_bits or len(proof.decompositions) != len(offsets):
        return False

    challenge = manager.decode_scalar(proof.challenge)
    expected = _challenge(
        manager,
        proof.hash_function,
        com,
        g,
        h,
        lower,
        upper,
        num_bits,
        proof.decompositions,
        proof.context,
    )
    if challenge != expected:
        return False

    minus_g = arithmetic.scalar_multiply(g, order - 1)
    shifted = _shift(arithmetic, com, g, -lower)
    for offset, decomposition in zip(offsets, proof.decompositions):
        if decomposition.offset != str(offset):
            return False
        parts = (
            decomposition.bit_commitments,
            decomposition.branch_commitments,
            decomposition.branch_challenges,
            decomposition.responses,
        )
        if any(len(part) != num_bits for part in parts):
            return False

        # Combine bit commitments into value commitment
        bit_coms = [arithmetic.decode_point(c) for c in decomposition.bit_commitments]
        combined = arithmetic.linear_combination([2 ** i for i in range(num_bits)], bit_coms)
        target = arithmetic.point_add(
            _shift(arithmetic, shifted, g, offset),
            arithmetic.scalar_multiply(h, manager.decode_scalar(decomposition.rand)),
        )
        if combined != target:
            return False

        for bit_com, coms, chals, resps in zip(bit_coms, *parts[1:]):
            if not verify_or(
                manager,
                h,
                [bit_com, arithmetic.point_add(bit_com, minus_g)],
                [arithmetic.decode_point(a) for a in coms],
                [manager.decode_scalar(c) for c in chals],
                [manager.decode_scalar(z) for z in resps],
                challenge,
            ):
                return False
    return True
