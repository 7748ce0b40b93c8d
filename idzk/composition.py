r"""
Or-composition of discrete-logarithm proofs.

.. math::
    PK\{ x: T_0 = x B \lor T_1 = x B \lor ... \lor T_m = x B \}

The prover knows the witness for one branch only. Every other branch is simulated ahead of time;
the real branch gets the residual challenge so that all branch challenges add up to the global
one.
"""

from idzk.base import Prover, Verifier
from idzk.exceptions import FalseStatementError
from idzk.utils import sum_scalars


def _find_residual_challenge(subchallenges, challenge, order):
    """
    Determine the complement to a global challenge in a list

    For example, to find :math:`c_1` such that :math:`c = c_1 + c_2 + c_3 \bmod n`, we compute
    :math:`c_2 + c_3 - c` and take the opposite.

    >>> _find_residual_challenge([3, 4], 10, 11)
    3
    """
    return (challenge - sum_scalars(subchallenges, order)) % order


class OrProver(Prover):
    r"""
    Prover for the or-proof.

    Args:
        manager (:py:class:`idzk.sigma.SigmaProtocolManager`): Protocol helper.
        base: The common base point :math:`B`.
        targets: The branch targets :math:`T_j`.
        true_idx: Index of the branch the witness is valid for.
        witness: :math:`x` with :math:`T_{true\_idx} = x B`.
    """

    def __init__(self, manager, base, targets, true_idx, witness):
        super().__init__(manager)
        self.base = base
        self.targets = list(targets)
        self.true_idx = true_idx
        self.witness = witness % manager.order
        if manager.arithmetic.scalar_multiply(base, self.witness) != self.targets[true_idx]:
            raise FalseStatementError("Witness does not open the chosen branch")

        self.simulations = {
            index: manager.simulate(base, target)
            for index, target in enumerate(self.targets)
            if index != true_idx
        }
        self.nonce = None

    def commit(self):
        """
        Commit on the real branch and gather the simulated commitments.
        """
        (self.nonce,), real = self.manager.commit(self.base)
        return [
            real if index == self.true_idx else self.simulations[index].commitment
            for index in range(len(self.targets))
        ]

    def compute_response(self, challenge):
        """
        Compute the residual challenge and the responses.

        Returns:
            tuple: The list of branch challenges and the list of responses, both ordered.
        """
        residual = _find_residual_challenge(
            [sim.challenge for sim in self.simulations.values()], challenge, self.manager.order
        )
        challenges = []
        responses = []
        for index in range(len(self.targets)):
            if index == self.true_idx:
                challenges.append(residual)
                responses.append(
                    self.manager.compute_response(self.nonce, residual, self.witness)
                )
            else:
                challenges.append(self.simulations[index].challenge)
                responses.append(self.simulations[index].response)
        return challenges, responses


def verify_or(manager, base, targets, commitments, challenges, responses, challenge):
    """
    Check an or-proof transcript.

    Branch challenges must add up to the global challenge and every branch must satisfy
    :math:`z_j B = A_j + c_j T_j`.
    """
    targets = list(targets)
    if not len(targets) == len(commitments) == len(challenges) == len(responses):
        return False
    if sum_scalars(challenges, manager.order) != challenge % manager.order:
        return False
    return all(
        manager.check_equation([base], [z], a, c, t)
        for t, a, c, z in zip(targets, commitments, challenges, responses)
    )


class OrVerifier(Verifier):
    """
    Interactive verifier for the or-proof.
    """

    def __init__(self, manager, base, targets):
        super().__init__(manager)
        self.base = base
        self.targets = list(targets)

    def check_response(self, response):
        challenges, responses = response
        return verify_or(
            self.manager,
            self.base,
            self.targets,
            self.commitment,
            challenges,
            responses,
            self.challenge,
        )
