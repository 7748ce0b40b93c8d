import inspect
import warnings

import pytest

import idzk.composition
from idzk.base import Nonce
from idzk.composition import OrProver, OrVerifier, _find_residual_challenge, verify_or
from idzk.exceptions import FalseStatementError, NonceReuseError
from idzk.utils.debug import SigmaProtocol


@pytest.fixture
def branches(arithmetic):
    h = arithmetic.pedersen_h()
    secrets = [11, 22, 33]
    return h, [arithmetic.scalar_multiply(h, s) for s in secrets], secrets


def test_residual_challenge_wraps():
    assert _find_residual_challenge([7, 8], 3, 11) == (3 - 15) % 11


@pytest.mark.parametrize("true_idx", [0, 1, 2])
def test_or_proof_interactive(manager, branches, true_idx):
    base, targets, secrets = branches
    prover = OrProver(manager, base, targets, true_idx, secrets[true_idx])
    verifier = OrVerifier(manager, base, targets)
    assert SigmaProtocol(verifier, prover).verify()


def test_or_proof_wrong_witness(manager, branches):
    base, targets, _ = branches
    with pytest.raises(FalseStatementError):
        OrProver(manager, base, targets, 0, 12)


def test_or_proof_rejects_modified_transcript(manager, branches):
    base, targets, secrets = branches
    prover = OrProver(manager, base, targets, 1, secrets[1])
    commitments = prover.commit()
    challenge = manager.interactive_challenge()
    challenges, responses = prover.compute_response(challenge)

    assert verify_or(manager, base, targets, commitments, challenges, responses, challenge)

    shifted = list(challenges)
    shifted[0] = (shifted[0] + 1) % manager.order
    shifted[1] = (shifted[1] - 1) % manager.order
    assert not verify_or(manager, base, targets, commitments, shifted, responses, challenge)
    assert not verify_or(manager, base, targets, commitments, challenges, responses, challenge + 1)
    assert not verify_or(manager, base, targets[:2], commitments, challenges, responses, challenge)


def test_or_prover_nonce_single_use(manager, branches):
    base, targets, secrets = branches
    prover = OrProver(manager, base, targets, 2, secrets[2])
    prover.commit()
    prover.compute_response(5)
    with pytest.raises(NonceReuseError):
        prover.compute_response(6)


def test_verifier_without_commitment(manager, branches):
    base, targets, _ = branches
    assert not OrVerifier(manager, base, targets).verify(([], []))


def test_nonce_repr_hides_value():
    k = Nonce(123456)
    assert "123456" not in repr(k)
    k.consume()
    assert k.consumed


def test_source_compiles_without_warnings():
    source = inspect.getsource(idzk.composition)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, idzk.composition.__file__, "exec")
