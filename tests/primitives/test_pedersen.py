import attr
import pytest

from idzk.exceptions import FalseStatementError, InsecureArithmeticError
from idzk.primitives.pedersen import (
    PedersenOpeningProver,
    PedersenOpeningVerifier,
    PedersenProofGenerator,
)
from idzk.utils.debug import SigmaProtocol


def test_commitment_proof(manager):
    pedersen = PedersenProofGenerator(manager)
    proof = pedersen.generate_commitment_proof(42, context=b"ctx")
    assert pedersen.verify(proof, b"ctx")
    assert not pedersen.verify(proof, b"other")


def test_commitment_proof_of_existing_commitment(manager):
    pedersen = PedersenProofGenerator(manager)
    com = pedersen.commit(42, 1234)
    proof = pedersen.generate_commitment_proof(42, 1234, com, b"ctx")
    assert proof.commitment == manager.arithmetic.encode_point(com)
    assert pedersen.verify(proof, b"ctx")


def test_commitment_proof_wrong_opening(manager):
    pedersen = PedersenProofGenerator(manager)
    com = pedersen.commit(42, 1234)
    with pytest.raises(FalseStatementError):
        pedersen.generate_commitment_proof(43, 1234, com, b"ctx")


def test_commitment_proof_string_message(manager):
    pedersen = PedersenProofGenerator(manager)
    proof = pedersen.generate_commitment_proof("alice@example.org", context=b"ctx")
    assert pedersen.verify(proof, b"ctx")


def test_commitment_proof_hides_opening(manager):
    pedersen = PedersenProofGenerator(manager)
    proof = pedersen.generate_commitment_proof(42, 1234, context=b"ctx")
    data = proof.to_dict()
    assert data["kind"] == "commitment"
    assert "1234" not in data.values()
    assert "4d2" not in data.values()
    assert "2a" not in data.values()


@pytest.mark.parametrize("field", ["announcement", "challenge", "response1", "response2", "commitment"])
def test_commitment_proof_tampered(manager, tamper, field):
    pedersen = PedersenProofGenerator(manager)
    proof = pedersen.generate_commitment_proof(42, context=b"ctx")
    tampered = attr.evolve(proof, **{field: tamper(getattr(proof, field))})
    assert not pedersen.verify(tampered, b"ctx")


def test_commitment_proof_rejects_foreign_h(manager):
    pedersen = PedersenProofGenerator(manager)
    proof = pedersen.generate_commitment_proof(42, context=b"ctx")
    other_h = manager.arithmetic.encode_point(manager.arithmetic.hash_to_point(b"other"))
    assert not pedersen.verify(attr.evolve(proof, h=other_h), b"ctx")


def test_commitment_proof_fresh_nonces(manager):
    pedersen = PedersenProofGenerator(manager)
    p1 = pedersen.generate_commitment_proof(42, 1234, context=b"ctx")
    p2 = pedersen.generate_commitment_proof(42, 1234, context=b"ctx")
    assert p1.commitment == p2.commitment
    assert p1.announcement != p2.announcement


def test_opening_interactive(manager):
    pedersen = PedersenProofGenerator(manager)
    com = pedersen.commit(10, 15)
    prover = PedersenOpeningProver(manager, 10, 15)
    verifier = PedersenOpeningVerifier(manager, com)
    assert SigmaProtocol(verifier, prover).verify()


def test_opening_interactive_wrong_opening(manager):
    pedersen = PedersenProofGenerator(manager)
    com = pedersen.commit(10, 15)
    prover = PedersenOpeningProver(manager, 10, 16)
    verifier = PedersenOpeningVerifier(manager, com)
    assert not SigmaProtocol(verifier, prover).verify()


def test_insecure_arithmetic_refuses(curve):
    from idzk.ec import InsecureArithmetic
    from idzk.randomness import SystemRandomness
    from idzk.sigma import SigmaProtocolManager

    with pytest.warns(UserWarning):
        arithmetic = InsecureArithmetic(curve)
    pedersen = PedersenProofGenerator(SigmaProtocolManager(arithmetic, SystemRandomness()))
    with pytest.raises(InsecureArithmeticError):
        pedersen.generate_commitment_proof(42, context=b"ctx")
    with pytest.raises(InsecureArithmeticError):
        pedersen.generate_range_proof(5, 16, context=b"ctx")
