"""
Unit tests for range proofs.
"""
import attr
import pytest

from idzk.exceptions import FalseStatementError
from idzk.primitives.pedersen import PedersenProofGenerator
from idzk.primitives.rangeproof import (
    decompose_into_n_bits,
    prove_range,
    range_parameters,
    verify_range,
)


def test_decompose_into_n_bits():
    assert decompose_into_n_bits(5, 4) == [1, 0, 1, 0]
    assert decompose_into_n_bits(0, 3) == [0, 0, 0]
    with pytest.raises(ValueError):
        decompose_into_n_bits(16, 4)
    with pytest.raises(ValueError):
        decompose_into_n_bits(-1, 4)


def test_range_parameters():
    assert range_parameters(0, 16) == (4, (0, 0))
    assert range_parameters(0, 5) == (3, (0, 3))
    assert range_parameters(10, 11) == (0, (0, 0))
    with pytest.raises(ValueError):
        range_parameters(5, 5)


def test_range_proof_value_in_range(manager):
    proof = prove_range(manager, 5, 0, 16, "SHA-512", b"ctx")
    assert proof.num_bits == 4
    assert len(proof.decompositions) == 2
    assert verify_range(manager, proof, b"ctx")


@pytest.mark.parametrize("value", [18, 30, 150])
def test_range_proof_start_at_nonzero(manager, value):
    proof = prove_range(manager, value, 18, 151, "SHA-512", b"ctx")
    assert verify_range(manager, proof, b"ctx")


def test_range_proof_single_value_range(manager):
    proof = prove_range(manager, 7, 7, 8, "SHA-512", b"ctx")
    assert verify_range(manager, proof, b"ctx")


@pytest.mark.parametrize("value", [16, 20, -1])
def test_range_proof_out_of_range(manager, value):
    with pytest.raises(FalseStatementError):
        prove_range(manager, value, 0, 16, "SHA-512", b"ctx")


def test_range_proof_upper_bound_is_exclusive(manager):
    with pytest.raises(FalseStatementError):
        prove_range(manager, 151, 18, 151, "SHA-512", b"ctx")


def test_range_proof_wrong_context(manager):
    proof = prove_range(manager, 5, 0, 16, "SHA-512", b"ctx")
    assert not verify_range(manager, proof, b"other")


def test_range_proof_tampered_challenge(manager, tamper):
    proof = prove_range(manager, 5, 0, 16, "SHA-512", b"ctx")
    assert not verify_range(manager, attr.evolve(proof, challenge=tamper(proof.challenge)))


def test_range_proof_tampered_bounds(manager):
    proof = prove_range(manager, 5, 0, 16, "SHA-512", b"ctx")
    assert not verify_range(manager, attr.evolve(proof, upper="32"))
    assert not verify_range(manager, attr.evolve(proof, lower="1"))


@pytest.mark.parametrize("lower, upper", [("00", "16"), ("0", "016"), ("0", "+16"), ("0", " 16")])
def test_range_proof_bounds_must_be_canonical(manager, lower, upper):
    proof = prove_range(manager, 5, 0, 16, "SHA-512", b"ctx")
    assert not verify_range(manager, attr.evolve(proof, lower=lower, upper=upper))


def test_range_proof_tampered_response(manager, tamper):
    proof = prove_range(manager, 5, 0, 16, "SHA-512", b"ctx")
    first = proof.decompositions[0]
    responses = [list(pair) for pair in first.responses]
    responses[0][0] = tamper(responses[0][0])
    decomposition = attr.evolve(first, responses=responses)
    tampered = attr.evolve(proof, decompositions=[decomposition] + list(proof.decompositions[1:]))
    assert not verify_range(manager, tampered)


def test_range_proof_tampered_rand(manager, tamper):
    proof = prove_range(manager, 5, 0, 16, "SHA-512", b"ctx")
    first = proof.decompositions[0]
    decomposition = attr.evolve(first, rand=tamper(first.rand))
    tampered = attr.evolve(proof, decompositions=[decomposition] + list(proof.decompositions[1:]))
    assert not verify_range(manager, tampered)


def test_range_proof_dict_roundtrip(manager):
    from idzk.records import RangeProof

    proof = prove_range(manager, 5, 0, 16, "SHA-512", b"ctx")
    data = proof.to_dict()
    assert data["kind"] == "range"
    assert verify_range(manager, RangeProof.from_dict(data), b"ctx")


def test_range_proof_through_generator(manager):
    pedersen = PedersenProofGenerator(manager)
    proof = pedersen.generate_range_proof(25, 151, lower=18, context=b"ctx")
    assert pedersen.verify(proof, b"ctx")
