import attr
import pytest

from idzk.base import Nonce, build_fiat_shamir_challenge
from idzk.ec import encode_scalar
from idzk.exceptions import (
    FalseStatementError,
    NonceReuseError,
    RandomnessUnavailableError,
    UnsupportedStatementError,
)
from idzk.randomness import RandomnessProvider, SystemRandomness
from idzk.records import FiatShamirProof
from idzk.sigma import SigmaProtocolManager, hash_function_for, transform_type_for


class BrokenRandomness(RandomnessProvider):
    def random_scalar(self, order):
        raise OSError("entropy source unavailable")

    def hash(self, algorithm, data):
        return SystemRandomness().hash(algorithm, data)


class SequenceRandomness(SystemRandomness):
    def __init__(self, values):
        self.values = list(values)

    def random_scalar(self, order):
        return self.values.pop(0)


def _statement(manager, x=7):
    g = manager.arithmetic.generator()
    return g, manager.arithmetic.scalar_multiply(g, x)


@pytest.mark.parametrize(
    "statement_type,hash_function,transform",
    [
        ("discrete_log", "SHA-256", "schnorr"),
        ("pedersen_commitment", "SHA-384", "pedersen"),
        ("range_proof", "SHA-512", "pedersen"),
        ("set_membership", "SHA-256", "pedersen"),
        ("custom", "SHA-256", "sigma"),
    ],
)
def test_hash_and_transform_tables(statement_type, hash_function, transform):
    assert hash_function_for(statement_type) == hash_function
    assert transform_type_for(statement_type) == transform


def test_unknown_statement_type():
    with pytest.raises(UnsupportedStatementError):
        hash_function_for("zk_snark")


def test_sigma_roundtrip(manager):
    g, y = _statement(manager)
    sigma = manager.prove_sigma("discrete_log", g, y, 7, "y = g^x", b"ctx")
    assert sigma.statement == "y = g^x"
    assert sigma.hash_function == "SHA-256"
    assert manager.verify_sigma(sigma, b"ctx")
    assert not manager.verify_sigma(sigma, b"other")


def test_sigma_false_statement(manager):
    g, y = _statement(manager)
    with pytest.raises(FalseStatementError):
        manager.prove_sigma("discrete_log", g, y, 8, "y = g^x", b"ctx")


def test_sigma_relation_is_bound(manager):
    g, y = _statement(manager)
    sigma = manager.prove_sigma("discrete_log", g, y, 7, "y = g^x", b"ctx")
    assert not manager.verify_sigma(attr.evolve(sigma, statement="something else"))


@pytest.mark.parametrize("field", ["commitment", "challenge", "response"])
def test_sigma_tampered(manager, tamper, field):
    g, y = _statement(manager)
    sigma = manager.prove_sigma("custom", g, y, 7, "y = g^x", b"ctx")
    assert not manager.verify_sigma(attr.evolve(sigma, **{field: tamper(getattr(sigma, field))}))


def test_fiat_shamir_transform(manager):
    g, y = _statement(manager)
    sigma = manager.prove_sigma("discrete_log", g, y, 7, "y = g^x", b"ctx")
    fs = manager.fiat_shamir_transform(sigma, "discrete_log")
    assert fs.transform_type == "schnorr"
    assert fs.hash_function == "SHA-256"
    assert manager.verify_fiat_shamir(fs, "discrete_log", relation="y = g^x", context=b"ctx")
    assert not manager.verify_fiat_shamir(fs, "custom", relation="y = g^x", context=b"ctx")
    assert not manager.verify_fiat_shamir(fs, "discrete_log", relation="other", context=b"ctx")
    assert manager.verify_fiat_shamir(fs, "discrete_log")
    assert fs.to_dict()["statement"] == "y = g^x"


def test_fiat_shamir_tampered_response(manager, tamper):
    g, y = _statement(manager)
    sigma = manager.prove_sigma("discrete_log", g, y, 7, "y = g^x", b"ctx")
    fs = manager.fiat_shamir_transform(sigma, "discrete_log")
    assert not manager.verify_fiat_shamir(attr.evolve(fs, response=tamper(fs.response)))


def test_fiat_shamir_record_without_secret_is_rejected(manager):
    g, y = _statement(manager)
    ec = manager.arithmetic
    z, c = 5, 11
    a = ec.point_add(ec.scalar_multiply(g, z), ec.scalar_multiply(y, -c))
    forged = FiatShamirProof(
        commitment=ec.encode_point(a),
        challenge=encode_scalar(c),
        response=encode_scalar(z),
        hash_function="SHA-256",
        transform_type="schnorr",
        statement="y = g^x",
        generator=ec.encode_point(g),
        public_value=ec.encode_point(y),
        curve=manager.curve_name,
        context="00",
    )
    assert manager.check_equation([g], [z], a, c, y)
    assert not manager.verify_fiat_shamir(forged, "discrete_log")
    assert not manager.verify_fiat_shamir(forged, "discrete_log", relation="y = g^x")


def test_fiat_shamir_relation_is_bound(manager):
    g, y = _statement(manager)
    sigma = manager.prove_sigma("discrete_log", g, y, 7, "y = g^x", b"ctx")
    fs = manager.fiat_shamir_transform(sigma, "discrete_log")
    relabelled = attr.evolve(fs, statement="y = g^x and more")
    assert not manager.verify_fiat_shamir(relabelled, "discrete_log")
    assert not manager.verify_fiat_shamir(relabelled, "discrete_log", relation="y = g^x and more")


def test_random_scalar_skips_zero(manager):
    manager = SigmaProtocolManager(manager.arithmetic, SequenceRandomness([0, 0, 5]))
    assert manager.random_scalar() == 5


def test_random_scalar_rejects_unreduced(manager):
    manager = SigmaProtocolManager(manager.arithmetic, SequenceRandomness([manager.order]))
    with pytest.raises(RandomnessUnavailableError):
        manager.random_scalar()


def test_broken_randomness(manager):
    manager = SigmaProtocolManager(manager.arithmetic, BrokenRandomness())
    g, y = _statement(manager)
    with pytest.raises(RandomnessUnavailableError):
        manager.prove_sigma("discrete_log", g, y, 7, "y = g^x", b"ctx")


def test_commit_and_response(manager):
    g = manager.arithmetic.generator()
    (nonce,), commitment = manager.commit(g)
    challenge = manager.interactive_challenge()
    response = manager.compute_response(nonce, challenge, 7)
    y = manager.arithmetic.scalar_multiply(g, 7)
    assert manager.check_equation([g], [response], commitment, challenge, y)
    with pytest.raises(NonceReuseError):
        manager.compute_response(nonce, challenge, 7)


def test_simulation_satisfies_equation(manager):
    g, y = _statement(manager)
    sim = manager.simulate(g, y)
    assert manager.check_equation([g], [sim.response], sim.commitment, sim.challenge, y)


def test_attribute_scalar(manager):
    assert manager.attribute_scalar("42") == 42
    assert manager.attribute_scalar("0x2a") == 42
    assert manager.attribute_scalar("passport") == manager.attribute_scalar(" passport ")
    assert manager.attribute_scalar("passport") != manager.attribute_scalar("driver_license")


def test_nonce_repr_hides_value():
    nonce = Nonce(123456789)
    assert "123456789" not in repr(nonce)
    nonce.consume()
    assert nonce.consumed


def test_challenge_is_length_prefixed():
    h = SystemRandomness().hash
    c1 = build_fiat_shamir_challenge(h, "SHA-256", 2 ** 255, "ab", "c")
    c2 = build_fiat_shamir_challenge(h, "SHA-256", 2 ** 255, "a", "bc")
    assert c1 != c2
