"""
Proof records.

Every record only holds public values: commitments, challenges, responses, generators and curve
identifiers. Points are encoded as ``"<x hex>:<y hex>"`` and scalars as hex strings. Records are
frozen; ``to_dict`` produces the camelCase wire shape and ``from_dict`` parses it back.
"""

from datetime import datetime, timezone
from types import MappingProxyType

import attr

from idzk.statement import PublicStatement


def _key(field):
    return field.metadata.get("key", field.name)


def _dump(value):
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    return value


def _strings(value):
    if isinstance(value, str):
        raise TypeError("Expected a sequence of strings, got a string")
    return tuple(str(v) for v in value)


def _pairs(value):
    pairs = tuple(_strings(v) for v in value)
    if any(len(p) != 2 for p in pairs):
        raise ValueError("Expected pairs of values")
    return pairs


def _frozen_map(value):
    return MappingProxyType({str(k): str(v) for k, v in dict(value).items()})


def format_timestamp(dt):
    return dt.astimezone(timezone.utc).isoformat()


def parse_timestamp(text):
    """
    Parse an ISO-8601 timestamp, always returning an aware UTC datetime.

    >>> parse_timestamp("2026-01-01T00:00:00Z").isoformat()
    '2026-01-01T00:00:00+00:00'
    """
    if isinstance(text, datetime):
        dt = text
    else:
        text = str(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class _Record:
    def to_dict(self):
        return {_key(f): _dump(getattr(self, f.name)) for f in attr.fields(type(self))}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise TypeError("Expected a mapping for {}".format(cls.__name__))
        return cls(**{f.name: data[_key(f)] for f in attr.fields(cls)})


@attr.s(frozen=True)
class SchnorrProof(_Record):
    """Non-interactive Schnorr proof of knowledge of :math:`x` with :math:`Y = x G`."""

    commitment = attr.ib()
    challenge = attr.ib()
    response = attr.ib()
    public_key = attr.ib(metadata={"key": "publicKey"})
    generator = attr.ib()
    curve = attr.ib()
    order = attr.ib()
    hash_function = attr.ib(metadata={"key": "hashFunction"})
    context = attr.ib()


@attr.s(frozen=True)
class SigmaProtocolProof(_Record):
    """Generic sigma-protocol transcript for :math:`Y = x G`."""

    commitment = attr.ib()
    challenge = attr.ib()
    response = attr.ib()
    statement = attr.ib()
    generator = attr.ib()
    public_value = attr.ib(metadata={"key": "publicValue"})
    order = attr.ib()
    curve = attr.ib()
    hash_function = attr.ib(metadata={"key": "hashFunction"})
    context = attr.ib()


@attr.s(frozen=True)
class FiatShamirProof(_Record):
    """
    Standalone non-interactive transcript. Carries everything needed to recompute its challenge,
    including the relation it was proved for.
    """

    commitment = attr.ib()
    challenge = attr.ib()
    response = attr.ib()
    hash_function = attr.ib(metadata={"key": "hashFunction"})
    transform_type = attr.ib(metadata={"key": "transformType"})
    statement = attr.ib()
    generator = attr.ib()
    public_value = attr.ib(metadata={"key": "publicValue"})
    curve = attr.ib()
    context = attr.ib()


class _PedersenRecord(_Record):
    KIND = None

    def to_dict(self):
        out = {"kind": self.KIND}
        out.update(super().to_dict())
        return out


@attr.s(frozen=True)
class PedersenCommitmentProof(_PedersenRecord):
    """Proof of knowledge of an opening :math:`(m, r)` of :math:`C = m G + r H`."""

    KIND = "commitment"

    commitment = attr.ib()
    g = attr.ib()
    h = attr.ib()
    announcement = attr.ib()
    challenge = attr.ib()
    response1 = attr.ib()
    response2 = attr.ib()
    curve = attr.ib()
    hash_function = attr.ib(metadata={"key": "hashFunction"})
    context = attr.ib()


@attr.s(frozen=True)
class BitDecomposition(_Record):
    """
    Bit commitments of one shifted value and the or-proofs that each commits to 0 or 1.

    ``rand`` is the revealed randomizer that makes the bit commitments combine into the shifted
    value commitment.
    """

    offset = attr.ib(converter=str)
    rand = attr.ib()
    bit_commitments = attr.ib(converter=_strings, metadata={"key": "bitCommitments"})
    branch_commitments = attr.ib(converter=_pairs, metadata={"key": "branchCommitments"})
    branch_challenges = attr.ib(converter=_pairs, metadata={"key": "branchChallenges"})
    responses = attr.ib(converter=_pairs)


def _decompositions(value):
    return tuple(
        v if isinstance(v, BitDecomposition) else BitDecomposition.from_dict(v) for v in value
    )


@attr.s(frozen=True)
class RangeProof(_PedersenRecord):
    """Proof that :math:`C = v G + r H` commits to :math:`lower \\leq v < upper`."""

    KIND = "range"

    commitment = attr.ib()
    g = attr.ib()
    h = attr.ib()
    lower = attr.ib(converter=str)
    upper = attr.ib(converter=str)
    num_bits = attr.ib(converter=int, metadata={"key": "numBits"})
    decompositions = attr.ib(converter=_decompositions)
    challenge = attr.ib()
    curve = attr.ib()
    hash_function = attr.ib(metadata={"key": "hashFunction"})
    context = attr.ib()


@attr.s(frozen=True)
class SetMembershipProof(_PedersenRecord):
    """Proof that :math:`C = v G + r H` commits to one of the public ``members``."""

    KIND = "set_membership"

    commitment = attr.ib()
    g = attr.ib()
    h = attr.ib()
    members = attr.ib(converter=_strings)
    branch_commitments = attr.ib(converter=_strings, metadata={"key": "branchCommitments"})
    branch_challenges = attr.ib(converter=_strings, metadata={"key": "branchChallenges"})
    responses = attr.ib(converter=_strings)
    challenge = attr.ib()
    curve = attr.ib()
    hash_function = attr.ib(metadata={"key": "hashFunction"})
    context = attr.ib()


PEDERSEN_RECORDS = {
    cls.KIND: cls for cls in (PedersenCommitmentProof, RangeProof, SetMembershipProof)
}


def pedersen_record_from_dict(data):
    try:
        cls = PEDERSEN_RECORDS[data["kind"]]
    except (KeyError, TypeError):
        raise ValueError("Unknown Pedersen proof kind")
    return cls.from_dict(data)


@attr.s(frozen=True)
class DiscreteLogComponents:
    """Components of a discrete-log (or custom) proof."""

    schnorr_proof = attr.ib()
    sigma_protocol = attr.ib()
    fiat_shamir_transform = attr.ib()

    def to_dict(self):
        return {
            "schnorrProof": self.schnorr_proof.to_dict(),
            "sigmaProtocol": self.sigma_protocol.to_dict(),
            "fiatShamirTransform": self.fiat_shamir_transform.to_dict(),
        }


@attr.s(frozen=True)
class PedersenComponents:
    """Components of a commitment, range or set-membership proof."""

    pedersen_proof = attr.ib()

    def to_dict(self):
        return {"pedersenProof": self.pedersen_proof.to_dict()}


def components_from_dict(data):
    if not isinstance(data, dict):
        raise TypeError("Expected a mapping of proof components")
    if "pedersenProof" in data:
        if set(data) != {"pedersenProof"}:
            raise ValueError("Unexpected components next to a Pedersen proof")
        return PedersenComponents(pedersen_record_from_dict(data["pedersenProof"]))
    return DiscreteLogComponents(
        schnorr_proof=SchnorrProof.from_dict(data["schnorrProof"]),
        sigma_protocol=SigmaProtocolProof.from_dict(data["sigmaProtocol"]),
        fiat_shamir_transform=FiatShamirProof.from_dict(data["fiatShamirTransform"]),
    )


@attr.s(frozen=True)
class ZKProof:
    """
    An issued zero-knowledge proof. The statement is the public view: private inputs are never
    part of a proof.
    """

    id = attr.ib()
    type = attr.ib()
    statement = attr.ib()
    proof = attr.ib()
    public_inputs = attr.ib(converter=_frozen_map)
    timestamp = attr.ib(converter=parse_timestamp)
    expires_at = attr.ib(converter=parse_timestamp)
    verification_key = attr.ib()
    security_level = attr.ib()
    algorithm = attr.ib()
    key_length = attr.ib(converter=int)
    quantum_resistant = attr.ib(validator=attr.validators.instance_of(bool))

    def __attrs_post_init__(self):
        if self.expires_at <= self.timestamp:
            raise ValueError("expiresAt must be later than timestamp")

    def is_expired(self, now):
        return self.expires_at <= now

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "statement": self.statement.to_dict(),
            "proof": self.proof.to_dict(),
            "publicInputs": dict(self.public_inputs),
            "timestamp": format_timestamp(self.timestamp),
            "expiresAt": format_timestamp(self.expires_at),
            "verificationKey": self.verification_key,
            "securityLevel": self.security_level,
            "algorithm": self.algorithm,
            "keyLength": self.key_length,
            "quantumResistant": self.quantum_resistant,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise TypeError("Expected a mapping for ZKProof")
        return cls(
            id=data["id"],
            type=data["type"],
            statement=PublicStatement.from_dict(data["statement"]),
            proof=components_from_dict(data["proof"]),
            public_inputs=data["publicInputs"],
            timestamp=data["timestamp"],
            expires_at=data["expiresAt"],
            verification_key=data["verificationKey"],
            security_level=data["securityLevel"],
            algorithm=data["algorithm"],
            key_length=data["keyLength"],
            quantum_resistant=data["quantumResistant"],
        )


@attr.s
class VerificationResult:
    """
    Outcome of a verification. Failures are reported here, never raised.
    """

    is_valid = attr.ib()
    details = attr.ib(factory=dict)
    error = attr.ib(default=None)

    def __bool__(self):
        return bool(self.is_valid)

    def to_dict(self):
        out = {"isValid": self.is_valid, "details": dict(self.details)}
        if self.error is not None:
            out["error"] = self.error
        return out
