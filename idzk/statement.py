"""
Proof statements and requests.

A :py:class:`ZKStatement` is built by the caller for one proof request. Its private inputs are
only ever read by the prover; everything that ends up in a proof comes from
:py:meth:`ZKStatement.public_view`.

>>> stmt = ZKStatement(
...     type="set_membership",
...     description="Credential check",
...     public_inputs={"set": "passport,driver_license"},
...     private_inputs={"value": "passport"},
...     relation="value in set",
... )
>>> "passport" in repr(stmt.public_view())
True
>>> "private_inputs" in repr(stmt)
False
"""

from types import MappingProxyType

import attr
import msgpack

from idzk.consts import DEFAULT_MAX_AGE, PROOF_TYPES
from idzk.exceptions import GenerationError
from idzk.utils import parse_int_literal


def _string_map(value):
    if value is None:
        return {}
    return {str(k): str(v) for k, v in dict(value).items()}


def _frozen_string_map(value):
    return MappingProxyType(_string_map(value))


@attr.s(frozen=True)
class PublicStatement:
    """
    Statement as stored in a proof: everything but the private inputs.
    """

    type = attr.ib()
    description = attr.ib()
    public_inputs = attr.ib(converter=_frozen_string_map)
    relation = attr.ib()

    def to_dict(self):
        return {
            "type": self.type,
            "description": self.description,
            "publicInputs": dict(self.public_inputs),
            "relation": self.relation,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            type=data["type"],
            description=data["description"],
            public_inputs=data["publicInputs"],
            relation=data["relation"],
        )


@attr.s
class ZKStatement:
    """
    A statement to prove.

    Args:
        type: One of ``discrete_log``, ``pedersen_commitment``, ``range_proof``,
            ``set_membership``, ``custom``.
        description: Human readable description.
        public_inputs: Public values, e.g. ``{"g": ..., "y": ...}``.
        private_inputs: Secret values, e.g. ``{"x": ...}``. Never part of a proof.
        relation: The relation being proved, e.g. ``"y = g^x"``.
    """

    type = attr.ib()
    description = attr.ib(default="")
    public_inputs = attr.ib(factory=dict, converter=_string_map)
    private_inputs = attr.ib(factory=dict, converter=_string_map, repr=False)
    relation = attr.ib(default="")

    def public_view(self):
        return PublicStatement(
            type=self.type,
            description=self.description,
            public_inputs=self.public_inputs,
            relation=self.relation,
        )


@attr.s
class ProofRequest:
    """
    A statement plus per-request overrides of the engine configuration.
    """

    statement = attr.ib()
    expiration_hours = attr.ib(default=None)
    security_level = attr.ib(default=None)
    quantum_resistant = attr.ib(default=None)

    @property
    def type(self):
        return PROOF_TYPES[self.statement.type]


def canonical_context(statement, timestamp, expires_at):
    """
    Canonical byte encoding of the full public statement and its validity window.

    This is what every Fiat-Shamir challenge of a proof is bound to.
    """
    return msgpack.packb(
        [
            statement.type,
            statement.description,
            statement.relation,
            sorted([k, v] for k, v in statement.public_inputs.items()),
            timestamp.isoformat(),
            expires_at.isoformat(),
        ],
        use_bin_type=True,
    )


def _require(mapping, key, what):
    try:
        value = mapping[key]
    except KeyError:
        raise GenerationError("{} has no {!r} attribute".format(what, key))
    if value is None:
        raise GenerationError("{} has no {!r} attribute".format(what, key))
    return value


def age_verification_statement(identity, min_age, max_age=DEFAULT_MAX_AGE):
    """
    Statement that the identity's age lies in ``[min_age, max_age]``.
    """
    age = _require(identity, "age", "Identity")
    return ZKStatement(
        type="range_proof",
        description="Age verification: age >= {}".format(min_age),
        public_inputs={"min": int(min_age), "range": int(max_age) + 1},
        private_inputs={"value": int(age)},
        relation="age >= {}".format(min_age),
    )


def credential_statement(credential, accepted_types):
    """
    Statement that the credential's type is one of ``accepted_types``.

    The member set travels as a comma-separated list, so no type may contain a comma.
    """
    value = str(_require(credential, "type", "Credential")).strip()
    members = [str(t).strip() for t in accepted_types]
    if any("," in m for m in members + [value]):
        raise GenerationError("Credential types must not contain commas")
    if not all(members):
        raise GenerationError("Credential types must not be empty")
    return ZKStatement(
        type="set_membership",
        description="Credential verification",
        public_inputs={"set": ",".join(members)},
        private_inputs={"value": value},
        relation="credential.type in set",
    )


def permission_statement(identity, permission, arithmetic):
    """
    Statement of knowledge of the identity's private key for a permission.

    The public key is derived from the private key with ``arithmetic``.
    """
    key = _require(identity, "private_key", "Identity")
    x = parse_int_literal(key)
    if x is None:
        raise GenerationError("Identity private key is not an integer literal")
    x %= arithmetic.order
    g = arithmetic.generator()
    y = arithmetic.scalar_multiply(g, x)
    return ZKStatement(
        type="discrete_log",
        description="Permission proof for: {}".format(permission),
        public_inputs={
            "g": arithmetic.encode_point(g),
            "y": arithmetic.encode_point(y),
            "permission": permission,
        },
        private_inputs={"x": "0x{:x}".format(x)},
        relation="y = g^x",
    )


def selective_disclosure_statement(identity, attributes):
    """
    Statement disclosing ``attributes`` of the identity and proving knowledge of the rest.
    """
    attributes = list(attributes)
    missing = [a for a in attributes if a not in identity]
    if missing:
        raise GenerationError("Identity has no attribute(s): {}".format(", ".join(missing)))

    public_inputs = {"disclosed": ",".join(attributes)}
    public_inputs.update({"attr:" + a: identity[a] for a in attributes})
    hidden = {k: v for k, v in identity.items() if k not in attributes}
    return ZKStatement(
        type="custom",
        description="Selective disclosure of identity attributes",
        public_inputs=public_inputs,
        private_inputs=hidden,
        relation="disclosed attributes are a subset of identity",
    )
