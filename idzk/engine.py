r"""
The zero-knowledge proof engine.

:py:class:`ZKEngine` turns statements into proofs, verifies proofs, and keeps issued proofs in a
cache. Every proof is bound to its full public statement and validity window: each Fiat-Shamir
challenge hashes a digest of both.

Example of the basic flow, a proof of knowledge of :math:`x = 7` with :math:`y = 7 G`:

>>> from idzk.statement import ZKStatement
>>> engine = ZKEngine()
>>> ec = engine.arithmetic()
>>> stmt = ZKStatement(
...     type="discrete_log",
...     description="Knowledge of x",
...     public_inputs={"y": ec.encode_point(ec.scalar_multiply(ec.generator(), 7))},
...     private_inputs={"x": "7"},
...     relation="y = g^x",
... )
>>> proof = engine.generate_proof(stmt)
>>> engine.verify_proof(proof).is_valid
True
>>> engine.verify_proof(proof.to_dict()).details["schnorrValid"]
True
"""

import logging
import threading
import uuid
from datetime import timedelta

import msgpack

from idzk.cache import ExpirySweeper, ProofCache, utc_now
from idzk.config import EngineConfig
from idzk.consts import ATTRIBUTE_LABEL, PROOF_TYPES, SECURITY_LEVELS, STATEMENT_TYPES
from idzk.consts import DEFAULT_MAX_AGE, MAX_PROOF_TTL_HOURS, VERIFICATION_KEY_HASH
from idzk.curves import get_curve
from idzk.ec import make_arithmetic
from idzk.exceptions import (
    ConfigurationError,
    GenerationError,
    IdzkError,
    UnsupportedStatementError,
    VerificationError,
)
from idzk.primitives.pedersen import PedersenProofGenerator
from idzk.primitives.schnorr import SchnorrProofGenerator
from idzk.randomness import SystemRandomness
from idzk.records import (
    DiscreteLogComponents,
    PedersenCommitmentProof,
    PedersenComponents,
    RangeProof,
    SetMembershipProof,
    ZKProof,
    VerificationResult,
    format_timestamp,
    parse_timestamp,
)
from idzk.sigma import SigmaProtocolManager, hash_function_for
from idzk.statement import (
    ProofRequest,
    ZKStatement,
    age_verification_statement,
    canonical_context,
    credential_statement,
    permission_statement,
    selective_disclosure_statement,
)
from idzk.utils import parse_int_literal


logger = logging.getLogger(__name__)

PEDERSEN_RECORD_TYPES = {
    "pedersen_commitment": PedersenCommitmentProof,
    "range_proof": RangeProof,
    "set_membership": SetMembershipProof,
}


def _int_input(inputs, key, default=None):
    if key not in inputs:
        if default is None:
            raise GenerationError("Missing input {!r}".format(key))
        return default
    value = parse_int_literal(inputs[key])
    if value is None:
        raise GenerationError("Input {!r} is not an integer".format(key))
    return value


def split_members(text):
    """
    Parse a comma-separated member set.

    >>> split_members("passport, driver_license,")
    ['passport', 'driver_license']
    """
    return [m.strip() for m in str(text).split(",") if m.strip()]


def _invalid(reason, error, details=None):
    details = dict(details or {})
    details["reason"] = reason
    return VerificationResult(is_valid=False, details=details, error=error)


class ZKEngine:
    """
    Proof generation, verification and caching.

    Args:
        config (:py:class:`idzk.config.EngineConfig`): Settings. Defaults are used if omitted.
        randomness (:py:class:`idzk.randomness.RandomnessProvider`): Source of random scalars and
            hashes. Defaults to :py:class:`idzk.randomness.SystemRandomness`.
        clock: Callable returning the current time as an aware datetime.
        cache (:py:class:`idzk.cache.ProofCache`): Proof cache. Built from the config if omitted.

    Raises:
        ConfigurationError: If the configured curve cannot be used.
    """

    def __init__(self, config=None, randomness=None, clock=None, cache=None):
        self.config = config if config is not None else EngineConfig()
        self.randomness = randomness if randomness is not None else SystemRandomness()
        self.clock = clock if clock is not None else utc_now
        if cache is None:
            cache = ProofCache(
                max_size=self.config.max_cache_size,
                enable_audit_logging=self.config.enable_audit_logging,
                clock=self.clock,
            )
        self.cache = cache
        self._managers = {}
        self._lock = threading.Lock()
        self._sweeper = None

        # Fail fast on a curve that cannot be used.
        self.manager(self.config.curve)

    def _now(self):
        return parse_timestamp(self.clock())

    def manager(self, curve=None, config=None):
        """
        Sigma-protocol manager for a curve, the configured one by default.
        """
        config = config if config is not None else self.config
        curve = curve if curve is not None else config.curve
        key = (curve, config.allow_insecure_fallback)
        with self._lock:
            if key not in self._managers:
                arithmetic = make_arithmetic(get_curve(curve), config.allow_insecure_fallback)
                self._managers[key] = SigmaProtocolManager(arithmetic, self.randomness)
            return self._managers[key]

    def arithmetic(self, curve=None):
        return self.manager(curve).arithmetic

    def _verification_key(self, manager, proof_type, security_level, relation, timestamp):
        data = "{}:{}:{}:{}".format(proof_type, security_level, relation, format_timestamp(timestamp))
        return manager.hash(VERIFICATION_KEY_HASH, data.encode("utf-8")).hex()

    # Generation

    def _prove_discrete_log(self, manager, statement, context):
        arithmetic = manager.arithmetic
        public, private = statement.public_inputs, statement.private_inputs

        if statement.type == "custom" and "y" not in public:
            # Knowledge of a digest of the hidden attributes.
            packed = msgpack.packb(sorted([k, v] for k, v in private.items()), use_bin_type=True)
            x = int.from_bytes(manager.hash("SHA-256", ATTRIBUTE_LABEL + packed), "big")
            x %= manager.order
            if x == 0:
                raise GenerationError("Hidden attributes hash to a zero scalar")
            g = arithmetic.generator()
            y = arithmetic.scalar_multiply(g, x)
        else:
            if "y" not in public:
                raise GenerationError("Missing public input 'y'")
            x = _int_input(private, "x")
            g = arithmetic.decode_point(public["g"]) if "g" in public else arithmetic.generator()
            y = arithmetic.decode_point(public["y"])

        algorithm = hash_function_for(statement.type)
        schnorr = SchnorrProofGenerator(manager).generate(g, y, x, context, algorithm)
        sigma = manager.prove_sigma(statement.type, g, y, x, statement.relation, context)
        return DiscreteLogComponents(
            schnorr_proof=schnorr,
            sigma_protocol=sigma,
            fiat_shamir_transform=manager.fiat_shamir_transform(sigma, statement.type),
        )

    def _prove_pedersen(self, manager, statement, context):
        public, private = statement.public_inputs, statement.private_inputs
        pedersen = PedersenProofGenerator(manager)
        algorithm = hash_function_for(statement.type)

        if statement.type == "pedersen_commitment":
            if "message" in private:
                message = private["message"]
            elif "value" in private:
                message = private["value"]
            else:
                raise GenerationError("Missing private input 'message'")
            randomizer = _int_input(private, "randomness") if "randomness" in private else None
            commitment = None
            if "commitment" in public:
                commitment = manager.arithmetic.decode_point(public["commitment"])
            record = pedersen.generate_commitment_proof(
                message, randomizer, commitment, context, algorithm
            )

        elif statement.type == "range_proof":
            value = _int_input(private, "value")
            upper = _int_input(public, "range")
            lower = _int_input(public, "min", default=0)
            record = pedersen.generate_range_proof(value, upper, lower, context, algorithm)

        else:
            if "value" not in private:
                raise GenerationError("Missing private input 'value'")
            if "set" not in public:
                raise GenerationError("Missing public input 'set'")
            record = pedersen.generate_set_membership_proof(
                private["value"], split_members(public["set"]), context, algorithm
            )

        return PedersenComponents(record)

    def generate_proof(self, request):
        """
        Generate a proof for a statement.

        Args:
            request: A :py:class:`idzk.statement.ProofRequest`, or a bare
                :py:class:`idzk.statement.ZKStatement` using the configured defaults.

        Returns:
            :py:class:`idzk.records.ZKProof`: The proof, also cached if caching is enabled.

        Raises:
            GenerationError: On any failure. Nothing is cached then.
        """
        if isinstance(request, ZKStatement):
            request = ProofRequest(request)
        if not isinstance(request, ProofRequest) or not isinstance(request.statement, ZKStatement):
            raise GenerationError(
                "Expected a ZKStatement or ProofRequest, got {}".format(type(request).__name__)
            )
        statement = request.statement
        if statement.type not in STATEMENT_TYPES:
            raise UnsupportedStatementError(
                "Unsupported statement type: {!r}".format(statement.type)
            )

        config = self.config
        ttl = config.proof_ttl_hours if request.expiration_hours is None else request.expiration_hours
        security_level = request.security_level or config.security_level
        quantum_resistant = (
            config.quantum_resistant
            if request.quantum_resistant is None
            else bool(request.quantum_resistant)
        )
        if security_level not in SECURITY_LEVELS:
            raise GenerationError("Unknown security level: {!r}".format(security_level))

        try:
            if not 0 < ttl <= MAX_PROOF_TTL_HOURS:
                raise GenerationError(
                    "Expiration must be in (0, {}] hours".format(MAX_PROOF_TTL_HOURS)
                )
            timestamp = self._now()
            expires_at = timestamp + timedelta(hours=ttl)
            public = statement.public_view()
            context = canonical_context(public, timestamp, expires_at)

            manager = self.manager()
            manager.require_sound()
            if statement.type in ("discrete_log", "custom"):
                components = self._prove_discrete_log(manager, statement, context)
            else:
                components = self._prove_pedersen(manager, statement, context)

            proof_type = PROOF_TYPES[statement.type]
            proof = ZKProof(
                id=str(uuid.uuid4()),
                type=proof_type,
                statement=public,
                proof=components,
                public_inputs=public.public_inputs,
                timestamp=timestamp,
                expires_at=expires_at,
                verification_key=self._verification_key(
                    manager, proof_type, security_level, statement.relation, timestamp
                ),
                security_level=security_level,
                algorithm=manager.curve_name,
                key_length=get_curve(manager.curve_name).key_length,
                quantum_resistant=quantum_resistant,
            )
        except GenerationError:
            logger.info("Failed to generate %s proof", statement.type, exc_info=True)
            raise
        except (IdzkError, KeyError, TypeError, ValueError, OverflowError) as e:
            logger.info("Failed to generate %s proof", statement.type, exc_info=True)
            raise GenerationError("Could not generate {} proof: {}".format(statement.type, e)) from e

        if config.enable_proof_caching:
            self.cache.put(proof)
        logger.info("Generated %s proof %s", proof.type, proof.id)
        return proof

    def generate_age_verification(self, identity, min_age, max_age=DEFAULT_MAX_AGE, **overrides):
        """
        Prove that ``min_age <= identity["age"] <= max_age``.
        """
        statement = age_verification_statement(identity, min_age, max_age)
        return self.generate_proof(ProofRequest(statement, **overrides))

    def generate_credential_verification(self, credential, accepted_types, **overrides):
        """
        Prove that ``credential["type"]`` is one of ``accepted_types``.
        """
        statement = credential_statement(credential, accepted_types)
        return self.generate_proof(ProofRequest(statement, **overrides))

    def generate_permission_proof(self, identity, permission, **overrides):
        """
        Prove knowledge of ``identity["private_key"]`` for a permission.
        """
        manager = self.manager()
        manager.require_sound()
        statement = permission_statement(identity, permission, manager.arithmetic)
        return self.generate_proof(ProofRequest(statement, **overrides))

    def generate_selective_disclosure(self, identity, attributes, **overrides):
        """
        Disclose ``attributes`` of an identity and prove knowledge of the rest.
        """
        statement = selective_disclosure_statement(identity, attributes)
        return self.generate_proof(ProofRequest(statement, **overrides))

    # Verification

    def _point_matches(self, manager, text, encoded):
        try:
            return manager.arithmetic.encode_point(manager.arithmetic.decode_point(text)) == encoded
        except VerificationError:
            return False

    def _discrete_log_bound(self, manager, proof):
        components = proof.proof
        public = proof.statement.public_inputs
        schnorr, sigma, fs = (
            components.schnorr_proof,
            components.sigma_protocol,
            components.fiat_shamir_transform,
        )
        if not schnorr.public_key == sigma.public_value == fs.public_value:
            return False
        if not schnorr.generator == sigma.generator == fs.generator:
            return False
        if sigma.statement != proof.statement.relation:
            return False

        generator = manager.arithmetic.encode_point(manager.arithmetic.generator())
        if "g" in public:
            if not self._point_matches(manager, public["g"], schnorr.generator):
                return False
        elif schnorr.generator != generator:
            return False

        if "y" in public:
            return self._point_matches(manager, public["y"], schnorr.public_key)
        return proof.statement.type == "custom"

    def _pedersen_bound(self, manager, proof):
        record = proof.proof.pedersen_proof
        public = proof.statement.public_inputs
        stmt_type = proof.statement.type

        if stmt_type == "pedersen_commitment":
            if "commitment" in public:
                return self._point_matches(manager, public["commitment"], record.commitment)
            return True
        if stmt_type == "range_proof":
            upper = parse_int_literal(public.get("range", ""))
            lower = parse_int_literal(public.get("min", "0"))
            if upper is None or lower is None:
                return False
            return record.lower == str(lower) and record.upper == str(upper)
        return record.members == tuple(split_members(public.get("set", "")))

    def _check_components(self, manager, proof, context):
        stmt_type = proof.statement.type
        components = proof.proof
        algorithm = hash_function_for(stmt_type)

        if stmt_type in ("discrete_log", "custom"):
            if not isinstance(components, DiscreteLogComponents):
                return None
            schnorr = components.schnorr_proof
            sigma = components.sigma_protocol
            return {
                "schnorrValid": schnorr.hash_function == algorithm
                and SchnorrProofGenerator(manager).verify(schnorr, context),
                "sigmaValid": sigma.hash_function == algorithm
                and manager.verify_sigma(sigma, context),
                "fiatShamirValid": manager.verify_fiat_shamir(
                    components.fiat_shamir_transform,
                    stmt_type,
                    relation=proof.statement.relation,
                    context=context,
                ),
            }

        if not isinstance(components, PedersenComponents):
            return None
        record = components.pedersen_proof
        if not isinstance(record, PEDERSEN_RECORD_TYPES[stmt_type]):
            return None
        return {
            "pedersenValid": record.hash_function == algorithm
            and PedersenProofGenerator(manager).verify(record, context),
        }

    def verify_proof(self, proof):
        """
        Verify a proof.

        Args:
            proof: A :py:class:`idzk.records.ZKProof` or its dictionary form.

        Returns:
            :py:class:`idzk.records.VerificationResult`: Never raises; failures are reported with
            a ``reason`` in the details and an error message.
        """
        if isinstance(proof, dict):
            try:
                proof = ZKProof.from_dict(proof)
            except (KeyError, TypeError, ValueError) as e:
                return _invalid("malformed", "Malformed proof: {}".format(e))
        if not isinstance(proof, ZKProof):
            return _invalid("malformed", "Expected a proof, got {}".format(type(proof).__name__))

        if proof.is_expired(self._now()):
            return _invalid("expired", "Proof has expired")

        stmt_type = proof.statement.type
        if stmt_type not in STATEMENT_TYPES or proof.type != PROOF_TYPES[stmt_type]:
            return _invalid("unsupported_type", "Unsupported proof type: {!r}".format(proof.type))

        try:
            manager = self.manager(proof.algorithm)
        except ConfigurationError as e:
            return _invalid("unsupported_curve", str(e))
        if not manager.arithmetic.sound:
            return _invalid(
                "insecure_arithmetic", "No sound arithmetic for {}".format(proof.algorithm)
            )

        try:
            context = canonical_context(proof.statement, proof.timestamp, proof.expires_at)
            details = self._check_components(manager, proof, context)
            if details is None:
                return _invalid("component_mismatch", "Proof components do not match the statement type")

            if isinstance(proof.proof, DiscreteLogComponents):
                bound = self._discrete_log_bound(manager, proof)
            else:
                bound = self._pedersen_bound(manager, proof)
            bound = (
                bound
                and dict(proof.public_inputs) == dict(proof.statement.public_inputs)
                and proof.key_length == get_curve(proof.algorithm).key_length
                and proof.verification_key
                == self._verification_key(
                    manager, proof.type, proof.security_level, proof.statement.relation, proof.timestamp
                )
            )
        except (IdzkError, TypeError, ValueError) as e:
            logger.debug("Verification of proof %s failed", proof.id, exc_info=True)
            return _invalid("malformed", str(e))
        details["statementBound"] = bound

        checks = [v for k, v in details.items() if k != "statementBound"]
        if self.config.verification_mode == "all":
            components_ok = all(checks)
        else:
            components_ok = any(checks)

        if not bound:
            return _invalid("statement_mismatch", "Proof is not bound to its statement", details)
        if not components_ok:
            return _invalid("invalid_proof", "Proof components failed verification", details)
        return VerificationResult(is_valid=True, details=details)

    # Cache

    def get_cached_proof(self, proof_id):
        return self.cache.get(proof_id)

    def remove_cached_proof(self, proof_id):
        return self.cache.remove(proof_id)

    def cleanup_expired_proofs(self):
        return self.cache.cleanup_expired()

    def export_cache_data(self):
        return self.cache.export_data()

    def import_cache_data(self, payload):
        return self.cache.import_data(payload)

    def get_proof_stats(self):
        return self.cache.stats()

    def get_audit_log(self, limit=None):
        return self.cache.get_audit_log(limit)

    # Configuration

    def get_config(self):
        return self.config

    def update_config(self, **changes):
        """
        Apply configuration changes.

        Raises:
            ConfigurationError: If the changes are invalid. The previous configuration stays in
                place.
        """
        config = self.config.update(**changes)
        self.manager(config=config)
        self.config = config
        self.cache.update_limits(
            max_size=config.max_cache_size, enable_audit_logging=config.enable_audit_logging
        )
        if self._sweeper is not None and self._sweeper.interval != config.cleanup_interval:
            self.stop_cleanup()
            self.start_cleanup()
        logger.info("Updated engine configuration: %s", sorted(changes))
        return config

    def start_cleanup(self):
        """
        Start the background expiry sweep.
        """
        if self._sweeper is None:
            self._sweeper = ExpirySweeper(self.cache, self.config.cleanup_interval)
        self._sweeper.start()

    def stop_cleanup(self):
        if self._sweeper is not None:
            self._sweeper.stop()
            self._sweeper = None
