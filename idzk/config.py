"""
Engine configuration.

>>> config = EngineConfig()
>>> config.curve, config.key_length
('secp256k1', 256)
>>> config.update(curve="P-384").key_length
384
>>> config.update(curve="P-999")
Traceback (most recent call last):
...
idzk.exceptions.UnknownCurveError: Unknown curve 'P-999', supported curves are: secp256k1, P-384, P-521
"""

import attr

from idzk.consts import (
    DEFAULT_CACHE_SIZE,
    DEFAULT_CLEANUP_INTERVAL,
    DEFAULT_CURVE,
    DEFAULT_PROOF_TTL_HOURS,
    MAX_PROOF_TTL_HOURS,
    SECURITY_LEVELS,
    VERIFICATION_MODES,
)
from idzk.curves import get_curve
from idzk.exceptions import ConfigurationError


def _known_curve(instance, attribute, value):
    get_curve(value)


def _one_of(choices):
    def validator(instance, attribute, value):
        if value not in choices:
            raise ConfigurationError(
                "Invalid {}: {!r}; expected one of {}".format(
                    attribute.name, value, ", ".join(choices)
                )
            )

    return validator


def _boolean(instance, attribute, value):
    if not isinstance(value, bool):
        raise ConfigurationError("{} must be a boolean".format(attribute.name))


def _positive(instance, attribute, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError("{} must be a positive number".format(attribute.name))


def _proof_ttl(instance, attribute, value):
    _positive(instance, attribute, value)
    if value > MAX_PROOF_TTL_HOURS:
        raise ConfigurationError(
            "{} must be at most {}".format(attribute.name, MAX_PROOF_TTL_HOURS)
        )


def _positive_int(instance, attribute, value):
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError("{} must be a positive integer".format(attribute.name))


@attr.s(frozen=True)
class EngineConfig:
    """
    Settings of a :py:class:`idzk.engine.ZKEngine`.

    Args:
        curve: Curve name, one of :py:func:`idzk.curves.supported_curves`.
        security_level: ``standard``, ``military`` or ``top-secret``. Recorded in proofs.
        quantum_resistant: Flag recorded in proofs. No post-quantum scheme is implemented.
        proof_ttl_hours: Default proof lifetime.
        enable_proof_caching: Store generated proofs in the engine cache.
        max_cache_size: Cache capacity.
        enable_audit_logging: Keep an audit log of cache events.
        verification_mode: ``all`` requires every component of a proof to verify; ``any``
            accepts a proof if at least one does.
        cleanup_interval: Seconds between background expiry sweeps.
        allow_insecure_fallback: Start even if the curve library cannot provide the curve. No
            proof can be generated or verified in that state.
    """

    curve = attr.ib(default=DEFAULT_CURVE, validator=_known_curve)
    security_level = attr.ib(default="military", validator=_one_of(SECURITY_LEVELS))
    quantum_resistant = attr.ib(default=False, validator=_boolean)
    proof_ttl_hours = attr.ib(default=DEFAULT_PROOF_TTL_HOURS, validator=_proof_ttl)
    enable_proof_caching = attr.ib(default=True, validator=_boolean)
    max_cache_size = attr.ib(default=DEFAULT_CACHE_SIZE, validator=_positive_int)
    enable_audit_logging = attr.ib(default=True, validator=_boolean)
    verification_mode = attr.ib(default="all", validator=_one_of(VERIFICATION_MODES))
    cleanup_interval = attr.ib(default=DEFAULT_CLEANUP_INTERVAL, validator=_positive)
    allow_insecure_fallback = attr.ib(default=False, validator=_boolean)

    @property
    def key_length(self):
        return get_curve(self.curve).key_length

    def update(self, **changes):
        """
        Return a validated copy with ``changes`` applied.

        Raises:
            ConfigurationError: If a setting is unknown or invalid.
        """
        try:
            return attr.evolve(self, **changes)
        except TypeError as e:
            raise ConfigurationError("Unknown setting: {}".format(e)) from e

    def to_dict(self):
        out = attr.asdict(self)
        out["key_length"] = self.key_length
        return out
