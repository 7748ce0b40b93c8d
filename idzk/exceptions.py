"""
Common exception classes.
"""


class IdzkError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(IdzkError, ValueError):
    """Invalid engine configuration."""


class UnknownCurveError(ConfigurationError):
    """Curve name is not in the registry."""


class GenerationError(IdzkError):
    """A proof could not be generated. No proof is ever returned in this case."""


class UnsupportedStatementError(GenerationError):
    """Statement type is not supported."""


class FalseStatementError(GenerationError):
    """The private inputs do not satisfy the public statement."""


class RandomnessUnavailableError(GenerationError):
    """The randomness or hashing collaborator failed."""


class InsecureArithmeticError(GenerationError):
    """Refusing to build a proof on top of non-cryptographic fallback arithmetic."""


class NonceReuseError(IdzkError):
    """A sigma-protocol nonce was consumed twice."""


class VerificationError(IdzkError):
    """Error during verification. Never escapes the engine."""


class MalformedEncodingError(VerificationError, ValueError):
    """A point or scalar encoding could not be parsed."""


class CacheImportError(IdzkError):
    """Malformed cache import payload."""
