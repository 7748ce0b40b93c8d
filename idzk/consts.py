"""
Protocol-wide constants.
"""

DEFAULT_CURVE = "secp256k1"

# Label hashed onto the curve to obtain the second Pedersen generator. Nobody knows its discrete
# logarithm with respect to the curve base point.
PEDERSEN_H_LABEL = b"idzk/pedersen/h"

# Domain separation for attributes hashed to scalars.
ATTRIBUTE_LABEL = b"idzk/attribute/"

INFINITY_ENCODING = "infinity"

STATEMENT_TYPES = (
    "discrete_log",
    "pedersen_commitment",
    "range_proof",
    "set_membership",
    "custom",
)

PROOF_TYPES = {
    "discrete_log": "discrete_logarithm",
    "pedersen_commitment": "pedersen_commitment",
    "range_proof": "range_proof",
    "set_membership": "set_membership",
    "custom": "custom_proof",
}

HASH_FUNCTIONS = {
    "discrete_log": "SHA-256",
    "pedersen_commitment": "SHA-384",
    "range_proof": "SHA-512",
    "set_membership": "SHA-256",
    "custom": "SHA-256",
}

TRANSFORM_TYPES = {
    "discrete_log": "schnorr",
    "pedersen_commitment": "pedersen",
    "range_proof": "pedersen",
    "set_membership": "pedersen",
    "custom": "sigma",
}

VERIFICATION_KEY_HASH = "SHA-256"

SECURITY_LEVELS = ("standard", "military", "top-secret")

VERIFICATION_MODES = ("all", "any")

DEFAULT_PROOF_TTL_HOURS = 24
# A century; later expiry dates approach the limits of datetime.
MAX_PROOF_TTL_HOURS = 24 * 366 * 100
DEFAULT_CACHE_SIZE = 1000
DEFAULT_CLEANUP_INTERVAL = 60 * 60

AUDIT_LOG_SIZE = 10000

# Upper bound used by age checks when no explicit maximum is given.
DEFAULT_MAX_AGE = 150
