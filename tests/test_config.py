import pytest

from idzk.config import EngineConfig
from idzk.exceptions import ConfigurationError, UnknownCurveError


def test_defaults():
    config = EngineConfig()
    assert config.curve == "secp256k1"
    assert config.key_length == 256
    assert config.proof_ttl_hours == 24
    assert config.max_cache_size == 1000
    assert config.verification_mode == "all"
    assert not config.allow_insecure_fallback


def test_update_returns_copy():
    config = EngineConfig()
    updated = config.update(curve="P-521", proof_ttl_hours=2)
    assert updated.key_length == 521
    assert updated.proof_ttl_hours == 2
    assert config.curve == "secp256k1"


@pytest.mark.parametrize(
    "changes",
    [
        {"security_level": "ultra"},
        {"verification_mode": "some"},
        {"proof_ttl_hours": 0},
        {"proof_ttl_hours": "24"},
        {"proof_ttl_hours": 10 ** 8},
        {"proof_ttl_hours": float("inf")},
        {"max_cache_size": 0},
        {"max_cache_size": 1.5},
        {"enable_proof_caching": "yes"},
        {"cleanup_interval": -1},
        {"no_such_setting": 1},
    ],
)
def test_invalid_settings(changes):
    with pytest.raises(ConfigurationError):
        EngineConfig().update(**changes)


def test_unknown_curve_fails_fast():
    with pytest.raises(UnknownCurveError):
        EngineConfig(curve="curve25519")


def test_frozen():
    import attr

    with pytest.raises(attr.exceptions.FrozenInstanceError):
        EngineConfig().curve = "P-384"


def test_to_dict():
    data = EngineConfig(curve="P-384").to_dict()
    assert data["curve"] == "P-384"
    assert data["key_length"] == 384
