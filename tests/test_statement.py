from datetime import datetime, timedelta, timezone

import pytest

from idzk.exceptions import GenerationError
from idzk.statement import (
    ProofRequest,
    ZKStatement,
    age_verification_statement,
    canonical_context,
    credential_statement,
    selective_disclosure_statement,
)


T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=24)


def make_statement(**kwargs):
    params = dict(
        type="range_proof",
        description="Balance check",
        public_inputs={"range": 100, "min": 10},
        private_inputs={"value": 42},
        relation="min <= value < range",
    )
    params.update(kwargs)
    return ZKStatement(**params)


def test_inputs_are_strings():
    stmt = make_statement()
    assert stmt.public_inputs == {"range": "100", "min": "10"}
    assert stmt.private_inputs == {"value": "42"}


def test_public_view_drops_private_inputs():
    view = make_statement().public_view()
    assert not hasattr(view, "private_inputs")
    assert "42" not in repr(view)
    with pytest.raises(TypeError):
        view.public_inputs["value"] = "42"


def test_canonical_context_ignores_input_order():
    a = make_statement(public_inputs={"range": 100, "min": 10}).public_view()
    b = make_statement(public_inputs={"min": 10, "range": 100}).public_view()
    assert canonical_context(a, T0, T1) == canonical_context(b, T0, T1)


def test_canonical_context_covers_statement_and_window():
    base = canonical_context(make_statement().public_view(), T0, T1)
    assert canonical_context(make_statement(description="x").public_view(), T0, T1) != base
    assert canonical_context(make_statement(relation="x").public_view(), T0, T1) != base
    assert canonical_context(make_statement(public_inputs={"range": 101}).public_view(), T0, T1) != base
    assert canonical_context(make_statement().public_view(), T0, T1 + timedelta(seconds=1)) != base


def test_canonical_context_ignores_private_inputs():
    a = canonical_context(make_statement(private_inputs={"value": 1}).public_view(), T0, T1)
    b = canonical_context(make_statement(private_inputs={"value": 2}).public_view(), T0, T1)
    assert a == b


def test_request_type():
    assert ProofRequest(make_statement(type="discrete_log")).type == "discrete_logarithm"
    assert ProofRequest(make_statement(type="custom")).type == "custom_proof"


def test_age_statement():
    stmt = age_verification_statement({"age": 30}, 18, 120)
    assert stmt.type == "range_proof"
    assert stmt.public_inputs == {"min": "18", "range": "121"}
    assert stmt.private_inputs == {"value": "30"}

    with pytest.raises(GenerationError):
        age_verification_statement({"age": None}, 18)


def test_credential_statement():
    stmt = credential_statement({"type": " visa "}, ["passport", " visa"])
    assert stmt.public_inputs == {"set": "passport,visa"}
    assert stmt.private_inputs == {"value": "visa"}

    with pytest.raises(GenerationError):
        credential_statement({}, ["passport"])


def test_credential_types_with_commas_are_rejected():
    with pytest.raises(GenerationError):
        credential_statement({"type": "visa,passport"}, ["visa,passport", "id_card"])
    with pytest.raises(GenerationError):
        credential_statement({"type": "visa"}, ["visa", "passport,id_card"])


def test_selective_disclosure_statement():
    identity = {"name": "Alice", "country": "CH", "email": "alice@example.org"}
    stmt = selective_disclosure_statement(identity, ["country", "name"])
    assert stmt.public_inputs == {
        "disclosed": "country,name",
        "attr:country": "CH",
        "attr:name": "Alice",
    }
    assert stmt.private_inputs == {"email": "alice@example.org"}
