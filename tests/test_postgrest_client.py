import asyncio

import httpx
import pytest
from fastapi import HTTPException
from postgrest import APIError as PostgrestAPIError

from app.services.postgrest_client import (
    extract_bearer_token,
    postgrest_status,
    raise_postgrest_error,
    run_postgrest,
)


def _error(code, message="boom"):
    return PostgrestAPIError({"message": message, "code": code, "hint": None, "details": None})


@pytest.mark.parametrize(
    "code, expected",
    [
        ("23505", 409),
        ("23502", 400),
        ("22P02", 400),
        ("42501", 403),
        ("PGRST116", 404),
        ("PGRST301", 401),
        ("401", 401),
        ("XX000", 502),
        (None, 502),
    ],
)
def test_postgrest_status_maps_error_codes(code, expected) -> None:
    assert postgrest_status(_error(code)) == expected


def test_unknown_errors_become_502_without_leaking_details() -> None:
    with pytest.raises(HTTPException) as excinfo:
        raise_postgrest_error(_error("XX000", "relation secret_table missing"), context="menu insert")

    assert excinfo.value.status_code == 502
    assert "secret_table" not in excinfo.value.detail


def test_duplicate_insert_is_a_conflict() -> None:
    with pytest.raises(HTTPException) as excinfo:
        raise_postgrest_error(_error("23505"), context="business insert")

    assert excinfo.value.status_code == 409


def test_run_postgrest_maps_library_and_transport_errors() -> None:
    def refused():
        raise _error("42501")

    def unreachable():
        raise httpx.ConnectError("connection refused")

    with pytest.raises(HTTPException) as refused_info:
        asyncio.run(run_postgrest(refused, context="opex list"))
    with pytest.raises(HTTPException) as unreachable_info:
        asyncio.run(run_postgrest(unreachable, context="opex list"))

    assert refused_info.value.status_code == 403
    assert unreachable_info.value.status_code == 503
    assert asyncio.run(run_postgrest(lambda: [{"id": "o1"}], context="opex list")) == [{"id": "o1"}]


def test_extract_bearer_token() -> None:
    assert extract_bearer_token("Bearer abc.def") == "abc.def"
    for header in (None, "", "Basic abc", "Bearer"):
        with pytest.raises(HTTPException) as excinfo:
            extract_bearer_token(header)
        assert excinfo.value.status_code == 401
