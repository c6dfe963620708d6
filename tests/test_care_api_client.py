"""
tests.test_care_api_client

`CareApiClient` against the in-process service, plus transport-level behavior
(timeouts, unreachable service) through `httpx.MockTransport`.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
import structlog

from maui_care.api.schemas import (
    MarIn,
    ResidentCreateRequest,
    StatusToggleResult,
    UserProfileBody,
    VitalsIn,
)
from maui_care.auth.models import UserRole
from maui_care.client.care_api import CareApiClient
from maui_care.client.errors import CareApiError, ErrorKind, from_response, user_message
from maui_care.client.identity import IdentityProvider
from maui_care.settings import Settings

TS = 1_700_000_000_000


@pytest_asyncio.fixture
async def identity(http: httpx.AsyncClient) -> IdentityProvider:
    return IdentityProvider(http=http)


@pytest_asyncio.fixture
async def client(
    settings: Settings, http: httpx.AsyncClient, identity: IdentityProvider
) -> CareApiClient:
    return CareApiClient(settings=settings, http=http, identity=identity)


def new_resident(resident_id: str, resident_body) -> ResidentCreateRequest:
    return ResidentCreateRequest.model_validate(resident_body(resident_id))


@pytest.mark.asyncio
async def test_login_and_resident_round_trip(
    client: CareApiClient, identity: IdentityProvider, resident_body
) -> None:
    assert identity.current_principal() is None
    assert await identity.login("alice") == "alice"
    assert identity.current_principal() == "alice"

    created = await client.create_resident(new_resident("r-1", resident_body))
    assert created.owner == "alice"

    directory = await client.residents_directory()
    assert [e.id for e in directory.residents] == ["r-1"]
    assert directory.performance is not None

    assert await client.toggle_resident_status("r-1") is StatusToggleResult.terminated
    assert await client.is_resident_active("r-1") is False
    assert await client.list_active_residents() == []

    vitals = VitalsIn(
        timestamp=TS, temperature=37.0, blood_pressure="120/80", pulse=70, blood_oxygen=98
    )
    with pytest.raises(CareApiError) as exc_info:
        await client.create_vitals("r-1", vitals)
    assert exc_info.value.kind is ErrorKind.inactive_resident
    assert user_message(exc_info.value) == "Cannot add records to an inactive resident."

    await client.delete_resident("r-1")
    assert await client.get_resident("r-1") is None


@pytest.mark.asyncio
async def test_foreign_resident_is_classified_as_unauthorized(
    client: CareApiClient, identity: IdentityProvider, resident_body
) -> None:
    await identity.login("alice")
    await client.create_resident(new_resident("r-1", resident_body))

    await identity.login("bob")
    with pytest.raises(CareApiError) as exc_info:
        await client.toggle_resident_status("r-1")
    err = exc_info.value
    assert err.kind is ErrorKind.unauthorized
    assert err.status_code == 403
    assert user_message(err).startswith("You do not have permission")


@pytest.mark.asyncio
async def test_missing_entities_and_conflicts(
    client: CareApiClient, identity: IdentityProvider, resident_body
) -> None:
    await identity.login("alice")
    with pytest.raises(CareApiError) as exc_info:
        await client.toggle_resident_status("ghost")
    assert exc_info.value.kind is ErrorKind.not_found

    await client.create_resident(new_resident("r-1", resident_body))
    mar = MarIn(timestamp=TS, medication_name="Metformin", dosage="500mg", administration_time="8")
    assert (await client.create_mar_record("r-1", mar)).nurse_id == "alice"
    with pytest.raises(CareApiError) as exc_info:
        await client.create_mar_record("r-1", mar)
    assert exc_info.value.kind is ErrorKind.conflict

    with pytest.raises(CareApiError) as exc_info:
        await client.delete_mar_record("r-1", TS + 1)
    assert exc_info.value.kind is ErrorKind.not_found


@pytest.mark.asyncio
async def test_anonymous_calls_are_unauthorized(client: CareApiClient) -> None:
    with pytest.raises(CareApiError) as exc_info:
        await client.residents_directory()
    assert exc_info.value.kind is ErrorKind.unauthorized

    health = await client.health_check()
    assert health.status == "ok"


@pytest.mark.asyncio
async def test_caller_profile_through_client(
    client: CareApiClient, identity: IdentityProvider
) -> None:
    await identity.login("root", roles=["admin"])
    assert await client.get_caller_profile() is None
    saved = await client.save_caller_profile(UserProfileBody(name="Root"))
    assert saved.name == "Root"
    assert await client.get_caller_profile() == saved
    assert await client.get_caller_role() == "admin"
    assert await client.is_caller_admin() is True

    assert await client.get_user_profile("nobody") is None
    assert await client.assign_user_role("bob", UserRole.guest) is UserRole.guest


# Transport-level behavior


@pytest_asyncio.fixture
async def mock_http() -> AsyncIterator[dict]:
    state: dict = {"handler": None}

    async def dispatch(request: httpx.Request) -> httpx.Response:
        return await state["handler"](request)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(dispatch), base_url="http://care"
    ) as http:
        state["http"] = http
        yield state


def mock_client(state: dict, **overrides) -> CareApiClient:
    settings = Settings(env="test", **overrides)
    identity = IdentityProvider(http=state["http"])
    identity.use_token(principal="alice", token="t0ken")
    return CareApiClient(settings=settings, http=state["http"], identity=identity)


def test_directory_timeout_defaults_to_fifteen_seconds() -> None:
    assert Settings().directory_timeout_seconds == 15.0


@pytest.mark.asyncio
async def test_directory_timeout_does_not_cancel_the_request(mock_http: dict) -> None:
    finished = asyncio.Event()

    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.2)
        finished.set()
        return httpx.Response(200, json={"residents": [], "performance": None})

    mock_http["handler"] = slow
    client = mock_client(mock_http, directory_timeout_seconds=0.05)

    with pytest.raises(CareApiError) as exc_info:
        await client.residents_directory()
    err = exc_info.value
    assert err.kind is ErrorKind.timeout
    assert err.message == "Residents directory timed out after 0.05 seconds"
    assert not finished.is_set()

    await asyncio.wait_for(finished.wait(), timeout=2)


@pytest.mark.asyncio
async def test_cancelled_caller_leaves_the_request_tracked(mock_http: dict) -> None:
    started = asyncio.Event()
    finished = asyncio.Event()

    async def slow(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(0.1)
        finished.set()
        return httpx.Response(200, json={"residents": [], "performance": None})

    mock_http["handler"] = slow
    client = mock_client(mock_http)

    caller = asyncio.create_task(client.residents_directory())
    await started.wait()
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller
    assert client.abandoned_requests == 1

    await asyncio.wait_for(finished.wait(), timeout=2)
    for _ in range(100):
        if client.abandoned_requests == 0:
            break
        await asyncio.sleep(0.01)
    assert client.abandoned_requests == 0

@pytest.mark.asyncio
async def test_unreachable_service_is_unavailable(mock_http: dict) -> None:
    async def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    mock_http["handler"] = refuse
    with pytest.raises(CareApiError) as exc_info:
        await mock_client(mock_http).list_active_residents()
    assert exc_info.value.kind is ErrorKind.unavailable
    assert user_message(exc_info.value).startswith("Backend connection is not available")


@pytest.mark.asyncio
async def test_headers_carry_token_and_request_id(mock_http: dict) -> None:
    seen: dict[str, str] = {}

    async def capture(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, json=[])

    mock_http["handler"] = capture
    structlog.contextvars.bind_contextvars(request_id="req-42")
    try:
        assert await mock_client(mock_http).list_vitals("r-1") == []
    finally:
        structlog.contextvars.clear_contextvars()

    assert seen["authorization"] == "Bearer t0ken"
    assert seen["x-request-id"] == "req-42"


@pytest.mark.parametrize(
    ("response", "kind"),
    [
        (httpx.Response(403, json={"code": "unauthorized"}), ErrorKind.unauthorized),
        (httpx.Response(409, json={"code": "inactive_resident"}), ErrorKind.inactive_resident),
        (httpx.Response(404, text="not here"), ErrorKind.not_found),
        (httpx.Response(422, json={"detail": [{"loc": ["body"]}]}), ErrorKind.invalid),
        (httpx.Response(503), ErrorKind.unavailable),
        (httpx.Response(500, json={"detail": "x", "code": "something_new"}), ErrorKind.unknown),
    ],
)
def test_error_classification(response: httpx.Response, kind: ErrorKind) -> None:
    assert from_response(response).kind is kind


def test_user_message_fallbacks() -> None:
    assert user_message(None) == "An unknown error occurred"
    assert user_message(ValueError("bad input")) == "bad input"
    assert user_message(CareApiError(ErrorKind.unknown, "Server exploded")) == "Server exploded"
    assert "not found" in user_message(CareApiError(ErrorKind.not_found, "x"))
