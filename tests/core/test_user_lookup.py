from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from core.domain.models import DirectoryUser, DynamicPerson
from core.errors import DirectoryRequestError, DirectoryTransportError
from core.services.user_lookup import UserLookupFacade


def _make_client(
    *,
    batch_result: dict[str, Any] | None = None,
    batch_error: Exception | None = None,
    fetch: Any = None,
) -> tuple[MagicMock, MagicMock]:
    batch = MagicMock()
    batch.add = MagicMock()
    if batch_error is not None:
        batch.execute = AsyncMock(side_effect=batch_error)
    else:
        batch.execute = AsyncMock(return_value=batch_result or {})

    client = MagicMock()
    client.create_batch = MagicMock(return_value=batch)
    client.fetch_resource = fetch or AsyncMock()
    return client, batch


def _user(user_id: str) -> dict[str, Any]:
    return {"id": user_id, "displayName": f"User {user_id.upper()}"}


@pytest.mark.asyncio
async def test_get_current_user_uses_me_with_user_read() -> None:
    client, _ = _make_client(fetch=AsyncMock(return_value={"id": "me-1", "displayName": "Ana"}))

    user = await UserLookupFacade(client).get_current_user()

    assert isinstance(user, DirectoryUser)
    assert user.id == "me-1"
    assert user.display_name == "Ana"
    client.fetch_resource.assert_awaited_once_with("me", ["user.read"])


@pytest.mark.asyncio
async def test_get_current_user_propagates_errors() -> None:
    error = DirectoryRequestError(status_code=401, path="me", code="InvalidAuthenticationToken")
    client, _ = _make_client(fetch=AsyncMock(side_effect=error))

    with pytest.raises(DirectoryRequestError) as excinfo:
        await UserLookupFacade(client).get_current_user()

    assert excinfo.value is error


@pytest.mark.asyncio
async def test_get_user_by_principal_name() -> None:
    client, batch = _make_client(
        fetch=AsyncMock(return_value={"id": "u9", "userPrincipalName": "ana@contoso.com", "city": "Lima"})
    )

    user = await UserLookupFacade(client).get_user_by_principal_name("ana@contoso.com")

    assert user.user_principal_name == "ana@contoso.com"
    # attributes outside the declared model survive
    assert user.to_api()["city"] == "Lima"
    client.fetch_resource.assert_awaited_once_with("/users/ana@contoso.com", ["user.readbasic.all"])
    client.create_batch.assert_not_called()


@pytest.mark.asyncio
async def test_get_user_with_photo_for_user_id() -> None:
    client, batch = _make_client(batch_result={"user": _user("u1"), "photo": b"\xff\xd8jpeg"})

    person = await UserLookupFacade(client).get_user_with_photo("u1")

    assert isinstance(person, DynamicPerson)
    assert person.id == "u1"
    assert person.person_image == b"\xff\xd8jpeg"
    assert batch.add.call_args_list == [
        call("user", "/users/u1", ["user.readbasic.all"]),
        call("photo", "users/u1/photo/$value", ["user.readbasic.all"]),
    ]


@pytest.mark.asyncio
async def test_get_user_with_photo_defaults_to_me() -> None:
    client, batch = _make_client(batch_result={"user": _user("me"), "photo": b"png"})

    person = await UserLookupFacade(client).get_user_with_photo()

    assert person.person_image == b"png"
    assert batch.add.call_args_list == [
        call("user", "me", ["user.read"]),
        call("photo", "me/photo/$value", ["user.read"]),
    ]


@pytest.mark.asyncio
async def test_get_user_with_photo_without_photo() -> None:
    client, _ = _make_client(batch_result={"user": _user("u1")})

    person = await UserLookupFacade(client).get_user_with_photo("u1")

    assert person.person_image is None
    assert person.photo_data_url() is None


@pytest.mark.asyncio
async def test_get_user_with_photo_propagates_batch_failure() -> None:
    client, _ = _make_client(batch_error=DirectoryTransportError("boom", path="$batch"))

    with pytest.raises(DirectoryTransportError):
        await UserLookupFacade(client).get_user_with_photo("u1")

    client.fetch_resource.assert_not_called()


@pytest.mark.asyncio
async def test_get_user_with_photo_missing_user_raises_lookup_error() -> None:
    client, _ = _make_client(batch_result={"photo": b"png"})

    with pytest.raises(LookupError):
        await UserLookupFacade(client).get_user_with_photo("ghost")


@pytest.mark.asyncio
@pytest.mark.parametrize("ids", [[], None])
async def test_get_users_by_ids_empty_input_makes_no_calls(ids: list[str] | None) -> None:
    client, _ = _make_client()

    assert await UserLookupFacade(client).get_users_by_ids(ids) == []

    client.create_batch.assert_not_called()
    client.fetch_resource.assert_not_called()


@pytest.mark.asyncio
async def test_get_users_by_ids_skips_empty_ids() -> None:
    client, batch = _make_client(batch_result={"a": _user("a")})

    users = await UserLookupFacade(client).get_users_by_ids(["", "a", ""])

    assert [u.id for u in users] == ["a"]
    batch.add.assert_called_once_with("a", "/users/a", ["user.readbasic.all"])


@pytest.mark.asyncio
async def test_get_users_by_ids_adds_repeated_id_once() -> None:
    client, batch = _make_client(batch_result={"a": _user("a"), "b": _user("b")})

    users = await UserLookupFacade(client).get_users_by_ids(["a", "b", "a"])

    assert batch.add.call_count == 2
    assert [u.id for u in users] == ["a", "b", "a"]


@pytest.mark.asyncio
async def test_get_users_by_ids_preserves_input_order() -> None:
    # dict insertion order deliberately differs from the input order
    result = {"c": _user("c"), "a": _user("a"), "b": _user("b")}
    client, _ = _make_client(batch_result=result)

    users = await UserLookupFacade(client).get_users_by_ids(["b", "c", "a"])

    assert [u.id for u in users] == ["b", "c", "a"]


@pytest.mark.asyncio
async def test_get_users_by_ids_omits_missing_and_malformed_entries() -> None:
    result = {
        "a": _user("a"),
        "c": _user("c"),
        "d": {"displayName": "no id"},
        "e": {"id": ""},
        "f": "not a record",
    }
    client, _ = _make_client(batch_result=result)

    users = await UserLookupFacade(client).get_users_by_ids(["a", "b", "c", "d", "e", "f"])

    assert [u.id for u in users] == ["a", "c"]
    client.fetch_resource.assert_not_called()


@pytest.mark.asyncio
async def test_get_users_by_ids_skips_records_failing_validation() -> None:
    result = {
        "a": _user("a"),
        "b": {"id": "b", "displayName": {"first": "Beto"}},
        "c": {"id": "c", "businessPhones": None},
        "d": {"id": "d", "businessPhones": "555-0100"},
    }
    client, _ = _make_client(batch_result=result)

    users = await UserLookupFacade(client).get_users_by_ids(["a", "b", "c", "d"])

    assert [u.id for u in users] == ["a", "c"]
    client.fetch_resource.assert_not_called()


@pytest.mark.asyncio
async def test_get_users_by_ids_falls_back_to_single_requests() -> None:
    async def fetch(path: str, scopes: list[str]) -> dict[str, Any]:
        user_id = path.rsplit("/", 1)[-1]
        # finish in reverse order to prove ordering does not depend on completion
        await asyncio.sleep({"a": 0.03, "b": 0.02, "c": 0.01}[user_id])
        return _user(user_id)

    client, _ = _make_client(
        batch_error=DirectoryTransportError("batch rejected", path="$batch"),
        fetch=AsyncMock(side_effect=fetch),
    )

    users = await UserLookupFacade(client).get_users_by_ids(["a", "", "b", "c"])

    assert [u.id for u in users] == ["a", "b", "c"]
    assert client.fetch_resource.await_count == 3
    for user_id in ("a", "b", "c"):
        client.fetch_resource.assert_any_await(f"/users/{user_id}", ["user.readbasic.all"])


@pytest.mark.asyncio
async def test_get_users_by_ids_fallback_failure_returns_empty() -> None:
    started: list[str] = []

    async def fetch(path: str, scopes: list[str]) -> dict[str, Any]:
        user_id = path.rsplit("/", 1)[-1]
        started.append(user_id)
        if user_id == "b":
            raise DirectoryRequestError(status_code=404, path=path, code="Request_ResourceNotFound")
        await asyncio.sleep(0)
        return _user(user_id)

    client, _ = _make_client(
        batch_error=RuntimeError("batch down"),
        fetch=AsyncMock(side_effect=fetch),
    )

    users = await UserLookupFacade(client).get_users_by_ids(["a", "b", "c"])

    assert users == []
    # one failure does not cancel the other fetches
    assert sorted(started) == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_get_users_by_ids_logs_degradation(caplog: pytest.LogCaptureFixture) -> None:
    client, _ = _make_client(
        batch_error=RuntimeError("batch down"),
        fetch=AsyncMock(side_effect=RuntimeError("still down")),
    )

    with caplog.at_level("WARNING", logger="core.services.user_lookup"):
        assert await UserLookupFacade(client).get_users_by_ids(["a"]) == []

    messages = [r.getMessage() for r in caplog.records]
    assert any("falling back" in m for m in messages)
    assert any("returning no users" in m for m in messages)
