import asyncio

import pytest

from watchme.domain.identity import google, profile_service, service, sessions
from watchme.domain.identity.exceptions import (
    CredentialInUse,
    EmailInUse,
    InvalidInput,
    LoginFailed,
    NotAnonymous,
    SessionInvalid,
    UsernameTaken,
)
from watchme.domain.identity.schemas import ProfileUpdateRequest
from watchme.infra.auth import AuthenticatedUser, verify_access_jwt
from watchme.infra.docstore import DocumentStoreError, get_store


def _google_identity(subject="g-1", email="ada@example.com"):
    return google.GoogleIdentity(subject=subject, email=email, email_verified=True, name="Ada L", picture="https://img/ada.png")


@pytest.mark.asyncio
async def test_register_creates_profile_and_session():
    session = await service.register("Ada@Example.com ", "secret1", display_name="Ada")

    profile = await profile_service.require_profile(session.user_id)
    assert profile.email == "ada@example.com"
    assert profile.username == "ada"
    assert profile.display_name == "Ada"
    assert profile.is_anonymous is False
    assert profile.liked_movies == [] and profile.watchlists == []

    user = verify_access_jwt(session.access_token)
    assert user.id == session.user_id
    assert user.email == "ada@example.com"


@pytest.mark.asyncio
async def test_register_rejects_duplicate_email_and_weak_password():
    await service.register("ada@example.com", "secret1")
    with pytest.raises(EmailInUse):
        await service.register("ADA@example.com", "another1")
    with pytest.raises(InvalidInput):
        await service.register("bob@example.com", "123")


@pytest.mark.asyncio
async def test_login_checks_password():
    registered = await service.register("ada@example.com", "secret1")

    session = await service.login("ada@example.com", "secret1")
    assert session.user_id == registered.user_id

    with pytest.raises(LoginFailed):
        await service.login("ada@example.com", "wrong-pass")
    with pytest.raises(LoginFailed):
        await service.login("nobody@example.com", "secret1")


@pytest.mark.asyncio
async def test_anonymous_account_upgrades_in_place():
    anon = await service.sign_in_anonymously(client_ip="10.0.0.1")
    profile = await profile_service.require_profile(anon.user_id)
    assert profile.is_anonymous is True
    assert profile.username.startswith("user_")

    await get_store().update(
        f"users/{anon.user_id}",
        {"liked_movies": [{"movie_id": 1, "media_type": "movie", "title": "Alien", "poster_path": "/a.jpg"}]},
    )
    auth_user = verify_access_jwt(anon.access_token)
    linked = await service.link_with_password(auth_user, "ada@example.com", "secret1")

    assert linked.user_id == anon.user_id
    assert linked.is_anonymous is False
    upgraded = await profile_service.require_profile(anon.user_id)
    assert upgraded.is_anonymous is False
    assert upgraded.email == "ada@example.com"
    assert [item.title for item in upgraded.liked_movies] == ["Alien"]

    with pytest.raises(NotAnonymous):
        await service.link_with_password(AuthenticatedUser(id=anon.user_id), "ada2@example.com", "secret1")

    # the anonymous session was revoked on upgrade
    with pytest.raises(SessionInvalid):
        await sessions.refresh(anon.refresh_token)


@pytest.mark.asyncio
async def test_google_sign_in_reuses_password_account(monkeypatch):
    registered = await service.register("ada@example.com", "secret1")

    async def fake_verify(id_token, *, http=None):
        return _google_identity()

    monkeypatch.setattr(google, "verify_id_token", fake_verify)
    session = await service.sign_in_with_google("token")
    assert session.user_id == registered.user_id

    again = await service.sign_in_with_google("token")
    assert again.user_id == registered.user_id


@pytest.mark.asyncio
async def test_google_link_conflicts_with_existing_account(monkeypatch):
    await service.register("ada@example.com", "secret1")
    anon = await service.sign_in_anonymously()

    async def fake_verify(id_token, *, http=None):
        return _google_identity()

    monkeypatch.setattr(google, "verify_id_token", fake_verify)
    with pytest.raises(CredentialInUse):
        await service.link_with_google(verify_access_jwt(anon.access_token), "token")


@pytest.mark.asyncio
async def test_refresh_rotates_and_detects_reuse():
    session = await service.register("ada@example.com", "secret1")

    rotated = await service.refresh(session.refresh_token)
    assert rotated.user_id == session.user_id
    assert rotated.refresh_token != session.refresh_token

    with pytest.raises(SessionInvalid) as excinfo:
        await service.refresh(session.refresh_token)
    assert excinfo.value.reason == "refresh_reuse_detected"

    # reuse revoked the whole session, including the newest token
    with pytest.raises(SessionInvalid):
        await service.refresh(rotated.refresh_token)


@pytest.mark.asyncio
async def test_ensure_profile_swallows_store_failures(monkeypatch):
    calls = 0

    async def failing_upsert(uid, **kwargs):
        nonlocal calls
        calls += 1
        raise DocumentStoreError("boom")

    monkeypatch.setattr(service, "_upsert_profile", failing_upsert)
    monkeypatch.setattr(service, "PROFILE_RETRY_DELAY_SECONDS", 0)

    ok = await service.ensure_profile("u1", email=None, is_anonymous=True)
    assert ok is False
    assert calls == service.PROFILE_CREATE_ATTEMPTS


@pytest.mark.asyncio
async def test_update_profile_enforces_unique_usernames(create_user):
    await create_user("u1", username="ada")
    await create_user("u2", username="bob")

    with pytest.raises(UsernameTaken):
        await profile_service.update_profile(AuthenticatedUser(id="u2"), ProfileUpdateRequest(username="Ada"))

    updated = await profile_service.update_profile(
        AuthenticatedUser(id="u2"),
        ProfileUpdateRequest(username="bobby", bio="  films  "),
    )
    assert updated.username == "bobby"
    assert updated.bio == "films"


@pytest.mark.asyncio
async def test_rename_moves_the_username_claim(create_user):
    await create_user("u1", username="ada")

    await profile_service.update_profile(AuthenticatedUser(id="u1"), ProfileUpdateRequest(username="lovelace"))

    assert await profile_service.username_owner("lovelace") == "u1"
    assert await profile_service.username_owner("ada") is None
    await create_user("u2", username="bob")
    updated = await profile_service.update_profile(AuthenticatedUser(id="u2"), ProfileUpdateRequest(username="ada"))
    assert updated.username == "ada"


@pytest.mark.asyncio
async def test_concurrent_claims_for_one_username_admit_a_single_owner(create_user):
    await create_user("u1", username="ada")
    await create_user("u2", username="bob")

    results = await asyncio.gather(
        profile_service.update_profile(AuthenticatedUser(id="u1"), ProfileUpdateRequest(username="cinephile")),
        profile_service.update_profile(AuthenticatedUser(id="u2"), ProfileUpdateRequest(username="cinephile")),
        return_exceptions=True,
    )

    winners = [result for result in results if not isinstance(result, Exception)]
    assert len(winners) == 1
    assert [type(result) for result in results if isinstance(result, Exception)] == [UsernameTaken]
    owner = await profile_service.username_owner("cinephile")
    assert owner == winners[0].uid
    loser = "u2" if owner == "u1" else "u1"
    assert (await profile_service.require_profile(loser)).username in {"ada", "bob"}


@pytest.mark.asyncio
async def test_new_profile_falls_back_when_default_username_is_claimed(create_user):
    await create_user("other", username="ada")

    session = await service.register("ada@example.com", "secret1")

    profile = await profile_service.require_profile(session.user_id)
    assert profile.username == f"ada_{session.user_id[-6:].lower()}"
    assert await profile_service.username_owner(profile.username) == session.user_id
    assert await profile_service.username_owner("ada") == "other"


def test_default_username_candidates_end_with_uid():
    candidates = profile_service.default_username_candidates("01HXYZABCDEF", "ada@example.com")
    assert candidates == ["ada", "ada_abcdef", "01hxyzabcdef"]


@pytest.mark.asyncio
async def test_search_users_by_prefix_excludes_caller(create_user):
    await create_user("u1", username="ada")
    await create_user("u2", username="adam")
    await create_user("u3", username="bob")

    results = await profile_service.search_users(AuthenticatedUser(id="u1"), "AD")
    assert [profile.username for profile in results] == ["adam"]
    assert await profile_service.search_users(AuthenticatedUser(id="u1"), "  ") == []
