import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.asyncio
async def test_upload_profile_photo(api_client, create_user):
	await create_user("alice")
	response = await api_client.post(
		"/profile/photo",
		headers={"X-User-Id": "alice"},
		files={"file": ("me.png", PNG_BYTES, "image/png")},
	)
	assert response.status_code == 200
	url = response.json()["photo_url"]
	assert url.endswith(".png")
	assert "profile_photos/alice/" in url

	me = await api_client.get("/profile/me", headers={"X-User-Id": "alice"})
	assert me.json()["photo_url"] == url


@pytest.mark.asyncio
async def test_upload_rejects_other_media(api_client, create_user):
	await create_user("alice")
	response = await api_client.post(
		"/profile/photo",
		headers={"X-User-Id": "alice"},
		files={"file": ("notes.txt", b"hello", "text/plain")},
	)
	assert response.status_code == 400
	assert response.json()["detail"] == "unsupported_media_type"


@pytest.mark.asyncio
async def test_update_profile_and_search(api_client, create_user):
	await create_user("alice")
	await create_user("bob", username="bobby")
	await create_user("bert", username="bert")

	response = await api_client.patch(
		"/profile/me",
		headers={"X-User-Id": "alice"},
		json={"bio": "  likes noir  "},
	)
	assert response.status_code == 200
	assert response.json()["bio"] == "likes noir"

	response = await api_client.get("/users/search", params={"q": "bo"}, headers={"X-User-Id": "alice"})
	assert [user["uid"] for user in response.json()] == ["bob"]

	response = await api_client.patch("/profile/me", headers={"X-User-Id": "alice"}, json={"username": "bobby"})
	assert response.status_code == 409


@pytest.mark.asyncio
async def test_missing_profile_is_404(api_client):
	response = await api_client.get("/profile/me", headers={"X-User-Id": "ghost"})
	assert response.status_code == 404
