import pytest

HEADERS = {"X-User-Id": "alice"}
ALIEN = {"movie_id": 348, "media_type": "movie", "title": "Alien", "poster_path": "/a.jpg"}


@pytest.mark.asyncio
async def test_watchlist_crud(api_client, create_user):
	await create_user("alice")

	response = await api_client.post("/watchlists", headers=HEADERS, json={"name": " Sci-fi "})
	assert response.status_code == 201
	watchlist = response.json()
	assert watchlist["name"] == "Sci-fi"

	response = await api_client.post(f"/watchlists/{watchlist['id']}/items", headers=HEADERS, json=ALIEN)
	assert response.status_code == 200
	assert [movie["movie_id"] for movie in response.json()["movies"]] == [348]

	response = await api_client.post(f"/watchlists/{watchlist['id']}/items", headers=HEADERS, json=ALIEN)
	assert response.status_code == 409

	response = await api_client.patch(f"/watchlists/{watchlist['id']}", headers=HEADERS, json={"name": "Space"})
	assert response.json()["name"] == "Space"

	response = await api_client.delete(f"/watchlists/{watchlist['id']}/items/movie/348", headers=HEADERS)
	assert response.json()["movies"] == []

	assert (await api_client.delete(f"/watchlists/{watchlist['id']}", headers=HEADERS)).status_code == 204
	assert (await api_client.get(f"/watchlists/{watchlist['id']}", headers=HEADERS)).status_code == 404


@pytest.mark.asyncio
async def test_create_and_add(api_client, create_user):
	await create_user("alice")
	response = await api_client.post(
		"/watchlists/create-and-add",
		headers=HEADERS,
		json={"name": "Horror", "movie": ALIEN},
	)
	assert response.status_code == 201
	listing = await api_client.get("/watchlists", headers=HEADERS)
	assert [(item["name"], len(item["movies"])) for item in listing.json()] == [("Horror", 1)]


@pytest.mark.asyncio
async def test_blank_name_rejected(api_client, create_user):
	await create_user("alice")
	response = await api_client.post("/watchlists", headers=HEADERS, json={"name": "   "})
	assert response.status_code in (400, 422)
