import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from conftest import GANGNAM, SONGPA_COORDS, make_request
from core.database import get_db
from core.security import create_access_token
from main import app
from services import apply_service, matching_service


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user.email)}"}


@pytest.mark.asyncio
async def test_create_matching_via_api(client, users):
    payload = make_request().model_dump(mode="json")

    response = await client.post("/matches", json=payload, headers=auth(users["organizer"]))

    assert response.status_code == 201
    body = response.json()
    assert body["recruit_status"] == "OPEN"
    assert body["accepted_num"] == 1
    assert body["organizer_nickname"] == "organizer"
    assert (body["lat"], body["lon"]) == SONGPA_COORDS


@pytest.mark.asyncio
async def test_create_requires_token(client, users):
    response = await client.post("/matches", json=make_request().model_dump(mode="json"))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_schedule_is_unprocessable(client, users):
    payload = make_request().model_dump(mode="json")
    payload["end_time"] = "09:00:00"

    response = await client.post("/matches", json=payload, headers=auth(users["organizer"]))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_domain_error_has_code(client, users):
    response = await client.get("/matches/999")
    assert response.status_code == 404
    assert response.json()["code"] == "MATCHING_NOT_FOUND"


@pytest.mark.asyncio
async def test_apply_and_accept_flow(client, db, users):
    matching = await matching_service.create(db, users["organizer"].email, make_request(recruit_num=2))

    applied = await client.post(f"/apply/matches/{matching.id}", headers=auth(users["alice"]))
    assert applied.status_code == 201
    apply_id = applied.json()["id"]

    conflict = await client.post(f"/apply/matches/{matching.id}", headers=auth(users["alice"]))
    assert conflict.status_code == 400
    assert conflict.json()["code"] == "ALREADY_EXISTED_APPLY"

    denied = await client.patch(
        f"/apply/matches/{matching.id}",
        json={"accepted_applies": [apply_id]},
        headers=auth(users["alice"]),
    )
    assert denied.status_code == 403

    accepted = await client.patch(
        f"/apply/matches/{matching.id}",
        json={"accepted_applies": [apply_id]},
        headers=auth(users["organizer"]),
    )
    assert accepted.status_code == 200
    assert accepted.json()["recruit_status"] == "FULL"


@pytest.mark.asyncio
async def test_apply_contents_hide_pending_from_outsiders(client, db, users):
    matching = await matching_service.create(db, users["organizer"].email, make_request())
    await apply_service.apply(db, users["alice"].email, matching.id)

    as_organizer = await client.get(
        f"/matches/{matching.id}/apply-contents", headers=auth(users["organizer"])
    )
    assert as_organizer.json()["apply_num"] == 1
    assert [m["nickname"] for m in as_organizer.json()["applied_members"]] == ["alice"]

    as_outsider = await client.get(
        f"/matches/{matching.id}/apply-contents", headers=auth(users["bob"])
    )
    body = as_outsider.json()
    assert body["is_applied"] is False
    assert "apply_num" not in body
    assert "applied_members" not in body


@pytest.mark.asyncio
async def test_list_and_distance_pages(client, db, users):
    await matching_service.create(db, users["organizer"].email, make_request())
    await matching_service.create(db, users["organizer"].email, make_request(location=GANGNAM))

    listed = await client.get("/matches", params={"size": 1})
    body = listed.json()
    assert (body["total"], body["size"], len(body["items"])) == (2, 1, 1)

    nearby = await client.get(
        "/matches/distance",
        params={"lat": SONGPA_COORDS[0], "lon": SONGPA_COORDS[1], "distance": 2},
    )
    assert nearby.json()["total"] == 1


@pytest.mark.asyncio
async def test_delete_by_organizer(client, db, users):
    matching = await matching_service.create(db, users["organizer"].email, make_request())

    denied = await client.delete(f"/matches/{matching.id}", headers=auth(users["alice"]))
    assert denied.status_code == 403

    deleted = await client.delete(f"/matches/{matching.id}", headers=auth(users["organizer"]))
    assert deleted.status_code == 204
    assert (await client.get(f"/matches/{matching.id}")).status_code == 404


@pytest.mark.asyncio
async def test_notifications_list(client, db, users):
    matching = await matching_service.create(db, users["organizer"].email, make_request())
    await apply_service.apply(db, users["alice"].email, matching.id)

    response = await client.get("/notifications", headers=auth(users["organizer"]))
    assert response.status_code == 200
    assert [n["notification_type"] for n in response.json()] == ["REQUEST_APPLY"]


@pytest.mark.asyncio
async def test_health_reports_database_and_scheduler(client):
    response = await client.get("/health")
    assert response.json() == {"status": "ok", "scheduler": "stopped"}
