import uuid
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from sessionauth.core.passwords import verify_password
from sessionauth.services import user_service


async def _create(client: AsyncClient, username: str, email: str, password: str = "12345"):
    return await client.post(
        "/users",
        json={"username": username, "email": email, "password": password},
    )


@pytest.mark.asyncio
async def test_create_user_endpoint(client: AsyncClient):
    """POST /users creates user, returns 201 with the stored representation."""
    response = await _create(client, "u1", "e1@x.com", "p1")
    assert response.status_code == 201
    data = response.json()
    assert set(data) == {"id", "username", "email", "password", "created_at", "updated_at"}
    assert data["username"] == "u1"
    assert data["email"] == "e1@x.com"
    assert data["password"] != "p1"
    assert uuid.UUID(data["id"]).version == 4
    assert data["created_at"] == data["updated_at"]


@pytest.mark.asyncio
async def test_create_then_get_scenario(client: AsyncClient):
    await _create(client, "u1", "e1@x.com", "p1")

    response = await client.get("/users/u1")
    assert response.status_code == 200
    data = response.json()
    assert data["username"] == "u1"
    assert data["email"] == "e1@x.com"
    assert data["password"] != "p1"

    duplicate = await _create(client, "u2", "e1@x.com", "p2")
    assert duplicate.status_code == 400
    assert duplicate.json() == {
        "name": "ValidationError",
        "message": "O email informado já está sendo utilizado.",
        "action": "Utilize outro email para realizar esta operação.",
        "status_code": 400,
    }


@pytest.mark.asyncio
async def test_create_duplicate_username_case_only(client: AsyncClient):
    assert (await _create(client, "Duplicado", "dup1@x.com")).status_code == 201
    response = await _create(client, "duplicado", "dup2@x.com")
    assert response.status_code == 400
    assert response.json()["message"] == "O username informado já está sendo utilizado."


@pytest.mark.asyncio
async def test_create_rejects_oversized_fields(client: AsyncClient):
    response = await _create(client, "x" * 31, "long@x.com")
    assert response.status_code == 400
    assert response.json()["name"] == "ValidationError"

    # 37 two-byte characters: under 72 characters, over 72 bytes
    response = await _create(client, "bytes", "bytes@x.com", "é" * 37)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_missing_field(client: AsyncClient):
    response = await client.post("/users", json={"username": "nofields"})
    assert response.status_code == 400
    assert response.json()["status_code"] == 400


@pytest.mark.asyncio
async def test_get_user_case_mismatch(client: AsyncClient):
    await _create(client, "CaseDiferente", "CaseDiferente@gmail.com")
    response = await client.get("/users/casediferente")
    assert response.status_code == 200
    assert response.json()["username"] == "CaseDiferente"
    assert response.json()["email"] == "CaseDiferente@gmail.com"


@pytest.mark.asyncio
async def test_get_missing_user(client: AsyncClient):
    response = await client.get("/users/UsuarioInexistente")
    assert response.status_code == 404
    assert response.json() == {
        "name": "NotFoundError",
        "message": "O username informado não foi encontrado no sistema.",
        "action": "Verifique se o username está digitado corretamente.",
        "status_code": 404,
    }


@pytest.mark.asyncio
async def test_patch_missing_user_without_body(client: AsyncClient):
    response = await client.patch("/users/UsuarioInexistente")
    assert response.status_code == 404
    assert response.json()["name"] == "NotFoundError"


@pytest.mark.asyncio
async def test_patch_duplicated_username(client: AsyncClient):
    await _create(client, "user1", "user1@gmail.com")
    await _create(client, "user2", "user2@gmail.com")

    response = await client.patch("/users/user2", json={"username": "user1"})
    assert response.status_code == 400
    assert response.json() == {
        "name": "ValidationError",
        "message": "O username informado já está sendo utilizado.",
        "action": "Utilize outro username para realizar esta operação.",
        "status_code": 400,
    }


@pytest.mark.asyncio
async def test_patch_duplicated_email(client: AsyncClient):
    await _create(client, "email1", "email1@gmail.com")
    await _create(client, "email2", "email2@gmail.com")

    response = await client.patch("/users/email2", json={"email": "email1@gmail.com"})
    assert response.status_code == 400
    assert response.json()["message"] == "O email informado já está sendo utilizado."


@pytest.mark.asyncio
async def test_patch_unique_username(client: AsyncClient, clock):
    await _create(client, "uniqueuser1", "uniqueuser1@gmail.com")
    clock.advance(timedelta(seconds=1))

    response = await client.patch("/users/uniqueuser1", json={"username": "uniqueuser2"})
    assert response.status_code == 200
    data = response.json()
    assert data["username"] == "uniqueuser2"
    assert data["email"] == "uniqueuser1@gmail.com"
    assert datetime.fromisoformat(data["updated_at"]) > datetime.fromisoformat(data["created_at"])

    assert (await client.get("/users/uniqueuser1")).status_code == 404
    assert (await client.get("/users/uniqueuser2")).status_code == 200


@pytest.mark.asyncio
async def test_patch_unique_email(client: AsyncClient, clock):
    await _create(client, "uniqueemail1", "uniqueemail1@gmail.com")
    clock.advance(timedelta(seconds=1))

    response = await client.patch("/users/uniqueemail1", json={"email": "uniqueemail2@gmail.com"})
    assert response.status_code == 200
    data = response.json()
    assert data["username"] == "uniqueemail1"
    assert data["email"] == "uniqueemail2@gmail.com"
    assert datetime.fromisoformat(data["updated_at"]) > datetime.fromisoformat(data["created_at"])


@pytest.mark.asyncio
async def test_patch_own_values_is_idempotent(client: AsyncClient, clock):
    created = (await _create(client, "idem", "idem@gmail.com")).json()
    clock.advance(timedelta(seconds=1))

    response = await client.patch("/users/idem", json={"username": "idem", "email": "idem@gmail.com"})
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == created["id"]
    assert data["password"] == created["password"]
    assert data["updated_at"] != created["updated_at"]


@pytest.mark.asyncio
async def test_patch_new_password(client: AsyncClient, db_session, clock):
    await _create(client, "newpassword1", "newpassword1@gmail.com", "newpassword1")
    clock.advance(timedelta(seconds=1))

    response = await client.patch("/users/newpassword1", json={"password": "newpassword2"})
    assert response.status_code == 200

    stored = await user_service.find_by_username(db_session, "newpassword1")
    assert verify_password("newpassword2", stored.password) is True
    assert verify_password("newpassword1", stored.password) is False


@pytest.mark.asyncio
async def test_password_hash_can_be_hidden(client: AsyncClient, monkeypatch):
    from sessionauth.config import settings

    monkeypatch.setattr(settings, "expose_password_hash", False)
    response = await _create(client, "hidden", "hidden@gmail.com")
    assert response.status_code == 201
    assert "password" not in response.json()


@pytest.mark.asyncio
async def test_non_ascii_username_round_trip(client: AsyncClient):
    assert (await _create(client, "Éric", "eric@gmail.com")).status_code == 201

    response = await client.get("/users/Éric")
    assert response.status_code == 200
    assert response.json()["username"] == "Éric"

    response = await client.get("/users/ÉRIC")
    assert response.status_code == 200
    assert response.json()["email"] == "eric@gmail.com"

    response = await client.patch("/users/Éric", json={"email": "eric2@gmail.com"})
    assert response.status_code == 200
