# tests/test_auth.py
from bikerental.core.security import decode_access_token
from bikerental.models.user import User

from conftest import DEFAULT_PASSWORD, create_user


async def test_register_returns_user_without_password(client):
    response = await client.post("/api/v1/auth/register", json={
        "email": "Ana.Reyes@g.batstate-u.edu.ph",
        "password": "secret123",
        "name": "Ana Reyes",
        "role": "TEACHING_STAFF",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "ana.reyes@g.batstate-u.edu.ph"
    assert body["role"] == "TEACHING_STAFF"
    assert "createdAt" in body
    assert "hashedPassword" not in body and "hashed_password" not in body

    stored = await User.find_one(User.email == "ana.reyes@g.batstate-u.edu.ph")
    assert stored is not None
    assert stored.hashed_password != "secret123"


async def test_register_defaults_to_student(client):
    response = await client.post("/api/v1/auth/register", json={
        "email": "pedro@g.batstate-u.edu.ph", "password": "secret123", "name": "Pedro",
    })
    assert response.status_code == 201
    assert response.json()["role"] == "STUDENT"


async def test_register_rejects_admin_role(client):
    response = await client.post("/api/v1/auth/register", json={
        "email": "sneaky@g.batstate-u.edu.ph", "password": "secret123", "name": "Sneaky", "role": "ADMIN",
    })
    assert response.status_code == 400
    assert "Admin" in response.json()["message"]


async def test_register_duplicate_email_is_case_insensitive(client, student):
    response = await client.post("/api/v1/auth/register", json={
        "email": student.email.upper(), "password": "secret123", "name": "Copy",
    })
    assert response.status_code == 400
    assert response.json()["message"] == "Email already registered"


async def test_register_short_password_names_the_field(client):
    response = await client.post("/api/v1/auth/register", json={
        "email": "short@g.batstate-u.edu.ph", "password": "123", "name": "Short",
    })
    assert response.status_code == 400
    assert "password" in response.json()["message"]


async def test_login_returns_token_with_id_and_role(client, student):
    response = await client.post("/api/v1/auth/login", json={
        "email": student.email, "password": DEFAULT_PASSWORD,
    })
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    token_data = decode_access_token(body["access_token"])
    assert token_data.user_id == str(student.id)
    assert token_data.role == "STUDENT"


async def test_login_wrong_password(client, student):
    response = await client.post("/api/v1/auth/login", json={"email": student.email, "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


async def test_login_unknown_email(client):
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@g.batstate-u.edu.ph", "password": "secret123",
    })
    assert response.status_code == 401


async def test_login_disabled_user(client):
    user = await create_user("gone@g.batstate-u.edu.ph", disabled=True)
    response = await client.post("/api/v1/auth/login", json={"email": user.email, "password": DEFAULT_PASSWORD})
    assert response.status_code == 400
    assert response.json()["message"] == "Inactive user"


async def test_token_endpoint_accepts_password_form(client, student):
    response = await client.post(
        "/api/v1/auth/token", data={"username": student.email, "password": DEFAULT_PASSWORD}
    )
    assert response.status_code == 200
    assert response.json()["access_token"]


async def test_me_requires_token(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Unauthorized"


async def test_me_rejects_invalid_token(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired session token"


async def test_me_returns_current_user(client, student, student_headers):
    response = await client.get("/api/v1/auth/me", headers=student_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == str(student.id)
    assert body["name"] == "Juan Dela Cruz"
