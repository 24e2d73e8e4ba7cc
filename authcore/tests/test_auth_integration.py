from __future__ import annotations

from collections.abc import Callable

from flask import Flask
from flask.testing import FlaskClient
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from authcore.app import create_app
from authcore.infrastructure.db.models import SecurityLog

from conftest import make_config

ALICE = {"email": "alice@example.com", "username": "alice", "password": "Secret123"}


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_register_login_me_flow(client: FlaskClient) -> None:
    register = client.post("/api/auth/register", json=ALICE)
    assert register.status_code == 201
    body = register.get_json()
    assert set(body) == {"user", "token"}
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["role"] == "user"
    assert "password" not in body["user"]
    assert "password_hash" not in body["user"]

    duplicate = client.post(
        "/api/auth/register",
        json={"email": "ALICE@example.com", "username": "alice2", "password": "Secret123"},
    )
    assert duplicate.status_code == 409
    assert duplicate.get_json()["error"] == "user_exists"

    wrong = client.post("/api/auth/login", json={"email": ALICE["email"], "password": "Wrong1234"})
    unknown = client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "Secret123"}
    )
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.data == unknown.data
    assert wrong.get_json() == {
        "error": "invalid_credentials",
        "message": "Invalid email or password",
    }

    login = client.post("/api/auth/login", json={"email": ALICE["email"], "password": "Secret123"})
    assert login.status_code == 200
    token = login.get_json()["token"]

    me = client.get("/api/auth/me", headers=_bearer(token))
    assert me.status_code == 200
    assert me.get_json()["user"]["id"] == body["user"]["id"]

    session = client.get("/api/auth/verify-session", headers=_bearer(token))
    assert session.status_code == 200
    assert session.get_json()["valid"] is True

    tampered = client.get("/api/auth/me", headers=_bearer(token[: len(token) // 2]))
    assert tampered.status_code == 401
    assert tampered.get_json()["error"] == "malformed_token"


def test_validation_errors_do_not_echo_input(client: FlaskClient) -> None:
    response = client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "username": "bob", "password": "weakpass"},
    )

    assert response.status_code == 422
    payload = response.get_json()
    assert payload["error"] == "invalid_input"
    assert set(payload["details"]["fields"]) == {"email", "password"}
    assert "weakpass" not in response.get_data(as_text=True)


def test_non_json_body_is_invalid_input(client: FlaskClient) -> None:
    response = client.post("/api/auth/login", data="email=a", content_type="text/plain")

    assert response.status_code == 422
    assert response.get_json()["error"] == "invalid_input"


def test_protected_routes_require_token(client: FlaskClient) -> None:
    for path in ("/api/auth/me", "/api/auth/verify-session"):
        response = client.get(path)
        assert response.status_code == 401
        assert response.get_json()["error"] == "missing_token"


def test_deactivated_user_loses_access(
    client: FlaskClient, set_status: Callable[[int, str], None]
) -> None:
    body = client.post("/api/auth/register", json=ALICE).get_json()
    set_status(body["user"]["id"], "suspended")

    me = client.get("/api/auth/me", headers=_bearer(body["token"]))
    login = client.post("/api/auth/login", json={"email": ALICE["email"], "password": "Secret123"})

    assert me.status_code == 403
    assert me.get_json()["error"] == "user_inactive"
    assert login.status_code == 403
    assert login.get_json()["error"] == "account_inactive"


def test_health_and_response_headers(client: FlaskClient) -> None:
    response = client.get("/api/auth/health", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "healthy"
    assert payload["service"] == "authcore"
    assert payload["database"] is True
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "Strict-Transport-Security" not in response.headers


def test_metrics_count_auth_outcomes(client: FlaskClient) -> None:
    client.post("/api/auth/register", json=ALICE)
    client.post("/api/auth/login", json={"email": ALICE["email"], "password": "Wrong1234"})

    metrics = client.get("/metrics").get_data(as_text=True)

    assert 'authcore_auth_events_total{operation="register",outcome="success"}' in metrics
    assert 'authcore_auth_events_total{operation="login",outcome="invalid_credentials"}' in metrics
    assert "authcore_request_latency_seconds" in metrics


def test_security_events_are_recorded(
    client: FlaskClient, session_factory: sessionmaker[Session]
) -> None:
    client.post("/api/auth/register", json=ALICE)
    client.post("/api/auth/register", json=ALICE)
    client.post("/api/auth/login", json={"email": ALICE["email"], "password": "Wrong1234"})
    client.post("/api/auth/login", json={"email": ALICE["email"], "password": "Secret123"})

    with session_factory() as session:
        rows = session.scalars(select(SecurityLog).order_by(SecurityLog.id)).all()

    assert [(row.action, row.success) for row in rows] == [
        ("register", True),
        ("register_failed", False),
        ("login_failed", False),
        ("login_success", True),
    ]
    assert all(row.ip_address == "127.0.0.1" for row in rows)
    assert all("Secret123" not in (row.details_json or "") for row in rows)


def test_auth_endpoints_are_rate_limited(engine: Engine) -> None:
    app: Flask = create_app(make_config(auth_rate_limit_requests=2), engine=engine)

    with app.test_client() as client:
        codes = [
            client.post("/api/auth/login", json={"email": "x@y.zz", "password": "Secret123"}).status_code
            for _ in range(3)
        ]
        register = client.post("/api/auth/register", json=ALICE)

    assert codes == [401, 401, 429]
    assert register.status_code == 201


def test_alice_scenario(client: FlaskClient) -> None:
    account = {"email": "a@x.com", "username": "alice", "password": "Passw0rd!"}

    created = client.post("/api/auth/register", json=account)
    assert created.status_code == 201
    alice_id = created.get_json()["user"]["id"]
    assert isinstance(alice_id, int)
    assert "password" not in created.get_json()["user"]

    again = client.post(
        "/api/auth/register", json={**account, "username": "alice-the-second"}
    )
    assert again.status_code == 409

    wrong = client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
    assert wrong.status_code == 401
    assert wrong.get_json()["message"] == "Invalid email or password"

    login = client.post("/api/auth/login", json={"email": "a@x.com", "password": "Passw0rd!"})
    assert login.status_code == 200
    token = login.get_json()["token"]

    me = client.get("/api/auth/me", headers=_bearer(token))
    assert me.get_json()["user"]["id"] == alice_id

    sliced = client.get("/api/auth/me", headers=_bearer(token[:-1]))
    assert sliced.status_code == 401
    assert sliced.get_json()["error"] == "malformed_token"


def test_rotating_forwarded_header_does_not_evade_login_block(client: FlaskClient) -> None:
    client.post("/api/auth/register", json=ALICE)
    wrong = {"email": ALICE["email"], "password": "Wrong1234"}

    codes = [
        client.post(
            "/api/auth/login",
            json=wrong,
            headers={"X-Forwarded-For": f"10.0.0.{i}"},
            environ_base={"REMOTE_ADDR": "203.0.113.7"},
        ).status_code
        for i in range(8)
    ]

    assert codes == [401] * 5 + [429] * 3


def test_trusted_proxy_hop_supplies_client_address(
    engine: Engine, session_factory: sessionmaker[Session]
) -> None:
    app = create_app(make_config(trusted_proxy_hops=1), engine=engine)

    with app.test_client() as client:
        client.post(
            "/api/auth/register",
            json=ALICE,
            headers={"X-Forwarded-For": "192.0.2.1, 198.51.100.20"},
            environ_base={"REMOTE_ADDR": "10.0.0.2"},
        )

    with session_factory() as session:
        row = session.scalars(select(SecurityLog)).one()

    assert row.ip_address == "198.51.100.20"


def test_logout_clears_auth_cookie(
    client: FlaskClient, session_factory: sessionmaker[Session]
) -> None:
    body = client.post("/api/auth/register", json=ALICE).get_json()

    response = client.post("/api/auth/logout", headers=_bearer(body["token"]))

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Logged out successfully"}
    cookie = response.headers["Set-Cookie"]
    assert cookie.startswith("token=;")
    assert "Max-Age=0" in cookie
    assert "HttpOnly" in cookie
    assert "SameSite=Strict" in cookie

    # Stateless tokens stay valid until they expire.
    assert client.get("/api/auth/me", headers=_bearer(body["token"])).status_code == 200

    with session_factory() as session:
        row = session.scalars(select(SecurityLog).where(SecurityLog.action == "logout")).one()
    assert row.user_id == body["user"]["id"]


def test_logout_without_session_still_succeeds(client: FlaskClient) -> None:
    anonymous = client.post("/api/auth/logout")
    garbage = client.post("/api/auth/logout", headers=_bearer("not-a-token"))

    assert anonymous.status_code == garbage.status_code == 200
    assert garbage.get_json()["success"] is True
