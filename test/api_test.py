import pytest
from fastapi.testclient import TestClient

from ministry_notify.app.dependencies import CallerIdentity, get_caller
from ministry_notify.app.firebase import get_firestore_db, get_push_client
from ministry_notify.app.main import app


@pytest.fixture
def client(fake_db, push_client):
    """A test client wired to the in-memory Firestore and push fakes."""
    app.dependency_overrides[get_firestore_db] = lambda: fake_db
    app.dependency_overrides[get_push_client] = lambda: push_client
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_join_request_created(client, youth_ministry, push_client):
    body = {"kind": "created", "requestId": "jr1", "value": {"ministryId": "M1", "memberId": "mem9"}}

    response = client.post('/triggers/join-requests', json=body)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "processed"
    assert data["result"]["inbox_written"] == 2
    assert len(push_client.multicast_calls) == 1


def test_malformed_trigger_is_skipped(client, youth_ministry):
    body = {"kind": "created", "requestId": "jr1", "value": {"memberId": "mem9"}}

    response = client.post('/triggers/join-requests', json=body)

    assert response.status_code == 200
    assert response.json() == {"status": "skipped", "result": None}


def test_unknown_trigger_kind_is_rejected(client):
    response = client.post('/triggers/join-requests', json={"kind": "archived", "requestId": "jr1"})
    assert response.status_code == 422


def test_store_failure_returns_server_error(client, youth_ministry):
    youth_ministry.fail_reads = True
    body = {"kind": "created", "requestId": "jr1", "value": {"ministryId": "M1", "memberId": "mem9"}}

    response = client.post('/triggers/join-requests', json=body)

    assert response.status_code == 500


def test_promote_without_token(client):
    response = client.post('/rpc/promoteToAdmin', json={"data": {}})

    assert response.status_code == 401
    assert response.json() == {"error": {"status": "UNAUTHENTICATED", "message": "Sign in required."}}


def test_promote_denied_outside_allowlist(client, fake_db, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "PROD")
    monkeypatch.delenv("FUNCTIONS_EMULATOR", raising=False)
    monkeypatch.delenv("FIRESTORE_EMULATOR_HOST", raising=False)
    app.dependency_overrides[get_caller] = lambda: CallerIdentity(uid="stranger")

    response = client.post('/rpc/promoteToAdmin', json={"data": {}})

    assert response.status_code == 403
    assert response.json()["error"]["status"] == "PERMISSION_DENIED"


def test_promote_in_test_environment(client, fake_db, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "TEST")
    fake_db.seed("users/tester", {"memberId": "mem7"})
    app.dependency_overrides[get_caller] = lambda: CallerIdentity(uid="tester")

    response = client.post('/rpc/promoteToAdmin', json={"data": {}})

    assert response.status_code == 200
    assert response.json() == {"result": {"uid": "tester", "memberId": "mem7", "roles": ["admin"]}}
    assert fake_db.docs[("members", "mem7")] == {"roles": ["admin"]}


async def test_certificate_fetch_failure_counts_as_unauthenticated(monkeypatch):
    from fastapi.security import HTTPAuthorizationCredentials
    from firebase_admin import auth

    from ministry_notify.app import dependencies

    class StubFirebaseDB:
        def get_app(self):
            return None

    def failing_verify(token, app=None):
        raise auth.CertificateFetchError("could not fetch certificates", None)

    monkeypatch.setattr(dependencies, "FirebaseDB", StubFirebaseDB)
    monkeypatch.setattr(dependencies.auth, "verify_id_token", failing_verify)

    caller = await get_caller(HTTPAuthorizationCredentials(scheme="Bearer", credentials="token"))

    assert caller is None
