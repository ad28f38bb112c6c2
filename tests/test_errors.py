from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)


def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"


def test_405_wrong_method():
    response = client.get("/api/webhook")
    assert response.status_code == 405
    assert response.json()["code"] == "HTTP_ERROR"


def test_validation_error_structure(client):
    # Sign-in requires both email and password
    response = client.post("/api/signin", json={"email": "ada@example.com"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0
    assert data["details"][0]["loc"][-1] == "password"


def test_custom_exception():
    from app.core.exceptions import ResourceNotFoundError

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ResourceNotFoundError(message="Item not found", details={"id": "abc"})

    response = client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"
    assert data["details"] == {"id": "abc"}


def test_configuration_error_hides_details():
    from app.core.exceptions import ConfigurationError

    @app.get("/test-config-error")
    def trigger_config_error():
        raise ConfigurationError(details="STRIPE_SECRET_KEY is not set")

    response = client.get("/test-config-error")
    assert response.status_code == 500
    data = response.json()
    assert data["code"] == "CONFIGURATION_ERROR"
    assert data["details"] is None
    assert "STRIPE" not in data["error"]


def test_signature_error_is_bad_request():
    from app.core.exceptions import SignatureVerificationError, AuthenticationError

    err = SignatureVerificationError()
    assert isinstance(err, AuthenticationError)
    assert err.status_code == 400
    assert err.code == "INVALID_SIGNATURE"


def test_live_probe():
    assert client.get("/live").json() == {"status": "alive"}
