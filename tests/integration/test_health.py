"""Integration tests for GET /health."""

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    def test_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_not_behind_session(self, client):
        client.cookies.set("accessToken", "garbage")
        assert client.get("/health").status_code == 200

    def test_production_app(self, make_app):
        with TestClient(make_app(env="production"), base_url="https://testserver") as c:
            assert c.get("/health").json() == {"status": "ok"}


class TestOpenApi:
    def test_error_shape_documented(self, client):
        schema = client.get("/openapi.json").json()
        assert "ErrorResponse" in schema["components"]["schemas"]
        signup = schema["paths"]["/auth/signup"]["post"]["responses"]
        assert "400" in signup and "429" in signup
