"""Basic smoke tests for the package wiring."""

def test_imports():
    import flow_manager  # noqa: F401
    from config.settings import settings

    assert settings.APP_CONFIG_PATH.endswith(".json")


def test_api_server_builds_app():
    import api_server

    paths = api_server.app.openapi()["paths"]
    assert "/api/interview-sessions/start" in paths
    assert "/api/interview-sessions/answer" in paths
