import pytest
from fastapi.testclient import TestClient
from app import _parse_origins, create_app
from core.config import get_settings

# 使用 fixture 来封装 client，避免重复代码
@pytest.fixture
def client(monkeypatch):
    # 清除 lru_cache，确保 get_settings 重新读取环境变量
    monkeypatch.setenv("APP_ENV", "development")
    get_settings.cache_clear()

    app = create_app()
    with TestClient(app) as c:
        yield c

    # 测试结束后再次清除缓存，防止影响其他测试
    get_settings.cache_clear()

def test_app_root(client):
    """测试根路径"""
    response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["export_url"] == "/export/midi"

def test_docs_exist(client):
    """测试 Swagger UI 是否存在"""
    response = client.get("/docs")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]

def test_routes_mounted(client):
    paths = {r.path for r in client.app.routes}
    assert "/export/midi" in paths
    assert "/api/v1/health" in paths
    assert "/api/v1/scales/notes" in paths
    assert "/api/v1/notes/quantize" in paths

def test_dev_cors_allows_localhost(client):
    r = client.options(
        "/export/midi",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert r.status_code == 200
    assert r.headers.get("access-control-allow-origin") == "http://localhost:3000"

def test_parse_origins():
    assert _parse_origins(None) == []
    assert _parse_origins(" https://a.com, ,https://b.com ") == ["https://a.com", "https://b.com"]
