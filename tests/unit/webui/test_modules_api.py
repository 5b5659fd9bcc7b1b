import threading
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from modhost.core.modules.manager import ModuleManager
from modhost.webui.api import modules as modules_api
from modhost.webui.app import create_app

from conftest import CONTROLLERS, blog_manifest, build_module_zip


@pytest.fixture
def client(manager):
    app = create_app(manager)
    yield TestClient(app)
    modules_api.set_manager(None)


def _upload(client: TestClient, archive: Path, filename: str = "blog.zip"):
    with open(archive, "rb") as f:
        return client.post(
            "/api/modules/install",
            files={"file": (filename, f, "application/zip")},
        )


def test_install_and_list(client, blog_zip: Path) -> None:
    response = _upload(client, blog_zip)

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Module 'Blog' installed successfully."
    assert body["module"]["status"] == "disabled"
    assert body["module"]["version"] == "1.0.0"

    response = client.get("/api/modules")
    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["modules"][0]["name"] == "Blog"


def test_install_rejects_wrong_extension(client, blog_zip: Path) -> None:
    response = _upload(client, blog_zip, filename="blog.rar")

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["ok"] is False
    assert detail["error"] == "Only ZIP files are allowed."
    assert detail["reason_code"] == "INVALID_INPUT"


def test_install_rejects_oversize_upload(config, activator, tmp_path: Path) -> None:
    limited = ModuleManager(
        config=config.model_copy(update={"max_upload_size": 1024 * 1024}),
        activator=activator,
    )
    client = TestClient(create_app(limited))
    archive = build_module_zip(
        tmp_path / "big.zip", blog_manifest(), files={"assets/big.bin": "x" * (2 * 1024 * 1024)}
    )

    response = _upload(client, archive)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "File size exceeds 1MB limit."
    assert limited.list_modules() == []
    modules_api.set_manager(None)


def test_install_conflict(client, blog_zip: Path) -> None:
    assert _upload(client, blog_zip).status_code == 200

    response = _upload(client, blog_zip)

    assert response.status_code == 409
    assert response.json()["detail"]["reason_code"] == "CONFLICT"


def test_missing_structure(client, tmp_path: Path) -> None:
    archive = build_module_zip(tmp_path / "m.zip", blog_manifest(), dirs=[CONTROLLERS])

    response = _upload(client, archive)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Missing required directory: resources/views"


def test_lifecycle_endpoints(client, blog_zip: Path) -> None:
    _upload(client, blog_zip)

    response = client.post("/api/modules/Blog/enable")
    assert response.status_code == 200
    assert response.json()["module"]["is_enabled"] is True

    response = client.delete("/api/modules/Blog")
    assert response.status_code == 409
    assert response.json()["detail"]["reason_code"] == "INVALID_STATE"

    assert client.post("/api/modules/Blog/disable").status_code == 200

    response = client.delete("/api/modules/Blog")
    assert response.status_code == 200
    assert response.json()["message"] == "Module uninstalled successfully."
    assert client.get("/api/modules/Blog").status_code == 404


def test_unknown_module(client) -> None:
    assert client.get("/api/modules/Ghost").status_code == 404
    response = client.post("/api/modules/Ghost/enable")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "Module not found: Ghost"


def test_sync_endpoint(client, config) -> None:
    module_dir = config.modules_dir / "Admin"
    module_dir.mkdir(parents=True)
    (module_dir / "module.json").write_text('{"name": "Admin"}')

    response = client.post("/api/modules/sync")

    assert response.status_code == 200
    assert response.json() == {"created": ["Admin"], "updated": [], "skipped": []}
    assert client.get("/api/modules/Admin").json()["is_core"] is True


def test_waiting_lifecycle_call_does_not_block_other_requests(manager, blog_zip: Path) -> None:
    with TestClient(create_app(manager)) as shared:
        assert _upload(shared, blog_zip).status_code == 200
        responses = {}

        def call(key, method, url) -> None:
            responses[key] = getattr(shared, method)(url)

        enabler = threading.Thread(target=call, args=("enable", "post", "/api/modules/Blog/enable"))
        lister = threading.Thread(target=call, args=("list", "get", "/api/modules"))

        with manager.locks.hold("Blog"):
            enabler.start()
            time.sleep(0.1)
            lister.start()
            lister.join(timeout=5)
            assert responses["list"].status_code == 200
            assert "enable" not in responses

        enabler.join(timeout=5)
        assert responses["enable"].status_code == 200
    modules_api.set_manager(None)
