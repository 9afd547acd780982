"""Tests for the browser-facing routes: direct downloads, QR codes and phone pages."""

from datetime import timedelta

from filebridge.domain.clock import utc_now
from tests.unit.api.helpers import API, upload

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _grant(client, file_id):
    return client.post(f"{API}/files/{file_id}/download-token").get_json()["token"]


def _expire_bridges(app, monkeypatch, seconds=301):
    later = utc_now() + timedelta(seconds=seconds)
    monkeypatch.setattr(app.transfer_service.bridge_manager, "_clock", lambda: later)


class TestDirectDownload:
    def test_headers(self, client):
        file_id = upload(client, "report.txt", b"hello").get_json()["id"]

        response = client.get(f"/dl/{_grant(client, file_id)}")

        assert response.status_code == 200
        assert response.mimetype == "application/octet-stream"
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Content-Disposition"].startswith("attachment")
        assert "report.txt" in response.headers["Content-Disposition"]
        assert response.headers["Content-Length"] == "5"
        assert response.data == b"hello"

    def test_non_ascii_name(self, client):
        file_id = upload(client, "报告.txt", b"x").get_json()["id"]

        response = client.get(f"/dl/{_grant(client, file_id)}")

        assert "filename*=UTF-8''%E6%8A%A5%E5%91%8A.txt" in response.headers["Content-Disposition"]

    def test_unknown_token(self, client):
        response = client.get("/dl/nope")

        assert response.status_code == 404
        assert response.mimetype == "text/html"
        assert response.headers["Cache-Control"] == "no-store"

    def test_file_deleted_after_grant(self, client):
        file_id = upload(client, "a.txt", b"x").get_json()["id"]
        token = _grant(client, file_id)
        client.delete(f"{API}/files/{file_id}")

        assert client.get(f"/dl/{token}").status_code == 404
        assert client.get(f"/dl/{token}").status_code == 410

    def test_bridge_token_is_not_a_grant(self, client):
        token = client.post(f"{API}/bridge/upload").get_json()["token"]
        assert client.get(f"/dl/{token}").status_code == 404


class TestQrCode:
    def test_upload_bridge_qr(self, client):
        token = client.post(f"{API}/bridge/upload").get_json()["token"]

        response = client.get(f"/qrcode/{token}.png")

        assert response.status_code == 200
        assert response.mimetype == "image/png"
        assert response.data.startswith(PNG_SIGNATURE)

    def test_qr_encodes_display_url(self, app, client, monkeypatch):
        rendered = []
        monkeypatch.setattr(app.qr_renderer, "render_png", lambda data: rendered.append(data) or b"png")
        token = client.post(f"{API}/bridge/upload").get_json()["token"]

        client.get(f"/qrcode/{token}.png")

        assert rendered == [f"http://192.168.1.20:8000/m/upload/{token}"]

    def test_unknown_token(self, client):
        response = client.get("/qrcode/nope.png")

        assert response.status_code == 404
        assert response.get_json()["error"] == "token_not_found"

    def test_grant_token_has_no_qr(self, client):
        file_id = upload(client, "a.txt", b"x").get_json()["id"]
        assert client.get(f"/qrcode/{_grant(client, file_id)}.png").status_code == 404

    def test_expired_bridge(self, app, client, monkeypatch):
        token = client.post(f"{API}/bridge/upload").get_json()["token"]
        _expire_bridges(app, monkeypatch)

        response = client.get(f"/qrcode/{token}.png")

        assert response.status_code == 410
        assert response.get_json()["error"] == "token_expired"


class TestPhoneUploadPage:
    def test_form_posts_to_bridge(self, client):
        token = client.post(f"{API}/bridge/upload").get_json()["token"]

        response = client.get(f"/m/upload/{token}")

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "no-store"
        assert f"/api/v1/bridge/{token}/upload" in response.get_data(as_text=True)

    def test_page_does_not_consume(self, client):
        token = client.post(f"{API}/bridge/upload").get_json()["token"]

        client.get(f"/m/upload/{token}")
        client.get(f"/m/upload/{token}")

        assert upload(client, "a.txt", b"x", url=f"{API}/bridge/{token}/upload").status_code == 201

    def test_used_bridge(self, client):
        token = client.post(f"{API}/bridge/upload").get_json()["token"]
        upload(client, "a.txt", b"x", url=f"{API}/bridge/{token}/upload")

        response = client.get(f"/m/upload/{token}")

        assert response.status_code == 410
        assert "Link Already Used" in response.get_data(as_text=True)

    def test_expired_bridge(self, app, client, monkeypatch):
        token = client.post(f"{API}/bridge/upload").get_json()["token"]
        _expire_bridges(app, monkeypatch)

        response = client.get(f"/m/upload/{token}")

        assert response.status_code == 410
        assert "Link Expired" in response.get_data(as_text=True)

    def test_unknown_token(self, client):
        assert client.get("/m/upload/nope").status_code == 410


class TestPhoneDownloadPage:
    def test_shows_file(self, client):
        file_id = upload(client, "<i>photo<i>.jpg", b"x" * 2048).get_json()["id"]
        token = client.post(f"{API}/bridge/download", json={"file_id": file_id}).get_json()["token"]

        response = client.get(f"/m/download/{token}")
        html = response.get_data(as_text=True)

        assert response.status_code == 200
        assert "&lt;i&gt;photo&lt;i&gt;.jpg" in html
        assert "2.0 KB" in html
        assert f"/api/v1/bridge/{token}/download-token" in html

    def test_file_deleted(self, client):
        file_id = upload(client, "a.txt", b"x").get_json()["id"]
        token = client.post(f"{API}/bridge/download", json={"file_id": file_id}).get_json()["token"]
        client.delete(f"{API}/files/{file_id}")

        response = client.get(f"/m/download/{token}")

        assert response.status_code == 404
        assert "File Not Found" in response.get_data(as_text=True)

    def test_used_bridge(self, client):
        file_id = upload(client, "a.txt", b"x").get_json()["id"]
        token = client.post(f"{API}/bridge/download", json={"file_id": file_id}).get_json()["token"]
        client.post(f"{API}/bridge/{token}/download-token")

        assert client.get(f"/m/download/{token}").status_code == 410

    def test_upload_token_not_accepted(self, client):
        token = client.post(f"{API}/bridge/upload").get_json()["token"]
        assert client.get(f"/m/download/{token}").status_code == 410
