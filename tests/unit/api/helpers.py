"""Request helpers shared by the API and page tests."""

import io

API = "/api/v1"


def upload(client, name, content, url=f"{API}/files"):
    return client.post(
        url,
        data={"file": (io.BytesIO(content), name)},
        content_type="multipart/form-data",
    )


def token_from(url):
    return url.rstrip("/").rsplit("/", 1)[-1]
