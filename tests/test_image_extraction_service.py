import httpx
import pytest

import app.services.image_extraction_service as svc
from app.repos import category_repo, profile_repo

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 16


def _pages(routes: dict):
    """httpx client whose responses come from a {url: (status, content_type, body)} map."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        status, content_type, body = routes.get(url, routes.get(url.rstrip("/"), (404, "text/plain", b"missing")))
        return httpx.Response(status, headers={"content-type": content_type}, content=body)

    return lambda: httpx.Client(transport=httpx.MockTransport(handler))


def _profile(db, links):
    cat, _ = category_repo.get_or_create(db, "Music")
    profile = profile_repo.create(db, commit=False, name="Ada", category_id=cat.id)
    profile_repo.replace_social_links(db, profile.id, links)
    db.commit()
    return profile


def test_find_image_url_prefers_og_and_resolves_relative():
    html = """
    <html><head>
      <meta name="twitter:image" content="https://cdn.example/tw.png">
      <meta property="og:image" content="/img/og.png">
    </head></html>
    """
    assert svc.find_image_url(html, "https://ada.example/about") == "https://ada.example/img/og.png"


def test_find_image_url_fallbacks():
    assert svc.find_image_url('<meta name="twitter:image" content="t.png">', "https://x.example/") == "https://x.example/t.png"
    assert svc.find_image_url('<link rel="image_src" href="https://x.example/s.jpg">', "https://x.example") == "https://x.example/s.jpg"
    assert svc.find_image_url("<html><body>nothing</body></html>", "https://x.example") is None


def test_candidate_pages_follow_platform_order(db_session):
    profile = _profile(
        db_session,
        [("twitter", "https://x.example/ada"), ("website", "https://ada.example"), ("youtube", "https://yt.example/ada")],
    )
    assert svc.candidate_pages(profile_repo.get_by_id(db_session, profile.id)) == [
        "https://ada.example",
        "https://yt.example/ada",
        "https://x.example/ada",
    ]


def test_extract_image_unknown_profile(db_session):
    with pytest.raises(LookupError):
        svc.extract_image(db_session, 999)


def test_extract_image_without_links(db_session):
    profile = _profile(db_session, [])
    result = svc.extract_image(db_session, profile.id)
    assert result["success"] is False


def test_extract_image_skips_failing_pages_and_stores(monkeypatch, db_session):
    profile = _profile(
        db_session,
        [("website", "https://ada.example"), ("youtube", "https://yt.example/ada")],
    )
    routes = {
        "https://ada.example": (500, "text/html", b"down"),
        "https://yt.example/ada": (200, "text/html", b'<meta property="og:image" content="https://img.example/a.png">'),
        "https://img.example/a.png": (200, "image/png", PNG),
    }
    stored = []
    monkeypatch.setattr(svc, "_http_client", _pages(routes))
    monkeypatch.setattr(
        svc,
        "upload_image_bytes",
        lambda data, content_type, prefix: stored.append((data, content_type, prefix)) or "https://cdn.example/p.png",
    )

    result = svc.extract_image(db_session, profile.id)

    assert result["success"] is True
    assert result["data"]["source"] == "https://yt.example/ada"
    assert stored == [(PNG, "image/png", f"profile_{profile.id}")]
    db_session.expire_all()
    assert profile_repo.get_by_id(db_session, profile.id).image_url == "https://cdn.example/p.png"


def test_extract_image_rejects_non_image_content(monkeypatch, db_session):
    profile = _profile(db_session, [("website", "https://ada.example")])
    routes = {
        "https://ada.example": (200, "text/html", b'<meta property="og:image" content="https://ada.example/page">'),
        "https://ada.example/page": (200, "text/html", b"<html></html>"),
    }
    monkeypatch.setattr(svc, "_http_client", _pages(routes))
    result = svc.extract_image(db_session, profile.id)
    assert result["success"] is False


def test_extract_missing_images_counts(monkeypatch, db_session):
    cat, _ = category_repo.get_or_create(db_session, "Music")
    a = profile_repo.create(db_session, name="A", category_id=cat.id)
    b = profile_repo.create(db_session, name="B", category_id=cat.id)
    profile_repo.create(db_session, name="C", category_id=cat.id, image_url="https://cdn.example/c.png")

    def _fake_extract(db, profile_id):
        if profile_id == b.id:
            raise svc.ImageStorageError("bucket missing")
        return {"success": True, "message": "ok", "data": {"profile_id": profile_id}}

    monkeypatch.setattr(svc, "extract_image", _fake_extract)
    result = svc.extract_missing_images(db_session)

    assert result["data"]["processed"] == 2
    assert result["data"]["extracted"] == 1
    assert result["data"]["failed"] == 1
    assert [r["data"]["profile_id"] for r in result["data"]["results"]] == [a.id, b.id]


def _streaming_client(headers: dict, chunks: list[bytes], sent: list):
    def body():
        for chunk in chunks:
            sent.append(len(chunk))
            yield chunk

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers=headers, content=body())

    return httpx.Client(transport=httpx.MockTransport(handler))


def test_download_image_returns_body_and_type():
    sent = []
    with _streaming_client({"content-type": "image/png; charset=binary"}, [PNG[:8], PNG[8:]], sent) as client:
        assert svc.download_image(client, "https://cdn.example/a.png") == (PNG, "image/png")


def test_download_image_rejects_declared_oversize_without_reading(monkeypatch):
    monkeypatch.setattr(svc.settings, "image_max_mb", 1)
    sent = []
    headers = {"content-type": "image/jpeg", "content-length": str(2 * 1024 * 1024)}
    with _streaming_client(headers, [b"x" * 1024], sent) as client:
        with pytest.raises(svc.ImageExtractionError, match="larger than 1MB"):
            svc.download_image(client, "https://cdn.example/big.jpg")
    assert sent == []


def test_download_image_stops_streaming_past_the_limit(monkeypatch):
    monkeypatch.setattr(svc.settings, "image_max_mb", 1)
    sent = []
    chunks = [b"x" * (512 * 1024)] * 6
    with _streaming_client({"content-type": "image/jpeg"}, chunks, sent) as client:
        with pytest.raises(svc.ImageExtractionError):
            svc.download_image(client, "https://cdn.example/big.jpg")
    assert len(sent) == 3
