essentials = {}


def upload(client, headers, image_bytes, name="sample.png", w=64, h=48, **form):
    files = {"file": (name, image_bytes(w, h), "image/png")}
    return client.post("/images/upload", headers=headers, files=files, data=form)


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "imagepipe-backend"
    assert client.get("/health").json() == {"status": "healthy"}


def test_auth_validate(client, auth_header):
    r = client.post("/auth/validate", headers=auth_header)
    assert r.status_code == 200
    assert r.json()["user_id"].startswith("fake-")


def test_missing_token_rejected(client):
    r = client.get("/images")
    assert r.status_code == 401


def test_upload_and_list(client, auth_header, image_bytes):
    r = upload(client, auth_header, image_bytes, tags="holiday,beach")
    assert r.status_code == 201, r.text
    data = r.json()["image"]
    assert data["dimensions"] == {"width": 64, "height": 48}
    assert data["tags"] == ["holiday", "beach"]
    essentials["image_id"] = data["id"]
    essentials["url"] = data["url"]

    r2 = client.get("/images", headers=auth_header, params={"tags": "beach"})
    assert r2.status_code == 200
    body = r2.json()
    assert any(img["id"] == essentials["image_id"] for img in body["images"])
    assert body["pagination"]["current_page"] == 1


def test_uploaded_file_is_served(client):
    path = "/uploads/" + essentials["url"].rsplit("/", 1)[1]
    r = client.get(path)
    assert r.status_code == 200
    assert r.content[:8] == b"\x89PNG\r\n\x1a\n"


def test_upload_rejects_non_image(client, auth_header):
    files = {"file": ("notes.png", b"plain text", "image/png")}
    r = client.post("/images/upload", headers=auth_header, files=files)
    assert r.status_code == 400


def test_upload_rejects_mime_type(client, auth_header):
    files = {"file": ("notes.txt", b"plain text", "text/plain")}
    r = client.post("/images/upload", headers=auth_header, files=files)
    assert r.status_code == 400
    assert "Invalid file type" in r.json()["detail"]


def test_get_metadata(client, auth_header):
    r = client.get(f"/images/{essentials['image_id']}/metadata", headers=auth_header)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["basic"]["dimensions"] == {"width": 64, "height": 48}
    assert body["detailed"]["format"] == "png"


def test_transform(client, auth_header):
    body = {"type": "resize", "options": {"width": 32}}
    r = client.post(f"/images/{essentials['image_id']}/transform", headers=auth_header, json=body)
    assert r.status_code == 200, r.text
    item = r.json()["transformation"]
    assert item["type"] == "resize"
    assert (item["width"], item["height"]) == (32, 24)
    assert item["parameters"]["width"] == 32
    essentials["first_transformation"] = item["id"]


def test_transform_invalid_type(client, auth_header):
    body = {"type": "emboss", "options": {}}
    r = client.post(f"/images/{essentials['image_id']}/transform", headers=auth_header, json=body)
    assert r.status_code == 400
    assert "Invalid transformation type" in r.json()["detail"]


def test_batch_transform(client, auth_header):
    body = {
        "transformations": [
            {"type": "rotate", "options": {"angle": 90}},
            {"type": "filter", "options": {"filter": "grayscale"}},
            {"type": "watermark", "options": {"text": "(c) me", "position": "bottom-right"}},
        ]
    }
    r = client.post(f"/images/{essentials['image_id']}/batch-transform", headers=auth_header, json=body)
    assert r.status_code == 200, r.text
    items = r.json()["transformations"]
    assert [t["type"] for t in items] == ["rotate", "filter", "watermark"]
    assert (items[-1]["width"], items[-1]["height"]) == (48, 64)


def test_batch_transform_too_many(client, auth_header):
    body = {"transformations": [{"type": "rotate", "options": {}}] * 11}
    r = client.post(f"/images/{essentials['image_id']}/batch-transform", headers=auth_header, json=body)
    assert r.status_code == 400


def test_list_and_delete_transformation(client, auth_header):
    url = f"/images/{essentials['image_id']}/transformations"
    items = client.get(url, headers=auth_header).json()["transformations"]
    assert len(items) == 4
    r = client.delete(f"{url}/{essentials['first_transformation']}", headers=auth_header)
    assert r.status_code == 200
    assert r.json()["warnings"] == []
    remaining = client.get(url, headers=auth_header).json()["transformations"]
    assert [t["type"] for t in remaining] == ["rotate", "filter", "watermark"]


def test_other_user_is_denied(client, other_auth_header):
    image_id = essentials["image_id"]
    assert client.get(f"/images/{image_id}", headers=other_auth_header).status_code == 403
    r = client.post(
        f"/images/{image_id}/transform",
        headers=other_auth_header,
        json={"type": "rotate", "options": {}},
    )
    assert r.status_code == 403
    assert client.delete(f"/images/{image_id}", headers=other_auth_header).status_code == 403


def test_delete_image(client, auth_header):
    image_id = essentials["image_id"]
    r = client.delete(f"/images/{image_id}", headers=auth_header)
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert client.get(f"/images/{image_id}", headers=auth_header).status_code == 404
    r2 = client.post(
        f"/images/{image_id}/transform", headers=auth_header, json={"type": "rotate", "options": {}}
    )
    assert r2.status_code == 404
    assert client.get("/uploads/" + essentials["url"].rsplit("/", 1)[1]).status_code == 404


def test_upload_multiple(client, auth_header, image_bytes):
    files = [
        ("files", ("a.png", image_bytes(10, 10), "image/png")),
        ("files", ("b.png", b"junk", "image/png")),
    ]
    r = client.post("/images/upload/multiple", headers=auth_header, files=files)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["uploaded_count"] == 1
    assert body["total_files"] == 2
    assert body["warnings"][0]["filename"] == "b.png"


def test_upload_without_extension_can_be_transformed(client, auth_header, image_bytes):
    files = {"file": ("blob", image_bytes(40, 30), "image/png")}
    r = client.post("/images/upload", headers=auth_header, files=files)
    assert r.status_code == 201, r.text
    image = r.json()["image"]
    assert image["filename"].endswith(".png")

    body = {"type": "resize", "options": {"width": 32}}
    r2 = client.post(f"/images/{image['id']}/transform", headers=auth_header, json=body)
    assert r2.status_code == 200, r2.text
    assert r2.json()["transformation"]["result_url"].endswith(".png")


def test_error_responses_documented(client):
    schema = client.get("/openapi.json").json()
    assert "ErrorResponse" in schema["components"]["schemas"]
    responses = schema["paths"]["/images/{image_id}/transform"]["post"]["responses"]
    ref = responses["403"]["content"]["application/json"]["schema"]["$ref"]
    assert ref.endswith("/ErrorResponse")
