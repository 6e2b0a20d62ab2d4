from healthmate.services import ocr

HEADERS = {"X-User-Id": "user-1"}


def upload(client, filename="rx.png", content=b"fake-image", headers=HEADERS):
    return client.post(
        "/api/prescriptions/upload",
        files={"prescription": (filename, content, "image/png")},
        data={"diagnosis": "Fever"},
        headers=headers,
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_extract_text_only(client):
    resp = client.post("/api/prescriptions/extract", data={"text": "Tab. Azithromycin 500mg OD"})
    assert resp.status_code == 200
    result = resp.json()["result"]
    assert result["medicines"] == [
        {"name": "Azithromycin", "dosage": "500mg", "frequency": "Once daily", "duration": "As prescribed"},
    ]
    assert result["doctor_name"] == "Not specified"
    assert result["extraction_failed"] is False


def test_upload_extracts_and_stores(client):
    resp = upload(client)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert [m["name"] for m in body["medicines"]] == ["Paracetamol", "Amoxicillin"]
    prescription = body["prescription"]
    assert prescription["doctor_name"] == "John Smith"
    assert prescription["hospital_name"].startswith("Hospital")
    assert prescription["diagnosis"] == "Fever"
    assert prescription["image_url"].startswith("/uploads/prescriptions/prescription-")


def test_upload_requires_user(client):
    resp = upload(client, headers={})
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_upload_rejects_other_file_types(client):
    resp = upload(client, filename="rx.gif")
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Only images (JPEG, JPG, PNG) are allowed"}


def test_upload_rejects_large_files(client, monkeypatch):
    from healthmate.config import settings
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 4)
    assert upload(client).status_code == 413


def test_upload_ocr_failure(client, ocr_text):
    ocr_text["text"] = ocr.OcrError("Could not decode image")
    resp = upload(client)
    assert resp.status_code == 422
    assert resp.json()["message"].startswith("OCR failed")


def test_list_and_get(client):
    created = upload(client).json()["prescription"]
    listed = client.get("/api/prescriptions", headers=HEADERS).json()["prescriptions"]
    assert [p["id"] for p in listed] == [created["id"]]

    resp = client.get(f"/api/prescriptions/{created['id']}", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["prescription"]["id"] == created["id"]

    assert client.get(f"/api/prescriptions/{created['id']}", headers={"X-User-Id": "other"}).status_code == 403
    assert client.get("/api/prescriptions/9999", headers=HEADERS).status_code == 404


def test_add_medicines(client):
    created = upload(client).json()["prescription"]
    resp = client.post(f"/api/prescriptions/{created['id']}/add-medicines", headers=HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert body["message"] == "2 medicine(s) added successfully"
    assert [m["frequency"] for m in body["medicines"]] == ["once_daily", "twice_daily"]


def test_add_medicines_blocked_when_extraction_failed(client, ocr_text):
    ocr_text["text"] = "   "
    created = upload(client).json()
    assert created["medicines"][0]["name"] == "Unable to extract"

    resp = client.post(f"/api/prescriptions/{created['prescription']['id']}/add-medicines", headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot add medicines - OCR extraction failed. Please add manually."


def test_upload_handler_runs_in_threadpool():
    import inspect
    from healthmate.main import route_upload
    assert not inspect.iscoroutinefunction(route_upload)


def test_upload_not_kept_when_ocr_fails(client, ocr_text, tmp_path):
    ocr_text["text"] = ocr.OcrError("Could not decode image")
    assert upload(client).status_code == 422
    upload_dir = tmp_path / "uploads"
    assert not upload_dir.exists() or list(upload_dir.iterdir()) == []


def test_upload_file_written_on_success(client, tmp_path):
    assert upload(client).status_code == 201
    assert len(list((tmp_path / "uploads").iterdir())) == 1
