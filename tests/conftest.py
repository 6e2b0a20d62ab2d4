import pytest
from fastapi.testclient import TestClient
from healthmate.db import make_session_factory

E2E_TEXT = """Dr. John Smith
City Hospital
Tab. Paracetamol 500mg OD for 5 days
Cap. Amoxicillin 250mg BD for 7 days
"""


@pytest.fixture
def session_factory(tmp_path):
    return make_session_factory(f"sqlite:///{tmp_path}/test.db")


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def ocr_text():
    # mutable holder so a test can change what the fake OCR "reads"
    return {"text": E2E_TEXT}


@pytest.fixture
def client(session_factory, tmp_path, monkeypatch, ocr_text):
    from healthmate import main
    from healthmate.config import settings

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def fake_ocr(content, lang="eng", tesseract_cmd=None):
        if isinstance(ocr_text["text"], Exception):
            raise ocr_text["text"]
        return ocr_text["text"]

    monkeypatch.setattr(settings, "UPLOAD_DIR", tmp_path / "uploads")
    monkeypatch.setattr(main.ocr, "image_bytes_to_text", fake_ocr)
    main.app.dependency_overrides[main.get_db] = override_db
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
