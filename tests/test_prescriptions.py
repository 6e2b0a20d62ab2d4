import pytest
from healthmate.services.extract import extract_prescription
from healthmate.services import prescriptions
from conftest import E2E_TEXT


def save(db, user_id="u1", text=E2E_TEXT):
    return prescriptions.create_prescription(db, user_id, text, extract_prescription(text), image_url="/x.png")


def test_create_and_get(db):
    record = save(db)
    assert record.id is not None
    assert record.doctor_name == "John Smith"
    assert [m["name"] for m in record.medicines] == ["Paracetamol", "Amoxicillin"]
    assert prescriptions.get_prescription(db, record.id, "u1").id == record.id


def test_get_checks_ownership(db):
    record = save(db)
    with pytest.raises(prescriptions.NotAuthorized):
        prescriptions.get_prescription(db, record.id, "someone-else")
    with pytest.raises(prescriptions.PrescriptionNotFound):
        prescriptions.get_prescription(db, 9999, "u1")


def test_list_is_per_user_newest_first(db):
    first = save(db)
    second = save(db)
    save(db, user_id="u2")
    ids = [p.id for p in prescriptions.list_prescriptions(db, "u1")]
    assert ids == [second.id, first.id]


def test_add_medicines_bulk_inserts_with_shared_timestamp(db):
    record = save(db)
    medicines = prescriptions.add_medicines_from_prescription(db, record.id, "u1")
    assert [m.name for m in medicines] == ["Paracetamol", "Amoxicillin"]
    assert [m.frequency for m in medicines] == ["once_daily", "twice_daily"]
    assert medicines[0].created_at == medicines[1].created_at
    assert all(m.prescription_id == record.id for m in medicines)
    assert medicines[0].notes.startswith("Added from prescription on ")


def test_add_medicines_refuses_sentinel(db):
    record = save(db, text="")
    with pytest.raises(prescriptions.ExtractionFailed):
        prescriptions.add_medicines_from_prescription(db, record.id, "u1")
    assert db.query(prescriptions.Medicine).count() == 0
