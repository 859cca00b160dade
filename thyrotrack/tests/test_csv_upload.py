import io

from thyrotrack.models.thyroid_record import ThyroidRecord

CSV_BODY = (
    "patientEmail,date,TSH,T3,T4\n"
    "pat@example.com,2024-01-10,1.5,1.1,7.0\n"
    "ghost@example.com,2024-01-11,2.0,1.0,6.0\n"
    "pat@example.com,2024-02-10,abc,1.0,6.0\n"
    "PAT@example.com,2024-03-10,2.5,1.2,8.0\n"
)


def _upload(client, headers, content: bytes, name="labs.csv", content_type="text/csv"):
    files = {"file": (name, io.BytesIO(content), content_type)}
    return client.post("/api/thyroid/upload-csv", files=files, headers=headers)


def test_csv_upload_imports_valid_rows(client, doctor, patient, headers_for, db):
    r = _upload(client, headers_for(doctor), CSV_BODY.encode("utf-8"))
    assert r.status_code == 201, r.text
    assert r.json() == {
        "message": "CSV uploaded successfully",
        "count": 4,
        "inserted": 2,
        "skipped": 2,
    }

    rows = (
        db.query(ThyroidRecord)
        .filter(ThyroidRecord.patient_id == patient.id)
        .order_by(ThyroidRecord.date)
        .all()
    )
    assert [r.tsh for r in rows] == [1.5, 2.5]
    assert all(r.doctor_id == doctor.id for r in rows)


def test_csv_upload_accepts_bom_and_padded_headers(client, doctor, patient, headers_for):
    content = "\ufeff patientEmail , date ,TSH,T3,T4\npat@example.com,2024-01-10,1.5,1.1,7.0\n"
    r = _upload(client, headers_for(doctor), content.encode("utf-8"))
    assert r.status_code == 201, r.text
    assert r.json()["inserted"] == 1


def test_csv_upload_missing_columns(client, doctor, headers_for):
    r = _upload(client, headers_for(doctor), b"patientEmail,date,TSH\nx@example.com,2024-01-01,1\n")
    assert r.status_code == 400
    assert "missing columns: T3, T4" in r.json()["message"]


def test_csv_upload_empty_file(client, doctor, headers_for):
    r = _upload(client, headers_for(doctor), b"")
    assert r.status_code == 400
    assert r.json()["message"] == "Empty file"


def test_csv_upload_rejects_other_types(client, doctor, headers_for):
    r = _upload(client, headers_for(doctor), b"PK\x03\x04", name="labs.zip", content_type="application/zip")
    assert r.status_code == 415
    assert r.json()["code"] == "UNSUPPORTED_MEDIA_TYPE"


def test_csv_upload_too_large(client, doctor, headers_for, monkeypatch):
    import thyrotrack.routes.thyroid_routes as routes
    monkeypatch.setattr(routes, "MAX_UPLOAD_MB", 0)
    r = _upload(client, headers_for(doctor), CSV_BODY.encode("utf-8"))
    assert r.status_code == 413
    assert r.json()["code"] == "PAYLOAD_TOO_LARGE"


def test_csv_upload_rejects_non_utf8(client, doctor, headers_for):
    r = _upload(client, headers_for(doctor), b"patientEmail,date,TSH,T3,T4\n\xff\xfe\xfa")
    assert r.status_code == 400
    assert "UTF-8" in r.json()["message"]


def test_csv_upload_doctor_only(client, patient, headers_for):
    r = _upload(client, headers_for(patient), CSV_BODY.encode("utf-8"))
    assert r.status_code == 403
