import datetime as dt

from thyrotrack.models.thyroid_record import ThyroidRecord


def _payload(email="pat@example.com", **overrides):
    body = {"patientEmail": email, "date": "2024-03-01", "TSH": 2.5, "T3": 1.1, "T4": 7.5}
    body.update(overrides)
    return body


# ---- add ----

def test_doctor_adds_record(client, doctor, patient, headers_for, db):
    r = client.post("/api/thyroid/add", json=_payload(), headers=headers_for(doctor))
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["message"] == "Record added successfully"
    data = body["data"]
    assert data["patient_id"] == patient.id
    assert data["doctor_id"] == doctor.id
    assert data["date"] == "2024-03-01"
    assert (data["TSH"], data["T3"], data["T4"]) == (2.5, 1.1, 7.5)

    stored = db.query(ThyroidRecord).filter(ThyroidRecord.patient_id == patient.id).all()
    assert len(stored) == 1


def test_add_record_unknown_patient(client, doctor, headers_for):
    r = client.post("/api/thyroid/add", json=_payload("ghost@example.com"), headers=headers_for(doctor))
    assert r.status_code == 404
    assert r.json()["message"] == "Patient not found"


def test_add_record_for_doctor_email_is_not_found(client, doctor, make_user, headers_for):
    other = make_user("doctor", email="other-doc@example.com")
    r = client.post("/api/thyroid/add", json=_payload(other.email), headers=headers_for(doctor))
    assert r.status_code == 404


def test_patient_cannot_add_records(client, patient, headers_for):
    r = client.post("/api/thyroid/add", json=_payload(), headers=headers_for(patient))
    assert r.status_code == 403
    j = r.json()
    assert j["code"] == "FORBIDDEN"
    assert j["message"] == "Access denied. Doctors only."


def test_add_record_rejects_negative_and_missing_values(client, doctor, patient, headers_for):
    r = client.post("/api/thyroid/add", json=_payload(TSH=-1), headers=headers_for(doctor))
    assert r.status_code == 422
    assert r.json()["code"] == "UNPROCESSABLE_ENTITY"

    body = _payload()
    del body["T4"]
    r = client.post("/api/thyroid/add", json=body, headers=headers_for(doctor))
    assert r.status_code == 422


# ---- my-records ----

def test_my_records_sorted_with_doctor(client, doctor, patient, headers_for):
    for day, tsh in (("2024-05-01", 3.0), ("2024-01-01", 1.0), ("2024-03-01", 2.0)):
        r = client.post(
            "/api/thyroid/add",
            json=_payload(date=day, TSH=tsh),
            headers=headers_for(doctor),
        )
        assert r.status_code == 201

    r = client.get("/api/thyroid/my-records", headers=headers_for(patient))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["count"] == 3
    assert [item["TSH"] for item in body["data"]] == [1.0, 2.0, 3.0]
    assert body["data"][0]["doctor"] == {"id": doctor.id, "name": "Dr. Who", "email": "doc@example.com"}


def test_my_records_only_returns_own(client, doctor, patient, make_user, add_records, headers_for):
    other = make_user("patient")
    add_records(other, doctor, [(1, 1, 6)])
    r = client.get("/api/thyroid/my-records", headers=headers_for(patient))
    assert r.json() == {"count": 0, "data": []}


def test_doctor_cannot_read_my_records(client, doctor, headers_for):
    r = client.get("/api/thyroid/my-records", headers=headers_for(doctor))
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied. Patients only."


# ---- predict ----

def test_predict_end_to_end(client, doctor, patient, add_records, headers_for):
    add_records(patient, doctor, [(1, 1, 6), (2, 1.2, 7), (3, 1.4, 8)])

    r = client.get("/api/thyroid/predict", headers=headers_for(patient))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Advanced AI Thyroid Prediction"
    assert body["classification"] == "Normal"
    assert body["interpretation"] == "Your thyroid hormone levels are within normal clinical range."
    assert body["latestValues"]["TSH"] == 3
    assert body["latestValues"]["date"] == (dt.date(2024, 1, 1) + dt.timedelta(days=60)).isoformat()

    first = body["regressionPredictions"][0]
    assert first["month"] == "Month 1"
    assert first["predictedTSH"] == 4.0
    assert first["TSH_CI_Lower"] == 2.4
    assert first["TSH_CI_Upper"] == 5.6
    assert first["predictedT4"] == 9.0
    assert set(first) == {
        "month",
        "predictedTSH", "TSH_CI_Lower", "TSH_CI_Upper",
        "predictedT3", "T3_CI_Lower", "T3_CI_Upper",
        "predictedT4", "T4_CI_Lower", "T4_CI_Upper",
    }
    assert len(body["regressionPredictions"]) == 3
    assert body["anomalies"] == {"TSH": [], "T3": [], "T4": []}


def test_predict_anomaly_wire_format(client, doctor, patient, add_records, headers_for):
    add_records(patient, doctor, [(10, 1, 8), (10, 1, 8), (10, 1, 8), (50, 1, 8)])
    body = client.get("/api/thyroid/predict", headers=headers_for(patient)).json()
    assert body["anomalies"]["TSH"] == [
        {"index": 3, "previousValue": 10.0, "currentValue": 50.0, "difference": 40.0}
    ]


def test_predict_requires_three_records(client, doctor, patient, add_records, headers_for):
    add_records(patient, doctor, [(1, 1, 6), (2, 1.2, 7)])
    r = client.get("/api/thyroid/predict", headers=headers_for(patient))
    assert r.status_code == 400
    j = r.json()
    assert j["code"] == "BAD_REQUEST"
    assert j["message"] == "Minimum 3 records required"


def test_predict_is_idempotent(client, doctor, patient, add_records, headers_for):
    add_records(patient, doctor, [(1.7, 1.1, 6.2), (2.9, 0.9, 7.4), (2.2, 1.3, 9.1), (4.4, 0.7, 4.9)])
    first = client.get("/api/thyroid/predict", headers=headers_for(patient)).json()
    second = client.get("/api/thyroid/predict", headers=headers_for(patient)).json()
    assert first == second
    assert first["classification"] == "Hypothyroidism"


def test_same_day_records_keep_insertion_order(client, doctor, patient, headers_for):
    for tsh in (1.0, 2.0, 3.0):
        client.post("/api/thyroid/add", json=_payload(TSH=tsh), headers=headers_for(doctor))
    body = client.get("/api/thyroid/predict", headers=headers_for(patient)).json()
    assert body["latestValues"]["TSH"] == 3.0
    assert body["regressionPredictions"][0]["predictedTSH"] == 4.0


def test_doctor_predicts_for_patient(client, doctor, patient, add_records, headers_for):
    add_records(patient, doctor, [(1, 1, 6), (2, 1.2, 7), (3, 1.4, 8)])
    r = client.get(f"/api/thyroid/patients/{patient.id}/predict", headers=headers_for(doctor))
    assert r.status_code == 200, r.text
    assert r.json()["classification"] == "Normal"

    r = client.get("/api/thyroid/patients/missing/predict", headers=headers_for(doctor))
    assert r.status_code == 404


def test_predict_requires_token(client):
    r = client.get("/api/thyroid/predict")
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHORIZED"


# ---- out-of-range values ----

def test_add_record_rejects_values_above_hormone_bound(client, doctor, patient, headers_for):
    r = client.post("/api/thyroid/add", json=_payload(TSH=1e27), headers=headers_for(doctor))
    assert r.status_code == 422
    assert r.json()["code"] == "UNPROCESSABLE_ENTITY"

    r = client.post("/api/thyroid/add", json=_payload(T4=1000), headers=headers_for(doctor))
    assert r.status_code == 201


def test_predict_on_huge_stored_values_still_answers(client, doctor, patient, add_records, headers_for):
    add_records(patient, doctor, [(1.0, 1.0, 7.0), (2.0, 1.1, 7.1), (1e27, 1.2, 7.2)])
    r = client.get("/api/thyroid/predict", headers=headers_for(patient))
    assert r.status_code == 200, r.text
    assert isinstance(r.json()["regressionPredictions"][0]["predictedTSH"], float)


def test_predict_degenerate_trend_uses_envelope(client, doctor, patient, add_records, headers_for):
    add_records(patient, doctor, [(0.0, 1.0, 7.0), (0.0, 1.1, 7.1), (1e200, 1.2, 7.2)])
    r = client.get("/api/thyroid/predict", headers=headers_for(patient))
    assert r.status_code == 422
    j = r.json()
    assert j["code"] == "UNPROCESSABLE_ENTITY"
    assert j["message"] == "Trend for TSH could not be fitted"
    assert j["trace_id"]
