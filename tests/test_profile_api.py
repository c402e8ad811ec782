import json

from fastapi import status


def test_profile_update_changes_user_and_session(client, employee, login, redis_client):
    headers = login(employee)
    session_id = headers["Authorization"].split(" ", 1)[1]

    response = client.put(
        "/api/profile",
        headers=headers,
        json={"firstName": "Elias", "phoneNumber": "+44 20 7946 0000"},
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "Profile updated successfully"
    user = body["data"]["user"]
    assert user["firstName"] == "Elias"
    # Omitted fields keep their value
    assert user["lastName"] == "Employee"
    assert user["phoneNumber"] == "+44 20 7946 0000"

    me = client.get("/api/auth/me", headers=headers).json()["data"]["user"]
    assert me["firstName"] == "Elias"

    stored = json.loads(redis_client.get(f"session:{session_id}"))
    assert stored["first_name"] == "Elias"
    assert stored["last_name"] == "Employee"


def test_profile_update_sanitizes_names(client, employee, login):
    headers = login(employee)

    response = client.put("/api/profile", headers=headers, json={"lastName": "<script>x</script>O'Neil"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["user"]["lastName"] == "O'Neil"


def test_empty_name_is_a_validation_error(client, employee, login):
    headers = login(employee)

    response = client.put("/api/profile", headers=headers, json={"firstName": ""})

    assert response.status_code == 400
    payload = response.json()
    assert payload["code"] == "VALIDATION_ERROR"
    assert "firstName" in [f["field"] for f in payload["details"]["fields"]]


def test_profile_update_requires_session(client):
    response = client.put("/api/profile", json={"firstName": "Nobody"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["code"] == "AUTH_FAILED"
