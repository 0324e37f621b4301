"""
Tests for the user management endpoints.
"""


def test_users_require_authentication(client):
    assert client.get("/api/users/").status_code == 401


def test_list_users_with_pagination(client, api):
    token = api.signup_token("alice@example.com", "Alice", "Anders")
    api.signup_token("bob@example.com", "Bobby", "Brown")
    api.signup_token("carol@example.com", "Carol", "Clark")

    response = client.get("/api/users/?page=1&limit=2", headers=api.auth_header(token))

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["users"]) == 2
    assert data["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalUsers": 3,
        "hasNextPage": True,
        "hasPrevPage": False,
    }


def test_search_users(client, api):
    token = api.signup_token("alice@example.com", "Alice", "Anders")
    api.signup_token("bob@example.com", "Bobby", "Brown")

    response = client.get("/api/users/?search=BROWN", headers=api.auth_header(token))

    users = response.json()["data"]["users"]
    assert [u["email"] for u in users] == ["bob@example.com"]


def test_get_user_by_id(client, api, registered):
    user, token = registered

    found = client.get(f"/api/users/{user['id']}", headers=api.auth_header(token))
    missing = client.get("/api/users/9999", headers=api.auth_header(token))

    assert found.status_code == 200
    assert found.json()["data"]["user"]["email"] == user["email"]
    assert missing.status_code == 404
    assert missing.json()["message"] == "User not found"


def test_update_own_names(client, api, registered):
    user, token = registered

    response = client.put(
        f"/api/users/{user['id']}",
        json={"firstName": "  Janet ", "lastName": "Dough"},
        headers=api.auth_header(token),
    )

    assert response.status_code == 200
    updated = response.json()["data"]["user"]
    assert (updated["firstName"], updated["lastName"]) == ("Janet", "Dough")


def test_update_requires_both_names(client, api, registered):
    user, token = registered

    response = client.put(f"/api/users/{user['id']}", json={"firstName": "Janet"}, headers=api.auth_header(token))

    assert response.status_code == 400
    assert response.json()["message"] == "First name and last name are required"


def test_cannot_update_someone_else(client, api, registered):
    user, _ = registered
    intruder = api.signup_token("mallory@example.com", "Mallory", "Mal")

    response = client.put(
        f"/api/users/{user['id']}",
        json={"firstName": "Hacked", "lastName": "Name"},
        headers=api.auth_header(intruder),
    )

    assert response.status_code == 403


def test_change_password(client, api, registered):
    user, token = registered

    response = client.patch(
        f"/api/users/{user['id']}/password",
        json={"oldPassword": "Secret123", "newPassword": "Changed42", "confirmNewPassword": "Changed42"},
        headers=api.auth_header(token),
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Password updated successfully"
    assert api.login(password="Changed42").status_code == 200


def test_change_password_rules(client, api, registered):
    user, token = registered
    url = f"/api/users/{user['id']}/password"
    headers = api.auth_header(token)

    wrong_old = client.patch(
        url, json={"oldPassword": "Nope1234", "newPassword": "Changed42", "confirmNewPassword": "Changed42"},
        headers=headers,
    )
    same = client.patch(
        url, json={"oldPassword": "Secret123", "newPassword": "Secret123", "confirmNewPassword": "Secret123"},
        headers=headers,
    )
    mismatch = client.patch(
        url, json={"oldPassword": "Secret123", "newPassword": "Changed42", "confirmNewPassword": "Changed43"},
        headers=headers,
    )
    missing = client.patch(url, json={"oldPassword": "Secret123"}, headers=headers)

    assert wrong_old.status_code == 401
    assert wrong_old.json()["message"] == "Old password is incorrect"
    assert same.status_code == 400
    assert same.json()["message"] == "New password must be different from the old password"
    assert mismatch.json()["message"] == "New password and confirm password do not match"
    assert missing.json()["message"] == "Old password, new password, and confirm new password are required"
