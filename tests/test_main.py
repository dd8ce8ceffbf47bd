def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_register_user(client):
    response = client.post(
        "/api/auth/register",
        json={
            "username": "testuser",
            "email": "Test@Test.com",
            "password": "password123",
            "firstName": "Test",
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User registered successfully"
    assert body["token"]
    assert body["user"]["email"] == "test@test.com"
    assert body["user"]["firstName"] == "Test"
    assert body["user"]["followers"] == []
    assert "password" not in body["user"]
    assert "hashedPassword" not in body["user"]


def test_register_rejects_duplicates(client, register):
    register("alice")
    same_email = client.post(
        "/api/auth/register",
        json={"username": "alice2", "email": "alice@example.com", "password": "secret123"},
    )
    assert same_email.status_code == 400
    assert same_email.json()["message"] == "Email already registered"

    same_name = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "other@example.com", "password": "secret123"},
    )
    assert same_name.status_code == 400
    assert same_name.json()["message"] == "Username already taken"


def test_register_validates_fields(client):
    short_name = client.post(
        "/api/auth/register",
        json={"username": "ab", "email": "ab@example.com", "password": "secret123"},
    )
    assert short_name.status_code == 400
    assert "username" in short_name.json()["message"]

    bad_email = client.post(
        "/api/auth/register",
        json={"username": "abc", "email": "not-an-email", "password": "secret123"},
    )
    assert bad_email.status_code == 400

    short_password = client.post(
        "/api/auth/register",
        json={"username": "abc", "email": "abc@example.com", "password": "123"},
    )
    assert short_password.status_code == 400


def test_login_with_username_or_email(client, register):
    register("bob", password="hunter22")

    by_name = client.post("/api/auth/login", data={"username": "bob", "password": "hunter22"})
    assert by_name.status_code == 200
    assert by_name.json()["token_type"] == "bearer"
    assert by_name.json()["user"]["username"] == "bob"

    by_email = client.post(
        "/api/auth/login", data={"username": "BOB@example.com", "password": "hunter22"}
    )
    assert by_email.status_code == 200

    wrong = client.post("/api/auth/login", data={"username": "bob", "password": "nope123"})
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Invalid credentials"


def test_me_requires_token(client, register):
    missing = client.get("/api/auth/me")
    assert missing.status_code == 401
    assert missing.json()["message"] == "Access token required"

    invalid = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert invalid.status_code == 401
    assert invalid.json()["message"] == "Invalid or expired token"

    user, headers = register("carol")
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["user"]["id"] == user["id"]


def test_login_token_works_for_protected_routes(client, register):
    register("dave")
    token = client.post(
        "/api/auth/login", data={"username": "dave", "password": "secret123"}
    ).json()["access_token"]
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "dave"


def test_update_profile(client, register):
    _, headers = register("erin")
    response = client.put(
        "/api/auth/profile",
        json={"firstName": "Erin", "lastName": "Smith", "bio": "hello there"},
        headers=headers,
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["firstName"] == "Erin"
    assert user["lastName"] == "Smith"
    assert user["bio"] == "hello there"

    too_long = client.put("/api/auth/profile", json={"bio": "x" * 501}, headers=headers)
    assert too_long.status_code == 400


def test_delete_account_cascades(client, register):
    alice, alice_headers = register("alice")
    bob, bob_headers = register("bob")

    alice_post = client.post("/api/posts", json={"content": "mine"}, headers=alice_headers).json()["post"]
    bob_post = client.post("/api/posts", json={"content": "bob's"}, headers=bob_headers).json()["post"]
    client.post(f"/api/posts/{bob_post['id']}/like", headers=alice_headers)
    client.post(f"/api/posts/{bob_post['id']}/comment", json={"content": "hi"}, headers=alice_headers)
    client.post(f"/api/posts/{alice_post['id']}/like", headers=bob_headers)
    client.post(f"/api/users/{bob['id']}/follow", headers=alice_headers)
    client.post(f"/api/users/{alice['id']}/follow", headers=bob_headers)

    response = client.delete("/api/auth/me", headers=alice_headers)
    assert response.status_code == 200

    assert client.get(f"/api/posts/{alice_post['id']}").status_code == 404
    remaining = client.get(f"/api/posts/{bob_post['id']}").json()
    assert remaining["likes"] == []
    assert remaining["comments"] == []
    bob_profile = client.get(f"/api/users/{bob['id']}").json()["user"]
    assert bob_profile["followers"] == []
    assert bob_profile["following"] == []
    assert client.get(f"/api/users/{alice['id']}").status_code == 404


def test_unknown_route_uses_message_body(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "message" in response.json()


def test_register_accepts_null_bio(client):
    response = client.post(
        "/api/auth/register",
        json={"username": "nobio", "email": "nobio@example.com", "password": "secret123", "bio": None},
    )
    assert response.status_code == 201, response.text
    assert response.json()["user"]["bio"] == ""
