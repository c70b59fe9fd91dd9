"""
认证接口测试
"""


class TestLogin:

    def test_login_success(self, client, front_desk_user):
        response = client.post("/auth/login", json={"username": "front1", "password": "123456"})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["role"] == "FrontDesk"

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["username"] == "front1"

    def test_login_by_email(self, client, sample_guest):
        response = client.post("/auth/login", json={"username": "alice@example.com", "password": "123456"})
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "Guest"

    def test_wrong_password(self, client, front_desk_user):
        response = client.post("/auth/login", json={"username": "front1", "password": "nope"})
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestSignup:

    def test_signup_then_login(self, client):
        response = client.post("/auth/signup", json={
            "email": "Dana@Example.com", "password": "secret1", "first_name": "Dana", "last_name": "Lee"
        })
        assert response.status_code == 201
        assert response.json()["username"] == "dana@example.com"
        assert response.json()["role"] == "Guest"

        login = client.post("/auth/login", json={"username": "dana@example.com", "password": "secret1"})
        assert login.status_code == 200

    def test_duplicate_signup(self, client, sample_guest):
        response = client.post("/auth/signup", json={
            "email": "alice@example.com", "password": "secret1", "first_name": "Alice"
        })
        assert response.status_code == 400

    def test_bad_email(self, client):
        response = client.post("/auth/signup", json={
            "email": "alice", "password": "secret1", "first_name": "Alice"
        })
        assert response.status_code == 422


class TestAdminCreateUser:

    def test_admin_creates_housekeeper(self, client, admin_headers):
        response = client.post("/auth/users", json={
            "username": "cleaner2", "email": "cleaner2@keycard.test", "password": "123456",
            "first_name": "Cleo", "role": "HouseKeeping"
        }, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["role"] == "HouseKeeping"

    def test_front_desk_cannot_create_users(self, client, front_desk_headers):
        response = client.post("/auth/users", json={
            "username": "x", "email": "x@keycard.test", "password": "123456",
            "first_name": "X", "role": "Admin"
        }, headers=front_desk_headers)
        assert response.status_code == 403
