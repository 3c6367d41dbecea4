"""会员管理 API 测试"""
from datetime import date, datetime, timedelta, timezone

from clubmanager.database.schedule_models import Schedule, ScheduleAssignment, ScheduleType
from clubmanager.database.token_models import LoginToken
from clubmanager.database.user_models import MemberStatus, User
from clubmanager.services.auth_service import AuthService


class TestUsersList:
    """会员列表测试"""

    def test_list_sorted_by_name(self, client, make_user, member_headers):
        make_user("zed@x.com", first_name="Zed", last_name="Adams")
        make_user("amy@x.com", first_name="Amy", last_name="Young")

        response = client.get("/api/users", headers=member_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert [u["email"] for u in body["data"]] == ["zed@x.com", "member@club.org", "amy@x.com"]

    def test_filter_active(self, client, make_user, member_headers):
        make_user("gone@x.com", is_active=False)

        active = client.get("/api/users", params={"is_active": True}, headers=member_headers).json()["data"]
        inactive = client.get("/api/users", params={"is_active": False}, headers=member_headers).json()["data"]

        assert "gone@x.com" not in {u["email"] for u in active}
        assert [u["email"] for u in inactive] == ["gone@x.com"]

    def test_assignable(self, client, make_user, member_headers):
        """只返回可排班且在册的会员"""
        make_user("exempt@x.com", status=MemberStatus.EXEMPT)
        make_user("loa@x.com", status=MemberStatus.LOA)
        make_user("inactive@x.com", is_active=False)

        data = client.get("/api/users/assignable", headers=member_headers).json()["data"]

        assert [u["email"] for u in data] == ["member@club.org"]


class TestUsersCrud:
    """会员增删改查测试"""

    def test_create_user(self, client, db, admin_headers):
        response = client.post(
            "/api/users",
            json={"first_name": "New", "last_name": "Member", "email": "New@Club.org", "birthday": "07/04"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "new@club.org"
        assert data["role"] == "member"
        assert data["status"] == "assignable"
        assert data["full_name"] == "New Member"
        assert data["is_active"] is True
        assert db.query(User).filter(User.email == "new@club.org").count() == 1

    def test_create_duplicate_email(self, client, member_user, admin_headers):
        response = client.post(
            "/api/users",
            json={"first_name": "Again", "email": "member@club.org"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["code"] == "USER_EXISTS"

    def test_create_invalid_birthday(self, client, admin_headers):
        response = client.post(
            "/api/users",
            json={"first_name": "Bad", "email": "bad@x.com", "birthday": "2024-01-01"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_create_normalizes_blank_fields(self, client, admin_headers):
        """首尾空白去掉，空字符串按未填写保存"""
        response = client.post(
            "/api/users",
            json={"first_name": " Ann ", "last_name": " ", "phone": "", "birthday": "", "email": "ann@x.com"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["first_name"] == "Ann"
        assert data["last_name"] is None
        assert data["phone"] is None
        assert data["birthday"] is None

    def test_create_blank_first_name_rejected(self, client, admin_headers):
        response = client.post(
            "/api/users",
            json={"first_name": "   ", "email": "ann@x.com"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    def test_create_unknown_partner(self, client, admin_headers):
        response = client.post(
            "/api/users",
            json={"first_name": "Ann", "email": "ann@x.com", "partner_id": 9999},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_USER"

    def test_get_user(self, client, member_user, member_headers):
        response = client.get(f"/api/users/{member_user.id}", headers=member_headers)

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "member@club.org"

    def test_get_missing_user_envelope(self, client, member_headers):
        """不存在的会员返回 404 错误信封"""
        response = client.get("/api/users/9999", headers=member_headers)

        assert response.status_code == 404
        body = response.json()
        assert body["status"] == "error"
        assert body["code"] == "USER_NOT_FOUND"

    def test_update_user_partial(self, client, db, member_user, make_user, admin_headers):
        partner = make_user("partner@x.com", first_name="Pat")

        response = client.put(
            f"/api/users/{member_user.id}",
            json={"phone": "555-0100", "partner_id": partner.id, "status": "booster"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["phone"] == "555-0100"
        assert data["partner_id"] == partner.id
        assert data["status"] == "booster"
        assert data["first_name"] == "Mary"

    def test_update_self_reference_rejected(self, client, member_user, admin_headers):
        response = client.put(
            f"/api/users/{member_user.id}",
            json={"friend_id": member_user.id},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_USER"

    def test_update_email_conflict(self, client, member_user, admin_user, admin_headers):
        response = client.put(
            f"/api/users/{member_user.id}",
            json={"email": "admin@club.org"},
            headers=admin_headers,
        )

        assert response.status_code == 409


class TestUsersDelete:
    """删除会员测试"""

    def test_delete_clears_references(self, client, db, member_user, make_user, admin_headers):
        """删除会员时清除其他记录的引用"""
        friend = make_user("friend@x.com", first_name="Fran", friend_id=member_user.id, partner_id=member_user.id)
        schedule = Schedule(
            name="Spring", schedule_type=ScheduleType.CURRENT.value,
            start_date=date(2025, 1, 1), end_date=date(2025, 1, 31),
        )
        schedule.assignments = [ScheduleAssignment(dance_date=date(2025, 1, 1), squarehead1_id=member_user.id)]
        db.add(schedule)
        now = datetime.now(timezone.utc)
        db.add(LoginToken(token_hash="h", email=member_user.email, user_id=member_user.id,
                          created_at=now, expires_at=now + timedelta(minutes=15)))
        db.commit()
        member_id = member_user.id

        response = client.delete(f"/api/users/{member_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "success"
        db.expire_all()
        assert db.query(User).filter(User.id == member_id).first() is None
        fran = db.query(User).filter(User.id == friend.id).one()
        assert fran.friend_id is None
        assert fran.partner_id is None
        assert db.query(ScheduleAssignment).one().squarehead1_id is None
        token = db.query(LoginToken).one()
        assert token.user_id is None
        assert token.email == "member@club.org"

    def test_cannot_delete_self(self, client, admin_user, admin_headers):
        response = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)

        assert response.status_code == 403

    def test_delete_missing(self, client, admin_headers):
        response = client.delete("/api/users/9999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_deleted_member_login_link_rejected(self, client, db, member_user, admin_headers):
        """会员删除后，之前发出的登录链接不能再登录"""
        raw = AuthService.issue_login_token(db, member_user)

        client.delete(f"/api/users/{member_user.id}", headers=admin_headers)
        response = client.post("/api/auth/validate-token", json={"token": raw})

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"
        db.expire_all()
        assert db.query(LoginToken).one().consumed_at is None
