"""排班 API 测试"""
from datetime import date

import pytest

from clubmanager.core.errors import ApiError
from clubmanager.database.schedule_models import ClubNightType, Schedule, ScheduleType
from clubmanager.services import setting_service
from clubmanager.services.schedule_service import ScheduleService, club_nights, night_type


class TestClubNights:
    """活动日计算测试"""

    def test_wednesdays_in_range(self):
        # 2025-01-01 是周三
        nights = club_nights(date(2025, 1, 1), date(2025, 1, 31), 2)

        assert nights == [date(2025, 1, d) for d in (1, 8, 15, 22, 29)]

    def test_range_starts_mid_week(self):
        nights = club_nights(date(2025, 1, 2), date(2025, 1, 14), 2)

        assert nights == [date(2025, 1, 8)]

    def test_fifth_wednesday(self):
        assert night_type(date(2025, 1, 29)) == ClubNightType.FIFTH_WED
        assert night_type(date(2025, 1, 22)) == ClubNightType.NORMAL


class TestScheduleService:
    """排班服务测试"""

    def test_create_uses_club_day_setting(self, db):
        setting_service.set_setting(db, "club_day_of_week", "Friday")

        schedule = ScheduleService.create_next_schedule(db, "Jan", date(2025, 1, 1), date(2025, 1, 31))

        assert [a.dance_date.weekday() for a in schedule.assignments] == [4] * 5

    def test_invalid_range(self, db):
        with pytest.raises(ApiError) as exc:
            ScheduleService.create_next_schedule(db, "Bad", date(2025, 2, 1), date(2025, 1, 1))
        assert exc.value.code == "INVALID_DATE_RANGE"

    def test_invalid_weekday_setting(self, db):
        setting_service.set_setting(db, "club_day_of_week", "Someday")

        with pytest.raises(ApiError) as exc:
            ScheduleService.create_next_schedule(db, "Jan", date(2025, 1, 1), date(2025, 1, 31))
        assert exc.value.code == "INVALID_SETTING"

    def test_create_replaces_existing_next(self, db):
        ScheduleService.create_next_schedule(db, "Draft 1", date(2025, 1, 1), date(2025, 1, 31))
        ScheduleService.create_next_schedule(db, "Draft 2", date(2025, 2, 1), date(2025, 2, 28))

        names = [s.name for s in db.query(Schedule).filter(Schedule.schedule_type == ScheduleType.NEXT.value)]
        assert names == ["Draft 2"]


class TestSchedulesApi:
    """排班接口测试"""

    def test_empty_schedules(self, client, member_headers):
        current = client.get("/api/schedules/current", headers=member_headers)
        upcoming = client.get("/api/schedules/next", headers=member_headers)

        assert current.status_code == upcoming.status_code == 200
        assert current.json()["data"] is None
        assert upcoming.json()["data"] is None

    def test_create_assign_promote(self, client, make_user, admin_headers):
        """创建下一期排班 -> 指定值班人 -> 切换为当前排班"""
        ann = make_user("ann@x.com", first_name="Ann")
        bob = make_user("bob@x.com", first_name="Bob")

        created = client.post(
            "/api/schedules/next",
            json={"name": "January", "start_date": "2025-01-01", "end_date": "2025-01-31"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        schedule = created.json()["data"]
        assert schedule["schedule_type"] == "next"
        assert len(schedule["assignments"]) == 5
        assert schedule["assignments"][-1]["club_night_type"] == "FIFTH WED"

        assignment_id = schedule["assignments"][0]["id"]
        updated = client.put(
            f"/api/schedules/assignments/{assignment_id}",
            json={"squarehead1_id": ann.id, "squarehead2_id": bob.id, "notes": "Bring snacks"},
            headers=admin_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["squarehead1_id"] == ann.id
        assert updated.json()["data"]["notes"] == "Bring snacks"

        promoted = client.post("/api/schedules/promote", headers=admin_headers)
        assert promoted.status_code == 200
        assert promoted.json()["data"]["schedule_type"] == "current"

        current = client.get("/api/schedules/current", headers=admin_headers).json()["data"]
        assert current["id"] == schedule["id"]
        assert client.get("/api/schedules/next", headers=admin_headers).json()["data"] is None

    def test_promote_archives_current(self, client, db, admin_headers):
        ScheduleService.create_next_schedule(db, "Jan", date(2025, 1, 1), date(2025, 1, 31))
        client.post("/api/schedules/promote", headers=admin_headers)
        ScheduleService.create_next_schedule(db, "Feb", date(2025, 2, 1), date(2025, 2, 28))
        client.post("/api/schedules/promote", headers=admin_headers)

        db.expire_all()
        types = {s.name: s.schedule_type for s in db.query(Schedule).all()}
        assert types == {"Jan": "archived", "Feb": "current"}

    def test_promote_without_next(self, client, admin_headers):
        response = client.post("/api/schedules/promote", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["status"] == "error"

    def test_assignment_unknown_user(self, client, db, admin_headers):
        schedule = ScheduleService.create_next_schedule(db, "Jan", date(2025, 1, 1), date(2025, 1, 31))

        response = client.put(
            f"/api/schedules/assignments/{schedule.assignments[0].id}",
            json={"squarehead1_id": 9999},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_USER"

    def test_assignment_missing(self, client, admin_headers):
        response = client.put("/api/schedules/assignments/9999", json={"notes": "x"}, headers=admin_headers)

        assert response.status_code == 404

    def test_member_cannot_create(self, client, member_headers):
        response = client.post(
            "/api/schedules/next",
            json={"name": "January", "start_date": "2025-01-01", "end_date": "2025-01-31"},
            headers=member_headers,
        )

        assert response.status_code == 403
