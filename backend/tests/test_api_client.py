"""API 客户端测试

使用 httpx.MockTransport 验证凭证附加、拆信封和错误分类；
使用 TestClient 跑通完整的免密登录流程。
"""
import json

import httpx
import pytest

from clubmanager.client import (
    ApiResponseError,
    AuthenticationRequired,
    ClubApiClient,
    NetworkError,
    SessionContext,
    UnexpectedResponseError,
)
from clubmanager.client.api_client import parse_filename
from clubmanager.main import app

BASE_URL = "http://club.invalid/api"


def _client(handler, credential=None):
    return ClubApiClient(BASE_URL, SessionContext(credential), transport=httpx.MockTransport(handler))


def _success(data, status_code=200):
    return httpx.Response(status_code, json={"status": "success", "data": data, "message": None})


class TestRequestHandling:
    """请求与响应处理"""

    def test_bearer_attached(self):
        """有凭证时附加 Authorization header"""
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            seen["url"] = str(request.url)
            return _success({"id": 1})

        client = _client(handler, credential="abc.def.ghi")
        assert client.get_me() == {"id": 1}
        assert seen["auth"] == "Bearer abc.def.ghi"
        assert seen["url"] == f"{BASE_URL}/auth/me"

    def test_no_credential_no_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return _success({"status": "sent"})

        _client(handler).send_login_link("ann@x.com")
        assert seen["auth"] is None

    def test_json_body_sent(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return _success({"id": 7})

        _client(handler, "c").update_user(7, {"phone": "555"})
        assert seen["body"] == {"phone": "555"}

    def test_test_reminder_payload(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return _success({"to": "ops@club.org"})

        api = _client(handler, "c")
        api.test_reminder("ops@club.org")
        assert seen["url"] == f"{BASE_URL}/email/test-reminder"
        assert seen["body"] == {"to": "ops@club.org"}

        api.test_reminder("ops@club.org", assignment_id=3)
        assert seen["body"] == {"to": "ops@club.org", "assignment_id": 3}

    def test_missing_envelope(self):
        client = _client(lambda request: httpx.Response(200, json=[1, 2, 3]))

        with pytest.raises(UnexpectedResponseError):
            client.get_users()

    def test_validate_token_stores_credential(self):
        def handler(request):
            return _success({"credential": "new-credential", "token_type": "bearer"})

        client = _client(handler)
        client.validate_token("tok")
        assert client.session.credential == "new-credential"
        assert client.session.is_authenticated

    def test_logo_coerced_before_sending(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return _success({})

        _client(handler, "c").update_settings({"club_logo_data": 42, "club_name": "X"})
        assert seen["body"] == {"club_logo_data": "42", "club_name": "X"}


class TestErrorClassification:
    """错误分类"""

    def test_401_clears_session(self):
        """401 时清除凭证并要求重新登录"""
        def handler(request):
            return httpx.Response(401, json={
                "status": "error", "code": "UNAUTHORIZED", "message": "无效或过期的认证信息", "details": None,
            })

        client = _client(handler, credential="expired")
        with pytest.raises(AuthenticationRequired) as exc:
            client.get_users()

        assert exc.value.redirect_to == "/login"
        assert client.session.credential is None
        assert not client.session.is_authenticated

    def test_error_envelope(self):
        def handler(request):
            return httpx.Response(400, json={
                "status": "error", "code": "TOKEN_EXPIRED", "message": "登录链接已过期", "details": None,
            })

        with pytest.raises(ApiResponseError) as exc:
            _client(handler).validate_token("old")

        assert exc.value.status_code == 400
        assert exc.value.code == "TOKEN_EXPIRED"
        assert exc.value.message == "登录链接已过期"

    def test_html_error_page(self):
        """服务器返回 HTML 时给出明确错误"""
        html = "<!DOCTYPE html><html><body>Bad Gateway</body></html>"
        client = _client(lambda request: httpx.Response(502, text=html, headers={"content-type": "text/html"}))

        with pytest.raises(UnexpectedResponseError) as exc:
            client.get_health()

        assert exc.value.status_code == 502
        assert "HTML" in str(exc.value)
        assert exc.value.body_preview.startswith("<!DOCTYPE html>")

    def test_html_success_page(self):
        client = _client(lambda request: httpx.Response(200, text="<html><body>index</body></html>"))

        with pytest.raises(UnexpectedResponseError):
            client.get_status()

    def test_connection_refused(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError) as exc:
            _client(handler).get_health()
        assert exc.value.timeout is False

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NetworkError) as exc:
            _client(handler).get_health()
        assert exc.value.timeout is True


class TestCsvTransfer:
    """CSV 上传与下载"""

    def test_download_returns_raw_bytes(self):
        content = b"first_name,email\nAnn,ann@x.com\n"

        def handler(request):
            assert request.headers["accept"] == "text/csv"
            return httpx.Response(200, content=content, headers={
                "content-type": "text/csv; charset=utf-8",
                "content-disposition": 'attachment; filename="members-export-2025-01-31.csv"',
            })

        download = _client(handler, "c").export_members_csv()
        assert download.filename == "members-export-2025-01-31.csv"
        assert download.content == content

    def test_download_rejects_json(self):
        client = _client(lambda request: _success({}))

        with pytest.raises(UnexpectedResponseError):
            client.export_members_csv()

    def test_upload_is_multipart(self, tmp_path):
        """上传使用 multipart，由 httpx 生成 boundary"""
        seen = {}

        def handler(request):
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = request.content
            return _success({"created": 1, "updated": 0, "skipped": 0, "total": 1, "log": [], "run_id": "r"})

        path = tmp_path / "members.csv"
        path.write_bytes(b"first_name,email\nAnn,ann@x.com\n")

        result = _client(handler, "c").import_members_csv(path)

        assert result["created"] == 1
        assert seen["content_type"].startswith("multipart/form-data; boundary=")
        assert b'filename="members.csv"' in seen["body"]
        assert b"ann@x.com" in seen["body"]

    @pytest.mark.parametrize("header,expected", [
        ('attachment; filename="a.csv"', "a.csv"),
        ("attachment; filename=b.csv", "b.csv"),
        (None, "members-export.csv"),
        ("attachment", "members-export.csv"),
    ])
    def test_parse_filename(self, header, expected):
        assert parse_filename(header) == expected


class TestEndToEnd:
    """通过 TestClient 跑通完整流程"""

    def test_login_flow_and_member_management(self, client, admin_user, mailer):
        api = ClubApiClient("http://testserver/api", http_client=client)

        assert api.send_login_link("admin@club.org") == {"status": "sent"}
        login = api.validate_token(mailer.last_token())
        assert login["user"]["email"] == "admin@club.org"
        assert api.session.is_authenticated

        assert api.get_me()["id"] == admin_user.id

        result = api.import_members_csv(b"first_name,last_name,email\nAnn,Lee,ann@x.com\nBob,,\n")
        assert (result["created"], result["skipped"]) == (1, 1)

        download = api.export_members_csv()
        assert download.filename.startswith("members-export-")
        assert b"ann@x.com" in download.content

        logs = api.get_import_logs()
        assert len(logs) == 2

    def test_reused_token_surfaces_error(self, client, member_user, mailer):
        api = ClubApiClient("http://testserver/api", http_client=client)
        api.send_login_link("member@club.org")
        token = mailer.last_token()
        api.validate_token(token)

        with pytest.raises(ApiResponseError) as exc:
            api.validate_token(token)
        assert exc.value.code == "TOKEN_ALREADY_USED"

    def test_bad_credential_requires_login(self, client):
        api = ClubApiClient("http://testserver/api", SessionContext("garbage"), http_client=client)

        with pytest.raises(AuthenticationRequired):
            api.get_users()
        assert api.session.credential is None

    def test_client_does_not_close_injected_http(self, client):
        with ClubApiClient("http://testserver/api", http_client=client) as api:
            api.get_health()
        # 注入的客户端仍可使用
        assert client.get("/api/health").status_code == 200


def test_app_importable():
    assert app.title == "ClubManager API"
