"""ClubManager - API Client

ClubManager 后端的 HTTP 客户端：
- 每个请求自动附加会话凭证（来自显式传入的 SessionContext）
- JSON 响应自动拆信封，只返回 data
- CSV 下载原样返回字节与文件名
- 401 时清除凭证并抛出 AuthenticationRequired，由调用方决定跳转
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_EXPORT_FILENAME = "members-export.csv"
LOGIN_PATH = "/login"

_FILENAME_RE = re.compile(r"filename[^;=\n]*=((['\"]).*?\2|[^;\n]*)")


# ============================================================
# 错误类型
# ============================================================

class ClientError(Exception):
    """客户端错误基类"""


class NetworkError(ClientError):
    """无法连接服务器或请求超时（没有收到任何响应）"""

    def __init__(self, message: str, *, timeout: bool = False):
        super().__init__(message)
        self.timeout = timeout


class AuthenticationRequired(ClientError):
    """凭证无效或过期，需要重新登录"""

    def __init__(self, message: str = "需要重新登录", redirect_to: str = LOGIN_PATH):
        super().__init__(message)
        self.redirect_to = redirect_to


class ApiResponseError(ClientError):
    """服务器返回了错误信封"""

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


class UnexpectedResponseError(ClientError):
    """响应不是预期的格式（例如返回了 HTML 而不是 JSON）"""

    def __init__(self, status_code: int, message: str, body_preview: str = ""):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.body_preview = body_preview


# ============================================================
# 会话与下载结果
# ============================================================

@dataclass
class SessionContext:
    """客户端会话（持有会话凭证）"""
    credential: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.credential)

    def clear(self) -> None:
        self.credential = None


@dataclass
class CsvDownload:
    filename: str
    content: bytes


def parse_filename(content_disposition: Optional[str], default: str = DEFAULT_EXPORT_FILENAME) -> str:
    """从 Content-Disposition 中提取文件名"""
    if not content_disposition:
        return default
    match = _FILENAME_RE.search(content_disposition)
    if match and match.group(1):
        return match.group(1).strip().strip("'\"") or default
    return default


def _looks_like_html(text: str) -> bool:
    head = text.lstrip()[:200].lower()
    return head.startswith("<!doctype html") or head.startswith("<html")


# ============================================================
# 客户端
# ============================================================

class ClubApiClient:
    """ClubManager API 客户端

    Args:
        base_url: API 根地址，例如 http://localhost:8000/api
        session: 会话上下文；不传则创建空会话
        timeout: 请求超时（秒）
        http_client: 可注入的 httpx.Client（测试时可传 TestClient）
        transport: 可注入的 httpx 传输层（测试时可传 MockTransport）
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[SessionContext] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or SessionContext()
        self._http = http_client or httpx.Client(timeout=timeout, transport=transport)
        self._owns_http = http_client is None

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "ClubApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- 请求与响应处理 ----------

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.session.credential:
            headers["Authorization"] = f"Bearer {self.session.credential}"
        if extra:
            headers.update(extra)
        return headers

    def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        files: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            # multipart 上传时不能预设 Content-Type，由 httpx 生成 boundary
            response = self._http.request(
                method,
                url,
                json=json,
                params=params,
                files=files,
                headers=self._headers(headers),
            )
        except httpx.TimeoutException as e:
            logger.error(f"{method} {url} timed out")
            raise NetworkError(f"请求超时: {method} {path}", timeout=True) from e
        except httpx.TransportError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise NetworkError(f"无法连接服务器: {e}") from e

        if response.status_code == 401:
            self.session.clear()
            raise AuthenticationRequired(self._error_message(response) or "需要重新登录")

        if response.status_code >= 400:
            self._raise_error(response)

        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("message")
        return None

    @staticmethod
    def _raise_error(response: httpx.Response) -> None:
        try:
            body = response.json()
        except ValueError:
            text = response.text
            if _looks_like_html(text):
                raise UnexpectedResponseError(
                    response.status_code, "服务器返回了 HTML 而不是 JSON", text[:500]
                )
            raise UnexpectedResponseError(response.status_code, "服务器返回了无法解析的错误响应", text[:500])

        if isinstance(body, dict) and body.get("status") == "error":
            raise ApiResponseError(
                response.status_code,
                body.get("code", "HTTP_ERROR"),
                body.get("message", ""),
                body.get("details"),
            )
        raise UnexpectedResponseError(response.status_code, "错误响应格式未知", response.text[:500])

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        """拆信封，返回 data"""
        try:
            body = response.json()
        except ValueError:
            text = response.text
            if _looks_like_html(text):
                raise UnexpectedResponseError(
                    response.status_code, "服务器返回了 HTML 而不是 JSON", text[:500]
                )
            raise UnexpectedResponseError(response.status_code, "响应不是有效的 JSON", text[:500])

        if not isinstance(body, dict) or body.get("status") != "success":
            raise UnexpectedResponseError(response.status_code, "响应缺少数据信封", response.text[:500])
        return body.get("data")

    def request(self, method: str, path: str, **kwargs) -> Any:
        """发送 JSON 请求并返回拆信封后的数据"""
        return self._unwrap(self._send(method, path, **kwargs))

    def download(self, path: str) -> CsvDownload:
        """下载二进制（CSV）响应，原样返回内容"""
        response = self._send("GET", path, headers={"Accept": "text/csv"})
        content_type = response.headers.get("content-type", "")
        if "text/csv" not in content_type:
            raise UnexpectedResponseError(
                response.status_code, f"期望 CSV，实际为 {content_type or '未知类型'}", response.text[:500]
            )
        return CsvDownload(
            filename=parse_filename(response.headers.get("content-disposition")),
            content=response.content,
        )

    # ---------- 系统 ----------

    def get_status(self) -> Any:
        return self.request("GET", "/status")

    def get_health(self) -> Any:
        return self.request("GET", "/health")

    def test_database(self) -> Any:
        return self.request("GET", "/db-test")

    # ---------- 认证 ----------

    def send_login_link(self, email: str) -> Any:
        return self.request("POST", "/auth/send-login-link", json={"email": email})

    def validate_token(self, token: str) -> Any:
        """校验登录令牌，成功后凭证写入会话"""
        data = self.request("POST", "/auth/validate-token", json={"token": token})
        self.session.credential = data["credential"]
        return data

    def get_me(self) -> Any:
        return self.request("GET", "/auth/me")

    # ---------- 会员 ----------

    def get_users(self) -> Any:
        return self.request("GET", "/users")

    def get_user(self, user_id: int) -> Any:
        return self.request("GET", f"/users/{user_id}")

    def get_assignable_users(self) -> Any:
        return self.request("GET", "/users/assignable")

    def create_user(self, user_data: dict[str, Any]) -> Any:
        return self.request("POST", "/users", json=user_data)

    def update_user(self, user_id: int, user_data: dict[str, Any]) -> Any:
        return self.request("PUT", f"/users/{user_id}", json=user_data)

    def delete_user(self, user_id: int) -> Any:
        return self.request("DELETE", f"/users/{user_id}")

    def import_members_csv(self, file: Union[str, Path, bytes], filename: Optional[str] = None) -> Any:
        """上传会员 CSV（multipart）"""
        if isinstance(file, (str, Path)):
            path = Path(file)
            content = path.read_bytes()
            filename = filename or path.name
        else:
            content = file
        files = {"file": (filename or "members.csv", content, "text/csv")}
        return self.request("POST", "/users/import", files=files)

    def export_members_csv(self) -> CsvDownload:
        return self.download("/users/export/csv")

    # ---------- 维护 ----------

    def get_import_logs(self) -> Any:
        return self.request("GET", "/maintenance/import-logs")

    def clear_import_logs(self) -> Any:
        return self.request("POST", "/maintenance/clear-import-logs")

    # ---------- 配置 ----------

    def get_settings(self) -> Any:
        return self.request("GET", "/settings")

    def get_setting(self, key: str) -> Any:
        return self.request("GET", f"/settings/{key}")

    def update_settings(self, values: dict[str, Any]) -> Any:
        payload = dict(values)
        logo = payload.get("club_logo_data")
        if logo is not None and not isinstance(logo, str):
            payload["club_logo_data"] = str(logo)
        return self.request("PUT", "/settings", json=payload)

    def update_setting(self, key: str, value: Any) -> Any:
        return self.request("PUT", f"/settings/{key}", json={"value": value})

    # ---------- 邮件 ----------

    def test_smtp(self, to: str) -> Any:
        return self.request("POST", "/email/test-smtp", json={"to": to})

    def test_reminder(self, to: str, assignment_id: Optional[int] = None) -> Any:
        payload: dict[str, Any] = {"to": to}
        if assignment_id is not None:
            payload["assignment_id"] = assignment_id
        return self.request("POST", "/email/test-reminder", json=payload)

    # ---------- 排班 ----------

    def get_current_schedule(self) -> Any:
        return self.request("GET", "/schedules/current")

    def get_next_schedule(self) -> Any:
        return self.request("GET", "/schedules/next")

    def create_next_schedule(self, schedule_data: dict[str, Any]) -> Any:
        return self.request("POST", "/schedules/next", json=schedule_data)

    def update_assignment(self, assignment_id: int, assignment_data: dict[str, Any]) -> Any:
        return self.request("PUT", f"/schedules/assignments/{assignment_id}", json=assignment_data)

    def promote_schedule(self) -> Any:
        return self.request("POST", "/schedules/promote")
