"""
ClubManager 测试配置

统一管理测试数据库初始化，确保所有模型都被导入和注册。
"""
from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clubmanager.database.config import Base, get_db
from clubmanager.database import user_models  # noqa: F401 - 注册用户模型
from clubmanager.database import token_models  # noqa: F401 - 注册登录令牌模型
from clubmanager.database import setting_models  # noqa: F401 - 注册配置模型
from clubmanager.database import schedule_models  # noqa: F401 - 注册排班模型
from clubmanager.database import import_log_models  # noqa: F401 - 注册导入日志模型
from clubmanager.database.user_models import MemberStatus, User, UserRole
from clubmanager.main import app
from clubmanager.services.auth_service import AuthService
from clubmanager.services.mail_service import MailConfig, MailService, get_mail_service
from clubmanager.services.setting_service import seed_default_settings

# 使用文件数据库进行测试（内存数据库有连接隔离问题）
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """覆盖数据库依赖"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeMailService(MailService):
    """记录邮件而不发送；设置 fail_with 可模拟发送失败"""

    def __init__(self):
        super().__init__(MailConfig(enabled=True, smtp_host="smtp.invalid"))
        self.sent: list[dict] = []
        self.fail_with: Exception | None = None

    def send(self, to, subject, html_body, text_body=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})

    def last_token(self) -> str:
        """从最近一封登录邮件中取出令牌"""
        text = self.sent[-1]["text"]
        link = next(part for part in text.split() if "token=" in part)
        return parse_qs(urlparse(link).query)["token"][0]


@pytest.fixture(autouse=True)
def setup_database():
    """每个测试前创建所有表，测试后清理"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        seed_default_settings(db)
    finally:
        db.close()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mailer():
    return FakeMailService()


@pytest.fixture(autouse=True)
def apply_overrides(mailer):
    """每个测试自动应用依赖覆盖，并在结束后恢复"""
    old_overrides = app.dependency_overrides.copy()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mail_service] = lambda: mailer

    yield

    app.dependency_overrides = old_overrides


@pytest.fixture
def db():
    """提供数据库会话"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    """提供测试客户端"""
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
def make_user(db):
    """创建会员的工厂"""
    def _make_user(email, first_name="Test", last_name="Member", role=UserRole.MEMBER, **kwargs):
        kwargs.setdefault("status", MemberStatus.ASSIGNABLE)
        kwargs.setdefault("is_active", True)
        user = User(email=email, first_name=first_name, last_name=last_name, role=role, **kwargs)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


def bearer(user: User) -> dict[str, str]:
    credential, _ = AuthService.create_credential(user)
    return {"Authorization": f"Bearer {credential}"}


@pytest.fixture
def auth_headers():
    """为任意用户生成 Authorization header"""
    return bearer


@pytest.fixture
def session_factory():
    """独立会话工厂（模拟并发请求）"""
    return TestingSessionLocal


@pytest.fixture
def admin_user(make_user):
    return make_user("admin@club.org", first_name="Club", last_name="Admin", role=UserRole.ADMIN,
                     status=MemberStatus.EXEMPT)


@pytest.fixture
def member_user(make_user):
    return make_user("member@club.org", first_name="Mary", last_name="Member")


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


@pytest.fixture
def member_headers(member_user):
    return bearer(member_user)
