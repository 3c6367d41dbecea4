"""ClubManager - CSV Service

会员 CSV 导入 / 导出

导入按行独立处理：单行校验失败记为 skipped 并继续，
每行单独提交，不存在整文件的全有或全无事务。
同一文件内邮箱重复时后出现的行覆盖前面的行。
"""
from __future__ import annotations

import csv
import io
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clubmanager.core.config import settings
from clubmanager.core.errors import ImportFileError
from clubmanager.database.import_log_models import ImportAction, ImportLog
from clubmanager.database.user_models import MemberStatus, User, UserRole

logger = logging.getLogger(__name__)

# 导出列顺序固定
EXPORT_COLUMNS = [
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "role",
    "status",
    "birthday",
    "partner_email",
    "friend_email",
]

# 归一化表头 -> 字段
COLUMN_ALIASES = {
    "firstname": "first_name",
    "first": "first_name",
    "givenname": "first_name",
    "lastname": "last_name",
    "last": "last_name",
    "surname": "last_name",
    "name": "name",
    "fullname": "name",
    "email": "email",
    "emailaddress": "email",
    "mail": "email",
    "phone": "phone",
    "phonenumber": "phone",
    "telephone": "phone",
    "address": "address",
    "role": "role",
    "status": "status",
    "birthday": "birthday",
    "partner": "partner_email",
    "partneremail": "partner_email",
    "friend": "friend_email",
    "friendemail": "friend_email",
}

PROFILE_FIELDS = ("first_name", "last_name", "phone", "address", "birthday")
_BIRTHDAY_RE = re.compile(r"^(0[1-9]|1[0-2])/(0[1-9]|[12]\d|3[01])$")
_email_adapter = TypeAdapter(EmailStr)


class RowValidationError(ValueError):
    """单行数据校验失败"""


@dataclass
class RowOutcome:
    """单行处理结果"""
    row_number: int
    action: ImportAction
    email: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ImportResult:
    """一次导入的汇总"""
    run_id: str
    log: list[RowOutcome] = field(default_factory=list)

    def _count(self, action: ImportAction) -> int:
        return sum(1 for entry in self.log if entry.action == action)

    @property
    def created(self) -> int:
        return self._count(ImportAction.CREATED)

    @property
    def updated(self) -> int:
        return self._count(ImportAction.UPDATED)

    @property
    def skipped(self) -> int:
        return self._count(ImportAction.SKIPPED)

    @property
    def total(self) -> int:
        return len(self.log)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "total": self.total,
            "log": [
                {
                    "row_number": entry.row_number,
                    "action": entry.action.value,
                    "email": entry.email,
                    "error": entry.error,
                }
                for entry in self.log
            ],
        }


def normalize_header(header: Optional[str]) -> str:
    return re.sub(r"[^a-z0-9]", "", (header or "").lower())


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def decode_csv_bytes(content: bytes) -> str:
    """UTF-8 解码（去除 BOM）"""
    if len(content) > settings.MAX_IMPORT_BYTES:
        raise ImportFileError(
            f"文件过大: {len(content)} bytes。最大允许: {settings.MAX_IMPORT_BYTES} bytes"
        )
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ImportFileError("文件不是 UTF-8 编码的 CSV") from e


def parse_csv(text: str) -> tuple[dict[str, str], list[tuple[int, dict[str, Optional[str]]]]]:
    """解析 CSV 文本

    Returns:
        (原始表头 -> 字段 的映射, [(数据行序号, {字段: 值})])

    Raises:
        ImportFileError: 缺少表头或表头中没有 email 列
    """
    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        raise ImportFileError("缺少表头行")
    except csv.Error as e:
        raise ImportFileError(f"CSV 解析失败: {e}") from e

    columns: dict[int, str] = {}
    mapping: dict[str, str] = {}
    for index, raw in enumerate(header):
        field_name = COLUMN_ALIASES.get(normalize_header(raw))
        if field_name and field_name not in columns.values():
            columns[index] = field_name
            mapping[raw] = field_name

    if "email" not in columns.values():
        raise ImportFileError("缺少表头行或表头中没有 email 列")

    rows: list[tuple[int, dict[str, Optional[str]]]] = []
    row_number = 0
    try:
        for values in reader:
            if not any(v.strip() for v in values):
                continue
            row_number += 1
            rows.append((row_number, {
                field_name: (values[index] if index < len(values) else None)
                for index, field_name in columns.items()
            }))
    except csv.Error as e:
        raise ImportFileError(f"CSV 解析失败（第 {row_number + 2} 行附近）: {e}") from e

    return mapping, rows


def validate_row(raw: dict[str, Optional[str]]) -> dict[str, Any]:
    """校验并归一化单行，返回只包含出现过的字段的字典

    Raises:
        RowValidationError
    """
    email = _blank_to_none(raw.get("email"))
    if not email:
        raise RowValidationError("缺少 email")
    try:
        email = str(_email_adapter.validate_python(email)).lower()
    except ValidationError:
        raise RowValidationError(f"email 格式无效: {email}")

    data: dict[str, Any] = {"email": email}

    first_name = _blank_to_none(raw.get("first_name"))
    last_name = _blank_to_none(raw.get("last_name"))
    if "name" in raw and not first_name:
        name = _blank_to_none(raw.get("name"))
        if name:
            first_name, _, rest = name.partition(" ")
            last_name = last_name or _blank_to_none(rest)
    if not first_name:
        raise RowValidationError("缺少姓名")
    data["first_name"] = first_name
    if "last_name" in raw or "name" in raw:
        data["last_name"] = last_name

    for key in ("phone", "address"):
        if key in raw:
            data[key] = _blank_to_none(raw.get(key))

    if "birthday" in raw:
        birthday = _blank_to_none(raw.get("birthday"))
        if birthday and not _BIRTHDAY_RE.match(birthday):
            raise RowValidationError(f"birthday 格式应为 MM/DD: {birthday}")
        data["birthday"] = birthday

    role = _blank_to_none(raw.get("role"))
    if role:
        try:
            data["role"] = UserRole(role.lower())
        except ValueError:
            raise RowValidationError(f"无效的角色: {role}")

    status = _blank_to_none(raw.get("status"))
    if status:
        try:
            data["status"] = MemberStatus(status.lower())
        except ValueError:
            raise RowValidationError(f"无效的状态: {status}")

    for key in ("partner_email", "friend_email"):
        if key in raw:
            ref = _blank_to_none(raw.get(key))
            data[key] = ref.lower() if ref else None

    return data


def _apply(user: User, data: dict[str, Any]) -> None:
    """只写入有变化的字段（无变化时不触发 UPDATE）"""
    for key in PROFILE_FIELDS + ("role", "status"):
        if key in data and getattr(user, key) != data[key]:
            setattr(user, key, data[key])


class CsvImportService:
    """会员 CSV 导入"""

    def __init__(self, db: Session):
        self.db = db

    def import_bytes(self, content: bytes) -> ImportResult:
        text = decode_csv_bytes(content)
        result = ImportResult(run_id=uuid.uuid4().hex)

        if not text.strip():
            logger.info(f"Import {result.run_id}: empty file, nothing to do")
            return result

        _, rows = parse_csv(text)

        references: dict[str, dict[str, Optional[str]]] = {}
        for row_number, raw in rows:
            outcome = self._process_row(row_number, raw, references)
            result.log.append(outcome)

        self._resolve_references(references)
        self._persist_log(result)

        logger.info(
            f"Import {result.run_id}: created={result.created} "
            f"updated={result.updated} skipped={result.skipped}"
        )
        return result

    def _process_row(
        self,
        row_number: int,
        raw: dict[str, Optional[str]],
        references: dict[str, dict[str, Optional[str]]],
    ) -> RowOutcome:
        email = _blank_to_none(raw.get("email"))
        try:
            data = validate_row(raw)
        except RowValidationError as e:
            return RowOutcome(row_number, ImportAction.SKIPPED, email, str(e))

        try:
            action = self._upsert(data)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Import row {row_number} failed: {e}")
            return RowOutcome(row_number, ImportAction.SKIPPED, data["email"], "数据库写入失败")

        refs = {k: data[k] for k in ("partner_email", "friend_email") if k in data}
        if refs:
            references[data["email"]] = refs
        return RowOutcome(row_number, action, data["email"])

    def _upsert(self, data: dict[str, Any]) -> ImportAction:
        user = self.db.query(User).filter(User.email == data["email"]).first()
        if user:
            _apply(user, data)
            return ImportAction.UPDATED

        user = User(
            email=data["email"],
            role=data.get("role", UserRole.MEMBER),
            status=data.get("status", MemberStatus.ASSIGNABLE),
            is_active=True,
        )
        _apply(user, data)
        self.db.add(user)
        self.db.flush()
        return ImportAction.CREATED

    def _resolve_references(self, references: dict[str, dict[str, Optional[str]]]) -> None:
        """所有行写入后再按邮箱关联 partner / friend"""
        if not references:
            return

        ids = {email: user_id for user_id, email in self.db.query(User.id, User.email).all()}
        for email, refs in references.items():
            user = self.db.query(User).filter(User.email == email).first()
            if not user:
                continue
            for key, column in (("partner_email", "partner_id"), ("friend_email", "friend_id")):
                if key not in refs:
                    continue
                ref_email = refs[key]
                if ref_email == email:
                    logger.warning(f"Import: {key} for {email} points to itself, ignored")
                    continue
                target = ids.get(ref_email) if ref_email else None
                if ref_email and target is None:
                    logger.warning(f"Import: {key} {ref_email} for {email} not found, ignored")
                    continue
                if getattr(user, column) != target:
                    setattr(user, column, target)
        self.db.commit()

    def _persist_log(self, result: ImportResult) -> None:
        for entry in result.log:
            self.db.add(ImportLog(
                run_id=result.run_id,
                row_number=entry.row_number,
                action=entry.action.value,
                email=entry.email,
                error=entry.error,
            ))
        self.db.commit()


def export_users_csv(db: Session) -> bytes:
    """导出全部会员为 CSV（列顺序固定，按 id 排序）"""
    users = db.query(User).order_by(User.id).all()
    emails = {user.id: user.email for user in users}

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for user in users:
        writer.writerow([
            user.first_name,
            user.last_name or "",
            user.email,
            user.phone or "",
            user.address or "",
            user.role.value,
            user.status.value,
            user.birthday or "",
            emails.get(user.partner_id, ""),
            emails.get(user.friend_id, ""),
        ])
    return buffer.getvalue().encode("utf-8")


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"members-export-{today.isoformat()}.csv"
