from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from rich import print

from clubmanager.core.errors import ApiError
from clubmanager.database import config as db_config
from clubmanager.logging_config import setup_logging
from clubmanager.services.auth_service import AuthService
from clubmanager.services.csv_service import CsvImportService, export_users_csv
from clubmanager.services.mail_service import get_mail_service

app = typer.Typer(add_completion=False, help="ClubManager CLI")


# ============================================================
# 小工具：输出
# ============================================================
def _info(msg: str) -> None:
    print(f"[cyan][CLUB][/cyan] {msg}")


def _ok(msg: str) -> None:
    print(f"[green][CLUB][OK][/green] {msg}")


def _fail(msg: str, code: int = 1) -> NoReturn:
    print(f"[red][CLUB][FAIL][/red] {msg}")
    raise typer.Exit(code)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable logging output")):
    if verbose:
        setup_logging()


@app.command("init-db")
def init_db():
    """建表并写入默认配置"""
    db_config.init_db()
    _ok(f"Database ready: {db_config.engine.url}")


@app.command("create-admin")
def create_admin(
    email: str = typer.Argument(..., help="Admin email"),
    first_name: str = typer.Option("Admin", help="First name"),
):
    """创建管理员（邮箱已存在则提升为管理员）"""
    db = db_config.SessionLocal()
    try:
        admin = AuthService.create_admin(db, email, first_name=first_name)
        _ok(f"Admin ready: {admin.email} (id={admin.id})")
    finally:
        db.close()


@app.command()
def serve(host: str = "127.0.0.1", port: int = 8000, reload: bool = False):
    """Run FastAPI server."""
    import uvicorn

    setup_logging()
    db_config.init_db()
    uvicorn.run("clubmanager.main:app", host=host, port=port, reload=reload)


@app.command("import-csv")
def import_csv(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV file")):
    """从 CSV 导入会员"""
    db = db_config.SessionLocal()
    try:
        result = CsvImportService(db).import_bytes(path.read_bytes())
    except ApiError as e:
        _fail(e.message)
    finally:
        db.close()

    for entry in result.log:
        if entry.error:
            print(f"  row {entry.row_number}: [yellow]{entry.action.value}[/yellow] {entry.email or '-'} {entry.error}")
    _ok(f"created={result.created} updated={result.updated} skipped={result.skipped} (run {result.run_id})")


@app.command("export-csv")
def export_csv(out: Path = typer.Argument(Path("members-export.csv"), help="Output file")):
    """导出会员为 CSV"""
    db = db_config.SessionLocal()
    try:
        content = export_users_csv(db)
    finally:
        db.close()
    out.write_bytes(content)
    _ok(f"Wrote {out} ({len(content)} bytes)")


@app.command("cleanup-tokens")
def cleanup_tokens(retention_days: int = typer.Option(7, help="Keep expired/used tokens this many days")):
    """清理过期 / 已使用的登录令牌"""
    db = db_config.SessionLocal()
    try:
        deleted = AuthService.cleanup_login_tokens(db, retention_days)
    finally:
        db.close()
    _ok(f"Deleted {deleted} login tokens")


@app.command("send-login-link")
def send_login_link(email: str = typer.Argument(..., help="Member email")):
    """发送登录链接"""
    db = db_config.SessionLocal()
    try:
        token = AuthService.send_login_link(db, email, get_mail_service())
    except ApiError as e:
        _fail(e.message)
    finally:
        db.close()

    if token is None:
        _info("No active member with that email; nothing sent")
    else:
        _ok(f"Login link sent to {email}")


if __name__ == "__main__":
    app()
