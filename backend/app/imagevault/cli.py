from __future__ import annotations

from typing import NoReturn

import typer
from rich import print
from sqlalchemy.exc import IntegrityError

from imagevault.core.config import settings
from imagevault.core.errors import RegistryError
from imagevault.database.config import SessionLocal, init_db
from imagevault.database.user_models import User
from imagevault.services.auth_service import AuthService
from imagevault.services.token_service import TokenLifecycleManager
from imagevault.storage.object_store import S3ObjectStore

app = typer.Typer(add_completion=False, help="ImageVault CLI")


# ============================================================
# 小工具：日志
# ============================================================
def _info(msg: str) -> None:
    print(f"[cyan][IV][/cyan] {msg}")


def _ok(msg: str) -> None:
    print(f"[green][IV][OK][/green] {msg}")


def _fail(msg: str, code: int = 1) -> NoReturn:
    print(f"[red][IV][FAIL][/red] {msg}")
    raise typer.Exit(code)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),
    port: int = typer.Option(5000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto reload (dev only)"),
):
    """Run the API server."""
    import uvicorn

    uvicorn.run("imagevault.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db_command():
    """Create database tables and the object store bucket."""
    init_db()
    _ok("Tables created")
    try:
        S3ObjectStore.from_settings(settings).ensure_bucket()
    except RegistryError as e:
        _fail(f"Bucket check failed: {e.message}")
    _ok(f"Bucket '{settings.BUCKET_NAME}' ready")


@app.command("create-user")
def create_user(
    username: str = typer.Option(..., "--username", help="Login name"),
    email: str = typer.Option(..., "--email", help="Login email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Provision a user account (there is no self-registration)."""
    auth_service = AuthService(settings)
    db = SessionLocal()
    try:
        user = User(
            username=username,
            email=email,
            password_hash=auth_service.hash_password(password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        _fail(f"User with username '{username}' or email '{email}' already exists")
    except RegistryError as e:
        _fail(e.message)
    finally:
        db.close()
    _ok(f"User created: {user.id} ({email})")


@app.command("cleanup-tokens")
def cleanup_tokens():
    """Delete expired automation tokens."""
    manager = TokenLifecycleManager(settings, AuthService(settings))
    db = SessionLocal()
    try:
        deleted = manager.cleanup_expired(db)
    finally:
        db.close()
    _info(f"Removed {deleted} expired token(s)")


if __name__ == "__main__":
    app()
