import click

from admin_backend.api.exceptions import BadRequestException
from admin_backend.auth.passwords import PasswordHasher
from admin_backend.database import build_engine, build_session_factory, init_schema
from admin_backend.repositories import DuplicateError, UserRepository
from admin_backend.settings import BackendSettings


@click.command()
def init_db():
    """Create all tables in DATABASE_URL."""
    settings = BackendSettings()
    init_schema(build_engine(settings))
    click.echo(f"Schema created in {settings.DATABASE_URL}")


@click.command()
@click.option("--username", "-u", "username", prompt=True)
@click.option("--password", "-p", "password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--nickname", "-n", "nickname", default=None)
def create_superuser(username, password, nickname):
    """Create a superuser account."""
    settings = BackendSettings()
    hasher = PasswordHasher(rounds=settings.PASSWORD_HASH_ROUNDS)
    db = build_session_factory(build_engine(settings))()
    try:
        user = UserRepository(db).create({
            "username": username,
            "nickname": nickname,
            "password": hasher.hash(password),
            "is_superuser": True,
            "is_staff": True,
        })
    except DuplicateError as e:
        raise click.ClickException(str(e))
    except BadRequestException as e:
        raise click.ClickException(e.detail)
    finally:
        db.close()
    click.echo(f"Created superuser {username} (id {user.id})")


@click.command()
@click.argument("plain")
@click.option("--rounds", "rounds", type=int, default=None, help="bcrypt cost factor")
def hash_password(plain, rounds):
    """Print the bcrypt digest of PLAIN."""
    settings = BackendSettings()
    try:
        digest = PasswordHasher(rounds=rounds or settings.PASSWORD_HASH_ROUNDS).hash(plain)
    except BadRequestException as e:
        raise click.ClickException(e.detail)
    click.echo(digest)
