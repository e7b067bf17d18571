import click

from admin_backend.auth.passwords import PasswordHasher
from admin_backend.database import build_engine, build_session_factory
from admin_backend.seeder import Seeder, read_seed_file
from admin_backend.settings import BackendSettings


@click.command()
@click.option("--file", "-f", "path", type=click.Path(exists=True, dir_okay=False), required=True)
def seed(path):
    """Create departments, menus, roles and users listed in a YAML file."""
    settings = BackendSettings()
    db = build_session_factory(build_engine(settings))()
    try:
        created = Seeder(db, PasswordHasher(rounds=settings.PASSWORD_HASH_ROUNDS)).run(read_seed_file(path))
    except ValueError as e:
        raise click.ClickException(str(e))
    finally:
        db.close()

    for kind, count in created.items():
        click.echo(f"{kind}: {count} created")
