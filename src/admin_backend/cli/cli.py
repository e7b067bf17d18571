import click
from dotenv import load_dotenv

from .admin import create_superuser, hash_password, init_db
from .seed import seed
from .serve import serve


@click.group()
def cli():
    load_dotenv()

cli.add_command(init_db, "init-db")
cli.add_command(create_superuser, "create-superuser")
cli.add_command(hash_password, "hash-password")
cli.add_command(seed, "seed")
cli.add_command(serve, "serve")

if __name__ == '__main__':
    cli()
