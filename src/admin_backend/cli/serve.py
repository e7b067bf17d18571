import click
import uvicorn

from admin_backend.settings import BackendSettings


@click.command()
@click.option("--host", "host", default="0.0.0.0", show_default=True)
@click.option("--port", "port", type=int, default=8000, show_default=True)
@click.option("--reload", "reload", is_flag=True, default=False)
def serve(host, port, reload):
    """Run the API server."""
    uvicorn.run(
        "admin_backend.server:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=BackendSettings().LOG_LEVEL.lower(),
        reload=reload,
    )
