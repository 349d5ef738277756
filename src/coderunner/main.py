import typer

from coderunner.commands import project
from coderunner.config import get_settings
from coderunner.logging import setup_logging

app = typer.Typer()


@app.callback()
def callback(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """
    Code runner CLI: generate apps from a prompt and deploy them to a sandbox
    """
    settings = get_settings()
    setup_logging(
        service_name=settings.service_name,
        log_format=settings.log_format,
        log_level=log_level or settings.log_level,
    )


app.add_typer(project.app, name="project")
