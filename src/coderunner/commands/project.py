import asyncio
import json
from pathlib import Path

from rich.console import Console
import typer

from coderunner.client import get_client
from coderunner.config import get_settings
from coderunner.controller import OrchestrationController
from coderunner.errors import CodeRunnerError
from coderunner.events import (
    ControllerEvent,
    Listener,
    Notification,
    NotificationLevel,
    StateChanged,
)
from coderunner.formatting import format_code
from coderunner.session import ProjectSession, SessionStatus

app = typer.Typer()
console = Console()

LEVEL_STYLE = {
    NotificationLevel.SUCCESS: "[bold green]✓[/bold green]",
    NotificationLevel.INFO: "[cyan]•[/cyan]",
    NotificationLevel.ERROR: "[bold red]Error:[/bold red]",
}

STATUS_LABEL = {
    SessionStatus.GENERATING: "⏳ Generating code...",
    SessionStatus.DEPLOYING: "🚀 Deploying to sandbox...",
}


def _controller() -> OrchestrationController:
    settings = get_settings()
    return OrchestrationController(
        get_client(), poll_interval=settings.poll_interval, settings=settings
    )


def render_event(event: ControllerEvent) -> None:
    """Print controller events to the console."""
    if isinstance(event, Notification):
        console.print(f"{LEVEL_STYLE[event.level]} {event.message}")
    elif isinstance(event, StateChanged) and event.session.status in STATUS_LABEL:
        console.print(f"[dim]{STATUS_LABEL[event.session.status]}[/dim]")


def _session_payload(session: ProjectSession, errors: list[str]) -> dict:
    payload = session.model_dump(mode="json", exclude={"epoch", "prompt"})
    payload["errors"] = errors
    return payload


async def generate_project_command(
    prompt: str, listener: Listener | None = None
) -> ProjectSession:
    """Generate code for `prompt` without deploying it."""
    controller = _controller()
    if listener:
        controller.subscribe(listener)
    try:
        return await controller.generate(prompt)
    finally:
        await controller.aclose()


async def run_project_command(
    prompt: str, cleanup: bool = False, listener: Listener | None = None
) -> ProjectSession:
    """Generate, deploy and wait for the sandbox to settle.

    Returns the session as it was when deployment settled, before any cleanup.
    """
    controller = _controller()
    if listener:
        controller.subscribe(listener)
    try:
        session = await controller.generate(prompt)
        if session.status is SessionStatus.GENERATED:
            await controller.deploy()
            session = await controller.wait_until_settled()
        if cleanup:
            await controller.cleanup()
        return session
    finally:
        await controller.aclose()


async def status_project_command(project_id: str) -> dict:
    client = get_client()
    try:
        response = await client.fetch_status(project_id)
        return response.model_dump(mode="json")
    finally:
        await client.close()


async def delete_project_command(project_id: str) -> None:
    client = get_client()
    try:
        await client.delete(project_id)
    finally:
        await client.close()


class _Collector:
    """Records error notifications; optionally forwards events to the console."""

    def __init__(self, render: bool):
        self.render = render
        self.errors: list[str] = []

    def __call__(self, event: ControllerEvent) -> None:
        if isinstance(event, Notification) and event.level is NotificationLevel.ERROR:
            self.errors.append(event.message)
        if self.render:
            render_event(event)


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="Description of the app to generate"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write code to file"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Generate code without deploying it"""
    collector = _Collector(render=not json_output)
    try:
        session = asyncio.run(generate_project_command(prompt, collector))
    except CodeRunnerError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps(_session_payload(session, collector.errors), indent=2))
    if session.status is not SessionStatus.GENERATED:
        raise typer.Exit(code=1)
    if json_output:
        return

    code = format_code(session.generated_code)
    if output:
        output.write_text(code + "\n", encoding="utf-8")
        console.print(f"Code written to [cyan]{output}[/cyan]")
    else:
        console.print(code, markup=False, highlight=False)
    console.print(f"Project ID: [cyan]{session.id}[/cyan]")


@app.command()
def run(
    prompt: str = typer.Argument(..., help="Description of the app to generate"),
    cleanup: bool = typer.Option(
        False, "--cleanup/--keep", help="Delete the project once deployment settles"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Generate code, deploy it to a sandbox and wait until it is live"""
    collector = _Collector(render=not json_output)
    try:
        session = asyncio.run(run_project_command(prompt, cleanup, collector))
    except CodeRunnerError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps(_session_payload(session, collector.errors), indent=2))
    elif session.status is SessionStatus.DEPLOYED:
        console.print(f"Project ID: [cyan]{session.id}[/cyan]")
        if session.sandbox_id:
            console.print(f"Sandbox ID: [cyan]{session.sandbox_id}[/cyan]")
        console.print(f"Public URL: [bold cyan]{session.public_url}[/bold cyan]")

    if session.status is not SessionStatus.DEPLOYED:
        raise typer.Exit(code=1)


@app.command()
def status(
    project_id: str,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show deployment status of a project"""
    try:
        data = asyncio.run(status_project_command(project_id))
    except CodeRunnerError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return

    console.print(f"Project ID: [cyan]{data['project_id']}[/cyan]")
    console.print(f"Status: [magenta]{data['status']}[/magenta]")
    if data.get("public_url"):
        console.print(f"Public URL: [cyan]{data['public_url']}[/cyan]")
    if data.get("error_message"):
        console.print(f"Error: [red]{data['error_message']}[/red]")


@app.command()
def delete(project_id: str):
    """Delete a project and its sandbox"""
    try:
        asyncio.run(delete_project_command(project_id))
    except CodeRunnerError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from None

    console.print("[bold green]✓ Project cleaned up successfully![/bold green]")
