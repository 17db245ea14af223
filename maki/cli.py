"""Command-line interface for the maki agent."""

import asyncio
import json
from typing import Annotated

import typer

from .config.loader import ProfileConfig, list_profiles, load_config
from .config.factory import (
    create_agent_system,
    create_chat_session,
    create_model_client,
    create_thread_store,
)

app = typer.Typer(
    name="maki",
    help="Tool-using assistant with multi-agent delegation.",
    add_completion=False,
)

EXIT_COMMANDS = {"/exit", "exit", "quit"}


def _load_profile(profile: str | None) -> ProfileConfig:
    try:
        return load_config(profile)
    except KeyError as e:
        typer.echo(f"Error: {e.args[0] if e.args else e}", err=True)
        raise typer.Exit(1)


def _create_client(config: ProfileConfig):
    try:
        return create_model_client(config.model)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _echo_progress(agent: str, message: str) -> None:
    typer.echo(f"[{agent}] {message}", err=True)


@app.command()
def run(
    request: Annotated[str, typer.Argument(help="What you want done")],
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json"),
    ] = "text",
):
    """
    Run one request through the coordinator and its agents.

    Examples:

        # Let the coordinator decide how to split the work
        maki run "summarize every CSV file in the workspace"

        # Machine-readable result
        maki run "list the files in reports/" --format json
    """
    if output_format not in ("text", "json"):
        typer.echo("Error: Format must be one of: text, json", err=True)
        raise typer.Exit(1)

    config = _load_profile(profile)
    client = _create_client(config)
    asyncio.run(_run_async(request, config, client, output_format))


async def _run_async(request: str, config: ProfileConfig, client, output_format: str):
    """Async implementation of run."""
    async with client:
        system = create_agent_system(client, config)
        result = await system.execute(request, progress_callback=_echo_progress)

    if output_format == "json":
        output = {
            "output": result.output,
            "agents_used": result.agents_used,
            "task_type": result.task_type,
            "execution_mode": result.plan.mode.value if result.plan and result.plan.complex else None,
        }
        typer.echo(json.dumps(output, indent=2))
    else:
        typer.echo(result.output)

    if result.task_type == "error":
        raise typer.Exit(1)


@app.command()
def chat(
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
    thread: Annotated[
        str,
        typer.Option("--thread", "-t", help="Resume a stored thread by ID"),
    ] = None,
    new: Annotated[
        bool,
        typer.Option("--new", help="Start a new thread even if --thread is given"),
    ] = False,
    delegate: Annotated[
        bool,
        typer.Option(
            "--delegate/--direct",
            help="Route turns through the coordinator, or run the chat agent directly",
        ),
    ] = False,
):
    """
    Start an interactive chat session.

    Type /reset to clear the history, /exit to leave.
    """
    config = _load_profile(profile)
    client = _create_client(config)
    store = create_thread_store(config.storage)
    thread_id = None if new else thread

    if thread_id and store is None:
        typer.echo("Error: Thread storage is disabled in this profile", err=True)
        raise typer.Exit(1)
    if thread_id and store.get_thread(thread_id) is None:
        typer.echo(f"Error: Thread '{thread_id}' not found", err=True)
        raise typer.Exit(1)

    asyncio.run(_chat_async(config, client, store, thread_id, delegate))


async def _chat_async(config: ProfileConfig, client, store, thread_id, delegate: bool):
    """Async implementation of chat."""
    async with client:
        session = create_chat_session(
            client,
            config,
            thread_store=store,
            thread_id=thread_id,
            delegate=delegate,
        )
        mode = "delegated" if delegate else "direct"
        typer.echo(f"maki chat ({mode} mode). Type /reset to clear history, /exit to leave.")
        if session.thread_id:
            typer.echo(f"Thread: {session.thread_id}")
        typer.echo()

        while True:
            try:
                user_input = typer.prompt("you").strip()
            except typer.Abort:
                break

            if not user_input:
                continue
            if user_input.lower() in EXIT_COMMANDS:
                break
            if user_input == "/reset":
                session.reset()
                typer.echo("History cleared.\n")
                continue

            answer = await session.send(user_input, progress_callback=_echo_progress)
            typer.echo(f"\nmaki: {answer}\n")

    typer.echo("Goodbye!")


@app.command()
def threads(
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
):
    """List stored conversation threads."""
    config = _load_profile(profile)
    store = create_thread_store(config.storage)
    if store is None:
        typer.echo("Thread storage is disabled in this profile.")
        return

    rows = store.list_threads()
    if not rows:
        typer.echo("No threads yet.")
        return

    typer.echo(f"Found {len(rows)} threads:\n")
    for row in rows:
        typer.echo(f"  {row['id']}  {row['title']}")
        typer.echo(
            f"    Messages: {row['message_count']} | Updated: {row['updated_at']:%Y-%m-%d %H:%M}"
        )


@app.command()
def profiles():
    """List available configuration profiles."""
    typer.echo("Available profiles:\n")
    for name, profile in list_profiles().items():
        typer.echo(f"  {name}")
        typer.echo(f"    Backend: {profile.model.backend}")
        typer.echo(f"    Model: {profile.model.model or 'default'}")
        typer.echo(f"    Workspace: {profile.tools.workspace_dir}")
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
