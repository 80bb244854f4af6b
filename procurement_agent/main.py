"""
Procurement Agent CLI - Main entry point.

Provides CLI commands for running the agent in different modes.
"""

import asyncio
import logging
from typing import Optional

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from procurement_agent.agent.context import AgentContext, Backend
from procurement_agent.agent.router import AgentRouter
from procurement_agent.config import get_config
from procurement_agent.exceptions import ConfigurationError
from procurement_agent.llm.credentials import CredentialRotationManager
from procurement_agent.models import AgentReply


console = Console()

BACKEND_OPTION = click.option(
    "--backend",
    type=click.Choice([Backend.SUPABASE, Backend.MEMORY]),
    default=Backend.SUPABASE,
    show_default=True,
    help="Back-office to use; 'memory' runs on built-in sample data",
)
OFFLINE_OPTION = click.option(
    "--offline",
    is_flag=True,
    help="Skip the text providers and answer from templates only",
)


def build_router(backend: str, offline: bool) -> Optional[AgentRouter]:
    """Wire a router, printing configuration problems instead of raising."""
    try:
        context = AgentContext.from_config(get_config(), backend=backend, offline=offline)
        asyncio.run(context.verify())
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        return None
    return AgentRouter(context)


def print_reply(reply: AgentReply):
    if not reply.success:
        console.print(f"[yellow]⚠️ {reply.error}[/yellow]")
    console.print(Markdown(reply.display_text))
    if reply.success and reply.actions:
        actions = ", ".join(f"{a.type}:{a.parameter}" for a in reply.actions)
        console.print(f"[dim]Actions: {actions}[/dim]")


def print_credentials(manager: CredentialRotationManager):
    table = Table(title="🔑 Primary credentials")
    table.add_column("#", justify="right")
    table.add_column("Key")
    table.add_column("State")
    table.add_column("Requests", justify="right")
    table.add_column("Last error")
    for slot in manager.status():
        errors = slot["recent_errors"]
        table.add_row(
            str(slot["index"] + 1),
            slot["key"],
            slot["state"],
            str(slot["request_count"]),
            errors[-1] if errors else "",
        )
    console.print(table)


def run_credential_command(router: AgentRouter, command: str):
    """Handle the /keys and /switch N commands of the chat REPL."""
    manager = router.context.credentials
    if manager is None:
        console.print("[yellow]⚠️ No primary credentials (offline mode)[/yellow]\n")
        return

    parts = command.split()
    if parts[0] == "/switch":
        if len(parts) != 2 or not parts[1].isdigit():
            console.print("[yellow]Usage: /switch N[/yellow]\n")
            return
        try:
            manager.switch_to(int(parts[1]) - 1)
        except IndexError as e:
            console.print(f"[red]❌ {e}[/red]\n")
            return
        console.print(f"[green]✅ Switched to key {parts[1]}[/green]")
    print_credentials(manager)


@click.group()
def cli():
    """Procurement Agent - Conversational Purchasing Assistant"""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=get_config().log_level.upper(),
    )


@cli.command()
def test():
    """Test the agent configuration and connections."""
    import subprocess
    import sys
    from pathlib import Path

    script_path = Path(__file__).parent.parent / "scripts" / "test_connection.py"
    subprocess.run([sys.executable, str(script_path)])


@cli.command()
@BACKEND_OPTION
@OFFLINE_OPTION
@click.option("--session", "session_id", default=None, help="Session id to continue")
def chat(backend: str, offline: bool, session_id: Optional[str]):
    """Start an interactive chat session with the agent."""
    router = build_router(backend, offline)
    if router is None:
        return
    asyncio.run(_chat_session(router, session_id or "cli"))


async def _chat_session(router: AgentRouter, session_id: str):
    """Run an interactive chat session."""
    console.print(Panel.fit(
        "[bold green]Procurement Agent[/bold green] - Purchasing Assistant\n"
        "Type 'exit' to end the conversation, '/clear' to start over.\n"
        "'/keys' shows the credential pool, '/switch N' makes key N active.",
        title="🎯 Welcome!",
    ))

    while True:
        try:
            user_input = console.input("[bold blue]You:[/bold blue] ")
        except (KeyboardInterrupt, EOFError):
            break

        if user_input.lower() in ("exit", "quit", "q"):
            console.print("\n[yellow]Goodbye! 👋[/yellow]")
            break

        if user_input.strip() == "/clear":
            router.reset_session(session_id)
            console.print("[green]✅ History cleared[/green]\n")
            continue

        if user_input.strip().startswith(("/keys", "/switch")):
            run_credential_command(router, user_input.strip())
            continue

        if not user_input.strip():
            continue

        with console.status("[bold green]Thinking..."):
            reply = await router.handle_message(session_id, user_input)

        console.print()
        console.print("[bold green]Agent:[/bold green]")
        print_reply(reply)
        console.print()


@cli.command()
@click.option("--message", "-m", required=True, help="Message to send to the agent")
@BACKEND_OPTION
@OFFLINE_OPTION
def send(message: str, backend: str, offline: bool):
    """Send a single message to the agent and get a response."""
    router = build_router(backend, offline)
    if router is None:
        return

    async def _send() -> AgentReply:
        return await router.handle_message(None, message)

    with console.status("[bold green]Processing..."):
        reply = asyncio.run(_send())
    print_reply(reply)


@cli.command()
def info():
    """Show configuration information."""
    config = get_config()

    console.print(Panel.fit(
        f"[bold]Primary model:[/bold] {config.chat_model} "
        f"({len(config.primary_api_keys)} key(s))\n"
        f"[bold]Secondary model:[/bold] "
        f"{config.secondary_model if config.secondary_api_key else 'Not configured'}\n"
        f"[bold]Supabase:[/bold] {config.supabase_url[:30] or 'Not configured'}...\n"
        f"[bold]Telegram:[/bold] {'Configured' if config.telegram_bot_token else 'Not configured'}\n"
        f"[bold]Environment:[/bold] {config.environment}",
        title="🔧 Configuration",
    ))

    missing = config.validate()
    if missing:
        console.print(f"[yellow]⚠️ Missing: {', '.join(missing)}[/yellow]")
    else:
        console.print("[green]✅ Configuration complete![/green]")


@cli.command()
def keys():
    """Show the configured primary credential pool."""
    config = get_config()
    try:
        manager = CredentialRotationManager(config.primary_api_keys)
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        return
    print_credentials(manager)


@cli.command()
def telegram():
    """Start the Telegram bot (polling mode)."""
    from procurement_agent.integrations.telegram_bot import run_polling

    config = get_config()
    if not config.telegram_bot_token:
        console.print("[red]❌ TELEGRAM_BOT_TOKEN not configured![/red]")
        return

    console.print(Panel.fit(
        "Starting Telegram bot...\n"
        "Press Ctrl+C to stop.",
        title="🤖 Procurement Agent Telegram Bot",
    ))

    run_polling()


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
