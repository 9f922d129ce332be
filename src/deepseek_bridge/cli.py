"""Command-line interface for deepseek-bridge."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys

import click
from rich.console import Console
from rich.table import Table

from deepseek_bridge.cancellation import CancellationToken
from deepseek_bridge.config import BridgeConfig, load_config
from deepseek_bridge.errors import BridgeError
from deepseek_bridge.provider import MODELS, DeepSeekChatProvider
from deepseek_bridge.types import ChatMessage, TextPart, ToolCallPart

console = Console()


@click.group()
@click.option("--config", "-c", "config_path", default=None,
              help="Path to deepseek_bridge.yaml (auto-detected from CWD or ~/.config/deepseek-bridge/)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Stream chat completions from the DeepSeek API."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)
    ctx.obj = load_config(config_path)


@main.command()
@click.option("--all", "show_all", is_flag=True,
              help="List the catalog even when no API key is configured")
@click.pass_obj
def models(config: BridgeConfig, show_all: bool) -> None:
    """List available models."""
    provider = DeepSeekChatProvider(config)
    available = list(MODELS) if show_all else provider.list_models(silent=False)
    if not available:
        console.print("[yellow]No models available: API key not configured.[/yellow]")
        return

    table = Table(title="Models")
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Name")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Tools")
    table.add_column("Reasoning")
    for m in available:
        table.add_row(
            m.id,
            m.name,
            f"{m.max_input_tokens:,}",
            f"{m.max_output_tokens:,}",
            "yes" if m.tool_calling else "no",
            "yes" if m.reasoning else "no",
        )
    console.print(table)


@main.command()
@click.argument("prompt")
@click.option("--model", "-m", "model_id", default="deepseek-chat", show_default=True,
              type=click.Choice([m.id for m in MODELS]), help="Model to use")
@click.pass_obj
def chat(config: BridgeConfig, prompt: str, model_id: str) -> None:
    """Send PROMPT and stream the reply.  Ctrl-C stops the stream."""
    provider = DeepSeekChatProvider(config)
    try:
        asyncio.run(_run_chat(provider, model_id, prompt))
    except BridgeError as e:
        console.print(f"\n[red]{e}[/red]")
        sys.exit(1)


@main.command()
@click.argument("text")
def tokens(text: str) -> None:
    """Estimate the token count of TEXT."""
    console.print(DeepSeekChatProvider().count_tokens(text))


async def _run_chat(provider: DeepSeekChatProvider, model_id: str, prompt: str) -> None:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # Windows: Ctrl-C raises KeyboardInterrupt instead

    def report(part: object) -> None:
        if isinstance(part, TextPart):
            console.print(part.value, end="", markup=False, highlight=False)
        elif isinstance(part, ToolCallPart):
            console.print(
                f"\n[bold cyan]tool call[/bold cyan] {part.name}"
                f" [dim]{part.call_id}[/dim] {json.dumps(part.input)}"
            )

    def show_reasoning(text: str) -> None:
        console.print(text, end="", style="dim", markup=False, highlight=False)

    try:
        await provider.provide_response(
            model_id,
            [ChatMessage.user(prompt)],
            report,
            cancellation=token,
            on_reasoning=show_reasoning,
        )
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
    console.print()
    if token.is_cancellation_requested:
        console.print("[dim]Cancelled.[/dim]")
