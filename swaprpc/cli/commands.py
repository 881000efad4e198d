"""CLI commands for swaprpc.

Every network command signs in with the key at ``messenger.privateKeyPath``,
runs one RPC and disconnects; ``serve`` stays online until interrupted.
"""

from __future__ import annotations

import asyncio
import inspect
from pathlib import Path
from typing import Any, Awaitable, Callable

import typer
from loguru import logger
from rich.console import Console

from swaprpc import __logo__, __version__
from swaprpc.cli.command_groups.config_commands import register_config_commands
from swaprpc.cli.shared.logging_utils import configure_stderr, ensure_rotating_log_file
from swaprpc.config.loader import load_config
from swaprpc.config.schema import Config
from swaprpc.identity.evm import EvmSigner
from swaprpc.messaging.client import Messenger
from swaprpc.utils.exceptions import RpcCallError, SwapRpcError

app = typer.Typer(
    name="swaprpc",
    help=f"{__logo__} swaprpc - JSON-RPC messaging between trading peers",
    no_args_is_help=True,
)

console = Console()
register_config_commands(app=app, console=console)

ConfigOption = typer.Option(None, "--config", "-c", help="Config file (default ~/.swaprpc/config.json)")


def _setup(config_path: Path | None) -> Config:
    try:
        config = load_config(config_path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    try:
        configure_stderr(config.logging.level)
        if config.logging.file:
            ensure_rotating_log_file("swaprpc", level=config.logging.level)
    except ValueError as e:
        console.print(f"[red]Invalid logging config:[/red] {e}")
        raise typer.Exit(1)
    return config


def _signer(config: Config) -> EvmSigner:
    try:
        return EvmSigner.from_file(config.messenger.private_key_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Cannot load signing key:[/red] {e}")
        raise typer.Exit(1)


def _jsonable(value: Any) -> Any:
    if isinstance(value, RpcCallError):
        return {"error": value.error}
    if isinstance(value, BaseException):
        return {"error": {"message": str(value)}}
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


def _run(config_path: Path | None, build: Callable[[Messenger], Awaitable[Any]]) -> None:
    """Validate, connect, await one helper and print its JSON result."""
    config = _setup(config_path)
    signer = _signer(config)

    async def _main() -> Any:
        messenger = Messenger(signer.address, signer, config=config.messenger)
        # Helpers validate arguments here, before any network I/O.
        pending = build(messenger)
        try:
            await messenger.connect(reconnect=False)
            return await pending
        finally:
            if inspect.iscoroutine(pending):
                pending.close()
            await messenger.disconnect()

    try:
        result = asyncio.run(_main())
    except SwapRpcError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print_json(data=_jsonable(result))


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"{__logo__} swaprpc v{__version__}")


@app.command()
def address(config_path: Path = ConfigOption) -> None:
    """Print the address derived from the configured signing key."""
    config = _setup(config_path)
    console.print(_signer(config).address)


@app.command("find-intents")
def find_intents(
    maker_tokens: list[str] = typer.Option(..., "--maker-token", help="Maker token address (repeatable)"),
    taker_tokens: list[str] = typer.Option(..., "--taker-token", help="Taker token address (repeatable)"),
    role: str = typer.Option("maker", "--role", help="Intent role to search for"),
    config_path: Path = ConfigOption,
) -> None:
    """Query the indexer for trade intents."""
    _run(config_path, lambda m: m.find_intents(maker_tokens, taker_tokens, role=role))


@app.command("get-intents")
def get_intents(
    target: str = typer.Argument(..., help="Address whose intents to fetch"),
    config_path: Path = ConfigOption,
) -> None:
    """List the intents an address has published."""
    _run(config_path, lambda m: m.get_intents(target))


@app.command("get-order")
def get_order(
    maker: str = typer.Argument(..., help="Maker address"),
    maker_token: str = typer.Option(None, "--maker-token"),
    taker_token: str = typer.Option(None, "--taker-token"),
    maker_amount: str = typer.Option(None, "--maker-amount"),
    taker_amount: str = typer.Option(None, "--taker-amount"),
    config_path: Path = ConfigOption,
) -> None:
    """Request a signed order from a maker."""
    _run(
        config_path,
        lambda m: m.get_order(
            maker,
            maker_token=maker_token,
            taker_token=taker_token,
            maker_amount=maker_amount,
            taker_amount=taker_amount,
        ),
    )


@app.command("get-quote")
def get_quote(
    maker: str = typer.Argument(..., help="Maker address"),
    maker_token: str = typer.Option(None, "--maker-token"),
    taker_token: str = typer.Option(None, "--taker-token"),
    maker_amount: str = typer.Option(None, "--maker-amount"),
    taker_amount: str = typer.Option(None, "--taker-amount"),
    config_path: Path = ConfigOption,
) -> None:
    """Request an unsigned quote from a maker."""
    _run(
        config_path,
        lambda m: m.get_quote(
            maker,
            maker_token=maker_token,
            taker_token=taker_token,
            maker_amount=maker_amount,
            taker_amount=taker_amount,
        ),
    )


@app.command("get-max-quote")
def get_max_quote(
    maker: str = typer.Argument(..., help="Maker address"),
    maker_token: str = typer.Option(None, "--maker-token"),
    taker_token: str = typer.Option(None, "--taker-token"),
    config_path: Path = ConfigOption,
) -> None:
    """Ask a maker for the largest quote it will give."""
    _run(config_path, lambda m: m.get_max_quote(maker, maker_token=maker_token, taker_token=taker_token))


@app.command()
def serve(
    methods: list[str] = typer.Option(["ping"], "--method", "-m", help="Peer method to accept and log (repeatable)"),
    config_path: Path = ConfigOption,
) -> None:
    """Stay connected (with auto-reconnect) and log peer calls."""
    config = _setup(config_path)
    signer = _signer(config)

    def _log_call(message: dict[str, Any]) -> None:
        logger.info("Peer call {} (id={}): {}", message.get("method"), message.get("id"), message.get("params"))
        console.print(f"[cyan]{message.get('method')}[/cyan] {message.get('params')}")

    async def _main() -> None:
        messenger = Messenger(
            signer.address,
            signer,
            rpc_actions={name: _log_call for name in methods},
            config=config.messenger,
        )
        try:
            await messenger.connect()
            console.print(f"[green]✓[/green] Online as [cyan]{signer.address}[/cyan]; Ctrl+C to stop")
            await asyncio.Event().wait()
        finally:
            await messenger.disconnect()

    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        console.print("Goodbye!")
    except SwapRpcError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
