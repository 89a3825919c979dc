"""
contract-core — developer CLI for the contract runtime core.

Commands:
  - encode / decode      Codec, top-level or nested form
  - key                  Composite storage key for a prefix + key arguments
  - abi                  Public surface of a contract as JSON
  - deploy / call        Run the constructor or a function against a state file
  - deliver / pending    Feed async call outcomes back to their callbacks

Global options:
  --log-level TEXT       DEBUG, INFO, WARNING, ... (env CONTRACT_CORE_LOG_LEVEL)
  --json-logs            Structured JSON log lines on stderr

Examples:
  contract-core encode uint64 300
  contract-core key example_map -a uint32:1 -a uint32:2
  contract-core deploy -s state.json 5
  contract-core call -s state.json add 3
"""

from __future__ import annotations

from typing import Optional

import typer

from .. import logging as clog
from ..version import __version__
from . import codec, run

app = typer.Typer(
    name="contract-core",
    help="Contract runtime core: codec, storage keys and local contract runs",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level for the contract_core logger",
        envvar="CONTRACT_CORE_LOG_LEVEL",
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print the version and exit",
    ),
) -> None:
    """Contract runtime core developer tools."""
    if log_level is not None or json_logs:
        clog.configure(json=json_logs or None, level=log_level)


app.command("encode")(codec.encode)
app.command("decode")(codec.decode)
app.command("key")(codec.key)
app.command("abi")(run.abi)
app.command("deploy")(run.deploy)
app.command("call")(run.call)
app.command("deliver")(run.deliver)
app.command("pending")(run.pending)


def main() -> None:
    """Entry point for the contract-core CLI."""
    app()


if __name__ == "__main__":
    main()
