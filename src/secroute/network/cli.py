#
# Copyright (c) 2025 Contributors to the Eclipse Foundation.
#
# See the NOTICE file(s) distributed with this work for additional
# information regarding copyright ownership.
#
# This program and the accompanying materials are made available under the
# terms of the Apache License, Version 2.0 which is available at
# https://www.apache.org/licenses/LICENSE-2.0
#
# SPDX-License-Identifier: Apache-2.0
#
"""Command line client of secondary table daemon."""

# Standard imports
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

# Third party imports
import click

# Local imports
from secroute.common.common import RESPONSE_FAILURE, RESPONSE_OK
from secroute.communication.common import TableControllerError, format_failure
from secroute.communication.socket_daemon import SOCKET_RETURN_TYPE, query_socket
from secroute.config.common import SOCKET_PATH
from secroute.network.common import UNSPECIFIED_GATEWAY
from secroute.network.mgmtd_secondary_table import TableAction

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
ACTIONS = ("add", "remove")


def send(ctx: click.Context, action: TableAction, **params: Any) -> SOCKET_RETURN_TYPE:
    try:
        return query_socket({"action": action.value, **params}, ctx.obj["socket_path"])
    except TableControllerError as exc:
        click.echo(f"{RESPONSE_FAILURE} {format_failure(exc)}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"{RESPONSE_FAILURE} Cannot reach secondary table daemon: {exc}", err=True)
        sys.exit(1)


def send_and_print_ok(ctx: click.Context, action: TableAction, **params: Any) -> None:
    send(ctx, action, **params)
    click.echo(RESPONSE_OK)


def pick(action: str, add: TableAction, remove: TableAction) -> TableAction:
    return add if action == "add" else remove


def action_argument() -> Callable[..., Any]:
    return click.argument("action", type=click.Choice(ACTIONS))


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--socket", "socket_path", type=click.Path(path_type=Path), default=SOCKET_PATH,
              show_default=True, help="Unix socket of secondary table daemon")
@click.pass_context
def cli(ctx: click.Context, socket_path: Path) -> None:
    """Manage per interface secondary routing tables.

    Each interface gets its own routing table (and fwmark of the same number)
    for as long as some route or rule refers to it.
    """
    ctx.ensure_object(dict)
    ctx.obj["socket_path"] = socket_path


@cli.command()
@action_argument()
@click.argument("interface")
@click.argument("destination")
@click.argument("prefix", type=click.IntRange(0, 128))
@click.argument("gateway", default=UNSPECIFIED_GATEWAY)
@click.pass_context
def route(ctx: click.Context, action: str, interface: str, destination: str, prefix: int, gateway: str) -> None:
    """Add or remove route in interface's table.

    Gateway '::' (the default) means route via device only.
    """
    send_and_print_ok(ctx, pick(action, TableAction.ADD_ROUTE, TableAction.REMOVE_ROUTE),
                      interface=interface, destination=destination, prefix=prefix, gateway=gateway)


@cli.command()
@action_argument()
@click.argument("interface")
@click.pass_context
def fwmark(ctx: click.Context, action: str, interface: str) -> None:
    """Add or remove fwmark rule (and its NAT rule) of interface."""
    send_and_print_ok(ctx, pick(action, TableAction.ADD_FWMARK_RULE, TableAction.REMOVE_FWMARK_RULE),
                      interface=interface)


@cli.command()
@action_argument()
@click.argument("interface")
@click.argument("uid_start", type=click.IntRange(min=0))
@click.argument("uid_end", type=click.IntRange(min=0))
@click.pass_context
def uid(ctx: click.Context, action: str, interface: str, uid_start: int, uid_end: int) -> None:
    """Mark packets of uid range with interface's mark."""
    send_and_print_ok(ctx, pick(action, TableAction.ADD_UID_RULE, TableAction.REMOVE_UID_RULE),
                      interface=interface, uid_start=uid_start, uid_end=uid_end)


@cli.command("from-rule")
@action_argument()
@click.argument("interface")
@click.argument("address")
@click.pass_context
def from_rule(ctx: click.Context, action: str, interface: str, address: str) -> None:
    """Route packets from address through interface's table."""
    send_and_print_ok(ctx, pick(action, TableAction.ADD_FROM_RULE, TableAction.REMOVE_FROM_RULE),
                      interface=interface, address=address)


@cli.command("local-route")
@action_argument()
@click.argument("interface")
@click.argument("address")
@click.pass_context
def local_route(ctx: click.Context, action: str, interface: str, address: str) -> None:
    """Add or remove route to interface's own address in its table."""
    send_and_print_ok(ctx, pick(action, TableAction.ADD_LOCAL_ROUTE, TableAction.REMOVE_LOCAL_ROUTE),
                      interface=interface, address=address)


def _print_rows(title: str, rows: Any, columns: Mapping[str, str]) -> None:
    click.echo(title)
    if not rows:
        click.echo("  (none)")
        return
    for row in rows:
        click.echo("  " + " ".join(f"{label}={row[key]}" for key, label in columns.items()))


@cli.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Show tables in use and marked uid ranges."""
    response: Dict[str, Any] = send(ctx, TableAction.SHOW)
    _print_rows("Tables:", response.get("tables"),
                {"interface": "interface", "table": "table", "rule_count": "rules"})
    _print_rows("Uid marks:", response.get("uid_marks"),
                {"uid_start": "from", "uid_end": "to", "mark": "mark"})


if __name__ == "__main__":
    cli()
