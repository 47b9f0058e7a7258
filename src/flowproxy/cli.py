# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""CLI entry point for flowproxy (fproxy command).

Offline tools to check service configuration before handing it to the
proxy: parse credential lists and show the ACL declaration order of a
set of services.

Commands:
    users: Parse a credential list and show the accepted users
    services: Build services from a JSON file and show them in ACL order
    version: Show version info
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .credentials import parse_credentials
from .errors import ConfigurationError
from .params import service_from_mapping
from .proxy_config import ProxyConfig, config_from_env
from .service import ServiceCollection, ServiceDescriptor

console = Console()


def load_service_params(path: Path) -> list[dict[str, Any]]:
    """Read a JSON file holding a list of raw service parameter mappings.

    Raises:
        ConfigurationError: If the file is not a JSON list of objects.
    """
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ConfigurationError(f"{path} must contain a list of service objects")
    return data


def build_collection(
    raw_services: list[dict[str, Any]], config: ProxyConfig | None = None
) -> ServiceCollection:
    """Build every service and return them sorted into declaration order."""
    services = ServiceCollection()
    for raw in raw_services:
        services.add(service_from_mapping(raw, config=config))
    return services.sorted_by_acl_name()


def _describe_destinations(service: ServiceDescriptor) -> str:
    if not service.destinations:
        return "[dim]-[/dim]"
    parts = []
    for dest in service.destinations:
        paths = ",".join(dest.url_path_segments) or "*"
        entry = escape(f"{dest.internal_port or '?'} {paths}")
        if dest.has_source_port:
            entry += f" (src {dest.source_port})"
        parts.append(entry)
    return "\n".join(parts)


@click.group()
@click.version_option(__version__, package_name="flowproxy")
@click.option("--log-level", default=None, help="Log level (default: FLOWPROXY_LOG_LEVEL or INFO).")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """flowproxy - Service configuration model for reverse proxies."""
    config = config_from_env()
    if log_level:
        config.log_level = log_level.upper()
    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = config


@main.command("users")
@click.argument("raw")
@click.option("--context", "-c", default="cli", help="Name reported with parse warnings.")
@click.option("--encrypted", is_flag=True, help="Passwords are already hashed.")
@click.option("--skip-empty-password", is_flag=True, help="Reject users without a password.")
def users_cmd(raw: str, context: str, encrypted: bool, skip_empty_password: bool) -> None:
    """Parse a credential list (user:pass,user2:pass2) and show the result."""
    credentials = parse_credentials(
        context, raw, encrypted=encrypted, skip_empty_password=skip_empty_password
    )
    if not credentials:
        console.print("[dim]No users[/dim]")
        return

    table = Table(title=f"Users for {context}")
    table.add_column("Username", style="cyan")
    table.add_column("Password")
    table.add_column("Encrypted")

    for cred in credentials:
        password = "[green]set[/green]" if cred.has_password else "[yellow]none[/yellow]"
        table.add_row(escape(cred.username), password, "yes" if cred.encrypted else "no")

    console.print(table)


@main.command("services")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print template variables as JSON.")
@click.pass_obj
def services_cmd(config: ProxyConfig, path: Path, as_json: bool) -> None:
    """Build services from a JSON file and show them in ACL declaration order."""
    try:
        services = build_collection(load_service_params(path), config=config)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1) from e

    if as_json:
        click.echo(json.dumps([s.to_template_vars() for s in services], indent=2))
        return

    table = Table(title="Services (ACL declaration order)")
    table.add_column("#", justify="right")
    table.add_column("ACL", style="cyan")
    table.add_column("Service")
    table.add_column("Mode")
    table.add_column("Destinations")
    table.add_column("Users", justify="right")

    for position, service in enumerate(services, start=1):
        table.add_row(
            str(position),
            escape(service.acl_name),
            escape(service.service_name),
            escape(service.req_mode),
            _describe_destinations(service),
            str(len(service.credentials)),
        )

    console.print(table)


@main.command("version")
def version_cmd() -> None:
    """Show version info."""
    console.print(f"flowproxy {__version__}")


if __name__ == "__main__":
    main()
