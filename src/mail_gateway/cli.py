# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for the mail gateway.

Usage:
    mail-gateway serve --port 8080
    mail-gateway config
    mail-gateway status --url http://localhost:8080
    mail-gateway send --to a@b.com --subject Hi --body "test"
"""

from __future__ import annotations

import click
import requests
from rich.console import Console
from rich.table import Table

from .client import DEFAULT_URL, MailGatewayClient, MailGatewayError
from .config import load_settings
from .logger import configure_logging

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print a formatted error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a formatted success message with checkmark."""
    console.print(f"[green]✓[/green] {message}")


def _key_value_table(title: str, data: dict) -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(str(key), "-" if value is None else str(value))
    return table


@click.group()
@click.version_option(package_name="mail-gateway")
def main() -> None:
    """mail-gateway CLI - run and query the email-send gateway."""


@main.command("serve")
@click.option("--host", "-h", default=None, help="Host to bind to (default: HOST or 0.0.0.0).")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (default: PORT or 8080).")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the gateway with uvicorn."""
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    host = host or settings.http_host
    port = port or settings.http_port
    mode = "smtp" if settings.smtp.is_valid() else "mock"

    console.print("[bold]Starting mail gateway[/bold]")
    console.print(f"  Listen:  {host}:{port}")
    console.print(f"  Mode:    {mode}")
    console.print(f"  Health:  http://{host}:{port}/health")
    console.print()

    uvicorn.run(
        "mail_gateway.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@main.command("config")
def show_config() -> None:
    """Show the resolved settings and the sender mode."""
    settings = load_settings()
    service = {
        "host": settings.http_host,
        "port": settings.http_port,
        "log_level": settings.log_level,
        "rate_limit_seconds": settings.rate_limit_seconds,
        "rate_limit_sweep_seconds": settings.rate_limit_sweep_seconds,
        "trust_forwarded_for": settings.trust_forwarded_for,
        "smtp_timeout": settings.smtp_timeout,
    }
    console.print(_key_value_table("Service", service))
    console.print(_key_value_table("SMTP", settings.smtp.masked()))
    if settings.smtp.is_valid():
        print_success("SMTP relay configured: emails will be sent")
    else:
        console.print("[yellow]SMTP configuration incomplete: running in mock mode[/yellow]")


@main.command("status")
@click.option("--url", "-u", default=DEFAULT_URL, show_default=True, help="Gateway base URL.")
def status(url: str) -> None:
    """Show health and stats of a running gateway."""
    client = MailGatewayClient(url)
    result = client.backend_status()
    if result["health"] is None and result["stats"] is None:
        print_error(f"Gateway not reachable at {url}")
        raise SystemExit(1)

    health = dict(result["health"] or {})
    services = health.pop("services", None) or {}
    console.print(_key_value_table("Health", health))
    if services:
        console.print(_key_value_table("Services", services))
    if result["stats"] is not None:
        console.print(_key_value_table("Stats", result["stats"]))


@main.command("send")
@click.option("--to", "to", required=True, help="Recipient address.")
@click.option("--subject", "-s", required=True, help="Subject line.")
@click.option("--body", "-b", required=True, help="Plain-text body.")
@click.option("--url", "-u", default=DEFAULT_URL, show_default=True, help="Gateway base URL.")
def send(to: str, subject: str, body: str, url: str) -> None:
    """Send one email through a running gateway."""
    client = MailGatewayClient(url)
    try:
        result = client.send_email(to, subject, body)
    except MailGatewayError as exc:
        print_error(f"{exc.error} ({exc.status_code}): {exc.message}")
        raise SystemExit(1)
    except requests.RequestException as exc:
        print_error(f"Gateway not reachable at {url}: {exc}")
        raise SystemExit(1)
    print_success(result.get("message", "sent"))
    if result.get("id"):
        console.print(f"  ID: {result['id']}")


if __name__ == "__main__":
    main()
