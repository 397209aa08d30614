import logging
import sys
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from logguard.core.engine import Desensitizer
from logguard.core.errors import ConfigError
from logguard.core.log_format import install
from logguard.core.models import DesensitizeConfig, SensitivityType
from logguard.core.patterns import configure_shared_cache
from logguard.utils.config import load_config_strict, load_config_with_source

# Load environment variables (LOGGUARD_CONFIG) from .env file if it exists
load_dotenv()

app = typer.Typer(help="LogGuard CLI")
console = Console()

# Sample log lines covering every sensitivity type
DEMO_MESSAGES = [
    "User email: zhangsan@example.com",
    "Multiple emails: zhangsan@example.com, admin@example.com, test@test.org",
    "Multiple phones: 13912345678, 13812345678, 15987654321",
    "ID cards: 11010519491231002X, 110101199001011234",
    "Bank cards: 6222021234567890, 6222021234567890123",
    "Login credentials: username=admin, password=admin123",
    "API request: apiKey=abc123, token=xyz789",
    "Delivery address: 北京市朝阳区建国路88号",
    '{"username":"admin","password":"p@ssw0rd","accessToken":"eyJhbGciOi"}',
]


def _load_with_source(config_path: str | None) -> tuple[DesensitizeConfig, Path | None]:
    config, source = load_config_with_source(config_path)
    configure_shared_cache(config)
    return config, source


def _load(config_path: str | None) -> DesensitizeConfig:
    config, _ = _load_with_source(config_path)
    return config


def _parse_type(rule_type: str) -> SensitivityType:
    """Parse a --type value, exiting with a readable error on unknown types."""
    try:
        return SensitivityType.parse(rule_type)
    except ValueError:
        valid = ", ".join(t.value for t in SensitivityType)
        console.print(
            f"[bold red]Error:[/bold red] Unknown type '{rule_type}'. Valid types: {valid}"
        )
        raise typer.Exit(1)


def _print_config_info(config: DesensitizeConfig, source: Path | None) -> None:
    """Print where the rules came from and how many are active."""
    origin = source if source is not None else "built-in defaults"
    console.print(
        f"[dim]Config: {origin} "
        f"({len(config.enabled_rules())}/{len(config.rules)} rules enabled, "
        f"masking {'on' if config.enabled else 'off'})[/dim]"
    )


@app.command()
def mask(
    text: str,
    config: str = typer.Option(
        None, "--config", help="Desensitize config file (or set LOGGUARD_CONFIG env var)"
    ),
    rule_type: str = typer.Option(
        None,
        "--type",
        help="Apply only the rule of this type (EMAIL, PHONE, ID_CARD, BANK_CARD, ADDRESS, PASSWORD, KEY_VALUE). All enabled rules if not specified.",
    ),
):
    """Mask sensitive values in TEXT and print the result."""
    desensitizer = Desensitizer(_load(config))

    if rule_type is None:
        typer.echo(desensitizer.apply(text))
        return

    sensitivity_type = _parse_type(rule_type)
    rule = desensitizer.rule_for(sensitivity_type)
    if rule is None:
        console.print(
            f"[bold red]Error:[/bold red] No enabled rule of type {sensitivity_type.value} in the config"
        )
        raise typer.Exit(1)
    typer.echo(desensitizer.desensitize(text, rule))


@app.command()
def check(
    text: str,
    config: str = typer.Option(
        None, "--config", help="Desensitize config file (or set LOGGUARD_CONFIG env var)"
    ),
):
    """Show which enabled rules detect sensitive data in TEXT."""
    desensitizer = Desensitizer(_load(config))

    table = Table(title="Rule matches")
    table.add_column("Type", style="bold")
    table.add_column("Matches")
    table.add_column("Masked")

    for rule in desensitizer.rules:
        matched = desensitizer.matches(text, rule)
        masked = desensitizer.desensitize(text, rule) if matched else ""
        table.add_row(rule.type.value, "[green]yes[/green]" if matched else "no", masked)

    console.print(table)


@app.command()
def rules(
    config: str = typer.Option(
        None, "--config", help="Desensitize config file (or set LOGGUARD_CONFIG env var)"
    ),
):
    """List the configured masking rules."""
    loaded, source = _load_with_source(config)
    _print_config_info(loaded, source)

    table = Table(title="Desensitize rules")
    table.add_column("Type", style="bold")
    table.add_column("Enabled")
    table.add_column("Keep")
    table.add_column("Mask")
    table.add_column("Pattern / keys", overflow="fold")

    for rule in loaded.rules:
        if rule.key_names:
            detail = ", ".join(rule.key_names)
        else:
            detail = rule.pattern or "(built-in)"
        table.add_row(
            rule.type.value,
            "yes" if rule.enabled else "no",
            f"{rule.keep_prefix}/{rule.keep_suffix}",
            rule.mask_char,
            detail,
        )

    console.print(table)


@app.command()
def validate(path: str):
    """Validate a desensitize config file."""
    try:
        loaded = load_config_strict(path)
    except ConfigError as e:
        console.print(f"[bold red]Invalid config:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(
        f"[bold green]OK[/bold green] {path}: {len(loaded.rules)} rules "
        f"({len(loaded.enabled_rules())} enabled)"
    )


@app.command()
def demo(
    config: str = typer.Option(
        None, "--config", help="Desensitize config file (or set LOGGUARD_CONFIG env var)"
    ),
):
    """Log sample messages through a desensitizing log handler."""
    desensitizer = Desensitizer(_load(config))

    demo_logger = logging.getLogger("logguard.demo")
    demo_logger.setLevel(logging.INFO)
    demo_logger.propagate = False
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(levelname)-5s %(name)s - %(message)s"))
    demo_logger.addHandler(handler)

    try:
        install(demo_logger, desensitizer)
        for message in DEMO_MESSAGES:
            demo_logger.info(message)
    finally:
        demo_logger.removeHandler(handler)

    if desensitizer.error_count:
        console.print(f"[bold red]{desensitizer.error_count} masking failures[/bold red]")


# Add a callback to ensure we always have subcommands
@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    if ctx.invoked_subcommand is None:
        console.print("🛡️  [bold blue]Welcome to LogGuard![/bold blue]")
        console.print("\n[dim]Use --help to see available commands.[/dim]")
        console.print("[dim]Available commands: mask, check, rules, validate, demo[/dim]")
        console.print(
            "[dim]Set LOGGUARD_CONFIG to use your own desensitize rules[/dim]"
        )


if __name__ == "__main__":
    app()
