"""Main CLI entry point for the SAML SP core.

This module provides the main Click command group for the saml-sp CLI.
"""

from pathlib import Path
from typing import Optional

import click

from saml_sp import __version__
from saml_sp.cli.request_commands import request_group
from saml_sp.cli.response_commands import response_group
from saml_sp.config import load_config
from saml_sp.logging_audit import configure_logging, resolve_logging_options
from saml_sp.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="saml-sp")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact",
    is_flag=True,
    help="Redact NameIDs and encoded SAML payloads from logs",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact: bool,
) -> None:
    """SAML SP - SAML 2.0 Service Provider request and response tooling.

    Builds HTTP-Redirect AuthnRequests and validates signed IdP Responses.

    Common usage:

        # Build a redirect URL for the configured IdP
        saml-sp request build

        # Inspect an encoded SAMLRequest
        saml-sp request decode "https://idp.example/sso?SAMLRequest=..."

        # Validate a Response against the IdP signing key
        saml-sp response validate response.xml --key idp.pem --audience https://sp.example

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose

    configure_logging(
        **resolve_logging_options(
            config_obj.logging, verbose=verbose, log_file=log_file, redact=redact
        )
    )


cli.add_command(request_group)
cli.add_command(response_group)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        saml-sp config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)

    sp = config_obj.service_provider
    idp = config_obj.identity_provider

    click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
    click.echo(f"\nConfiguration file: {config_file}")
    click.echo("\nService Provider:")
    click.echo(f"  ACS URL:     {sp.assertion_consumer_service_url}")
    click.echo(f"  Entity ID:   {sp.entity_id or 'Not configured (IdP entity ID used)'}")
    click.echo(f"  Binding:     {sp.binding.value}")

    click.echo("\nIdentity Provider:")
    click.echo(f"  Entity ID:   {idp.entity_id}")
    click.echo(f"  SSO URL:     {idp.sso_url}")
    click.echo(f"  Signing key: {idp.signing_key_path or 'Not configured'}")

    click.echo("\nValidation:")
    click.echo(f"  Audience:    {config_obj.expected_audience or 'Not configured'}")

    click.echo("\nLogging:")
    click.echo(f"  Level:       {config_obj.logging.level}")
    click.echo(f"  Log file:    {config_obj.logging.log_file}")
    click.echo(f"  Redact:      {config_obj.logging.redact}")


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"saml-sp version {__version__}")


if __name__ == "__main__":
    cli()
