"""SAML Response CLI commands.

This module provides CLI commands for the Response side:
- response validate: Verify and validate a Response, print the assertion
"""

import logging
from pathlib import Path
from typing import Optional

import click

from saml_sp.config import load_public_key_pem
from saml_sp.models.saml import SAMLAssertion
from saml_sp.saml import SAMLResponseValidator, decode_post_payload
from saml_sp.utils.exceptions import (
    USER_FACING_REJECTION_MESSAGE,
    ConfigurationError,
    ResponseValidationError,
    create_error_info,
)

logger = logging.getLogger(__name__)


@click.group(name="response")
def response_group() -> None:
    """SAML Response validation commands."""
    pass


def _display_assertion(assertion: SAMLAssertion) -> None:
    confirmation = assertion.subject.confirmation
    data = confirmation.confirmation_data

    click.echo(click.style("\n=== SAML Assertion ===", bold=True))
    click.echo(f"  ID:              {assertion.id}")
    click.echo(f"  Issuer:          {assertion.issuer}")
    click.echo(f"  Issue instant:   {assertion.issue_instant}")
    click.echo(f"  NameID:          {assertion.subject.name_id}")
    click.echo(f"  Confirmation:    {confirmation.method or 'N/A'}")
    click.echo(f"  Recipient:       {data.recipient or 'N/A'}")
    click.echo(f"  InResponseTo:    {data.in_response_to or 'N/A'}")
    if assertion.conditions is not None:
        click.echo(f"  Not before:      {assertion.conditions.not_before.isoformat()}")
        click.echo(f"  Not on/after:    {assertion.conditions.not_on_or_after.isoformat()}")
        click.echo(f"  Audiences:       {', '.join(assertion.conditions.audiences)}")
    statement = assertion.authn_statement
    click.echo(f"  Authn instant:   {statement.authn_instant or 'N/A'}")
    click.echo(f"  Session index:   {statement.session_index or 'N/A'}")
    click.echo(f"  Context class:   {statement.authn_context.authn_context_class_ref or 'N/A'}")

    if assertion.attributes:
        click.echo(click.style("\n=== Attributes ===", bold=True))
        for name, value in assertion.attributes.items():
            click.echo(f"  {name}: {value}")


@response_group.command(name="validate")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--key",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="IdP P-256 public key or certificate (PEM); defaults to config",
)
@click.option(
    "--audience",
    type=str,
    default=None,
    help="Expected audience; defaults to config",
)
@click.option(
    "--base64",
    "is_base64",
    is_flag=True,
    help="FILE holds the Base64 SAMLResponse form value, not raw XML",
)
@click.pass_context
def validate(
    ctx: click.Context,
    file: Path,
    key: Optional[Path],
    audience: Optional[str],
    is_base64: bool,
) -> None:
    """Verify and validate a SAML Response.

    Exits with status 1 when the Response is rejected and prints the
    operator diagnostic (failed stage and remediation).

    Examples:

        saml-sp response validate response.xml --key idp.pem --audience https://sp.example

        saml-sp response validate post-body.txt --base64
    """
    config = ctx.obj["config"]
    idp_metadata = config.to_saml_config().idp_metadata
    # --key, then the configured key file, then the metadata certificate
    key_path = key or config.identity_provider.signing_key_path
    expected_audience = audience or config.expected_audience

    if key_path is None and idp_metadata.signing_certificate is None:
        raise click.UsageError(
            "No IdP signing key. Provide --key or set identity_provider.signing_key_path "
            "or identity_provider.signing_certificate."
        )
    if not expected_audience:
        raise click.UsageError(
            "No expected audience. Provide --audience or set validation.expected_audience."
        )

    try:
        if key_path is not None:
            public_key_pem = load_public_key_pem(Path(key_path))
        else:
            public_key_pem = idp_metadata.signing_certificate
        raw = file.read_bytes()
        response_xml = decode_post_payload(raw) if is_base64 else raw

        assertion = SAMLResponseValidator().process_response(
            response_xml, public_key_pem, expected_audience
        )
    except (ResponseValidationError, ConfigurationError) as e:
        info = create_error_info(e)
        click.echo(
            click.style("✗", fg="red", bold=True) + f" {USER_FACING_REJECTION_MESSAGE}",
            err=True,
        )
        click.echo(f"  Error type:  {info.error_type}", err=True)
        click.echo(f"  Stage:       {info.stage}", err=True)
        click.echo(f"  Message:     {info.message}", err=True)
        click.echo(f"  Remediation: {info.remediation}", err=True)
        if info.technical_details and ctx.obj.get("verbose"):
            click.echo(f"  Details:     {info.technical_details}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " SAML Response accepted")
    _display_assertion(assertion)
