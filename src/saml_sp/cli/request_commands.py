"""AuthnRequest CLI commands.

This module provides CLI commands for the HTTP-Redirect request side:
- request build: Print a redirect URL for the configured IdP
- request decode: Inflate an encoded SAMLRequest back to XML
"""

import logging
from typing import Optional

import click
from lxml import etree

from saml_sp.saml import SAMLRequestBuilder, decode_redirect_payload
from saml_sp.saml.xml_tree import create_secure_parser
from saml_sp.utils.exceptions import EncodingError, create_error_info

logger = logging.getLogger(__name__)


@click.group(name="request")
def request_group() -> None:
    """AuthnRequest encoding commands."""
    pass


@request_group.command(name="build")
@click.option(
    "--relay-state",
    type=str,
    default=None,
    help="RelayState value to carry through the SSO flow",
)
@click.pass_context
def build(ctx: click.Context, relay_state: Optional[str]) -> None:
    """Build an HTTP-Redirect AuthnRequest URL from configuration.

    Examples:

        saml-sp request build

        saml-sp --config config/sp.json request build --relay-state /dashboard
    """
    saml_config = ctx.obj["config"].to_saml_config()
    builder = SAMLRequestBuilder(saml_config)

    try:
        url = builder.build_authn_request_url(relay_state=relay_state)
    except EncodingError as e:
        info = create_error_info(e)
        click.echo(click.style("✗", fg="red", bold=True) + f" {info.message}", err=True)
        click.echo(f"  Remediation: {info.remediation}", err=True)
        logger.error(f"AuthnRequest build failed: {e}")
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " AuthnRequest built")
    click.echo(f"  Request ID:  {builder.last_request_id}")
    click.echo(f"  Destination: {saml_config.idp_metadata.sso_url}")
    click.echo(url)


@request_group.command(name="decode")
@click.argument("value", type=str)
def decode(value: str) -> None:
    """Decode a SAMLRequest value or redirect URL to XML.

    Examples:

        saml-sp request decode "https://idp.example/sso?SAMLRequest=fZJd..."
    """
    try:
        xml = decode_redirect_payload(value)
    except EncodingError as e:
        click.echo(click.style("✗", fg="red", bold=True) + f" {e}", err=True)
        raise click.exceptions.Exit(1)

    try:
        root = etree.fromstring(xml.encode("utf-8"), parser=create_secure_parser())
        xml = etree.tostring(root, pretty_print=True, encoding="unicode")
    except etree.XMLSyntaxError:
        logger.warning("Decoded payload is not well-formed XML; printing as-is")

    click.echo(xml)
