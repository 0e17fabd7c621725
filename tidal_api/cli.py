"""
Command-line interface for tidal-api.

This module implements a small CLI using Click on top of the library, for
trying out credentials and endpoints without writing code.

Commands:
    tidal-api authorize-url [--scope S ...]     Print a PKCE authorization URL + verifier + state
    tidal-api exchange CODE --verifier V         Exchange an authorization code for tokens
    tidal-api credentials                        Request a client-credentials token
    tidal-api refresh --refresh-token T          Refresh an access token
    tidal-api get RESOURCE [ID] [options]        GET a resource, item or relationship as JSON
    tidal-api inspect FILE                       Parse/classify a captured raw HTTP response

Configuration:
    Client credentials come from tidal.yaml (or --config) and the
    TIDAL_CLIENT_ID / TIDAL_CLIENT_SECRET / TIDAL_REDIRECT_URI environment
    variables. Tokens are printed, never stored.
"""

import functools
import json
import sys
from pathlib import Path
from types import SimpleNamespace

import click

from tidal_api import __version__
from tidal_api.api.client import TidalApi
from tidal_api.api.endpoints import RESOURCES, resource_uri
from tidal_api.auth.pkce import PKCEMaterial
from tidal_api.core.config import Config, load_config
from tidal_api.core.exceptions import ApiError, TidalApiError
from tidal_api.core.logger import configure_from_config, get_logger, setup_logging
from tidal_api.transport.request import Request


logger = get_logger(__name__)

RESOURCE_SPECS = {spec.name: spec for spec in RESOURCES}


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Library errors are shown in red with exit code 1; Ctrl-C exits with 130.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except TidalApiError as e:
            logger.debug(f"Command failed: {e!r} {e.details}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _load_config(ctx: click.Context) -> Config:
    """Load configuration once per invocation and apply its logging settings."""
    if 'config' not in ctx.obj:
        config = load_config(ctx.obj.get('config_path'))
        configure_from_config(config, verbose=ctx.obj.get('verbose', False))
        ctx.obj['config'] = config
    return ctx.obj['config']


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=_to_jsonable))


def _to_jsonable(value):
    if isinstance(value, SimpleNamespace):
        return vars(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _token_summary(session) -> dict:
    return {
        'access_token': session.access_token,
        'refresh_token': session.refresh_token,
        'expires_at': session.token_expiration,
        'scope': session.scope,
    }


@click.group()
@click.version_option(__version__, prog_name='tidal-api')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Path to config file (default: ./tidal.yaml)')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config_path, verbose):
    """tidal-api - TIDAL developer API client"""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['verbose'] = verbose
    setup_logging(level='DEBUG' if verbose else 'WARNING')


@cli.command('authorize-url')
@click.option('--scope', '-s', multiple=True, help='Scope to request (repeatable)')
@click.pass_context
@handle_error
def authorize_url(ctx, scope):
    """Print an authorization URL with fresh PKCE verifier and state"""
    config = _load_config(ctx)
    session = TidalApi.from_config(config).session

    material = PKCEMaterial.generate()
    url = session.get_authorize_url(material.authorize_options(scope))

    click.echo(url)
    click.echo(f"code_verifier: {material.code_verifier}")
    click.echo(f"state: {material.state}")


@cli.command()
@click.argument('code')
@click.option('--verifier', default='', help='Code verifier printed by authorize-url')
@click.pass_context
@handle_error
def exchange(ctx, code, verifier):
    """Exchange an authorization CODE for access and refresh tokens"""
    session = TidalApi.from_config(_load_config(ctx)).session

    if not session.request_access_token(code, verifier):
        raise TidalApiError("The token endpoint did not return access and refresh tokens")

    _echo_json(_token_summary(session))


@cli.command()
@click.pass_context
@handle_error
def credentials(ctx):
    """Request an access token with the client credentials flow"""
    session = TidalApi.from_config(_load_config(ctx)).session

    if not session.request_credentials_token():
        raise TidalApiError("The token endpoint did not return an access token")

    _echo_json(_token_summary(session))


@cli.command()
@click.option('--refresh-token', required=True, help='Refresh token to exchange')
@click.pass_context
@handle_error
def refresh(ctx, refresh_token):
    """Refresh an access token"""
    session = TidalApi.from_config(_load_config(ctx)).session

    if not session.refresh_access_token(refresh_token):
        raise TidalApiError("The token endpoint did not return an access token")

    _echo_json(_token_summary(session))


@cli.command()
@click.argument('resource', type=click.Choice(sorted(RESOURCE_SPECS)))
@click.argument('resource_id', required=False)
@click.option('--relationship', '-r', help='Relationship name, e.g. similarAlbums')
@click.option('--country-code', '-c', help='ISO 3166-1 alpha-2 country code')
@click.option('--locale', '-l', help='Locale, e.g. en-US')
@click.option('--include', '-i', multiple=True, help='Related resources to include (repeatable)')
@click.option('--filter-id', multiple=True, help='filter[id] values for collection requests')
@click.option('--access-token', envvar='TIDAL_ACCESS_TOKEN',
              help='Bearer token to use instead of a client-credentials token')
@click.pass_context
@handle_error
def get(ctx, resource, resource_id, relationship, country_code, locale, include, filter_id, access_token):
    """GET a RESOURCE collection, one item (RESOURCE_ID, or 'me') or a relationship, printed as JSON"""
    spec = RESOURCE_SPECS[resource]

    if relationship and not resource_id:
        raise click.UsageError("--relationship requires RESOURCE_ID")

    required = spec.relationship_required(relationship) if relationship else spec.required
    provided = {'countryCode': country_code, 'locale': locale}
    missing = [name for name in required if not provided[name]]
    if missing:
        raise click.UsageError(f"{resource} requires: {', '.join(missing)}")

    if access_token:
        api = TidalApi({'auto_retry': True, 'return_assoc': True})
        api.set_access_token(access_token)
    else:
        api = TidalApi.from_config(_load_config(ctx))
        api.set_options({'auto_retry': True, 'return_assoc': True})
        if not api.session.request_credentials_token():
            raise TidalApiError("Could not obtain a client credentials token")

    options = {key: value for key, value in provided.items() if value}
    if include:
        options['include'] = list(include)
    if filter_id:
        options['filter[id]'] = list(filter_id)

    _echo_json(api.get(resource_uri(spec, resource_id, relationship), options=options))


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@handle_error
def inspect(file):
    """Parse a captured raw HTTP response (e.g. curl -i output) and classify it"""
    raw = file.read_text(encoding='utf-8')
    request = Request({'return_assoc': True})

    try:
        response = request.replay(raw, url=str(file))
    except ApiError as e:
        response = e.response
        click.echo(click.style(f"{type(e).__name__}: {e.message}", fg='yellow'))
        click.echo(f"status: {e.status}")
        if e.reason:
            click.echo(f"reason: {e.reason}")
        _echo_json(response.headers)
        sys.exit(1)

    click.echo(f"status: {response.status}")
    _echo_json(response.headers)
    _echo_json(response.body)


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
