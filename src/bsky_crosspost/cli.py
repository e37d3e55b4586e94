"""CLI interface for bsky-crosspost.

Commands:
    setup           - Configure the PDS and Bluesky account credentials
    post            - Cross-post a status exported as JSON
    profile         - Sync display name, bio, avatar and header
    delete          - Delete a cross-posted record
    create-account  - Create a Bluesky account on the PDS for a source account
    status          - Show current configuration and cross-post state
"""

import json
import sys
from pathlib import Path

import click

from .config import (
    CONFIG_FILE,
    AppConfig,
    config_exists,
    load_config,
    save_config,
)
from .logging_config import setup_logging
from .models import Credentials


def _load_json(path: str) -> dict:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        click.echo(f"Error: {path} is not valid JSON: {e}", err=True)
        sys.exit(1)


def _require_config(ctx) -> AppConfig:
    config_path = ctx.obj["config_path"]
    if not config_exists(config_path):
        click.echo(
            "Error: No config found. Run 'bsky-crosspost setup' first.",
            err=True,
        )
        sys.exit(1)
    return load_config(config_path)


def _cross_poster(config: AppConfig):
    # Lazy imports so --help stays fast
    from .client import BlueskyClient
    from .crosspost import CrossPoster

    return CrossPoster(BlueskyClient(config.pds_domain), config.limits)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", type=click.Path(), default=None, help="Config file path")
@click.pass_context
def main(ctx, verbose, config):
    """Bluesky cross-poster — Mirror statuses and profiles to an AT Protocol PDS."""
    setup_logging(debug=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else CONFIG_FILE


@main.command()
@click.pass_context
def setup(ctx):
    """Configure the PDS domain and Bluesky account."""
    config_path = ctx.obj["config_path"]

    click.echo("Bluesky Cross-poster — Setup")
    click.echo("=" * 40)
    click.echo()
    pds_domain = click.prompt("PDS domain (e.g. pds.example.com)")
    handle = click.prompt("handle", default="", show_default=False)
    password = click.prompt("password", default="", show_default=False, hide_input=True)
    did = click.prompt("DID (press Enter to skip)", default="", show_default=False)
    admin_password = click.prompt(
        "PDS admin password (only for create-account, Enter to skip)",
        default="",
        show_default=False,
        hide_input=True,
    )

    config = AppConfig(
        pds_domain=pds_domain,
        credentials=Credentials(handle=handle, password=password, did=did or None),
        admin_password=admin_password or None,
    )
    save_config(config, config_path)
    click.echo(f"\nConfig saved to {config_path}")


@main.command()
@click.argument("status_file", type=click.Path(exists=True))
@click.option("--force", is_flag=True, help="Post again even if already cross-posted")
@click.pass_context
def post(ctx, status_file, force):
    """Cross-post a status.

    STATUS_FILE is a status as returned by the Mastodon API, in JSON.
    """
    from .parser import parse_status
    from .state import StateManager

    config = _require_config(ctx)
    status = parse_status(_load_json(status_file))
    state = StateManager(config.state_dir)

    if state.is_crossposted(status.post_id) and not force:
        click.echo(
            f"Status {status.post_id} already cross-posted as "
            f"{state.record_uri(status.post_id)} (use --force to post again)."
        )
        return

    with _cross_poster(config) as poster:
        record_uri = poster.publish_post(status, config.credentials)

    if not record_uri:
        click.echo(f"Error: Failed to cross-post status {status.post_id}.", err=True)
        sys.exit(1)

    state.mark_crossposted(status.post_id, record_uri)
    state.save()
    click.echo(f"Cross-posted status {status.post_id} as {record_uri}")


@main.command()
@click.argument("account_file", type=click.Path(exists=True))
@click.pass_context
def profile(ctx, account_file):
    """Sync profile metadata from ACCOUNT_FILE (Mastodon account JSON)."""
    from .parser import parse_account

    config = _require_config(ctx)
    source = parse_account(_load_json(account_file))

    with _cross_poster(config) as poster:
        updated = poster.sync_profile(source, config.credentials)

    click.echo("Profile updated." if updated else "Profile unchanged.")


@main.command()
@click.argument("target")
@click.pass_context
def delete(ctx, target):
    """Delete a cross-posted record.

    TARGET is either an at:// record URI or the id of a cross-posted status.
    """
    from .state import StateManager

    config = _require_config(ctx)
    state = StateManager(config.state_dir)

    record_uri = target if target.startswith("at://") else state.record_uri(target)
    if not record_uri:
        click.echo(f"Error: No cross-posted record known for status {target}.", err=True)
        sys.exit(1)

    with _cross_poster(config) as poster:
        deleted = poster.delete_post(record_uri, config.credentials)

    if not deleted:
        click.echo(f"Error: Failed to delete {record_uri}.", err=True)
        sys.exit(1)

    if not target.startswith("at://"):
        state.forget(target)
        state.save()
    click.echo(f"Deleted {record_uri}")


@main.command("create-account")
@click.argument("account_file", type=click.Path(exists=True))
@click.option("--email", required=True, help="Email address for the new account")
@click.option("--username", required=True, help="Handle prefix; the PDS domain is appended")
@click.pass_context
def create_account(ctx, account_file, email, username):
    """Create a Bluesky account mirroring ACCOUNT_FILE and store its credentials."""
    from .parser import parse_account

    config_path = ctx.obj["config_path"]
    config = _require_config(ctx)
    if not config.admin_password:
        click.echo("Error: create-account needs admin.password in the config.", err=True)
        sys.exit(1)

    source = parse_account(_load_json(account_file))
    with _cross_poster(config) as poster:
        credentials = poster.create_account(source, email, username, config.admin_password)

    if credentials is None:
        click.echo("Error: Failed to create the Bluesky account.", err=True)
        sys.exit(1)

    config.credentials = credentials
    save_config(config, config_path)
    click.echo(f"Created {credentials.handle} ({credentials.did}); credentials saved to {config_path}")


@main.command()
@click.pass_context
def status(ctx):
    """Show current configuration and cross-post state."""
    config_path = ctx.obj["config_path"]
    has_config = config_exists(config_path)

    click.echo("Bluesky Cross-poster — Status")
    click.echo("=" * 40)
    click.echo(f"Config: {'Found' if has_config else 'Not configured'} ({config_path})")

    if not has_config:
        click.echo("\nRun 'bsky-crosspost setup' to get started.")
        return

    config = load_config(config_path)

    from .state import StateManager

    state = StateManager(config.state_dir)
    click.echo(f"PDS: {config.pds_domain}")
    click.echo(f"Account: {config.credentials.handle or 'Not set'} ({config.credentials.did or 'no DID'})")
    click.echo(f"Cross-posted statuses: {state.count}")
