"""Revoke remembered logins for a user (backend-only, no UI).

Usage examples:
    flask remember-me-revoke --username=marissa
    python -m warden.scripts.revoke_remember_me --username=marissa
"""

from __future__ import annotations

import sys

import click
from flask import current_app
from flask.cli import with_appcontext

from warden.core.rememberme.persistent import PersistentTokenBasedRememberMeServices
from warden.core.rememberme.token_store import TokenStoreError


@click.command("remember-me-revoke")
@click.option("--username", required=True, help="User whose remember-me series are removed")
@with_appcontext
def revoke_remember_me_command(username: str):
    """Remove every persistent remember-me series of a user."""
    username_clean = (username or "").strip()
    if not username_clean:
        click.echo("--username is required", err=True)
        raise click.Abort()

    mechanism = current_app.extensions.get("warden.remember_me_services")
    if not isinstance(mechanism, PersistentTokenBasedRememberMeServices):
        click.echo(
            "Remember-me uses stateless cookies; rotate REMEMBER_ME_KEY or change the password to revoke them",
            err=True,
        )
        raise click.Abort()

    try:
        mechanism.token_store.remove_user_tokens(username_clean)
    except TokenStoreError as exc:
        click.echo(f"Failed to revoke remember-me logins: {exc}", err=True)
        raise click.Abort()

    click.echo(f"remember-me revoked: username={username_clean}")


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(revoke_remember_me_command)


def main(argv: list[str] | None = None) -> int:
    """Entry point for python -m warden.scripts.revoke_remember_me."""
    from warden import create_app

    app = create_app()
    with app.app_context():
        try:
            revoke_remember_me_command.main(standalone_mode=False, args=argv)
        except click.Abort:
            return 1
        except click.ClickException as exc:
            exc.show()
            return exc.exit_code
        except SystemExit as exc:  # click may raise SystemExit
            return exc.code if isinstance(exc.code, int) else 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
