# storefront/cli.py
from datetime import timedelta

import click
from flask_jwt_extended import create_access_token

from .services.shipping_service import read_free_shipping_threshold, write_free_shipping_threshold
from .services.errors import InputError


@click.command("issue-admin-token")
@click.option("--name", required=True)
@click.option("--hours", default=12, show_default=True, type=int)
def issue_admin_token(name, hours):
    token = create_access_token(
        identity=name.strip(),
        additional_claims={"role": "admin"},
        expires_delta=timedelta(hours=hours),
    )
    click.echo(token)


@click.command("set-free-shipping")
@click.argument("threshold")
def set_free_shipping(threshold):
    try:
        write_free_shipping_threshold(threshold)
    except InputError as e:
        raise click.BadParameter(e.message)
    current = read_free_shipping_threshold()
    click.echo(f"free shipping threshold: {current.value} JOD")


def register_cli(app):
    app.cli.add_command(issue_admin_token)
    app.cli.add_command(set_free_shipping)
