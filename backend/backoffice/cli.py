# Overview: Flask CLI command groups for store bootstrap, marketplace sync, and report export.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask db upgrade
#   Apply Alembic migrations (Flask-Migrate).
#
# Stores:
# - python -m flask stores create --name "Main Street" --code MAIN
# - python -m flask stores list
#
# Marketplaces:
# - python -m flask marketplaces add --store-id 1 --platform shopify --shop-domain shop.myshopify.com --token shpat_xxx
#
# Orders:
# - python -m flask orders sync --store-id 1
#   Sync every linked, non-terminal order in the store.
# - python -m flask orders sync --store-id 1 --order-id 12 --order-id 13
#
# Reports:
# - python -m flask reports buys --store-id 1 --unit month --start 2024-01-01 --end 2024-12-31 [--kind online]
#   Write the buys report as CSV to stdout.

import click
from flask import current_app
from flask.cli import with_appcontext

from .domain import csv_export
from .domain.bucketing import UNITS
from .domain.platform_payloads import SUPPORTED_PLATFORMS
from .extensions import db
from .models import Store, StoreMarketplace
from .services import order_sync_service, reporting_service
from .services.platform_client import configured_client_factory
from .services.tenant_service import TenantAccessError, require_store
from .validation import ValidationError, parse_date


@click.group('stores')
def stores_group():
    """Store management commands."""


@stores_group.command('create')
@click.option('--name', required=True, help='Store name')
@click.option('--code', default=None, help='Short unique code')
@click.option('--timezone', 'tz', default='UTC', help='IANA timezone')
@with_appcontext
def create_store(name, code, tz):
    """Create a store."""
    store = Store(name=name, code=code, timezone=tz)
    db.session.add(store)
    db.session.commit()
    click.echo(f"PASS Created store: {store.name} (ID: {store.id})")


@stores_group.command('list')
@with_appcontext
def list_stores():
    """List all stores."""
    stores = db.session.query(Store).order_by(Store.id).all()
    if not stores:
        click.echo("No stores found.")
        return
    for store in stores:
        click.echo(f"{store.id:>4}  {store.code or '-':<10} {store.name}")


@click.group('marketplaces')
def marketplaces_group():
    """Marketplace connection commands."""


@marketplaces_group.command('add')
@click.option('--store-id', type=int, required=True)
@click.option('--platform', type=click.Choice(SUPPORTED_PLATFORMS), required=True)
@click.option('--shop-domain', required=True)
@click.option('--token', required=True, help='Platform access token')
@click.option('--name', default=None)
@with_appcontext
def add_marketplace(store_id, platform, shop_domain, token, name):
    """Connect a store to a marketplace."""
    try:
        require_store(store_id)
    except TenantAccessError as exc:
        raise click.ClickException(str(exc))

    marketplace = StoreMarketplace(
        store_id=store_id,
        platform=platform,
        shop_domain=shop_domain,
        access_token=token,
        name=name or shop_domain,
    )
    db.session.add(marketplace)
    db.session.commit()
    click.echo(f"PASS Connected {platform} ({shop_domain}) to store {store_id} (ID: {marketplace.id})")


@click.group('orders')
def orders_group():
    """Order maintenance commands."""


@orders_group.command('sync')
@click.option('--store-id', type=int, required=True)
@click.option('--order-id', 'order_ids', type=int, multiple=True, help='Limit to these orders')
@with_appcontext
def sync_orders(store_id, order_ids):
    """Pull marketplace state for linked orders."""
    try:
        require_store(store_id)
    except TenantAccessError as exc:
        raise click.ClickException(str(exc))

    ids = list(order_ids) or order_sync_service.linked_order_ids(store_id)
    if not ids:
        click.echo("No linked orders to sync.")
        return

    results = order_sync_service.sync_orders(
        store_id,
        ids,
        client_factory=configured_client_factory(current_app.config),
    )
    for result in results:
        marker = "PASS" if result.success else "FAIL"
        line = f"{marker} Order {result.order_id}: {result.message}"
        if result.success and result.previous_status != result.status:
            line += f" ({result.previous_status} -> {result.status})"
        if result.refunds is not None:
            line += f" [{result.refunds.message}]"
        click.echo(line)

    failed = sum(1 for r in results if not r.success)
    click.echo(f"\nDONE {len(results) - failed} synced, {failed} failed")


@click.group('reports')
def reports_group():
    """Report export commands."""


@reports_group.command('buys')
@click.option('--store-id', type=int, required=True)
@click.option('--unit', type=click.Choice(UNITS), default='day')
@click.option('--start', required=True, help='YYYY-MM-DD')
@click.option('--end', required=True, help='YYYY-MM-DD')
@click.option('--kind', type=click.Choice(reporting_service.KINDS), default=reporting_service.KIND_ALL)
@with_appcontext
def export_buys(store_id, unit, start, end, kind):
    """Write the buys report for a period as CSV to stdout."""
    try:
        report = reporting_service.buys_by_period(
            store_id=store_id,
            start=parse_date(start, "start"),
            end=parse_date(end, "end"),
            unit=unit,
            kind=kind,
        )
    except (ValidationError, reporting_service.ReportError, TenantAccessError) as exc:
        raise click.ClickException(str(exc))

    for line in csv_export.iter_csv(csv_export.BUYS_HEADER, csv_export.buys_rows(report["rows"], report["totals"])):
        click.echo(line, nl=False)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(stores_group)
    app.cli.add_command(marketplaces_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(reports_group)
