# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/smartpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--shop "ร้านของฉัน"]
#   Idempotent bootstrap: creates tables, the default shop and the settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shops:
# - python -m flask shops list
# - python -m flask shops create --name "Branch 2"
#
# Inspection:
# - python -m flask shifts list --shop-id 1 [--status open] [--limit 20]
# - python -m flask invoices list --shop-id 1 [--year 2024]
# - python -m flask stock low --shop-id 1

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import invoice_service, products_service, settings_service, shift_service, shop_service
from .validation import DomainError


def _baht(satang) -> str:
    if satang is None:
        return "-"
    return f"{satang / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--shop', 'shop_name', default='Main Shop', help='Name of the default shop')
@with_appcontext
def init_system(shop_name):
    """
    Initialize SmartPOS: schema, default shop and settings singleton.

    Safe to run repeatedly.
    """
    click.echo("START Initializing SmartPOS...")

    db.create_all()
    click.echo("PASS Tables ready")

    shop, created = shop_service.ensure_default_shop(shop_name)
    if created:
        click.echo(f"PASS Created default shop: {shop.name} (ID: {shop.id})")
    else:
        click.echo(f"PASS Using existing shop: {shop.name} (ID: {shop.id})")

    settings = settings_service.get_settings()
    missing = settings_service.missing_seller_fields(settings)
    click.echo(f"PASS Settings ready (VAT {'on' if settings.vat_enabled else 'off'})")
    if missing:
        click.echo(
            "WARN  Full tax invoices need: " + settings_service.describe_fields(missing)
        )

    click.echo("DONE SmartPOS initialized.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('shops')
def shops_group():
    """Shop management commands."""


@shops_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Show inactive shops too')
@with_appcontext
def list_shops_cli(show_all):
    shops = shop_service.list_shops(include_inactive=show_all)
    if not shops:
        click.echo("No shops found.")
        return

    click.echo(f"{'ID':<5} {'Name':<40} {'Active'}")
    for shop in shops:
        click.echo(f"{shop.id:<5} {shop.name:<40} {'yes' if shop.is_active else 'no'}")


@shops_group.command('create')
@click.option('--name', prompt=True, help='Shop name')
@with_appcontext
def create_shop_cli(name):
    try:
        shop = shop_service.create_shop(name)
    except DomainError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id})")


@click.group('shifts')
def shifts_group():
    """Shift inspection commands."""


@shifts_group.command('list')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--status', type=click.Choice(['open', 'closed']), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max rows')
@with_appcontext
def list_shifts_cli(shop_id, status, limit):
    """
    Example:
        flask shifts list --shop-id 1
        flask shifts list --shop-id 1 --status open
    """
    shifts = shift_service.list_shifts(shop_id, status=status, limit=limit)

    if not shifts:
        click.echo("No shifts found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Date':<12} {'#':<4} {'Status':<8} {'Opening':>12} {'Expected':>12} {'Actual':>12} {'Diff':>10}")
    click.echo("="*100)
    for shift in shifts:
        click.echo(
            f"{shift.id:<5} {shift.shift_date.isoformat():<12} {shift.shift_number:<4} {shift.status:<8} "
            f"{_baht(shift.opening_cash_satang):>12} {_baht(shift.expected_cash_satang):>12} "
            f"{_baht(shift.actual_cash_satang):>12} {_baht(shift.cash_difference_satang):>10}"
        )


@click.group('invoices')
def invoices_group():
    """Full tax invoice inspection commands."""


@invoices_group.command('list')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--year', type=int, help='Invoice-number year')
@with_appcontext
def list_invoices_cli(shop_id, year):
    invoices = invoice_service.list_invoices(shop_id, year=year)
    if not invoices:
        click.echo("No invoices found.")
        return

    for invoice in invoices:
        click.echo(
            f"{invoice.invoice_number:<18} sale #{invoice.sale_id:<6} {invoice.status:<10} "
            f"{_baht(invoice.total_with_vat_satang):>12}  {invoice.buyer_name}"
        )


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@with_appcontext
def low_stock_cli(shop_id):
    """Products at or below their reorder point."""
    products = products_service.list_low_stock(shop_id)
    if not products:
        click.echo("No low-stock products.")
        return

    click.echo(f"{'ID':<6} {'Name':<40} {'Stock':>6} {'Reorder':>8}")
    for product in products:
        click.echo(f"{product.id:<6} {product.name:<40} {product.stock:>6} {product.reorder_point:>8}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(shifts_group)
    app.cli.add_command(invoices_group)
    app.cli.add_command(stock_group)
