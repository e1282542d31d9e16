# Overview: Flask CLI command groups for bootstrap, numbering, and inventory inspection.

# backend/retail_erp/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, default numbering rules and payment methods.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Numbering rules:
# - python -m flask numbering list
#   List rules with their current counters.
# - python -m flask numbering preview ORDER
#   Show the next number without consuming it.
# - python -m flask numbering reset ORDER
#   Reset the counter; the next generated number is 1.
#
# Inventory:
# - python -m flask inventory low-stock
#   List products at or below safety stock.

import click
from flask.cli import with_appcontext

from .errors import BusinessRuleError
from .extensions import db
from .models import NumberingRule, PaymentMethod
from .services import inventory_service, numbering_service

DEFAULT_PAYMENT_METHODS = (
    ("CASH", "Cash"),
    ("CARD", "Credit/Debit card"),
    ("MOBILE", "Mobile payment"),
)


def ensure_default_payment_methods() -> list[PaymentMethod]:
    existing = {code for (code,) in db.session.query(PaymentMethod.code).all()}
    created = []
    for code, name in DEFAULT_PAYMENT_METHODS:
        if code in existing:
            continue
        method = PaymentMethod(code=code, name=name, is_active=True)
        db.session.add(method)
        created.append(method)
    db.session.commit()
    return created


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and seed numbering rules and payment methods (idempotent)."""
    click.echo("START Initializing system...")
    db.create_all()

    rules = numbering_service.ensure_default_rules()
    click.echo(f"PASS Numbering rules created: {', '.join(r.code for r in rules) or 'none (already present)'}")

    methods = ensure_default_payment_methods()
    click.echo(f"PASS Payment methods created: {', '.join(m.code for m in methods) or 'none (already present)'}")
    click.echo("DONE System initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("DONE Database reset")


@click.group('numbering')
def numbering_group():
    """Numbering rule inspection commands."""


@numbering_group.command('list')
@with_appcontext
def list_rules():
    rules = numbering_service.list_rules()
    if not rules:
        click.echo("No numbering rules found. Run: python -m flask system init")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Code':<8} {'Prefix':<8} {'Date':<10} {'Len':<5} {'Reset':<9} {'Current':<9} {'Active'}")
    click.echo("="*80)
    for rule in rules:
        click.echo(
            f"{rule.code:<8} {rule.prefix:<8} {rule.date_format or '-':<10} {rule.sequence_length:<5} "
            f"{rule.reset_period or 'NEVER':<9} {rule.current_sequence:<9} {'yes' if rule.is_active else 'no'}"
        )
    click.echo("="*80 + "\n")


@numbering_group.command('preview')
@click.argument('code')
@with_appcontext
def preview_rule(code):
    try:
        click.echo(numbering_service.preview_next(code))
    except BusinessRuleError as e:
        click.echo(f"FAIL {e.message}")


@numbering_group.command('reset')
@click.argument('code')
@with_appcontext
def reset_rule(code):
    rule = db.session.query(NumberingRule).filter_by(code=code).first()
    if rule is None:
        click.echo(f"FAIL Numbering rule {code} does not exist")
        return
    numbering_service.reset_sequence(rule.id)
    click.echo(f"PASS Numbering rule {code} reset")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@click.option('--limit', default=100, help='Maximum rows to show')
@with_appcontext
def low_stock(limit):
    rows, total = inventory_service.list_low_stock(limit=limit)
    click.echo(f"{total} product(s) at or below safety stock")
    for row in rows:
        click.echo(f"  product={row.product_id:<6} warehouse={row.warehouse_id or '-':<6} available={row.available_qty:<6} safety={row.safety_stock}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(numbering_group)
    app.cli.add_command(inventory_group)
