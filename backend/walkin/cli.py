# Overview: Flask CLI command groups for bootstrap, seeding, and data repair.

# backend/walkin/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to walkin (PowerShell: $env:FLASK_APP="walkin").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Idempotent demo catalog: categories, services, staff, products.
#
# Data repair:
# - python -m flask queue fix-status
#   Rewrite legacy 'completed' walk-ins to 'done' and fill missing completed_at.
# - python -m flask customers backfill
#   Link walk-ins without a customer to placeholder customers (one per name).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Product, Service, Staff, StaffAssignment
from .services.customer_service import backfill_customers
from .services.queue_service import fix_legacy_statuses


SEED_CATEGORIES = [
    {"name": "Hair", "icon": "scissors", "display_order": 1},
    {"name": "Beard", "icon": "razor", "display_order": 2},
    {"name": "Care", "icon": "sparkles", "display_order": 3},
]

# (name, category, price_cents, duration_minutes)
SEED_SERVICES = [
    ("Haircut", "Hair", 30000, 30),
    ("Hair Wash", "Hair", 10000, 15),
    ("Beard Trim", "Beard", 15000, 15),
    ("Shave", "Beard", 20000, 20),
    ("Head Massage", "Care", 25000, 20),
]

# (name, title, primary service, other services)
SEED_STAFF = [
    ("Ravi", "Senior Stylist", "Haircut", ["Hair Wash", "Head Massage"]),
    ("Imran", "Barber", "Beard Trim", ["Shave", "Haircut"]),
]

# (name, sku, price_cents, cost_cents, stock_quantity)
SEED_PRODUCTS = [
    ("Hair Wax", "WAX-001", 35000, 20000, 24),
    ("Beard Oil", "OIL-001", 45000, 25000, 12),
    ("Shampoo 200ml", "SHP-200", 30000, 18000, 3),
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables."""
    db.create_all()
    click.echo("Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping every table.')
@with_appcontext
def reset_db_command(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        raise click.ClickException("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("Database reset.")


@system_group.command('seed')
@with_appcontext
def seed_command():
    """Insert the demo catalog; rows that already exist (by name / SKU) are left alone."""
    created = 0

    categories = {}
    for row in SEED_CATEGORIES:
        category = db.session.query(Category).filter(db.func.lower(Category.name) == row["name"].lower()).first()
        if category is None:
            category = Category(**row)
            db.session.add(category)
            created += 1
        categories[row["name"]] = category
    db.session.flush()

    services = {}
    for name, category_name, price_cents, duration in SEED_SERVICES:
        service = db.session.query(Service).filter(db.func.lower(Service.name) == name.lower()).first()
        if service is None:
            service = Service(
                name=name,
                price_cents=price_cents,
                duration_minutes=duration,
                category_id=categories[category_name].id,
                is_active=True,
            )
            db.session.add(service)
            created += 1
        services[name] = service
    db.session.flush()

    for name, title, primary, others in SEED_STAFF:
        if db.session.query(Staff).filter_by(name=name).first() is not None:
            continue
        member = Staff(name=name, title=title, is_active=True)
        db.session.add(member)
        db.session.flush()
        for service_name in [primary, *others]:
            db.session.add(StaffAssignment(
                staff_id=member.id,
                service_id=services[service_name].id,
                is_primary=service_name == primary,
            ))
        created += 1

    for name, sku, price_cents, cost_cents, stock in SEED_PRODUCTS:
        if db.session.query(Product).filter(db.func.lower(Product.sku) == sku.lower()).first() is not None:
            continue
        db.session.add(Product(
            name=name,
            sku=sku,
            price_cents=price_cents,
            cost_cents=cost_cents,
            stock_quantity=stock,
            is_active=True,
        ))
        created += 1

    db.session.commit()
    click.echo(f"Seed complete: {created} rows created.")


@click.group('queue')
def queue_group():
    """Walk-in queue repair commands."""


@queue_group.command('fix-status')
@with_appcontext
def fix_status_command():
    """Rewrite legacy 'completed' walk-ins to 'done'."""
    fixed = fix_legacy_statuses()
    if fixed == 0:
        click.echo("No records to fix.")
        return
    click.echo(f"Updated {fixed} walk-ins to 'done'.")


@click.group('customers')
def customers_group():
    """Customer repair commands."""


@customers_group.command('backfill')
@with_appcontext
def backfill_command():
    """Link walk-ins that have no customer to placeholder customers."""
    created, linked = backfill_customers()
    click.echo(f"Created {created} customers")
    click.echo(f"Linked {linked} walk-ins to customers")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(queue_group)
    app.cli.add_command(customers_group)
