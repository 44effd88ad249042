# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Company management:
# - python -m flask companies list
#   List all companies.
# - python -m flask companies create --name "Corner Store" [--timezone "America/Chicago"] [--return-days 30]
#   Create a new company (tenant).
#
# Employee inspection/bootstrap:
# - python -m flask employees list --company-id 1
#   List employees with their badge barcodes.
# - python -m flask employees create --company-id 1 --name "Dana Reyes" [--manager]
#   Create an employee; the EMP- barcode is generated.
#
# Shift inspection:
# - python -m flask shifts list --company-id 1 [--status open] [--limit 20]
#   List recent shifts with expected cash and variance.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Company
from .services import company_service, employee_service, shift_service
from .validation import ConflictError, NotFoundError, ValidationError


def _cents(value) -> str:
    if value is None:
        return "-"
    return f"{value / 100:.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask companies create' to add a tenant.")


# =============================================================================
# COMPANY MANAGEMENT COMMANDS
# =============================================================================

@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies_cli():
    """List all companies."""
    companies = company_service.list_companies()
    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Timezone':<22} {'Return days':<12} {'Active'}")
    click.echo("="*80)
    for company in companies:
        days = company.default_return_period_days
        click.echo(
            f"{company.id:<5} {company.name:<30} {company.timezone:<22} "
            f"{days if days is not None else '-':<12} {'Yes' if company.is_active else 'No'}"
        )
    click.echo("="*80 + "\n")


@companies_group.command('create')
@click.option('--name', required=True, help='Company name')
@click.option('--timezone', default='UTC', help='IANA timezone used for hourly reports')
@click.option('--return-days', type=int, default=None, help='Default return period in days')
@with_appcontext
def create_company_cli(name, timezone, return_days):
    """Create a new company (tenant)."""
    try:
        company = company_service.create_company(name, timezone, return_days)
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created company: {company.name} (ID: {company.id})")


# =============================================================================
# EMPLOYEE COMMANDS
# =============================================================================

@click.group('employees')
def employees_group():
    """Employee inspection and bootstrap commands."""


@employees_group.command('list')
@click.option('--company-id', type=int, required=True, help='Company ID')
@with_appcontext
def list_employees_cli(company_id):
    """List employees of a company."""
    if db.session.get(Company, company_id) is None:
        click.echo(f"FAIL Company ID {company_id} not found")
        return

    employees = employee_service.list_employees(company_id)
    if not employees:
        click.echo("No employees found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<28} {'Barcode':<14} {'Manager':<9} {'In sales':<9} {'Active'}")
    click.echo("="*80)
    for emp in employees:
        click.echo(
            f"{emp.id:<5} {emp.name:<28} {emp.barcode:<14} {'Yes' if emp.is_manager else 'No':<9} "
            f"{'Yes' if emp.in_sales else 'No':<9} {'Yes' if emp.is_active else 'No'}"
        )
    click.echo("="*80 + "\n")


@employees_group.command('create')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--name', prompt=True, help='Employee name')
@click.option('--manager', is_flag=True, help='Grant manager flag')
@click.option('--not-in-sales', is_flag=True, help='Exclude from sales comparisons')
@with_appcontext
def create_employee_cli(company_id, name, manager, not_in_sales):
    """
    Create an employee. The badge barcode is generated and printed.

    Example:
        flask employees create --company-id 1 --name "Dana Reyes" --manager
    """
    try:
        employee = employee_service.create_employee(
            company_id, name, is_manager=manager, in_sales=not not_in_sales
        )
    except (ValidationError, NotFoundError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created employee: {employee.name} (ID: {employee.id}, Barcode: {employee.barcode})")


# =============================================================================
# SHIFT COMMANDS
# =============================================================================

@click.group('shifts')
def shifts_group():
    """Shift inspection commands."""


@shifts_group.command('list')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--status', type=click.Choice(['open', 'closed']), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max shifts to show')
@with_appcontext
def list_shifts_cli(company_id, status, limit):
    """List recent shifts, newest first."""
    shifts = shift_service.list_shifts(company_id, status=status)[:limit]
    if not shifts:
        click.echo("No shifts found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Employee':<24} {'Status':<8} {'Start':<22} {'Opening':<10} {'Expected':<10} {'Variance'}")
    click.echo("="*100)
    for shift in shifts:
        name = shift.employee.name if shift.employee else f"#{shift.employee_id}"
        click.echo(
            f"{shift.id:<5} {name:<24} {shift.status:<8} {shift.start_time.strftime('%Y-%m-%d %H:%M'):<22} "
            f"{_cents(shift.opening_balance_cents):<10} {_cents(shift.expected_cash_cents):<10} "
            f"{_cents(shift.variance_cents)}"
        )
    click.echo("="*100 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(companies_group)
    app.cli.add_command(employees_group)
    app.cli.add_command(shifts_group)
