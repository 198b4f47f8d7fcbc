import click
from decimal import Decimal
from flask.cli import with_appcontext
from coffee_erp.extensions import db
from coffee_erp.models import User, Department, CashBalance
from coffee_erp.constants import DepartmentName, Role

# (username, email, role, department)
SEED_USERS = [
    ('admin', 'admin@greatpearlcoffee.com', Role.ADMIN, DepartmentName.ADMIN),
    ('director', 'director@greatpearlcoffee.com', Role.ADMIN, DepartmentName.ADMIN),
    ('finance', 'finance@greatpearlcoffee.com', Role.FINANCE, DepartmentName.FINANCE),
    ('quality', 'quality@greatpearlcoffee.com', Role.STAFF, DepartmentName.QUALITY),
    ('store', 'store@greatpearlcoffee.com', Role.STAFF, DepartmentName.STORE),
]


@click.command('seed-db')
@click.option('--password', default='pass123', show_default=True, help='Password for seeded users.')
@click.option('--float', 'opening_float', default='0', show_default=True,
              help='Opening cash float for the Finance department.')
@with_appcontext
def seed_db(password, opening_float):
    """Creates departments, demo users and the Finance cash float."""
    for name in DepartmentName.ALL:
        if not Department.query.filter_by(name=name).first():
            db.session.add(Department(name=name))

    for username, email, role, dept in SEED_USERS:
        if User.query.filter_by(email=email).first():
            continue
        user = User(username=username, email=email, role=role, department=dept)
        user.set_password(password)
        db.session.add(user)

    if not CashBalance.query.filter_by(department=DepartmentName.FINANCE).first():
        db.session.add(CashBalance(department=DepartmentName.FINANCE,
                                   current_balance=Decimal(opening_float), updated_by='seed'))

    db.session.commit()
    click.echo(f"Seeded {len(DepartmentName.ALL)} departments and {len(SEED_USERS)} users.")


def register_commands(app):
    app.cli.add_command(seed_db)
