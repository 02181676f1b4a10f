import click

from esg_portal import create_app, db, _seed_admin
from esg_portal.models import Company, metric_periods_for
from esg_portal.scoring import recalculate_scorecard

app = create_app()


@app.cli.command("init-db")
def init_db():
    """Initialize the database and create the admin user."""
    db.create_all()
    _seed_admin(app)
    print(f"Database initialized. Admin account: {app.config['ADMIN_EMAIL']}")


@app.cli.command("recalculate")
@click.option("--company", "company_id", type=int, default=None, help="Only this company.")
def recalculate(company_id):
    """Recompute every stored scorecard from its metric records."""
    query = Company.query
    if company_id is not None:
        query = query.filter_by(id=company_id)
    count = 0
    for company in query.all():
        for period in metric_periods_for(company.id):
            recalculate_scorecard(company.id, period)
            count += 1
    print(f"Recalculated {count} scorecard(s).")


if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=5000)
