"""CLI commands for CTAD API."""

import json

import click

from ctad_api.db.base import Base
from ctad_api.db.seed import seed_all
from ctad_api.db.session import SessionLocal, engine
from ctad_api.errors import CTADError
from ctad_api.ledger.export import build_export_document
from ctad_api.ledger.service import DeclarationLedger
from ctad_api.rewards.engine import RewardEngine


@click.group()
def cli():
    """CTAD API CLI."""
    pass


@cli.command("init-db")
def init_db():
    """Create all tables (development; use Alembic elsewhere)."""
    import ctad_api.models  # noqa: F401  (register tables)

    Base.metadata.create_all(engine)
    click.echo("✓ Tables created.")


@cli.command()
def seed():
    """Seed initial data."""
    click.echo("Seeding initial data...")
    db = SessionLocal()
    try:
        seed_all(db)
        click.echo("✓ Seed data created.")
    except Exception as e:
        click.echo(f"✗ Error seeding data: {e}", err=True)
        db.rollback()
        raise SystemExit(1)
    finally:
        db.close()


@cli.command("update-taste-score")
@click.argument("contributor_id")
@click.argument("alignment_score", type=click.FloatRange(0.0, 1.0))
def update_taste_score(contributor_id: str, alignment_score: float):
    """Fold a consensus ALIGNMENT_SCORE (0-1) into a contributor's taste score."""
    db = SessionLocal()
    try:
        rewards = RewardEngine(db)
        if rewards.get_contributor(contributor_id) is None:
            click.echo(f"✗ Contributor {contributor_id} not found (score stays at default).", err=True)
            raise SystemExit(1)
        new_score = rewards.update_taste_score(contributor_id, alignment_score)
        click.echo(f"✓ Taste score for {contributor_id}: {new_score:.4f}")
    except CTADError as e:
        click.echo(f"✗ {e.message}", err=True)
        raise SystemExit(1)
    finally:
        db.close()


@cli.command("export-work")
@click.argument("work_id")
def export_work(work_id: str):
    """Print a work's export document."""
    db = SessionLocal()
    try:
        work = DeclarationLedger(db).get_work(work_id)
        if work is None:
            click.echo(f"✗ Work {work_id} not found.", err=True)
            raise SystemExit(1)
        click.echo(json.dumps(build_export_document(work), indent=2))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
