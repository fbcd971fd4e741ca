"""Seed data for development and testing."""

from sqlalchemy.orm import Session

from ctad_api.ledger.audio import AudioUpload
from ctad_api.ledger.service import DeclarationLedger
from ctad_api.models import Work

DEMO_TITLE = "Demo: Night Bus (rough mix)"


def seed_demo_work(db: Session) -> Work:
    """Create a demo work with one audio reference and one revision, once."""
    existing = db.query(Work).filter(Work.title == DEMO_TITLE).first()
    if existing:
        print(f"✓ Demo work already exists: {existing.id}")
        return existing

    ledger = DeclarationLedger(db)
    work = ledger.create_work(
        title=DEMO_TITLE,
        intent="Capture the feeling of the last bus home.",
        tools="Ableton Live, Juno-106, field recordings",
        ai_used=False,
        contributors="Vocals: R. Ade",
        audio_files=[AudioUpload(file_name="night-bus-rough.wav", data=b"RIFF demo audio bytes")],
    )
    ledger.create_revision(
        declaration_id=work.declaration.id,
        change_note="Stem separation was done with an AI tool after the first mix.",
        ai_used=True,
        tools="Ableton Live, Juno-106, field recordings, AI stem separation",
    )
    print(f"✓ Created demo work: {work.title} (ID: {work.id})")
    return work


def seed_all(db: Session):
    """Seed all data."""
    print("Seeding database...")
    seed_demo_work(db)
    print("✓ Seeding complete!")
