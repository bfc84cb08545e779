"""Seed the database with a demo user and a note that has a short version history."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal, engine, Base
import app.models  # noqa: F401

from app.models.user import User
from app.services import version_store
from app.services.concurrency_guard import guarded_note
from app.utils.security import hash_password


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        user = User(email="demo@example.com", password_hash=hash_password("demo1234"), first_name="Demo")
        db.add(user)
        db.commit()
        db.refresh(user)

        note = version_store.create_note(db, user.user_id, "회의록", "첫 번째 초안")
        for expected, content in enumerate(["두 번째 초안", "최종본"], start=1):
            with guarded_note(db, note.id, user.user_id, expected) as locked:
                version_store.append_version(db, locked, locked.title, content, expected)

        print(f"Seeded user {user.email} (password: demo1234) with note {note.id} at version 3.")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
