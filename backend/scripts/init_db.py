"""Create (or recreate with --drop) the notes database schema."""
import argparse
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import settings
from app.database import engine, Base
import app.models  # noqa: F401 - registers all models


def init_db(drop: bool = False):
    if drop:
        print(f"Dropping all tables on {settings.DATABASE_URL} ...")
        Base.metadata.drop_all(bind=engine)
    print("Creating tables:", ", ".join(t.name for t in Base.metadata.sorted_tables))
    Base.metadata.create_all(bind=engine)
    print("Database initialized successfully.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()
    init_db(drop=args.drop)
