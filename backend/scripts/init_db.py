"""Initialize the database - creates all tables and adds missing columns."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import engine, Base
import app.models  # noqa: F401 - registers all models
from app.utils.schema_sync import sync_missing_schema_objects


def init_db():
    print("Creating all database tables...")
    Base.metadata.create_all(bind=engine)
    added = sync_missing_schema_objects(engine, Base.metadata)
    if added:
        print(f"Added missing columns/indexes: {', '.join(added)}")
    print("Database initialized successfully.")


if __name__ == "__main__":
    init_db()
