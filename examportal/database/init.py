"""
Database initialization script
Creates the database file and all tables
Run: python -m examportal.database.init
"""
import sys

from examportal.core.config import DATABASE_URL
from examportal.core.database import init_db


def main():
    """Initialize the database schema"""
    print("=" * 60)
    print("Initializing Exam Portal Database")
    print("=" * 60)
    print(f"Database URL: {DATABASE_URL}")
    print("=" * 60)

    try:
        init_db()
    except Exception as e:
        print(f"\n[ERROR] Error initializing database: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    print("\n[SUCCESS] Database initialized successfully!")


if __name__ == "__main__":
    main()
