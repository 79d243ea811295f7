"""
Database initialization script.

Loads the enrolment CSV files into the configured database so the API can
run with DATA_SOURCE=database. Bad rows are skipped and reported.
"""
import os
import sys
import logging
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from enrolment_pulse.config import settings
from enrolment_pulse.database import SessionLocal, init_db
from enrolment_pulse.models.enrollment import Enrollment
from enrolment_pulse.services.data_loader import CSVRowSource, load_records, save_records

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def csv_directory() -> Path:
    csv_dir = Path(settings.ENROLMENT_CSV_DIR)
    if not csv_dir.is_absolute():
        csv_dir = settings.base_dir / csv_dir
    return csv_dir


def main():
    """Main initialization function."""
    print("=" * 60)
    print("Enrolment Pulse - Database Initialization")
    print("=" * 60)

    source = CSVRowSource(csv_directory())
    files = source.csv_files()
    if not files:
        print(f"\nNo CSV files found in {source.directory}")
        print("   Set ENROLMENT_CSV_DIR in the .env file.")
        sys.exit(1)
    print(f"\nFound {len(files)} CSV files in {source.directory}")

    if not settings.is_postgres:
        Path(settings.DATABASE_PATH).parent.mkdir(parents=True, exist_ok=True)

    init_db()
    print(f"Database ready at: {settings.database_url}")

    db = SessionLocal()
    try:
        existing = db.query(Enrollment).count()
        if existing > 0:
            print(f"\nDatabase already contains {existing:,} enrolment records.")
            response = input("   Do you want to clear and reload? (y/N): ").strip().lower()
            if response != 'y':
                print("   Keeping existing data. Exiting.")
                return
            db.query(Enrollment).delete()
            db.commit()
            logger.info("Cleared existing enrolment records")

        result = load_records(source.rows(), on_error="skip")
        written = save_records(db, result.records, show_progress=True)

        print("\n" + "=" * 60)
        print("Database initialization complete!")
        print(f"  Enrolment records: {written:,}")
        print(f"  Rows skipped: {result.error_count:,}")
        print("=" * 60)
    except Exception as e:
        logger.error(f"Error during initialization: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
