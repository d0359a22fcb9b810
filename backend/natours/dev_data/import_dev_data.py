"""
Loads or wipes the sample tour catalog.

    python -m natours.dev_data.import_dev_data --import
    python -m natours.dev_data.import_dev_data --delete
"""
from pathlib import Path
import argparse
import json
import logging
import sys

from pydantic import ValidationError

from natours.core.config import get_settings
from natours.core.database import build_engine, build_session_factory, init_db
from natours.models import Tour
from natours.schemas import TourCreate
from natours.services import tour_service

logger = logging.getLogger(__name__)

DATA_FILE = Path(__file__).parent / "tours-simple.json"


def load_tours(path: Path = DATA_FILE):
    with path.open(encoding="utf-8") as f:
        return [TourCreate(**item) for item in json.load(f)]


def import_data(session_factory, path: Path = DATA_FILE) -> int:
    tours = load_tours(path)
    db = session_factory()
    try:
        for payload in tours:
            tour_service.create_tour(db, payload)
    finally:
        db.close()
    return len(tours)


def delete_data(session_factory) -> int:
    db = session_factory()
    try:
        deleted = db.query(Tour).delete()
        db.commit()
    finally:
        db.close()
    return deleted


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import or delete the sample tours")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--import", dest="do_import", action="store_true", help="load tours-simple.json")
    group.add_argument("--delete", dest="do_delete", action="store_true", help="delete every tour")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    engine = build_engine(get_settings())
    init_db(engine)
    session_factory = build_session_factory(engine)

    try:
        if args.do_import:
            count = import_data(session_factory)
            logger.info(f"✅ Data successfully loaded! ({count} tours)")
        else:
            count = delete_data(session_factory)
            logger.info(f"✅ Data successfully deleted! ({count} tours)")
    except (OSError, ValidationError) as e:
        logger.error(f"❌ {e}")
        return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
