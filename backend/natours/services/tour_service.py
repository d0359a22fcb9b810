"""
Tour catalog operations
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Mapping
import logging
import re
import unicodedata

from sqlalchemy import String, cast, func
from sqlalchemy.orm import Query, Session

from natours.core.errors import AppError
from natours.models import Tour
from natours.schemas import TourCreate, TourUpdate
from natours.services.api_features import HIDDEN_FIELDS

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "No tour found with that ID"


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


def visible_tours(db: Session) -> Query:
    """Every public read starts here: secret tours are filtered out."""
    return db.query(Tour).filter(Tour.secret_tour.is_not(True))


def serialize_tour(data: Mapping[str, Any], with_virtuals: bool = True) -> Dict[str, Any]:
    """Plain dict of an already projected tour, plus `duration_weeks` unless disabled."""
    result = dict(data)
    if with_virtuals and result.get("duration") is not None:
        result["duration_weeks"] = result["duration"] / 7
    return result


def tour_to_dict(tour: Tour) -> Dict[str, Any]:
    return serialize_tour({
        column.key: getattr(tour, column.key)
        for column in Tour.__table__.columns
        if column.key not in HIDDEN_FIELDS
    })


def _dates_to_json(start_dates: List[datetime]) -> List[str]:
    return [d.isoformat() for d in start_dates]


def get_tour(db: Session, tour_id: str) -> Tour:
    tour = visible_tours(db).filter(Tour.id == tour_id).first()
    if tour is None:
        raise AppError.not_found(NOT_FOUND_MESSAGE)
    return tour


def create_tour(db: Session, payload: TourCreate) -> Tour:
    data = payload.model_dump()
    data["start_dates"] = _dates_to_json(payload.start_dates)

    tour = Tour(**data)
    tour.slug = slugify(tour.name)
    db.add(tour)
    db.commit()
    db.refresh(tour)

    logger.info(f"Created tour {tour.id} ({tour.name})")
    return tour


def update_tour(db: Session, tour_id: str, payload: TourUpdate) -> Tour:
    tour = get_tour(db, tour_id)
    data = payload.model_dump(exclude_unset=True)

    for key, value in data.items():
        if value is None and not Tour.__table__.columns[key].nullable:
            raise AppError.validation(f"Invalid input data. {key} cannot be empty")

    price = data.get("price", tour.price)
    discount = data.get("price_discount", tour.price_discount)
    if discount is not None and price is not None and discount >= price:
        raise AppError.validation(
            f"Invalid input data. Discount price ({discount:g}) should be below the regular price"
        )

    if payload.start_dates is not None:
        data["start_dates"] = _dates_to_json(payload.start_dates)
    for key, value in data.items():
        setattr(tour, key, value)
    if "name" in data:
        tour.slug = slugify(tour.name)

    db.commit()
    db.refresh(tour)
    return tour


def delete_tour(db: Session, tour_id: str) -> None:
    tour = get_tour(db, tour_id)
    db.delete(tour)
    db.commit()
    logger.info(f"Deleted tour {tour_id}")


def get_tour_stats(db: Session) -> List[Dict[str, Any]]:
    """Aggregates well-rated tours per difficulty, most expensive group first."""
    difficulty = func.upper(cast(Tour.difficulty, String)).label("difficulty")
    avg_price = func.avg(Tour.price)

    rows = (
        visible_tours(db)
        .filter(Tour.ratings_average >= 4.5)
        .with_entities(
            difficulty,
            func.count(Tour.id).label("num_tours"),
            func.sum(Tour.ratings_quantity).label("num_ratings"),
            func.avg(Tour.ratings_average).label("avg_rating"),
            avg_price.label("avg_price"),
            func.min(Tour.price).label("min_price"),
            func.max(Tour.price).label("max_price"),
        )
        .group_by(difficulty)
        .order_by(avg_price.desc())
        .all()
    )
    return [dict(row._mapping) for row in rows]


def get_monthly_plan(db: Session, year: int) -> List[Dict[str, Any]]:
    """Tour starts per month of ``year``, busiest month first."""
    months: Dict[int, List[str]] = defaultdict(list)

    for name, start_dates in visible_tours(db).with_entities(Tour.name, Tour.start_dates).all():
        for raw in start_dates or []:
            try:
                start = datetime.fromisoformat(raw)
            except (TypeError, ValueError):
                logger.warning(f"Skipping malformed start date {raw!r} of tour '{name}'")
                continue
            if start.year == year:
                months[start.month].append(name)

    plan = [
        {"month": month, "num_tour_starts": len(names), "tours": names}
        for month, names in months.items()
    ]
    plan.sort(key=lambda item: (-item["num_tour_starts"], item["month"]))
    return plan
