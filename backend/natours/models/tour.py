"""
Tour catalog model
"""
from sqlalchemy import Boolean, Column, DateTime, Enum, Float, Integer, JSON, String, Text
import enum

from .base import Base, generate_uuid, utcnow


class TourDifficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"


class Tour(Base):
    __tablename__ = "tours"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    name = Column(String(40), unique=True, nullable=False)
    slug = Column(String(64), nullable=True, index=True)
    duration = Column(Integer, nullable=False)
    max_group_size = Column(Integer, nullable=False)
    difficulty = Column(
        Enum(TourDifficulty, values_callable=lambda e: [m.value for m in e], name="tour_difficulty"),
        nullable=False,
    )

    ratings_average = Column(Float, nullable=False, default=4.5)
    ratings_quantity = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=False)
    price_discount = Column(Float, nullable=True)

    summary = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    image_cover = Column(String(255), nullable=False)
    images = Column(JSON, nullable=False, default=list)
    start_dates = Column(JSON, nullable=False, default=list)  # ISO-8601 strings

    # hidden from every public read path
    secret_tour = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    # revision counter, bumped by SQLAlchemy on every UPDATE
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Tour(id={self.id}, name={self.name}, difficulty={self.difficulty})>"

    @property
    def duration_weeks(self):
        return self.duration / 7 if self.duration is not None else None
