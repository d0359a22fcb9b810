from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from natours.models import TourDifficulty


def _check_discount(price_discount: Optional[float], price: Optional[float]) -> None:
    if price_discount is not None and price is not None and price_discount >= price:
        raise ValueError(f"Discount price ({price_discount:g}) should be below the regular price")


class TourCreate(BaseModel):
    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "name": "The Forest Hiker",
                "duration": 5,
                "max_group_size": 25,
                "difficulty": "easy",
                "price": 397,
                "summary": "Breathtaking hike through the Canadian Banff National Park",
                "image_cover": "tour-1-cover.jpg",
                "start_dates": ["2021-04-25T09:00:00", "2021-07-20T09:00:00"],
            }
        },
    )

    name: str = Field(min_length=10, max_length=40)
    duration: int = Field(gt=0)
    max_group_size: int = Field(gt=0)
    difficulty: TourDifficulty
    ratings_average: float = Field(default=4.5, ge=1, le=5)
    ratings_quantity: int = Field(default=0, ge=0)
    price: float = Field(ge=0)
    price_discount: Optional[float] = Field(default=None, ge=0)
    summary: str = Field(min_length=1)
    description: Optional[str] = None
    image_cover: str = Field(min_length=1)
    images: List[str] = Field(default_factory=list)
    start_dates: List[datetime] = Field(default_factory=list)
    secret_tour: bool = False

    @model_validator(mode="after")
    def discount_below_price(self):
        _check_discount(self.price_discount, self.price)
        return self


class TourUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=10, max_length=40)
    duration: Optional[int] = Field(default=None, gt=0)
    max_group_size: Optional[int] = Field(default=None, gt=0)
    difficulty: Optional[TourDifficulty] = None
    ratings_average: Optional[float] = Field(default=None, ge=1, le=5)
    ratings_quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    price_discount: Optional[float] = Field(default=None, ge=0)
    summary: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    image_cover: Optional[str] = Field(default=None, min_length=1)
    images: Optional[List[str]] = None
    start_dates: Optional[List[datetime]] = None
    secret_tour: Optional[bool] = None

    @model_validator(mode="after")
    def discount_below_price(self):
        _check_discount(self.price_discount, self.price)
        return self
