from typing import Dict, List

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from natours.api.deps import get_current_user, get_db, restrict_to
from natours.models import UserRole
from natours.schemas import TourCreate, TourUpdate
from natours.services import tour_service
from natours.services.api_features import ParamValue, QueryShaper

router = APIRouter(prefix="/tours", tags=["tours"])

can_manage_tours = restrict_to(UserRole.ADMIN, UserRole.LEAD_GUIDE)


def _query_params(request: Request) -> Dict[str, ParamValue]:
    grouped: Dict[str, List[str]] = {}
    for key, value in request.query_params.multi_items():
        grouped.setdefault(key, []).append(value)
    return {key: values[0] if len(values) == 1 else values for key, values in grouped.items()}


async def _list_tours(db: Session, params: Dict[str, ParamValue]) -> dict:
    features = await (
        QueryShaper(tour_service.visible_tours(db), params)
        .filter()
        .sort()
        .limit_fields()
        .paginate()
    )
    rows = await run_in_threadpool(features.query.all)
    tours = [
        tour_service.serialize_tour(row._mapping, with_virtuals=not features.explicit_projection)
        for row in rows
    ]

    return {
        "status": "success",
        "results": len(tours),
        "data": {"tours": tours},
    }


@router.get("/top-5-cheap")
async def get_top_cheap_tours(request: Request, db: Session = Depends(get_db)):
    params = _query_params(request)
    params["limit"] = "5"
    params["sort"] = "-ratings_average,price"
    return await _list_tours(db, params)


@router.get("/tour-stats")
def get_tour_stats(db: Session = Depends(get_db)):
    stats = tour_service.get_tour_stats(db)
    return {"status": "success", "results": len(stats), "data": {"stats": stats}}


@router.get("/monthly-plan/{year}")
def get_monthly_plan(year: int, db: Session = Depends(get_db)):
    plan = tour_service.get_monthly_plan(db, year)
    return {"status": "success", "results": len(plan), "data": {"plan": plan}}


@router.get("", dependencies=[Depends(get_current_user)])
async def get_all_tours(request: Request, db: Session = Depends(get_db)):
    return await _list_tours(db, _query_params(request))


@router.post("", status_code=201, dependencies=[Depends(can_manage_tours)])
def create_tour(payload: TourCreate, db: Session = Depends(get_db)):
    tour = tour_service.create_tour(db, payload)
    return {"status": "success", "data": {"tour": tour_service.tour_to_dict(tour)}}


@router.get("/{tour_id}")
def get_tour(tour_id: str, db: Session = Depends(get_db)):
    tour = tour_service.get_tour(db, tour_id)
    return {"status": "success", "data": {"tour": tour_service.tour_to_dict(tour)}}


@router.patch("/{tour_id}", dependencies=[Depends(can_manage_tours)])
def update_tour(tour_id: str, payload: TourUpdate, db: Session = Depends(get_db)):
    tour = tour_service.update_tour(db, tour_id, payload)
    return {"status": "success", "data": {"tour": tour_service.tour_to_dict(tour)}}


@router.delete("/{tour_id}", status_code=204, dependencies=[Depends(can_manage_tours)])
def delete_tour(tour_id: str, db: Session = Depends(get_db)):
    tour_service.delete_tour(db, tour_id)
    return Response(status_code=204)
