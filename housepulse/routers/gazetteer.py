from fastapi import APIRouter, Depends, Query, Request

from ..schemas import StateCode, StateInfo, state_name
from ..services.suburb_service import SuburbService

router = APIRouter()

def service_dep(request: Request) -> SuburbService:
    return request.app.state.suburb_service

@router.get("/gazetteer/search")
async def search_localities(
    q: str = Query(..., min_length=1),
    state: StateCode | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    svc: SuburbService = Depends(service_dep),
):
    matches = await svc.gazetteer.search(q, state=state.value if state else None, limit=limit)
    return [loc.model_dump(by_alias=True, exclude_none=True) for loc in matches]

@router.get("/gazetteer")
async def localities_in_state(
    state: StateCode = Query(...),
    svc: SuburbService = Depends(service_dep),
):
    localities = await svc.gazetteer.by_state(state.value)
    return [loc.model_dump(by_alias=True, exclude_none=True) for loc in localities]

@router.get("/states", response_model=list[StateInfo])
def list_states():
    return [StateInfo(code=code, name=state_name(code.value)) for code in StateCode]
