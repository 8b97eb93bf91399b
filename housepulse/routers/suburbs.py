from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request, Response
from fastapi.responses import PlainTextResponse

from ..core.errors import NormalizationError, RecordNotFoundError, StoreError
from ..core.security import require_api_key, rate_limit
from ..schemas import (
    DemographicsState,
    FilterCriteria,
    HotFlagRequest,
    SortDirection,
    SortField,
    StateCode,
)
from ..services.export import export_filename
from ..services.suburb_service import SuburbService

router = APIRouter()

def service_dep(request: Request) -> SuburbService:
    # Built once in create_app so caches live for the process
    return request.app.state.suburb_service

def criteria_dep(
    state: list[StateCode] = Query(default=[]),
    bedrooms: list[Literal["2", "3", "4+"]] = Query(default=[]),
    property_type: list[Literal["house", "unit"]] = Query(default=[], alias="propertyType"),
    max_price: float | None = Query(default=None, ge=0, alias="maxPrice"),
    min_yield: float | None = Query(default=None, ge=0, alias="minYield"),
    hot_only: bool = Query(default=False, alias="hotOnly"),
) -> FilterCriteria:
    return FilterCriteria(
        states=set(state),
        bedrooms=set(bedrooms),
        property_types=set(property_type),
        max_price=max_price,
        min_yield=min_yield,
        hot_only=hot_only,
    )

def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NormalizationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))

@router.get("/suburbs")
async def list_suburbs(
    response: Response,
    criteria: FilterCriteria = Depends(criteria_dep),
    sort: SortField | None = Query(default=None),
    direction: SortDirection = Query(default=SortDirection.ASC),
    if_none_match: str | None = Header(default=None, alias="if-none-match"),
    svc: SuburbService = Depends(service_dep),
):
    try:
        payload, etag = await svc.list_with_etag(criteria, sort, direction)
    except StoreError as exc:
        raise _http_error(exc)
    if if_none_match and if_none_match == etag:
        return Response(status_code=304, headers={"ETag": etag})
    response.headers["ETag"] = etag
    return payload

@router.get("/suburbs/export.csv", response_class=PlainTextResponse)
async def export_suburbs(
    criteria: FilterCriteria = Depends(criteria_dep),
    sort: SortField | None = Query(default=None),
    direction: SortDirection = Query(default=SortDirection.ASC),
    svc: SuburbService = Depends(service_dep),
):
    try:
        body = await svc.export(criteria, sort, direction)
    except StoreError as exc:
        raise _http_error(exc)
    return PlainTextResponse(
        body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )

@router.post("/suburbs")
async def save_suburb(
    body: Any = Body(...),
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SuburbService = Depends(service_dep),
):
    try:
        record = await svc.save(body)
    except (NormalizationError, StoreError) as exc:
        raise _http_error(exc)
    return record.to_json()

@router.post("/suburbs/paste")
async def paste_suburb(
    request: Request,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SuburbService = Depends(service_dep),
):
    text = (await request.body()).decode("utf-8", errors="replace")
    try:
        record = await svc.save_pasted(text)
    except (NormalizationError, StoreError) as exc:
        raise _http_error(exc)
    return record.to_json()

@router.delete("/suburbs")
async def clear_suburbs(
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SuburbService = Depends(service_dep),
):
    try:
        await svc.clear()
    except StoreError as exc:
        raise _http_error(exc)
    return {"success": True}

@router.get("/suburbs/{record_id}")
async def get_suburb(record_id: str, svc: SuburbService = Depends(service_dep)):
    try:
        record = await svc.get(record_id)
    except (RecordNotFoundError, StoreError) as exc:
        raise _http_error(exc)
    return record.to_json()

@router.patch("/suburbs/{record_id}/hot")
async def set_hot(
    record_id: str,
    body: HotFlagRequest,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SuburbService = Depends(service_dep),
):
    try:
        record = await svc.set_hot(record_id, body.is_hot)
    except (RecordNotFoundError, StoreError) as exc:
        raise _http_error(exc)
    return record.to_json()

@router.delete("/suburbs/{record_id}")
async def delete_suburb(
    record_id: str,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SuburbService = Depends(service_dep),
):
    try:
        await svc.delete(record_id)
    except StoreError as exc:
        raise _http_error(exc)
    return {"success": True}

@router.get("/suburbs/{record_id}/demographics")
async def get_demographics(record_id: str, svc: SuburbService = Depends(service_dep)):
    try:
        state: DemographicsState = await svc.demographics_state(record_id)
    except (RecordNotFoundError, StoreError) as exc:
        raise _http_error(exc)
    return state.model_dump(mode="json", by_alias=True)

@router.post("/suburbs/{record_id}/demographics")
async def enrich_demographics(
    record_id: str,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SuburbService = Depends(service_dep),
):
    try:
        state: DemographicsState = await svc.enrich(record_id)
    except (RecordNotFoundError, StoreError) as exc:
        raise _http_error(exc)
    return state.model_dump(mode="json", by_alias=True)

@router.post("/suburbs/{record_id}/recompute-yields")
async def recompute_yields(
    record_id: str,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SuburbService = Depends(service_dep),
):
    try:
        record = await svc.recompute_yields(record_id)
    except (RecordNotFoundError, StoreError) as exc:
        raise _http_error(exc)
    return record.to_json()

@router.get("/suburbs/{record_id}/links")
async def get_links(record_id: str, svc: SuburbService = Depends(service_dep)):
    try:
        links = await svc.links(record_id)
    except (RecordNotFoundError, StoreError) as exc:
        raise _http_error(exc)
    return links.model_dump()
