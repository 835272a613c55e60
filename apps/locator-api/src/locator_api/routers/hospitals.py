from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, StreamingResponse

from hospital_search.core.exceptions import (
    GeocodingUnavailable,
    GeodataUnavailable,
    InvalidInput,
    NoResultsInRadius,
    PlaceNotFound,
    SearchError,
    SearchTimedOut,
    UnexpectedFailure,
)
from hospital_search.core.models import SearchResult, SearchStatus
from hospital_search.search import HospitalSearchService

from locator_api.dependencies import get_search_service
from locator_api.errors import ApiError
from locator_api.observability import get_trace_id
from locator_api.render import render_results, render_status, summary_message
from locator_api.response import success_response
from locator_api.schemas import HospitalSearchData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/hospitals", tags=["hospitals"])

PLACE_MAX_LENGTH = 200

_STATUS_BY_CODE: dict[str, int] = {
    InvalidInput.code: 422,
    PlaceNotFound.code: 404,
    GeocodingUnavailable.code: 503,
    GeodataUnavailable.code: 503,
    SearchTimedOut.code: 504,
    UnexpectedFailure.code: 500,
}


def _status_code_for(exc: SearchError) -> int:
    return _STATUS_BY_CODE.get(exc.code, 500)


def _log_search_error(exc: SearchError, place: str) -> None:
    logger.info(
        "search_request_failed",
        extra={"code": exc.code, "place": place, "trace_id": get_trace_id()},
    )


def _result_meta(result: SearchResult) -> dict[str, Any]:
    return {
        "total": result.total,
        "shown": result.shown,
        "radius_km": result.radius_meters / 1000,
        "message": summary_message(result),
    }


@router.get("/search")
async def search_hospitals(
    place: str = Query(default="", max_length=PLACE_MAX_LENGTH),
    service: HospitalSearchService = Depends(get_search_service),
) -> dict:
    try:
        result = await service.search(place)
    except NoResultsInRadius as exc:
        data = HospitalSearchData(place=exc.place_name, items=[])
        meta = {"total": 0, "shown": 0, "radius_km": exc.radius_meters / 1000, "message": exc.user_message}
        return success_response(data.model_dump(), meta=meta)
    except SearchError as exc:
        _log_search_error(exc, place)
        raise ApiError(exc.code, exc.user_message, _status_code_for(exc)) from exc
    return success_response(HospitalSearchData.from_result(result).model_dump(), meta=_result_meta(result))


@router.get("/cards", response_class=HTMLResponse)
async def search_hospital_cards(
    place: str = Query(default="", max_length=PLACE_MAX_LENGTH),
    service: HospitalSearchService = Depends(get_search_service),
) -> HTMLResponse:
    try:
        result = await service.search(place)
    except NoResultsInRadius as exc:
        return HTMLResponse(render_status(exc.user_message))
    except SearchError as exc:
        _log_search_error(exc, place)
        return HTMLResponse(render_status(exc.user_message), status_code=_status_code_for(exc))
    return HTMLResponse(render_results(result))


@router.get("/search/stream")
async def stream_hospital_search(
    place: str = Query(default="", max_length=PLACE_MAX_LENGTH),
    service: HospitalSearchService = Depends(get_search_service),
) -> StreamingResponse:
    """Newline-delimited JSON: one ``status`` event per phase, then ``result`` or ``error``."""
    return StreamingResponse(_search_events(service, place), media_type="application/x-ndjson")


async def _search_events(service: HospitalSearchService, place: str) -> AsyncIterator[str]:
    queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()

    def on_status(status: SearchStatus) -> None:
        queue.put_nowait({"type": "status", "phase": status.phase.value, "message": status.message})

    async def run() -> None:
        try:
            result = await service.search(place, on_status=on_status)
        except NoResultsInRadius as exc:
            queue.put_nowait(
                {
                    "type": "result",
                    "total": 0,
                    "shown": 0,
                    "message": exc.user_message,
                    "html": render_status(exc.user_message),
                }
            )
        except SearchError as exc:
            _log_search_error(exc, place)
            queue.put_nowait({"type": "error", "code": exc.code, "message": exc.user_message})
        else:
            queue.put_nowait(
                {
                    "type": "result",
                    "total": result.total,
                    "shown": result.shown,
                    "message": summary_message(result),
                    "html": render_results(result),
                }
            )
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run())
    try:
        while True:
            event = await queue.get()
            if event is None:
                break
            yield json.dumps(event, ensure_ascii=False) + "\n"
    finally:
        if not task.done():
            task.cancel()
