"""Stored results: listing, lookup, JSON backup and restore."""

from datetime import datetime, timezone
from typing import Any, List

from fastapi import APIRouter, Body, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from cognitive_insight.domain.models import TestResult
from cognitive_insight.views import ErrorResponse, RestoreResponse

from .dependencies import ResultRepositoryDep

router = APIRouter(prefix="/results", tags=["results"])

_BACKUP = TypeAdapter(List[TestResult])


@router.get("", response_model=List[TestResult])
async def list_results(repository: ResultRepositoryDep) -> List[TestResult]:
    """All stored results, newest first."""

    return await repository.list_all()


@router.get(
    "/backup",
    response_class=JSONResponse,
    responses={404: {"model": ErrorResponse}},
)
async def backup_results(repository: ResultRepositoryDep) -> JSONResponse:
    results = await repository.list_all()
    if not results:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="no data to back up",
        )

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return JSONResponse(
        content=_BACKUP.dump_python(results, mode="json", by_alias=True),
        headers={
            "Content-Disposition": f"attachment; filename=cognitive_insight_backup_{stamp}.json"
        },
    )


@router.put(
    "/restore",
    response_model=RestoreResponse,
    responses={422: {"model": ErrorResponse}},
)
async def restore_results(
    repository: ResultRepositoryDep,
    payload: List[Any] = Body(...),
) -> RestoreResponse:
    """Replace every stored result with the records of a backup file."""

    try:
        results = _BACKUP.validate_python(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"invalid backup format: {exc.error_count()} invalid field(s)",
        ) from exc

    await repository.replace_all(results)
    return RestoreResponse(restored=len(results))


@router.get(
    "/{result_id}",
    response_model=TestResult,
    responses={404: {"model": ErrorResponse}},
)
async def get_result(result_id: str, repository: ResultRepositoryDep) -> TestResult:
    result = await repository.get_by_id(result_id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Result {result_id} not found",
        )
    return result
