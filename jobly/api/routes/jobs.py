from fastapi import APIRouter, Depends, HTTPException, Query, status

from jobly.api.deps import get_job_repository
from jobly.core.security import ensure_permitted, get_current_principal
from jobly.schemas.base import DeletedOut
from jobly.schemas.jobs import JobCreateRequest, JobOut, JobUpdateRequest
from jobly.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

router = APIRouter()


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreateRequest,
    principal=Depends(get_current_principal),
    jobs=Depends(get_job_repository),
) -> JobOut:
    ensure_permitted(principal.require_admin)

    try:
        row = await jobs.create(payload.to_create())
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return JobOut(**row)


@router.get("", response_model=list[JobOut])
async def list_jobs(
    jobs=Depends(get_job_repository),
    title: str | None = Query(default=None),
    min_salary: str | None = Query(default=None, alias="minSalary"),
    has_equity: str | None = Query(default=None, alias="hasEquity"),
) -> list[JobOut]:
    filters = {"title": title, "minSalary": min_salary, "hasEquity": has_equity}

    try:
        rows = await jobs.find_filtered({key: value for key, value in filters.items() if value is not None})
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return [JobOut(**row) for row in rows]


@router.get("/{job_id}", response_model=JobOut)
async def get_job(job_id: int, jobs=Depends(get_job_repository)) -> JobOut:
    try:
        row = await jobs.get(job_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return JobOut(**row)


@router.patch("/{job_id}", response_model=JobOut)
async def update_job(
    job_id: int,
    payload: JobUpdateRequest,
    principal=Depends(get_current_principal),
    jobs=Depends(get_job_repository),
) -> JobOut:
    ensure_permitted(principal.require_admin)

    try:
        row = await jobs.update(job_id, payload.to_update())
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return JobOut(**row)


@router.delete("/{job_id}", response_model=DeletedOut)
async def delete_job(
    job_id: int,
    principal=Depends(get_current_principal),
    jobs=Depends(get_job_repository),
) -> DeletedOut:
    ensure_permitted(principal.require_admin)

    try:
        await jobs.remove(job_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return DeletedOut(deleted=str(job_id))
