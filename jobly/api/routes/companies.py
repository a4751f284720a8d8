from fastapi import APIRouter, Depends, HTTPException, Query, status

from jobly.api.deps import get_company_repository
from jobly.core.security import ensure_permitted, get_current_principal
from jobly.schemas.base import DeletedOut
from jobly.schemas.companies import (
    CompanyCreateRequest,
    CompanyDetailOut,
    CompanyOut,
    CompanyUpdateRequest,
)
from jobly.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

router = APIRouter()


@router.post("", response_model=CompanyOut, status_code=status.HTTP_201_CREATED)
async def create_company(
    payload: CompanyCreateRequest,
    principal=Depends(get_current_principal),
    companies=Depends(get_company_repository),
) -> CompanyOut:
    ensure_permitted(principal.require_admin)

    try:
        row = await companies.create(payload.to_create())
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return CompanyOut(**row)


@router.get("", response_model=list[CompanyOut])
async def list_companies(
    companies=Depends(get_company_repository),
    name_like: str | None = Query(default=None, alias="nameLike"),
    min_employees: str | None = Query(default=None, alias="minEmployees"),
    max_employees: str | None = Query(default=None, alias="maxEmployees"),
) -> list[CompanyOut]:
    filters = {"nameLike": name_like, "minEmployees": min_employees, "maxEmployees": max_employees}

    try:
        rows = await companies.find_filtered({key: value for key, value in filters.items() if value is not None})
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return [CompanyOut(**row) for row in rows]


@router.get("/{handle}", response_model=CompanyDetailOut)
async def get_company(handle: str, companies=Depends(get_company_repository)) -> CompanyDetailOut:
    try:
        row = await companies.get(handle)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return CompanyDetailOut(**row)


@router.patch("/{handle}", response_model=CompanyOut)
async def update_company(
    handle: str,
    payload: CompanyUpdateRequest,
    principal=Depends(get_current_principal),
    companies=Depends(get_company_repository),
) -> CompanyOut:
    ensure_permitted(principal.require_admin)

    try:
        row = await companies.update(handle, payload.to_update())
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return CompanyOut(**row)


@router.delete("/{handle}", response_model=DeletedOut)
async def delete_company(
    handle: str,
    principal=Depends(get_current_principal),
    companies=Depends(get_company_repository),
) -> DeletedOut:
    ensure_permitted(principal.require_admin)

    try:
        await companies.remove(handle)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return DeletedOut(deleted=handle)
