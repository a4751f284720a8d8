from fastapi import APIRouter, Depends, HTTPException, status

from jobly.api.deps import get_user_repository
from jobly.core.security import ensure_permitted, get_current_principal
from jobly.schemas.base import DeletedOut
from jobly.schemas.users import (
    ApplicationOut,
    UserCreateRequest,
    UserDetailOut,
    UserOut,
    UserUpdateRequest,
)
from jobly.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

router = APIRouter()


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateRequest,
    principal=Depends(get_current_principal),
    users=Depends(get_user_repository),
) -> UserOut:
    # Self-registration belongs to the identity provider; this is admin-only.
    ensure_permitted(principal.require_admin)

    try:
        row = await users.create(payload.to_create())
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return UserOut(**row)


@router.get("", response_model=list[UserOut])
async def list_users(
    principal=Depends(get_current_principal),
    users=Depends(get_user_repository),
) -> list[UserOut]:
    ensure_permitted(principal.require_admin)

    try:
        rows = await users.find_all()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return [UserOut(**row) for row in rows]


@router.get("/{username}", response_model=UserDetailOut)
async def get_user(
    username: str,
    principal=Depends(get_current_principal),
    users=Depends(get_user_repository),
) -> UserDetailOut:
    ensure_permitted(principal.require_self_or_admin, username)

    try:
        row = await users.get(username)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return UserDetailOut(**row)


@router.patch("/{username}", response_model=UserOut)
async def update_user(
    username: str,
    payload: UserUpdateRequest,
    principal=Depends(get_current_principal),
    users=Depends(get_user_repository),
) -> UserOut:
    ensure_permitted(principal.require_self_or_admin, username)

    try:
        row = await users.update(username, payload.to_update())
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return UserOut(**row)


@router.delete("/{username}", response_model=DeletedOut)
async def delete_user(
    username: str,
    principal=Depends(get_current_principal),
    users=Depends(get_user_repository),
) -> DeletedOut:
    ensure_permitted(principal.require_self_or_admin, username)

    try:
        await users.remove(username)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return DeletedOut(deleted=username)


@router.post("/{username}/jobs/{job_id}", response_model=ApplicationOut, status_code=status.HTTP_201_CREATED)
async def apply_to_job(
    username: str,
    job_id: int,
    principal=Depends(get_current_principal),
    users=Depends(get_user_repository),
) -> ApplicationOut:
    ensure_permitted(principal.require_self_or_admin, username)

    try:
        applied = await users.apply_to_job(username, job_id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return ApplicationOut(applied=applied)
