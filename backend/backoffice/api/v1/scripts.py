from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.api.deps import get_current_user
from backoffice.api.response import envelope, paginated
from backoffice.db.session import get_db
from backoffice.schemas.scripts import ScriptCopyRequest, ScriptCreateRequest, ScriptUpdateRequest
from backoffice.services import script_service
from backoffice.services.session_service import SessionUser

router = APIRouter(prefix="/scripts", tags=["scripts"])


@router.get("")
def list_scripts(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    type: str | None = None,
    status: str | None = None,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    items, total = script_service.list_scripts(
        db, page=page, limit=limit, search=search, script_type=type, script_status=status
    )
    return paginated(request, items, page=page, limit=limit, total=total)


@router.post("")
def create_script(
    request: Request,
    body: ScriptCreateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    script = script_service.create_script(db, body, actor=user.email, user_id=user.id)
    return envelope(request, script_service.serialize_script(script), "스크립트가 생성되었습니다.")


@router.get("/{script_id}")
def get_script(
    request: Request,
    script_id: int,
    _user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, script_service.serialize_script(script_service.get_script(db, script_id)))


@router.put("/{script_id}")
def update_script(
    request: Request,
    script_id: int,
    body: ScriptUpdateRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    script = script_service.update_script(db, script_id, body, user_id=user.id)
    return envelope(request, script_service.serialize_script(script), "스크립트가 수정되었습니다.")


@router.post("/{script_id}/copy")
def copy_script(
    request: Request,
    script_id: int,
    body: ScriptCopyRequest,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    script = script_service.copy_script(db, script_id, body, actor=user.email, user_id=user.id)
    return envelope(request, script_service.serialize_script(script), "스크립트가 복사되었습니다.")


@router.delete("/{script_id}")
def delete_script(
    request: Request,
    script_id: int,
    user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return envelope(request, script_service.delete_script(db, script_id, user_id=user.id), "스크립트가 삭제되었습니다.")
