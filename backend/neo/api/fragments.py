from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from neo.api.models import FileViewResponse, FragmentExplorerResponse, FragmentView
from neo.auth import CurrentUser, require_user
from neo.db.engine import get_db_session
from neo.db.models import Fragment
from neo.db.projects import get_fragment
from neo.files import (
    breadcrumb_segments,
    convert_files_to_tree,
    default_selected_file,
    language_from_extension,
)

router = APIRouter(prefix="/api/fragments", tags=["fragments"])


def _get_owned_fragment(
    fragment_id: UUID, user: CurrentUser, db_session: Session
) -> Fragment:
    fragment = get_fragment(fragment_id, user.id, db_session)
    if fragment is None:
        raise HTTPException(status_code=404, detail="Fragment not found")
    return fragment


@router.get("/{fragment_id}")
def get_fragment_explorer(
    fragment_id: UUID,
    user: CurrentUser = Depends(require_user),
    db_session: Session = Depends(get_db_session),
) -> FragmentExplorerResponse:
    fragment = _get_owned_fragment(fragment_id, user, db_session)
    files = fragment.files or {}
    return FragmentExplorerResponse(
        fragment=FragmentView.model_validate(fragment),
        tree=convert_files_to_tree(files),
        selected_file=default_selected_file(files),
    )


@router.get("/{fragment_id}/files/{file_path:path}")
def get_fragment_file(
    fragment_id: UUID,
    file_path: str,
    user: CurrentUser = Depends(require_user),
    db_session: Session = Depends(get_db_session),
) -> FileViewResponse:
    fragment = _get_owned_fragment(fragment_id, user, db_session)
    files = fragment.files or {}
    if file_path not in files:
        raise HTTPException(status_code=404, detail="File not found")
    return FileViewResponse(
        path=file_path,
        content=files[file_path],
        language=language_from_extension(file_path),
        breadcrumbs=breadcrumb_segments(file_path),
    )
