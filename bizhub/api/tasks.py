"""
Tasks API endpoints: CRUD, comments, attachments, history and dashboard stats.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from bizhub.api.deps import page_params, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import tasks as task_repo
from bizhub.services.webhook_service import emit
from bizhub.utils import attachment_storage
from bizhub.utils.pagination import page_payload

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _event_data(task) -> dict:
    return schemas.Task.model_validate(task).model_dump(mode="json")


def _get_or_404(db: Session, task_id: uuid.UUID):
    task = task_repo.get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("", response_model=schemas.PaginatedTasks)
def list_tasks(
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee_id: Optional[uuid.UUID] = None,
    client_id: Optional[uuid.UUID] = None,
    overdue: Optional[bool] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = task_repo.list_tasks(
        db,
        search=search,
        status=status,
        priority=priority,
        assignee_id=assignee_id,
        client_id=client_id,
        overdue=overdue,
        due_from=due_from,
        due_to=due_to,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@router.get("/stats", response_model=schemas.TaskStats)
def task_stats(
    assignee_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.read")),
):
    return task_repo.get_stats(db, assignee_id=assignee_id)


@router.post("", response_model=schemas.Task, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: schemas.TaskCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    _user, current_user = user_context
    task = task_repo.create_task(db, payload, created_by_id=current_user.get("collaborator_id"))
    emit("task.created", _event_data(task), background_tasks)
    return task


@router.get("/{task_id}", response_model=schemas.TaskDetail)
def get_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.read")),
):
    return _get_or_404(db, task_id)


@router.put("/{task_id}", response_model=schemas.Task)
def update_task(
    task_id: uuid.UUID,
    payload: schemas.TaskUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    _user, current_user = user_context
    previous_status = _get_or_404(db, task_id).status
    task = task_repo.update_task(db, task_id, payload, actor_id=current_user.get("collaborator_id"))
    if task.status != previous_status:
        emit(
            "task.status_changed",
            {**_event_data(task), "previous_status": previous_status},
            background_tasks,
        )
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.delete")),
):
    if not task_repo.delete_task(db, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return None


@router.post("/{task_id}/comments", response_model=schemas.TaskComment, status_code=status.HTTP_201_CREATED)
def add_comment(
    task_id: uuid.UUID,
    payload: schemas.TaskCommentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    _user, current_user = user_context
    task = _get_or_404(db, task_id)
    return task_repo.add_comment(db, task, payload, author_id=current_user.get("collaborator_id"))


@router.delete("/{task_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    task = _get_or_404(db, task_id)
    if not task_repo.delete_comment(db, task, comment_id):
        raise HTTPException(status_code=404, detail="Comment not found")
    return None


# Attachments

@router.get("/{task_id}/attachments", response_model=List[schemas.TaskAttachment])
def list_attachments(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.read")),
):
    return _get_or_404(db, task_id).attachments


@router.post("/{task_id}/attachments", response_model=schemas.TaskAttachment, status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    task_id: uuid.UUID,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    _user, current_user = user_context
    task = _get_or_404(db, task_id)
    if not file.filename:
        raise HTTPException(status_code=400, detail="File name is required")
    data = await file.read()
    return task_repo.add_attachment(
        db,
        task,
        file_name=file.filename,
        content_type=file.content_type,
        data=data,
        uploaded_by_id=current_user.get("collaborator_id"),
    )


@router.get("/{task_id}/attachments/{attachment_id}/download")
def download_attachment(
    task_id: uuid.UUID,
    attachment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.read")),
):
    attachment = task_repo.get_attachment(db, _get_or_404(db, task_id), attachment_id)
    if not attachment:
        raise HTTPException(status_code=404, detail="Attachment not found")
    path = attachment_storage.resolve(attachment.storage_path)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found on server")
    return FileResponse(
        path,
        media_type=attachment.content_type or "application/octet-stream",
        filename=attachment.file_name,
    )


@router.delete("/{task_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attachment(
    task_id: uuid.UUID,
    attachment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    _user, current_user = user_context
    task = _get_or_404(db, task_id)
    if not task_repo.delete_attachment(db, task, attachment_id, actor_id=current_user.get("collaborator_id")):
        raise HTTPException(status_code=404, detail="Attachment not found")
    return None
