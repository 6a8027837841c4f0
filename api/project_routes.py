import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.auth import get_current_username
from database.db_session import get_db
from schemas import PageResponse, ProjectRequest, ProjectResponse
from services.project_service import ProjectService

logger = logging.getLogger("api.projects")
router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("", response_model=ProjectResponse)
def create_project(payload: ProjectRequest, db: Session = Depends(get_db), username: str = Depends(get_current_username)):
    project = ProjectService(db).create(username, payload)
    logger.info("Created project %s for user %s", project.id, username)
    return project


@router.get("", response_model=PageResponse[ProjectResponse])
def list_projects(
    page: int = 0,
    size: int = 10,
    db: Session = Depends(get_db),
    username: str = Depends(get_current_username),
):
    return ProjectService(db).list_projects(username, page, size)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(project_id: int, db: Session = Depends(get_db), username: str = Depends(get_current_username)):
    return ProjectService(db).get(username, project_id)


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    payload: ProjectRequest,
    db: Session = Depends(get_db),
    username: str = Depends(get_current_username),
):
    return ProjectService(db).update(username, project_id, payload)


@router.delete("/{project_id}")
def delete_project(project_id: int, db: Session = Depends(get_db), username: str = Depends(get_current_username)):
    ProjectService(db).delete(username, project_id)
    logger.info("Deleted project %s for user %s", project_id, username)
    return {"status": "deleted", "project_id": project_id}
