# services/project_service.py
from sqlalchemy.orm import Session

from database.models import Project, User
from database.stores import ProjectStore, UserStore
from errors import InvalidRequestError, ResourceNotFoundError
from schemas import PageResponse, ProjectRequest, ProjectResponse
from services.ownership import check_page, resolve_user


class ProjectService:
    """Projects are always looked up scoped to their owner, so foreign ids read as not found."""

    def __init__(self, db: Session):
        self.users = UserStore(db)
        self.projects = ProjectStore(db)

    def _response(self, project: Project) -> ProjectResponse:
        count, total = self.projects.invoice_stats(project.id)
        return ProjectResponse(
            id=project.id,
            name=project.name,
            description=project.description,
            created_at=project.created_at,
            invoice_count=count,
            total_cost=total,
        )

    def _owned_project(self, user: User, project_id: int) -> Project:
        project = self.projects.get_for_owner(project_id, user.id)
        if project is None:
            raise ResourceNotFoundError.for_id("Project", project_id)
        return project

    def create(self, username: str, request: ProjectRequest) -> ProjectResponse:
        if request.name is None or not request.name.strip():
            raise InvalidRequestError("Project name cannot be empty")
        user = resolve_user(self.users, username)
        project = Project(owner_id=user.id, name=request.name.strip(), description=request.description)
        return self._response(self.projects.add(project))

    def list_projects(self, username: str, page: int = 0, size: int = 10) -> PageResponse[ProjectResponse]:
        check_page(page, size)
        user = resolve_user(self.users, username)
        result = self.projects.list_by_owner(user.id, page, size)
        return PageResponse[ProjectResponse](
            content=[self._response(p) for p in result.items],
            page=result.page,
            size=result.size,
            total_elements=result.total,
            total_pages=result.total_pages,
        )

    def get(self, username: str, project_id: int) -> ProjectResponse:
        user = resolve_user(self.users, username)
        return self._response(self._owned_project(user, project_id))

    def update(self, username: str, project_id: int, request: ProjectRequest) -> ProjectResponse:
        user = resolve_user(self.users, username)
        project = self._owned_project(user, project_id)

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes:
            if not changes["name"].strip():
                raise InvalidRequestError("Project name cannot be empty")
            changes["name"] = changes["name"].strip()

        for field, value in changes.items():
            setattr(project, field, value)

        return self._response(self.projects.save(project))

    def delete(self, username: str, project_id: int) -> None:
        user = resolve_user(self.users, username)
        self.projects.delete(self._owned_project(user, project_id))
