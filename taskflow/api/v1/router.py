from fastapi import APIRouter
from .projects import router as projects_router
from .sprints import router as sprints_router
from .tasks import router as tasks_router
from .invitations import router as invitations_router
from .members import router as members_router
from .ai import router as ai_router

api_router = APIRouter()

# Include all sub-routers
api_router.include_router(projects_router, prefix="/projects", tags=["projects"])
api_router.include_router(sprints_router, tags=["sprints"])
api_router.include_router(tasks_router, tags=["tasks"])
api_router.include_router(invitations_router, tags=["invitations"])
api_router.include_router(members_router, tags=["members"])
api_router.include_router(ai_router, prefix="/ai", tags=["ai"])
