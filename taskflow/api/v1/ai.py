from fastapi import APIRouter, Depends, HTTPException, Request
from typing import Optional
from pydantic import BaseModel

from ...core.auth import get_optional_user
from ...core.permissions import Action, authorize
from ...models.user import User
from ...services.llm_provider import AiService
from ...services.rate_limiter import RateGuard

router = APIRouter()


class GenerateRequest(BaseModel):
    prompt: Optional[str] = None


class GenerateResponse(BaseModel):
    response: str


def get_rate_guard(request: Request) -> RateGuard:
    return request.app.state.rate_guard


def get_ai_service() -> AiService:
    return AiService()


async def rate_limited_principal(
    current_user: Optional[User] = Depends(get_optional_user),
    rate_guard: RateGuard = Depends(get_rate_guard)
) -> Optional[User]:
    """Admit the caller through the rate guard; anonymous callers share one bucket"""

    if current_user is not None:
        authorize(current_user, Action.USE_AI)
    rate_guard.check(current_user.email if current_user is not None else None)
    return current_user


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    request: GenerateRequest,
    current_user: Optional[User] = Depends(rate_limited_principal),
    ai_service: AiService = Depends(get_ai_service)
):
    """Generate text for a prompt; each user gets a fixed number of calls per interval"""

    if request.prompt is None or not request.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is required")

    response = await ai_service.generate_content(request.prompt)
    return GenerateResponse(response=response)
