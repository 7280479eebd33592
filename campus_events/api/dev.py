from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, model_validator

from campus_events.api.deps import Gateway
from campus_events.models import Society, UserRole

router = APIRouter(prefix="/dev", tags=["dev"])


class CreateUserIn(BaseModel):
    email: str
    name: str | None = None
    role: UserRole = UserRole.STUDENT
    society: Society | None = None

    @model_validator(mode="after")
    def _society_matches_role(self):
        if self.role == UserRole.ORGANIZER and self.society is None:
            raise ValueError("organizers need a society")
        if self.role == UserRole.STUDENT and self.society is not None:
            raise ValueError("students do not belong to a society")
        return self


class CreateUserOut(BaseModel):
    user_id: str
    token: str


@router.post("/users", response_model=CreateUserOut, status_code=201)
async def dev_create_user(payload: CreateUserIn, gateway: Gateway):
    email = payload.email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=422, detail="invalid email")

    user = await gateway.create_user({**payload.model_dump(), "email": email})
    return CreateUserOut(user_id=str(user.id), token=f"dev_{user.id}")
