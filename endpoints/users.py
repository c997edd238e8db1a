from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from database import get_db
from endpoints.logs import log_request
from endpoints.responses import create_response
from schemas.user import SignIn, UserCreate, UserOut
from services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post("")
async def create_user(request: Request, body: UserCreate, db: Session = Depends(get_db)):
    await log_request(request, "Create user", context={"email": body.email})
    user = user_service.create_user(db, body.email, body.firstName, body.lastName, body.identityId)
    return create_response(201, UserOut.from_model(user), "User created successfully")


@router.post("/sign-in")
async def sign_in(request: Request, body: SignIn, db: Session = Depends(get_db)):
    """Provision-on-first-sign-in for users coming from the hosted identity provider."""
    await log_request(request, "Sign in", context={"email": body.email})
    user, created = user_service.sign_in(db, body.email, body.firstName, body.lastName, body.identityId)
    if created:
        return create_response(201, UserOut.from_model(user), "User created successfully")
    return create_response(200, UserOut.from_model(user), "User retrieved successfully")


@router.get("/{user_id}")
async def get_user(request: Request, user_id: str, db: Session = Depends(get_db)):
    await log_request(request, "Get user", user_id)
    user = user_service.get_user(db, user_id)
    return create_response(200, UserOut.from_model(user), "User retrieved successfully")
