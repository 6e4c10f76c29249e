from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, Header
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from tms.core.database import get_db
from tms.core.errors import Unauthorized
from tms.core.security import create_access_token, decode_access_token
from tms.core.session import Caller, SessionStore, get_session_store
from tms.schemas.profile import ProfileResponse
from tms.schemas.user import LoginResponse, Token, UserCredentials, UserSummary
from tms.services import identity

router = APIRouter(prefix="/account", tags=["account"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="account/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="account/token", auto_error=False)


async def get_current_caller(
    token: Annotated[str, Depends(oauth2_scheme)],
    store: SessionStore = Depends(get_session_store),
) -> Caller:
    payload = decode_access_token(token)
    if payload is None or not payload.get("sid"):
        raise Unauthorized("Could not validate credentials")

    caller = await store.get(payload["sid"])
    if caller is None or caller.username != payload.get("sub"):
        raise Unauthorized("Session expired or logged out")
    return caller


async def _open_session(user, store: SessionStore) -> str:
    sid = await store.open(user.id, user.username, user.role)
    return create_access_token(data={"sub": user.username, "sid": sid})


@router.post("/register")
async def register(user_in: UserCredentials, db: AsyncSession = Depends(get_db)):
    await identity.register(db, user_in.username, user_in.password)
    return {"message": "User registered successfully"}


@router.post("/register-admin")
async def register_admin(
    user_in: UserCredentials,
    admin_username: str = Header(..., alias="adminUsername"),
    admin_password: str = Header(..., alias="adminPassword"),
    db: AsyncSession = Depends(get_db),
):
    """Create an admin; an existing admin vouches with their credentials."""
    await identity.register_admin(
        db, user_in.username, user_in.password, admin_username, admin_password
    )
    return {"message": "Admin registered successfully"}


@router.post("/register-initial-admin")
async def register_initial_admin(user_in: UserCredentials, db: AsyncSession = Depends(get_db)):
    """One-time bootstrap of the first admin account."""
    await identity.register_initial_admin(db, user_in.username, user_in.password)
    return {"message": "Initial admin registered successfully"}


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: UserCredentials,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    user = await identity.authenticate(db, credentials.username, credentials.password)
    access_token = await _open_session(user, store)
    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        role=user.role,
        user=UserSummary.model_validate(user),
    )


@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    user = await identity.authenticate(db, form_data.username, form_data.password)
    access_token = await _open_session(user, store)
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
async def logout(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    store: SessionStore = Depends(get_session_store),
):
    """Drop the server-side session. Succeeds even without a valid token."""
    payload = decode_access_token(token) if token else None
    if payload and payload.get("sid"):
        await store.clear(payload["sid"])
    return {"message": "Logout successful"}


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Caller's profile with assigned and created tasks."""
    return await identity.get_profile(db, caller.username)


@router.get("/user-profile", response_model=UserSummary)
async def get_user_profile(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await identity.resolve_caller(db, caller)


@router.delete("/delete-user/{user_id}")
async def delete_user(
    user_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    await identity.delete_user(db, caller, user_id)
    await store.clear_user(user_id)
    return {"message": "User deleted successfully"}


@router.delete("/delete-own-account/{username}")
async def delete_own_account(
    username: str,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    await identity.delete_own_account(db, caller, username)
    await store.clear_user(caller.user_id)
    return {"message": "Account deleted successfully"}


@router.get("/non-admin-users", response_model=List[UserSummary])
async def get_non_admin_users(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await identity.list_non_admin_users(db, caller)
