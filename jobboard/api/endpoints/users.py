"""
User endpoints: authentication, own profile, and account administration.

Authentication:
- POST /signup, POST /login, POST /logout
- POST /forgotPassword, PATCH /resetPassword/{token}

Own account (any logged-in user):
- PATCH /updateMyPassword, GET /me, PATCH /updateMe, DELETE /deleteMe

Administration (admin, dev):
- GET /, GET /admins, GET /all, GET /all/admins, POST /admin
- GET|PATCH|DELETE /{id}
- DELETE /delete-all (dev only)

Successful login-type responses carry the JWT in the body and in the jwt cookie.
"""

import logging
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from jobboard import crud
from jobboard.core.celery_utils import queue_task_safely
from jobboard.core.config import settings
from jobboard.core.database import get_db
from jobboard.core.deps import get_current_user, require_dev, require_staff
from jobboard.core.exceptions import AppError, AuthenticationError, MailDeliveryError, NotFoundError
from jobboard.core.security import (
    as_utc,
    create_access_token,
    create_password_reset_token,
    hash_reset_token,
    utcnow,
    verify_password,
)
from jobboard.crud.base import success
from jobboard.models.user import DEFAULT_PHOTO, User, UserRole
from jobboard.schemas.user import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdateMeRequest,
    UpdatePasswordRequest,
    UserUpdateRequest,
)
from jobboard.services.email_service import email_service
from jobboard.services.images import ImageField, ImageHandler, read_request_payload
from jobboard.tasks.email_tasks import send_welcome_email_task

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)

user_photos = ImageHandler(
    crud.users,
    "users",
    [ImageField("photo", max_count=1, width=500, height=500, quality=85)],
    keep=[DEFAULT_PHOTO],
)

PASSWORD_FIELDS = {"password", "passwordConfirm", "password_confirm"}
PROFILE_FIELDS = {"name", "email", "country", "phone", "photo"}


def send_token(db: Session, user: User, status_code: int = 200) -> JSONResponse:
    """Issue a JWT for the user in the body and as an HTTP-only cookie."""
    token = create_access_token(data={"sub": str(user.id)})
    response = JSONResponse(
        status_code=status_code,
        content={
            "status": "success",
            "token": token,
            "data": {"user": crud.users.serialize_one(db, user)},
        },
    )
    response.set_cookie(
        key=settings.JWT_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
    )
    return response


def logout_response() -> JSONResponse:
    """Overwrite the auth cookie with a short-lived dummy value."""
    response = JSONResponse(content={"status": "success"})
    response.set_cookie(key=settings.JWT_COOKIE_NAME, value="loggedout", max_age=10, httponly=True)
    return response


# ---------------------------------------------------------------- authentication


@router.post("/signup", status_code=201)
def signup(body: SignupRequest, request: Request, db: Session = Depends(get_db)):
    """
    Register a new user account.

    The account always gets the user role. The welcome email is queued and
    never delays or fails the signup.
    """
    user = crud.users.insert(db, body.model_dump())
    crud.users.commit(db, body.model_dump())
    db.refresh(user)

    logger.info(f"New user registered: {user.email} (id: {user.id})")

    queued = queue_task_safely(
        send_welcome_email_task,
        to_email=user.email,
        user_name=user.name,
        url=f"{request.base_url}me",
    )
    if not queued:
        logger.error(f"Failed to queue welcome email for {user.email}")

    return send_token(db, user, status_code=201)


@router.post("/login")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email).first()
    if not user or not verify_password(body.password, user.password_hash):
        raise AuthenticationError("Incorrect email or password")
    if not user.active:
        raise AuthenticationError("This account has been deactivated.")

    logger.info(f"User logged in: {user.email}")
    return send_token(db, user)


@router.post("/logout")
def logout():
    return logout_response()


@router.post("/forgotPassword")
def forgot_password(body: ForgotPasswordRequest, request: Request, db: Session = Depends(get_db)):
    """
    Email a password reset link.

    Only the sha256 digest of the token is stored; it expires after
    PASSWORD_RESET_EXPIRE_MINUTES. If the email cannot be sent the token is
    cleared again and the request fails with 500.
    """
    user = db.query(User).filter(User.email == body.email).first()
    if not user:
        raise NotFoundError("There is no user with that email address.")

    token, token_hash, expires_at = create_password_reset_token()
    user.password_reset_token = token_hash
    user.password_reset_expires = expires_at
    db.commit()

    reset_url = f"{request.base_url}{settings.API_V1_STR.lstrip('/')}/users/resetPassword/{token}"
    sent = email_service.send_password_reset_email(
        to_email=user.email,
        user_name=user.name,
        reset_url=reset_url,
    )

    if not sent:
        user.password_reset_token = None
        user.password_reset_expires = None
        db.commit()
        logger.error(f"Failed to send password reset email to {user.email}")
        raise MailDeliveryError()

    logger.info(f"Password reset email sent to {user.email}")
    return {"status": "success", "message": "Token sent to email!"}


@router.patch("/resetPassword/{token}")
def reset_password(token: str, body: ResetPasswordRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.password_reset_token == hash_reset_token(token)).first()
    expires = as_utc(user.password_reset_expires) if user else None
    if not user or expires is None or expires <= utcnow():
        raise AppError("Token is invalid or has expired", 400)

    crud.users.apply_update(
        db,
        user,
        {
            "password": body.password,
            "password_reset_token": None,
            "password_reset_expires": None,
        },
    )
    db.commit()
    db.refresh(user)

    logger.info(f"Password reset for user: {user.email}")
    return send_token(db, user)


# ---------------------------------------------------------------- own account


@router.patch("/updateMyPassword")
def update_my_password(
    body: UpdatePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not verify_password(body.password_current, user.password_hash):
        raise AuthenticationError("Your current password is wrong.")

    crud.users.apply_update(db, user, {"password": body.password})
    db.commit()
    db.refresh(user)
    return send_token(db, user)


@router.get("/me")
def get_me(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return success(crud.users.serialize_one(db, user))


@router.patch("/updateMe")
async def update_me(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Update the caller's own profile (JSON or multipart with a photo file).

    Only name, email, country, phone and photo can change here; password
    fields are rejected.
    """
    payload, uploads = await read_request_payload(request)
    if payload.keys() & PASSWORD_FIELDS:
        raise AppError("This route is not for password updates. Please use /updateMyPassword.", 400)
    payload, pending = await user_photos.merge_uploads(payload, uploads, user.id)

    profile = {key: value for key, value in payload.items() if key in PROFILE_FIELDS}
    data = UpdateMeRequest.model_validate(profile).model_dump(exclude_unset=True)
    user_photos.save_update(db, user, data, pending)
    return success(crud.users.serialize_one(db, user), "Updated successfully")


@router.delete("/deleteMe", status_code=204)
def delete_me(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Deactivate the caller's account; the record is kept."""
    user.active = False
    db.commit()
    logger.info(f"User deactivated: {user.email}")
    return Response(status_code=204)


# ---------------------------------------------------------------- administration


@router.get("/", dependencies=[Depends(require_staff)])
def list_users(request: Request, db: Session = Depends(get_db)):
    return crud.users.get_all(db, request.query_params, opt_filter={"role": UserRole.USER})


@router.post("/", dependencies=[Depends(require_staff)])
def create_user():
    raise AppError("This route is not defined! Please use /signup instead", 500)


@router.get("/admins", dependencies=[Depends(require_staff)])
def list_admins(request: Request, db: Session = Depends(get_db)):
    return crud.users.get_all(db, request.query_params, opt_filter={"role": UserRole.ADMIN})


@router.get("/all/admins", dependencies=[Depends(require_staff)])
def list_all_admins(db: Session = Depends(get_db)):
    data = crud.users.get_all_no_pagination(db, opt_filter={"role": UserRole.ADMIN})
    return {"status": "success", "results": len(data), "data": data}


@router.get("/all", dependencies=[Depends(require_staff)])
def list_all_users(db: Session = Depends(get_db)):
    data = crud.users.get_all_no_pagination(db)
    return {"status": "success", "results": len(data), "data": data}


@router.post("/admin", status_code=201, dependencies=[Depends(require_staff)])
def create_admin(body: SignupRequest, db: Session = Depends(get_db)):
    return crud.users.create(db, {**body.model_dump(), "role": UserRole.ADMIN})


@router.delete("/delete-all", dependencies=[Depends(require_dev)])
def delete_all_users(db: Session = Depends(get_db)):
    """Remove every account except dev accounts, with their photos."""
    return user_photos.delete_all(db)


@router.get("/{id}", dependencies=[Depends(require_staff)])
def get_user(id: int, db: Session = Depends(get_db)):
    return crud.users.get_one(db, id)


@router.patch("/{id}", dependencies=[Depends(require_staff)])
def update_user(id: int, body: UserUpdateRequest, db: Session = Depends(get_db)):
    return crud.users.update(db, id, body)


@router.delete("/{id}", dependencies=[Depends(require_staff)])
def delete_user(id: int, db: Session = Depends(get_db)):
    return user_photos.delete_one(db, id)
