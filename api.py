"""HTTP API for the library reservation backend.

All request and response bodies are JSON. Authenticated endpoints expect an
``Authorization: Bearer <token>`` header carrying a token from
``/api/auth/register`` or ``/api/auth/login``.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import BaseModel, Field, field_validator, model_validator

from config import settings
from context import AppContext, build_context
from errors import LibraryError
from models import Book, new_id, utc_now
from security import MAX_PASSWORD_BYTES, password_fits
from validators import EmailValidator, TextValidator

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


# --- Models ---
class RegisterModel(BaseModel):
    name: str
    email: str
    phone_number: str
    password: str = Field(min_length=6)

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        if not TextValidator.validate_name(v):
            raise ValueError("Name must contain at least one letter")
        return TextValidator.sanitize_text(v)

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        if not EmailValidator.is_valid_email(v):
            raise ValueError("Invalid email address")
        return EmailValidator.normalize_email(v)

    @field_validator("phone_number")
    @classmethod
    def _check_phone(cls, v: str) -> str:
        if not TextValidator.validate_phone_number(v):
            raise ValueError("Invalid phone number")
        return v.strip()

    @field_validator("password")
    @classmethod
    def _check_password(cls, v: str) -> str:
        if not password_fits(v):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class LoginModel(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return EmailValidator.normalize_email(v)


class RegisterResponse(BaseModel):
    token: str
    user_id: str


class LoginResponse(BaseModel):
    token: str
    is_admin: bool


class UserModel(BaseModel):
    id: str
    name: str
    email: str
    phone_number: str | None = None
    is_approved: bool
    is_admin: bool
    created_at: str | None = None


class UpdateUserModel(BaseModel):
    name: str | None = None
    email: str | None = None
    phone_number: str | None = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not TextValidator.validate_name(v):
            raise ValueError("Name must contain at least one letter")
        return TextValidator.sanitize_text(v) if v is not None else None

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not EmailValidator.is_valid_email(v):
            raise ValueError("Invalid email address")
        return EmailValidator.normalize_email(v) if v is not None else None

    @field_validator("phone_number")
    @classmethod
    def _check_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not TextValidator.validate_phone_number(v):
            raise ValueError("Invalid phone number")
        return v


class BookModel(BaseModel):
    id: str
    title: str
    author: str
    isbn: str | None = None
    description: str | None = None
    created_at: str | None = None


class BookCreateModel(BaseModel):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    isbn: str | None = None
    description: str | None = None


class ReservationCreateModel(BaseModel):
    book_id: str
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self) -> "ReservationCreateModel":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ReservationStatusModel(BaseModel):
    status: str


class ReservationModel(BaseModel):
    id: str
    user_id: str
    book_id: str
    start_date: date
    end_date: date
    status: str
    created_at: str | None = None


class ResolvedReservationModel(BaseModel):
    id: str
    user: UserModel
    book: BookModel
    start_date: date
    end_date: date
    status: str
    created_at: str | None = None


class NotificationModel(BaseModel):
    id: str
    user_id: str
    message: str
    type: str
    is_read: bool
    created_at: str | None = None


# --- Security ---
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    id: str
    is_admin: bool = False


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    ctx: AppContext = Depends(get_context),
) -> CurrentUser:
    """Dependency that decodes the bearer token into the calling user."""
    unauthorized = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        claims = ctx.tokens.decode(credentials.credentials)
    except JWTError:
        raise unauthorized
    user = claims.get("user") or {}
    if not user.get("id"):
        raise unauthorized
    return CurrentUser(id=user["id"], is_admin=bool(user.get("isAdmin", False)))


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Dependency that only lets admins through."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


# --- Application ---
def create_app(context: Optional[AppContext] = None) -> FastAPI:
    ctx = context or build_context()
    ctx.initialize()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{ctx.settings.app_name} {ctx.settings.app_version} starting, db={ctx.db_file}")
        yield
        logger.info(f"{ctx.settings.app_name} shutting down")

    app = FastAPI(title=ctx.settings.app_name, version=ctx.settings.app_version, lifespan=lifespan)
    app.state.context = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ctx.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        return response

    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return PlainTextResponse("Server Error", status_code=500)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # --- Health ---
    @app.get("/health")
    def health(ctx: AppContext = Depends(get_context)):
        """Lightweight health endpoint with a quick database round trip."""
        db_ok = True
        try:
            ctx.books.list_all()
        except Exception as e:
            logger.warning(f"Health check database probe failed: {e}")
            db_ok = False
        return {
            "status": "healthy" if db_ok else "degraded",
            "timestamp": utc_now(),
            "db": db_ok,
        }

    # --- Auth ---
    @app.post("/api/auth/register", response_model=RegisterResponse)
    def register(payload: RegisterModel, ctx: AppContext = Depends(get_context)):
        result = ctx.accounts.register(payload.name, payload.email, payload.phone_number, payload.password)
        return RegisterResponse(token=result.token, user_id=result.user_id)

    @app.post("/api/auth/login", response_model=LoginResponse)
    def login(payload: LoginModel, ctx: AppContext = Depends(get_context)):
        result = ctx.accounts.login(payload.email, payload.password)
        return LoginResponse(token=result.token, is_admin=result.is_admin)

    # --- Users ---
    @app.get("/api/users", response_model=List[UserModel], dependencies=[Depends(require_admin)])
    def list_users(ctx: AppContext = Depends(get_context)):
        return [UserModel(**u.to_dict()) for u in ctx.accounts.get_all_users()]

    @app.get("/api/users/{user_id}", response_model=UserModel)
    def get_user(user_id: str, _: CurrentUser = Depends(get_current_user), ctx: AppContext = Depends(get_context)):
        return UserModel(**ctx.accounts.get_user(user_id).to_dict())

    @app.put("/api/users/{user_id}", response_model=UserModel)
    def update_user(
        user_id: str,
        update: UpdateUserModel,
        current: CurrentUser = Depends(get_current_user),
        ctx: AppContext = Depends(get_context),
    ):
        user = ctx.accounts.update_user(
            user_id,
            current.id,
            name=update.name,
            email=update.email,
            phone_number=update.phone_number,
        )
        return UserModel(**user.to_dict())

    @app.put("/api/users/{user_id}/approve", dependencies=[Depends(require_admin)])
    def approve_user(user_id: str, ctx: AppContext = Depends(get_context)):
        ctx.accounts.approve_user(user_id)
        return {"message": "User approved successfully"}

    # --- Books ---
    @app.get("/api/books", response_model=List[BookModel], dependencies=[Depends(get_current_user)])
    def list_books(
        q: Optional[str] = Query(None, description="Search title or author"),
        ctx: AppContext = Depends(get_context),
    ):
        return [BookModel(**b.to_dict()) for b in ctx.books.list_all(q)]

    @app.get("/api/books/{book_id}", response_model=BookModel, dependencies=[Depends(get_current_user)])
    def get_book(book_id: str, ctx: AppContext = Depends(get_context)):
        book = ctx.books.find_by_id(book_id)
        if not book:
            raise HTTPException(status_code=404, detail="Book not found")
        return BookModel(**book.to_dict())

    @app.post("/api/books", response_model=BookModel, dependencies=[Depends(require_admin)])
    def add_book(payload: BookCreateModel, ctx: AppContext = Depends(get_context)):
        book = Book(
            id=new_id(),
            title=payload.title.strip(),
            author=payload.author.strip(),
            isbn=payload.isbn,
            description=payload.description,
            created_at=utc_now(),
        )
        ctx.books.add(book)
        return BookModel(**book.to_dict())

    # --- Reservations ---
    @app.post("/api/reservations", response_model=ReservationModel)
    def create_reservation(
        payload: ReservationCreateModel,
        current: CurrentUser = Depends(get_current_user),
        ctx: AppContext = Depends(get_context),
    ):
        reservation = ctx.reservations.create_reservation(
            current.id, payload.book_id, payload.start_date, payload.end_date
        )
        return ReservationModel(**reservation.to_dict())

    @app.get("/api/reservations", response_model=List[ResolvedReservationModel])
    def list_reservations(current: CurrentUser = Depends(require_admin), ctx: AppContext = Depends(get_context)):
        return [ResolvedReservationModel(**r.to_dict()) for r in ctx.reservations.get_reservations(current.is_admin)]

    @app.get("/api/reservations/{reservation_id}", response_model=ResolvedReservationModel)
    def get_reservation(
        reservation_id: str,
        current: CurrentUser = Depends(get_current_user),
        ctx: AppContext = Depends(get_context),
    ):
        reservation = ctx.reservations.get_reservation(reservation_id, current.id, current.is_admin)
        return ResolvedReservationModel(**reservation.to_dict())

    @app.put("/api/reservations/{reservation_id}", response_model=ReservationModel)
    def update_reservation_status(
        reservation_id: str,
        payload: ReservationStatusModel,
        current: CurrentUser = Depends(require_admin),
        ctx: AppContext = Depends(get_context),
    ):
        reservation = ctx.reservations.update_reservation_status(reservation_id, payload.status, current.is_admin)
        return ReservationModel(**reservation.to_dict())

    # --- Notifications ---
    @app.get("/api/notifications", response_model=List[NotificationModel])
    def get_notifications(current: CurrentUser = Depends(get_current_user), ctx: AppContext = Depends(get_context)):
        return [NotificationModel(**n.to_dict()) for n in ctx.notifications.get_notifications(current.id)]

    @app.put("/api/notifications/{notification_id}/read", response_model=NotificationModel)
    def mark_notification_read(
        notification_id: str,
        current: CurrentUser = Depends(get_current_user),
        ctx: AppContext = Depends(get_context),
    ):
        return NotificationModel(**ctx.notifications.mark_read(notification_id, current.id).to_dict())


app = create_app()
