# freightflow_auth/app.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import AuthConfig, setup_logging
from .database import Database
from .exceptions import AuthError, StoreUnavailableError
from .notifier import LoggingSender, NotificationSender, SendGridSender
from .security import PasswordHasher, ResetTokenIssuer
from .service import AuthResult, AuthService
from .store import CredentialStore

logger = logging.getLogger(__name__)


# --- Pydantic Schemas ---
# Every field is optional so that presence checks happen in the service
class RegisterData(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginData(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordData(BaseModel):
    email: Optional[str] = None


class TokenData(BaseModel):
    token: Optional[str] = None


class ResetPasswordData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword")


ERROR_STATUS = {
    AuthError.MISSING_FIELDS: status.HTTP_400_BAD_REQUEST,
    AuthError.USER_EXISTS: status.HTTP_409_CONFLICT,
    AuthError.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthError.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    AuthError.INVALID_OR_EXPIRED_TOKEN: status.HTTP_400_BAD_REQUEST,
    AuthError.NOTIFICATION_FAILURE: status.HTTP_502_BAD_GATEWAY,
}


def to_response(result: AuthResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if not result.ok:
        return JSONResponse(
            status_code=ERROR_STATUS[result.error],
            content={"message": result.message, "error": result.error.value},
        )
    return JSONResponse(
        status_code=success_status, content={"message": result.message, **result.data}
    )


def build_service(config: AuthConfig, database: Database) -> AuthService:
    sender: NotificationSender
    if config.sendgrid_configured:
        sender = SendGridSender(
            api_key=config.sendgrid_api_key,
            from_email=config.mail_from_email,
            from_name=config.mail_from_name,
            valid_minutes=config.reset_token_ttl_minutes,
        )
    else:
        sender = LoggingSender()

    return AuthService(
        store=CredentialStore(database),
        hasher=PasswordHasher(rounds=config.bcrypt_rounds),
        issuer=ResetTokenIssuer(expire_minutes=config.reset_token_ttl_minutes),
        sender=sender,
        reset_link_base_url=config.reset_link_base_url,
    )


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


# Routers
auth_router = APIRouter(prefix="/api", tags=["Authentication"])


# ------------------------------------------------------------------
# --- ROUTES DEFINITIONS ---
# ------------------------------------------------------------------
@auth_router.post("/register")
def register_user(data: RegisterData, service: AuthService = Depends(get_auth_service)):
    result = service.register(
        name=data.name,
        email=data.email,
        phone=data.phone,
        password=data.password,
        role=data.role,
    )
    return to_response(result, success_status=status.HTTP_201_CREATED)


@auth_router.post("/login")
def login(data: LoginData, service: AuthService = Depends(get_auth_service)):
    return to_response(service.login(data.email, data.password))


@auth_router.post("/forgot-password")
def forgot_password(
    data: ForgotPasswordData, service: AuthService = Depends(get_auth_service)
):
    return to_response(service.forgot_password(data.email))


@auth_router.post("/verify-token")
def verify_token(data: TokenData, service: AuthService = Depends(get_auth_service)):
    return to_response(service.verify_token(data.token))


@auth_router.post("/reset-password")
def reset_password(
    data: ResetPasswordData, service: AuthService = Depends(get_auth_service)
):
    return to_response(service.reset_password(data.token, data.new_password))


@auth_router.get("/health", tags=["Health"])
def health() -> dict:
    return {"status": "ok"}


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error("Request %s failed: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"message": "Server error"},
    )


# ------------------------------------------------------------------
# --- APPLICATION SETUP ---
# ------------------------------------------------------------------
def create_app(
    config: Optional[AuthConfig] = None, service: Optional[AuthService] = None
) -> FastAPI:
    """Build the API.

    With no ``service`` the app owns its database: it is connected on
    startup and closed on shutdown.
    """
    config = config or AuthConfig.from_env()
    database = None
    if service is None:
        database = Database(config.database_url)
        service = build_service(config, database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if database is not None:
            database.connect()
        try:
            yield
        finally:
            if database is not None:
                database.close()

    app = FastAPI(title="FreightFlow Auth Service", lifespan=lifespan)
    app.state.auth_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)
    app.include_router(auth_router)
    return app


def main() -> None:
    import uvicorn

    config = AuthConfig.from_env()
    setup_logging(config.log_level)
    app = create_app(config)
    logger.info("Server running: http://%s:%s", config.api_host, config.api_port)
    uvicorn.run(app, host=config.api_host, port=config.api_port)


if __name__ == "__main__":
    main()
