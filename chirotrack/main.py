"""
Main FastAPI application entry point.

``create_app`` builds every collaborator once and keeps it on ``app.state``.
Run with::

    uvicorn chirotrack.main:create_app --factory
"""
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from .auth.federated import IdentityVerifier, create_identity_verifier
from .auth.router import router as auth_router
from .auth.tokens import SessionTokenService
from .config import Settings, get_settings
from .core.middleware import setup_middlewares
from .core.notifier import EmailNotifier, Notifier
from .core.security import utc_now
from .database import Base, create_db_engine, create_session_factory
from .exceptions import register_exception_handlers
from .patients.router import router as patients_router
from .pose_detections.router import router as pose_detections_router
from .users.router import router as users_router

# Models must be imported before create_all
from .auth import models as auth_models  # noqa: F401
from .core import audit_models  # noqa: F401
from .patients import models as patient_models  # noqa: F401
from .pose_detections import models as pose_detection_models  # noqa: F401

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_factory: Optional[sessionmaker] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
    notifier: Optional[Notifier] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the ChiroTrack API.

    Args:
        settings: Configuration; loaded from the environment when omitted
        session_factory: Database session factory; built from
            ``settings.database_url`` when omitted
        identity_verifier: Federated token verifier; Firebase when configured
        notifier: Reset code delivery; SMTP email when omitted
        clock: Current-time source for the OTP engine and revocation ledger

    Returns:
        FastAPI: The configured application
    """
    if settings is None:
        load_dotenv()
        settings = get_settings()
    configure_logging(settings.log_level)

    if session_factory is None:
        engine = create_db_engine(settings.database_url)
        Base.metadata.create_all(bind=engine)
        session_factory = create_session_factory(engine)

    app = FastAPI(
        title=settings.app_name,
        description="Authentication, password reset and patient records for ChiroTrack",
        version=API_VERSION,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.clock = clock or utc_now
    app.state.token_service = SessionTokenService(
        settings.secret_key,
        algorithm=settings.algorithm,
        expires_delta=timedelta(days=settings.session_token_expire_days),
    )
    app.state.identity_verifier = identity_verifier or create_identity_verifier(settings)
    app.state.notifier = notifier or EmailNotifier(settings)

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_middlewares(app)

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(patients_router)
    app.include_router(pose_detections_router)

    @app.get("/")
    def root():
        """
        Service banner with the endpoint map.
        """
        return {
            "success": True,
            "message": f"Welcome to {settings.app_name}",
            "version": API_VERSION,
            "endpoints": {
                "auth": "/api/auth",
                "users": "/api/users",
                "patients": "/api/patients",
                "poseDetections": "/api/pose-detections",
                "health": "/health",
            },
        }

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint for monitoring.
        """
        return {"success": True, "status": "healthy", "timestamp": utc_now().isoformat()}

    logger.info(f"{settings.app_name} ready")
    return app
