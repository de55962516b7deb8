from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import socketio

from podhub.core.config import settings
from podhub.core.errors import ServiceError
from podhub.db.init_db import create_all_tables
from podhub.db.session import SessionLocal
from podhub.middleware.request_logging import RequestLoggingMiddleware
from podhub.modules.user_management.api.router import router as user_router
from podhub.modules.pods.api.router import router as pods_router
from podhub.modules.rooms.api.router import router as rooms_router
from podhub.modules.chats.api.router import router as chats_router
from podhub.modules.messages.api.router import router as messages_router
from podhub.modules.notifications.api.router import router as notifications_router
from podhub.modules.notifications.api.push_router import router as push_router
from podhub.modules.notifications.services.dispatcher import NotificationDispatcher
from podhub.modules.notifications.services.push import WebPushSender
from podhub.realtime.server import RealtimeServer

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting server in {settings.ENVIRONMENT} mode")

    bind = app.state.session_factory.kw.get("bind")
    if bind is not None:
        create_all_tables(bind)

    app.state.realtime.register()
    await app.state.dispatcher.start()
    try:
        yield
    finally:
        await app.state.dispatcher.shutdown()
        await app.state.realtime.shutdown()
        logger.info("Server stopped")


async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"errors": jsonable_encoder(exc.errors())})


def create_app(session_factory=None, push_sender=None) -> FastAPI:
    """
    Build the REST application and the services it shares with the socket server.

    The session factory, the realtime server and the notification dispatcher
    are kept on ``app.state`` and handed to endpoints through ``Depends``.
    """
    session_factory = session_factory or SessionLocal
    if push_sender is None:
        push_sender = WebPushSender(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        exception_handlers={
            ServiceError: service_error_handler,
            RequestValidationError: validation_error_handler,
        },
        debug=settings.DEBUG,
        description="Pods, rooms and direct messages with live delivery and notifications",
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=settings.BACKEND_CORS_ORIGINS)
    realtime = RealtimeServer(sio, session_factory)
    dispatcher = NotificationDispatcher(session_factory, realtime=realtime, push_sender=push_sender)
    realtime.dispatcher = dispatcher

    app.state.session_factory = session_factory
    app.state.realtime = realtime
    app.state.dispatcher = dispatcher

    app.add_middleware(RequestLoggingMiddleware)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routers
    app.include_router(user_router, prefix=f"{settings.API_V1_STR}/users", tags=["users"])
    app.include_router(pods_router, prefix=f"{settings.API_V1_STR}/pods", tags=["pods"])
    app.include_router(rooms_router, prefix=f"{settings.API_V1_STR}/rooms", tags=["rooms"])
    app.include_router(chats_router, prefix=f"{settings.API_V1_STR}/chats", tags=["chats"])
    app.include_router(messages_router, prefix=f"{settings.API_V1_STR}/messages", tags=["messages"])
    app.include_router(notifications_router, prefix=f"{settings.API_V1_STR}/notifications", tags=["notifications"])
    app.include_router(push_router, prefix=f"{settings.API_V1_STR}/push", tags=["push"])

    @app.get("/")
    async def root():
        return {
            "message": f"Welcome to {settings.PROJECT_NAME}",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "documentation": "/docs" if settings.DEBUG else None,
        }

    return app


def create_asgi_app(app: FastAPI) -> socketio.ASGIApp:
    """Serve Socket.IO under /socket.io and everything else from ``app``"""
    return socketio.ASGIApp(app.state.realtime.sio, other_asgi_app=app)


api = create_app()
app = create_asgi_app(api)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("podhub.main:app", host="0.0.0.0", port=8000, reload=True)
