"""FastAPI entrypoint for the Spooky Relay chat service."""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field
from starlette.middleware.sessions import SessionMiddleware

from app.constants import SESSION_ID_KEY, SPEECH_CONFIG
from app.errors import ConfigurationError, RelayError, ServiceUnavailable, Unauthorized
from app.runtime import RuntimeState
from app.settings import RuntimeSettings
from app.telemetry import (
    compose_admin_stats,
    compose_led_status,
    compose_public_stats,
    compose_query_log,
    compose_status,
)
from brain.llm_client import OllamaClient
from brain.relay import ModelBackend

logger = logging.getLogger("spooky_relay.main")

CachedText = Annotated[str, Field(max_length=4000)]


class ChatRequest(BaseModel):
    """Schema describing a chat message posted by the browser."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str | None = Field(default=None, description="User message; required.")
    character: str | None = Field(default=None, description="Character id; unknown ids use the default.")
    cached_messages: list[CachedText] = Field(
        default_factory=list,
        alias="cachedMessages",
        max_length=20,
        description="Browser-held recent prompts, used only to seed empty server context.",
    )
    cached_responses: list[CachedText] = Field(
        default_factory=list,
        alias="cachedResponses",
        max_length=20,
    )


class LoginRequest(BaseModel):
    password: str = Field(default="", max_length=512)


router = APIRouter()
bearer_scheme = HTTPBearer(auto_error=False)


def get_runtime(request: Request) -> RuntimeState:
    return request.app.state.runtime


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    runtime: RuntimeState = Depends(get_runtime),
) -> str:
    """Resolve the bearer token or fail with 401."""
    token = credentials.credentials if credentials is not None else None
    if not runtime.admin.authorize(token):
        raise Unauthorized("Unauthorized")
    return token  # type: ignore[return-value]


def _session_id(request: Request) -> str:
    session_id = request.session.get(SESSION_ID_KEY)
    if not isinstance(session_id, str) or not session_id:
        session_id = secrets.token_urlsafe(16)
        request.session[SESSION_ID_KEY] = session_id
    return session_id


@router.get("/ping")
async def ping(runtime: RuntimeState = Depends(get_runtime)) -> dict[str, Any]:
    """Simple health check endpoint."""
    return {"status": "alive", "paused": runtime.admin.paused}


@router.post("/api/chat")
async def chat(
    payload: ChatRequest,
    request: Request,
    runtime: RuntimeState = Depends(get_runtime),
) -> StreamingResponse:
    """Stream the character's reply as plain text chunks."""
    session_id = _session_id(request)
    stream = await runtime.relay.handle_chat(
        session_id,
        payload.character,
        payload.prompt,
        cached_prompts=payload.cached_messages,
        cached_responses=payload.cached_responses,
    )
    headers = {
        "X-Total-Queries": str(stream.total_queries),
        "X-Session-Queries": str(stream.session_queries),
        "X-Cooldown-Remaining": f"{stream.cooldown_remaining:.1f}",
        "X-Character": stream.character.id,
        "Cache-Control": "no-cache",
    }
    return StreamingResponse(stream.chunks, media_type="text/plain; charset=utf-8", headers=headers)


@router.get("/api/characters")
async def list_characters(runtime: RuntimeState = Depends(get_runtime)) -> dict[str, Any]:
    if runtime.admin.paused:
        raise ServiceUnavailable("SpookyGPT is resting right now. Please come back later.")
    return {"characters": runtime.characters.listing()}


@router.get("/api/stats")
async def public_stats(runtime: RuntimeState = Depends(get_runtime)) -> dict[str, Any]:
    return compose_public_stats(runtime.ledger)


@router.get("/api/speech-config")
async def speech_config() -> dict[str, Any]:
    """Voice table consumed by the browser's speech synthesis."""
    return SPEECH_CONFIG


@router.post("/api/admin/login")
async def admin_login(
    payload: LoginRequest,
    request: Request,
    runtime: RuntimeState = Depends(get_runtime),
) -> dict[str, Any]:
    caller = request.client.host if request.client is not None else "unknown"
    session = runtime.admin.login(payload.password, caller=caller)
    return {"token": session.token, "success": True}


@router.post("/api/admin/logout")
async def admin_logout(
    token: str = Depends(require_admin),
    runtime: RuntimeState = Depends(get_runtime),
) -> dict[str, Any]:
    runtime.admin.logout(token)
    runtime.led_bridge.disconnect(token)
    return {"success": True}


@router.api_route("/api/admin/stats", methods=["GET", "POST"])
async def admin_stats(
    _: str = Depends(require_admin),
    runtime: RuntimeState = Depends(get_runtime),
) -> dict[str, Any]:
    return compose_admin_stats(runtime)


@router.api_route("/api/admin/queries", methods=["GET", "POST"])
async def admin_queries(
    limit: int | None = None,
    _: str = Depends(require_admin),
    runtime: RuntimeState = Depends(get_runtime),
) -> dict[str, Any]:
    return compose_query_log(runtime, limit)


@router.api_route("/api/admin/pause", methods=["GET", "POST"])
async def admin_pause(
    _: str = Depends(require_admin),
    runtime: RuntimeState = Depends(get_runtime),
) -> dict[str, Any]:
    runtime.admin.pause()
    return {"success": True, "paused": True}


@router.api_route("/api/admin/unpause", methods=["GET", "POST"])
async def admin_unpause(
    _: str = Depends(require_admin),
    runtime: RuntimeState = Depends(get_runtime),
) -> dict[str, Any]:
    runtime.admin.unpause()
    return {"success": True, "paused": False}


@router.api_route("/api/admin/status", methods=["GET", "POST"])
async def admin_status(
    _: str = Depends(require_admin),
    runtime: RuntimeState = Depends(get_runtime),
) -> dict[str, Any]:
    return compose_status(runtime)


@router.get("/api/admin/led/status")
async def led_status(
    token: str = Depends(require_admin),
    runtime: RuntimeState = Depends(get_runtime),
) -> dict[str, Any]:
    """Polled by the accessory bridge app; each bearer token is one poller."""
    return compose_led_status(runtime, token)


async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    headers: dict[str, str] = {}
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        headers["Retry-After"] = str(max(1, int(round(retry_after))))
    return JSONResponse(status_code=exc.status_code, content=exc.as_payload(), headers=headers)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    runtime: RuntimeState = app.state.runtime
    logger.info(
        "Spooky relay ready (model=%s, cooldown=%s queries/%ss, led policy=%s)",
        runtime.settings.llm_model,
        runtime.cooldown.threshold,
        runtime.cooldown.duration,
        runtime.led_bridge.policy.value,
    )
    try:
        yield
    finally:
        closer = getattr(runtime.backend, "aclose", None)
        if closer is not None:
            await closer()
        logger.info("Spooky relay stopped")


def create_app(
    settings: RuntimeSettings | None = None,
    *,
    backend: ModelBackend | None = None,
) -> FastAPI:
    """Build the application; refuses to start without an admin password."""
    settings = settings or RuntimeSettings.load()
    if not settings.admin_password:
        raise ConfigurationError("SPOOKY_ADMIN_PASSWORD must be set before starting the server.")
    if backend is None:
        backend = OllamaClient(settings.llm_endpoint, model=settings.llm_model, timeout=settings.llm_timeout)
        logger.info("Configured Ollama backend at %s", settings.llm_endpoint)
    app = FastAPI(title="Spooky Relay", lifespan=_lifespan)
    app.state.runtime = RuntimeState.build(settings, backend)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="spooky_session",
        same_site="lax",
    )
    app.add_exception_handler(RelayError, _relay_error_handler)
    app.include_router(router)
    return app


if __name__ == "__main__":  # pragma: no cover - manual launch
    import uvicorn

    runtime_settings = RuntimeSettings.load()
    logging.basicConfig(
        level=getattr(logging, runtime_settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(create_app(runtime_settings), host=runtime_settings.host, port=runtime_settings.port)


__all__ = ["create_app", "router"]
