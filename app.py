"""
FastAPI relay between the Telegram WebApp front-end and the Runware
text-to-image API.

Features:
- Image generation relayed over HTTPS or a persistent Runware WebSocket
- Static model / size catalog for the WebApp
- Telegram bot setup (webhook, commands, menu button) and webhook replies
- Health reporting
"""
import os
import sys
import time
import json
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from config import Config
from common.error_messages import ErrorCode, get_error_response
from common.exceptions import RelayError
from common.routes import router as health_router
from generation.routes import router as generation_router
from generation.services import warm_up_generator, shutdown_generator
from telegram_bot.routes import router as telegram_router
from utils.logger import get_logger

logger = get_logger("main")

# Sensitive fields that should be masked in logs
SENSITIVE_FIELDS = {
    "api_key", "token", "secret", "authorization", "password"
}
MAX_LOGGED_BODY = 2000


def mask_sensitive_data(data: Any, mask_value: str = "***MASKED***") -> Any:
    """
    Recursively mask sensitive fields in data structures.

    Args:
        data: Data to mask (dict, list, or JSON string)
        mask_value: Value to replace sensitive data with

    Returns:
        Data with sensitive fields masked
    """
    if isinstance(data, dict):
        return {
            key: mask_value if key.lower() in SENSITIVE_FIELDS else mask_sensitive_data(value, mask_value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive_data(item, mask_value) for item in data]
    if isinstance(data, str):
        try:
            parsed = json.loads(data)
        except ValueError:
            return data
        if isinstance(parsed, (dict, list)):
            return json.dumps(mask_sensitive_data(parsed, mask_value), ensure_ascii=False)
        return data
    return data


def _loggable_body(raw: bytes) -> str:
    text = mask_sensitive_data(raw.decode("utf-8", errors="replace"))
    if len(text) > MAX_LOGGED_BODY:
        text = text[:MAX_LOGGED_BODY] + "... [truncated]"
    return text


# Validate configuration on startup
try:
    Config.validate()
    logger.info("Configuration validated successfully")
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    logger.error("Set the required environment variables or add them to a .env file")

app = FastAPI(
    title="Runware WebApp Relay",
    description="Relays Telegram WebApp image generation requests to the Runware API and manages the Telegram bot.",
    version=Config.VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _allowed_methods(scope) -> set:
    """Methods of the API routes whose path matches this request."""
    allowed = set()
    for route in app.router.routes:
        methods = getattr(route, "methods", None)
        if methods and route.matches(scope)[0] != Match.NONE:
            allowed |= methods
    return allowed


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Wrong-method /api calls fall through to the WebApp mount, which only knows 404
    if exc.status_code in (404, 405) and request.url.path.startswith("/api/"):
        allowed = _allowed_methods(request.scope)
        if allowed and request.method not in allowed:
            message, status_code = get_error_response(ErrorCode.METHOD_NOT_ALLOWED)
            return JSONResponse(
                status_code=status_code,
                content={"error": message},
                headers={"Allow": ", ".join(sorted(allowed))},
            )
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    )
    message, status_code = get_error_response(ErrorCode.INVALID_PARAMETER, problems or None)
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions globally."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    message, status_code = get_error_response(ErrorCode.UNKNOWN_ERROR)
    return JSONResponse(status_code=status_code, content={"error": message})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request and response with timing; API bodies are masked and truncated."""
    start_time = time.time()
    is_api = request.url.path.startswith("/api/")

    log_msg = f"→ {request.method} {request.url.path} - Client: {request.client.host if request.client else 'unknown'}"
    if is_api and request.method in ("POST", "PUT", "PATCH"):
        body_bytes = await request.body()
        if body_bytes:
            log_msg += f"\n  Request Body: {_loggable_body(body_bytes)}"
    logger.info(log_msg)

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = (time.time() - start_time) * 1000
        logger.error(f"← {request.method} {request.url.path} - Error: {e} - Time: {process_time:.2f}ms")
        raise

    process_time = (time.time() - start_time) * 1000
    log_msg = f"← {request.method} {request.url.path} - Status: {response.status_code} - Time: {process_time:.2f}ms"

    # Static files are streamed; only buffer API responses
    if not is_api:
        logger.info(log_msg)
        return response

    response_body = b""
    async for chunk in response.body_iterator:
        response_body += chunk
    if response_body:
        log_msg += f"\n  Response Body: {_loggable_body(response_body)}"
    logger.info(log_msg)

    return Response(
        content=response_body,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type
    )


app.include_router(health_router)
app.include_router(generation_router)
app.include_router(telegram_router)
logger.debug("Health, generation and telegram routers included")

# The WebApp is mounted last so it never shadows /api routes
if os.path.isdir(Config.STATIC_DIR):
    app.mount("/", StaticFiles(directory=Config.STATIC_DIR, html=True), name="webapp")
    logger.info(f"WebApp served from {Config.STATIC_DIR}")
else:
    logger.warning(f"Static directory '{Config.STATIC_DIR}' not found, WebApp will not be served")


@app.on_event("startup")
async def startup_event():
    logger.info("=" * 80)
    logger.info("Relay starting up")
    logger.info(f"Environment: {Config.ENVIRONMENT}")
    logger.info(f"Runware transport: {Config.VENDOR_TRANSPORT}")
    logger.info(f"Host: {Config.HOST}:{Config.PORT}")
    logger.info("=" * 80)
    await warm_up_generator()


@app.on_event("shutdown")
async def shutdown_event():
    await shutdown_generator()
    logger.info("Relay shut down")


if __name__ == "__main__":
    try:
        Config.validate()
    except ValueError as e:
        if Config.is_production():
            logger.error(f"Refusing to start in production: {e}")
            sys.exit(1)
    logger.info(f"Starting server on {Config.HOST}:{Config.PORT}")
    uvicorn.run(
        "app:app",
        host=Config.HOST,
        port=Config.PORT,
        reload=not Config.is_production(),
        log_level="info"
    )
