import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core import db, responses
from core.errors import UserApiError
from users import router as users_router

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One pool per process, handed to routes through app.state.
    app.state.pool = await db.create_pool()
    try:
        await db.ping(app.state.pool)
        logger.info("database_connected")
    except db.StorageError as exc:
        logger.error("database_unreachable error=%s", exc)
    try:
        yield
    finally:
        await db.close_pool(app.state.pool)
        app.state.pool = None


app = FastAPI(lifespan=lifespan)

app.include_router(users_router, tags=["users"])


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = str(first.get("msg") or "invalid value")
    return f"Invalid request: {where}: {detail}" if where else f"Invalid request: {detail}"


@app.exception_handler(UserApiError)
async def user_api_error_handler(_: Request, exc: UserApiError):
    return responses.error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError):
    return responses.error(status.HTTP_400_BAD_REQUEST, _validation_message(exc))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException):
    return responses.error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error method=%s path=%s", request.method, request.url.path)
    return responses.error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Internal server error")


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return responses.message("app running successfully!")


def port() -> int:
    return db.env_int("PORT", DEFAULT_PORT)


def run() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    uvicorn.run(
        "main:app",
        host=os.environ.get("HOST", "0.0.0.0").strip() or "0.0.0.0",
        port=port(),
    )


if __name__ == "__main__":
    run()
