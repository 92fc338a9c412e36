from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from filegate.config import get_settings
from filegate.database import init_db
from filegate.errors import FilegateError
from filegate.logging_config import logger, setup_logging
from filegate.routers import auth, file, user

setup_logging(get_settings().log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Filegate started")
    yield


app = FastAPI(title="filegate", lifespan=lifespan)

app.include_router(auth.router, tags=["Auth"])
app.include_router(user.router, tags=["User"])
app.include_router(file.router, tags=["Files"])


@app.exception_handler(FilegateError)
async def filegate_error_handler(request: Request, exc: FilegateError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.get("/")
def read_root():
    return "Server is running"
