import logging
import os
import sys
import traceback

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src import config
from src.api.chat import chat_controller
from src.api.projects.projects_controller import router as projects_router
from src.api.system.system_controller import router as system_router
from src.utils.errors import AppError, MalformedResponse

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("backend_generator")

app = FastAPI()


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    app.openapi_schema = get_openapi(
        title="Backend Generator API",
        version="1.0.0",
        description="Generate backend projects from prompts and edit them with an LLM",
        routes=app.routes,
    )
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


def _error_body(message: str, exc: Exception) -> dict:
    body = {"detail": message}
    if not config.is_production():
        body["error"] = str(exc)
        body["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        if isinstance(exc, MalformedResponse):
            logger.error("%s %s: %s; fragment: %.2000s", request.method, request.url.path, exc, exc.fragment)
        else:
            logger.error("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.public_message, exc))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": "Invalid request body", "errors": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Internal server error", exc))


app.include_router(system_router)
app.include_router(projects_router)
app.include_router(chat_controller.router)

logger.info(
    "Projects directory: %s, provider key configured: %s",
    config.PROJECTS_DIR,
    bool(config.OPENROUTER_API_KEY),
)


def run():
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
