import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings, assert_secure_configuration
from .core.logging import configure_logging
from .core.database import init_database
from .api.routes.v1.health import router as health_router
from .api.routes.v1.prompts import router as prompts_router
from .api.routes.v1.tags import router as tags_router
from .api.routes.v1.prompt_tags import router as prompt_tags_router
from .api.routes.v1.templates import router as templates_router
from .integrations.openai_client import get_llm_client


configure_logging(settings.log_level)
log = logging.getLogger("pocket.main")


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    log.debug("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request data",
            "details": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                for err in exc.errors()
            ],
        },
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Every error body is a top-level object with an "error" key
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


def create_app() -> FastAPI:
    app = FastAPI(title="Prompt Pocket API", version="0.1.0")

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    # Routers v1
    app.include_router(health_router, prefix=f"{settings.api_prefix}/v1", tags=["health"])
    app.include_router(prompts_router, prefix=f"{settings.api_prefix}/v1", tags=["prompts"])
    app.include_router(tags_router, prefix=f"{settings.api_prefix}/v1", tags=["tags"])
    app.include_router(prompt_tags_router, prefix=f"{settings.api_prefix}/v1", tags=["prompt-tags"])
    app.include_router(templates_router, prefix=f"{settings.api_prefix}/v1", tags=["templates"])

    @app.on_event("startup")
    def _startup() -> None:
        # Block unsafe defaults outside development
        assert_secure_configuration()
        init_database()

    @app.on_event("shutdown")
    def _shutdown() -> None:
        if get_llm_client.cache_info().currsize:
            get_llm_client().close()

    return app


app = create_app()
