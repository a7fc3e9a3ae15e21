from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from stockledger.api.errors import register_error_handlers
from stockledger.api.routes import audit, inventory, transactions
from stockledger.cache.redis_cache import get_redis
from stockledger.core.config import settings
from stockledger.core.observability import ObservabilityMiddleware, metrics_registry
from stockledger.db import session as db_session

app = FastAPI(title="Stock Ledger", version="1.0.0")
COMMON_ERROR_RESPONSES = {
    "400": "Bad Request",
    "404": "Not Found",
    "409": "Conflict",
    "503": "Service Unavailable",
}


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "If-Match", "X-Performed-By", "X-Request-ID"],
    expose_headers=["ETag", "X-Request-ID"],
)
app.add_middleware(
    ObservabilityMiddleware,
    registry=metrics_registry,
    exclude_paths={"/metrics", "/health"},
)

register_error_handlers(app)

app.include_router(inventory.router)
app.include_router(transactions.router)
app.include_router(audit.router)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    components = openapi_schema.setdefault("components", {})
    schemas = components.setdefault("schemas", {})
    schemas.setdefault(
        "ErrorResponse",
        {
            "title": "ErrorResponse",
            "type": "object",
            "properties": {
                "detail": {
                    "anyOf": [
                        {"type": "string"},
                        {"type": "array", "items": {"type": "object"}},
                        {"type": "object"},
                    ]
                },
                "code": {"type": "string"},
                "retryable": {"type": "boolean"},
            },
            "required": ["detail"],
        },
    )

    for path, path_item in openapi_schema.get("paths", {}).items():
        for method, operation in path_item.items():
            if method not in {"get", "post", "put", "patch", "delete", "options", "head"}:
                continue
            responses = operation.setdefault("responses", {})
            for status_code, description in COMMON_ERROR_RESPONSES.items():
                # /health devuelve su propio payload {"status","checks"} con 503
                if path == "/health" and status_code == "503":
                    continue
                responses.setdefault(
                    status_code,
                    {
                        "description": description,
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/ErrorResponse"}
                            }
                        },
                    },
                )

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


@app.get("/health")
def health():
    details = {"api": "ok"}
    failures: list[str] = []

    try:
        with db_session.SessionLocal() as db:
            db.execute(text("SELECT 1"))
        details["db"] = "ok"
    except Exception as exc:
        details["db"] = "error"
        details["db_error"] = str(exc)
        failures.append("db")

    if settings.cache_enabled:
        # La cache es opcional: se informa pero no degrada el servicio
        details["redis"] = "ok" if get_redis() is not None else "error"
    else:
        details["redis"] = "disabled"

    status = "ok" if not failures else "degraded"
    payload = {"status": status, "checks": details}
    status_code = 200 if not failures else 503
    return JSONResponse(payload, status_code=status_code)


@app.get("/metrics", response_class=PlainTextResponse)
def metrics():
    return PlainTextResponse(
        metrics_registry.render_prometheus(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
