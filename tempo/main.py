from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from tempo.api.advice import router as advice_router
from tempo.api.environment import router as environment_router
from tempo.api.errors import request_validation_handler
from tempo.db.session import create_tables

app = FastAPI(title="Tempo AI")
app.add_exception_handler(RequestValidationError, request_validation_handler)


@app.on_event("startup")
def on_startup() -> None:
    create_tables()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api")
def api_root() -> dict[str, str]:
    return {"service": "Tempo AI API", "status": "ok"}


app.include_router(advice_router)
app.include_router(environment_router)
