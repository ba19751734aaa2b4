import logging

import duckdb
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from db import configure_logging, init_db
from routes.accounts import router as accounts_router
from routes.forecast import router as forecast_router
from routes.recurring import router as recurring_router
from routes.transactions import router as transactions_router
from services.errors import NotFoundError, UpstreamFeedError, ValidationError

app = FastAPI(title="Balance Forecaster")


@app.on_event("startup")
def startup():
    configure_logging()
    init_db()


# ---- Error mapping ----

@app.exception_handler(NotFoundError)
def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(ValidationError)
def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(UpstreamFeedError)
def upstream_handler(request: Request, exc: UpstreamFeedError):
    logging.error(f"Feed failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"error": str(exc)})


@app.exception_handler(duckdb.TransactionException)
@app.exception_handler(duckdb.ConstraintException)
def conflict_handler(request: Request, exc: duckdb.Error):
    # concurrent regeneration of the same account; the loser was rolled back
    logging.warning(f"Write conflict on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=409,
        content={"error": "Conflicting update, please retry"},
    )


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(accounts_router)
app.include_router(transactions_router)
app.include_router(recurring_router)
app.include_router(forecast_router)
