import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from testdash.routes import api
from testdash.services.errors import StorageError

LOGGER = logging.getLogger("testdash.main")

app = FastAPI(title="TestDash Job Dashboard")
app.include_router(api.router)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Both storage tiers failed; report the local failure to the client."""
    LOGGER.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc) or "Storage unavailable"})


@app.get("/")
async def root() -> RedirectResponse:
    """Redirect visitors to the run list as the primary entry point."""
    return RedirectResponse(url="/api/runs", status_code=303)
