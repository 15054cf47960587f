import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from app.core.config import CORS_ORIGINS, LOG_LEVEL
from app.core.logging import configure_logging
from app.db.session import engine
from app.models.base import Base
from app.models import models  # noqa: F401  registers tables on Base.metadata
from app.api import projects, subcontractors
from app.services.errors import ProvisioningError

logger = logging.getLogger(__name__)

app = FastAPI(title="SiteOps Subcontractor Provisioning", version="0.3.0")


class NoCacheMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        return response


app.add_middleware(NoCacheMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(projects.router)
app.include_router(subcontractors.router)


@app.exception_handler(ProvisioningError)
async def provisioning_error_handler(request: Request, exc: ProvisioningError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
        message = f"Invalid value for {loc}: {errors[0].get('msg')}" if loc else errors[0].get("msg", message)
    return JSONResponse(status_code=400, content={"success": False, "error": message})


@app.on_event("startup")
def startup():
    configure_logging(LOG_LEVEL)
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready")


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
