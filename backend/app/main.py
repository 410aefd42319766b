import os
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.exception_handlers import RequestValidationError
from fastapi.exceptions import HTTPException
from dotenv import load_dotenv
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded

# Load environment variables and validate
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), '../.env'))

from app.database import engine, init_models
from app.api import auth, transaction, users, admin
from app.dependencies import build_transfer_service
from app.security import security_config, validate_environment
from app.services.rate_limit import limiter, rate_limit_exceeded_handler

validate_environment()

app = FastAPI(title="PeerPay Backend", version="0.1.0")
app.state.transfer_service = build_transfer_service()

# JSON error responses
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail if exc.detail else str(exc)})

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})

def jsonable_errors(exc: RequestValidationError):
    # Pydantic error contexts may carry exception instances
    return [{k: v for k, v in err.items() if k in ("type", "loc", "msg")} for err in exc.errors()]

# Security and rate limiting
security_config.apply_security_middleware(app)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Basic routes
@app.get("/")
def root():
    return {"message": "PeerPay API is running.", "status": "healthy"}

@app.head("/")
def root_head():
    return Response(status_code=200)

@app.get("/health")
def health_check():
    return {
        "status": "ok",
        "ledger": type(app.state.transfer_service.store).__name__,
        "risk_scorer": type(app.state.transfer_service.risk_scorer).__name__,
        "postgres": "connected" if engine is not None else "not configured",
    }

# Routers
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(transaction.router, prefix="/api")
app.include_router(admin.router, prefix="/api")

@app.on_event("startup")
async def on_startup():
    await init_models()
