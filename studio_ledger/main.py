from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from studio_ledger import config
from studio_ledger.database import engine
from studio_ledger.errors import LedgerError
from studio_ledger.log_config import setup_logging
from studio_ledger.models import Base
from studio_ledger.routers import auth, users, packages, registers, sessions

logger = setup_logging(config.LOG_LEVEL)

# 1. CREACIÓN AUTOMÁTICA DE TABLAS
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Studio Ledger",
    description="Control de sesiones, cajas y reparto de utilidades del estudio",
    version="1.0.0"
)

# 2. CONFIGURACIÓN DE CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 3. REGISTRO DE ROUTERS (BACKEND API)
app.include_router(auth.router, prefix="/api/auth", tags=["🔑 Autenticación"])
app.include_router(users.router, prefix="/api/users", tags=["👤 Usuarios"])
app.include_router(packages.router, prefix="/api/packages", tags=["📦 Paquetes"])
app.include_router(registers.router, prefix="/api/registers", tags=["💰 Cajas"])
app.include_router(sessions.router, prefix="/api/sessions", tags=["📸 Sesiones"])


# 4. MANEJO DE ERRORES
@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    # Los errores de negocio llegan tipados; Conflict lleva retryable=True
    if exc.status_code >= 500:
        logger.error("Error interno en %s %s: %s", request.method, request.url.path, exc.reason)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("shutdown")
def shutdown():
    engine.dispose()
    logger.info("Conexiones a la base de datos cerradas")
