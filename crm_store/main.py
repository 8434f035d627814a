"""
CRM store API.
Configures logging, runs schema migrations on startup, brings up the backup
system and exposes it over HTTP.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm_store import config
from crm_store.context import BackupContext
from crm_store.routes import router as backups_router


def configure_logging() -> Path:
    """Log to a file (for fail2ban) and to the console"""
    log_dir = Path(config.LOG_DIR)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        # Fallback to local directory if no permissions for /var/log
        log_dir = Path(config.DEFAULT_LOG_DIRECTORY_DEV)
        log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / config.LOG_FILE

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler()
        ]
    )
    return log_path


log_path = configure_logging()
logger = logging.getLogger("crm_store")


def create_app(context: Optional[BackupContext] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context or BackupContext.from_config()
        # A failed migration is fatal: nothing may touch a half-migrated store
        ctx.start()
        app.state.backup_context = ctx
        logger.info(f"CRM store API started. Logging to: {log_path}")
        try:
            yield
        finally:
            logger.info("Shutting down CRM store API")
            ctx.shutdown()

    app = FastAPI(
        title="CRM Store API",
        description="Local database backups, retention and schema migrations",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth required)
    @app.get("/")
    async def root():
        return {"message": "CRM Store API", "status": "active"}

    app.include_router(backups_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("crm_store.main:app", host="0.0.0.0", port=8000, reload=False)
