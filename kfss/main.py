from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, Base
from .routers import appliances, session, estimates, pdf

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("kfss")

# Single key-value table, created on first start
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="KFSS Calculator",
    description="Kitchen fire suppression system estimating and quotation tool",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(appliances.router, prefix="/api")
app.include_router(session.router, prefix="/api")
app.include_router(estimates.router, prefix="/api")
app.include_router(pdf.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "kfss-calculator"}


@app.on_event("startup")
def log_startup():
    logger.info("KFSS Calculator started (database: %s)", engine.url.render_as_string(hide_password=True))
