import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from drivebroker.core.config import get_settings
from drivebroker.core.errors import register_error_handlers
from drivebroker.models import Base
from drivebroker.models.database import engine
from drivebroker.routers import auth, broker, files

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="drivebroker")

# The browser calls the broker cross-origin from the asset host
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "content-type"],
)

register_error_handlers(app)

# include our routers
app.include_router(auth.router)
app.include_router(broker.router)
app.include_router(files.router)


@app.get("/health")
def health():
    return {"status": "ok"}
