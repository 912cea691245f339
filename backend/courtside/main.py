import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courtside import config
from courtside.database import init_db
from courtside.routes import fixtures, public, registrations, resources, runtime, tournaments

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Courtside Fixtures API")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if config.CORS_ORIGINS:
    _cors_origins.extend(o.strip() for o in config.CORS_ORIGINS.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(registrations.router, prefix="/api", tags=["registrations"])
app.include_router(resources.router, prefix="/api", tags=["resources"])
app.include_router(fixtures.router, prefix="/api", tags=["fixtures"])
# Runtime (match start + results; no schedule mutation)
app.include_router(runtime.router, prefix="/api", tags=["runtime"])
# Read-only views with names resolved
app.include_router(public.router, prefix="/api", tags=["public"])


@app.on_event("startup")
def on_startup():
    init_db()  # imports models and creates tables
    logger.info("Courtside Fixtures API started (%d routes)", len(app.routes))


@app.get("/api/health")
def health_check():
    return {"app_name": "Courtside Fixtures API", "status": "healthy"}
