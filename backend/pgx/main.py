import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pgx.api.router import api_router
from pgx.core import logging as pgx_logging  # Initialize logging
from pgx.services.interpretation.registry import get_rule_registry

logger = logging.getLogger(__name__)

app = FastAPI(
    title="PGx Interpretation API",
    description="Genotype-to-phenotype interpretation for the hospital pharmacogenomics workflow",
    version="1.0.0"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API Routers
app.include_router(api_router, prefix="/api/v1")

@app.on_event("startup")
async def startup_event():
    # Preload and validate rule tables; an invalid table fails startup
    registry = get_rule_registry()
    logger.info("Rule tables ready: version %s (%s)", registry.version, ", ".join(registry.supported_genes()))

@app.get("/health")
async def health_check():
    registry = get_rule_registry()
    return {"status": "ok", "service": "PGx Interpretation", "rule_table_version": registry.version}
