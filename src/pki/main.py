"""
FastAPI 应用入口点。
"""

from loguru import logger

from fastapi import FastAPI
from src.pki.chain.router import router as chain_router
from src.pki.factory.router import router as factory_router
from src.pki.trust.router import router as trust_router

from src.pki.config import config

app = FastAPI(title="PKI Certificate Chain Service")

app.include_router(factory_router, prefix="/v1")
app.include_router(chain_router, prefix="/v1")
app.include_router(trust_router, prefix="/v1")

logger.info(f"config: {config.model_dump_json(indent=4, exclude={'keystore_password'})}")
