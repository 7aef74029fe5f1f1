import logging
from typing import Callable, Optional

from fastapi import FastAPI
import uvicorn

from src.config.settings import settings
from src.policy.api.policy_router import build_policy_router, header_user
from src.policy.services.policy_service import PolicyService


def create_app(service: PolicyService, current_user: Optional[Callable[..., str]] = None) -> FastAPI:
    logging.basicConfig(level=settings.LOG_LEVEL)
    app = FastAPI(title="expense-policy")
    app.include_router(build_policy_router(service, current_user or header_user))
    return app


def run_server(service: PolicyService, host: str = settings.API_HOST, port: int = settings.API_PORT):
    uvicorn.run(create_app(service), host=host, port=port)
