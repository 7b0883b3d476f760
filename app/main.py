from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.access_controls import router as access_controls_router
from app.api.auth_flow import router as auth_flow_router
from app.api.devices import router as devices_router
from app.api.documents import router as documents_router
from app.api.emergency_access import router as emergency_access_router
from app.api.inactivity import router as inactivity_router
from app.api.nominees import router as nominees_router
from app.errors import register_error_handlers
from app.logging import configure_logging

app = FastAPI(title="Family Vault API")

configure_logging()
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(auth_flow_router)
_include_api_router(inactivity_router)
_include_api_router(nominees_router)
_include_api_router(documents_router)
_include_api_router(access_controls_router)
_include_api_router(devices_router)
_include_api_router(emergency_access_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
