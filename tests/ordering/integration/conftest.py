import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.routes import cart_router, checkout_router
from protean.integrations.fastapi import register_exception_handlers
from shared.http import register_storefront_exception_handlers


@pytest.fixture()
def client(checkout):
    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(checkout_router)
    register_exception_handlers(app)
    register_storefront_exception_handlers(app)
    return TestClient(app)
