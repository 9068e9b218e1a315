"""Storefront load testing: Locust entry point.

Prerequisites:
    python scripts/seed_products.py
    PRODUCT_STORE=sql PAYMENT_GATEWAYS=fake uvicorn app:app --app-dir src

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Pay-on-delivery only, headless (CI mode):
    locust -f loadtests/locustfile.py CashOnDeliveryUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest

Each simulated user sends its own X-Forwarded-For address, so rate limits
apply per user rather than to the whole run.
"""

import logging
import time

import requests
from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.checkout import CashOnDeliveryUser, CheckoutUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Print the health endpoint (cache backend status) when the test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    try:
        resp = requests.get(f"{environment.host}/health", timeout=5)
        print(f"[LOADTEST] Health: {resp.json()}\n")
    except (requests.RequestException, ValueError) as e:
        print(f"[LOADTEST] Could not fetch health: {e}\n")
