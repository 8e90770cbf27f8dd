"""Dispatch Load Testing — Locust entry point.

Usage:
    # Web UI:
    locust -f loadtests/locustfile.py

    # Headless (CI mode):
    locust -f loadtests/locustfile.py DispatchLifecycleUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.dispatch_lifecycle import DispatchLifecycleUser  # noqa: F401

logger = logging.getLogger("loadtest")

OBSERVATORY_URL = "http://localhost:9000/metrics"


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request.

    Shows "conflict: order status changed from pending to approved"
    instead of just "409".
    """
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print(f"[LOADTEST] Observatory metrics: {OBSERVATORY_URL}")
    print()


@events.test_stop.add_listener
def on_test_stop(**_kwargs):
    """Fetch and print Observatory metrics when test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    try:
        resp = requests.get(OBSERVATORY_URL, timeout=5)
        lines = [
            line
            for line in resp.text.split("\n")
            if any(keyword in line for keyword in ["protean_outbox", "protean_stream", "protean_broker"])
            and not line.startswith("#")
        ]
        if lines:
            print("\n[LOADTEST] Final infrastructure metrics:")
            for line in lines:
                print(f"  {line}")
        print()
    except Exception as e:
        print(f"[LOADTEST] Could not fetch Observatory metrics: {e}\n")
