from __future__ import annotations

import os

import httpx
import pytest


def _localstack_healthy(endpoint_url: str) -> bool:
    try:
        resp = httpx.get(endpoint_url.rstrip("/") + "/_localstack/health", timeout=1.5)
    except httpx.HTTPError:
        return False
    return resp.is_success


@pytest.fixture(scope="session", autouse=True)
def localstack_env() -> None:
    """Point boto3 at LocalStack unless the environment already says otherwise."""

    os.environ.setdefault("USE_LOCALSTACK", "true")
    os.environ.setdefault("ENDPOINT_URL", "http://localhost:4566")
    os.environ.setdefault("AWS_REGION", "eu-west-1")
    os.environ.setdefault("HISTORY_BACKEND", "s3")

    # boto3 refuses to sign requests without credentials, even for LocalStack.
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")


@pytest.fixture(scope="session")
def require_localstack(localstack_env: None) -> str:
    endpoint_url = os.environ.get(
        "ENDPOINT_URL",
        os.environ.get("LOCALSTACK_ENDPOINT_URL", "http://localhost:4566"),
    )
    if not _localstack_healthy(endpoint_url):
        msg = f"LocalStack not reachable at {endpoint_url}"

        # CI starts LocalStack, so a missing one there is a real failure.
        if os.getenv("CI") or os.getenv("REQUIRE_LOCALSTACK"):
            pytest.fail(msg, pytrace=False)

        pytest.skip(f"{msg}; skipping integration tests")
    return endpoint_url
