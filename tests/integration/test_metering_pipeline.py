"""End-to-end metering pipeline through the HTTP stack.

  HTTP request -> JWT auth -> OrgAccessGuard -> UsageEnforcer -> handler

Uses in-memory adapters (no external services required). Each scenario
checks both the response and what did (or did not) reach the ledger.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest
from fastapi import APIRouter, FastAPI, Request
from httpx import ASGITransport, AsyncClient

from src.gateway.api.usage import create_usage_router
from src.gateway.app import create_app
from src.gateway.middleware.auth import encode_token
from src.gateway.middleware.org_access import OrgAccessGuard
from src.gateway.middleware.usage import UsageEnforcer, metered
from src.infra.auth.rbac import Role
from src.infra.billing.meter import UsageMeter
from src.infra.billing.plans import Resource
from src.infra.billing.usage import InMemoryUsageStore
from tests.fakes import CountingTenancyStore, YieldingUsageStore

_JWT_SECRET = "test-integration-metering-secret-32b"  # noqa: S105


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class Pipeline:
    """App plus the stores behind it."""

    def __init__(self, usage: InMemoryUsageStore | None = None) -> None:
        self.tenancy = CountingTenancyStore()
        self.usage = usage or InMemoryUsageStore()
        self.clock = _Clock(datetime(2024, 3, 15, 12, tzinfo=UTC))
        self.meter = UsageMeter(tenancy=self.tenancy, usage=self.usage, clock=self.clock)
        self.handled: list[str] = []
        self.app = self._build()

    def _build(self) -> FastAPI:
        app = create_app(jwt_secret=_JWT_SECRET)
        member = OrgAccessGuard(tenancy=self.tenancy)
        admin = OrgAccessGuard(tenancy=self.tenancy, required_role=Role.ADMIN)
        router = APIRouter(prefix="/api/v1/orgs/{organization_id}")

        @router.post(
            "/tasks",
            dependencies=metered(member, UsageEnforcer(meter=self.meter, resource=Resource.TASKS)),
        )
        async def create_task(organization_id: str, request: Request) -> dict[str, int]:
            self.handled.append(f"task:{organization_id}")
            return {"used": request.state.usage.total}

        @router.post(
            "/reports",
            dependencies=metered(admin, UsageEnforcer(meter=self.meter, resource=Resource.POSTS)),
        )
        async def publish_report(organization_id: str) -> dict[str, bool]:
            self.handled.append(f"report:{organization_id}")
            return {"published": True}

        app.include_router(router)
        app.include_router(create_usage_router(tenancy=self.tenancy, meter=self.meter))
        return app

    def client(self) -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test")


def _headers(user_id: str) -> dict[str, str]:
    token = encode_token(user_id=user_id, email=f"{user_id}@example.com", secret=_JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def pipeline() -> Pipeline:
    p = Pipeline()
    p.tenancy.add_organization("org123", plan="free")
    for user in ("alice", "bob", "carol"):
        p.tenancy.add_membership(user_id=user, organization_id="org123")
    return p


@pytest.mark.integration
class TestFreePlanCeiling:
    async def test_ten_succeed_then_402(self, pipeline: Pipeline) -> None:
        async with pipeline.client() as client:
            for expected in range(1, 11):
                resp = await client.post("/api/v1/orgs/org123/tasks", headers=_headers("alice"))
                assert resp.status_code == 200
                assert resp.json() == {"used": expected}

            resp = await client.post("/api/v1/orgs/org123/tasks", headers=_headers("alice"))

        assert resp.status_code == 402
        body = resp.json()
        assert body["error"] == "USAGE_LIMIT_EXCEEDED"
        assert (body["plan"], body["limit"], body["current"]) == ("free", 10, 10)
        assert len(pipeline.handled) == 10
        assert await pipeline.usage.sum_usage("org123", "tasks", datetime(2024, 3, 1, tzinfo=UTC)) == 10

    async def test_ceiling_shared_across_users(self, pipeline: Pipeline) -> None:
        async with pipeline.client() as client:
            for user in ("alice", "bob"):
                for _ in range(5):
                    resp = await client.post("/api/v1/orgs/org123/tasks", headers=_headers(user))
                    assert resp.status_code == 200
            resp = await client.post("/api/v1/orgs/org123/tasks", headers=_headers("carol"))

        assert resp.status_code == 402
        assert pipeline.usage.row_count() == 2

    async def test_usage_endpoint_reflects_pipeline(self, pipeline: Pipeline) -> None:
        async with pipeline.client() as client:
            for _ in range(3):
                await client.post("/api/v1/orgs/org123/tasks", headers=_headers("bob"))
            resp = await client.get("/api/v1/usage/org123", headers=_headers("carol"))

        assert resp.json()["usage"] == {"tasks": 3}
        assert resp.json()["plan"] == "free"


@pytest.mark.integration
class TestShortCircuits:
    async def test_insufficient_role_before_usage(self, pipeline: Pipeline) -> None:
        async with pipeline.client() as client:
            resp = await client.post("/api/v1/orgs/org123/reports", headers=_headers("alice"))

        assert resp.status_code == 403
        assert resp.json()["error"] == "INSUFFICIENT_ROLE"
        assert pipeline.usage.row_count() == 0
        assert pipeline.handled == []

    async def test_insufficient_role_even_when_quota_exhausted(self, pipeline: Pipeline) -> None:
        async with pipeline.client() as client:
            for _ in range(10):
                await client.post("/api/v1/orgs/org123/tasks", headers=_headers("alice"))
            resp = await client.post("/api/v1/orgs/org123/reports", headers=_headers("alice"))
        assert resp.status_code == 403

    async def test_admin_passes_both_stages(self, pipeline: Pipeline) -> None:
        pipeline.tenancy.add_membership(user_id="dana", organization_id="org123", role="admin")
        async with pipeline.client() as client:
            resp = await client.post("/api/v1/orgs/org123/reports", headers=_headers("dana"))
        assert resp.status_code == 200
        assert pipeline.handled == ["report:org123"]

    async def test_missing_credential_runs_no_stage(self, pipeline: Pipeline) -> None:
        async with pipeline.client() as client:
            resp = await client.post("/api/v1/orgs/org123/tasks")

        assert resp.status_code == 401
        assert resp.json()["error"] == "MISSING_CREDENTIAL"
        assert pipeline.tenancy.membership_lookups == 0
        assert pipeline.usage.row_count() == 0

    async def test_non_member_gets_403_and_no_write(self, pipeline: Pipeline) -> None:
        async with pipeline.client() as client:
            resp = await client.post("/api/v1/orgs/org123/tasks", headers=_headers("mallory"))

        assert resp.status_code == 403
        assert resp.json()["error"] == "ACCESS_DENIED"
        assert pipeline.usage.row_count() == 0
        assert pipeline.handled == []


@pytest.mark.integration
class TestPeriodRollover:
    async def test_march_usage_does_not_count_in_april(self, pipeline: Pipeline) -> None:
        pipeline.clock.now = datetime(2024, 3, 31, 22, 0, tzinfo=UTC)
        async with pipeline.client() as client:
            for _ in range(10):
                await client.post("/api/v1/orgs/org123/tasks", headers=_headers("alice"))

            pipeline.clock.now = datetime(2024, 4, 1, 0, 1, tzinfo=UTC)
            resp = await client.post("/api/v1/orgs/org123/tasks", headers=_headers("alice"))

        assert resp.status_code == 200
        assert resp.json() == {"used": 1}
        assert pipeline.usage.row_count() == 2


@pytest.mark.integration
class TestConcurrentRequests:
    async def test_same_user_same_day_not_lost(self) -> None:
        pipeline = Pipeline(usage=YieldingUsageStore())
        pipeline.tenancy.add_organization("org123", plan="enterprise")
        pipeline.tenancy.add_membership(user_id="alice", organization_id="org123")

        async with pipeline.client() as client:
            responses = await asyncio.gather(
                *(
                    client.post("/api/v1/orgs/org123/tasks", headers=_headers("alice"))
                    for _ in range(20)
                )
            )

        assert all(r.status_code == 200 for r in responses)
        assert pipeline.usage.row_count() == 1
        assert await pipeline.usage.sum_usage("org123", "tasks", datetime(2024, 3, 1, tzinfo=UTC)) == 20
