"""
EMS API — Billing Endpoint Tests
==================================

What:  HTTP-level tests for POST /ems/billing and GET /ems/billing/{employee_id}.
How:   HTTPX AsyncClient over ASGI against a per-test SQLite database.

What we test:
    ✅ Create → 201 with echoed body and Location; read back → 200 with it
    ✅ Unknown / empty employee → 404 (not an empty 200)
    ✅ Duplicate entries both succeed and both come back
    ✅ Malformed bodies and non-integer ids are rejected by type binding
    ✅ Injection text in the path never reaches the database
    ✅ Store failure → 500, never a false 201
"""

import pytest

from ems_api.database import get_db_session


class TestRecordProjectWork:
    """POST /ems/billing"""

    @pytest.mark.asyncio
    async def test_create_returns_201_with_entry_and_location(self, test_client, billing_payload):
        response = await test_client.post("/ems/billing", json=billing_payload)

        assert response.status_code == 201
        assert response.json() == billing_payload
        assert response.headers["Location"] == "/ems/billing/5"

    @pytest.mark.asyncio
    async def test_create_then_read_back(self, test_client, billing_payload):
        """The documented example: POST then GET returns the same object."""
        await test_client.post("/ems/billing", json=billing_payload)

        response = await test_client.get("/ems/billing/5")

        assert response.status_code == 200
        assert response.json() == [billing_payload]

    @pytest.mark.asyncio
    async def test_duplicate_entries_both_succeed(self, test_client, billing_payload):
        first = await test_client.post("/ems/billing", json=billing_payload)
        second = await test_client.post("/ems/billing", json=billing_payload)

        assert first.status_code == 201
        assert second.status_code == 201
        response = await test_client.get("/ems/billing/5")
        assert response.json() == [billing_payload, billing_payload]

    @pytest.mark.asyncio
    async def test_non_integer_hours_rejected(self, test_client, billing_payload):
        billing_payload["hoursWorked"] = "forty"
        response = await test_client.post("/ems/billing", json=billing_payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_date_rejected(self, test_client, billing_payload):
        billing_payload["weekClosingDate"] = "last friday"
        response = await test_client.post("/ems/billing", json=billing_payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_missing_field_rejected(self, test_client, billing_payload):
        del billing_payload["projectId"]
        response = await test_client.post("/ems/billing", json=billing_payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_out_of_range_body_fields_rejected(self, test_client, billing_payload):
        for field in ("employeeId", "projectId", "hoursWorked"):
            response = await test_client.post(
                "/ems/billing", json=dict(billing_payload, **{field: 2**31})
            )
            assert response.status_code == 422, field

    @pytest.mark.asyncio
    async def test_store_failure_returns_500(self, test_client, unreachable_database, billing_payload):
        response = await test_client.post("/ems/billing", json=billing_payload)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert "Timekeeping" not in body["message"]
        assert "Location" not in response.headers

    @pytest.mark.asyncio
    async def test_service_keeps_serving_after_store_failure(
        self, app, test_client, unreachable_database, session_factory, billing_payload
    ):
        failed = await test_client.post("/ems/billing", json=billing_payload)
        assert failed.status_code == 500

        async def healthy_session():
            async with session_factory() as session:
                yield session

        app.dependency_overrides[get_db_session] = healthy_session
        response = await test_client.post("/ems/billing", json=billing_payload)
        assert response.status_code == 201


class TestGetBillingDetails:
    """GET /ems/billing/{employee_id}"""

    @pytest.mark.asyncio
    async def test_unknown_employee_returns_404(self, test_client):
        response = await test_client.get("/ems/billing/404")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_only_requested_employee_returned(self, test_client, billing_payload):
        await test_client.post("/ems/billing", json=billing_payload)
        other = dict(billing_payload, employeeId=6)
        await test_client.post("/ems/billing", json=other)

        response = await test_client.get("/ems/billing/6")

        assert response.json() == [other]

    @pytest.mark.asyncio
    async def test_employee_with_payroll_but_no_billing_is_404(self, test_client, billing_payload):
        """
        An employee known to payroll but with no billing rows gets the same
        404 as an employee nobody has heard of. This conflation is the
        current contract; change it deliberately, not as a side effect.
        """
        await test_client.post("/ems/payroll/add", json={"employeeId": 7, "payRateInUSD": 30})

        known = await test_client.get("/ems/billing/7")
        unknown = await test_client.get("/ems/billing/8")

        assert known.status_code == unknown.status_code == 404

    @pytest.mark.asyncio
    async def test_non_integer_id_rejected(self, test_client):
        response = await test_client.get("/ems/billing/abc")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_id_beyond_int_column_rejected(self, test_client):
        response = await test_client.get("/ems/billing/9223372036854775808")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_id_at_int_column_limit_accepted(self, test_client):
        response = await test_client.get("/ems/billing/2147483647")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_injection_in_path_rejected_and_table_intact(self, test_client, billing_payload):
        response = await test_client.get("/ems/billing/%22%3B%20DROP%20TABLE%20Timekeeping%3B--%22")
        assert response.status_code == 422

        created = await test_client.post("/ems/billing", json=billing_payload)
        assert created.status_code == 201
        assert (await test_client.get("/ems/billing/5")).status_code == 200

    @pytest.mark.asyncio
    async def test_store_failure_returns_500(self, test_client, unreachable_database):
        response = await test_client.get("/ems/billing/5")
        assert response.status_code == 500
