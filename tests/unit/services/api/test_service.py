"""Unit tests for services.api.service module -- service logic.

Tests:
- Api service initialization
- render_result() status code mapping
- FastAPI endpoints via TestClient
- Run cycle statistics and server task monitoring
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from relaytrace.models import (
    CanonicalAddress,
    Match,
    QueryOutcome,
    QueryResponse,
    QueryResult,
)
from relaytrace.models.constants import ServiceName
from relaytrace.services.api.service import INPUT_ERRORS, OUTCOME_HEADER, Api, render_result


LOOKUP = "relaytrace.services.api.service.lookup"
MORIA_FP = "9695DFC35FFEB861329B9F1AB04C46397020CE31"


def _positive() -> QueryResult:
    match = Match(
        valid_after=1590969600,
        fingerprint=MORIA_FP,
        addresses=frozenset({CanonicalAddress.from_text("86.59.21.38")}),
        nickname="moria1",
        exit=False,
    )
    return QueryResult(
        outcome=QueryOutcome.POSITIVE,
        response=QueryResponse(
            query_address="86.59.21.38",
            query_date="2020-06-01",
            first_date_in_database="2020-05-01",
            last_date_in_database="2020-06-30",
            relevant_statuses=True,
            matches=(match,),
        ),
    )


# ============================================================================
# Api Service Tests
# ============================================================================


class TestApi:
    def test_service_name(self) -> None:
        assert Api.SERVICE_NAME == ServiceName.API

    def test_init(self, api_service: Api) -> None:
        assert api_service._requests_total == 0
        assert api_service._requests_failed == 0
        assert api_service._server_task is None


class TestRenderResult:
    @pytest.mark.parametrize("outcome", list(INPUT_ERRORS))
    def test_input_errors_are_400(self, outcome: QueryOutcome) -> None:
        response = render_result(QueryResult(outcome=outcome))
        assert response.status_code == 400

    def test_server_problem_is_500(self) -> None:
        response = render_result(QueryResult(outcome=QueryOutcome.SERVER_PROBLEM))
        assert response.status_code == 500

    def test_positive_is_200_with_header(self) -> None:
        response = render_result(_positive())
        assert response.status_code == 200
        assert response.headers[OUTCOME_HEADER] == "positive"


# ============================================================================
# FastAPI Endpoint Tests
# ============================================================================


class TestApiEndpoints:
    def test_health(self, test_client: TestClient) -> None:
        resp = test_client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_positive(self, test_client: TestClient, api_service: Api) -> None:
        with patch(LOOKUP, new_callable=AsyncMock, return_value=_positive()) as mock_lookup:
            resp = test_client.get(
                "/query.json", params={"ip": "86.59.21.38", "timestamp": "2020-06-01"}
            )
        assert resp.status_code == 200
        assert resp.headers[OUTCOME_HEADER] == "positive"
        data = resp.json()
        assert data["version"] == "1.0"
        assert data["matches"][0]["timestamp"] == "2020-06-01 00:00:00"
        assert data["matches"][0]["fingerprint"] == MORIA_FP
        mock_lookup.assert_awaited_once_with(api_service._store, "86.59.21.38", "2020-06-01")

    def test_missing_params_passed_as_none(self, test_client: TestClient) -> None:
        result = QueryResult(outcome=QueryOutcome.NO_ADDRESS)
        with patch(LOOKUP, new_callable=AsyncMock, return_value=result) as mock_lookup:
            resp = test_client.get("/query.json")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing ip parameter.", "outcome": "no_address"}
        assert mock_lookup.call_args.args[1:] == (None, None)

    @pytest.mark.parametrize(
        ("outcome", "message"),
        [
            (QueryOutcome.NO_DATE, "Missing timestamp parameter."),
            (QueryOutcome.INVALID_ADDRESS, "Invalid ip parameter."),
            (QueryOutcome.INVALID_DATE, "Invalid timestamp parameter."),
            (QueryOutcome.DATE_TOO_RECENT, "Timestamp too recent."),
        ],
    )
    def test_input_errors(
        self, test_client: TestClient, outcome: QueryOutcome, message: str
    ) -> None:
        with patch(LOOKUP, new_callable=AsyncMock, return_value=QueryResult(outcome=outcome)):
            resp = test_client.get("/query.json", params={"ip": "x", "timestamp": "y"})
        assert resp.status_code == 400
        assert resp.json()["error"] == message

    def test_server_problem(self, test_client: TestClient) -> None:
        result = QueryResult(outcome=QueryOutcome.SERVER_PROBLEM)
        with patch(LOOKUP, new_callable=AsyncMock, return_value=result):
            resp = test_client.get("/query.json", params={"ip": "1.2.3.4", "timestamp": "x"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "Database error."

    @pytest.mark.parametrize(
        "outcome",
        [
            QueryOutcome.DATABASE_EMPTY,
            QueryOutcome.DATE_OUT_OF_RANGE,
            QueryOutcome.NO_DATA_FOR_WINDOW,
            QueryOutcome.NEGATIVE,
        ],
    )
    def test_informational_outcomes_are_200(
        self, test_client: TestClient, outcome: QueryOutcome
    ) -> None:
        result = QueryResult(
            outcome=outcome,
            response=QueryResponse(query_address="10.1.2.3", query_date="2020-06-01"),
        )
        with patch(LOOKUP, new_callable=AsyncMock, return_value=result):
            resp = test_client.get(
                "/query.json", params={"ip": "10.1.2.3", "timestamp": "2020-06-01"}
            )
        assert resp.status_code == 200
        assert resp.headers[OUTCOME_HEADER] == outcome.value
        assert "matches" not in resp.json()

    def test_nearby(self, test_client: TestClient) -> None:
        result = QueryResult(
            outcome=QueryOutcome.NEARBY,
            response=QueryResponse(
                query_address="86.59.21.99",
                query_date="2020-06-01",
                nearby_addresses=("86.59.21.38",),
            ),
        )
        with patch(LOOKUP, new_callable=AsyncMock, return_value=result):
            resp = test_client.get(
                "/query.json", params={"ip": "86.59.21.99", "timestamp": "2020-06-01"}
            )
        assert resp.json()["nearby_addresses"] == ["86.59.21.38"]

    def test_timeout(self, test_client: TestClient) -> None:
        with patch(LOOKUP, new_callable=AsyncMock, side_effect=TimeoutError):
            resp = test_client.get(
                "/query.json", params={"ip": "1.2.3.4", "timestamp": "2020-06-01"}
            )
        assert resp.status_code == 504
        assert resp.json() == {"error": "Query timeout."}

    def test_unhandled_error(self, test_client: TestClient) -> None:
        with patch(LOOKUP, new_callable=AsyncMock, side_effect=RuntimeError("bug")):
            resp = test_client.get("/query.json", params={"ip": "1.2.3.4", "timestamp": "x"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}

    def test_request_counters(self, test_client: TestClient, api_service: Api) -> None:
        result = QueryResult(outcome=QueryOutcome.INVALID_DATE)
        with patch(LOOKUP, new_callable=AsyncMock, return_value=result):
            test_client.get("/query.json", params={"ip": "1.2.3.4", "timestamp": "x"})
        test_client.get("/health")
        assert api_service._requests_total == 2
        assert api_service._requests_failed == 1
        assert api_service._outcomes[QueryOutcome.INVALID_DATE] == 1


class TestCors:
    def test_cors_headers(self, mock_store) -> None:
        from relaytrace.services.api import ApiConfig

        service = Api(store=mock_store, config=ApiConfig(cors_origins=["https://example.org"]))
        client = TestClient(service._build_app())
        resp = client.get("/health", headers={"Origin": "https://example.org"})
        assert resp.headers["access-control-allow-origin"] == "https://example.org"

    def test_no_cors_by_default(self, test_client: TestClient) -> None:
        resp = test_client.get("/health", headers={"Origin": "https://example.org"})
        assert "access-control-allow-origin" not in resp.headers


# ============================================================================
# Run Cycle Tests
# ============================================================================


class TestApiRun:
    async def test_run_resets_counters(self, api_service: Api) -> None:
        api_service._requests_total = 10
        api_service._requests_failed = 2
        api_service._outcomes[QueryOutcome.POSITIVE] = 8
        await api_service.run()
        assert api_service._requests_total == 0
        assert api_service._requests_failed == 0
        assert not api_service._outcomes

    async def test_run_increments_counters(self, api_service: Api) -> None:
        api_service._requests_total = 3
        api_service._outcomes[QueryOutcome.NEARBY] = 3
        with patch.object(api_service, "inc_counter") as inc:
            await api_service.run()
        names = {call.args[0]: call.args[1] for call in inc.call_args_list}
        assert names["requests_total"] == 3
        assert names["outcome_nearby"] == 3

    async def test_run_detects_crashed_server(self, api_service: Api) -> None:
        task = MagicMock()
        task.done.return_value = True
        task.cancelled.return_value = False
        task.exception.return_value = OSError("address in use")
        api_service._server_task = task
        with pytest.raises(RuntimeError, match="stopped unexpectedly"):
            await api_service.run()

    async def test_context_manager_starts_and_stops_server(self, api_service: Api) -> None:
        started = asyncio.Event()

        async def fake_server(app) -> None:
            started.set()
            await asyncio.Event().wait()

        with patch.object(api_service, "_run_server", fake_server):
            async with api_service:
                await started.wait()
                assert api_service._server_task is not None
                assert not api_service._server_task.done()
        assert api_service._server_task is None
