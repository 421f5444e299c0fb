"""Tests for Sense market operations."""

from unittest.mock import AsyncMock

import pytest

from recontrol.core.errors import ConfigurationAppError
from recontrol.services.sense_service import SenseService


class TestMarkets:
    @pytest.mark.asyncio
    async def test_list_markets_merges_availability(self, fake_db) -> None:
        fake_db.tables["sense_markets"] = [
            {"id": "m-1", "market_key": "austin-tx", "name": "Austin"},
            {"id": "m-2", "market_key": "boise-id", "name": "Boise"},
        ]
        fake_db.tables["sense_market_availability"] = [
            {
                "market_id": "m-1",
                "status": "available",
                "has_tracts": True,
                "updated_at": "2026-03-01T00:00:00Z",
            },
        ]

        austin, boise = await SenseService(fake_db).list_markets()

        assert austin.status == "available"
        assert austin.has_tracts is True
        assert austin.availability_updated_at == "2026-03-01T00:00:00Z"
        assert boise.status is None
        assert boise.availability_updated_at is None
        assert fake_db.calls[0][2]["order"] == "name"

    @pytest.mark.asyncio
    async def test_no_markets_skips_availability_read(self, fake_db) -> None:
        assert await SenseService(fake_db).list_markets() == []
        assert len(fake_db.calls) == 1

    @pytest.mark.asyncio
    async def test_publish_market_upserts_availability(self, fake_db) -> None:
        await SenseService(fake_db).publish_market("m-1")

        kind, table, args = fake_db.calls[0]
        assert (kind, table) == ("upsert", "sense_market_availability")
        assert args["on_conflict"] == "market_id"
        assert args["values"]["status"] == "available"
        assert args["values"]["market_id"] == "m-1"


class TestMarketRequests:
    @pytest.mark.asyncio
    async def test_list_requests_attaches_workspace_names(self, fake_db) -> None:
        fake_db.tables["market_requests"] = [
            {
                "id": "r-2",
                "workspace_id": "ws-b",
                "requested_by": "u-1",
                "raw_input": "Boise, ID",
                "status": "new",
                "created_at": "2026-03-02",
                "updated_at": "2026-03-02",
            },
            {
                "id": "r-1",
                "workspace_id": "ws-a",
                "requested_by": "u-2",
                "raw_input": "Tampa",
                "status": "new",
                "created_at": "2026-03-01",
                "updated_at": "2026-03-01",
            },
        ]
        fake_db.tables["workspaces"] = [{"id": "ws-a", "name": "Acme"}]

        requests = await SenseService(fake_db).list_market_requests("new")

        assert [r.id for r in requests] == ["r-2", "r-1"]
        assert requests[0].workspace_name is None
        assert requests[1].workspace_name == "Acme"

        request_query = fake_db.calls[0][2]
        assert request_query["filters"] == {"status": "eq.new"}
        assert request_query["order"] == "created_at.desc"
        assert request_query["limit"] == 200
        assert fake_db.calls[1][2]["filters"] == {"id": "in.(ws-a,ws-b)"}

    @pytest.mark.asyncio
    async def test_list_requests_without_status_filter(self, fake_db) -> None:
        await SenseService(fake_db).list_market_requests()

        assert fake_db.calls[0][2]["filters"] is None

    @pytest.mark.asyncio
    async def test_approve_sets_planned(self, fake_db) -> None:
        await SenseService(fake_db).approve_request("r-1", "boise-id")

        _, table, args = fake_db.calls[0]
        assert table == "market_requests"
        assert args["filters"] == {"id": "eq.r-1"}
        assert args["values"]["status"] == "planned"
        assert args["values"]["resolved_market_key"] == "boise-id"
        assert "updated_at" in args["values"]

    @pytest.mark.asyncio
    async def test_approve_without_key_keeps_existing(self, fake_db) -> None:
        await SenseService(fake_db).approve_request("r-1")

        assert "resolved_market_key" not in fake_db.calls[0][2]["values"]

    @pytest.mark.asyncio
    async def test_reject_closes_with_note(self, fake_db) -> None:
        await SenseService(fake_db).reject_request("r-1", "Not enough data")

        values = fake_db.calls[0][2]["values"]
        assert values["status"] == "closed"
        assert values["note"] == "Not enough data"


class TestPipeline:
    @pytest.mark.asyncio
    async def test_trigger_bootstrap(self, fake_db) -> None:
        readvise = AsyncMock()
        readvise.trigger_bootstrap.return_value = "run-1"

        result = await SenseService(fake_db, readvise).trigger_bootstrap("austin-tx")

        assert result.market_key == "austin-tx"
        assert result.run_id == "run-1"
        assert result.accepted is True
        readvise.trigger_bootstrap.assert_awaited_once_with("austin-tx")

    @pytest.mark.asyncio
    async def test_run_stage(self, fake_db) -> None:
        readvise = AsyncMock()
        readvise.run_stage.return_value = None

        result = await SenseService(fake_db, readvise).run_stage("austin-tx", "acs")

        assert result.stage == "acs"
        readvise.run_stage.assert_awaited_once_with("austin-tx", "acs")

    @pytest.mark.asyncio
    async def test_validate_market(self, fake_db) -> None:
        readvise = AsyncMock()
        readvise.validate_market.return_value = {"ok": True}

        result = await SenseService(fake_db, readvise).validate_market("austin-tx")

        assert result.result == {"ok": True}

    @pytest.mark.asyncio
    async def test_pipeline_requires_readvise(self, fake_db) -> None:
        with pytest.raises(ConfigurationAppError) as exc_info:
            await SenseService(fake_db).trigger_bootstrap("austin-tx")

        assert exc_info.value.code == "readvise_not_configured"
