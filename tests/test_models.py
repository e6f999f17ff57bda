"""Tests for database models and value schemas."""
import pytest
from pydantic import ValidationError

from menuscout.common.models import JobStatus, ScrapeJob
from menuscout.common.schemas import JobPayload, JobView, MenuItem, ScrapeResult


# ------------------------------------------------------------------
# ScrapeJob
# ------------------------------------------------------------------

class TestScrapeJob:

    def test_defaults(self, test_session):
        job = ScrapeJob(restaurant_query="Manoush")
        test_session.add(job)
        test_session.commit()

        assert len(job.id) == 32
        assert job.status == JobStatus.QUEUED
        assert job.attempts == 0
        assert job.empty_result is False
        assert job.result is None
        assert job.created_at is not None

    def test_result_round_trips_as_json(self, test_session):
        payload = ScrapeResult(
            restaurant="Manoush",
            source="Talabat",
            menu_items=[MenuItem(name="Zaatar", price="1.200")],
        ).to_payload()
        job = ScrapeJob(restaurant_query="Manoush", status=JobStatus.COMPLETED, result=payload)
        test_session.add(job)
        test_session.commit()
        test_session.expire_all()

        loaded = test_session.get(ScrapeJob, job.id)
        assert loaded.status is JobStatus.COMPLETED
        assert loaded.result["menuItems"][0]["price"] == "1.200"


# ------------------------------------------------------------------
# Schemas
# ------------------------------------------------------------------

class TestMenuItem:

    def test_strips_name(self):
        assert MenuItem(name="  Falafel ", price="1").name == "Falafel"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_rejects_blank_name(self, name):
        with pytest.raises(ValidationError):
            MenuItem(name=name, price="1.000")

    @pytest.mark.parametrize("price", ["", "OMR 1.000", "1.2.3", "abc"])
    def test_rejects_non_numeric_price(self, price):
        with pytest.raises(ValidationError):
            MenuItem(name="Falafel", price=price)


class TestJobPayload:

    def test_rejects_non_string(self):
        with pytest.raises(ValidationError):
            JobPayload(restaurant_query=12)

    def test_rejects_blank(self):
        with pytest.raises(ValidationError):
            JobPayload(restaurant_query="   ")


class TestJobView:

    def test_payload_shape(self):
        view = JobView(
            id="abc",
            payload=JobPayload(restaurant_query="Manoush"),
            status="failed",
            error="NavigationError: search input not found",
        )
        assert view.is_terminal
        assert view.to_payload() == {
            "id": "abc",
            "payload": {"restaurantQuery": "Manoush"},
            "status": "failed",
            "result": None,
            "error": "NavigationError: search input not found",
        }

    def test_result_accepts_alias_from_storage(self):
        view = JobView(
            id="abc",
            payload=JobPayload(restaurant_query="Manoush"),
            status="completed",
            result={"restaurant": "Manoush", "source": "Talabat",
                    "menuItems": [{"name": "Zaatar", "description": "", "price": "1.200"}]},
        )
        assert view.result.menu_items[0].name == "Zaatar"
        assert not JobView(id="x", payload=view.payload, status="active").is_terminal
