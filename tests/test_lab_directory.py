"""Tests for the lab directory readers and the parallel snapshot loader."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from lablink.services import lab_directory
from lablink.services.lab_directory import (
    fetch_active_labs,
    fetch_lab_metrics,
    fetch_lab_pricing,
    fetch_lab_specializations,
    fetch_preferred_labs,
    load_ranking_snapshot,
)


class TestReaders:

    async def test_active_labs_ordered_by_trust(self, db_session, make_lab):
        await make_lab("Mid", id="lab-mid", trust_score=3.0)
        await make_lab("Top", id="lab-top", trust_score=4.8)
        await make_lab("Closed", id="lab-closed", trust_score=5.0, is_active=False)

        labs = await fetch_active_labs(db_session)

        assert [lab["id"] for lab in labs] == ["lab-top", "lab-mid"]
        assert labs[0]["name"] == "Top"
        assert labs[0]["trust_score"] == pytest.approx(4.8)

    async def test_equal_trust_falls_back_to_id(self, db_session, make_lab):
        await make_lab(id="lab-b", trust_score=4.0)
        await make_lab(id="lab-a", trust_score=4.0)

        labs = await fetch_active_labs(db_session)

        assert [lab["id"] for lab in labs] == ["lab-a", "lab-b"]

    async def test_specializations_filtered_by_restoration_type(self, db_session, make_lab):
        await make_lab(id="lab-z", expertise="expert", restoration_type="Zirconia")
        await make_lab(id="lab-p", expertise="basic", restoration_type="PFM")

        rows = await fetch_lab_specializations(db_session, "Zirconia")

        assert rows == [{
            "lab_id": "lab-z",
            "restoration_type": "Zirconia",
            "expertise_level": "expert",
            "turnaround_days": None,
        }]

    async def test_pricing_filtered_by_restoration_type(self, db_session, make_lab):
        await make_lab(id="lab-z", fixed_price=1200, restoration_type="Zirconia")
        await make_lab(id="lab-e", fixed_price=2500, restoration_type="E-max")

        rows = await fetch_lab_pricing(db_session, "E-max")

        assert [row["lab_id"] for row in rows] == ["lab-e"]
        assert rows[0]["fixed_price"] == pytest.approx(2500)

    async def test_metrics_rows(self, db_session, make_lab):
        await make_lab(id="lab-m", completed_orders=20, on_time_deliveries=18)

        rows = await fetch_lab_metrics(db_session)

        assert rows[0]["lab_id"] == "lab-m"
        assert rows[0]["on_time_deliveries"] == 18

    async def test_preferred_labs_in_priority_order(self, db_session, make_lab, make_preference):
        await make_lab(id="lab-1")
        await make_lab(id="lab-2")
        await make_preference("dentist-1", "lab-2", priority_order=1)
        await make_preference("dentist-1", "lab-1", priority_order=2)
        await make_preference("dentist-2", "lab-1", priority_order=1)

        rows = await fetch_preferred_labs(db_session, "dentist-1")

        assert [row["lab_id"] for row in rows] == ["lab-2", "lab-1"]

    async def test_no_dentist_means_no_preferences(self, db_session, make_lab, make_preference):
        await make_lab(id="lab-1")
        await make_preference("dentist-1", "lab-1")

        assert await fetch_preferred_labs(db_session, None) == []
        assert await fetch_preferred_labs(db_session, "") == []


class TestSnapshot:

    async def test_snapshot_collects_every_reader(
        self, session_factory, make_lab, make_preference, make_review,
    ):
        await make_lab(id="lab-1", expertise="expert", fixed_price=900, completed_orders=4)
        await make_lab(id="lab-2")
        await make_preference("dentist-1", "lab-1")
        await make_review("lab-1", 5)

        snapshot = await load_ranking_snapshot(session_factory, "Zirconia", "dentist-1")

        assert {lab["id"] for lab in snapshot.labs} == {"lab-1", "lab-2"}
        assert len(snapshot.pricing) == 1
        assert len(snapshot.specializations) == 1
        assert snapshot.reviews == [{"lab_id": "lab-1", "rating": 5}]
        assert len(snapshot.metrics) == 1
        assert snapshot.preferred_labs == [{"lab_id": "lab-1", "priority_order": 1}]

    async def test_empty_directory(self, session_factory):
        snapshot = await load_ranking_snapshot(session_factory, "Zirconia", None)

        assert snapshot.labs == []
        assert snapshot.preferred_labs == []

    async def test_reader_failure_propagates(self, session_factory, make_lab):
        await make_lab(id="lab-1")

        async def _broken(session, restoration_type):
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        with patch.object(lab_directory, "fetch_lab_pricing", _broken):
            with pytest.raises(OperationalError):
                await load_ranking_snapshot(session_factory, "Zirconia", None)
