from __future__ import annotations

from pathlib import Path

import pytest

from monoship.models.publish import PublishBatch, PublishState, PublishUnit


def _unit(name: str = "app", **kwargs: object) -> PublishUnit:
    return PublishUnit(package_name=name, publish_name=name, output_dir=Path("/out") / name, **kwargs)  # type: ignore[arg-type]


@pytest.mark.unit
class TestPublishUnit:
    """Tests for PublishUnit state transitions."""

    def test_initial_state(self) -> None:
        """Test a new unit is unpublished with no version."""
        unit = _unit()

        assert unit.state is PublishState.UNPUBLISHED
        assert unit.version is None
        assert unit.error is None

    def test_transitions(self) -> None:
        """Test pending then latest."""
        unit = _unit(version="1.0.0")

        unit.mark_pending()
        assert unit.state is PublishState.PENDING
        unit.mark_latest()
        assert unit.state is PublishState.LATEST

    def test_mark_failed(self) -> None:
        """Test a failure records its message."""
        unit = _unit()

        unit.mark_failed("version exists")

        assert unit.state is PublishState.FAILED
        assert unit.error == "version exists"

    @pytest.mark.parametrize(
        "current, version, expected",
        [
            (None, "1.0.0", "new"),
            ("1.2.3", "1.3.0", "minor"),
            ("1.2.3", "2.0.0", "major"),
            ("1.2.3", "1.2.4", "patch"),
        ],
    )
    def test_update_type(self, current: str, version: str, expected: str) -> None:
        """Test the change classification between current and new version."""
        assert _unit(current_version=current, version=version).update_type == expected

    def test_to_json(self) -> None:
        """Test JSON form carries state as a string."""
        data = _unit(version="1.0.0").to_json()

        assert data["state"] == "unpublished"
        assert data["version"] == "1.0.0"
        assert data["output_dir"] == str(Path("/out/app"))


@pytest.mark.unit
class TestPublishBatch:
    """Tests for PublishBatch."""

    def test_filters(self) -> None:
        """Test failed and pending unit views."""
        ok, bad = _unit("a"), _unit("b")
        ok.mark_pending()
        bad.mark_failed("boom")
        batch = PublishBatch(units=[ok, bad])

        assert batch.pending_units == [ok]
        assert batch.failed_units == [bad]
        assert len(batch) == 2
        assert list(batch) == [ok, bad]

    def test_to_json(self) -> None:
        """Test JSON form includes flags and every unit."""
        batch = PublishBatch(units=[_unit("a")], dry_run=True)

        data = batch.to_json()

        assert data["promoted"] is False
        assert data["dry_run"] is True
        assert [unit["package"] for unit in data["units"]] == ["a"]
