"""Tests for CSV loaders."""

from pathlib import Path

import pytest

from gym_rewards.csv_io import load_gym_sites, load_location_samples


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_load_location_samples_sorts_and_skips(tmp_path) -> None:
    """Test samples are time-ordered and bad rows skipped."""
    p = _write(
        tmp_path / "Path.csv",
        "geoTime,latitude,longitude,speed\n"
        "2000,47.1,8.1,0\n"
        "1000,47.0,8.0,0\n"
        "oops,47.0,8.0,0\n"
        "3000,,8.0,0\n",
    )
    samples, summary = load_location_samples(p)
    assert [s.geo_time_ms for s in samples] == [1000, 2000]
    assert samples[0].location.latitude == 47.0
    assert summary.rows_total == 4
    assert summary.rows_skipped == 2
    assert "speed" in summary.fieldnames


def test_load_location_samples_requires_columns(tmp_path) -> None:
    """Test a missing coordinate column is an error."""
    p = _write(tmp_path / "Path.csv", "geoTime,latitude\n1,2\n")
    with pytest.raises(KeyError):
        load_location_samples(p)


def test_load_gym_sites_keeps_order(tmp_path) -> None:
    """Test gym rows keep file order and default blank names."""
    p = _write(
        tmp_path / "gyms.csv",
        "id,name,latitude,longitude\n"
        "g2,Riverside,47.38,8.53\n"
        "g1,,47.37,8.54\n"
        "bad,Broken,north,8.5\n",
    )
    sites = load_gym_sites(p)
    assert [s.id for s in sites] == ["g2", "g1"]
    assert sites[1].name == "Unnamed Gym"
    assert sites[0].location.longitude == 8.53
