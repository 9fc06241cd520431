"""
Area resolver tests.
"""

from trackchain.app.domain.area.area_resolver import (
    Area, resolve_area, area_tags, matches_area, parse_area_text, checkpoint_label
)
from trackchain.app.models.checkpoint import Checkpoint


def _checkpoint(**kwargs) -> Checkpoint:
    defaults = {"name": "Dock", "address": "n/a", "latitude": 0.0, "longitude": 0.0, "owner_org_id": "org"}
    defaults.update(kwargs)
    return Checkpoint(**defaults)


def test_free_text_first_token_is_state_last_is_country():
    area = resolve_area(destination_text="Colombo, Western, Sri Lanka")
    assert area == Area(country="Sri Lanka", state="Colombo")


def test_checkpoint_geography_wins_over_free_text():
    end = _checkpoint(state="Central", country="Sri Lanka")
    area = resolve_area(end_checkpoint=end, destination_text="Paris, Ile-de-France, France")
    assert area == Area(country="Sri Lanka", state="Central")


def test_end_checkpoint_preferred_over_start():
    start = _checkpoint(state="Western", country="Sri Lanka")
    end = _checkpoint(state="Kerala", country="India")
    assert resolve_area(start, end) == Area(country="India", state="Kerala")


def test_start_checkpoint_used_when_end_has_no_geography():
    start = _checkpoint(state="Western", country="Sri Lanka")
    end = _checkpoint()
    assert resolve_area(start, end) == Area(country="Sri Lanka", state="Western")


def test_parts_resolve_independently():
    end = _checkpoint(country="Sri Lanka")
    area = resolve_area(end_checkpoint=end, origin_text="Kandy, Central, Sri Lanka")
    assert area == Area(country="Sri Lanka", state="Kandy")


def test_unknown_when_nothing_available():
    assert resolve_area() == Area(country="Unknown", state="Unknown")
    assert resolve_area(destination_text=" , ,") == Area(country="Unknown", state="Unknown")


def test_single_token_text():
    assert parse_area_text("Singapore") == ("Singapore", "Singapore")


def test_checkpoint_label():
    assert checkpoint_label(_checkpoint(state="Western", country="Sri Lanka")) == "Western, Sri Lanka"
    assert checkpoint_label(_checkpoint(country="Sri Lanka")) == "Sri Lanka"
    assert checkpoint_label(_checkpoint()) is None
    assert checkpoint_label(None) is None


def test_area_tags_are_deduplicated():
    start = _checkpoint(name="CP-A", city="Colombo", state="Western", country="Sri Lanka")
    end = _checkpoint(name="CP-B", city="Kandy", state="Central", country="Sri Lanka")
    tags = area_tags(start, end)
    assert tags == ["Western, Sri Lanka", "Central, Sri Lanka", "Sri Lanka", "Colombo", "Kandy", "CP-A", "CP-B"]


def test_matches_area_is_case_insensitive_substring():
    tags = ["Western, Sri Lanka", "Colombo"]
    assert matches_area(tags, "sri")
    assert matches_area(tags, "  COLOMBO ")
    assert not matches_area(tags, "India")
    assert matches_area(tags, "")
    assert matches_area(tags, None)
