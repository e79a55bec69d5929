"""Tests for festreg.catalog module."""

import pytest

from festreg.catalog import event_ids, events_by_category, find_event


class TestFindEvent:
    """Tests for resolving operator-typed events."""

    def test_by_id(self, events):
        assert find_event(events, 'logic-overload').title == 'LOGIC OVERLOAD'

    def test_by_title_case_insensitive(self, events):
        assert find_event(events, 'Logic Overload').id == 'logic-overload'

    def test_fuzzy_title(self, events):
        assert find_event(events, 'dhurandhara').id == 'dhurandharah'

    def test_unknown_event(self, events):
        with pytest.raises(ValueError, match='Unknown event'):
            find_event(events, 'robo wars')


class TestCategories:

    def test_counts(self, events):
        assert len(events_by_category(events, 'management')) == 4
        assert len(events_by_category(events, 'IT')) == 4
        assert len(events_by_category(events, 'cultural')) == 4
        assert [e.id for e in events_by_category(events, 'sports')] == ['dandashataka']

    def test_event_ids_in_catalog_order(self, events):
        ids = event_ids(events)
        assert ids[0] == 'dhurandharah'
        assert ids[-1] == 'dandashataka'
