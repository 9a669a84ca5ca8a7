from datetime import timedelta

import folium
import pytest
import requests

from backend import constants
from frontend import api, utils
from frontend.utils import build_map, format_time_ago, get_issue_icon, get_severity_color, popup_html
from conftest import NOW


def markers(m):
    return [c for c in m._children.values() if isinstance(c, folium.Marker) and not isinstance(c, folium.Circle)]


def test_format_time_ago():
    assert format_time_ago(NOW - timedelta(days=2), now=NOW) == "2d ago"
    assert format_time_ago(NOW - timedelta(hours=3), now=NOW) == "3h ago"
    assert format_time_ago((NOW - timedelta(minutes=5)).isoformat(), now=NOW) == "5m ago"
    assert format_time_ago(NOW - timedelta(seconds=10), now=NOW) == "Just now"
    assert format_time_ago("not a time", now=NOW) == "Unknown"


def test_severity_colors_and_icons():
    assert get_severity_color("high") == "#ef4444"
    assert get_severity_color(None) == "#6b7280"
    assert get_issue_icon("garbage") == "🗑️"
    assert get_issue_icon("sinkhole") == "‼"


def test_popup_html_shows_assessment():
    html = popup_html({
        "issueType": "fallen_tree",
        "location": "1,2",
        "status": "in progress",
        "assessmentResult": {"severity": "high", "justification": "Road blocked"},
        "distance_km": 0.4,
    })
    assert "Fallen Tree" in html
    assert "Road blocked" in html
    assert "0.4km away" in html


def test_build_map_skips_unparseable_locations():
    reports = [
        {"issueType": "pothole", "location": "12.97,77.59"},
        {"issueType": "garbage", "location": "12.98,77.60", "assessmentResult": {"severity": "low"}},
        {"issueType": "other", "location": "behind the school"},
    ]
    assert len(markers(build_map(reports))) == 2


def test_build_map_adds_user_marker():
    m = build_map([{"issueType": "pothole", "location": "12.97,77.59"}], user_coords=[12.96, 77.58], radius_km=25)
    assert len(markers(m)) == 2
    assert any(isinstance(child, folium.Circle) for child in m._children.values())


class FakeHTTPResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def test_api_returns_json(monkeypatch):
    seen = {}

    def fake_request(method, url, **kwargs):
        seen.update(method=method, url=url, **kwargs)
        return FakeHTTPResponse(200, {"report_id": "r1"})

    monkeypatch.setattr(api.requests, "request", fake_request)
    monkeypatch.setattr(api, "ADMIN_API_KEY", "s3cret")

    assert api.submit_report("alice", "pothole", "1,2", "a.png", b"img", "image/png") == "r1"
    assert seen["method"] == "POST"
    assert seen["url"].endswith("/report/")
    assert seen["headers"] == {}

    api.update_status("r1", "resolved")
    assert seen["headers"] == {"X-Admin-Key": "s3cret"}


def test_api_raises_backend_error_with_message(monkeypatch):
    monkeypatch.setattr(api.requests, "request", lambda *a, **kw: FakeHTTPResponse(404, {"error": "Report r9 not found"}))
    with pytest.raises(api.BackendError, match="Report r9 not found"):
        api.notification("r9")


def test_api_wraps_connection_errors(monkeypatch):
    def refuse(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(api.requests, "request", refuse)
    with pytest.raises(api.BackendError, match="Failed to connect"):
        api.dashboard()


def test_form_choices_follow_backend_vocabulary():
    assert utils.ISSUE_TYPES is constants.ISSUE_TYPES
    assert utils.STATUSES is constants.STATUSES


def test_submission_summary_uses_confirmed_type():
    # Reporter picked "pothole" but confirmed the model's "fallen_tree"
    lines = utils.submission_summary("fallen_tree", "12.97,77.59", NOW)
    assert lines == [
        "🏷 **Type:** Fallen Tree",
        "📍 **Location:** 12.97,77.59",
        "📅 **Reported at:** 2026-10-01 12:00",
    ]
