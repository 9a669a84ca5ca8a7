import io

import pandas as pd

from backend.analytics import dashboard_stats, format_duration, format_issue_label, reports_to_csv
from conftest import NOW, hours_after


def test_format_issue_label():
    assert format_issue_label("fallen_tree") == "Fallen Tree"
    assert format_issue_label("pothole") == "Pothole"
    assert format_issue_label(None) == "Other"


def test_format_duration():
    assert format_duration(2.5 * 3600) == "2h 30m"
    assert format_duration(24 * 3600) == "24h 0m"
    assert format_duration(27 * 3600) == "1d 3h"


def test_dashboard_stats():
    reports = [
        {"issueType": "pothole", "status": "resolved", "complaintTime": NOW, "resolvedTime": hours_after(NOW, 2)},
        {"issueType": "pothole", "status": "resolved", "complaintTime": NOW, "resolvedTime": hours_after(NOW, 52)},
        {"issueType": "fallen_tree", "status": "pending", "complaintTime": NOW, "resolvedTime": None},
        # resolved without timestamps does not count towards resolution stats
        {"issueType": "garbage", "status": "resolved", "complaintTime": NOW, "resolvedTime": None},
    ]
    stats = dashboard_stats(reports)

    assert stats["total_reports"] == 4
    assert stats["resolved_count"] == 2
    assert stats["resolution_rate"] == 50.0
    assert stats["avg_resolution_time"] == "1d 3h"
    assert {"name": "Pothole", "count": 2} in stats["chart_data"]
    assert {"name": "Fallen Tree", "count": 1} in stats["chart_data"]


def test_dashboard_stats_empty():
    stats = dashboard_stats([])
    assert stats["total_reports"] == 0
    assert stats["resolution_rate"] == 0.0
    assert stats["avg_resolution_time"] == "N/A"
    assert stats["chart_data"] == []


def test_reports_to_csv():
    reports = [
        {"id": "r1", "issueType": "garbage", "location": "1,2", "status": "pending",
         "assessmentResult": {"severity": "medium", "justification": "x"}, "complaintTime": NOW},
        {"id": "r2", "issueType": "pothole", "location": "3,4", "status": "pending", "assessmentResult": None},
    ]
    frame = pd.read_csv(io.StringIO(reports_to_csv(reports)))

    assert list(frame.columns) == ["id", "issueType", "location", "severity", "status", "complaintTime", "resolvedTime"]
    assert frame["id"].tolist() == ["r1", "r2"]
    assert frame["severity"].tolist() == ["medium", "low"]
