from datetime import datetime, timezone

import folium

from backend.analytics import format_issue_label
from backend.constants import ISSUE_TYPES, STATUSES
from backend.geo import parse_location, parse_timestamp

DEFAULT_CENTER = [22.5726, 88.3639]


def get_severity_color(severity):
    """Return marker color based on assessed severity"""
    color_map = {
        "high": "#ef4444",
        "medium": "#f97316",
        "low": "#3b82f6",
    }
    return color_map.get(severity, "#6b7280")


def get_issue_icon(issue_type):
    """Return icon based on issue type"""
    icon_map = {
        "pothole": "🕳️",
        "garbage": "🗑️",
        "streetlight": "💡",
        "fallen_tree": "🌳",
        "other": "‼",
    }
    return icon_map.get(issue_type, "‼")


def get_status_emoji(status):
    return {"pending": "⏳", "in progress": "⚙️", "resolved": "✅"}.get(status, "⏳")


def report_severity(report):
    return (report.get("assessmentResult") or {}).get("severity")


def report_justification(report):
    return (report.get("assessmentResult") or {}).get("justification") or "Awaiting assessment..."


def format_time_ago(timestamp, now=None):
    """Format timestamp to show how long ago the issue was reported"""
    reported_at = parse_timestamp(timestamp)
    if reported_at is None:
        return "Unknown"
    now = now or datetime.now(timezone.utc)
    time_diff = now - reported_at

    if time_diff.days > 0:
        return f"{time_diff.days}d ago"
    elif time_diff.seconds > 3600:
        return f"{time_diff.seconds // 3600}h ago"
    elif time_diff.seconds > 60:
        return f"{time_diff.seconds // 60}m ago"
    else:
        return "Just now"


def submission_summary(issue_type, location, reported_at):
    """Markdown lines describing a report as it was submitted."""
    return [
        f"🏷 **Type:** {format_issue_label(issue_type)}",
        f"📍 **Location:** {location}",
        f"📅 **Reported at:** {reported_at.strftime('%Y-%m-%d %H:%M')}",
    ]


def popup_html(report):
    severity = report_severity(report)
    distance = report.get("distance_km")
    return f"""
    <div style="width: 260px;">
        <h4 style="color: {get_severity_color(severity)}; margin-bottom: 8px;">
            {get_issue_icon(report.get('issueType'))} {format_issue_label(report.get('issueType'))}
        </h4>
        <p><b>⏰ Reported:</b> {format_time_ago(report.get('complaintTime'))}</p>
        {f'<p><b>📏 Distance:</b> {distance}km away</p>' if distance is not None else ''}
        <p><b>📍 Location:</b> {report.get('location', 'Unknown')}</p>
        <p><b>📊 Severity:</b> {(severity or 'pending').title()}</p>
        <p><b>📝 Assessment:</b> {report_justification(report)[:150]}</p>
        <p><b>📈 Status:</b> {get_status_emoji(report.get('status'))} {report.get('status', 'pending').title()}</p>
    </div>
    """


def build_map(reports, user_coords=None, radius_km=None):
    """Folium map with one severity-colored marker per report that has parseable coordinates."""
    points = [(report, parse_location(report.get("location", ""))) for report in reports]
    points = [(report, coords) for report, coords in points if coords]

    if user_coords:
        center = list(user_coords)
    elif points:
        center = [sum(c[0] for _, c in points) / len(points), sum(c[1] for _, c in points) / len(points)]
    else:
        center = DEFAULT_CENTER
    m = folium.Map(location=center, zoom_start=15 if user_coords else 12)

    if user_coords:
        folium.Marker(
            list(user_coords),
            popup=folium.Popup("📍 Your Current Location", max_width=300),
            tooltip="Your Location",
            icon=folium.Icon(color="pink", icon="user", prefix="fa"),
        ).add_to(m)
        if radius_km:
            folium.Circle(
                list(user_coords),
                radius=radius_km * 1000,
                popup=f"{radius_km:g} km radius filter",
                color="blue",
                fill_color="cadetblue",
                fill_opacity=0.1,
                weight=2,
                dash_array="5, 5",
            ).add_to(m)

    for report, coords in points:
        color = get_severity_color(report_severity(report))
        icon_html = f"""
        <div style="
            font-size: 1.2rem;
            background-color: {color};
            width: 2.2rem;
            height: 2.2rem;
            border-radius: 50%;
            text-align: center;
            line-height: 2.2rem;
            border: 2px solid white;
            box-shadow: 0 2px 5px rgba(0,0,0,0.3);
            ">
            {get_issue_icon(report.get('issueType'))}
        </div>
        """
        folium.Marker(
            list(coords),
            popup=folium.Popup(popup_html(report), max_width=300),
            tooltip=f"{format_issue_label(report.get('issueType'))} - {(report_severity(report) or 'pending').title()}",
            icon=folium.DivIcon(html=icon_html),
        ).add_to(m)

    if not user_coords and len(points) > 1:
        lats = [c[0] for _, c in points]
        lngs = [c[1] for _, c in points]
        m.fit_bounds([[min(lats), min(lngs)], [max(lats), max(lngs)]], padding=(50, 50))

    return m
