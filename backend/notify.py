"""Drafts the e-mail that forwards a report to the responsible department."""
from urllib.parse import quote

from backend.geo import parse_timestamp

DEPARTMENT_EMAILS = {
    "pothole": "pothole-dept@example.com",
    "garbage": "sanitation-dept@example.com",
    "streetlight": "electrical-dept@example.com",
    "fallen_tree": "parks-dept@example.com",
    "other": "general-affairs@example.com",
}

BODY_TEMPLATE = """A new issue has been reported by a user. Please find the details below:

Report ID: {id}
Issue Type: {issue_label}
Severity: {severity}
Location: {location}
Status: {status}
Reported Time: {reported}

Please take the necessary action.

---
This is an auto-generated email from CityPulse AI."""


def department_for(issue_type):
    return DEPARTMENT_EMAILS.get(issue_type, DEPARTMENT_EMAILS["other"])


def build_notification(report):
    issue_type = report.get("issueType") or "other"
    issue_label = issue_type.replace("_", " ")
    reported_at = parse_timestamp(report.get("complaintTime"))
    recipient = department_for(issue_type)

    subject = f"New Issue Report: {issue_label} at {report.get('location', 'unknown location')}"
    body = BODY_TEMPLATE.format(
        id=report.get("id"),
        issue_label=issue_label,
        severity=(report.get("assessmentResult") or {}).get("severity", "low"),
        location=report.get("location", "N/A"),
        status=report.get("status", "pending"),
        reported=reported_at.strftime("%Y-%m-%d %H:%M UTC") if reported_at else "N/A",
    )
    mailto = f"mailto:{recipient}?subject={quote(subject)}&body={quote(body)}"
    return {"recipient": recipient, "subject": subject, "body": body, "mailto": mailto}
