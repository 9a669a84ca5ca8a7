"""Thin HTTP client for the CityPulse backend."""
import os

import requests

# adding deployed backend url
BACKEND_URL = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")

TIMEOUT = 60


class BackendError(Exception):
    pass


def _request(method, path, admin=False, **kwargs):
    headers = {"X-Admin-Key": ADMIN_API_KEY} if admin and ADMIN_API_KEY else {}
    try:
        response = requests.request(method, f"{BACKEND_URL}{path}", headers=headers, timeout=TIMEOUT, **kwargs)
    except requests.RequestException as e:
        raise BackendError(f"Failed to connect to backend: {e}") from e

    if response.status_code >= 400:
        try:
            payload = response.json()
            message = payload.get("error") or payload.get("detail") or response.text
        except ValueError:
            message = response.text
        raise BackendError(f"{response.status_code}: {message}")
    return response


def identify(media_name, media_bytes, media_type, location, issue_type):
    files = {"file": (media_name, media_bytes, media_type)}
    data = {"location": location, "issue_type": issue_type}
    return _request("POST", "/identify/", data=data, files=files).json()["identification"]


def submit_report(user_id, issue_type, location, media_name, media_bytes, media_type, identification=None):
    data = {"user_id": user_id, "issue_type": issue_type, "location": location, "is_confirmed": "true"}
    if identification:
        data["identified_type"] = identification.get("identifiedType")
        data["confidence"] = identification.get("confidence")
    files = {"file": (media_name, media_bytes, media_type)}
    return _request("POST", "/report/", data=data, files=files).json()["report_id"]


def geocode(location_name):
    return _request("POST", "/geocode/", data={"location_name": location_name}).json()


def list_reports(user_id=None):
    params = {"user_id": user_id} if user_id else {}
    return _request("GET", "/reports/", params=params).json()


def nearby_reports(lat, lon, radius_km, max_hours):
    params = {"lat": lat, "lon": lon, "radius_km": radius_km, "max_hours": max_hours}
    return _request("GET", "/reports/nearby/", params=params).json()


def dashboard():
    return _request("GET", "/dashboard/").json()


def duplicate_groups():
    return _request("GET", "/reports/duplicates/", admin=True).json()


def merge_reports(report_ids):
    return _request("POST", "/reports/merge/", admin=True, data={"report_ids": list(report_ids)}).json()["primary_id"]


def notification(report_id):
    return _request("GET", f"/reports/{report_id}/notify", admin=True).json()


def update_status(report_id, status):
    return _request("PATCH", f"/reports/{report_id}/status", admin=True, data={"status": status}).json()


def delete_report(report_id, user_id):
    return _request("DELETE", f"/reports/{report_id}", admin=True, params={"user_id": user_id}).json()


def export_csv():
    return _request("GET", "/reports/export.csv", admin=True).text
