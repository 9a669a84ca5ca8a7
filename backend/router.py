import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Header, Query, UploadFile
from fastapi.responses import Response

from backend import agents, config
from backend.analytics import dashboard_stats, reports_to_csv
from backend.duplicates import describe_group, find_duplicate_groups
from backend.errors import AdminAuthError, InvalidReportError, ReportNotFoundError
from backend.firebase_config import get_db
from backend.geo import filter_nearby
from backend.notify import build_notification
from backend.reports import ReportStore

logger = logging.getLogger(__name__)

router = APIRouter()

MEDIA_PREFIXES = ("image/", "video/")


def get_store():
    return ReportStore(get_db())


def is_admin_request(x_admin_key: Optional[str] = Header(default=None)) -> bool:
    return bool(config.ADMIN_API_KEY) and x_admin_key == config.ADMIN_API_KEY


def require_admin(x_admin_key: Optional[str] = Header(default=None)):
    if config.ADMIN_API_KEY and x_admin_key != config.ADMIN_API_KEY:
        raise AdminAuthError("Admin key required")


async def read_media(upload: UploadFile) -> str:
    """Read an uploaded photo/video and return it as a base64 data URI."""
    content_type = upload.content_type or ""
    if not content_type.startswith(MEDIA_PREFIXES):
        raise InvalidReportError(f"Unsupported media type: {content_type or 'unknown'}")
    limit = config.MAX_UPLOAD_MB * 1024 * 1024
    # One byte past the limit is enough to reject oversized uploads
    data = await upload.read(limit + 1)
    if not data:
        raise InvalidReportError("Uploaded file is empty")
    if len(data) > limit:
        raise InvalidReportError(f"Uploaded file exceeds {config.MAX_UPLOAD_MB} MB")
    return agents.to_data_uri(content_type, data)


def assess_and_store(store: ReportStore, report_id, photo_data_uri, location, issue_type, is_confirmed):
    """Background step: run severity assessment and attach it to the stored report."""
    assessment = agents.assess_severity(photo_data_uri, location, issue_type, is_confirmed)
    try:
        store.update_assessment(report_id, assessment)
    except ReportNotFoundError:
        logger.warning("Report %s was deleted before its assessment finished", report_id)


@router.get("/health")
def health():
    return {"ok": True, "service": "citypulse-ai"}


@router.post("/identify/")
async def identify(
    location: str = Form(...),
    issue_type: Optional[str] = Form(None),
    file: UploadFile = File(...),
):
    photo_data_uri = await read_media(file)
    result = agents.identify_object(photo_data_uri, location, issue_type)
    return {"identification": result}


@router.post("/report/")
async def submit_report(
    background_tasks: BackgroundTasks,
    user_id: str = Form(...),
    issue_type: str = Form(...),
    location: str = Form(...),
    is_confirmed: bool = Form(True),
    identified_type: Optional[str] = Form(None),
    confidence: Optional[float] = Form(None),
    file: UploadFile = File(...),
    store: ReportStore = Depends(get_store),
):
    photo_data_uri = await read_media(file)

    identification = None
    if identified_type is not None:
        identification = {"identifiedType": identified_type, "confidence": confidence}

    # Store first, assess severity once the response has been sent
    report_id = store.create(user_id, issue_type, location, photo_data_uri, identification)
    background_tasks.add_task(
        assess_and_store, store, report_id, photo_data_uri, location, issue_type, is_confirmed
    )
    return {"message": "Report submitted, severity assessment in progress", "report_id": report_id}


@router.post("/geocode/")
def geocode(location_name: str = Form(...)):
    return agents.geocode_location(location_name)


@router.get("/reports/")
def list_reports(
    user_id: Optional[str] = None,
    include_merged: bool = False,
    store: ReportStore = Depends(get_store),
):
    if user_id:
        return store.list_for_user(user_id)
    return store.list_all(include_merged=include_merged)


@router.get("/reports/nearby/")
def nearby_reports(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(25.0, gt=0),
    max_hours: Optional[float] = Query(48.0, gt=0),
    store: ReportStore = Depends(get_store),
):
    return filter_nearby(store.list_all(), (lat, lon), radius_km, max_hours)


@router.get("/reports/duplicates/", dependencies=[Depends(require_admin)])
def duplicate_groups(store: ReportStore = Depends(get_store)):
    # Oldest first so the seed of each group is the earliest report
    reports = list(reversed(store.list_all()))
    return [describe_group(group) for group in find_duplicate_groups(reports)]


@router.post("/reports/merge/", dependencies=[Depends(require_admin)])
def merge_reports(report_ids: List[str] = Form(...), store: ReportStore = Depends(get_store)):
    primary_id = store.merge(report_ids)
    return {"message": "Reports merged", "primary_id": primary_id}


@router.get("/reports/export.csv", dependencies=[Depends(require_admin)])
def export_reports(store: ReportStore = Depends(get_store)):
    return Response(
        content=reports_to_csv(store.list_all()),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="reports.csv"'},
    )


@router.get("/dashboard/")
def dashboard(store: ReportStore = Depends(get_store)):
    return dashboard_stats(store.list_all())


@router.get("/reports/{report_id}")
def get_report(report_id: str, store: ReportStore = Depends(get_store)):
    return store.get(report_id)


@router.get("/reports/{report_id}/notify", dependencies=[Depends(require_admin)])
def notify_authority(report_id: str, store: ReportStore = Depends(get_store)):
    return build_notification(store.get(report_id))


@router.patch("/reports/{report_id}/status", dependencies=[Depends(require_admin)])
def update_status(report_id: str, status: str = Form(...), store: ReportStore = Depends(get_store)):
    store.update_status(report_id, status)
    return {"message": f"Report status changed to {status}", "report_id": report_id}


@router.delete("/reports/{report_id}")
def delete_report(
    report_id: str,
    user_id: Optional[str] = None,
    is_admin: bool = Depends(is_admin_request),
    store: ReportStore = Depends(get_store),
):
    store.delete(report_id, user_id=user_id, is_admin=is_admin)
    return {"message": "Report deleted", "report_id": report_id}
