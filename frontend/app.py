import streamlit as st
from streamlit_folium import st_folium
from streamlit_geolocation import streamlit_geolocation
import pandas as pd
from datetime import datetime

from frontend import api
from frontend.utils import (
    ISSUE_TYPES,
    STATUSES,
    build_map,
    format_time_ago,
    get_issue_icon,
    get_status_emoji,
    report_justification,
    report_severity,
    submission_summary,
)
from backend.analytics import format_issue_label

NEARBY_RADIUS_KM = 25
NEARBY_MAX_HOURS = 48

# Initialize Streamlit app
st.set_page_config(page_title="🏙️ CityPulse AI - Civic Issue Reporting", layout="wide", initial_sidebar_state="expanded")
st.markdown("<h1 style='text-align: center;'>🏙️ CityPulse AI - Civic Issue Reporting</h1>", unsafe_allow_html=True)

# Session state initialization
for key, default in {
    "location_coords": None,
    "location_text": "",
    "identification": None,
    "submitted_report_id": None,
    "submitted_type": None,
    "submitted_location": "",
    "submitted_at": None,
}.items():
    if key not in st.session_state:
        st.session_state[key] = default


@st.cache_data(ttl=30)  # Cache for 30 seconds to improve performance
def fetch_reports(user_id=None):
    try:
        return api.list_reports(user_id)
    except api.BackendError as e:
        st.error(f"Error fetching reports: {e}")
        return []


def show_error(e):
    st.error(f"❌ {e}")


# ---------------- SIDEBAR ----------------
with st.sidebar:
    st.header("👤 Reporter")
    user_id = st.text_input("USER ID", help="Reports you submit are stored under this id")
    st.markdown("### 📍 Your Location")
    location_data = streamlit_geolocation()
    if location_data and location_data.get("latitude") and location_data.get("longitude"):
        st.session_state.location_coords = [location_data["latitude"], location_data["longitude"]]
        st.session_state.location_text = f"{location_data['latitude']},{location_data['longitude']}"
        st.success("Location acquired successfully.")
    if st.button("🔄 Refresh Data"):
        st.cache_data.clear()
        st.rerun()

report_tab, map_tab, mine_tab, dashboard_tab, admin_tab = st.tabs(
    ["📝 Report Issue", "🗺 Live Map", "📋 My Reports", "📊 Dashboard", "🛠 Admin"]
)

# ---------------- REPORT ----------------
with report_tab:
    st.header("📝 Report a New Issue")

    uploaded_media = st.file_uploader(
        "📷 UPLOAD PHOTO/VIDEO",
        type=["jpg", "jpeg", "png", "webp", "mp4", "mov"],
        help="Upload a photo or short video of the issue",
    )
    issue_type = st.selectbox("🏷 TYPE OF ISSUE", ISSUE_TYPES, format_func=format_issue_label)

    place_col, find_col = st.columns([3, 1])
    with place_col:
        place_name = st.text_input("🔎 FIND A PLACE", help="Type a place name to look up its coordinates")
    with find_col:
        st.write("")
        if st.button("Find", use_container_width=True) and place_name:
            try:
                coords = api.geocode(place_name)
                st.session_state.location_text = f"{coords['latitude']},{coords['longitude']}"
            except api.BackendError as e:
                show_error(e)

    location = st.text_input("📍 LOCATION (lat,lon)", value=st.session_state.location_text)

    if st.button("🔍 Analyze Media", type="primary", use_container_width=True):
        if not uploaded_media or not location:
            st.warning("⚠ Please select an issue type, location, and an image/video.")
        else:
            with st.spinner("Identifying the issue..."):
                try:
                    st.session_state.identification = api.identify(
                        uploaded_media.name, uploaded_media.getvalue(), uploaded_media.type, location, issue_type
                    )
                except api.BackendError as e:
                    st.session_state.identification = None
                    show_error(e)

    identification = st.session_state.identification
    if identification:
        identified = identification["identifiedType"]
        if identified == "none":
            st.error("No issue was identified in the media. Please try another file.")
        else:
            st.info(
                f"{get_issue_icon(identified)} Identified **{format_issue_label(identified)}** "
                f"(confidence {identification['confidence']:.0%})"
            )
            final_type = st.radio(
                "Is this correct?",
                [identified, issue_type] if identified != issue_type else [identified],
                format_func=lambda t: f"Yes, it is a {format_issue_label(t)}" if t == identified else f"No, it is a {format_issue_label(t)}",
            )
            if st.button("🚨 Submit Report", use_container_width=True):
                if not user_id:
                    st.warning("⚠ Enter your user id in the sidebar before submitting.")
                elif not uploaded_media:
                    st.warning("⚠ The uploaded file was removed; please upload it again.")
                else:
                    try:
                        st.session_state.submitted_report_id = api.submit_report(
                            user_id, final_type, location,
                            uploaded_media.name, uploaded_media.getvalue(), uploaded_media.type,
                            identification,
                        )
                        st.session_state.submitted_type = final_type
                        st.session_state.submitted_location = location
                        st.session_state.submitted_at = datetime.now()
                        st.session_state.identification = None
                        st.cache_data.clear()
                    except api.BackendError as e:
                        show_error(e)

    if st.session_state.submitted_report_id:
        st.success(f"✅ Report submitted! ID: {st.session_state.submitted_report_id}. We are now assessing the severity.")
        st.markdown("### 📄 Report Summary")
        for line in submission_summary(
            st.session_state.submitted_type, st.session_state.submitted_location, st.session_state.submitted_at
        ):
            st.markdown(line)

# ---------------- MAP ----------------
with map_tab:
    user_coords = st.session_state.location_coords
    if user_coords:
        try:
            map_reports = api.nearby_reports(user_coords[0], user_coords[1], NEARBY_RADIUS_KM, NEARBY_MAX_HOURS)
        except api.BackendError as e:
            show_error(e)
            map_reports = []
    else:
        map_reports = fetch_reports()
        st.info(f"📍 Enable location access to see nearby issues (within {NEARBY_RADIUS_KM} km, last {NEARBY_MAX_HOURS} hours)")

    st.header(f"🗺 Live Issue Map ({len(map_reports)} reports)")
    m = build_map(map_reports, user_coords, NEARBY_RADIUS_KM if user_coords else None)
    st_folium(m, width=2000, height=600, returned_objects=[])

    if user_coords and map_reports:
        st.markdown("### 🔍 Nearest Issues")
        for report in map_reports[:3]:
            with st.expander(
                f"{get_issue_icon(report.get('issueType'))} {format_issue_label(report.get('issueType'))} - "
                f"{format_time_ago(report.get('complaintTime'))} - {report.get('distance_km')}km away"
            ):
                st.write(f"📝 **Assessment:** {report_justification(report)}")
                st.write(f"📈 **Status:** {report.get('status', 'pending')}")

# ---------------- MY REPORTS ----------------
with mine_tab:
    st.header("📋 My Reports")
    if not user_id:
        st.info("Enter your user id in the sidebar to see your reports.")
    else:
        my_reports = fetch_reports(user_id)
        if not my_reports:
            st.success("You have not reported any issues yet.")
        for report in my_reports:
            severity = report_severity(report) or "pending"
            with st.expander(
                f"{get_status_emoji(report.get('status'))} {format_issue_label(report.get('issueType'))} - "
                f"{severity.title()} - {format_time_ago(report.get('complaintTime'))}"
            ):
                st.write(f"📍 **Location:** {report.get('location')}")
                st.write(f"📝 **Assessment:** {report_justification(report)}")
                st.write(f"📈 **Status:** {report.get('status')}")
                if st.button("🗑 Delete", key=f"delete-{report['id']}"):
                    try:
                        api.delete_report(report["id"], user_id)
                        st.cache_data.clear()
                        st.rerun()
                    except api.BackendError as e:
                        show_error(e)

# ---------------- DASHBOARD ----------------
with dashboard_tab:
    st.header("📊 Analytics Dashboard")
    try:
        stats = api.dashboard()
    except api.BackendError as e:
        show_error(e)
        stats = None

    if stats and stats["total_reports"]:
        total_col, resolved_col, time_col = st.columns(3)
        total_col.metric("Total Reports", stats["total_reports"])
        resolved_col.metric("Resolved", stats["resolved_count"], f"{stats['resolution_rate']}% of all reports")
        time_col.metric("Avg. Resolution Time", stats["avg_resolution_time"])
        chart_df = pd.DataFrame(stats["chart_data"]).set_index("name")
        st.bar_chart(chart_df["count"])
    elif stats is not None:
        st.info("📊 No reports yet.")

# ---------------- ADMIN ----------------
with admin_tab:
    st.header("🛠 Admin Triage")
    all_reports = fetch_reports()

    if all_reports:
        table = pd.DataFrame([{
            "ID": r["id"],
            "Issue": format_issue_label(r.get("issueType")),
            "Severity": report_severity(r) or "pending",
            "Status": r.get("status"),
            "Reported": format_time_ago(r.get("complaintTime")),
            "Location": r.get("location"),
        } for r in all_reports])
        st.dataframe(table, use_container_width=True, hide_index=True)

        with st.form("status_form"):
            selected_id = st.selectbox("Report", [r["id"] for r in all_reports])
            new_status = st.selectbox("New status", STATUSES)
            if st.form_submit_button("Update Status"):
                try:
                    api.update_status(selected_id, new_status)
                    st.success(f"Report status changed to {new_status}.")
                    st.cache_data.clear()
                except api.BackendError as e:
                    show_error(e)

        if st.button("✉️ Draft Authority Notification"):
            try:
                draft = api.notification(selected_id)
                st.markdown(f"**To:** {draft['recipient']}  \n**Subject:** {draft['subject']}")
                st.code(draft["body"])
                st.markdown(f"[Open in mail client]({draft['mailto']})")
            except api.BackendError as e:
                show_error(e)

        try:
            st.download_button(
                label="💾 Download Reports CSV",
                data=api.export_csv(),
                file_name=f"reports_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv",
                mime="text/csv",
            )
        except api.BackendError as e:
            show_error(e)

        st.markdown("### 🧩 Possible Duplicates")
        try:
            groups = api.duplicate_groups()
        except api.BackendError as e:
            show_error(e)
            groups = []
        if not groups:
            st.success("✅ No duplicate reports found.")
        for i, group in enumerate(groups):
            st.write(
                f"{get_issue_icon(group['issue_type'])} {group['size']} × {format_issue_label(group['issue_type'])} "
                f"near {group['location']} (keeps {group['primary_id']})"
            )
            if st.button("Merge", key=f"merge-{i}"):
                try:
                    api.merge_reports(group["report_ids"])
                    st.cache_data.clear()
                    st.rerun()
                except api.BackendError as e:
                    show_error(e)
    else:
        st.info("📊 No reports found in database")
