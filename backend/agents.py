import re
import json
import base64
import binascii
import logging

import google.generativeai as genai
from langchain_core.prompts import ChatPromptTemplate

from backend import config
from backend.constants import ISSUE_TYPES, SEVERITIES
from backend.errors import AIServiceError, InvalidReportError

logger = logging.getLogger(__name__)

# Set your Gemini API Key
genai.configure(api_key=config.GEMINI_API_KEY)

# Instantiate genai model
llm = genai.GenerativeModel(config.GEMINI_MODEL)

GENERATION_CONFIG = {"response_mime_type": "application/json", "temperature": 0.2}

DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)

IDENTIFY_PROMPT = ChatPromptTemplate.from_template(
    """You are an AI assistant specialized in identifying civic issues in images and videos.

Analyze the attached media and determine which ONE of these issues it shows:
- pothole: holes, cracks or broken road surface
- garbage: litter, dumped waste, overflowing bins
- streetlight: broken, dark or damaged street lights
- fallen_tree: fallen trees or large branches blocking a path or road
- other: a different civic problem that is clearly visible
- none: no civic issue is visible

Location: {location}
Issue type suggested by the reporter: {issue_type}

Respond with a JSON object in this EXACT format:
{{"identifiedType": "<one of the types above>", "confidence": <number between 0 and 1>}}"""
)

SEVERITY_PROMPT = ChatPromptTemplate.from_template(
    """You are an AI assistant designed to assess the severity of civic issues such as potholes,
garbage, broken streetlights and fallen trees.

Based on the attached media, location, confirmation status and issue type, determine the
severity of the issue as high, medium, or low, and explain the level to ensure transparency.

Consider the following factors:
- Media: size, density and visual impact of the issue
- Location: the public impact of the issue at this place
- Confirmation: an issue confirmed by the reporter is considered more severe
- Issue Type: the kind of problem reported

Location: {location}
Confirmation Status: {is_confirmed}
Issue Type: {issue_type}

Respond with a JSON object in this EXACT format:
{{"severity": "<high|medium|low>", "justification": "<one or two sentences>"}}"""
)

GEOCODE_PROMPT = ChatPromptTemplate.from_template(
    """You are a highly accurate geocoding assistant. Convert the given location name into its
precise latitude and longitude.

Location Name: {location_name}

Respond with only a JSON object in this EXACT format:
{{"latitude": <number>, "longitude": <number>}}"""
)

# Severity used when the model is unavailable
DEFAULT_SEVERITY = {
    "fallen_tree": "high",
    "pothole": "medium",
    "streetlight": "medium",
    "garbage": "low",
    "other": "low",
}


def parse_data_uri(data_uri):
    """Split a 'data:<mimetype>;base64,<data>' URI into (mime_type, raw bytes)."""
    match = DATA_URI_RE.match(data_uri or "")
    if not match:
        raise InvalidReportError("Media must be a base64 data URI ('data:<mimetype>;base64,<data>')")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidReportError(f"Media is not valid base64: {e}") from e
    return match.group("mime"), data


def to_data_uri(mime_type, data):
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_json_response(text):
    """Parse the model's JSON answer, tolerating markdown code fences."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
        cleaned = re.sub(r"\s*```$", "", cleaned)
    result = json.loads(cleaned)
    if not isinstance(result, dict):
        raise ValueError(f"Expected a JSON object, got {type(result).__name__}")
    return result


def generate_json(prompt_text, media=None):
    """Send a prompt (plus optional (mime_type, bytes) media) to Gemini and parse the JSON reply."""
    contents = [prompt_text]
    if media is not None:
        mime_type, data = media
        contents.append({"mime_type": mime_type, "data": data})
    response = llm.generate_content(contents, generation_config=GENERATION_CONFIG)
    return parse_json_response(response.text)


def normalize_issue_type(value):
    return str(value or "").strip().lower().replace(" ", "_")


def validate_identification(raw):
    """Validate and clean an identification response"""
    identified = normalize_issue_type(raw.get("identifiedType") or raw.get("objectType"))
    if identified not in ISSUE_TYPES and identified != "none":
        raise ValueError(f"Unknown identified type: {identified!r}")
    confidence = float(raw.get("confidence", 0.0))
    confidence = max(0.0, min(1.0, confidence))
    return {"identifiedType": identified, "confidence": confidence}


def validate_assessment(raw):
    """Validate and clean a severity response"""
    severity = str(raw.get("severity", "")).strip().lower()
    if severity not in SEVERITIES:
        raise ValueError(f"Unknown severity: {severity!r}")
    justification = str(raw.get("justification", "")).strip()
    if not justification:
        raise ValueError("Missing justification")
    return {"severity": severity, "justification": justification}


def get_default_identification(issue_type=None):
    """Trust the reporter's declared type when the model cannot answer."""
    issue_type = normalize_issue_type(issue_type)
    if issue_type not in ISSUE_TYPES:
        issue_type = "other"
    return {"identifiedType": issue_type, "confidence": 0.0}


def infer_severity(issue_type, is_confirmed):
    severity = DEFAULT_SEVERITY.get(normalize_issue_type(issue_type), "low")
    if is_confirmed and severity != "high":
        severity = SEVERITIES[SEVERITIES.index(severity) + 1]
    return severity


def get_default_assessment(issue_type, is_confirmed):
    severity = infer_severity(issue_type, is_confirmed)
    label = normalize_issue_type(issue_type).replace("_", " ") or "issue"
    return {
        "severity": severity,
        "justification": f"Automatic assessment unavailable; default {severity} severity applied for a reported {label}.",
    }


def identify_object(photo_data_uri, location, issue_type=None):
    """Identify which civic issue (if any) the media shows."""
    media = parse_data_uri(photo_data_uri)
    try:
        prompt = IDENTIFY_PROMPT.format(location=location, issue_type=issue_type or "not specified")
        return validate_identification(generate_json(prompt, media))
    except Exception as e:
        logger.warning("Identification failed, falling back to reporter's type: %s", e)
        return get_default_identification(issue_type)


def assess_severity(photo_data_uri, location, issue_type, is_confirmed=True):
    """Assess severity (high/medium/low) with a justification."""
    media = parse_data_uri(photo_data_uri)
    try:
        prompt = SEVERITY_PROMPT.format(
            location=location,
            is_confirmed=is_confirmed,
            issue_type=issue_type,
        )
        return validate_assessment(generate_json(prompt, media))
    except Exception as e:
        logger.warning("Severity assessment failed, using default for %s: %s", issue_type, e)
        return get_default_assessment(issue_type, is_confirmed)


def geocode_location(location_name):
    """Convert a place name into coordinates."""
    if not location_name or not location_name.strip():
        raise InvalidReportError("Location name is required")
    try:
        raw = generate_json(GEOCODE_PROMPT.format(location_name=location_name.strip()))
        latitude = float(raw["latitude"])
        longitude = float(raw["longitude"])
    except Exception as e:
        logger.exception("Geocoding failed for %r", location_name)
        raise AIServiceError(f"Could not geocode location: {e}") from e
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        raise AIServiceError(f"Geocoder returned out-of-range coordinates: {latitude}, {longitude}")
    return {"latitude": latitude, "longitude": longitude}
