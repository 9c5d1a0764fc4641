# backend/foundation_layout/services/gemini_service.py
# Google Gemini integration for structural grid detection
# Sends the uploaded plan, validates the JSON reply, denormalizes to pixels

from typing import List, Optional, Sequence
import json
import os
import logging

from pydantic import ValidationError

from ..schemas import DetectedGridLine, GridDetectionPayload, GridLine, GridOrientation
from .grid_labels import new_grid_line_id

logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

GOOGLE_GEMINI_API_KEY = os.getenv("GOOGLE_GEMINI_API_KEY") or os.getenv("GEMINI_API_KEY")

GRID_DETECTION_MODEL = os.getenv("GEMINI_GRID_MODEL", "gemini-2.0-flash")

GRID_DETECTION_PROMPT = (
    "Analyze architectural plan to find structural grid system lines. "
    "Return JSON with 'gridLines' containing 'label', 'orientation' "
    "(vertical/horizontal), and normalized 'position' (0.0 to 1.0)."
)


class GridDetectionError(Exception):
    """AI grid detection failed or returned an unusable response."""


# =============================================================================
# CLIENT INITIALIZATION
# =============================================================================

def get_gemini_client():
    """
    Get initialized Gemini client.

    Raises GridDetectionError if API key not configured.
    """
    if not GOOGLE_GEMINI_API_KEY:
        raise GridDetectionError(
            "Google Gemini API key not configured. Set GOOGLE_GEMINI_API_KEY environment variable."
        )

    from google import genai
    return genai.Client(api_key=GOOGLE_GEMINI_API_KEY)


def build_response_schema():
    """Response schema for the detection call"""
    from google.genai import types

    line_schema = types.Schema(
        type=types.Type.OBJECT,
        properties={
            'label': types.Schema(type=types.Type.STRING),
            'orientation': types.Schema(type=types.Type.STRING, enum=['vertical', 'horizontal']),
            'position': types.Schema(type=types.Type.NUMBER),
        },
        required=['label', 'orientation', 'position'],
    )
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            'gridLines': types.Schema(type=types.Type.ARRAY, items=line_schema),
        },
        required=['gridLines'],
    )


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def _extract_json_from_response(text: str) -> str:
    """Extract JSON from a response that may contain markdown."""
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]
    return text.strip()


def parse_detection_response(text: Optional[str]) -> List[DetectedGridLine]:
    """
    Validate a detection reply against the expected schema.

    Raises:
        GridDetectionError: empty reply, invalid JSON, wrong shape, or no lines
    """
    if not text or not text.strip():
        raise GridDetectionError("No response from AI.")

    try:
        data = json.loads(_extract_json_from_response(text.strip()))
    except json.JSONDecodeError as e:
        raise GridDetectionError(f"AI response is not valid JSON: {e}") from e

    try:
        payload = GridDetectionPayload.model_validate(data)
    except ValidationError as e:
        raise GridDetectionError(f"AI response does not match grid schema: {e.error_count()} errors") from e

    if not payload.grid_lines:
        raise GridDetectionError("AI response contained no grid lines")
    return payload.grid_lines


def denormalize_grid_lines(
    detected: Sequence[DetectedGridLine],
    image_width: int,
    image_height: int
) -> List[GridLine]:
    """Convert normalized positions to plan pixels (x for vertical, y for horizontal)"""
    lines = []
    for item in detected:
        extent = image_width if item.orientation == GridOrientation.VERTICAL else image_height
        lines.append(GridLine(
            id=new_grid_line_id(),
            label=item.label,
            orientation=item.orientation,
            position=item.position * extent,
        ))
    return lines


# =============================================================================
# DETECTION
# =============================================================================

def detect_grid_lines(
    image_bytes: bytes,
    mime_type: str,
    image_width: int,
    image_height: int
) -> List[GridLine]:
    """
    Ask Gemini for the structural grid of a plan image.

    Args:
        image_bytes: Uploaded PNG/JPG data
        mime_type: MIME type of the upload
        image_width: Pixel width of the upload
        image_height: Pixel height of the upload

    Returns:
        Grid lines in plan pixels, ready to replace the project's grid

    Raises:
        GridDetectionError: any client, transport or response failure
    """
    client = get_gemini_client()

    from google.genai import types

    try:
        response = client.models.generate_content(
            model=GRID_DETECTION_MODEL,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                GRID_DETECTION_PROMPT,
            ],
            config=types.GenerateContentConfig(
                temperature=0.1,
                response_mime_type='application/json',
                response_schema=build_response_schema(),
            )
        )
    except Exception as e:
        logger.error(f"Grid detection request failed: {e}")
        raise GridDetectionError(f"Grid detection request failed: {e}") from e

    detected = parse_detection_response(getattr(response, 'text', None))
    lines = denormalize_grid_lines(detected, image_width, image_height)

    vertical = sum(1 for l in lines if l.orientation == GridOrientation.VERTICAL)
    logger.info(
        f"Grid detection: {vertical} vertical, {len(lines) - vertical} horizontal lines "
        f"on {image_width}x{image_height}px plan"
    )
    return lines
