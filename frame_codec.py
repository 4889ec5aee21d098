"""
Frame Codec

JSON wire format shared by the HTTP endpoint and its client.

Request:  {"width": W, "height": H, "data": <base64 RGBA>,
           "params": {"sharpness": .., "brightness": .., "contrast": .., "noiseReduction": ..},
           "profile": "auto"}
Response: {"width": W, "height": H, "data": <base64 RGBA>, "report": {...}}
"""

import base64
import binascii

from enhancement_profile import AUTO, FilterParams
from frame_enhancer import ProcessingReport
from pixel_buffer import PixelBuffer


class PayloadError(ValueError):
    """Request or response body is missing fields or not decodable."""


def encode_buffer(buf: PixelBuffer) -> dict:
    return {
        "width": buf.width,
        "height": buf.height,
        "data": base64.b64encode(buf.to_bytes()).decode("ascii"),
    }


def decode_buffer(payload: dict) -> PixelBuffer:
    """Raises PayloadError for malformed input, InvalidDimensions for size mismatch."""
    if not isinstance(payload, dict):
        raise PayloadError("payload must be a JSON object")
    try:
        width = int(payload["width"])
        height = int(payload["height"])
        data = base64.b64decode(payload["data"], validate=True)
    except KeyError as e:
        raise PayloadError(f"missing field {e.args[0]!r}") from e
    except (TypeError, ValueError, binascii.Error) as e:
        raise PayloadError(f"undecodable frame: {e}") from e
    return PixelBuffer(width, height, data)


def encode_request(buf: PixelBuffer, params: FilterParams = None, profile=AUTO) -> dict:
    payload = encode_buffer(buf)
    payload["params"] = (params or FilterParams()).to_dict()
    payload["profile"] = getattr(profile, "value", profile)
    return payload


def decode_request(payload: dict):
    """Returns (PixelBuffer, FilterParams, profile selector or None)."""
    buf = decode_buffer(payload)
    try:
        params = FilterParams.from_dict(payload.get("params"))
    except (TypeError, ValueError, AttributeError) as e:
        raise PayloadError(f"bad params: {e}") from e
    return buf, params, payload.get("profile")


def encode_result(buf: PixelBuffer, report: ProcessingReport) -> dict:
    payload = encode_buffer(buf)
    payload["report"] = report.to_dict()
    return payload


def decode_report(data: dict) -> ProcessingReport:
    try:
        return ProcessingReport(
            profile=data["profile"],
            model_name=data.get("modelName", ""),
            processing_time_ms=int(data.get("processingTime", 0)),
            resolution_increase=int(data.get("resolutionIncrease", 0)),
            stages=tuple(data.get("stages", ())),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise PayloadError(f"bad report: {e}") from e


def decode_result(payload: dict):
    """Returns (PixelBuffer, ProcessingReport)."""
    buf = decode_buffer(payload)
    if "report" not in payload:
        raise PayloadError("missing field 'report'")
    return buf, decode_report(payload["report"])
