"""
Enhance Client - HTTP access to the enhancer server

Posts frames to the /enhance endpoint. When the server cannot be reached the
same engine runs in-process instead, so the display keeps getting frames.
Typed failures reported by the server are raised locally, not retried.
"""

import time
from typing import Optional

import requests

from config import EnhancerConfig
from enhancement_profile import AUTO, FilterParams
from errors import InvalidDimensions, StageFailure, UnknownProfile
from frame_codec import PayloadError, decode_result, encode_request
from frame_enhancer import FilterPipeline
from logger import get_logger, log_error
from pixel_buffer import PixelBuffer


class EnhanceClient:
    """
    Client for the enhancer HTTP endpoint with a local fallback.

    Usage:
        client = EnhanceClient("http://localhost:3000")
        enhanced, report = client.enhance(buffer, FilterParams(), "portrait")
        print(client.last_source)   # "server" or "local"
    """

    POLL_INTERVAL = 0.2
    JOB_TIMEOUT = 120.0

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 pipeline: FilterPipeline = None):
        if base_url is None or timeout is None:
            config = EnhancerConfig.from_env()
            base_url = base_url or config.server_url
            timeout = timeout if timeout is not None else config.request_timeout
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.pipeline = pipeline or FilterPipeline()
        self.last_source: Optional[str] = None

    def is_available(self) -> bool:
        """True if the server answers its health check."""
        try:
            response = requests.get(f"{self.base_url}/health", timeout=self.timeout)
            return response.status_code == 200
        except requests.RequestException:
            return False

    def enhance(self, buffer: PixelBuffer, params: FilterParams = None, profile=AUTO):
        """
        Enhance a frame remotely, or locally if the transport is down.

        Returns:
            (PixelBuffer, ProcessingReport)
        """
        params = params or FilterParams()
        try:
            response = requests.post(
                f"{self.base_url}/enhance",
                json=encode_request(buffer, params, profile),
                timeout=self.timeout
            )
        except requests.RequestException as e:
            log_error("Enhancer server unreachable, processing locally", e)
            return self._enhance_locally(buffer, params, profile)

        if response.status_code == 202:
            job_id = response.json()["job_id"]
            return self._wait_for_job(job_id, buffer, params, profile)

        return self._handle_response(response, buffer, params, profile)

    def _wait_for_job(self, job_id: int, buffer, params, profile):
        deadline = time.monotonic() + self.JOB_TIMEOUT
        while time.monotonic() < deadline:
            try:
                response = requests.get(f"{self.base_url}/jobs/{job_id}", timeout=self.timeout)
            except requests.RequestException as e:
                log_error(f"Lost server while waiting for job {job_id}, processing locally", e)
                return self._enhance_locally(buffer, params, profile)

            if response.status_code != 202:
                return self._handle_response(response, buffer, params, profile)
            time.sleep(self.POLL_INTERVAL)

        raise TimeoutError(f"job {job_id} not finished after {self.JOB_TIMEOUT:.0f}s")

    def _handle_response(self, response, buffer, params, profile):
        if response.status_code == 200:
            result = decode_result(response.json())
            self.last_source = "server"
            return result

        try:
            body = response.json()
        except ValueError:
            body = {}
        error_type = body.get("error_type")
        message = body.get("error", response.text)

        if error_type == "UnknownProfile":
            raise UnknownProfile(profile)
        if error_type == "InvalidDimensions":
            raise InvalidDimensions(buffer.width, buffer.height, len(buffer))
        if error_type == "StageFailure":
            raise StageFailure(message)
        if response.status_code >= 500:
            log_error(f"Enhancer server error {response.status_code}, processing locally")
            return self._enhance_locally(buffer, params, profile)
        raise PayloadError(f"server rejected frame: {response.status_code} - {message}")

    def _enhance_locally(self, buffer, params, profile):
        get_logger().info("[CLIENT] Using local enhancement pipeline")
        result = self.pipeline.enhance(buffer, params, profile)
        self.last_source = "local"
        return result
