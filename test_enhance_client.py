"""
Tests for EnhanceClient
"""

import unittest
from unittest.mock import patch, MagicMock

import requests

from enhance_client import EnhanceClient
from enhancement_profile import FilterParams
from errors import InvalidDimensions, UnknownProfile
from frame_codec import PayloadError, encode_result
from frame_enhancer import ProcessingReport
from pixel_buffer import PixelBuffer


def json_response(status_code, body):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = str(body)
    return response


class TestEnhanceClient(unittest.TestCase):
    def setUp(self):
        self.client = EnhanceClient(base_url="http://test/", timeout=1)
        self.frame = PixelBuffer.filled(4, 4, (128, 128, 128, 255))
        self.server_frame = PixelBuffer.filled(4, 4, (1, 2, 3, 255))
        report = ProcessingReport(
            profile="standard",
            model_name="Standard Enhancement",
            processing_time_ms=3,
            resolution_increase=0,
            stages=("BrightnessContrast",),
        )
        self.server_body = encode_result(self.server_frame, report)

    @patch('enhance_client.requests.post')
    def test_server_result(self, mock_post):
        mock_post.return_value = json_response(200, self.server_body)

        enhanced, report = self.client.enhance(self.frame, FilterParams(), "standard")

        self.assertEqual(enhanced, self.server_frame)
        self.assertEqual(report.stages, ("BrightnessContrast",))
        self.assertEqual(self.client.last_source, "server")
        url = mock_post.call_args[0][0]
        self.assertEqual(url, "http://test/enhance")
        self.assertEqual(mock_post.call_args[1]["json"]["profile"], "standard")

    @patch('enhance_client.requests.post')
    def test_unreachable_server_falls_back(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")

        enhanced, report = self.client.enhance(self.frame, FilterParams(), "standard")

        self.assertEqual(enhanced, self.frame)
        self.assertEqual(report.profile, "standard")
        self.assertEqual(self.client.last_source, "local")

    @patch('enhance_client.requests.post')
    def test_server_error_falls_back(self, mock_post):
        response = json_response(503, None)
        response.json.side_effect = ValueError("no json")
        mock_post.return_value = response

        _, report = self.client.enhance(self.frame, FilterParams(), "nightvision")

        self.assertEqual(report.profile, "nightvision")
        self.assertEqual(self.client.last_source, "local")

    @patch('enhance_client.requests.post')
    def test_unknown_profile_is_raised(self, mock_post):
        mock_post.return_value = json_response(
            400, {"error": "unknown profile 'sepia'", "error_type": "UnknownProfile"})

        with self.assertRaises(UnknownProfile):
            self.client.enhance(self.frame, FilterParams(), "sepia")

    @patch('enhance_client.requests.post')
    def test_invalid_dimensions_is_raised(self, mock_post):
        mock_post.return_value = json_response(
            400, {"error": "bad size", "error_type": "InvalidDimensions"})

        with self.assertRaises(InvalidDimensions):
            self.client.enhance(self.frame)

    @patch('enhance_client.requests.post')
    def test_other_rejection(self, mock_post):
        mock_post.return_value = json_response(413, {"error": "too large"})

        with self.assertRaises(PayloadError):
            self.client.enhance(self.frame)

    @patch('enhance_client.requests.get')
    @patch('enhance_client.requests.post')
    def test_queued_job_is_polled(self, mock_post, mock_get):
        mock_post.return_value = json_response(202, {"job_id": 7, "status": "pending"})
        body = dict(self.server_body, job_id=7, status="done")
        mock_get.return_value = json_response(200, body)

        enhanced, _ = self.client.enhance(self.frame, FilterParams(), "hybrid")

        self.assertEqual(enhanced, self.server_frame)
        self.assertEqual(mock_get.call_args[0][0], "http://test/jobs/7")
        self.assertEqual(self.client.last_source, "server")

    @patch('enhance_client.requests.get')
    @patch('enhance_client.requests.post')
    def test_lost_server_while_polling(self, mock_post, mock_get):
        mock_post.return_value = json_response(202, {"job_id": 8, "status": "pending"})
        mock_get.side_effect = requests.Timeout("slow")

        _, report = self.client.enhance(self.frame, FilterParams(noise_reduction=20), "hybrid")

        self.assertEqual(report.profile, "hybrid")
        self.assertEqual(self.client.last_source, "local")

    @patch('enhance_client.requests.get')
    def test_is_available(self, mock_get):
        mock_get.return_value = json_response(200, {"status": "ok"})
        self.assertTrue(self.client.is_available())

        mock_get.side_effect = requests.ConnectionError("refused")
        self.assertFalse(self.client.is_available())


if __name__ == '__main__':
    unittest.main()
