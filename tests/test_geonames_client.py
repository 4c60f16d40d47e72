import unittest

import requests

from app.data_sources import geonames_client
from app.errors import ParseError, UpstreamError


class DummyResp:
    def __init__(self, payload=None, status_code=200, json_error=None):
        self._payload = payload
        self.status_code = status_code
        self._json_error = json_error

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._payload


class RecordingSession:
    def __init__(self, resp=None, error=None):
        self.resp = resp
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.resp


def _make_timezone_payload(dst_offset=2):
    return {
        "sunrise": "2024-06-01 05:47",
        "lng": 2.3522,
        "countryCode": "FR",
        "gmtOffset": 1,
        "rawOffset": 1,
        "sunset": "2024-06-01 21:45",
        "timezoneId": "Europe/Paris",
        "dstOffset": dst_offset,
        "countryName": "France",
        "time": "2024-06-01 12:00",
        "lat": 48.8566,
    }


class TestGeoNamesClient(unittest.TestCase):
    def setUp(self):
        self._orig_session = geonames_client.session

    def tearDown(self):
        geonames_client.session = self._orig_session

    def test_fetch_offset(self):
        session = RecordingSession(DummyResp(_make_timezone_payload(2)))
        geonames_client.session = session

        self.assertEqual(geonames_client.fetch_offset(48.8566, 2.3522, username="tester"), 2)
        url, kwargs = session.calls[0]
        self.assertIn("lat=48.8566", url)
        self.assertIn("lng=2.3522", url)
        self.assertIn("username=tester", url)
        self.assertEqual(kwargs["timeout"], 10)

    def test_negative_and_integral_float_offsets(self):
        geonames_client.session = RecordingSession(DummyResp(_make_timezone_payload(-4.0)))
        self.assertEqual(geonames_client.fetch_offset(40.7, -74.0), -4)

    def test_fractional_offset_is_parse_error(self):
        geonames_client.session = RecordingSession(DummyResp(_make_timezone_payload(5.5)))
        with self.assertRaises(ParseError):
            geonames_client.fetch_offset(28.6, 77.2)

    def test_missing_offset_is_parse_error(self):
        payload = _make_timezone_payload()
        del payload["dstOffset"]
        geonames_client.session = RecordingSession(DummyResp(payload))
        with self.assertRaises(ParseError):
            geonames_client.fetch_offset(1, 2)

    def test_http_500_is_upstream_error_with_masked_url(self):
        geonames_client.session = RecordingSession(DummyResp({}, status_code=500))

        with self.assertRaises(UpstreamError) as ctx:
            geonames_client.fetch_offset(1, 2, username="secret-user")
        err = ctx.exception
        self.assertEqual(err.status_code, 500)
        self.assertIn("secret-user", err.url)
        self.assertNotIn("secret-user", str(err))
        self.assertIn("api.geonames.org", str(err))

    def test_status_payload_is_parse_error(self):
        payload = {"status": {"message": "the daily limit of 20000 credits has been exceeded", "value": 18}}
        geonames_client.session = RecordingSession(DummyResp(payload))

        with self.assertRaises(ParseError) as ctx:
            geonames_client.fetch_offset(1, 2)
        self.assertIn("daily limit", str(ctx.exception))

    def test_transport_failure_is_upstream_error(self):
        geonames_client.session = RecordingSession(error=requests.Timeout("slow"))
        with self.assertRaises(UpstreamError):
            geonames_client.fetch_offset(1, 2)

    def test_undecodable_body_is_parse_error(self):
        geonames_client.session = RecordingSession(DummyResp(json_error=ValueError("nope")))
        with self.assertRaises(ParseError):
            geonames_client.fetch_offset(1, 2)

    def test_request_url_is_logged_with_username_masked(self):
        geonames_client.session = RecordingSession(DummyResp({"dstOffset": 2}))

        with self.assertLogs("app.data_sources.geonames_client", level="INFO") as logs:
            geonames_client.fetch_offset(1, 2, username="secret-user")
        output = "\n".join(logs.output)
        self.assertIn("asking timezone: ", output)
        self.assertIn("username=%2A%2A%2A", output)
        self.assertNotIn("secret-user", output)


if __name__ == "__main__":
    unittest.main()
