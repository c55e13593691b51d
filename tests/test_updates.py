import os

import pytest
import requests

from vps_setup import updates
from vps_setup.config.models import UpdatesConfig
from vps_setup.updates import check_for_update, fetch_latest_version

NOW = 1_700_000_000.0


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status}")

    def json(self):
        return self.payload


@pytest.fixture
def version_file(tmp_path):
    f = tmp_path / "vps-setup-version"
    f.write_text("1.0.0\n")
    return f


@pytest.fixture
def github(monkeypatch):
    calls = []

    def install(resp):
        def fake_get(url, **kwargs):
            calls.append(url)
            if isinstance(resp, Exception):
                raise resp
            return resp
        monkeypatch.setattr(updates.requests, "get", fake_get)
        return calls

    return install


def test_notice_when_newer_release(version_file, tmp_path, github):
    github(FakeResponse({"tag_name": "v1.2.0"}))
    stamp = tmp_path / "stamp"

    notice = check_for_update(version_file, UpdatesConfig(), stamp=stamp, now=NOW)

    assert notice.startswith("[vps-setup] Update available: 1.0.0 → 1.2.0")
    assert stamp.stat().st_mtime == NOW


def test_no_notice_when_current(version_file, tmp_path, github):
    github(FakeResponse({"tag_name": "1.0.0"}))
    assert check_for_update(version_file, UpdatesConfig(), stamp=tmp_path / "s", now=NOW) is None


def test_rate_limited_to_once_per_interval(version_file, tmp_path, github):
    calls = github(FakeResponse({"tag_name": "v2.0.0"}))
    stamp = tmp_path / "stamp"
    stamp.touch()
    os.utime(stamp, (NOW - 3600, NOW - 3600))

    assert check_for_update(version_file, UpdatesConfig(), stamp=stamp, now=NOW) is None
    assert calls == []

    assert check_for_update(version_file, UpdatesConfig(), stamp=stamp, now=NOW + 86400) is not None
    assert len(calls) == 1


def test_network_failure_is_silent(version_file, tmp_path, github):
    github(requests.ConnectionError("offline"))
    stamp = tmp_path / "stamp"
    assert check_for_update(version_file, UpdatesConfig(), stamp=stamp, now=NOW) is None
    assert stamp.exists()


def test_not_installed_means_no_check(tmp_path, github):
    calls = github(FakeResponse({"tag_name": "v2.0.0"}))
    assert check_for_update(tmp_path / "missing", UpdatesConfig(), stamp=tmp_path / "s", now=NOW) is None
    assert calls == []


def test_fetch_handles_http_errors(github):
    github(FakeResponse({}, status=403))
    assert fetch_latest_version("https://example.invalid/releases/latest") is None
