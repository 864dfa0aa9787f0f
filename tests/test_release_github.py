"""Tests for the GitHub Releases client.

These tests use mocked HTTP responses.
"""

import json

import httpx
import pytest
import respx

from firmware_autobuild.release.github import (
    GitHubReleaseClient,
    ReleaseApiError,
    github_headers,
    release_tag,
    strip_url_template,
)
from firmware_autobuild.release.models import Asset, ReleaseTarget
from firmware_autobuild.types import Action, Channel

API = "https://api.github.com"
UPLOADS = "https://uploads.github.com/repos/acme/fw/releases/5/assets"


@pytest.fixture
def client():
    with GitHubReleaseClient("acme/fw", "tok") as release_client:
        yield release_client


@pytest.fixture
def target():
    return ReleaseTarget(5, "stable-2.1.2-202403051407", UPLOADS)


@pytest.fixture
def artifact(tmp_path):
    path = tmp_path / "fw.bin"
    path.write_bytes(b"\x00firmware")
    return path


class TestHelpers:
    """Tests for module helpers."""

    def test_headers_with_token(self):
        """Should send a bearer token and the API version."""
        headers = github_headers("tok")
        assert headers["Authorization"] == "Bearer tok"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert headers["User-Agent"].startswith("firmware-autobuild/")

    def test_headers_without_token(self):
        """Should omit Authorization without a token."""
        assert "Authorization" not in github_headers(None)

    def test_release_tag(self):
        """Tags should combine channel, version and run time."""
        assert (
            release_tag("2.1.2", Channel.STABLE, "202403051407")
            == "stable-2.1.2-202403051407"
        )

    def test_strip_url_template(self):
        """Should drop the {?name,label} suffix."""
        assert strip_url_template(UPLOADS + "{?name,label}") == UPLOADS


class TestCreateRelease:
    """Tests for create_release."""

    @respx.mock
    def test_stable_release(self, client):
        """Should post the release and return the upload target."""
        route = respx.post(f"{API}/repos/acme/fw/releases").mock(
            return_value=httpx.Response(
                201,
                json={
                    "id": 5,
                    "tag_name": "stable-2.1.2-202403051407",
                    "upload_url": UPLOADS + "{?name,label}",
                    "html_url": "https://github.com/acme/fw/releases/5",
                },
            )
        )

        target = client.create_release("2.1.2", Channel.STABLE, "202403051407")

        assert target.release_id == 5
        assert target.upload_url == UPLOADS
        body = json.loads(route.calls.last.request.content)
        assert body["tag_name"] == "stable-2.1.2-202403051407"
        assert body["prerelease"] is False
        assert route.calls.last.request.headers["Authorization"] == "Bearer tok"

    @respx.mock
    def test_nightly_is_prerelease(self, client):
        """Nightly releases should be marked as prereleases."""
        route = respx.post(f"{API}/repos/acme/fw/releases").mock(
            return_value=httpx.Response(201, json={"id": 6, "upload_url": UPLOADS})
        )
        client.create_release("bugfix-2.1.x-abc1234", Channel.NIGHTLY, "202403051407")
        assert json.loads(route.calls.last.request.content)["prerelease"] is True

    @respx.mock
    def test_http_error(self, client):
        """An HTTP error should raise ReleaseApiError with the status."""
        respx.post(f"{API}/repos/acme/fw/releases").mock(
            return_value=httpx.Response(422, json={"message": "already_exists"})
        )
        with pytest.raises(ReleaseApiError) as exc_info:
            client.create_release("2.1.2", Channel.STABLE, "202403051407")
        assert exc_info.value.code == "http_error"
        assert exc_info.value.status_code == 422

    @respx.mock
    def test_network_error(self, client):
        """A transport failure should raise network_error."""
        respx.post(f"{API}/repos/acme/fw/releases").mock(
            side_effect=httpx.ConnectError("refused")
        )
        with pytest.raises(ReleaseApiError) as exc_info:
            client.create_release("2.1.2", Channel.STABLE, "202403051407")
        assert exc_info.value.code == "network_error"

    @respx.mock
    def test_timeout(self, client):
        """A timeout should raise timeout."""
        respx.post(f"{API}/repos/acme/fw/releases").mock(
            side_effect=httpx.ReadTimeout("slow")
        )
        with pytest.raises(ReleaseApiError) as exc_info:
            client.create_release("2.1.2", Channel.STABLE, "202403051407")
        assert exc_info.value.code == "timeout"

    @respx.mock
    def test_invalid_response(self, client):
        """A payload without upload_url should raise invalid_response."""
        respx.post(f"{API}/repos/acme/fw/releases").mock(
            return_value=httpx.Response(201, json={"id": 5})
        )
        with pytest.raises(ReleaseApiError) as exc_info:
            client.create_release("2.1.2", Channel.STABLE, "202403051407")
        assert exc_info.value.code == "invalid_response"


class TestCredentials:
    """Tests for missing configuration."""

    def test_missing_token(self):
        """Should refuse to call the API without a token."""
        with GitHubReleaseClient("acme/fw", None) as release_client:
            with pytest.raises(ReleaseApiError) as exc_info:
                release_client.create_release("1", Channel.STABLE, "202401010000")
        assert exc_info.value.code == "missing_token"

    def test_missing_repo(self):
        """Should refuse to call the API without a repository."""
        with GitHubReleaseClient(None, "tok") as release_client:
            with pytest.raises(ReleaseApiError) as exc_info:
                release_client.create_release("1", Channel.STABLE, "202401010000")
        assert exc_info.value.code == "missing_repo"


class TestUploadAsset:
    """Tests for upload_asset."""

    @respx.mock
    def test_create_upload(self, client, target, artifact):
        """Should post the binary with the asset name."""
        route = respx.post(UPLOADS).mock(
            return_value=httpx.Response(201, json={"id": 77})
        )
        asset = Asset("a.yaml", "2.1.2-20240305-123456.bin", artifact, Action.CREATE)

        assert client.upload_asset(target, asset) == 77
        request = route.calls.last.request
        assert request.url.params["name"] == "2.1.2-20240305-123456.bin"
        assert request.headers["Content-Type"] == "application/octet-stream"
        assert request.content == b"\x00firmware"

    @respx.mock
    def test_update_deletes_previous_asset(self, client, target, artifact):
        """An update should delete the asset it replaces first."""
        delete = respx.delete(f"{API}/repos/acme/fw/releases/assets/42").mock(
            return_value=httpx.Response(204)
        )
        respx.post(UPLOADS).mock(return_value=httpx.Response(201, json={"id": 78}))
        asset = Asset("a.yaml", "fw.bin", artifact, Action.UPDATE, asset_id=42)

        assert client.upload_asset(target, asset) == 78
        assert delete.called

    @respx.mock
    def test_update_tolerates_missing_asset(self, client, target, artifact):
        """A 404 on delete should not stop the upload."""
        respx.delete(f"{API}/repos/acme/fw/releases/assets/42").mock(
            return_value=httpx.Response(404)
        )
        respx.post(UPLOADS).mock(return_value=httpx.Response(201, json={"id": 79}))
        asset = Asset("a.yaml", "fw.bin", artifact, Action.UPDATE, asset_id=42)
        assert client.upload_asset(target, asset) == 79

    @respx.mock
    def test_delete_failure_propagates(self, client, target, artifact):
        """Other delete failures should abort the upload."""
        respx.delete(f"{API}/repos/acme/fw/releases/assets/42").mock(
            return_value=httpx.Response(500)
        )
        upload = respx.post(UPLOADS).mock(return_value=httpx.Response(201))
        asset = Asset("a.yaml", "fw.bin", artifact, Action.UPDATE, asset_id=42)

        with pytest.raises(ReleaseApiError) as exc_info:
            client.upload_asset(target, asset)
        assert exc_info.value.status_code == 500
        assert not upload.called

    @respx.mock
    def test_upload_error(self, client, target, artifact):
        """A failed upload should raise ReleaseApiError."""
        respx.post(UPLOADS).mock(return_value=httpx.Response(502))
        asset = Asset("a.yaml", "fw.bin", artifact, Action.CREATE)
        with pytest.raises(ReleaseApiError) as exc_info:
            client.upload_asset(target, asset)
        assert exc_info.value.code == "http_error"


class TestClientOwnership:
    """Tests for client lifecycle."""

    def test_shared_client_not_closed(self):
        """A caller-provided client should stay open."""
        http_client = httpx.Client()
        GitHubReleaseClient("acme/fw", "tok", client=http_client).close()
        assert not http_client.is_closed
        http_client.close()
