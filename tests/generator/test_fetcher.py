"""
Unit tests for cache-aware artifact retrieval.
"""

from unittest.mock import MagicMock

import pytest
import responses

from swiftsdkgen.core.download import HTTPClient
from swiftsdkgen.core.exceptions import ArtifactNotFoundError
from swiftsdkgen.generator.fetcher import ArtifactFetcher, ImageArtifact, RemoteArtifact

URL = "https://download.swift.org/swift-5.9-release/ubuntu2204/swift-5.9.tar.gz"


@pytest.fixture
def client():
    with HTTPClient() as c:
        yield c


class TestRemoteArtifact:
    """Test remote artifact descriptors."""

    def test_file_name(self):
        """Test the file name comes from the URL path."""
        assert RemoteArtifact(URL).file_name == "swift-5.9.tar.gz"

    def test_file_name_unquoted(self):
        """Test percent-encoded names are decoded."""
        artifact = RemoteArtifact("https://example.com/clang%2Bllvm.tar.xz")

        assert artifact.file_name == "clang+llvm.tar.xz"

    def test_file_name_fallback(self):
        """Test URLs without a path still get a name."""
        assert RemoteArtifact("https://example.com/").file_name == "download"


class TestFetchRemote:
    """Test fetching over HTTP."""

    @responses.activate
    def test_fetch_downloads_on_miss(self, client, engine):
        """Test a miss probes, downloads and stores the file."""
        responses.add(responses.HEAD, URL, status=200)
        responses.add(responses.GET, URL, body=b"archive", status=200)
        fetcher = ArtifactFetcher(client, engine)

        path = fetcher.fetch(RemoteArtifact(URL))

        assert path.read_bytes() == b"archive"
        assert path.name == "swift-5.9.tar.gz"
        assert fetcher.fetch_count == 1

    @responses.activate
    def test_fetch_hit_does_no_io(self, client, engine):
        """Test a second fetch is served from the cache."""
        responses.add(responses.HEAD, URL, status=200)
        responses.add(responses.GET, URL, body=b"archive", status=200)
        fetcher = ArtifactFetcher(client, engine)

        first = fetcher.fetch(RemoteArtifact(URL))
        calls = len(responses.calls)
        second = fetcher.fetch(RemoteArtifact(URL))

        assert first == second
        assert len(responses.calls) == calls
        assert fetcher.fetch_count == 1

    @responses.activate
    def test_fetch_not_found(self, client, engine):
        """Test a failed probe raises and caches nothing."""
        responses.add(responses.HEAD, URL, status=404)
        fetcher = ArtifactFetcher(client, engine)

        with pytest.raises(ArtifactNotFoundError) as exc_info:
            fetcher.fetch(RemoteArtifact(URL))

        assert exc_info.value.url == URL
        assert engine.get(ArtifactFetcher.cache_key_for(RemoteArtifact(URL))) is None
        assert not any(call.request.method == "GET" for call in responses.calls)


class TestFetchImage:
    """Test fetching from Docker images."""

    def test_fetch_image_copies_once(self, engine):
        """Test image contents are copied on a miss and cached."""
        docker = MagicMock()

        def copy_out(image, paths, destination):
            destination.mkdir()
            (destination / "usr_lib.tar").write_bytes(b"tar")

        docker.copy_out.side_effect = copy_out
        fetcher = ArtifactFetcher(MagicMock(), engine, docker)
        source = ImageArtifact("swift:5.9-jammy", ("/usr/lib",))

        first = fetcher.fetch(source)
        second = fetcher.fetch(source)

        assert first == second
        assert (first / "usr_lib.tar").read_bytes() == b"tar"
        docker.copy_out.assert_called_once()
        assert fetcher.fetch_count == 1

    def test_cache_keys_distinguish_paths(self):
        """Test different path sets produce different keys."""
        a = ArtifactFetcher.cache_key_for(ImageArtifact("swift:5.9", ("/usr/lib",)))
        b = ArtifactFetcher.cache_key_for(
            ImageArtifact("swift:5.9", ("/usr/lib", "/lib"))
        )

        assert a.fingerprint != b.fingerprint
