import pytest

from mcmanager.download import ArtifactFetcher, ArtifactFetchFailed, \
    ArtifactFetchingEvent, ArtifactFetchedEvent


def test_fetch(fake_http, tmp_context, recorder):

    fake_http.files["https://example.test/client.jar"] = b"jar content" * 1000

    dst_dir = tmp_context.get_installation_dir("1.20.1")
    dst_dir.mkdir(parents=True)

    fetcher = ArtifactFetcher(tmp_context, buffer_len=7)
    dst = fetcher.fetch("https://example.test/client.jar", dst_dir, "client.jar", watcher=recorder)

    assert dst == dst_dir / "client.jar"
    assert dst.read_bytes() == b"jar content" * 1000
    assert list(tmp_context.tmp_dir.iterdir()) == []

    assert [type(e) for e in recorder.events] == [ArtifactFetchingEvent, ArtifactFetchedEvent]
    assert recorder.events[1].size == 11000


def test_fetch_failed(fake_http, tmp_context, recorder):

    dst_dir = tmp_context.get_installation_dir("1.20.1")
    dst_dir.mkdir(parents=True)

    fetcher = ArtifactFetcher(tmp_context)
    with pytest.raises(ArtifactFetchFailed) as exc_info:
        fetcher.fetch("https://example.test/missing.jar", dst_dir, "client.jar", watcher=recorder)

    assert exc_info.value.url == "https://example.test/missing.jar"
    assert not (dst_dir / "client.jar").exists()
    assert list(tmp_context.tmp_dir.iterdir()) == []
    assert recorder.of_type(ArtifactFetchedEvent) == []


def test_fetch_missing_directory(fake_http, tmp_context):

    fake_http.files["https://example.test/client.jar"] = b"jar"

    fetcher = ArtifactFetcher(tmp_context)
    with pytest.raises(ArtifactFetchFailed):
        fetcher.fetch("https://example.test/client.jar", tmp_context.versions_dir / "absent", "client.jar")

    assert list(tmp_context.tmp_dir.iterdir()) == []
