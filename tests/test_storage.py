import pytest

from adshot.errors import UploadError
from adshot.storage import GcsStorage, LocalStorage, object_key


def test_object_key_joins_folder_and_name():
    assert object_key("capturas/", "a.png") == "capturas/a.png"
    assert object_key("campaigns/acme", "a.png") == "campaigns/acme/a.png"


@pytest.mark.parametrize("folder,name", [("", "a.png"), ("capturas", "../a.png"), ("../etc", "a.png"), ("capturas", "")])
def test_object_key_rejects_traversal(folder, name):
    with pytest.raises(ValueError):
        object_key(folder, name)


def test_local_storage_round_trip(tmp_path):
    backend = LocalStorage(tmp_path)
    stored = backend.upload_buffer("html", "2025-01-05_desktop.html", b"<html/>", "text/html")
    assert stored.id == "html/2025-01-05_desktop.html"
    assert stored.web_view_link.startswith("file://")
    found = backend.find_by_name("html", "2025-01-05_desktop.html")
    assert found is not None
    assert backend.get_content(found.id) == b"<html/>"
    assert backend.find_by_name("html", "2025-01-06_desktop.html") is None


def test_local_storage_dry_run_writes_nothing(tmp_path):
    backend = LocalStorage(tmp_path, dry_run=True)
    backend.upload_buffer("capturas", "a.png", b"png", "image/png")
    assert not (tmp_path / "capturas").exists()


class _Blob:
    def __init__(self, bucket, name):
        self.bucket, self.name = bucket, name
        self.metadata = None
        self.cache_control = None

    def upload_from_string(self, data, content_type):
        if self.bucket.fail:
            raise RuntimeError("403 Forbidden")
        self.bucket.objects[self.name] = (data, content_type, self.metadata, self.cache_control)

    def exists(self):
        return self.name in self.bucket.objects

    def download_as_bytes(self):
        return self.bucket.objects[self.name][0]


class _Bucket:
    def __init__(self, fail=False):
        self.objects = {}
        self.fail = fail

    def blob(self, name):
        return _Blob(self, name)


class _Client:
    def __init__(self, fail=False):
        self.buckets = {}
        self.fail = fail

    def bucket(self, name):
        return self.buckets.setdefault(name, _Bucket(self.fail))


def test_gcs_storage_uploads_under_prefix():
    client = _Client()
    backend = GcsStorage(client, "shots", prefix="prod")
    stored = backend.upload_buffer("capturas", "a.png", b"png", "image/png", {"device_type": "desktop"})
    assert stored.id == "capturas/a.png"
    assert stored.web_view_link == "https://storage.cloud.google.com/shots/prod/capturas/a.png"
    data, content_type, metadata, cache_control = client.buckets["shots"].objects["prod/capturas/a.png"]
    assert (data, content_type) == (b"png", "image/png")
    assert metadata == {"device_type": "desktop"}
    assert "immutable" in cache_control
    assert backend.find_by_name("capturas", "a.png") == stored
    assert backend.get_content(stored.id) == b"png"


def test_gcs_storage_wraps_backend_errors():
    backend = GcsStorage(_Client(fail=True), "shots")
    with pytest.raises(UploadError):
        backend.upload_buffer("capturas", "a.png", b"png", "image/png")
