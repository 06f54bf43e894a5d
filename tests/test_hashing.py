import hashlib

from fakes import png_bytes

from adshot.hashing import png_digest


def test_png_digest_reports_sha_and_size():
    data = png_bytes(12, 7)
    sha, width, height = png_digest(data)
    assert sha == hashlib.sha256(data).hexdigest()
    assert (width, height) == (12, 7)


def test_png_digest_is_deterministic():
    assert png_digest(png_bytes(4, 4))[0] == png_digest(png_bytes(4, 4))[0]
    assert png_digest(png_bytes(4, 4))[0] != png_digest(png_bytes(4, 5))[0]
