from adshot.urls import origin_of, resolve_creative_url, resolve_creative_urls


def test_absolute_and_data_urls_pass_through():
    assert resolve_creative_url("https://cdn.example/a.png") == "https://cdn.example/a.png"
    assert resolve_creative_url("data:image/png;base64,AAAA") == "data:image/png;base64,AAAA"


def test_relative_paths_join_base_url():
    assert resolve_creative_url("/image/abc", "https://uploads.example/app/") == "https://uploads.example/app/image/abc"
    assert resolve_creative_url("/image/abc") is None


def test_unusable_urls_are_dropped():
    assert resolve_creative_url("") is None
    assert resolve_creative_url("   ") is None
    assert resolve_creative_url("ftp://files.example/a.png") is None
    assert resolve_creative_url(None) is None


def test_resolve_creative_urls_keeps_known_slots_only():
    resolved = resolve_creative_urls(
        {"lateral": "/image/1", "ancho": None, "top": "https://cdn.example/t.png", "extra": "/image/9"},
        "https://uploads.example",
    )
    assert resolved == {"lateral": "https://uploads.example/image/1", "top": "https://cdn.example/t.png"}


def test_origin_of():
    assert origin_of("https://www.news.example/section?x=1") == "https://www.news.example"
