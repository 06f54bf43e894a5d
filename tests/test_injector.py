import asyncio

from fakes import FakePage

from adshot.assets import AssetLibrary
from adshot.injector import LAYOUTS, CreativeInjector, layout_for
from adshot.models import CLOSE_ICON_KEY, DeviceType, VisualizationType

D, M = DeviceType.DESKTOP, DeviceType.MOBILE
V = VisualizationType


def _page(results):
    def on_evaluate(script, arg):
        if "placements" in arg:
            return results(arg)
        return {"anchorFound": True, "scrollY": 250}

    return FakePage(on_evaluate=on_evaluate)


def _insert_arg(page):
    return [arg for name, arg in page.calls if name == "evaluate" and "placements" in arg][0]


def test_layout_table_defines_one_slot_set_per_pair():
    assert set(LAYOUTS) == {(D, V.A), (D, V.B), (D, V.C), (D, V.D), (M, V.A), (M, V.B), (M, V.C)}
    assert LAYOUTS[(D, V.A)].slots == ("lateral", "ancho")
    assert LAYOUTS[(D, V.B)].slots == ("lateral",)
    assert LAYOUTS[(D, V.C)].slots == ("top",)
    assert LAYOUTS[(D, V.D)].slots == ("itt",)
    assert LAYOUTS[(M, V.A)].slots == ("ancho",)
    assert LAYOUTS[(M, V.B)].slots == ("ancho", "zocalo")
    assert LAYOUTS[(M, V.C)].slots == ("itt",)
    assert layout_for(M, V.D) is None
    assert layout_for(D, None) is None


def test_undefined_slots_are_never_sent_to_the_page(sleep, tmp_path):
    page = _page(lambda arg: {slot: {"found": True, "inserted": True} for slot in arg["urls"]})
    injector = CreativeInjector(AssetLibrary(tmp_path), sleep=sleep)
    result = asyncio.run(
        injector.inject(
            page,
            D,
            V.A,
            {"lateral": "https://cdn.example/l.png", "ancho": "https://cdn.example/a.png", "top": "https://cdn.example/t.png"},
        )
    )
    sent = _insert_arg(page)
    assert set(sent["urls"]) == {"lateral", "ancho"}
    assert sent["timeoutMs"] == 5_000
    assert result.all_inserted
    assert "top" not in result
    assert sleep.calls == [2.0]


def test_failed_slots_are_reported_not_raised(sleep, tmp_path):
    page = _page(
        lambda arg: {
            "lateral": {"found": True, "inserted": True, "position": {"left": "10px", "top": "20px"}},
            "ancho": {"found": False, "inserted": False, "error": "anchor not found"},
        }
    )
    injector = CreativeInjector(AssetLibrary(tmp_path), sleep=sleep)
    result = asyncio.run(
        injector.inject(page, D, V.A, {"lateral": "https://cdn.example/l.png", "ancho": "https://cdn.example/a.png"})
    )
    assert result["lateral"].position == {"left": "10px", "top": "20px"}
    assert result["ancho"].error == "anchor not found"
    assert result.failed_slots == ["ancho"]


def test_overlay_layout_ships_close_icon(sleep, tmp_path):
    page = _page(
        lambda arg: {
            "itt": {"found": True, "inserted": True},
            "close_icon": {"found": True, "inserted": True},
        }
    )
    injector = CreativeInjector(AssetLibrary(tmp_path), sleep=sleep)
    result = asyncio.run(injector.inject(page, D, V.D, {"itt": "https://cdn.example/i.png"}))
    sent = _insert_arg(page)
    assert sent["icons"]["itt"].startswith("data:image/png;base64,")
    assert result[CLOSE_ICON_KEY].inserted


def test_no_layout_or_no_urls_skips_page(sleep, tmp_path):
    page = _page(lambda arg: {})
    injector = CreativeInjector(AssetLibrary(tmp_path), sleep=sleep)
    assert asyncio.run(injector.inject(page, D, None, {"lateral": "https://cdn.example/l.png"})).outcomes == {}
    assert asyncio.run(injector.inject(page, M, V.A, {"lateral": "https://cdn.example/l.png"})).outcomes == {}
    assert page.calls == []
