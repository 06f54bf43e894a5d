import asyncio

from fakes import FakePage

from adshot.ad_stripper import AD_SELECTORS, strip_ads


def test_strip_ads_reports_removed_counts():
    page = FakePage(on_evaluate=lambda script, selectors: {s: 1 for s in selectors})
    removed = asyncio.run(strip_ads(page))
    assert set(removed) == set(AD_SELECTORS)
    assert page.calls == [("evaluate", list(AD_SELECTORS))]


def test_strip_ads_never_raises():
    def boom(script, arg):
        raise RuntimeError("Execution context was destroyed")

    assert asyncio.run(strip_ads(FakePage(on_evaluate=boom))) == {}
