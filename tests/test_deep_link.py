"""Tests for marketplace search URLs and deep links."""

from __future__ import annotations

from market_valuer.pipeline.deep_link import build_search_links, build_search_url

BASE = "https://www.ebay.com/sch/i.html"


class TestBuildSearchUrl:
    def test_active(self) -> None:
        assert build_search_url("lego 75257") == f"{BASE}?_nkw=lego+75257"

    def test_sold(self) -> None:
        assert build_search_url("lego 75257", sold=True) == (
            f"{BASE}?_nkw=lego+75257&LH_Sold=1&LH_Complete=1"
        )

    def test_query_encoded(self) -> None:
        assert build_search_url('"lego 75257"') == f"{BASE}?_nkw=%22lego+75257%22"

    def test_base_url_override(self) -> None:
        url = build_search_url("lego", base_url="https://www.ebay.co.uk/sch/i.html")
        assert url == "https://www.ebay.co.uk/sch/i.html?_nkw=lego"


class TestBuildSearchLinks:
    def test_links(self) -> None:
        """The sold deep link is sorted by most recently ended."""
        links = build_search_links("lego 75257")
        assert links.active == f"{BASE}?_nkw=lego+75257"
        assert links.sold == f"{BASE}?_nkw=lego+75257&_sop=16&LH_Sold=1&LH_Complete=1"
