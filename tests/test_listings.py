"""Tests for the search-results page parser."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from market_valuer.parser import ParseOptions
from market_valuer.parser.listings import extract_price, extract_shipping, parse_active, parse_sold


class TestParseActive:
    def test_extracts_listings_and_skips_ads(self, make_page, make_card) -> None:
        """Sponsored cards are ignored; organic cards are returned in order."""
        html = make_page(
            [
                make_card("LEGO 75257 Millennium Falcon", "$120.00"),
                make_card("Sponsored LEGO Set", "$99.00", css_class="s-item s-item--ad"),
                make_card("LEGO 75257 Falcon Sealed", "$135.50 to $140.00"),
            ]
        )
        result = parse_active(html)

        assert result.sold is False
        assert result.count == 2
        assert [l.title for l in result.listings] == [
            "LEGO 75257 Millennium Falcon",
            "LEGO 75257 Falcon Sealed",
        ]
        assert result.prices == [Decimal("120.00"), Decimal("135.50")]

    def test_card_details(self, make_page, make_card) -> None:
        html = make_page(
            [
                make_card(
                    "LEGO 75257 Millennium Falcon",
                    "$120.00",
                    shipping="+$5.99 shipping",
                    location="from Germany",
                    condition="Pre-Owned",
                )
            ]
        )
        listing = parse_active(html).listings[0]

        assert listing.shipping == Decimal("5.99")
        assert listing.location == "Germany"
        assert listing.condition == "Pre-Owned"
        assert listing.sold_date is None

    def test_missing_details_default(self, make_page, make_card) -> None:
        listing = parse_active(make_page([make_card("LEGO 75257", "$10.00")])).listings[0]
        assert listing.shipping == Decimal("0")
        assert listing.location == "Unknown"
        assert listing.condition == "Unknown"

    def test_free_shipping(self, make_page, make_card) -> None:
        html = make_page([make_card("LEGO 75257", "$10.00", shipping="Free shipping")])
        assert parse_active(html).listings[0].shipping == Decimal("0")

    def test_new_listing_badge_removed(self, make_page, make_card) -> None:
        html = make_page([make_card("New Listing LEGO 75257 Falcon", "$10.00")])
        assert parse_active(html).listings[0].title == "LEGO 75257 Falcon"

    def test_placeholder_card_skipped(self, make_page, make_card) -> None:
        """The "Shop on eBay" template card is not a listing."""
        html = make_page(
            [
                make_card("Shop on eBay", "$20.00"),
                make_card("LEGO 75257", "$10.00"),
            ]
        )
        result = parse_active(html)
        assert result.count == 1
        assert result.skipped_cards == 0

    def test_card_without_title_counted_as_skipped(self, make_page, make_card) -> None:
        html = make_page([make_card(None, "$20.00"), make_card("LEGO 75257", "$10.00")])
        result = parse_active(html)
        assert result.count == 1
        assert result.skipped_cards == 1

    def test_missing_price_is_zero(self, make_page, make_card) -> None:
        result = parse_active(make_page([make_card("LEGO 75257")]))
        assert result.prices == [Decimal("0")]
        assert result.positive_prices == []

    def test_price_range_filter(self, make_page, make_card) -> None:
        html = make_page(
            [
                make_card("LEGO A", "$50.00"),
                make_card("LEGO B", "$120.00"),
                make_card("LEGO C", "$300.00"),
            ]
        )
        options = ParseOptions(min_price=Decimal("100"), max_price=Decimal("200"))
        assert parse_active(html, options).prices == [Decimal("120.00")]

    def test_total_results(self, make_page, make_card) -> None:
        html = make_page([make_card("LEGO 75257", "$10.00")], total_results="1,234")
        assert parse_active(html).total_results == 1234

    def test_card_markup_variant(self, make_page) -> None:
        """Newer .s-card markup is recognised."""
        card = (
            "<li class='s-card'><div class='s-card__title'>LEGO 75257 Falcon</div>"
            "<span class='s-card__price'>$149.99</span></li>"
        )
        result = parse_active(make_page([card]))
        assert result.count == 1
        assert result.listings[0].price == Decimal("149.99")

    def test_median_price(self, make_page, make_card) -> None:
        html = make_page(
            [
                make_card("LEGO A", "$10.00"),
                make_card("LEGO B", "$30.00"),
                make_card("LEGO C", "$20.00"),
            ]
        )
        assert parse_active(html).median_price == Decimal("20.00")


class TestParseSold:
    def test_sold_dates_parsed(self, make_page, make_card, fixed_now: datetime) -> None:
        html = make_page([make_card("LEGO 75257", "$42.00", sold_caption="Sold 3 days ago")])
        result = parse_sold(html, now=fixed_now)

        assert result.sold is True
        assert result.listings[0].sold_date == fixed_now - timedelta(days=3)
        assert result.sold_dates == [fixed_now - timedelta(days=3)]

    def test_sold_window_filter(self, make_page, make_card, fixed_now: datetime) -> None:
        """Sales older than the window are dropped; undated sales are kept."""
        html = make_page(
            [
                make_card("LEGO recent", "$42.00", sold_caption="Sold 3 days ago"),
                make_card("LEGO old", "$48.00", sold_caption="Sold 45 days ago"),
                make_card("LEGO undated", "$50.00"),
            ]
        )
        result = parse_sold(html, ParseOptions(sold_window_days=30), now=fixed_now)
        assert [l.title for l in result.listings] == ["LEGO recent", "LEGO undated"]

    def test_wider_window_keeps_older_sales(self, make_page, make_card, fixed_now: datetime) -> None:
        html = make_page([make_card("LEGO old", "$48.00", sold_caption="Sold 45 days ago")])
        result = parse_sold(html, ParseOptions(sold_window_days=60), now=fixed_now)
        assert result.count == 1


class TestMalformedInput:
    def test_empty_html(self) -> None:
        assert parse_active("").count == 0
        assert parse_active(None).count == 0
        assert parse_sold(None).sold is True

    def test_unknown_markup(self) -> None:
        """Pages without recognised cards produce an empty result, not an error."""
        result = parse_active("<html><body><p>Nothing to see</p></body></html>")
        assert result.count == 0
        assert result.listings == ()


class TestPriceHelpers:
    def test_extract_price(self) -> None:
        assert extract_price("$1,299.99") == Decimal("1299.99")
        assert extract_price("US $12.50") == Decimal("12.50")
        assert extract_price("$10.00 to $15.00") == Decimal("10.00")
        assert extract_price("") == Decimal("0")
        assert extract_price("Best offer") == Decimal("0")

    def test_extract_shipping(self) -> None:
        assert extract_shipping("Free shipping") == Decimal("0")
        assert extract_shipping("+$4.50 shipping") == Decimal("4.50")
        assert extract_shipping(None) == Decimal("0")
