"""
Market Valuer — Search Results Parser

Parses marketplace search-result pages into Listing records using
BeautifulSoup CSS selectors. Both the classic (.s-item) and the newer
(.s-card) card markup are recognised; unknown markup yields an empty
result rather than an error.

Per card:
    title      -> required; placeholder titles ("Shop on eBay") are skipped
    price      -> first dollar amount ("$12.99 to $15.99" -> 12.99)
    shipping   -> "Free" -> 0, else first dollar amount, default 0
    location   -> default "Unknown"
    condition  -> default "Unknown"
    sold date  -> sold pages only, filtered to the sold window
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from bs4 import BeautifulSoup
from bs4.element import Tag

from market_valuer.config import settings
from market_valuer.errors import ParseError
from market_valuer.parser import Listing, ParseOptions, ParseResult
from market_valuer.parser.dates import parse_sold_date

logger = structlog.get_logger(__name__)

CARD_SELECTOR = "li.s-item, div.s-item, li.s-card, div.s-card"
TITLE_SELECTOR = ".s-item__title, .s-card__title"
PRICE_SELECTOR = ".s-item__price, .s-card__price"
SHIPPING_SELECTOR = ".s-item__shipping, .s-item__logisticsCost, .s-card__shipping"
LOCATION_SELECTOR = ".s-item__location, .s-item__itemLocation, .s-card__location"
CONDITION_SELECTOR = ".s-item__subtitle .SECONDARY_INFO, .s-item__condition, .s-card__subtitle"
SOLD_DATE_SELECTOR = (
    ".s-item__title--tagblock .POSITIVE, .s-item__caption--signal, "
    ".s-item__caption .POSITIVE, .s-card__caption"
)
RESULT_COUNT_SELECTOR = ".srp-controls__count-heading .BOLD, .srp-controls__count-heading"

AD_CLASSES = frozenset({"s-item--ad", "s-item--featured", "s-card--ad"})

_PRICE_RE = re.compile(r"\$?\s?(\d[\d,]*(?:\.\d+)?)")
_COUNT_RE = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)")
# "New Listing" badges are rendered inside the title element
_TITLE_NOISE_RE = re.compile(r"^\s*new listing\s*", re.IGNORECASE)


def parse_active(html: str | None, options: ParseOptions | None = None) -> ParseResult:
    """
    Parse an active-listings results page.

    Never raises. Malformed cards are skipped and counted in skipped_cards.
    """
    return _parse_page(html, options or ParseOptions(), sold=False, now=None)


def parse_sold(
    html: str | None,
    options: ParseOptions | None = None,
    now: datetime | None = None,
) -> ParseResult:
    """
    Parse a sold-listings results page.

    Sold cards carry a parsed sold_date; cards sold before
    now - sold_window_days are dropped. Cards with an unreadable date are kept.
    """
    return _parse_page(html, options or ParseOptions(), sold=True, now=now)


def _parse_page(
    html: str | None,
    options: ParseOptions,
    sold: bool,
    now: datetime | None,
) -> ParseResult:
    if not html:
        return ParseResult(sold=sold)

    reference = now or datetime.now(timezone.utc)
    cutoff = reference - timedelta(days=options.sold_window_days)

    try:
        soup = BeautifulSoup(html, "lxml")
    except Exception as e:
        logger.warning("listing_markup_unparseable", error=str(e), source="listing_parser")
        return ParseResult(sold=sold, skipped_cards=1)

    listings: list[Listing] = []
    skipped = 0
    filtered_out = 0

    for card in soup.select(CARD_SELECTOR):
        if _is_advertisement(card):
            continue
        try:
            listing = _parse_card(card, sold=sold, now=reference)
        except ParseError as e:
            skipped += 1
            logger.debug("listing_card_skipped", reason=str(e), source="listing_parser")
            continue
        if listing is None:
            continue

        if not _within_price_range(listing.price, options):
            filtered_out += 1
            continue
        if sold and listing.sold_date is not None and listing.sold_date < cutoff:
            filtered_out += 1
            continue

        listings.append(listing)

    result = ParseResult(
        sold=sold,
        count=len(listings),
        listings=tuple(listings),
        total_results=_parse_result_count(soup),
        skipped_cards=skipped,
    )
    logger.info(
        "listings_parsed",
        sold=sold,
        count=result.count,
        filtered_out=filtered_out,
        skipped_cards=skipped,
        total_results=result.total_results,
        source="listing_parser",
    )
    return result


def _is_advertisement(card: Tag) -> bool:
    classes = set(card.get("class") or [])
    return bool(classes & AD_CLASSES)


def _parse_card(card: Tag, sold: bool, now: datetime) -> Listing | None:
    """
    Extract one listing from a card.

    Returns None for empty placeholder cards.

    Raises:
        ParseError: when the card has no title element at all.
    """
    if not card.get_text(strip=True):
        return None

    title_el = card.select_one(TITLE_SELECTOR)
    if title_el is None:
        raise ParseError("card has no title element")

    title = _TITLE_NOISE_RE.sub("", title_el.get_text(" ", strip=True)).strip()
    if not title or title in settings.PLACEHOLDER_TITLES:
        return None

    sold_date = None
    if sold:
        sold_date = parse_sold_date(_text(card, SOLD_DATE_SELECTOR), now=now)

    return Listing(
        title=title,
        price=extract_price(_text(card, PRICE_SELECTOR)),
        shipping=extract_shipping(_text(card, SHIPPING_SELECTOR)),
        location=_clean_location(_text(card, LOCATION_SELECTOR)) or "Unknown",
        condition=_text(card, CONDITION_SELECTOR) or "Unknown",
        sold_date=sold_date,
    )


def _text(card: Tag, selector: str) -> str:
    element = card.select_one(selector)
    if element is None:
        return ""
    return element.get_text(" ", strip=True)


def _clean_location(text: str) -> str:
    return re.sub(r"^from\s+", "", text, flags=re.IGNORECASE).strip()


def _within_price_range(price: Decimal, options: ParseOptions) -> bool:
    if options.min_price is not None and price < options.min_price:
        return False
    if options.max_price is not None and price > options.max_price:
        return False
    return True


def _to_decimal(value: Any) -> Decimal | None:
    try:
        return Decimal(str(value).replace(",", ""))
    except (InvalidOperation, ValueError):
        return None


def extract_price(text: str | None) -> Decimal:
    """First dollar amount in text; 0 when none is found."""
    if not text:
        return Decimal("0")
    match = _PRICE_RE.search(text)
    if match:
        value = _to_decimal(match.group(1))
        if value is not None:
            return value
    return Decimal("0")


def extract_shipping(text: str | None) -> Decimal:
    """Shipping cost; "Free shipping" and missing text map to 0."""
    if not text or "free" in text.lower():
        return Decimal("0")
    return extract_price(text)


def _parse_result_count(soup: BeautifulSoup) -> int | None:
    element = soup.select_one(RESULT_COUNT_SELECTOR)
    if element is None:
        return None
    match = _COUNT_RE.search(element.get_text(" ", strip=True))
    if match:
        return int(match.group(1).replace(",", ""))
    return None
