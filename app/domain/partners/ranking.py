"""
Partner ranking and pricing.

Filters are AND-combined. Sorting is stable, so partners with equal keys keep
their incoming order; an unknown sort key leaves the order untouched.
"""

from typing import Optional, Sequence

from ...shared.numbers import round_half_up, to_decimal
from ..geo import Location, calculate_distance, calculate_distance_charge, format_distance
from .schemas import Partner, PartnerFilters, PartnerQuote

# sort key -> (key function, reverse)
SORT_KEYS = {
    "rating": (lambda p: p.rating, True),  # highest rating first
    "price": (lambda p: p.priceMultiplier, False),  # cheapest first
    "jobs": (lambda p: p.completedJobs, True),  # most jobs first
}


def filter_partners(partners: Sequence[Partner], filters: Optional[PartnerFilters] = None) -> list[Partner]:
    result = list(partners)
    if not filters:
        return result

    if filters.onlyOnline:
        result = [p for p in result if p.availability == "online"]

    if filters.minRating is not None:
        result = [p for p in result if p.rating >= filters.minRating]

    return result


def rank_partners(
    partners: Sequence[Partner],
    filters: Optional[PartnerFilters] = None,
    sort_by: str = "rating",
) -> list[Partner]:
    result = filter_partners(partners, filters)

    sort_key = SORT_KEYS.get(sort_by)
    if sort_key is None:
        return result

    key, reverse = sort_key
    # sorted() keeps ties in input order even with reverse=True
    return sorted(result, key=key, reverse=reverse)


def calculate_final_price(partner: Partner, base_price: float) -> int:
    """round(base_price * priceMultiplier)"""
    return int(round_half_up(to_decimal(base_price) * to_decimal(partner.priceMultiplier)))


def price_variance_percent(partner: Partner) -> int:
    """How far the partner's price is from base, in whole percent (1.2 -> 20)."""
    return int(round_half_up((to_decimal(partner.priceMultiplier) - 1) * 100))


def quote_partner(
    partner: Partner, base_price: float, customer_location: Optional[Location] = None
) -> PartnerQuote:
    """
    Final price plus distance surcharge for one partner.

    Without a customer or partner location the surcharge is 0 and no distance
    is reported.
    """
    final_price = calculate_final_price(partner, base_price)

    distance_km = None
    surcharge = 0
    if customer_location is not None and partner.location is not None:
        distance_km = calculate_distance(
            customer_location.lat,
            customer_location.lng,
            partner.location.lat,
            partner.location.lng,
        )
        surcharge = calculate_distance_charge(distance_km)

    return PartnerQuote(
        partner=partner,
        distanceKm=distance_km,
        formattedDistance=format_distance(distance_km) if distance_km is not None else None,
        surcharge=surcharge,
        finalPrice=final_price,
        priceVariancePercent=price_variance_percent(partner),
        totalAmount=final_price + surcharge,
    )
