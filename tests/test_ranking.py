from app.domain.geo import Location
from app.domain.partners.ranking import (
    calculate_final_price,
    filter_partners,
    price_variance_percent,
    quote_partner,
    rank_partners,
)
from app.domain.partners.schemas import Partner, PartnerFilters


def make_partner(pid, rating=4.0, multiplier=1.0, jobs=0, availability="online", location=None):
    return Partner(
        id=pid,
        name=pid,
        rating=rating,
        priceMultiplier=multiplier,
        completedJobs=jobs,
        availability=availability,
        location=location,
    )


PARTNERS = [
    make_partner("a", rating=4.2, multiplier=1.2, jobs=10),
    make_partner("b", rating=4.8, multiplier=0.9, jobs=3, availability="offline"),
    make_partner("c", rating=3.5, multiplier=1.0, jobs=40),
    make_partner("d", rating=4.8, multiplier=1.5, jobs=7),
]


def ids(partners):
    return [p.id for p in partners]


def test_sort_by_rating_is_descending_and_stable():
    ranked = rank_partners(PARTNERS, sort_by="rating")
    assert ids(ranked) == ["b", "d", "a", "c"]
    assert all(x.rating >= y.rating for x, y in zip(ranked, ranked[1:]))


def test_sort_by_price_is_cheapest_first():
    assert ids(rank_partners(PARTNERS, sort_by="price")) == ["b", "c", "a", "d"]


def test_sort_by_jobs_is_most_jobs_first():
    assert ids(rank_partners(PARTNERS, sort_by="jobs")) == ["c", "a", "d", "b"]


def test_unknown_sort_key_keeps_input_order():
    assert ids(rank_partners(PARTNERS, sort_by="distance")) == ["a", "b", "c", "d"]


def test_filters_are_combined():
    filters = PartnerFilters(onlyOnline=True, minRating=4.0)
    assert ids(filter_partners(PARTNERS, filters)) == ["a", "d"]
    assert ids(rank_partners(PARTNERS, filters, "rating")) == ["d", "a"]


def test_min_rating_is_inclusive():
    assert ids(filter_partners(PARTNERS, PartnerFilters(minRating=4.8))) == ["b", "d"]


def test_ranking_does_not_mutate_input():
    partners = list(PARTNERS)
    rank_partners(partners, PartnerFilters(onlyOnline=True), "price")
    assert ids(partners) == ["a", "b", "c", "d"]


def test_final_price_rounds_half_up():
    assert calculate_final_price(make_partner("x", multiplier=1.2), 500) == 600
    assert calculate_final_price(make_partner("x", multiplier=1.5), 499) == 749


def test_price_variance_percent():
    assert price_variance_percent(make_partner("x", multiplier=1.2)) == 20
    assert price_variance_percent(make_partner("x", multiplier=1.0)) == 0
    assert price_variance_percent(make_partner("x", multiplier=0.85)) == -15


def test_quote_adds_distance_surcharge():
    partner = make_partner("x", multiplier=1.0, location=Location(lat=0, lng=0.05))
    quote = quote_partner(partner, 500, Location(lat=0, lng=0))

    assert quote.distanceKm == 5.6
    assert quote.formattedDistance == "5.6 km"
    assert quote.surcharge == 26
    assert quote.finalPrice == 500
    assert quote.totalAmount == 526


def test_quote_inside_free_radius_has_no_surcharge():
    partner = make_partner("x", multiplier=1.2, location=Location(lat=0, lng=0.01))
    quote = quote_partner(partner, 500, Location(lat=0, lng=0))
    assert quote.surcharge == 0
    assert quote.totalAmount == 600


def test_quote_for_a_partner_on_the_far_side_of_the_globe():
    partner = make_partner("x", multiplier=1.0, location=Location(lat=43.5577, lng=151.6723))
    quote = quote_partner(partner, 500, Location(lat=-43.5577, lng=-28.3277))

    assert quote.distanceKm == 20015.1
    assert quote.totalAmount == quote.finalPrice + quote.surcharge


def test_quote_without_locations():
    quote = quote_partner(make_partner("x", multiplier=1.1), 1000)
    assert quote.distanceKm is None
    assert quote.surcharge == 0
    assert quote.totalAmount == 1100


def test_booking_quote_five_km_away():
    # 0.045 degrees of longitude on the equator is 5.0 km
    partner = make_partner("x", multiplier=1.1, location=Location(lat=0, lng=0.045))
    quote = quote_partner(partner, 500, Location(lat=0, lng=0))

    assert quote.distanceKm == 5.0
    assert quote.surcharge == 20
    assert quote.finalPrice == 550
    assert quote.totalAmount == 570


def test_equal_ratings_stay_together_at_the_top():
    partners = [
        make_partner("a", rating=3.2),
        make_partner("b", rating=4.8),
        make_partner("c", rating=4.8),
        make_partner("d", rating=2.0),
    ]
    ranked = rank_partners(partners, sort_by="rating")
    assert {p.id for p in ranked[:2]} == {"b", "c"}
    assert [p.id for p in ranked[2:]] == ["a", "d"]
