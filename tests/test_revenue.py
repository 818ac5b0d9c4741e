import pytest

from domain.common.exceptions import DomainValidationException
from domain.revenue.entity import MerchCostTable, ProductType, RevenueSplit
from domain.revenue.service import RevenueDistributor, preview_split


@pytest.fixture
def split_engine():
    return RevenueDistributor(cost_table=MerchCostTable({"default": 20000, "poster": 5000}))


def test_merchandise_split_recovers_cost_then_fee(split_engine):
    split = split_engine.distribute(100000, ProductType.MERCHANDISE, cost_basis=20000)
    assert (split.platform_fee, split.cost_recovery, split.creator_net) == (10000, 20000, 70000)
    assert split.platform_revenue == 30000


def test_merchandise_cost_above_gross_leaves_creator_nothing(split_engine):
    split = split_engine.distribute(15000, ProductType.MERCHANDISE, cost_basis=20000)
    assert split.creator_net == 0
    assert split.cost_recovery == 15000
    assert split.platform_fee == 0


def test_event_ticket_split(split_engine):
    split = split_engine.distribute(50000, ProductType.EVENT_TICKET)
    assert (split.creator_net, split.platform_fee, split.cost_recovery) == (45000, 5000, 0)


def test_subscriptions(split_engine):
    creator = split_engine.distribute(49900, ProductType.CREATOR_SUBSCRIPTION)
    platform = split_engine.distribute(49900, ProductType.PLATFORM_SUBSCRIPTION)
    assert creator.creator_net == 49900 and creator.platform_fee == 0
    assert platform.creator_net == 0 and platform.platform_fee == 49900


@pytest.mark.parametrize("gross", [1, 7, 333, 99999, 100001])
@pytest.mark.parametrize("product_type", list(ProductType))
def test_parts_always_add_up(split_engine, gross, product_type):
    split = split_engine.distribute(gross, product_type, cost_basis=37)
    assert split.platform_fee + split.cost_recovery + split.creator_net == gross


def test_odd_amounts_floor_creator_share(split_engine):
    split = split_engine.distribute(999, ProductType.EVENT_TICKET)
    assert split.creator_net == 899
    assert split.platform_fee == 100


def test_item_split_uses_category_cost(split_engine):
    poster = split_engine.distribute_item(item_type="merch", unit_price=10000, quantity=3, category="Poster")
    assert poster.cost_recovery == 15000
    assert poster.creator_net == 30000 * 9000 // 10000 - 15000

    fallback = split_engine.distribute_item(item_type="merch", unit_price=100000, quantity=1, category="mug")
    assert fallback.cost_recovery == 20000


def test_unknown_item_type_is_platform_revenue(split_engine):
    split = split_engine.distribute_item(item_type="donation", unit_price=500, quantity=2)
    assert split.product_type is ProductType.OTHER
    assert split.platform_fee == 1000


def test_negative_gross_is_rejected(split_engine):
    with pytest.raises(DomainValidationException):
        split_engine.distribute(-1, ProductType.EVENT_TICKET)


def test_split_invariant_is_enforced():
    with pytest.raises(DomainValidationException):
        RevenueSplit(100, ProductType.EVENT_TICKET, platform_fee=10, cost_recovery=0, creator_net=80)


def test_fee_bounds_are_validated():
    with pytest.raises(DomainValidationException):
        RevenueDistributor(platform_fee_bps=10001)


def test_preview_split(split_engine):
    by_gross = preview_split(split_engine, product_type="event_ticket", gross=50000)
    by_item = preview_split(split_engine, product_type="ticket", unit_price=25000, quantity=2)
    assert by_gross == by_item
    with pytest.raises(DomainValidationException):
        preview_split(split_engine, product_type="bogus", gross=100)
    with pytest.raises(DomainValidationException):
        preview_split(split_engine, product_type="event_ticket")
