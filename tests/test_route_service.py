"""
Tests for admin mutations and the derived IP filter flag.
"""
import pytest

from gateway_admin.core.exceptions import (
    DuplicateAllowedIp,
    DuplicateRoute,
    InvalidIpAddress,
    InvalidRateLimit,
    IpRouteMismatch,
    RouteNotFound,
)
from gateway_admin.models.allowed_ip import AllowedIp
from gateway_admin.models.gateway_route import GatewayRoute
from gateway_admin.models.rate_limit import RateLimit
from gateway_admin.services.route_service import (
    DEFAULT_MAX_REQUESTS,
    DEFAULT_TIME_WINDOW_MS,
    RouteService,
    derive_ip_filter,
    is_valid_ipv4,
)


def assert_ip_filter_invariant(db):
    """with_ip_filter == (allowed_ip_count > 0) for every route."""
    db.expire_all()
    for route in db.query(GatewayRoute).all():
        assert route.with_ip_filter == (len(route.allowed_ips) > 0), route.route_id


def test_derive_ip_filter():
    assert derive_ip_filter(0) is False
    assert derive_ip_filter(1) is True
    assert derive_ip_filter(25) is True


@pytest.mark.parametrize("ip", ["127.0.0.1", "0.0.0.0", "255.255.255.255", "192.168.10.101"])
def test_valid_ipv4(ip):
    assert is_valid_ipv4(ip)


@pytest.mark.parametrize(
    "ip",
    [
        "", None, "256.1.1.1", "1.2.3", "1.2.3.4.5", "a.b.c.d", "1.2.3.-4", "10.0.0.1/24", " 10.0.0.1",
        "127.0.0.1\n", "\u0661\u0662\u0667.0.0.1",
    ],
)
def test_invalid_ipv4(ip):
    assert not is_valid_ipv4(ip)


def test_adding_first_ip_enables_ip_filter(db_session, make_route):
    route = make_route(uri="http://localhost:8050", predicates="/server-final/**")
    assert route.with_ip_filter is False

    RouteService(db_session).add_allowed_ip(route.id, "127.0.0.1")

    db_session.expire_all()
    reloaded = db_session.get(GatewayRoute, route.id)
    assert reloaded.with_ip_filter is True
    assert [ip.ip for ip in reloaded.allowed_ips] == ["127.0.0.1"]


def test_removing_last_ip_disables_ip_filter(db_session, make_route):
    route = make_route(ips=["10.0.0.1", "10.0.0.2"])
    service = RouteService(db_session)
    first, second = sorted(route.allowed_ips, key=lambda e: e.id)

    service.delete_allowed_ip(first.id, route.id)
    assert db_session.get(GatewayRoute, route.id).with_ip_filter is True

    service.delete_allowed_ip(second.id, route.id)
    db_session.expire_all()
    reloaded = db_session.get(GatewayRoute, route.id)
    assert reloaded.with_ip_filter is False
    assert reloaded.allowed_ips == []
    assert db_session.query(AllowedIp).count() == 0


def test_delete_all_ips_disables_ip_filter(db_session, make_route):
    route = make_route(ips=["10.0.0.1", "10.0.0.2", "10.0.0.3"])

    removed = RouteService(db_session).delete_all_allowed_ips(route.id)

    assert removed == 3
    assert_ip_filter_invariant(db_session)
    assert db_session.get(GatewayRoute, route.id).with_ip_filter is False


def test_delete_all_ips_on_empty_route_is_noop(db_session, make_route):
    route = make_route()
    assert RouteService(db_session).delete_all_allowed_ips(route.id) == 0


def test_duplicate_ip_on_same_route_rejected(db_session, make_route):
    route = make_route(ips=["10.0.0.1"])
    with pytest.raises(DuplicateAllowedIp):
        RouteService(db_session).add_allowed_ip(route.id, "10.0.0.1")


def test_same_ip_allowed_on_different_routes(db_session, make_route):
    first = make_route()
    second = make_route()
    service = RouteService(db_session)

    service.add_allowed_ip(first.id, "10.0.0.1")
    service.add_allowed_ip(second.id, "10.0.0.1")

    assert db_session.query(AllowedIp).filter(AllowedIp.ip == "10.0.0.1").count() == 2


def test_invalid_ip_rejected_without_side_effects(db_session, make_route):
    route = make_route()
    with pytest.raises(InvalidIpAddress):
        RouteService(db_session).add_allowed_ip(route.id, "300.1.1.1")

    db_session.expire_all()
    assert db_session.get(GatewayRoute, route.id).with_ip_filter is False
    assert db_session.query(AllowedIp).count() == 0


def test_add_ip_to_missing_route(db_session):
    with pytest.raises(RouteNotFound):
        RouteService(db_session).add_allowed_ip(9999, "10.0.0.1")


def test_moving_ip_rederives_both_routes(db_session, make_route):
    source = make_route(ips=["10.0.0.1"])
    target = make_route()
    entry_id = source.allowed_ips[0].id

    RouteService(db_session).update_allowed_ip(entry_id, "10.0.0.9", route_pk=target.id)

    db_session.expire_all()
    assert db_session.get(GatewayRoute, source.id).with_ip_filter is False
    moved_to = db_session.get(GatewayRoute, target.id)
    assert moved_to.with_ip_filter is True
    assert [(e.id, e.ip) for e in moved_to.allowed_ips] == [(entry_id, "10.0.0.9")]
    assert_ip_filter_invariant(db_session)


def test_update_ip_in_place(db_session, make_route):
    route = make_route(ips=["10.0.0.1"])
    entry = route.allowed_ips[0]

    updated = RouteService(db_session).update_allowed_ip(entry.id, "10.0.0.2")

    assert updated.ip == "10.0.0.2"
    assert updated.gateway_route_id == route.id


def test_update_ip_to_existing_address_on_target_rejected(db_session, make_route):
    source = make_route(ips=["10.0.0.1"])
    target = make_route(ips=["10.0.0.2"])

    with pytest.raises(DuplicateAllowedIp):
        RouteService(db_session).update_allowed_ip(source.allowed_ips[0].id, "10.0.0.2", target.id)


def test_delete_ip_from_wrong_route(db_session, make_route):
    owner = make_route(ips=["10.0.0.1"])
    other = make_route()

    with pytest.raises(IpRouteMismatch):
        RouteService(db_session).delete_allowed_ip(owner.allowed_ips[0].id, other.id)


def test_create_route_derives_ip_filter_from_initial_ips(db_session):
    service = RouteService(db_session)

    without_ips = service.create_route("plain", "http://localhost:8050", "/plain/**")
    with_ips = service.create_route(
        "filtered", "http://localhost:8060", "/filtered/**", allowed_ips=["127.0.0.1", "127.0.0.1"]
    )

    assert without_ips.with_ip_filter is False
    assert with_ips.with_ip_filter is True
    assert [e.ip for e in with_ips.allowed_ips] == ["127.0.0.1"]


def test_create_route_with_rate_limit_gets_default_policy(db_session):
    route = RouteService(db_session).create_route(
        "limited", "http://localhost:8060", "/limited/**", with_rate_limit=True
    )

    assert route.rate_limit is not None
    assert route.rate_limit.max_requests == DEFAULT_MAX_REQUESTS
    assert route.rate_limit.time_window_ms == DEFAULT_TIME_WINDOW_MS
    assert route.rate_limit.route_id == route.id


def test_create_duplicate_route_rejected(db_session, make_route):
    make_route(route_id="dup", predicates="/dup/**")
    service = RouteService(db_session)

    with pytest.raises(DuplicateRoute):
        service.create_route("dup", "http://localhost:1", "/other/**")
    with pytest.raises(DuplicateRoute):
        service.create_route("other", "http://localhost:1", "/dup/**")


def test_update_route_fields(db_session, make_route):
    route = make_route(ips=["10.0.0.1"])

    updated = RouteService(db_session).update_route(route.id, uri="http://localhost:9000", with_token=True)

    assert updated.uri == "http://localhost:9000"
    assert updated.with_token is True
    assert updated.with_ip_filter is True


def test_set_and_remove_rate_limit(db_session, make_route):
    route = make_route()
    service = RouteService(db_session)

    policy = service.set_rate_limit(route.id, 100, 60000)
    assert (policy.max_requests, policy.time_window_ms) == (100, 60000)

    policy = service.set_rate_limit(route.id, 5, 1000)
    assert db_session.query(RateLimit).count() == 1
    assert (policy.max_requests, policy.time_window_ms) == (5, 1000)

    route = service.remove_rate_limit(route.id)
    assert route.rate_limit is None
    assert route.with_rate_limit is False
    assert db_session.query(RateLimit).count() == 0


def test_rate_limit_values_must_be_positive(db_session, make_route):
    route = make_route()
    with pytest.raises(InvalidRateLimit):
        RouteService(db_session).set_rate_limit(route.id, 0, 60000)


def test_delete_route_cascades(db_session, make_route):
    route = make_route(ips=["10.0.0.1", "10.0.0.2"], rate_limit=(10, 60000))

    RouteService(db_session).delete_route(route.id)

    assert db_session.query(GatewayRoute).count() == 0
    assert db_session.query(AllowedIp).count() == 0
    assert db_session.query(RateLimit).count() == 0


def test_ip_filter_invariant_holds_after_mixed_mutations(db_session, make_route):
    a = make_route()
    b = make_route(ips=["10.0.0.5"])
    service = RouteService(db_session)

    entry = service.add_allowed_ip(a.id, "10.0.0.1")
    assert_ip_filter_invariant(db_session)
    service.add_allowed_ip(a.id, "10.0.0.2")
    assert_ip_filter_invariant(db_session)
    service.update_allowed_ip(entry.id, "10.0.0.1", route_pk=b.id)
    assert_ip_filter_invariant(db_session)
    service.delete_all_allowed_ips(b.id)
    assert_ip_filter_invariant(db_session)
    service.delete_all_allowed_ips(a.id)
    assert_ip_filter_invariant(db_session)


def test_ip_with_trailing_newline_is_not_stored(db_session, make_route):
    route = make_route()

    with pytest.raises(InvalidIpAddress):
        RouteService(db_session).add_allowed_ip(route.id, "10.0.0.1\n")

    assert db_session.query(AllowedIp).count() == 0
