"""
Tests for filter rendering and query options.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from aadgraph.directoryobjects import Application, Device, Group, User
from aadgraph.filters import GraphQuery
from aadgraph.filters import and_
from aadgraph.filters import any_
from aadgraph.filters import eq
from aadgraph.filters import format_value
from aadgraph.filters import ge
from aadgraph.filters import le
from aadgraph.filters import or_
from aadgraph.filters import render_predicate
from aadgraph.filters import startswith
from aadgraph.lib import error


class TestFormatValue:
    def test_bool(self):
        assert format_value(True) == "true"
        assert format_value(False) == "false"

    def test_guid(self):
        value = uuid.UUID("11111111-1111-1111-1111-111111111111")
        assert format_value(value) == "Guid'11111111-1111-1111-1111-111111111111'"

    def test_binary(self):
        assert format_value(b"DS") == "X'4453'"

    def test_datetime_is_utc(self):
        value = datetime(2014, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))
        assert format_value(value) == "DateTime'2014-01-02T03:04:05Z'"

    def test_string_quoting(self):
        assert format_value("Bob") == "'Bob'"
        assert format_value("O'Neil") == "'O''Neil'"


class TestRenderPredicate:
    def test_eq(self):
        assert render_predicate(User, eq(User.display_name, "Bob")) == "displayName eq 'Bob'"

    def test_property_by_name(self):
        """Wire names and attribute names both resolve, case insensitive"""
        assert render_predicate(User, eq("displayName", "Bob")) == "displayName eq 'Bob'"
        assert render_predicate(User, eq("display_name", "Bob")) == "displayName eq 'Bob'"
        assert render_predicate(User, eq("DISPLAYNAME", "Bob")) == "displayName eq 'Bob'"

    def test_and_or(self):
        predicate = and_(
            eq(User.display_name, "Bob"),
            or_(startswith(User.mail, "bob"), eq(User.account_enabled, True)),
        )
        assert render_predicate(User, predicate) == (
            "(displayName eq 'Bob') and "
            "((startswith(mail,'bob')) or (accountEnabled eq true))"
        )

    def test_operators(self):
        predicate = eq(User.display_name, "a") & eq(User.city, "b")
        assert render_predicate(User, predicate) == "(displayName eq 'a') and (city eq 'b')"
        predicate = eq(User.display_name, "a") | eq(User.city, "b")
        assert render_predicate(User, predicate) == "(displayName eq 'a') or (city eq 'b')"

    def test_ge_le(self):
        assert render_predicate(User, ge(User.display_name, "M")) == "displayName ge 'M'"
        assert render_predicate(User, le(User.display_name, "M")) == "displayName le 'M'"

    def test_ge_on_bool_refused(self):
        with pytest.raises(error.QueryValidationError):
            render_predicate(User, ge(User.account_enabled, True))

    def test_any(self):
        assert (
            render_predicate(User, any_(User.proxy_addresses, "smtp:bob@contoso.com"))
            == "proxyAddresses/any(c:c eq 'smtp:bob@contoso.com')"
        )

    def test_any_on_guid_collection(self):
        app_id = uuid.UUID("22222222-2222-2222-2222-222222222222")
        assert render_predicate(
            Application, any_(Application.known_client_applications, app_id)
        ) == ("knownClientApplications/any(c:c eq Guid'%s')" % app_id)

    def test_any_on_scalar_refused(self):
        with pytest.raises(error.QueryValidationError):
            render_predicate(User, any_(User.display_name, "Bob"))

    def test_eq_on_collection_refused(self):
        with pytest.raises(error.QueryValidationError):
            render_predicate(User, eq(User.proxy_addresses, "x"))

    def test_type_mismatch(self):
        with pytest.raises(error.QueryValidationError):
            render_predicate(User, eq(User.account_enabled, "yes"))
        with pytest.raises(error.QueryValidationError):
            render_predicate(Device, eq(Device.device_id, "not-a-guid"))

    def test_unknown_property(self):
        with pytest.raises(error.QueryValidationError):
            render_predicate(User, eq("shoeSize", "42"))

    def test_property_of_other_class(self):
        """A property object from an unrelated class is refused"""
        with pytest.raises(error.QueryValidationError):
            render_predicate(Group, eq(User.given_name, "Bob"))

    def test_startswith_non_string(self):
        with pytest.raises(error.QueryValidationError):
            render_predicate(User, startswith(User.account_enabled, "t"))


class TestGraphQuery:
    def test_top(self):
        query = GraphQuery(top=10)
        assert query.top == 10
        assert query.parameters(User) == [("$top", "10")]
        query.top = 0
        assert query.top == -1
        assert query.parameters(User) == []

    def test_parameter_order(self):
        query = GraphQuery(top=5, order_by=User.display_name)
        query.filter = eq(User.city, "Oslo")
        query.expand = User.manager
        assert query.to_query_string(User) == (
            "$top=5&$expand=manager&$orderby=displayName&$filter=city eq 'Oslo'"
        )

    def test_free_form_parameters(self):
        query = GraphQuery()
        query["$select"] = "displayName"
        assert query["$select"] == "displayName"
        assert query.parameters(User) == [("$select", "displayName")]
        query["$select"] = None
        assert query.parameters(User) == []

    def test_override_filter(self):
        query = GraphQuery(override_filter="$filter=displayName eq 'x'")
        assert query.override_filter == "displayName eq 'x'"
        assert query.parameters(User) == [("$filter", "displayName eq 'x'")]

    def test_both_filters(self):
        query = GraphQuery(filter=eq(User.city, "x"), override_filter="city eq 'y'")
        with pytest.raises(error.QueryValidationError):
            query.parameters(User)

    def test_expand_must_be_link(self):
        with pytest.raises(error.QueryValidationError):
            GraphQuery(expand=User.display_name).parameters(User)

    def test_expand_only_one(self):
        with pytest.raises(error.QueryValidationError):
            GraphQuery(expand=[User.manager, User.member_of]).parameters(User)

    def test_single_object(self):
        GraphQuery(expand=User.manager).check_single_object()
        with pytest.raises(error.QueryValidationError):
            GraphQuery(order_by=User.display_name).check_single_object()
        with pytest.raises(error.QueryValidationError):
            GraphQuery(filter=eq(User.city, "x")).check_single_object()
