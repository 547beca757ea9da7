"""
Visibility rules for EMPLOYEE users.

Verifies:
- Admins see every sale and customer
- Employees lose the first administrator's sales and customers once that
  administrator has recorded a sale
- Nothing is hidden while no administrator exists or it has no sales
- Single-record access agrees with the list filters
"""

from datetime import datetime, timedelta

import pytest

from clinicpos.errors import ForbiddenError
from clinicpos.extensions import db
from clinicpos.models import Customer, Sale, ROLE_ADMIN
from clinicpos.services.visibility_service import resolve_admin_rule, scope_for


def _visible_sale_ids(scope):
    return {s.id for s in db.session.query(Sale).filter(*scope.sale_criteria())}


def _visible_customer_ids(scope):
    return {c.id for c in db.session.query(Customer).filter(*scope.customer_criteria())}


class TestAdminRule:

    def test_no_admin_means_inactive_rule(self, db_session, employee):
        rule = resolve_admin_rule()
        assert rule.admin_id is None
        assert rule.active is False

    def test_admin_without_sales_is_inactive(self, db_session, admin):
        rule = resolve_admin_rule()
        assert rule.admin_id == admin.id
        assert rule.admin_has_sales is False
        assert rule.active is False

    def test_first_admin_is_lowest_id(self, db_session, make_user, make_customer, make_sale):
        first = make_user(ROLE_ADMIN)
        second = make_user(ROLE_ADMIN)
        make_sale(second, make_customer())

        rule = resolve_admin_rule()
        assert rule.admin_id == first.id
        assert rule.active is False


class TestEmployeeVisibility:

    @pytest.fixture
    def world(self, admin, employee, make_customer, make_sale):
        shared = make_customer("Shared")
        admin_only = make_customer("AdminOnly")
        employee_only = make_customer("EmployeeOnly")
        untouched = make_customer("Untouched")
        return {
            "admin_sale": make_sale(admin, admin_only, "100"),
            "shared_admin_sale": make_sale(admin, shared, "50"),
            "shared_employee_sale": make_sale(employee, shared, "30"),
            "employee_sale": make_sale(employee, employee_only, "20"),
            "shared": shared,
            "admin_only": admin_only,
            "employee_only": employee_only,
            "untouched": untouched,
        }

    def test_employee_sales_exclude_admin_sales(self, world, employee):
        scope = scope_for(employee)
        assert _visible_sale_ids(scope) == {
            world["shared_employee_sale"].id,
            world["employee_sale"].id,
        }

    def test_employee_customers_exclude_any_customer_of_admin(self, world, employee):
        scope = scope_for(employee)
        # "Shared" also bought from an employee but is still hidden
        assert _visible_customer_ids(scope) == {
            world["employee_only"].id,
            world["untouched"].id,
        }

    def test_admin_sees_everything(self, world, admin):
        scope = scope_for(admin)
        assert scope.sale_criteria() == []
        assert scope.customer_criteria() == []
        assert len(_visible_sale_ids(scope)) == 4
        assert len(_visible_customer_ids(scope)) == 4

    def test_direct_access_matches_lists(self, world, employee):
        scope = scope_for(employee)
        with pytest.raises(ForbiddenError):
            scope.require_sale_visible(world["admin_sale"])
        with pytest.raises(ForbiddenError):
            scope.require_customer_visible(world["shared"])
        scope.require_sale_visible(world["employee_sale"])
        scope.require_customer_visible(world["untouched"])

    def test_bootstrap_allowance_when_admin_has_no_sales(self, admin, employee, make_customer, make_sale):
        customer = make_customer()
        sale = make_sale(employee, customer)

        scope = scope_for(employee)
        assert scope.is_restricted is False
        assert _visible_sale_ids(scope) == {sale.id}
        assert _visible_customer_ids(scope) == {customer.id}

    def test_rule_resolved_once_can_be_shared(self, world, employee, make_user):
        other = make_user()
        rule = resolve_admin_rule()
        assert scope_for(employee, rule).rule is scope_for(other, rule).rule


class TestSalesListWindow:

    def test_employee_list_is_limited_to_today(self, admin, employee, make_customer, make_sale):
        customer = make_customer()
        at = datetime(2026, 3, 10, 15, 0)
        today = make_sale(employee, customer, created_at=at.replace(hour=0, minute=0))
        make_sale(employee, customer, created_at=at - timedelta(days=1))

        scope = scope_for(employee)
        ids = {s.id for s in db.session.query(Sale).filter(*scope.sale_list_criteria(at))}
        assert ids == {today.id}

    def test_admin_list_is_not_date_limited(self, admin, employee, make_customer, make_sale):
        customer = make_customer()
        at = datetime(2026, 3, 10, 15, 0)
        make_sale(employee, customer, created_at=at)
        make_sale(employee, customer, created_at=at - timedelta(days=40))

        scope = scope_for(admin)
        assert db.session.query(Sale).filter(*scope.sale_list_criteria(at)).count() == 2
