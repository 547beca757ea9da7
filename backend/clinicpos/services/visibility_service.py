# Overview: Role-scoped visibility of sales and customers.

"""
Visibility Resolver

Before staff accounts were separated, a single administrator account
recorded every sale. Those historical sales, and the customers attached to
them, are fenced off from EMPLOYEE users without migrating any data:

- ADMIN callers see everything.
- EMPLOYEE callers, once the first administrator (lowest id) has recorded
  at least one sale, cannot see that administrator's sales nor any customer
  who has a sale recorded by that administrator.
- While no administrator exists, or the administrator has no sales,
  EMPLOYEE callers see everything (bootstrap allowance).

The administrator lookup is resolved once per request into an
AdminVisibilityRule and passed explicitly to the services. The list
criteria and the single-record guards derive from the same rule, so a
record hidden from a list is also refused on a direct read.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import g
from sqlalchemy import select

from ..errors import ForbiddenError
from ..extensions import db
from ..models import Customer, Sale, User, ROLE_ADMIN
from clinicpos.time_utils import day_window, now


@dataclass(frozen=True)
class AdminVisibilityRule:
    admin_id: int | None
    admin_has_sales: bool

    @property
    def active(self) -> bool:
        return self.admin_id is not None and self.admin_has_sales


def resolve_admin_rule() -> AdminVisibilityRule:
    """Locate the first ADMIN user and whether they have recorded any sale."""
    admin_id = db.session.query(User.id).filter(
        User.role == ROLE_ADMIN
    ).order_by(User.id.asc()).limit(1).scalar()

    if admin_id is None:
        return AdminVisibilityRule(admin_id=None, admin_has_sales=False)

    has_sales = db.session.query(
        db.session.query(Sale.id).filter(Sale.user_id == admin_id).exists()
    ).scalar()
    return AdminVisibilityRule(admin_id=admin_id, admin_has_sales=bool(has_sales))


@dataclass(frozen=True)
class VisibilityScope:
    role: str
    user_id: int
    rule: AdminVisibilityRule

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_restricted(self) -> bool:
        return not self.is_admin and self.rule.active

    @property
    def today_only(self) -> bool:
        """Employees browse the sales list one day at a time."""
        return not self.is_admin

    def _admin_customer_ids(self):
        return (
            select(Sale.customer_id)
            .where(Sale.user_id == self.rule.admin_id)
            .distinct()
        )

    def sale_criteria(self) -> list:
        if not self.is_restricted:
            return []
        return [Sale.user_id != self.rule.admin_id]

    def sale_list_criteria(self, at: datetime | None = None) -> list:
        """Criteria for the sales list: exclusion AND, for employees, today only."""
        criteria = self.sale_criteria()
        if self.today_only:
            start, end = day_window(at or now())
            criteria += [Sale.created_at >= start, Sale.created_at <= end]
        return criteria

    def customer_criteria(self) -> list:
        if not self.is_restricted:
            return []
        return [Customer.id.not_in(self._admin_customer_ids())]

    def can_view_sale(self, sale: Sale) -> bool:
        if not self.is_restricted:
            return True
        return sale.user_id != self.rule.admin_id

    def can_view_customer(self, customer: Customer) -> bool:
        if not self.is_restricted:
            return True
        owns_admin_sale = db.session.query(
            db.session.query(Sale.id).filter(
                Sale.customer_id == customer.id,
                Sale.user_id == self.rule.admin_id,
            ).exists()
        ).scalar()
        return not owns_admin_sale

    def require_sale_visible(self, sale: Sale) -> None:
        if not self.can_view_sale(sale):
            raise ForbiddenError("You do not have access to this sale")

    def require_customer_visible(self, customer: Customer) -> None:
        if not self.can_view_customer(customer):
            raise ForbiddenError("You do not have access to this customer")


def scope_for(user: User, rule: AdminVisibilityRule | None = None) -> VisibilityScope:
    if rule is None:
        rule = resolve_admin_rule()
    return VisibilityScope(role=user.role, user_id=user.id, rule=rule)


def current_scope() -> VisibilityScope:
    """
    Scope for the authenticated caller, resolved at most once per request.

    Requires @require_auth to have populated g.current_user.
    """
    scope = getattr(g, "visibility_scope", None)
    if scope is None:
        scope = scope_for(g.current_user)
        g.visibility_scope = scope
    return scope
