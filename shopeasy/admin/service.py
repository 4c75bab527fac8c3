# shopeasy/admin/service.py

import secrets
import string
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    ConflictError,
    ErrorCode,
    ForbiddenError,
    InvalidInputError,
    PartialCascadeFailure,
    ShopEasyError,
    UnauthorizedError,
    raise_missing_fields,
    raise_weak_password,
)
from ..logging import logger
from ..orders.models import Order, OrderItem
from ..orders.schemas import to_order_summary
from ..products.models import Product
from ..sagas.models import SagaLog
from ..sagas.runner import get_saga, resume_saga
from ..users.models import User
from ..users.schemas import to_user_summary
from ..users.service import UserService
from ..utils.clock import as_naive_utc, utcnow
from ..utils.password_utils import password_policy_error
from ..utils.validators import is_valid_email, normalize_contact, normalize_email
from .schemas import (
    AdminUserCreate,
    AdminUserUpdate,
    Analytics,
    AnalyticsOverview,
    BreakdownRow,
    CategorySales,
    DashboardStats,
    DateRange,
    RevenueStats,
    TopCustomer,
    TopProduct,
    TrendPoint,
    UserDetail,
    UserOrderStats,
)

GENERATED_PASSWORD_LENGTH = 12
# Cancelled orders never turned into revenue
REVENUE_EXCLUDED_STATUSES = ("Cancelled",)
ANALYTICS_PERIODS = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}
ANALYTICS_TOP_N = 10


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


class AdminService:

    @staticmethod
    def login(db: Session, email: Optional[str], password: Optional[str]) -> User:
        if not email or not password:
            raise_missing_fields([f for f, v in (("email", email), ("password", password)) if not v])
        user = UserService.find_by_email(db, email)
        if not user:
            raise UnauthorizedError("Invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)
        if not user.is_admin:
            logger.warning(f"Non-admin {user.id} attempted admin login")
            raise ForbiddenError("Access denied. Admin privileges required.", code=ErrorCode.ADMIN_REQUIRED)
        if not user.is_active:
            raise ForbiddenError("Your account has been deactivated.", code=ErrorCode.ACCOUNT_DEACTIVATED)
        if not UserService.compare_password(user, password):
            raise UnauthorizedError("Invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)

        user.last_login = utcnow()
        db.commit()
        db.refresh(user)
        logger.info(f"Admin {user.id} logged in")
        return user

    # --- Users ---

    @staticmethod
    def list_users(
        db: Session,
        search: Optional[str] = None,
        role: Optional[str] = None,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[User], int]:
        query = db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern), User.contact.ilike(pattern)))
        if role == "admin":
            query = query.filter(User.is_admin.is_(True))
        elif role == "user":
            query = query.filter(User.is_admin.is_(False))
        if active is not None:
            query = query.filter(User.is_active.is_(active))
        total = query.count()
        users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return users, total

    @staticmethod
    def user_detail(db: Session, user_id: UUID) -> UserDetail:
        user = UserService.get_or_404(db, user_id)
        total_orders, total_spent, average = (
            db.query(func.count(Order.id), func.coalesce(func.sum(Order.total_price), 0.0), func.coalesce(func.avg(Order.total_price), 0.0))
            .filter(Order.user_id == user.id)
            .one()
        )
        recent = (
            db.query(Order)
            .filter(Order.user_id == user.id)
            .order_by(Order.created_at.desc())
            .limit(10)
            .all()
        )
        return UserDetail(
            **to_user_summary(user).model_dump(),
            stats=UserOrderStats(total_orders=total_orders, total_spent=float(total_spent), average_order=float(average)),
            recent_orders=[to_order_summary(o) for o in recent],
        )

    @staticmethod
    def create_user(db: Session, data: AdminUserCreate) -> Tuple[User, Optional[str]]:
        """Returns the user and the generated password, if one had to be made up."""
        missing = [f for f in ("name", "email", "contact", "country") if not getattr(data, f)]
        if missing:
            raise_missing_fields(missing)
        if not is_valid_email(data.email):
            raise InvalidInputError("Please provide a valid email address")
        contact = normalize_contact(data.contact)
        if contact is None:
            raise InvalidInputError("Phone number must be 10-15 digits", context={"contact": data.contact})

        generated = None
        password = data.password
        if not password:
            password = generated = generate_password()
        else:
            policy_error = password_policy_error(password)
            if policy_error:
                raise_weak_password(policy_error)

        user = UserService.create_user(
            db,
            name=data.name.strip(),
            email=data.email,
            password=password,
            contact=contact,
            country=data.country.strip(),
            is_admin=data.is_admin,
            is_active=data.is_active,
            email_verified=True,
        )
        return user, generated

    @staticmethod
    def update_user(db: Session, admin: User, user_id: UUID, data: AdminUserUpdate) -> User:
        user = UserService.get_or_404(db, user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if user.id == admin.id and changes.get("is_admin") is False:
            raise InvalidInputError("You cannot remove your own admin privileges")
        if "contact" in changes:
            contact = normalize_contact(changes["contact"])
            if contact is None:
                raise InvalidInputError("Contact number must be 10-15 digits")
            changes["contact"] = contact
        if "email" in changes:
            email = normalize_email(changes["email"])
            if not is_valid_email(email):
                raise InvalidInputError("Please provide a valid email address")
            other = UserService.find_by_email(db, email)
            if other and other.id != user.id:
                raise ConflictError("Email already exists", code=ErrorCode.EMAIL_ALREADY_REGISTERED)
            changes["email"] = email

        user = UserService.update_fields(db, user.id, changes)
        logger.info(f"Admin {admin.id} updated user {user.id}: {sorted(changes)}")
        return user

    @staticmethod
    def delete_user(db: Session, admin: User, user_id: UUID) -> None:
        """Users with orders or products are never deleted; deactivate them instead."""
        if user_id == admin.id:
            raise InvalidInputError("You cannot delete your own account")
        user = UserService.get_or_404(db, user_id)
        if db.query(Order.id).filter(Order.user_id == user.id).first():
            raise ConflictError(
                "Cannot delete user with existing orders. Consider deactivating instead.",
                code=ErrorCode.HAS_DEPENDENT_RECORDS,
            )
        if db.query(Product.id).filter(Product.owner_id == user.id).first():
            raise ConflictError(
                "Cannot delete a user who owns products. Remove their listings or deactivate the account instead.",
                code=ErrorCode.HAS_DEPENDENT_RECORDS,
            )
        db.delete(user)
        db.commit()
        logger.info(f"Admin {admin.id} deleted user {user_id}")

    # --- Dashboard ---

    @staticmethod
    def dashboard_stats(db: Session) -> DashboardStats:
        now = utcnow()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        yesterday = today - timedelta(days=1)
        last_week = today - timedelta(days=7)
        last_month = today - timedelta(days=30)

        revenue_orders = db.query(Order).filter(Order.order_status.notin_(REVENUE_EXCLUDED_STATUSES))

        def revenue_since(start, end=None) -> float:
            query = revenue_orders.with_entities(func.coalesce(func.sum(Order.total_price), 0.0)).filter(Order.created_at >= start)
            if end is not None:
                query = query.filter(Order.created_at < end)
            return float(query.scalar())

        total_revenue, average = revenue_orders.with_entities(
            func.coalesce(func.sum(Order.total_price), 0.0),
            func.coalesce(func.avg(Order.total_price), 0.0),
        ).one()
        today_revenue = revenue_since(today)
        yesterday_revenue = revenue_since(yesterday, today)
        change = ((today_revenue - yesterday_revenue) / yesterday_revenue * 100) if yesterday_revenue else 0.0

        trend: Dict[str, TrendPoint] = {}
        for created_at, total in revenue_orders.with_entities(Order.created_at, Order.total_price).filter(Order.created_at >= last_week):
            key = created_at.strftime("%Y-%m-%d")
            point = trend.setdefault(key, TrendPoint(date=key, orders=0, revenue=0.0))
            point.orders += 1
            point.revenue = round(point.revenue + total, 2)

        return DashboardStats(
            total_users=db.query(User).count(),
            total_products=db.query(Product).count(),
            total_orders=db.query(Order).count(),
            new_users_today=db.query(User).filter(User.created_at >= today).count(),
            new_products_today=db.query(Product).filter(Product.created_at >= today).count(),
            active_users=db.query(User).filter(User.last_login >= last_month).count(),
            low_stock_products=db.query(Product).filter(
                Product.stock < settings.LOW_STOCK_THRESHOLD, Product.is_active.is_(True)
            ).count(),
            pending_orders=db.query(Order).filter(Order.order_status == "Pending").count(),
            completed_orders=db.query(Order).filter(Order.order_status == "Delivered").count(),
            revenue=RevenueStats(
                total=round(float(total_revenue), 2),
                today=round(today_revenue, 2),
                yesterday=round(yesterday_revenue, 2),
                average=round(float(average), 2),
                change=round(change, 2),
            ),
            sales_trend=[trend[k] for k in sorted(trend)],
        )

    @staticmethod
    def analytics(
        db: Session,
        period: str = "month",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Analytics:
        """
        Sales analytics over an explicit [start, end] range, or over the last
        day/week/month/year when no range is given. Revenue figures skip
        cancelled orders; the status breakdown lists every order.
        """
        if period not in ANALYTICS_PERIODS:
            period = "month"
        if start is not None and end is not None:
            start, end = as_naive_utc(start), as_naive_utc(end)
            if start > end:
                raise InvalidInputError("startDate must be before endDate", context={"start": str(start), "end": str(end)})
        else:
            end = utcnow()
            start = end - ANALYTICS_PERIODS[period]

        in_range = (Order.created_at >= start, Order.created_at <= end)
        counted = (*in_range, Order.order_status.notin_(REVENUE_EXCLUDED_STATUSES))
        line_total = OrderItem.quantity * OrderItem.price

        total, count, average, lowest, highest = db.query(
            func.coalesce(func.sum(Order.total_price), 0.0),
            func.count(Order.id),
            func.coalesce(func.avg(Order.total_price), 0.0),
            func.coalesce(func.min(Order.total_price), 0.0),
            func.coalesce(func.max(Order.total_price), 0.0),
        ).filter(*counted).one()

        def breakdown(column, *criteria) -> List[BreakdownRow]:
            rows = (
                db.query(column, func.count(Order.id), func.coalesce(func.sum(Order.total_price), 0.0))
                .filter(*criteria)
                .group_by(column)
                .order_by(func.count(Order.id).desc(), column)
                .all()
            )
            return [BreakdownRow(key=key, count=n, revenue=round(float(revenue), 2)) for key, n, revenue in rows]

        product_rows = (
            db.query(
                OrderItem.product_id,
                func.min(OrderItem.name),
                func.sum(OrderItem.quantity),
                func.sum(line_total),
            )
            .join(Order, OrderItem.order_id == Order.id)
            .filter(*counted)
            .group_by(OrderItem.product_id)
            .order_by(func.sum(OrderItem.quantity).desc())
            .limit(ANALYTICS_TOP_N)
            .all()
        )
        products = {
            p.id: p for p in db.query(Product).filter(Product.id.in_([row[0] for row in product_rows]))
        }
        top_products = []
        for product_id, name, quantity, revenue in product_rows:
            product = products.get(product_id)
            top_products.append(TopProduct(
                product_id=product_id,
                name=name,
                quantity=int(quantity),
                revenue=round(float(revenue), 2),
                title=product.title if product else None,
                image=product.image if product else None,
                category=product.category if product else None,
            ))

        customer_rows = (
            db.query(Order.user_id, User.name, User.email, func.count(Order.id), func.sum(Order.total_price))
            .outerjoin(User, User.id == Order.user_id)
            .filter(*counted)
            .group_by(Order.user_id, User.name, User.email)
            .order_by(func.sum(Order.total_price).desc())
            .limit(ANALYTICS_TOP_N)
            .all()
        )

        # Items whose product row is gone have no category and are left out
        category_rows = (
            db.query(
                Product.category,
                func.count(func.distinct(Order.id)),
                func.sum(OrderItem.quantity),
                func.sum(line_total),
            )
            .select_from(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
            .join(Product, Product.id == OrderItem.product_id)
            .filter(*counted)
            .group_by(Product.category)
            .order_by(func.sum(line_total).desc())
            .all()
        )

        bucket = "%Y-%m-%d %H:00" if period == "day" else "%Y-%m-%d"
        trend: Dict[str, TrendPoint] = {}
        for created_at, order_total in db.query(Order.created_at, Order.total_price).filter(*counted):
            key = created_at.strftime(bucket)
            point = trend.setdefault(key, TrendPoint(date=key, orders=0, revenue=0.0))
            point.orders += 1
            point.revenue = round(point.revenue + order_total, 2)

        return Analytics(
            period=period,
            date_range=DateRange(start=start, end=end),
            overview=AnalyticsOverview(
                total_revenue=round(float(total), 2),
                total_orders=count,
                average_order_value=round(float(average), 2),
                min_order_value=round(float(lowest), 2),
                max_order_value=round(float(highest), 2),
            ),
            order_status=breakdown(Order.order_status, *in_range),
            payment_methods=breakdown(Order.payment_method, *counted),
            top_products=top_products,
            top_customers=[
                TopCustomer(
                    user_id=user_id,
                    name=name,
                    email=email,
                    order_count=n,
                    total_spent=round(float(spent), 2),
                )
                for user_id, name, email, n, spent in customer_rows
            ],
            categories=[
                CategorySales(category=category, order_count=n, quantity=int(quantity), revenue=round(float(revenue), 2))
                for category, n, quantity, revenue in category_rows
            ],
            sales_trend=[trend[k] for k in sorted(trend)],
        )

    # --- Sagas ---

    @staticmethod
    def resume(db: Session, saga_id: UUID) -> SagaLog:
        try:
            return resume_saga(db, saga_id)
        except ShopEasyError:
            raise
        except Exception as e:
            saga = get_saga(db, saga_id)
            raise PartialCascadeFailure(
                saga.id,
                saga.completed_steps or [],
                saga.failed_step,
                technical_details=saga.error,
            ) from e
