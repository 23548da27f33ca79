import logging
from pathlib import Path
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.time import utcnow
from backend.app.db.session import get_session
from backend.app.models.admin import AdminUser
from backend.app.models.enums import (
    DiscountType,
    OrderStatus,
    ProductCategory,
    SellRequestStatus,
)
from backend.app.models.order import Order
from backend.app.models.product import Product
from backend.app.services import notifications
from backend.app.services.admin_service import (
    authenticate_admin,
    check_login_ban,
    clear_login_attempts,
    create_admin,
    list_admins,
    normalize_username,
    record_login_failure,
)
from backend.app.services.audit_service import log_action, recent_actions
from backend.app.services.catalog_service import (
    create_product,
    delete_product,
    list_products,
    parse_amount,
    stock_status,
    update_product,
)
from backend.app.services.discount_service import (
    create_discount_code,
    delete_discount_code,
    list_discount_codes,
    toggle_discount_code,
)
from backend.app.services.eligibility import evaluate
from backend.app.services.errors import ServiceError
from backend.app.services.giveaway_service import (
    create_giveaway,
    delete_giveaway,
    get_giveaway,
    list_overviews,
    parse_form_datetime,
    participation_link,
    toggle_giveaway,
    update_giveaway,
)
from backend.app.services.order_service import list_orders, set_order_status
from backend.app.services.participant_service import list_participants
from backend.app.services.sell_request_service import (
    count_by_status,
    delete_sell_request,
    list_sell_requests,
    set_status,
    update_notes,
)
from backend.app.services.winner_service import draw_winners, list_winners
from backend.app.web.auth import (
    clear_session,
    create_session_cookie,
    get_csrf_token,
    login_required,
    set_session_cookie,
    verify_csrf,
)
from backend.app.web.limiter import client_ip, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html"]),
)


def format_dt(dt) -> str:
    if not dt:
        return ""
    return dt.strftime("%d.%m.%Y %H:%M")


def form_dt(dt) -> str:
    """Value for an ``<input type="datetime-local">``."""
    if not dt:
        return ""
    return dt.strftime("%Y-%m-%dT%H:%M")


env.globals.update(format_dt=format_dt, form_dt=form_dt, settings=settings)


def render(template_name: str, request: Request, **context) -> HTMLResponse:
    template = env.get_template(template_name)
    context.setdefault("error", request.query_params.get("error"))
    context.setdefault("ok", request.query_params.get("ok"))
    return HTMLResponse(template.render(request=request, **context))


def redirect(url: str, *, error: str | None = None, ok: str | None = None) -> RedirectResponse:
    params = {k: v for k, v in {"error": error, "ok": ok}.items() if v}
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=302)


def checkbox(value: str | None) -> bool:
    return value in {"on", "true", "1"}


# Auth


@router.get("/login")
async def login_page(request: Request):
    return render("login.html", request)


@router.post("/login")
@limiter.limit(settings.login_rate_limit)
async def login_action(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    session: AsyncSession = Depends(get_session),
):
    username_key = normalize_username(username)
    ip = client_ip(request)

    throttle = await check_login_ban(session, username=username_key, ip=ip)
    if throttle.banned:
        await log_action(
            session,
            actor=username_key,
            action="login_blocked",
            payload={"ip": ip, "banned_until": throttle.banned_until.isoformat()},
        )
        await session.commit()
        return render("login.html", request, error="Too many attempts. Try again later.")

    admin = await authenticate_admin(session, username=username, password=password, ip=ip)
    if not admin:
        throttle = await record_login_failure(
            session,
            username=username_key,
            ip=ip,
            max_attempts=settings.login_ban_max_attempts,
            ban_minutes=settings.login_ban_minutes,
        )
        await log_action(
            session,
            actor=username_key,
            action="login_failed",
            payload={"ip": ip, "banned": throttle.banned},
        )
        await session.commit()
        logger.info("Failed admin login for %s from %s", username_key, ip)
        if throttle.banned:
            return render(
                "login.html",
                request,
                error=f"Too many attempts. Locked for {settings.login_ban_minutes} minutes.",
            )
        return render("login.html", request, error="Invalid credentials")

    await clear_login_attempts(session, username=username_key, ip=ip)
    await log_action(session, actor=admin.username, action="login", payload={"ip": ip})
    await session.commit()

    response = redirect("/admin/")
    set_session_cookie(response, create_session_cookie(admin.username))
    return response


@router.post("/logout")
async def logout_action(
    request: Request,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
):
    verify_csrf(request, csrf_token)
    response = redirect("/admin/login")
    clear_session(response)
    return response


# Dashboard


@router.get("/")
async def dashboard(
    request: Request,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    products_total = (await session.execute(select(func.count()).select_from(Product))).scalar()
    orders_pending = (
        await session.execute(
            select(func.count()).select_from(Order).where(Order.status == OrderStatus.pending)
        )
    ).scalar()
    revenue = (
        await session.execute(
            select(func.coalesce(func.sum(Order.total_amount), 0)).where(
                Order.status == OrderStatus.completed
            )
        )
    ).scalar()
    overviews = await list_overviews(session, only_active=True)
    return render(
        "dashboard.html",
        request,
        user=user,
        products_total=products_total,
        orders_pending=orders_pending,
        revenue=revenue,
        giveaways=overviews,
        sell_pending=(await count_by_status(session))[SellRequestStatus.pending],
        actions=await recent_actions(session),
        csrf=get_csrf_token(request),
    )


# Admins


@router.get("/admins")
async def admins_list(
    request: Request,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    return render(
        "admins.html",
        request,
        user=user,
        admins=await list_admins(session),
        csrf=get_csrf_token(request),
    )


@router.post("/admins/create")
async def admins_create(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    try:
        admin = await create_admin(session, username=username, password=password)
    except ServiceError as exc:
        await session.rollback()
        return redirect("/admin/admins", error=exc.message)
    await log_action(session, actor=user, action="admin_create", payload={"username": admin.username})
    await session.commit()
    return redirect("/admin/admins", ok="Admin created")


@router.post("/admins/{admin_id}/toggle")
async def admins_toggle(
    request: Request,
    admin_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    admin = await session.get(AdminUser, admin_id)
    if admin and admin.username != user:
        admin.is_active = not admin.is_active
        await log_action(
            session,
            actor=user,
            action="admin_toggle",
            payload={"admin_id": admin_id, "is_active": admin.is_active},
        )
        await session.commit()
    return redirect("/admin/admins")


@router.post("/admins/{admin_id}/delete")
async def admins_delete(
    request: Request,
    admin_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    admin = await session.get(AdminUser, admin_id)
    if admin and admin.username != user:
        await log_action(
            session,
            actor=user,
            action="admin_delete",
            payload={"admin_id": admin_id, "username": admin.username},
        )
        await session.delete(admin)
        await session.commit()
    return redirect("/admin/admins")


# Giveaways


@router.get("/giveaways")
async def giveaways_list(
    request: Request,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    return render(
        "giveaways.html",
        request,
        user=user,
        overviews=await list_overviews(session),
        csrf=get_csrf_token(request),
    )


@router.post("/giveaways/create")
async def giveaways_create(
    request: Request,
    title: str = Form(...),
    description: str = Form(...),
    prize: str = Form(...),
    max_participants: int = Form(1000),
    start_date: str = Form(""),
    end_date: str = Form(""),
    winner_count: int = Form(1),
    is_active: str | None = Form(None),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    try:
        giveaway = await create_giveaway(
            session,
            title=title,
            description=description,
            prize=prize,
            start_date=parse_form_datetime(start_date),
            end_date=parse_form_datetime(end_date),
            max_participants=max_participants,
            winner_count=winner_count,
            is_active=checkbox(is_active),
        )
    except ServiceError as exc:
        await session.rollback()
        return redirect("/admin/giveaways", error=exc.message)
    await log_action(
        session,
        actor=user,
        action="giveaway_create",
        payload={"giveaway_id": giveaway.id, "title": giveaway.title},
    )
    await session.commit()
    return redirect(f"/admin/giveaways/{giveaway.id}", ok="Giveaway created")


@router.get("/giveaways/{giveaway_id}")
async def giveaways_detail(
    request: Request,
    giveaway_id: int,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    giveaway = await get_giveaway(session, giveaway_id)
    participants = await list_participants(session, giveaway_id)
    return render(
        "giveaway_detail.html",
        request,
        user=user,
        giveaway=giveaway,
        eligibility=evaluate(giveaway, utcnow(), len(participants)),
        participants=participants,
        winners=await list_winners(session, giveaway_id),
        link=participation_link(giveaway_id),
        csrf=get_csrf_token(request),
    )


@router.post("/giveaways/{giveaway_id}/update")
async def giveaways_update(
    request: Request,
    giveaway_id: int,
    title: str = Form(...),
    description: str = Form(...),
    prize: str = Form(...),
    max_participants: int = Form(...),
    start_date: str = Form(""),
    end_date: str = Form(""),
    winner_count: int = Form(...),
    is_active: str | None = Form(None),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    url = f"/admin/giveaways/{giveaway_id}"
    try:
        await update_giveaway(
            session,
            giveaway_id=giveaway_id,
            title=title,
            description=description,
            prize=prize,
            start_date=parse_form_datetime(start_date),
            end_date=parse_form_datetime(end_date),
            max_participants=max_participants,
            winner_count=winner_count,
            is_active=checkbox(is_active),
        )
    except ServiceError as exc:
        await session.rollback()
        return redirect(url, error=exc.message)
    await log_action(
        session, actor=user, action="giveaway_update", payload={"giveaway_id": giveaway_id}
    )
    await session.commit()
    return redirect(url, ok="Giveaway updated")


@router.post("/giveaways/{giveaway_id}/toggle")
async def giveaways_toggle(
    request: Request,
    giveaway_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    giveaway = await toggle_giveaway(session, giveaway_id=giveaway_id)
    await log_action(
        session,
        actor=user,
        action="giveaway_toggle",
        payload={"giveaway_id": giveaway_id, "is_active": giveaway.is_active},
    )
    await session.commit()
    return redirect("/admin/giveaways")


@router.post("/giveaways/{giveaway_id}/delete")
async def giveaways_delete(
    request: Request,
    giveaway_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    await delete_giveaway(session, giveaway_id=giveaway_id)
    await log_action(
        session, actor=user, action="giveaway_delete", payload={"giveaway_id": giveaway_id}
    )
    await session.commit()
    return redirect("/admin/giveaways", ok="Giveaway deleted")


@router.post("/giveaways/{giveaway_id}/draw")
async def giveaways_draw(
    request: Request,
    giveaway_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    url = f"/admin/giveaways/{giveaway_id}"
    try:
        winners = await draw_winners(session, giveaway_id=giveaway_id)
    except ServiceError as exc:
        await session.rollback()
        return redirect(url, error=exc.message)
    await log_action(
        session,
        actor=user,
        action="giveaway_draw",
        payload={
            "giveaway_id": giveaway_id,
            "participant_ids": [w.participant_id for w in winners],
        },
    )
    await session.commit()
    notifications.announce_winners(giveaway_id)
    return redirect(url, ok=f"Selected {len(winners)} winner(s)")


# Products


def _product_fields(
    *,
    name: str,
    description: str,
    price: str,
    category: str,
    image_url: str,
    original_price: str,
    show_fake_discount: str | None,
    stock_quantity: int,
    track_stock: str | None,
    low_stock_threshold: int,
) -> dict:
    try:
        parsed_category = ProductCategory(category)
    except ValueError as exc:
        raise ServiceError(f"Unknown category: {category}") from exc
    return {
        "name": name,
        "description": description,
        "price": parse_amount(price, field="Price"),
        "category": parsed_category,
        "image_url": image_url,
        "original_price": parse_amount(original_price, field="Original price", optional=True),
        "show_fake_discount": checkbox(show_fake_discount),
        "stock_quantity": stock_quantity,
        "track_stock": checkbox(track_stock),
        "low_stock_threshold": low_stock_threshold,
    }


@router.get("/products")
async def products_list(
    request: Request,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    return render(
        "products.html",
        request,
        user=user,
        products=await list_products(session),
        categories=list(ProductCategory),
        stock_status=stock_status,
        csrf=get_csrf_token(request),
    )


@router.post("/products/create")
async def products_create(
    request: Request,
    name: str = Form(...),
    description: str = Form(""),
    price: str = Form(...),
    category: str = Form(ProductCategory.accounts.value),
    image_url: str = Form(""),
    original_price: str = Form(""),
    show_fake_discount: str | None = Form(None),
    stock_quantity: int = Form(0),
    track_stock: str | None = Form(None),
    low_stock_threshold: int = Form(0),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    try:
        product = await create_product(
            session,
            **_product_fields(
                name=name,
                description=description,
                price=price,
                category=category,
                image_url=image_url,
                original_price=original_price,
                show_fake_discount=show_fake_discount,
                stock_quantity=stock_quantity,
                track_stock=track_stock,
                low_stock_threshold=low_stock_threshold,
            ),
        )
    except ServiceError as exc:
        await session.rollback()
        return redirect("/admin/products", error=exc.message)
    await log_action(session, actor=user, action="product_create", payload={"product_id": product.id})
    await session.commit()
    return redirect("/admin/products", ok="Product created")


@router.post("/products/{product_id}/update")
async def products_update(
    request: Request,
    product_id: int,
    name: str = Form(...),
    description: str = Form(""),
    price: str = Form(...),
    category: str = Form(...),
    image_url: str = Form(""),
    original_price: str = Form(""),
    show_fake_discount: str | None = Form(None),
    stock_quantity: int = Form(0),
    track_stock: str | None = Form(None),
    low_stock_threshold: int = Form(0),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    try:
        await update_product(
            session,
            product_id=product_id,
            **_product_fields(
                name=name,
                description=description,
                price=price,
                category=category,
                image_url=image_url,
                original_price=original_price,
                show_fake_discount=show_fake_discount,
                stock_quantity=stock_quantity,
                track_stock=track_stock,
                low_stock_threshold=low_stock_threshold,
            ),
        )
    except ServiceError as exc:
        await session.rollback()
        return redirect("/admin/products", error=exc.message)
    await log_action(session, actor=user, action="product_update", payload={"product_id": product_id})
    await session.commit()
    return redirect("/admin/products", ok="Product updated")


@router.post("/products/{product_id}/delete")
async def products_delete(
    request: Request,
    product_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    await delete_product(session, product_id=product_id)
    await log_action(session, actor=user, action="product_delete", payload={"product_id": product_id})
    await session.commit()
    return redirect("/admin/products", ok="Product deleted")


# Discount codes


@router.get("/discounts")
async def discounts_list(
    request: Request,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    return render(
        "discounts.html",
        request,
        user=user,
        discounts=await list_discount_codes(session),
        csrf=get_csrf_token(request),
    )


@router.post("/discounts/create")
async def discounts_create(
    request: Request,
    code: str = Form(...),
    discount_type: str = Form(DiscountType.percentage.value),
    discount_percentage: int = Form(0),
    fixed_amount: str = Form("0"),
    max_usage: str = Form(""),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    try:
        discount = await create_discount_code(
            session,
            code=code,
            discount_type=DiscountType(discount_type),
            discount_percentage=discount_percentage,
            fixed_amount=parse_amount(fixed_amount or "0", field="Fixed amount"),
            max_usage=int(max_usage) if max_usage.strip() else None,
        )
    except (ServiceError, ValueError) as exc:
        await session.rollback()
        message = exc.message if isinstance(exc, ServiceError) else "Invalid discount data."
        return redirect("/admin/discounts", error=message)
    await log_action(session, actor=user, action="discount_create", payload={"code": discount.code})
    await session.commit()
    return redirect("/admin/discounts", ok="Discount code created")


@router.post("/discounts/{discount_id}/toggle")
async def discounts_toggle(
    request: Request,
    discount_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    discount = await toggle_discount_code(session, discount_id=discount_id)
    if discount:
        await log_action(
            session,
            actor=user,
            action="discount_toggle",
            payload={"code": discount.code, "is_active": discount.is_active},
        )
        await session.commit()
    return redirect("/admin/discounts")


@router.post("/discounts/{discount_id}/delete")
async def discounts_delete(
    request: Request,
    discount_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    await delete_discount_code(session, discount_id=discount_id)
    await log_action(session, actor=user, action="discount_delete", payload={"discount_id": discount_id})
    await session.commit()
    return redirect("/admin/discounts")


# Orders


@router.get("/orders")
async def orders_list(
    request: Request,
    status: OrderStatus | None = None,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    return render(
        "orders.html",
        request,
        user=user,
        orders=await list_orders(session, status=status),
        status=status,
        statuses=list(OrderStatus),
        csrf=get_csrf_token(request),
    )


@router.post("/orders/{order_id}/status")
async def orders_set_status(
    request: Request,
    order_id: int,
    status: OrderStatus = Form(...),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    try:
        order = await set_order_status(session, order_id=order_id, status=status)
    except ServiceError as exc:
        await session.rollback()
        return redirect("/admin/orders", error=exc.message)
    await log_action(
        session,
        actor=user,
        action="order_status",
        payload={"order_code": order.order_code, "status": status.value},
    )
    await session.commit()
    return redirect("/admin/orders")


# Sell requests


@router.get("/sell-requests")
async def sell_requests_list(
    request: Request,
    status: SellRequestStatus | None = None,
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    return render(
        "sell_requests.html",
        request,
        user=user,
        requests=await list_sell_requests(session, status=status),
        counts=await count_by_status(session),
        status=status,
        statuses=list(SellRequestStatus),
        csrf=get_csrf_token(request),
    )


@router.post("/sell-requests/{request_id}/status")
async def sell_requests_set_status(
    request: Request,
    request_id: int,
    status: SellRequestStatus = Form(...),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    await set_status(session, request_id=request_id, status=status)
    await log_action(
        session,
        actor=user,
        action="sell_request_status",
        payload={"request_id": request_id, "status": status.value},
    )
    await session.commit()
    return redirect("/admin/sell-requests", ok=f"Status changed to {status.value}")


@router.post("/sell-requests/{request_id}/notes")
async def sell_requests_notes(
    request: Request,
    request_id: int,
    notes: str = Form(""),
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    await update_notes(session, request_id=request_id, notes=notes)
    await session.commit()
    return redirect("/admin/sell-requests", ok="Notes saved")


@router.post("/sell-requests/{request_id}/delete")
async def sell_requests_delete(
    request: Request,
    request_id: int,
    csrf_token: str = Form(...),
    user: str = Depends(login_required),
    session: AsyncSession = Depends(get_session),
):
    verify_csrf(request, csrf_token)
    await delete_sell_request(session, request_id=request_id)
    await log_action(
        session, actor=user, action="sell_request_delete", payload={"request_id": request_id}
    )
    await session.commit()
    return redirect("/admin/sell-requests")
