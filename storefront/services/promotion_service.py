# storefront/services/promotion_service.py
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import func, or_, update

from ..extensions import db
from ..model.promotion import (
    AUTO_KINDS, CODE_KINDS, DISCOUNT_TYPES, Promotion, normalize_kind, normalize_scope,
)
from ..utils.money import D, Money, ZERO, round_money
from ..utils.parsing import now_utc

PROMO_REASONS = frozenset({
    "PROMO_NOT_FOUND",
    "PROMO_INACTIVE",
    "PROMO_NOT_STARTED",
    "PROMO_EXPIRED",
    "PROMO_USAGE_LIMIT",
    "PROMO_MIN_ORDER",
    "PROMO_CATEGORY_MISMATCH",
    "PROMO_INVALID",
})


@dataclass(frozen=True)
class PromotionMatch:
    promotion_id: int
    promo_code: str | None
    promo_kind: str
    discount: Money
    eligible_subtotal: Money
    subtotal_after_discount: Money
    meta: dict = field(default_factory=dict)

    ok = True

    @property
    def priority(self) -> int:
        return self.meta.get("priority", 0)

    def as_api(self):
        return {
            "promotionId": self.promotion_id,
            "code": self.promo_code,
            "kind": self.promo_kind,
            "discountJod": float(self.discount),
            "eligibleSubtotalJod": float(self.eligible_subtotal),
            "subtotalAfterDiscountJod": float(self.subtotal_after_discount),
            "discountType": self.meta.get("discount_type"),
            "discountValue": self.meta.get("discount_value"),
            "titleEn": self.meta.get("title_en"),
            "titleAr": self.meta.get("title_ar"),
            "priority": self.priority,
        }


@dataclass(frozen=True)
class PromotionRejection:
    code: str
    message: str

    ok = False


def _reject(code, message):
    return PromotionRejection(code, message)


def _eligible_lines(promo: Promotion, lines):
    keys = normalize_scope(promo.category_keys)
    slugs = normalize_scope(promo.product_slugs)
    if not keys and not slugs:
        return list(lines)

    keys, slugs = set(keys or ()), set(slugs or ())
    # union when both scopes are present
    return [
        line for line in lines
        if (line.category_key is not None and line.category_key in keys) or line.slug in slugs
    ]


def evaluate_promotion(promo: Promotion, lines, subtotal, now=None):
    """Run the validation pipeline for one candidate. First failing check wins."""
    now = now or now_utc()
    subtotal = round_money(subtotal)

    if not promo.is_active:
        return _reject("PROMO_INACTIVE", "Promotion is inactive")
    if promo.starts_at and now < promo.starts_at:
        return _reject("PROMO_NOT_STARTED", "Promotion is not active yet")
    if promo.ends_at and now > promo.ends_at:
        return _reject("PROMO_EXPIRED", "Promotion has expired")

    used = promo.used_count or 0
    if promo.usage_limit is not None and used >= promo.usage_limit:
        return _reject("PROMO_USAGE_LIMIT", "Promotion usage limit reached")

    min_order = D(promo.min_order_jod) if promo.min_order_jod is not None else ZERO
    if min_order > 0 and subtotal < min_order:
        return _reject("PROMO_MIN_ORDER", f"Minimum order is {round_money(min_order)} JOD")

    eligible = round_money(sum((D(l.line_total) for l in _eligible_lines(promo, lines)), ZERO))
    if eligible <= 0:
        return _reject("PROMO_CATEGORY_MISMATCH", "Promotion does not apply to these items")

    dtype = str(promo.discount_type or "").strip().upper()
    value = D(promo.discount_value)
    if dtype not in DISCOUNT_TYPES or not value.is_finite() or value <= 0:
        return _reject("PROMO_INVALID", "Promotion configuration is invalid")

    raw = eligible * value / D(100) if dtype == "PERCENT" else value
    discount = round_money(max(ZERO, min(eligible, raw)))
    after = round_money(max(ZERO, subtotal - discount))

    return PromotionMatch(
        promotion_id=promo.id,
        promo_code=promo.code,
        promo_kind=normalize_kind(promo.promo_kind),
        discount=discount,
        eligible_subtotal=eligible,
        subtotal_after_discount=after,
        meta={
            "discount_type": dtype,
            "discount_value": float(value),
            "title_en": promo.title_en,
            "title_ar": promo.title_ar,
            "priority": promo.priority or 0,
        },
    )


def evaluate_code(code, lines, subtotal, now=None):
    promo_code = str(code or "").strip().upper()
    if not promo_code:
        return _reject("PROMO_INVALID", "Promo code is required")

    promo = (Promotion.query
             .filter(Promotion.code == promo_code, Promotion.promo_kind.in_(CODE_KINDS))
             .first())
    if promo is None:
        return _reject("PROMO_NOT_FOUND", "Promo code not found")
    return evaluate_promotion(promo, lines, subtotal, now)


def _auto_rank(match: PromotionMatch):
    return (match.priority, match.discount, match.promotion_id)


def evaluate_auto(lines, subtotal, now=None):
    """
    Best AUTO promotion for the lines: highest priority, then biggest
    discount, then highest promotion id.
    """
    if not lines or not D(subtotal) > 0:
        return _reject("PROMO_NOT_FOUND", "No eligible items")

    limit = current_app.config.get("MAX_AUTO_PROMOTIONS", 30)
    candidates = (Promotion.query
                  .filter(Promotion.promo_kind.in_(AUTO_KINDS), Promotion.is_active.is_(True))
                  .order_by(Promotion.priority.desc(), Promotion.created_at.desc(), Promotion.id.desc())
                  .limit(limit)
                  .all())
    if not candidates:
        return _reject("PROMO_NOT_FOUND", "No active AUTO promotions")

    best = None
    for promo in candidates:
        result = evaluate_promotion(promo, lines, subtotal, now)
        if not result.ok or result.discount <= 0:
            continue
        if best is None or _auto_rank(result) > _auto_rank(best):
            best = result

    if best is None:
        return _reject("PROMO_NOT_FOUND", "No eligible AUTO promotion")
    current_app.logger.debug("auto promotion %s selected (discount %s)", best.promotion_id, best.discount)
    return best


def consume_promotion_usage(promotion_id: int) -> bool:
    """
    Count one redemption. Runs inside the caller's transaction and never
    commits; False means the usage limit is already exhausted.
    """
    used = func.coalesce(Promotion.used_count, 0)
    stmt = (
        update(Promotion)
        .where(Promotion.id == promotion_id)
        .where(or_(Promotion.usage_limit.is_(None), used < Promotion.usage_limit))
        .values(used_count=used + 1, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1
