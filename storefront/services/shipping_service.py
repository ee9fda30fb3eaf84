# storefront/services/shipping_service.py
from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import OperationalError, ProgrammingError

from ..extensions import db
from ..model.setting import StoreSetting, FREE_SHIPPING_THRESHOLD_KEY
from ..utils.money import D, MAX_AMOUNT, Money, ZERO, round_money
from ..utils.parsing import parse_opt_float
from .errors import InputError


@dataclass(frozen=True)
class SettingValue:
    value: Money
    degraded: bool = False
    reason: str | None = None


def base_shipping() -> Money:
    return round_money(D(current_app.config.get("BASE_SHIPPING_JOD", 3.5)))


def default_threshold() -> Money:
    return round_money(D(current_app.config.get("FREE_SHIPPING_THRESHOLD_JOD", 50)))


def shipping_for_subtotal(subtotal_after_discount, has_items: bool, threshold) -> Money:
    # free shipping is earned on the discounted subtotal
    if not has_items:
        return ZERO
    threshold = D(threshold)
    if threshold > 0 and D(subtotal_after_discount) >= threshold:
        return ZERO
    return base_shipping()


def read_free_shipping_threshold() -> SettingValue:
    caps = current_app.config["CAPABILITIES"]
    if not caps.settings:
        return SettingValue(default_threshold(), True, "SETTINGS_TABLE_MISSING")

    try:
        row = db.session.get(StoreSetting, FREE_SHIPPING_THRESHOLD_KEY)
    except (OperationalError, ProgrammingError) as e:
        db.session.rollback()
        current_app.logger.warning("settings store unavailable, using default threshold: %s", e)
        return SettingValue(default_threshold(), True, "SETTINGS_STORE_UNAVAILABLE")

    if row is None or row.value_number is None or D(row.value_number) < 0:
        return SettingValue(default_threshold(), True, "SETTING_NOT_SET")
    return SettingValue(round_money(row.value_number), False, None)


def write_free_shipping_threshold(value) -> StoreSetting:
    amount = parse_opt_float(value)
    if amount is None or amount < 0 or D(amount) > MAX_AMOUNT:
        raise InputError("INVALID_FREE_SHIPPING_THRESHOLD", "threshold must be a number >= 0")

    row = db.session.get(StoreSetting, FREE_SHIPPING_THRESHOLD_KEY)
    if row is None:
        row = StoreSetting(key=FREE_SHIPPING_THRESHOLD_KEY)
        db.session.add(row)
    row.value_number = round_money(amount)
    db.session.commit()
    return row
