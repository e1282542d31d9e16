# Overview: Service-layer operations for document numbering; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import InactiveRuleError, NotFoundError
from ..models import NumberingRule
from ..models.numbering import DATE_FORMATS, RESET_PERIODS
from ..time_utils import business_now
from ..validation import ConflictError, ValidationError
from .concurrency import begin_write_transaction, lock_for_update
"""
Numbering Invariants (authoritative)

- The counter's source of truth is numbering_rules.current_sequence, never
  process memory: several server instances may generate concurrently.
- Within a reset epoch current_sequence only increases; read-increment-write
  runs under a row lock (FOR UPDATE) or a serialized write transaction
  (SQLite BEGIN IMMEDIATE), so no two callers observe the same value.
- Reset boundaries and the date component use the business calendar
  (BUSINESS_TIMEZONE), compared on naive wall-clock dates.
- preview_next never writes. Its result is advisory and may collide with a
  concurrent generate_next.
"""


class NumberingRuleCodes:
    """Well-known rule codes, one per document type."""
    ORDER = "ORDER"
    PURCHASE_ORDER = "PO"
    REFUND = "REFUND"
    GOODS_RECEIPT = "GR"
    GOODS_ISSUE = "GI"
    STOCK_COUNT = "SC"
    STOCK_TRANSFER = "ST"
    STOCK_ADJUSTMENT = "SA"
    INVOICE = "INV"
    HOLD_ORDER = "HOLD"
    POS_SESSION = "POS"
    CASHIER_SHIFT = "SHIFT"
    CUSTOMER = "CUST"


# code -> (name, prefix, date_format, sequence_length, reset_period)
DEFAULT_RULES = {
    NumberingRuleCodes.ORDER: ("Sales order", "ORD", "YYYYMMDD", 4, "DAILY"),
    NumberingRuleCodes.PURCHASE_ORDER: ("Purchase order", "PO", "YYYYMM", 4, "MONTHLY"),
    NumberingRuleCodes.REFUND: ("Refund", "RF", "YYYYMMDD", 4, "DAILY"),
    NumberingRuleCodes.GOODS_RECEIPT: ("Goods receipt", "GR", "YYYYMM", 4, "MONTHLY"),
    NumberingRuleCodes.GOODS_ISSUE: ("Goods issue", "GI", "YYYYMM", 4, "MONTHLY"),
    NumberingRuleCodes.STOCK_COUNT: ("Stock count", "SC", "YYYYMM", 4, "MONTHLY"),
    NumberingRuleCodes.STOCK_TRANSFER: ("Stock transfer", "ST", "YYYYMM", 4, "MONTHLY"),
    NumberingRuleCodes.STOCK_ADJUSTMENT: ("Stock adjustment", "SA", "YYYYMM", 4, "MONTHLY"),
    NumberingRuleCodes.INVOICE: ("Invoice", "INV", "YYYYMMDD", 5, "DAILY"),
    NumberingRuleCodes.HOLD_ORDER: ("Held order", "HOLD", "YYYYMMDD", 3, "DAILY"),
    NumberingRuleCodes.POS_SESSION: ("POS session", "POS", "YYYYMMDD", 3, "DAILY"),
    NumberingRuleCodes.CASHIER_SHIFT: ("Cashier shift", "SHIFT", "YYYYMMDD", 3, "DAILY"),
    NumberingRuleCodes.CUSTOMER: ("Customer", "C", None, 6, "NEVER"),
}


def should_reset(reset_period: str | None, last_reset_at: datetime | None, now: datetime) -> bool:
    """
    True when `now` lies in a later day/month/year than `last_reset_at`.

    A rule that was never reset counts as reset at the epoch, so the first
    generation under a periodic policy starts the sequence at 1.
    """
    if not reset_period or reset_period == "NEVER":
        return False

    last = last_reset_at or datetime(1970, 1, 1)

    if reset_period == "DAILY":
        return now.date() != last.date()
    if reset_period == "MONTHLY":
        return (now.year, now.month) != (last.year, last.month)
    if reset_period == "YEARLY":
        return now.year != last.year
    return False


def format_date(now: datetime, date_format: str | None) -> str:
    if date_format == "YYYYMMDD":
        return now.strftime("%Y%m%d")
    if date_format == "YYYYMM":
        return now.strftime("%Y%m")
    if date_format == "YYYY":
        return now.strftime("%Y")
    return ""


def build_number(
    prefix: str,
    date_format: str | None,
    sequence: int,
    sequence_length: int,
    now: datetime,
) -> str:
    """prefix + optional date component + zero-padded sequence."""
    return f"{prefix or ''}{format_date(now, date_format)}{sequence:0{sequence_length}d}"


def _next_sequence(rule: NumberingRule, now: datetime) -> tuple[int, bool]:
    if should_reset(rule.reset_period, rule.last_reset_at, now):
        return 1, True
    return (rule.current_sequence or 0) + 1, False


def _get_usable_rule(rule_code: str, *, lock: bool) -> NumberingRule:
    if not rule_code or not str(rule_code).strip():
        raise ValidationError("rule_code is required", errors={"rule_code": ["rule_code is required"]})

    query = db.session.query(NumberingRule).filter_by(code=rule_code)
    if lock:
        query = lock_for_update(query)
    rule = query.populate_existing().first()

    if rule is None:
        raise NotFoundError(f"Numbering rule {rule_code} does not exist", details={"rule_code": rule_code})
    if not rule.is_active:
        raise InactiveRuleError(f"Numbering rule {rule_code} is inactive", details={"rule_code": rule_code})
    return rule


def generate_next(rule_code: str, *, now: datetime | None = None, commit: bool = True) -> str:
    """
    Atomically allocate the next document number for a rule.

    commit=True: owns the transaction (opens the write lock, commits, rolls
    back on failure).
    commit=False: runs inside the caller's transaction; the caller must have
    opened it with begin_write_transaction() and is responsible for
    commit/rollback. Nothing is persisted unless that transaction commits.
    """
    if now is None:
        now = business_now()

    if not commit:
        return _generate_locked(rule_code, now)

    try:
        begin_write_transaction()
        number = _generate_locked(rule_code, now)
        db.session.commit()
        return number
    except Exception:
        db.session.rollback()
        raise


def _generate_locked(rule_code: str, now: datetime) -> str:
    rule = _get_usable_rule(rule_code, lock=True)

    sequence, reset = _next_sequence(rule, now)
    rule.current_sequence = sequence
    if reset:
        rule.last_reset_at = now
    db.session.flush()

    return build_number(rule.prefix, rule.date_format, sequence, rule.sequence_length, now)


def preview_next(rule_code: str, *, now: datetime | None = None) -> str:
    """Compute the next number without advancing the counter (advisory only)."""
    if now is None:
        now = business_now()
    rule = _get_usable_rule(rule_code, lock=False)
    sequence, _ = _next_sequence(rule, now)
    return build_number(rule.prefix, rule.date_format, sequence, rule.sequence_length, now)


# =============================================================================
# Rule administration
# =============================================================================

def _validate_format(date_format, sequence_length, reset_period) -> None:
    errors: dict[str, list[str]] = {}
    if date_format is not None and date_format not in DATE_FORMATS:
        errors["date_format"] = [f"date_format must be one of {', '.join(DATE_FORMATS)} or null"]
    if isinstance(sequence_length, bool) or not isinstance(sequence_length, int) or not 1 <= sequence_length <= 10:
        errors["sequence_length"] = ["sequence_length must be an integer between 1 and 10"]
    if reset_period is not None and reset_period not in RESET_PERIODS:
        errors["reset_period"] = [f"reset_period must be one of {', '.join(RESET_PERIODS)} or null"]
    if errors:
        raise ValidationError("Validation failed", errors=errors)


def list_rules(*, active_only: bool = False) -> list[NumberingRule]:
    query = db.session.query(NumberingRule)
    if active_only:
        query = query.filter(NumberingRule.is_active.is_(True))
    return query.order_by(NumberingRule.code).all()


def get_rule(rule_id: int) -> NumberingRule:
    rule = db.session.get(NumberingRule, rule_id)
    if rule is None:
        raise NotFoundError("Numbering rule not found", details={"rule_id": rule_id})
    return rule


def create_rule(
    *,
    code: str,
    name: str,
    prefix: str = "",
    date_format: str | None = None,
    sequence_length: int = 4,
    reset_period: str | None = None,
    is_active: bool = True,
) -> NumberingRule:
    if not code or not str(code).strip():
        raise ValidationError("Validation failed", errors={"code": ["code is required"]})
    if not name or not str(name).strip():
        raise ValidationError("Validation failed", errors={"name": ["name is required"]})
    _validate_format(date_format, sequence_length, reset_period)

    code = str(code).strip().upper()
    if db.session.query(NumberingRule).filter_by(code=code).first():
        raise ConflictError(f"Numbering rule {code} already exists")

    rule = NumberingRule(
        code=code,
        name=str(name).strip(),
        prefix=prefix or "",
        date_format=date_format,
        sequence_length=sequence_length,
        reset_period=reset_period,
        is_active=is_active,
        current_sequence=0,
    )
    db.session.add(rule)
    db.session.commit()
    return rule


def update_rule(rule_id: int, **changes) -> NumberingRule:
    """
    Update the format fields of a rule. The counter itself is never
    editable here; use reset_sequence().
    """
    allowed = {"name", "prefix", "date_format", "sequence_length", "reset_period", "is_active"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    errors: dict[str, list[str]] = {}
    if "name" in changes:
        name = changes["name"]
        if not isinstance(name, str) or not name.strip():
            errors["name"] = ["name is required"]
        else:
            changes["name"] = name.strip()
    if "prefix" in changes and not isinstance(changes["prefix"], str):
        errors["prefix"] = ["prefix must be a string"]
    if "is_active" in changes and not isinstance(changes["is_active"], bool):
        errors["is_active"] = ["is_active must be true or false"]
    if errors:
        raise ValidationError("Validation failed", errors=errors)

    rule = get_rule(rule_id)
    _validate_format(
        changes.get("date_format", rule.date_format),
        changes.get("sequence_length", rule.sequence_length),
        changes.get("reset_period", rule.reset_period),
    )
    try:
        for key, value in changes.items():
            setattr(rule, key, value)
        db.session.commit()
        return rule
    except Exception:
        db.session.rollback()
        raise


def reset_sequence(rule_id: int, *, now: datetime | None = None) -> NumberingRule:
    """Explicit administrative reset: the next generated number is 1."""
    if now is None:
        now = business_now()
    try:
        begin_write_transaction()
        rule = lock_for_update(db.session.query(NumberingRule).filter_by(id=rule_id)).populate_existing().first()
        if rule is None:
            raise NotFoundError("Numbering rule not found", details={"rule_id": rule_id})
        rule.current_sequence = 0
        rule.last_reset_at = now
        db.session.commit()
        return rule
    except Exception:
        db.session.rollback()
        raise


def ensure_default_rules() -> list[NumberingRule]:
    """
    Ensure every well-known document type has a rule.

    Safe to call repeatedly (idempotent); existing rules are left untouched.
    """
    existing = {r.code for r in db.session.query(NumberingRule.code).all()}
    created = []
    for code, (name, prefix, date_format, length, reset_period) in DEFAULT_RULES.items():
        if code in existing:
            continue
        rule = NumberingRule(
            code=code,
            name=name,
            prefix=prefix,
            date_format=date_format,
            sequence_length=length,
            reset_period=reset_period,
            current_sequence=0,
            is_active=True,
        )
        db.session.add(rule)
        created.append(rule)
    db.session.commit()
    return created
