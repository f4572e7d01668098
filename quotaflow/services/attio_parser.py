"""
Tolerant parsing of Attio payloads.

Attio record shapes vary by endpoint and workspace setup: flat attributes,
`values` maps of single-element arrays, ids as strings or nested objects.
Each field is read through an explicit fallback chain and the result is a
ParsedMember / ParsedDeal; nothing downstream looks at raw payloads except
extract_attribute_flag.
"""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

from quotaflow.schemas.attio import ParsedDeal, ParsedMember
from quotaflow.services.quarters import to_utc_datetime

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TRUE_STRINGS = {"true", "yes"}


def _as_dict(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def _get_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _get_number(value: Any) -> Optional[float]:
    """Finite number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            number = float(value)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _first(*candidates: Any) -> Any:
    """First candidate that is not None."""
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


# ── values[] helpers ────────────────────────────────────


def get_values_record(record: dict) -> Optional[dict]:
    """Find the `values` map: top level, data.values or data.record.values."""
    data = _as_dict(record.get("data")) or {}
    return _first(
        _as_dict(record.get("values")),
        _as_dict(data.get("values")),
        _as_dict((_as_dict(data.get("record")) or {}).get("values")),
    )


def pick_first_value(values: dict, key: str) -> Optional[dict]:
    items = values.get(key)
    if not isinstance(items, list) or not items:
        return None
    return _as_dict(items[0])


def pick_text_value(values: dict, key: str) -> Optional[str]:
    return _get_str((pick_first_value(values, key) or {}).get("value"))


def pick_status_title(values: dict, key: str) -> Optional[str]:
    status = _as_dict((pick_first_value(values, key) or {}).get("status")) or {}
    return _get_str(status.get("title"))


def pick_option_title(values: dict, key: str) -> Optional[str]:
    option = _as_dict((pick_first_value(values, key) or {}).get("option")) or {}
    return _get_str(option.get("title"))


def pick_currency_value(values: dict, key: str) -> Optional[float]:
    first = pick_first_value(values, key) or {}
    return _first(_get_number(first.get("currency_value")), _get_number(first.get("currencyValue")))


# ── Listing envelopes ───────────────────────────────────


def get_members_array(data: Any) -> list:
    """Member list from {data: [...]}, {workspace_members: [...]} or {members: [...]}."""
    record = _as_dict(data)
    if record is None:
        return []
    candidate = _first(record.get("data"), record.get("workspace_members"), record.get("members"))
    return candidate if isinstance(candidate, list) else []


def get_deals_array(data: Any) -> list:
    """Deal list from the query, list and legacy envelopes."""
    record = _as_dict(data)
    if record is None:
        return []
    data_node = _as_dict(record.get("data"))
    nested = _first(data_node.get("records"), data_node.get("data")) if data_node else None
    candidate = _first(nested, record.get("records"), record.get("deals"), record.get("data"))
    return candidate if isinstance(candidate, list) else []


# ── Members ─────────────────────────────────────────────


def parse_member_id(record: dict) -> Optional[str]:
    id_obj = _as_dict(record.get("id")) or {}
    member_id = _first(
        _get_str(record.get("id")),
        _get_str(id_obj.get("workspace_member_id")),
        _get_str(id_obj.get("workspaceMemberId")),
        _get_str(record.get("workspace_member_id")),
        _get_str(record.get("workspaceMemberId")),
    )
    return member_id or None


def parse_member_email(record: dict) -> Optional[str]:
    email = _first(
        _get_str(record.get("email")),
        _get_str(record.get("email_address")),
        _get_str((_as_dict(record.get("attributes")) or {}).get("email")),
        _get_str((_as_dict(record.get("user")) or {}).get("email")),
    )
    email = (email or "").strip().lower()
    return email or None


def parse_member_record(raw: Any) -> Optional[ParsedMember]:
    """
    Parse a workspace member; None when no id can be extracted.
    """
    record = _as_dict(raw)
    if record is None:
        return None

    member_id = parse_member_id(record)
    if not member_id:
        return None

    full_name = _first(
        _get_str(record.get("name")),
        _get_str(record.get("full_name")),
        _get_str(record.get("fullName")),
    )
    if full_name is None:
        parts = [_get_str(record.get("first_name")), _get_str(record.get("last_name"))]
        full_name = " ".join(p for p in parts if p).strip() or None

    status = _first(record.get("status"), record.get("access_level"))

    return ParsedMember(
        id=member_id,
        email=parse_member_email(record),
        full_name=full_name,
        status=None if status is None else str(status),
        raw=raw,
    )


# ── Deals ───────────────────────────────────────────────


def _actor_reference(ref: dict) -> Optional[str]:
    """workspace-member id from an actor reference, if that's what it is."""
    actor_type = _first(_get_str(ref.get("referenced_actor_type")), _get_str(ref.get("referencedActorType")))
    actor_id = _first(_get_str(ref.get("referenced_actor_id")), _get_str(ref.get("referencedActorId")))
    if actor_type and actor_type.lower() == "workspace-member" and actor_id:
        return actor_id
    return None


def parse_owner_workspace_member_id(record: dict) -> Optional[str]:
    values = get_values_record(record)
    if values:
        first = pick_first_value(values, "owner")
        if first:
            member_id = _actor_reference(first)
            if member_id:
                return member_id

    owner = _first(
        _as_dict(record.get("owner")),
        _as_dict(record.get("deal_owner")),
        _as_dict((_as_dict(record.get("attributes")) or {}).get("owner")),
    )
    if owner is None:
        return None

    member_id = _actor_reference(owner)
    if member_id:
        return member_id

    # Sometimes owner is a plain object with an id
    return _first(_get_str(owner.get("id")), _get_str((_as_dict(owner.get("data")) or {}).get("id")))


def _parse_close_date(value: Optional[str]) -> datetime:
    if value and DATE_ONLY_RE.match(value):
        value = f"{value}T00:00:00+00:00"
    return to_utc_datetime(value) or EPOCH


def normalize_status(status: str) -> str:
    """Collapse any stage containing "won" ("Won 🎉", "Closed Won") to "Won"."""
    return "Won" if "won" in status.lower() else status


def parse_deal_record(raw: Any) -> Optional[ParsedDeal]:
    """
    Best-effort parse of an Attio deal record.

    Returns None when the payload has no record id.
    """
    record = _as_dict(raw)
    if record is None:
        return None

    values = get_values_record(record) or {}
    id_obj = _as_dict(record.get("id")) or {}
    attributes = _as_dict(record.get("attributes")) or record

    record_id = _first(
        _get_str(record.get("id")),
        _get_str(id_obj.get("record_id")),
        _get_str(id_obj.get("recordId")),
        _get_str(record.get("record_id")),
        _get_str(record.get("recordId")),
        pick_text_value(values, "record_id"),
    )
    if not record_id:
        return None

    deal_name = _first(
        pick_text_value(values, "name"),
        _get_str(record.get("deal_name")),
        _get_str(record.get("name")),
        _get_str(attributes.get("deal_name")),
        _get_str(attributes.get("name")),
        "Untitled deal",
    )

    account_name = _first(
        _get_str(record.get("account_name")),
        _get_str(attributes.get("account_name")),
        _get_str(attributes.get("company_name")),
    )

    amount = _first(
        pick_currency_value(values, "value"),
        _get_number((pick_first_value(values, "deal_value_local") or {}).get("value")),
        _get_number(record.get("amount")),
        _get_number(attributes.get("amount")),
        0.0,
    )
    commissionable_amount = _first(
        _get_number(record.get("commissionable_amount")),
        _get_number(attributes.get("commissionable_amount")),
        amount,
    )

    close_date_raw = _first(
        pick_text_value(values, "won_loss_date"),
        pick_text_value(values, "estimated_close_date"),
        _get_str(record.get("close_date")),
        _get_str(attributes.get("close_date")),
        _get_str(attributes.get("closed_at")),
    )

    status = _first(
        pick_status_title(values, "stage"),
        pick_option_title(values, "deal_forecast"),
        _get_str(record.get("status")),
        _get_str(attributes.get("status")),
        _get_str(attributes.get("stage")),
        "",
    )

    return ParsedDeal(
        attio_record_id=record_id,
        deal_name=deal_name,
        account_name=account_name,
        amount=amount,
        commissionable_amount=commissionable_amount,
        close_date=_parse_close_date(close_date_raw),
        status=normalize_status(status),
        owner_workspace_member_id=parse_owner_workspace_member_id(record),
        raw=raw,
    )


# ── Attribute flags ─────────────────────────────────────


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    if isinstance(value, list):
        return bool(value) and _truthy(value[0])
    if isinstance(value, dict):
        for key in ("value", "checked"):
            if key in value:
                return _truthy(value[key])
        option = _as_dict(value.get("option"))
        if option is not None:
            return _truthy(option.get("title"))
    return False


def extract_attribute_flag(raw: Any, slug: str) -> bool:
    """
    Read a checkbox/select attribute from a deal payload as a boolean.

    Accepts a literal boolean, "true", a single-element array whose item
    carries `value`/`checked`, or a nested object.
    """
    record = _as_dict(raw)
    if record is None or not slug:
        return False

    values = get_values_record(record) or {}
    attributes = _as_dict(record.get("attributes")) or {}
    value = _first(values.get(slug), attributes.get(slug), record.get(slug))
    return _truthy(value)
