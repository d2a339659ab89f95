"""
Input contract for one render: rows, metadata and layout flags.

Everything here is validated up front; a request that gets past the
constructor can be laid out without further checks.
"""
import math
from datetime import datetime

from formatting import DEFAULT_CURRENCY, fmt_datetime, looks_like_timestamp


class DocumentError(Exception):
    """Base class for errors raised by the document renderer."""


class InputError(DocumentError, ValueError):
    """The request is malformed; nothing has been rendered."""


def _number(value, what):
    if isinstance(value, bool):
        raise InputError(f"{what} must be a number, got {value!r}")
    try:
        f = float(value)
    except (ValueError, TypeError):
        raise InputError(f"{what} must be a number, got {value!r}") from None
    if not math.isfinite(f):
        raise InputError(f"{what} must be finite, got {value!r}")
    return f

def _flag(value, what):
    if not isinstance(value, bool):
        raise InputError(f"{what} must be true or false, got {value!r}")
    return value

def _opt_text(value):
    if value is None:
        return None
    s = str(value).strip()
    return s or None


class Row:
    """One line item. ``line_total`` is derived once, at construction."""

    def __init__(self, name, quantity, unit_amount, category=None, link=None,
                 status_label=None, status_color_hint=None):
        name = str(name if name is not None else "").strip()
        if not name:
            raise InputError("row name is required")
        self.name = name
        self.quantity = _number(quantity, f"quantity of {name!r}")
        self.unit_amount = _number(unit_amount, f"unit amount of {name!r}")
        self.line_total = round(self.quantity * self.unit_amount, 2)
        self.category = "" if category is None else str(category)
        self.link = _opt_text(link)
        self.status_label = _opt_text(status_label)
        self.status_color_hint = _opt_text(status_color_hint)

    @classmethod
    def from_dict(cls, d):
        if not isinstance(d, dict):
            raise InputError(f"row must be a mapping, got {type(d).__name__}")
        if "quantity" not in d:
            raise InputError(f"row {d.get('name')!r} has no quantity")
        if "unitAmount" not in d and "unit_amount" not in d:
            raise InputError(f"row {d.get('name')!r} has no unitAmount")
        return cls(
            name=d.get("name"),
            quantity=d["quantity"],
            unit_amount=d["unitAmount"] if "unitAmount" in d else d["unit_amount"],
            category=d.get("category"),
            link=d.get("link"),
            status_label=d.get("statusLabel", d.get("status_label")),
            status_color_hint=d.get("statusColorHint", d.get("status_color_hint")),
        )

    def __repr__(self):
        return f"Row({self.name!r}, qty={self.quantity}, unit={self.unit_amount})"


class MetaField:
    def __init__(self, label, value):
        label = str(label if label is not None else "").strip()
        if not label:
            raise InputError("meta field label is required")
        self.label = label
        if isinstance(value, datetime) or (isinstance(value, str)
                                           and looks_like_timestamp(value)):
            value = fmt_datetime(value)
        self.value = "-" if value is None or str(value).strip() == "" else str(value)

    @classmethod
    def from_dict(cls, d):
        if not isinstance(d, dict):
            raise InputError(f"meta field must be a mapping, got {type(d).__name__}")
        return cls(d.get("label"), d.get("value"))

    def __repr__(self):
        return f"MetaField({self.label!r}, {self.value!r})"


DEFAULT_CONFIRMATION_TITLE = "Handover confirmation"
DEFAULT_SIGNATURE_TITLES = ("Delivered to", "Operations")


class DocumentRequest:
    """A fully materialized render request. Consumed once per render."""

    def __init__(self, title, rows, subtitle=None, meta_fields=(),
                 group_by_category=True, show_category_header_bar=True,
                 reference=None, color_key=None,
                 confirmation_title=DEFAULT_CONFIRMATION_TITLE,
                 signature_titles=DEFAULT_SIGNATURE_TITLES,
                 currency_symbol=DEFAULT_CURRENCY):
        title = str(title if title is not None else "").strip()
        if not title:
            raise InputError("document title is required")
        if rows is None or isinstance(rows, (str, bytes, dict)):
            raise InputError("rows must be a list of Row")
        rows = tuple(rows)
        for i, r in enumerate(rows):
            if not isinstance(r, Row):
                raise InputError(f"rows[{i}] is not a Row: {r!r}")
        metas = tuple(meta_fields or ())
        for i, m in enumerate(metas):
            if not isinstance(m, MetaField):
                raise InputError(f"meta_fields[{i}] is not a MetaField: {m!r}")
        titles = tuple(signature_titles or ())
        if len(titles) != 2:
            raise InputError("signature_titles must name exactly two boxes")

        self.title = title
        self.subtitle = _opt_text(subtitle)
        self.rows = rows
        self.meta_fields = metas
        self.group_by_category = _flag(group_by_category, "group_by_category")
        self.show_category_header_bar = _flag(show_category_header_bar,
                                              "show_category_header_bar")
        self.reference = _opt_text(reference)
        self.color_key = _opt_text(color_key) or title
        self.confirmation_title = str(confirmation_title or "")
        self.signature_titles = tuple(str(t) for t in titles)
        self.currency_symbol = str(currency_symbol or "")

    @classmethod
    def from_dict(cls, d):
        """Build from the camelCase wire shape (snake_case keys also accepted)."""
        if not isinstance(d, dict):
            raise InputError(f"request must be a mapping, got {type(d).__name__}")
        raw_rows = d.get("rows")
        if not isinstance(raw_rows, list):
            raise InputError("rows must be a list")
        raw_meta = d.get("metaFields", d.get("meta_fields", []))
        if not isinstance(raw_meta, list):
            raise InputError("metaFields must be a list")

        def pick(camel, snake, default):
            if camel in d:
                return d[camel]
            return d.get(snake, default)

        kwargs = {}
        if pick("signatureTitles", "signature_titles", None) is not None:
            kwargs["signature_titles"] = pick("signatureTitles", "signature_titles", None)
        if pick("confirmationTitle", "confirmation_title", None) is not None:
            kwargs["confirmation_title"] = pick("confirmationTitle", "confirmation_title", None)
        if pick("currencySymbol", "currency_symbol", None) is not None:
            kwargs["currency_symbol"] = pick("currencySymbol", "currency_symbol", None)

        return cls(
            title=d.get("title"),
            subtitle=d.get("subtitle"),
            meta_fields=[MetaField.from_dict(m) for m in raw_meta],
            rows=[Row.from_dict(r) for r in raw_rows],
            group_by_category=pick("groupByCategory", "group_by_category", True),
            show_category_header_bar=pick("showCategoryHeaderBar",
                                          "show_category_header_bar", True),
            reference=d.get("reference"),
            color_key=pick("colorKey", "color_key", None),
            **kwargs,
        )

    @property
    def total_quantity(self):
        return round(sum(r.quantity for r in self.rows), 2)

    @property
    def grand_total(self):
        return round(sum(r.line_total for r in self.rows), 2)
