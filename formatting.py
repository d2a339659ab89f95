"""
Value formatting shared by the renderer: units, money, quantities, dates,
links and filenames.
"""
import re
from datetime import datetime


# ── units ─────────────────────────────────────────────────────────────────────
_U = re.compile(r'^([\-\d.]+)(mm|in|pt|cm)?$')
def to_pt(s):
    if not s: return 0.0
    m = _U.match(str(s).strip())
    if not m: return 0.0
    n, u = float(m.group(1)), m.group(2) or 'pt'
    return n * {'mm':2.8346,'cm':28.346,'in':72.0,'pt':1.0}[u]


# ── number formatting ──────────────────────────────────────────────────────────
DEFAULT_CURRENCY = "£"

def fmt_currency(value, symbol=DEFAULT_CURRENCY):
    try:
        f = float(value)
    except (ValueError, TypeError):
        return str(value)
    sign = "-" if f < 0 else ""
    return f"{sign}{symbol}{abs(f):,.2f}"

def fmt_quantity(value):
    try:
        return f"{float(value):,.2f}"
    except (ValueError, TypeError):
        return str(value)


# ── dates ──────────────────────────────────────────────────────────────────────
# Month names are fixed so output does not depend on the process locale.
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_TIMESTAMP = re.compile(
    r'^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:\d{2})?$')

def looks_like_timestamp(s):
    """ISO 8601 date and time; bare dates do not count."""
    return bool(_TIMESTAMP.match(s.strip()))

def fmt_datetime(value):
    """Format as ``DD Mon YYYY, HH:MM``; strings are parsed as ISO 8601."""
    if value is None or value == "":
        return "-"
    d = value
    if not isinstance(d, datetime):
        try:
            d = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return str(value)
    return f"{d.day:02d} {MONTHS[d.month - 1]} {d.year:04d}, {d.hour:02d}:{d.minute:02d}"


# ── links / filenames ──────────────────────────────────────────────────────────
_HTTP = re.compile(r'^https?://', re.IGNORECASE)

def normalize_url(url):
    s = str(url or "").strip()
    if not s:
        return None
    if _HTTP.match(s):
        return s
    if s.startswith("www."):
        return f"https://{s}"
    # anything else would become a broken link
    return None

_UNSAFE = re.compile(r'[\\/:*?"<>|]')
_SPACES = re.compile(r'\s+')

def safe_name(text, limit=60):
    s = _UNSAFE.sub("-", str(text or "").strip())
    return _SPACES.sub("_", s)[:limit]

def slug(text):
    return safe_name(text).lower() or "document"

def suggest_filename(title, reference=None):
    base = slug(title)
    ref = safe_name(reference) if reference else ""
    return f"{base}_{ref}.pdf" if ref else f"{base}.pdf"
