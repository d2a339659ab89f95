"""
Row grouping and deterministic color tags.

A label always maps to the same palette entry: the index is a pure
function of the label text, so colors are stable across groups, documents
and processes. Different labels may share an entry once there are more
groups than palette slots.
"""
from collections import namedtuple

from reportlab.lib.colors import HexColor

UNCATEGORIZED = "Uncategorized"

PaletteEntry = namedtuple("PaletteEntry", "name bg border text pill")

def _entry(name, bg, border, text, pill):
    return PaletteEntry(name, HexColor(bg), HexColor(border), HexColor(text), HexColor(pill))

PALETTE = (
    _entry("pink",   "#FDF2F8", "#FBCFE8", "#9D174D", "#FCE7F3"),
    _entry("green",  "#ECFDF5", "#A7F3D0", "#065F46", "#D1FAE5"),
    _entry("blue",   "#EFF6FF", "#BFDBFE", "#1E40AF", "#DBEAFE"),
    _entry("yellow", "#FEFCE8", "#FDE68A", "#92400E", "#FEF3C7"),
    _entry("purple", "#F5F3FF", "#DDD6FE", "#5B21B6", "#EDE9FE"),
    _entry("orange", "#FFF7ED", "#FED7AA", "#9A3412", "#FFEDD5"),
    _entry("teal",   "#F0FDFA", "#99F6E4", "#115E59", "#CCFBF1"),
)


# ── hashing ────────────────────────────────────────────────────────────────────
def _utf16_units(s):
    raw = s.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(raw), 2):
        yield raw[i] | (raw[i + 1] << 8)

def hash_label(label):
    """32-bit signed multiply-add hash (h*31 + unit) over UTF-16 code units."""
    h = 0
    for unit in _utf16_units(str(label or "")):
        h = (h * 31 + unit) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h

def palette_index(label, size=len(PALETTE)):
    return abs(hash_label(label)) % size

def color_for(label):
    return PALETTE[palette_index(label)]


class ColorCache:
    """Per-render memo of ``color_for``; holds no state across renders."""

    def __init__(self):
        self._colors = {}

    def __call__(self, label):
        c = self._colors.get(label)
        if c is None:
            c = self._colors[label] = color_for(label)
        return c

    def __len__(self):
        return len(self._colors)


# ── grouping ───────────────────────────────────────────────────────────────────
class Group:
    def __init__(self, label, rows, colors):
        self.label = label
        self.rows = rows
        self.colors = colors

    def __repr__(self):
        return f"Group({self.label!r}, {len(self.rows)} rows, {self.colors.name})"

def _by_name(rows):
    return sorted(rows, key=lambda r: (r.name.casefold(), r.name))

def group_rows(rows, colors=color_for):
    """Partition rows by trimmed category; ``Uncategorized`` always last."""
    buckets = {}
    for r in rows:
        label = (r.category or "").strip() or UNCATEGORIZED
        buckets.setdefault(label, []).append(r)
    named = sorted((k for k in buckets if k != UNCATEGORIZED),
                   key=lambda k: (k.casefold(), k))
    if UNCATEGORIZED in buckets:
        named.append(UNCATEGORIZED)
    return [Group(k, _by_name(buckets[k]), colors(k)) for k in named]

def single_group(label, rows, colors=color_for):
    return [Group(label, _by_name(rows), colors(label))]


# ── status pills ───────────────────────────────────────────────────────────────
# Notion select colors -> (pill background, text)
STATUS_COLORS = {
    "default": ("#F3F4F6", "#374151"),
    "gray":    ("#F3F4F6", "#374151"),
    "brown":   ("#F5EBE0", "#7C4A2D"),
    "orange":  ("#FFEDD5", "#9A3412"),
    "yellow":  ("#FEF3C7", "#92400E"),
    "green":   ("#D1FAE5", "#065F46"),
    "blue":    ("#DBEAFE", "#1E40AF"),
    "purple":  ("#EDE9FE", "#5B21B6"),
    "pink":    ("#FCE7F3", "#9D174D"),
    "red":     ("#FEE2E2", "#991B1B"),
}

def status_colors(hint):
    h = str(hint or "").strip().lower()
    if h.endswith("_background"):
        h = h[:-len("_background")]
    if h.startswith("#") and len(h) == 7:
        try:
            return HexColor("#F3F4F6"), HexColor(h)
        except ValueError:
            pass
    bg, fg = STATUS_COLORS.get(h, STATUS_COLORS["default"])
    return HexColor(bg), HexColor(fg)
