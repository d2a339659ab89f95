"""
Page chrome: the header and the signature footer drawn on every page.

Both draw purely from the page metrics and the request, so every page
gets the same chrome wherever the page break was triggered from.
"""
import logging
import os

from reportlab.lib.colors import HexColor
from reportlab.lib.utils import ImageReader

from page_model import (FOOTER_BOTTOM_GAP, FOOTER_BOX_H, FOOTER_TITLE_GAP,
                        FOOTER_TITLE_LINE_H)

try:
    from PIL import Image as PILImage
    _PIL_OK = True
except ImportError:
    _PIL_OK = False

log = logging.getLogger(__name__)

COLOR_TEXT = HexColor("#111827")
COLOR_MUTED = HexColor("#6B7280")
COLOR_BORDER = HexColor("#E5E7EB")

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

# full header on the first page, compact on continuation pages
HEADER = {
    False: {"title": 20, "subtitle": 10, "mark_w": 170, "mark_h": 48, "gap": 6},
    True:  {"title": 16, "subtitle": 9,  "mark_w": 140, "mark_h": 36, "gap": 2},
}
HEADER_PAD = 8
HEADER_TO_BODY = 14
MARK_TO_TEXT = 10

SIGNATURE_GAP = 16
SIGNATURE_RADIUS = 10


# ── brand mark ─────────────────────────────────────────────────────────────────
class BrandMark:
    def __init__(self, reader, width_px, height_px):
        self.reader = reader
        self.width_px = width_px
        self.height_px = height_px

    def size_for(self, max_w, max_h):
        if self.width_px <= 0 or self.height_px <= 0:
            return 0.0, 0.0
        scale = min(max_w / self.width_px, max_h / self.height_px)
        return self.width_px * scale, self.height_px * scale

    @classmethod
    def load(cls, path):
        """Open ``path`` with Pillow; ``None`` if it is missing or unreadable."""
        if not path:
            return None
        if not _PIL_OK:
            log.warning("Pillow is not installed; brand mark %s skipped", path)
            return None
        if not os.path.exists(path):
            log.warning("brand mark not found: %s", path)
            return None
        try:
            with PILImage.open(path) as img:
                img.load()
                if img.mode not in ("RGB", "RGBA", "L"):
                    img = img.convert("RGBA")
                else:
                    img = img.copy()
        except (OSError, ValueError) as ex:
            log.warning("brand mark %s could not be read: %s", path, ex)
            return None
        w, h = img.size
        return cls(ImageReader(img), w, h)


# ── text helpers ───────────────────────────────────────────────────────────────
def fit_text(canv, txt, fname, size, max_w):
    s = str(txt)
    if canv.stringWidth(s, fname, size) <= max_w:
        return s
    while len(s) > 1 and canv.stringWidth(s + "...", fname, size) > max_w:
        s = s[:-1]
    return s.rstrip() + "..."


# ── header ─────────────────────────────────────────────────────────────────────
def draw_header(canv, page, request, compact=False, brand_mark=None):
    """Brand mark top-right, title and subtitle top-left, divider underneath.

    Leaves ``page.y`` just under the divider.
    """
    m = page.metrics
    hdr = HEADER[bool(compact)]
    top = m.margin_top

    mark_w = mark_h = 0.0
    if brand_mark is not None:
        mark_w, mark_h = brand_mark.size_for(hdr["mark_w"], hdr["mark_h"])
        try:
            canv.drawImage(brand_mark.reader, m.page_width - m.margin_right - mark_w,
                           page.rl_y(top + mark_h), width=mark_w, height=mark_h,
                           mask="auto")
        except Exception as ex:
            log.warning("brand mark could not be drawn: %s", ex)
            mark_w = mark_h = 0.0

    text_w = m.content_width - (mark_w + MARK_TO_TEXT if mark_w else 0)
    title_y = top + hdr["gap"]
    text_h = hdr["title"] * 1.2

    canv.saveState()
    canv.setFillColor(COLOR_TEXT)
    canv.setFont(FONT_BOLD, hdr["title"])
    canv.drawString(m.margin_left, page.rl_y(title_y + hdr["title"]),
                    fit_text(canv, request.title, FONT_BOLD, hdr["title"], text_w))
    if request.subtitle:
        sub_y = title_y + text_h + 4
        canv.setFillColor(COLOR_MUTED)
        canv.setFont(FONT, hdr["subtitle"])
        canv.drawString(m.margin_left, page.rl_y(sub_y + hdr["subtitle"]),
                        fit_text(canv, request.subtitle, FONT, hdr["subtitle"], text_w))
        text_h += 4 + hdr["subtitle"] * 1.2

    line_y = top + max(mark_h, hdr["gap"] + text_h) + HEADER_PAD
    canv.setStrokeColor(COLOR_BORDER)
    canv.setLineWidth(1)
    canv.line(m.margin_left, page.rl_y(line_y), m.page_width - m.margin_right, page.rl_y(line_y))
    canv.restoreState()

    page.y = line_y + HEADER_TO_BODY
    return page.y


# ── footer ─────────────────────────────────────────────────────────────────────
def footer_top(metrics):
    return signature_boxes_top(metrics) - (FOOTER_TITLE_LINE_H + FOOTER_TITLE_GAP)

def signature_boxes_top(metrics):
    return metrics.bottom_y - FOOTER_BOTTOM_GAP - FOOTER_BOX_H

def _rule(canv, page, x1, x2, y):
    canv.line(x1, page.rl_y(y), x2, page.rl_y(y))

def draw_signature_box(canv, page, title, x, y, w, h):
    canv.setStrokeColor(COLOR_BORDER)
    canv.setLineWidth(1)
    canv.roundRect(x, page.rl_y(y + h), w, h, SIGNATURE_RADIUS, stroke=1, fill=0)

    canv.setFillColor(COLOR_TEXT)
    canv.setFont(FONT_BOLD, 10)
    canv.drawString(x + 12, page.rl_y(y + 20), fit_text(canv, title, FONT_BOLD, 10, w - 24))

    x0, x1 = x + 12, x + w - 12
    canv.setFillColor(COLOR_MUTED)
    canv.setFont(FONT, 9)
    canv.drawString(x0, page.rl_y(y + 43), "Name")
    _rule(canv, page, x0 + 40, x1, y + 45)
    canv.drawString(x0, page.rl_y(y + 67), "Signature")
    _rule(canv, page, x0 + 55, x1, y + 69)

    # Date  ____ / ____ / ____
    canv.drawString(x0, page.rl_y(y + 91), "Date")
    seg = (x1 - (x0 + 30) - 32) / 3.0
    sx = x0 + 30
    for i in range(3):
        _rule(canv, page, sx, sx + seg, y + 93)
        sx += seg
        if i < 2:
            canv.drawCentredString(sx + 8, page.rl_y(y + 92), "/")
            sx += 16

def draw_footer(canv, page, request):
    """Confirmation title and two signature boxes, pinned to the page bottom.

    Position depends only on the page metrics, never on the cursor.
    """
    m = page.metrics
    boxes_y = signature_boxes_top(m)
    title_y = footer_top(m)
    box_w = (m.content_width - SIGNATURE_GAP) / 2.0

    canv.saveState()
    if request.confirmation_title:
        canv.setFillColor(COLOR_TEXT)
        canv.setFont(FONT_BOLD, 12)
        canv.drawString(m.margin_left, page.rl_y(title_y + 12), request.confirmation_title)
    left, right = request.signature_titles
    draw_signature_box(canv, page, left, m.margin_left, boxes_y, box_w, FOOTER_BOX_H)
    draw_signature_box(canv, page, right, m.margin_left + box_w + SIGNATURE_GAP,
                       boxes_y, box_w, FOOTER_BOX_H)
    canv.restoreState()


# ── decoration callback ────────────────────────────────────────────────────────
def make_chrome(request, brand_mark=None):
    def draw_chrome(canv, page):
        draw_header(canv, page, request, compact=page.compact, brand_mark=brand_mark)
        draw_footer(canv, page, request)
    return draw_chrome
