"""
Flow layout: measure each block, break the page when it does not fit,
redraw the running group header on the new page, then draw the block.
"""
import logging

from reportlab.lib.colors import HexColor
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth

from chrome import COLOR_BORDER, COLOR_MUTED, COLOR_TEXT, FONT, FONT_BOLD, fit_text
from formatting import fmt_currency, fmt_quantity, normalize_url
from tagging import ColorCache, group_rows, single_group, status_colors

log = logging.getLogger(__name__)

COLOR_ZEBRA = HexColor("#FAFAFA")

ROW_FONT_SIZE = 10
ROW_LEADING = 12
MIN_ROW_H = 20
ROW_PAD = 8
ROW_BREAK_SLACK = 6
CELL_PAD_X = 8
GRID_LINE_W = 0.6

HEADER_ROW_H = 26
TAG_BAR_H = 28
TAG_BAR_GAP = 8
TAG_PILL_H = 18
TAG_LABEL_W = 80
GROUP_HEADER_SLACK = 6
GROUP_GAP = 14

STATUS_FONT_SIZE = 8
STATUS_PILL_H = 15

META_ROW_H = 30
META_GAP = 18

SUMMARY_W = 220
SUMMARY_LINE_H = 20
SUMMARY_GAP = 10

# key, label, share of the table width, alignment
COLUMNS = (
    ("name",   "Item",   0.44, "left"),
    ("status", "Status", 0.18, "left"),
    ("qty",    "Qty",    0.10, "right"),
    ("unit",   "Unit",   0.14, "right"),
    ("total",  "Total",  0.14, "right"),
)


class Column:
    def __init__(self, key, label, x, w, align):
        self.key = key
        self.label = label
        self.x = x
        self.w = w
        self.align = align

    @property
    def inner_w(self):
        return self.w - 2 * CELL_PAD_X

    def __repr__(self):
        return f"Column({self.key!r}, x={self.x:.1f}, w={self.w:.1f})"

def layout_columns(x, width, columns=COLUMNS):
    """Fixed columns; the last one takes the rounding remainder."""
    cols = []
    acc, used = x, 0.0
    for i, (key, label, share, align) in enumerate(columns):
        w = width - used if i == len(columns) - 1 else round(width * share)
        cols.append(Column(key, label, acc, w, align))
        acc += w
        used += w
    return cols


# ── measurement ────────────────────────────────────────────────────────────────
def _break_chars(line, width, font, size):
    out, cur = [], ""
    for ch in line:
        if cur and stringWidth(cur + ch, font, size) > width:
            out.append(cur)
            cur = ch
        else:
            cur += ch
    out.append(cur)
    return out

def wrap_text(text, width, font=FONT, size=ROW_FONT_SIZE):
    """Word-wrap to ``width``; words wider than a line are split by character."""
    width = max(width, 1.0)
    lines = []
    for line in simpleSplit(str(text), font, size, width) or [""]:
        if stringWidth(line, font, size) <= width:
            lines.append(line)
        else:
            lines.extend(_break_chars(line, width, font, size))
    return lines

def row_height(lines):
    return max(len(lines) * ROW_LEADING, MIN_ROW_H) + ROW_PAD

def meta_grid_height(count):
    return META_ROW_H * ((count + 1) // 2)

def summary_height():
    return SUMMARY_LINE_H * 3 + 14


# ── layout engine ──────────────────────────────────────────────────────────────
class LayoutEngine:
    """Lays one request out over the pages of a ``PageModel``."""

    def __init__(self, model, request):
        self.model = model
        self.cv = model.canvas
        self.request = request
        m = model.metrics()
        self.table_x = m.margin_left
        self.table_w = m.content_width
        self.columns = layout_columns(self.table_x, self.table_w)
        self._col = {c.key: c for c in self.columns}
        self.colors = ColorCache()
        self.rows_drawn = 0
        self.page_breaks = 0

    @property
    def page(self):
        return self.model.page

    def new_page(self):
        self.page_breaks += 1
        return self.model.new_page(compact=True)

    def ensure_space(self, needed, on_new_page=None):
        """Break the page unless ``needed`` fits above the footer.

        A page whose body is still empty is never broken; whatever does not
        fit there is drawn anyway and runs into the footer band.
        Group headers do not count as body content.
        """
        page = self.page
        if page.fits(needed):
            return False
        if page.body_empty:
            log.debug("block of %.1fpt overflows page %d", needed, page.number)
            return False
        self.new_page()
        if on_new_page is not None:
            on_new_page()
        return True

    def _advance(self, h, content=True):
        page = self.page
        page.y += h
        if content:
            page.body_empty = False

    def _line(self, x1, x2, y):
        p = self.page
        self.cv.line(x1, p.rl_y(y), x2, p.rl_y(y))

    def _vline(self, x, y1, y2):
        p = self.page
        self.cv.line(x, p.rl_y(y1), x, p.rl_y(y2))

    # ── groups ─────────────────────────────────────────────────────────────────
    def groups(self):
        rq = self.request
        if rq.group_by_category:
            return group_rows(rq.rows, colors=self.colors)
        return single_group(rq.color_key, rq.rows, colors=self.colors)

    def group_header_height(self):
        bar = TAG_BAR_H + TAG_BAR_GAP if self.request.show_category_header_bar else 0
        return bar + HEADER_ROW_H

    def draw_tag_bar(self, group):
        c, p, tc = self.cv, self.page, group.colors
        x, y, w = self.table_x, p.y, self.table_w
        c.saveState()
        c.setFillColor(tc.bg)
        c.setStrokeColor(tc.border)
        c.setLineWidth(1)
        c.roundRect(x, p.rl_y(y + TAG_BAR_H), w, TAG_BAR_H, 10, stroke=1, fill=1)

        label = "Category" if self.request.group_by_category else "Group"
        c.setFillColor(COLOR_MUTED)
        c.setFont(FONT_BOLD, 10)
        c.drawString(x + 12, p.rl_y(y + 18), label)

        count = f"{len(group.rows)} items"
        count_w = c.stringWidth(count, FONT_BOLD, 10)
        pill_x = x + TAG_LABEL_W
        max_pill = min(360, w - TAG_LABEL_W - count_w - 24)
        text = fit_text(c, group.label, FONT_BOLD, 10, max_pill - 24)
        pill_w = min(max_pill, c.stringWidth(text, FONT_BOLD, 10) + 24)
        c.setFillColor(tc.pill)
        c.roundRect(pill_x, p.rl_y(y + 5 + TAG_PILL_H), pill_w, TAG_PILL_H, 9, stroke=1, fill=1)
        c.setFillColor(tc.text)
        c.drawString(pill_x + 12, p.rl_y(y + 18), text)

        c.setFillColor(COLOR_TEXT)
        c.drawRightString(x + w - 12, p.rl_y(y + 18), count)
        c.restoreState()
        self._advance(TAG_BAR_H + TAG_BAR_GAP, content=False)

    def draw_column_header(self, group):
        c, p, tc = self.cv, self.page, group.colors
        x, y, w = self.table_x, p.y, self.table_w
        c.saveState()
        c.setFillColor(tc.bg)
        c.setStrokeColor(tc.border)
        c.setLineWidth(1)
        c.rect(x, p.rl_y(y + HEADER_ROW_H), w, HEADER_ROW_H, stroke=1, fill=1)
        c.setFillColor(tc.text)
        c.setFont(FONT_BOLD, 10)
        base = p.rl_y(y + 17)
        for col in self.columns:
            if col.align == "right":
                c.drawRightString(col.x + col.w - CELL_PAD_X, base, col.label)
            else:
                c.drawString(col.x + CELL_PAD_X, base, col.label)
        c.restoreState()
        self._advance(HEADER_ROW_H, content=False)

    def draw_group(self, group):
        first = self.measure_row(group.rows[0])[1] + ROW_BREAK_SLACK if group.rows else 0
        self.ensure_space(self.group_header_height() + GROUP_HEADER_SLACK + first)

        def draw_group_header():
            if self.request.show_category_header_bar:
                self.draw_tag_bar(group)
            self.draw_column_header(group)

        draw_group_header()
        for idx, row in enumerate(group.rows):
            self.draw_row(row, idx, on_new_page=draw_group_header)
        self.page.y += GROUP_GAP

    # ── rows ───────────────────────────────────────────────────────────────────
    def measure_row(self, row):
        lines = wrap_text(row.name, self._col["name"].inner_w)
        return lines, row_height(lines)

    def row_cells(self, row):
        sym = self.request.currency_symbol
        return {
            "qty": fmt_quantity(row.quantity),
            "unit": fmt_currency(row.unit_amount, sym),
            "total": fmt_currency(row.line_total, sym),
        }

    def draw_row(self, row, idx, on_new_page=None):
        lines, h = self.measure_row(row)
        self.ensure_space(h + ROW_BREAK_SLACK, on_new_page)

        c, p = self.cv, self.page
        x, y, w = self.table_x, p.y, self.table_w
        c.saveState()
        if idx % 2 == 0:
            c.setFillColor(COLOR_ZEBRA)
            c.rect(x, p.rl_y(y + h), w, h, stroke=0, fill=1)

        c.setStrokeColor(COLOR_BORDER)
        c.setLineWidth(GRID_LINE_W)
        self._vline(x, y, y + h)
        self._vline(x + w, y, y + h)
        for col in self.columns[1:]:
            self._vline(col.x, y, y + h)
        self._line(x, x + w, y + h)

        top = y + (h - len(lines) * ROW_LEADING) / 2.0
        first_base = top + ROW_LEADING - 2.5

        name_col = self._col["name"]
        c.setFillColor(COLOR_TEXT)
        c.setFont(FONT, ROW_FONT_SIZE)
        for i, line in enumerate(lines):
            c.drawString(name_col.x + CELL_PAD_X, p.rl_y(first_base + i * ROW_LEADING), line)
        url = normalize_url(row.link)
        if url:
            c.linkURL(url, (name_col.x, p.rl_y(y + h), name_col.x + name_col.w, p.rl_y(y)),
                      relative=0, thickness=0)

        if row.status_label:
            self.draw_status_pill(row, y, h)

        c.setFillColor(COLOR_TEXT)
        c.setFont(FONT, ROW_FONT_SIZE)
        base = p.rl_y(first_base)
        for key, txt in self.row_cells(row).items():
            col = self._col[key]
            c.drawRightString(col.x + col.w - CELL_PAD_X, base,
                              fit_text(c, txt, FONT, ROW_FONT_SIZE, col.inner_w))
        c.restoreState()

        self._advance(h)
        self.rows_drawn += 1

    def draw_status_pill(self, row, y, h):
        c, p = self.cv, self.page
        col = self._col["status"]
        bg, fg = status_colors(row.status_color_hint)
        text = fit_text(c, row.status_label, FONT_BOLD, STATUS_FONT_SIZE, col.inner_w - 12)
        pill_w = c.stringWidth(text, FONT_BOLD, STATUS_FONT_SIZE) + 12
        top = y + (h - STATUS_PILL_H) / 2.0
        c.setFillColor(bg)
        c.roundRect(col.x + CELL_PAD_X, p.rl_y(top + STATUS_PILL_H), pill_w, STATUS_PILL_H,
                    STATUS_PILL_H / 2.0, stroke=0, fill=1)
        c.setFillColor(fg)
        c.setFont(FONT_BOLD, STATUS_FONT_SIZE)
        c.drawString(col.x + CELL_PAD_X + 6, p.rl_y(top + 10.5), text)

    def draw_empty(self):
        self.ensure_space(MIN_ROW_H)
        p = self.page
        self.cv.saveState()
        self.cv.setFillColor(COLOR_MUTED)
        self.cv.setFont(FONT, ROW_FONT_SIZE)
        self.cv.drawString(self.table_x, p.rl_y(p.y + 13), "No items")
        self.cv.restoreState()
        self._advance(MIN_ROW_H + GROUP_GAP)

    # ── meta grid ──────────────────────────────────────────────────────────────
    def draw_meta_grid(self):
        fields = self.request.meta_fields
        if not fields:
            return
        h = meta_grid_height(len(fields))
        self.ensure_space(h + META_GAP)
        c, p = self.cv, self.page
        x, y, w = self.table_x, p.y, self.table_w
        col_w = w / 2.0

        c.saveState()
        c.setStrokeColor(COLOR_BORDER)
        c.setLineWidth(1)
        c.roundRect(x, p.rl_y(y + h), w, h, 8, stroke=1, fill=0)
        self._vline(x + col_w, y, y + h)
        for r in range(1, (len(fields) + 1) // 2):
            self._line(x, x + w, y + r * META_ROW_H)

        for i, f in enumerate(fields):
            cx = x + (i % 2) * col_w + 10
            cy = y + (i // 2) * META_ROW_H
            c.setFillColor(COLOR_MUTED)
            c.setFont(FONT, 9)
            c.drawString(cx, p.rl_y(cy + 13), fit_text(c, f.label, FONT, 9, col_w - 20))
            c.setFillColor(COLOR_TEXT)
            c.setFont(FONT_BOLD, 11)
            c.drawString(cx, p.rl_y(cy + 26), fit_text(c, f.value, FONT_BOLD, 11, col_w - 20))
        c.restoreState()
        self._advance(h + META_GAP)

    # ── summary ────────────────────────────────────────────────────────────────
    def draw_summary(self):
        h = summary_height()
        self.ensure_space(h + SUMMARY_GAP)
        self.page.y += SUMMARY_GAP
        c, p = self.cv, self.page
        rq = self.request
        x = self.table_x + self.table_w - SUMMARY_W
        y = p.y

        c.saveState()
        c.setStrokeColor(COLOR_BORDER)
        c.setLineWidth(1)
        c.roundRect(x, p.rl_y(y + h), SUMMARY_W, h, 10, stroke=1, fill=0)
        lines = (
            ("Entries", str(len(rq.rows))),
            ("Total quantity", fmt_quantity(rq.total_quantity)),
            ("Grand total", fmt_currency(rq.grand_total, rq.currency_symbol)),
        )
        for i, (label, value) in enumerate(lines):
            base = p.rl_y(y + 7 + SUMMARY_LINE_H * i + 11)
            c.setFillColor(COLOR_MUTED)
            c.setFont(FONT, 9)
            c.drawString(x + 12, base, label)
            c.setFillColor(COLOR_TEXT)
            c.setFont(FONT_BOLD, 11)
            c.drawRightString(x + SUMMARY_W - 12, base, value)
        c.restoreState()
        self._advance(h)

    # ── whole document ─────────────────────────────────────────────────────────
    def layout(self):
        """Pass 1: lay every block out over buffered pages."""
        if self.page is None:
            self.model.new_page(compact=False)
        self.draw_meta_grid()
        if not self.request.rows:
            self.draw_empty()
        else:
            for group in self.groups():
                self.draw_group(group)
        self.draw_summary()
        log.debug("laid out %d row(s) over %d page(s)", self.rows_drawn, len(self.model.pages))
        return self.model.pages
