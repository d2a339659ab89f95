"""
Page geometry, the per-page layout cursor and the buffered canvas.

Layout code measures y top-down from the page top edge (like the flow
coordinates of a form template); ``Page.rl_y`` converts to reportlab's
bottom-up coordinates at draw time.
"""
import io
import logging
from collections import namedtuple

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from formatting import to_pt

log = logging.getLogger(__name__)


# ── geometry ───────────────────────────────────────────────────────────────────
MARGIN = to_pt("36pt")

# Footer chrome (confirmation title + signature boxes), top to bottom
FOOTER_TITLE_LINE_H = 16
FOOTER_TITLE_GAP = 10
FOOTER_BOX_H = 120
FOOTER_BOTTOM_GAP = 14      # leaves room for the page marker under the boxes
FOOTER_RESERVED = (FOOTER_TITLE_LINE_H + FOOTER_TITLE_GAP + FOOTER_BOX_H
                   + FOOTER_BOTTOM_GAP + 6)

PageMetrics = namedtuple("PageMetrics", [
    "page_width", "page_height",
    "margin_left", "margin_right", "margin_top", "margin_bottom",
    "content_width", "bottom_y", "effective_bottom_y",
])


class PageGeometry:
    def __init__(self, pagesize=A4, margin_left=MARGIN, margin_right=MARGIN,
                 margin_top=MARGIN, margin_bottom=MARGIN,
                 footer_reserved=FOOTER_RESERVED):
        self.pagesize = (float(pagesize[0]), float(pagesize[1]))
        self.margin_left = float(margin_left)
        self.margin_right = float(margin_right)
        self.margin_top = float(margin_top)
        self.margin_bottom = float(margin_bottom)
        self.footer_reserved = float(footer_reserved)

    def metrics(self):
        w, h = self.pagesize
        bottom = h - self.margin_bottom
        return PageMetrics(
            page_width=w, page_height=h,
            margin_left=self.margin_left, margin_right=self.margin_right,
            margin_top=self.margin_top, margin_bottom=self.margin_bottom,
            content_width=w - self.margin_left - self.margin_right,
            bottom_y=bottom,
            effective_bottom_y=bottom - self.footer_reserved,
        )


class Page:
    """One buffered page: its geometry plus the layout cursor."""

    def __init__(self, index, metrics, compact=False):
        self.index = index
        self.metrics = metrics
        self.compact = compact
        self.y = metrics.margin_top
        self.body_empty = True

    @property
    def number(self):
        return self.index + 1

    def rl_y(self, y):
        return self.metrics.page_height - y

    def remaining(self):
        return self.metrics.effective_bottom_y - self.y

    def fits(self, needed):
        return self.y + needed <= self.metrics.effective_bottom_y

    def __repr__(self):
        return f"Page({self.number}, y={self.y:.1f})"


# ── buffered canvas ────────────────────────────────────────────────────────────
# attributes that describe the buffer itself and must survive page switches
_BOOKKEEPING = ("_buffered_pages", "_active_page", "_active_mark",
                "_numbering", "_numbered", "_finalized")


class BufferedCanvas(canvas.Canvas):
    """Canvas that keeps every finished page in memory until ``finalize``.

    ``showPage`` snapshots the page instead of writing it. ``finalize`` runs
    the numbering callback once over the buffered pages, then emits them in
    order and writes the file.
    """

    def __init__(self, *args, **kwargs):
        self._numbering = kwargs.pop("numbering", None)
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._buffered_pages = []
        self._active_page = None
        self._active_mark = 0
        self._numbered = False
        self._finalized = False

    def _snapshot(self):
        return {k: v for k, v in self.__dict__.items() if k not in _BOOKKEEPING}

    def showPage(self):
        if self._finalized:
            raise RuntimeError("canvas already finalized")
        self._buffered_pages.append(self._snapshot())
        self._startPage()

    @property
    def buffered_page_count(self):
        return len(self._buffered_pages)

    def switch_to_page(self, index):
        """Make buffered page ``index`` the active drawing context."""
        state = self._buffered_pages[index]
        self.__dict__.update(state)
        self._active_page = index
        self._active_mark = len(self._code)

    def commit_page(self, index):
        if self._active_page != index:
            raise RuntimeError(f"page {index} is not the active page")
        self._buffered_pages[index] = self._snapshot()
        self._active_page = None

    def rollback_page(self, index):
        """Drop whatever was drawn on ``index`` since it was switched to."""
        if self._active_page != index:
            return
        # the snapshot shares its operator list with the live page
        del self._code[self._active_mark:]
        self._active_page = None

    def number_pages(self):
        if self._numbered:
            return
        self._numbered = True
        if self._numbering is not None:
            self._numbering(self)

    def finalize(self):
        if self._finalized:
            return
        self.number_pages()
        log.debug("flushing %d buffered page(s)", len(self._buffered_pages))
        for state in self._buffered_pages:
            self.__dict__.update(state)
            canvas.Canvas.showPage(self)
        self._finalized = True
        canvas.Canvas.save(self)

    def save(self):
        self.finalize()


# ── page model ─────────────────────────────────────────────────────────────────
class PageModel:
    """Owns the canvas and the page list for one render.

    ``chrome(canv, page)`` is called for every new page before control goes
    back to the caller, and must leave ``page.y`` just under the header.
    ``numbering(canv, pages)`` runs once over the buffered pages on close.
    """

    def __init__(self, geometry=None, chrome=None, numbering=None, title=None):
        self.geometry = geometry or PageGeometry()
        self.chrome = chrome
        self.numbering = numbering
        self.pages = []
        self._buf = io.BytesIO()
        self.canvas = BufferedCanvas(self._buf, pagesize=self.geometry.pagesize,
                                     invariant=1, numbering=self._run_numbering)
        if title:
            self.canvas.setTitle(title)
        self._closed = False

    def metrics(self):
        return self.geometry.metrics()

    def _run_numbering(self, canv):
        if self.numbering is not None:
            self.numbering(canv, self.pages)

    @property
    def page(self):
        return self.pages[-1] if self.pages else None

    def new_page(self, compact=None):
        if self._closed:
            raise RuntimeError("document already closed")
        if self.pages:
            self.canvas.showPage()
        if compact is None:
            compact = bool(self.pages)
        page = Page(len(self.pages), self.metrics(), compact=compact)
        self.pages.append(page)
        if self.chrome is not None:
            self.chrome(self.canvas, page)
        return page

    def close(self):
        """Buffer the open page, number and flush everything; return the PDF."""
        if not self._closed:
            if not self.pages:
                self.new_page(compact=False)
            self.canvas.showPage()
            self.canvas.finalize()
            self._closed = True
        return self._buf.getvalue()
