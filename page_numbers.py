"""
Second pass over the buffered pages: stamp ``current|total`` on each one.

The total is only known once layout is done, so this runs from
``BufferedCanvas.finalize`` before anything is written out.
"""
import logging

from reportlab.lib.colors import HexColor

log = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "{page}|{total}"
NUMBER_FONT = "Helvetica"
NUMBER_SIZE = 8
NUMBER_COLOR = HexColor("#6B7280")
NUMBER_OFFSET = 2


def line_height(size=NUMBER_SIZE):
    return size * 1.2

def stamp_y(metrics, lh, offset=NUMBER_OFFSET):
    """Top of the marker line, measured from the page top.

    Never lower than ``page_height - margin_bottom - lh`` so the marker
    stays inside the printable area whatever the layout cursor did.
    """
    limit = metrics.page_height - metrics.margin_bottom - lh
    desired = limit - offset
    return min(desired, limit)

def render_marker(template, page, total):
    return template.format(page=page, total=total)

def draw_page_number(canv, page, number, total, template=DEFAULT_TEMPLATE):
    m = page.metrics
    lh = line_height()
    top = stamp_y(m, lh)
    canv.saveState()
    canv.setFont(NUMBER_FONT, NUMBER_SIZE)
    canv.setFillColor(NUMBER_COLOR)
    canv.drawRightString(m.page_width - m.margin_right,
                         page.rl_y(top + NUMBER_SIZE),
                         render_marker(template, number, total))
    canv.restoreState()

def number_pages(canv, pages, template=DEFAULT_TEMPLATE):
    """Stamp every buffered page; return how many were numbered."""
    total = canv.buffered_page_count
    if total != len(pages):
        log.warning("page list has %d entries but %d pages are buffered",
                    len(pages), total)
    done = 0
    for i in range(total):
        page = pages[i] if i < len(pages) else pages[-1]
        try:
            canv.switch_to_page(i)
            draw_page_number(canv, page, i + 1, total, template)
            canv.commit_page(i)
            done += 1
        except Exception:
            log.warning("could not number page %d of %d", i + 1, total, exc_info=True)
            canv.rollback_page(i)
    return done
