"""
Paginated document renderer
---------------------------
Usage:  python render_document.py <request.json|request.xml> [output.pdf]
"""
import logging
import os
import sys

from chrome import BrandMark, make_chrome
from document_request import DocumentError, DocumentRequest, InputError
from flow_layout import LayoutEngine
from formatting import suggest_filename
from page_model import PageGeometry, PageModel
from page_numbers import DEFAULT_TEMPLATE, number_pages
from pdf_inspect import check_numbering
from request_io import load_request

log = logging.getLogger(__name__)

BRAND_MARK_ENV = "DOCUMENT_BRAND_MARK"


def default_brand_mark():
    return os.environ.get(BRAND_MARK_ENV) or None


class RenderedDocument:
    def __init__(self, data, filename, page_count, rows_drawn):
        self.data = data
        self.filename = filename
        self.page_count = page_count
        self.rows_drawn = rows_drawn

    def write(self, path):
        with open(path, "wb") as fh:
            fh.write(self.data)
        return path

    def __repr__(self):
        return f"RenderedDocument({self.filename!r}, {self.page_count} page(s), {len(self.data)} bytes)"


def render(request, geometry=None, brand_mark_path=None, template=DEFAULT_TEMPLATE):
    """Lay ``request`` out, number the pages and return the finished PDF.

    Input errors are raised before anything is drawn. Any error during
    layout aborts the render; no partial document is returned.
    """
    if not isinstance(request, DocumentRequest):
        raise InputError(f"expected a DocumentRequest, got {type(request).__name__}")
    if brand_mark_path is None:
        brand_mark_path = default_brand_mark()
    mark = BrandMark.load(brand_mark_path)

    model = PageModel(
        geometry=geometry or PageGeometry(),
        chrome=make_chrome(request, brand_mark=mark),
        numbering=lambda canv, pages: number_pages(canv, pages, template),
        title=request.title,
    )
    engine = LayoutEngine(model, request)
    engine.layout()
    data = model.close()
    doc = RenderedDocument(data, suggest_filename(request.title, request.reference),
                           len(model.pages), engine.rows_drawn)
    log.info("rendered %s: %d row(s), %d page(s)", doc.filename, doc.rows_drawn, doc.page_count)
    return doc


# ── command line ───────────────────────────────────────────────────────────────
def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(__doc__)
        return 1
    inp = argv[0]
    if not os.path.exists(inp):
        print(f"Not found: {inp}")
        return 1

    print(f"\n{'='*60}\n  Document Renderer\n  In : {inp}\n{'='*60}\n")

    print("[1/3] Loading request...")
    try:
        request = load_request(inp)
    except DocumentError as ex:
        print(f"      rejected: {ex}")
        return 2
    print(f"      {len(request.rows)} rows, {len(request.meta_fields)} meta fields")

    print("[2/3] Rendering...")
    doc = render(request)
    out = (argv[1] if len(argv) >= 2
           else os.path.join(os.path.dirname(os.path.abspath(inp)), doc.filename))
    doc.write(out)
    print(f"      {doc.rows_drawn} rows over {doc.page_count} page(s)")

    print("[3/3] Checking page markers...")
    problems = check_numbering(doc.data)
    for p in problems:
        print(f"      [warn] {p}")

    print(f"\n  Done -> {out}  ({doc.page_count} page(s))\n")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(main())
