from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from PIL import Image

from chrome import BrandMark, footer_top, make_chrome, signature_boxes_top
from document_request import DocumentRequest, MetaField, Row
from flow_layout import (
    CELL_PAD_X,
    LayoutEngine,
    layout_columns,
    row_height,
)
from page_model import PageGeometry, PageModel
from page_numbers import line_height, stamp_y
from pdf_inspect import check_numbering, open_pdf, page_count, page_images, page_texts
from render_document import BRAND_MARK_ENV, render


def _render(request: DocumentRequest, **kwargs):
    with mock.patch.dict(os.environ):
        os.environ.pop(BRAND_MARK_ENV, None)
        return render(request, **kwargs)


def _lines(n: int, category: str = "") -> list[Row]:
    return [Row(f"Line {i:03d}", 1, 2.5, category=category) for i in range(n)]


def _request(rows, **kwargs) -> DocumentRequest:
    kwargs.setdefault("title", "Delivery Receipt")
    return DocumentRequest(rows=rows, **kwargs)


def _engine(request: DocumentRequest) -> LayoutEngine:
    model = PageModel(chrome=make_chrome(request), title=request.title)
    engine = LayoutEngine(model, request)
    model.new_page(compact=False)
    return engine


def _all_runs(data: bytes) -> list[str]:
    return [r for runs in page_texts(data) for r in runs]


class TestNoDataLoss(unittest.TestCase):
    def test_every_row_is_drawn_exactly_once_in_order(self) -> None:
        for n in (0, 1, 37, 500):
            with self.subTest(rows=n):
                doc = _render(_request(_lines(n)))
                drawn = [r for r in _all_runs(doc.data) if r.startswith("Line ")]
                self.assertEqual(drawn, [f"Line {i:03d}" for i in range(n)])
                self.assertEqual(doc.rows_drawn, n)
                self.assertEqual(doc.page_count, page_count(doc.data))
                self.assertEqual(check_numbering(doc.data), [])

    def test_empty_request_says_no_items(self) -> None:
        doc = _render(_request([]))
        runs = _all_runs(doc.data)
        self.assertIn("No items", runs)
        self.assertIn("Entries", runs)
        self.assertEqual(doc.page_count, 1)

    def test_long_run_spans_pages(self) -> None:
        doc = _render(_request(_lines(120)))
        self.assertGreater(doc.page_count, 3)


class TestDeterminism(unittest.TestCase):
    def test_same_request_same_bytes(self) -> None:
        def build():
            return _request(_lines(60, "Fuel") + _lines(3, "Meals"),
                            subtitle="Operations Hub",
                            meta_fields=[MetaField("Order ID", "ORD-7")])
        self.assertEqual(_render(build()).data, _render(build()).data)


class TestChrome(unittest.TestCase):
    def test_header_and_footer_on_every_page(self) -> None:
        doc = _render(_request(_lines(80), subtitle="Operations Hub"))
        texts = page_texts(doc.data)
        self.assertGreater(len(texts), 1)
        for k, runs in enumerate(texts, 1):
            with self.subTest(page=k):
                for expected in ("Delivery Receipt", "Handover confirmation",
                                 "Delivered to", "Operations"):
                    self.assertIn(expected, runs)

    def test_missing_brand_mark_is_skipped(self) -> None:
        with self.assertLogs("chrome", level="WARNING"):
            doc = render(_request(_lines(2)), brand_mark_path="/nonexistent/mark.png")
        self.assertEqual(check_numbering(doc.data), [])

    def test_brand_mark_is_scaled_and_drawn(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = str(Path(tmp) / "mark.png")
            Image.new("RGB", (400, 100), "navy").save(path)
            mark = BrandMark.load(path)
            w, h = mark.size_for(170, 48)
            self.assertAlmostEqual(w, 170.0)
            self.assertAlmostEqual(h, 42.5)
            doc = render(_request(_lines(2)), brand_mark_path=path)
        with open_pdf(doc.data) as pdf:
            self.assertEqual(len(page_images(pdf.pages[0])), 1)

    def test_footer_leaves_room_for_the_page_marker(self) -> None:
        m = PageGeometry().metrics()
        boxes_bottom = signature_boxes_top(m) + 120
        self.assertLess(boxes_bottom, stamp_y(m, line_height()))
        self.assertGreaterEqual(footer_top(m), m.effective_bottom_y)


class TestGrouping(unittest.TestCase):
    def _fuel_request(self) -> DocumentRequest:
        rows = [Row(f"Fuel receipt {i:02d}", 1, 40, category="Fuel") for i in range(40)]
        rows += [Row("Lunch", 1, 12, category="Meals"), Row("Dinner", 1, 20, category="Meals")]
        rows.append(Row("Loose part", 1, 3))
        return _request(rows, title="Expenses Report")

    def test_running_group_header_repeats_on_every_page(self) -> None:
        doc = _render(self._fuel_request())
        texts = page_texts(doc.data)
        fuel_pages = [runs for runs in texts
                      if any(r.startswith("Fuel receipt") for r in runs)]
        self.assertGreaterEqual(len(fuel_pages), 2)
        for runs in fuel_pages:
            first_row = next(i for i, r in enumerate(runs) if r.startswith("Fuel receipt"))
            self.assertIn("Fuel", runs[:first_row])
            self.assertIn("Category", runs[:first_row])
            self.assertIn("Item", runs[:first_row])
            self.assertIn("40 items", runs[:first_row])

    def test_uncategorized_comes_last(self) -> None:
        runs = _all_runs(_render(self._fuel_request()).data)
        self.assertLess(runs.index("Fuel"), runs.index("Meals"))
        self.assertLess(runs.index("Meals"), runs.index("Uncategorized"))
        self.assertLess(runs.index("Uncategorized"), runs.index("Loose part"))

    def test_group_header_is_never_left_without_a_row(self) -> None:
        rows = []
        for g in range(30):
            rows += [Row(f"Row G{g:02d} {s}", 1, 1, category=f"G{g:02d}") for s in "abc"]
        doc = _render(_request(rows))
        for k, runs in enumerate(page_texts(doc.data), 1):
            for i, r in enumerate(runs):
                if r == "Total":
                    with self.subTest(page=k, run=i):
                        self.assertTrue(runs[i + 1].startswith("Row G"))

    def test_flat_mode_uses_one_group_keyed_by_color_key(self) -> None:
        req = _request(_lines(3, "Fuel") + _lines(2, "Meals"),
                       group_by_category=False, color_key="ORD-7")
        runs = _all_runs(_render(req).data)
        self.assertIn("Group", runs)
        self.assertIn("ORD-7", runs)
        self.assertIn("5 items", runs)
        self.assertNotIn("Fuel", runs)

    def test_hidden_tag_bar_keeps_column_header(self) -> None:
        runs = _all_runs(_render(_request(_lines(3, "Fuel"),
                                          show_category_header_bar=False)).data)
        self.assertNotIn("Category", runs)
        self.assertNotIn("Fuel", runs)
        self.assertIn("Item", runs)


class TestRows(unittest.TestCase):
    def test_wrapped_row_grows_and_advances_the_cursor(self) -> None:
        name = " ".join(f"word{i:02d}" for i in range(40))
        req = _request([Row(name, 1, 1)])
        engine = _engine(req)
        lines, h = engine.measure_row(req.rows[0])
        self.assertGreaterEqual(len(lines), 4)
        self.assertEqual(" ".join(lines), name)
        self.assertEqual(h, row_height(lines))
        self.assertEqual(h, max(len(lines) * 12, 20) + 8)

        y0 = engine.page.y
        engine.draw_row(req.rows[0], 0)
        self.assertAlmostEqual(engine.page.y - y0, h)
        runs = page_texts(engine.model.close())[0]
        for line in lines:
            self.assertIn(line, runs)

    def test_unbroken_token_is_split_to_the_column_width(self) -> None:
        name = "SKU-" + "X" * 120
        req = _request([Row(name, 1, 1)])
        engine = _engine(req)
        inner_w = engine.columns[0].inner_w
        lines, h = engine.measure_row(req.rows[0])
        self.assertGreater(len(lines), 1)
        self.assertEqual("".join(lines), name)
        for line in lines:
            self.assertLessEqual(engine.cv.stringWidth(line, "Helvetica", 10), inner_w)
        self.assertEqual(h, max(len(lines) * 12, 20) + 8)

    def test_oversized_row_is_drawn_anyway(self) -> None:
        name = " ".join(f"w{i:03d}" for i in range(600))
        req = _request([Row(name, 1, 1)])
        doc = _render(req)
        self.assertEqual(doc.rows_drawn, 1)
        first_page = page_texts(doc.data)[0]
        self.assertIn(name.split()[0], first_page[first_page.index("Total") + 1])
        self.assertEqual(check_numbering(doc.data), [])

    def test_status_link_and_amounts(self) -> None:
        req = _request([Row("Taxi", 2, 12.5, link="www.example.com",
                            status_label="Paid", status_color_hint="green")],
                       currency_symbol="$")
        doc = _render(req)
        runs = _all_runs(doc.data)
        for expected in ("Taxi", "Paid", "2.00", "$12.50", "$25.00"):
            self.assertIn(expected, runs)
        with open_pdf(doc.data) as pdf:
            annots = pdf.pages[0].obj.get("/Annots", [])
            uris = [str(a.A.URI) for a in annots if "/A" in a]
        self.assertEqual(uris, ["https://www.example.com"])

    def test_columns_fill_the_table_width(self) -> None:
        cols = layout_columns(36, 523.28)
        self.assertAlmostEqual(sum(c.w for c in cols), 523.28)
        for left, right in zip(cols, cols[1:]):
            self.assertAlmostEqual(left.x + left.w, right.x)
        self.assertEqual([c.label for c in cols], ["Item", "Status", "Qty", "Unit", "Total"])
        self.assertTrue(all(c.inner_w == c.w - 2 * CELL_PAD_X for c in cols))


class TestEnsureSpace(unittest.TestCase):
    def test_fits_means_no_break(self) -> None:
        engine = _engine(_request(_lines(1)))
        self.assertFalse(engine.ensure_space(10))
        self.assertEqual(len(engine.model.pages), 1)

    def test_empty_body_is_never_broken(self) -> None:
        engine = _engine(_request(_lines(1)))
        self.assertFalse(engine.ensure_space(10_000))
        self.assertEqual(len(engine.model.pages), 1)

    def test_break_runs_callback_on_the_new_page(self) -> None:
        engine = _engine(_request(_lines(1)))
        engine._advance(10)
        seen = []
        broke = engine.ensure_space(10_000, on_new_page=lambda: seen.append(engine.page))
        self.assertTrue(broke)
        self.assertEqual(len(engine.model.pages), 2)
        self.assertEqual(engine.page_breaks, 1)
        self.assertEqual(seen, [engine.page])
        self.assertTrue(engine.page.compact)
        self.assertTrue(engine.page.body_empty)


if __name__ == "__main__":
    unittest.main()
