from __future__ import annotations

import unittest
from unittest import mock

import page_numbers
from page_model import PageGeometry, PageModel
from page_numbers import line_height, number_pages, stamp_y
from pdf_inspect import check_numbering, page_count, page_texts


def _body_chrome(canv, page):
    page.y = page.metrics.margin_top + 20


def _three_page_model(numbering=number_pages) -> PageModel:
    model = PageModel(chrome=_body_chrome, numbering=numbering)
    for k in range(1, 4):
        page = model.new_page()
        model.canvas.drawString(page.metrics.margin_left, page.rl_y(page.y), f"body {k}")
    return model


class TestStampPosition(unittest.TestCase):
    def test_marker_never_drops_below_the_bottom_margin(self) -> None:
        m = PageGeometry().metrics()
        lh = line_height()
        limit = m.page_height - m.margin_bottom - lh
        self.assertLessEqual(stamp_y(m, lh), limit)
        self.assertEqual(stamp_y(m, lh, offset=-50), limit)

    def test_marker_is_computed_from_page_metrics_only(self) -> None:
        small = PageGeometry(pagesize=(300, 400), margin_bottom=20).metrics()
        self.assertEqual(stamp_y(small, 10, offset=2), 400 - 20 - 10 - 2)


class TestDeferredNumbering(unittest.TestCase):
    def test_every_page_reads_k_of_n(self) -> None:
        data = _three_page_model().close()
        texts = page_texts(data)
        self.assertEqual(len(texts), 3)
        for k, runs in enumerate(texts, 1):
            self.assertIn(f"body {k}", runs)
            self.assertIn(f"{k}|3", runs)
        self.assertEqual(check_numbering(data), [])

    def test_nothing_is_written_before_close(self) -> None:
        model = _three_page_model()
        self.assertEqual(model._buf.getvalue(), b"")
        self.assertEqual(model.canvas.buffered_page_count, 2)
        data = model.close()
        self.assertTrue(data.startswith(b"%PDF"))
        self.assertEqual(model.canvas.buffered_page_count, 3)

    def test_numbering_runs_once(self) -> None:
        spy = mock.Mock(side_effect=number_pages)
        model = _three_page_model(numbering=spy)
        first = model.close()
        model.canvas.finalize()
        model.canvas.number_pages()
        second = model.close()
        self.assertEqual(spy.call_count, 1)
        self.assertEqual(first, second)
        markers = [r for runs in page_texts(first) for r in runs if "|" in r]
        self.assertEqual(markers, ["1|3", "2|3", "3|3"])

    def test_custom_template(self) -> None:
        model = PageModel(chrome=_body_chrome,
                          numbering=lambda c, pages: number_pages(c, pages, "Page {page} of {total}"))
        model.new_page()
        model.new_page()
        texts = page_texts(model.close())
        self.assertIn("Page 1 of 2", texts[0])
        self.assertIn("Page 2 of 2", texts[1])

    def test_one_failing_page_does_not_sink_the_document(self) -> None:
        real = page_numbers.draw_page_number

        def flaky(canv, page, number, total, template):
            if number == 2:
                canv.drawString(10, 10, "partial stamp")
                raise RuntimeError("boom")
            return real(canv, page, number, total, template)

        model = _three_page_model()
        with mock.patch.object(page_numbers, "draw_page_number", side_effect=flaky):
            with self.assertLogs("page_numbers", level="WARNING") as logs:
                data = model.close()

        self.assertIn("could not number page 2 of 3", "\n".join(logs.output))
        self.assertEqual(page_count(data), 3)
        texts = page_texts(data)
        self.assertIn("1|3", texts[0])
        self.assertNotIn("2|3", texts[1])
        self.assertIn("body 2", texts[1])
        self.assertNotIn("partial stamp", texts[1])
        self.assertIn("3|3", texts[2])
        self.assertEqual(check_numbering(data), ["page 2: no page marker"])

    def test_close_without_pages_still_yields_one_numbered_page(self) -> None:
        data = PageModel(numbering=number_pages).close()
        self.assertEqual(page_texts(data), [["1|1"]])


if __name__ == "__main__":
    unittest.main()
