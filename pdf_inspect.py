"""
Read a rendered PDF back: page count, the text runs drawn on each page,
and a check that every page carries its ``page|total`` marker.
"""
import io
import re

import pikepdf

_TEXT_OPS = ("Tj", "TJ", "'", '"')
_MARKER = re.compile(r'^(\d+)\|(\d+)$')


def open_pdf(data):
    if isinstance(data, (bytes, bytearray)):
        return pikepdf.open(io.BytesIO(bytes(data)))
    return pikepdf.open(data)

def _strings(operands):
    for op in operands:
        if isinstance(op, pikepdf.String):
            yield str(op)
        elif isinstance(op, pikepdf.Array):
            # TJ: strings interleaved with kerning offsets
            yield "".join(str(x) for x in op if isinstance(x, pikepdf.String))

def page_text_runs(page):
    runs = []
    for operands, operator in pikepdf.parse_content_stream(page):
        op = str(operator)
        if op in _TEXT_OPS:
            runs.extend(_strings(operands))
    return runs

def page_texts(data):
    """Text runs per page, in drawing order."""
    with open_pdf(data) as pdf:
        return [page_text_runs(p) for p in pdf.pages]

def page_images(page):
    """Names of the image XObjects in the page resources."""
    res = page.obj.get("/Resources")
    xobjs = res.get("/XObject") if res is not None else None
    if xobjs is None:
        return []
    return sorted(str(k) for k, v in xobjs.items()
                  if v.get("/Subtype") == pikepdf.Name.Image)

def page_count(data):
    with open_pdf(data) as pdf:
        return len(pdf.pages)

def page_markers(runs):
    return [(int(m.group(1)), int(m.group(2)))
            for m in (_MARKER.match(r) for r in runs) if m]

def check_numbering(data):
    """Return a list of problems; empty when every page reads ``k|N``."""
    texts = page_texts(data)
    total = len(texts)
    problems = []
    for k, runs in enumerate(texts, 1):
        found = page_markers(runs)
        if not found:
            problems.append(f"page {k}: no page marker")
        elif found != [(k, total)]:
            problems.append(f"page {k}: expected {k}|{total}, found {found}")
    return problems
