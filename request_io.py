"""
Read a DocumentRequest from a JSON or XML file.

XML shape::

    <document title="Delivery Receipt" subtitle="Operations Hub"
              groupByCategory="true" showCategoryHeaderBar="true">
      <meta label="Order ID">ORD-1042</meta>
      <row name="Cable" category="Fuel" quantity="2" unitAmount="3.50"
           link="https://..." statusLabel="Received" statusColorHint="green"/>
    </document>

Row and meta attributes may also be written as child elements.
"""
import json
import os

from lxml import etree

from document_request import DocumentRequest, InputError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}

ROW_FIELDS = ("name", "category", "quantity", "unitAmount", "link",
              "statusLabel", "statusColorHint")
DOC_FLAGS = ("groupByCategory", "showCategoryHeaderBar")
DOC_TEXT = ("title", "subtitle", "reference", "colorKey", "confirmationTitle",
            "currencySymbol")


# ── XML helpers ────────────────────────────────────────────────────────────────
def local(el):
    t = el.tag
    if not isinstance(t, str):
        return ""
    return t.split("}")[-1] if "}" in t else t

def find1(el, *names):
    for c in el:
        lt = local(c)
        if lt and lt in names:
            return c
    return None

def children(el, name):
    return [c for c in el if local(c) == name]

def text_of(el):
    return (el.text or "").strip() if el is not None else ""

def field(el, name):
    """Attribute ``name`` or the text of child element ``<name>``."""
    if name in el.attrib:
        return el.get(name)
    c = find1(el, name)
    return text_of(c) if c is not None else None

def parse_bool(raw, default):
    if raw is None:
        return default
    s = str(raw).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise InputError(f"expected a boolean, got {raw!r}")


# ── XML → dict ─────────────────────────────────────────────────────────────────
def xml_to_dict(raw):
    try:
        root = etree.fromstring(raw)
    except etree.XMLSyntaxError as ex:
        raise InputError(f"request is not well-formed XML: {ex}") from None
    if local(root) != "document":
        doc = next((c for c in root.iter() if local(c) == "document"), None)
        if doc is None:
            raise InputError("no <document> element in request")
        root = doc

    out = {}
    for k in DOC_TEXT:
        v = field(root, k)
        if v is not None:
            out[k] = v
    for k in DOC_FLAGS:
        out[k] = parse_bool(field(root, k), True)

    sig = children(root, "signatureTitle")
    if sig:
        out["signatureTitles"] = [text_of(s) for s in sig]

    out["metaFields"] = [
        {"label": m.get("label", ""), "value": text_of(m) or m.get("value")}
        for m in children(root, "meta")
    ]
    rows_el = find1(root, "rows")
    row_parent = rows_el if rows_el is not None else root
    rows = []
    for r in children(row_parent, "row"):
        d = {}
        for k in ROW_FIELDS:
            v = field(r, k)
            if v is not None:
                d[k] = v
        rows.append(d)
    out["rows"] = rows
    return out


# ── loaders ────────────────────────────────────────────────────────────────────
def loads(raw, fmt):
    if fmt == "json":
        try:
            d = json.loads(raw)
        except json.JSONDecodeError as ex:
            raise InputError(f"request is not valid JSON: {ex}") from None
    elif fmt == "xml":
        d = xml_to_dict(raw)
    else:
        raise InputError(f"unknown request format: {fmt!r}")
    return DocumentRequest.from_dict(d)

def detect_format(path):
    ext = os.path.splitext(path)[1].lower()
    if ext == ".xml":
        return "xml"
    if ext == ".json":
        return "json"
    raise InputError(f"cannot tell the request format of {path!r} (use .json or .xml)")

def load_request(path, fmt=None):
    fmt = fmt or detect_format(path)
    with open(path, "rb") as fh:
        raw = fh.read()
    return loads(raw, fmt)
