"""Shared fixtures: a small source tree with a layout, pages and assets."""

import pytest

LAYOUT = (
    "<!DOCTYPE html>\n"
    "<html>\n"
    "<head>\n"
    "  <title slot=\"title\"></title>\n"
    "  <link rel='stylesheet' href=css/site.css>\n"
    "</head>\n"
    "<body>\n"
    "  <!-- header stays exactly as written -->\n"
    "  <main slot=\"body\"></main>\n"
    "  <img slot=\"hero\" slot-mode=\"attr:src\" alt=\"hero\" />\n"
    "</body>\n"
    "</html>\n"
)

INDEX_PAGE = (
    "<span for-slot=\"title\">Home</span>\n"
    "\n"
    "<div for-slot=\"body\"><p>Hi</p></div>\n"
    "\n"
    "<img for-slot=\"hero\" src=\"a.png\" />\n"
)


def write_site(root, pages=None, layout=LAYOUT, assets=None):
    """Create ``root/src`` with the layout, pages and assets; return (src, out)."""
    src = root / "src"
    src.mkdir()
    (src / "_layout.html").write_text(layout, encoding="utf-8")
    for name, text in (pages or {}).items():
        (src / name).write_bytes(text.encode("utf-8"))
    for rel, data in (assets or {}).items():
        fp = src / rel
        fp.parent.mkdir(parents=True, exist_ok=True)
        fp.write_bytes(data)
    return src, root / "dist"


@pytest.fixture
def site(tmp_path):
    return write_site(
        tmp_path,
        pages={"index.html": INDEX_PAGE},
        assets={"css/site.css": b"body { margin: 0; }\n"},
    )
