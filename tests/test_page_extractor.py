#!/usr/bin/env python3
"""
Tests for page provider discovery (slotcompiler/page_extractor.py)

Run: pytest tests/test_page_extractor.py -v
"""

from slotcompiler.markup import ClosingStyle
from slotcompiler.page_extractor import (
    PageSlotContent,
    UnknownSlotError,
    build_markup,
    extract_page_slots,
    find_unknown_slots,
    placeholder_provider,
    provider_closing_style,
)
from slotcompiler.slot_catalog import SlotSpec, build_slot_catalog

from conftest import INDEX_PAGE, LAYOUT


# ─── Extraction ────────────────────────────────────────────────────────────

class TestExtractPageSlots:

    def test_basic_page(self):
        slots = extract_page_slots(INDEX_PAGE)
        assert slots.order == ["title", "body", "hero"]
        title = slots.get("title")
        assert title.tag == "span"
        assert title.inner_html == "Home"
        assert title.attributes == {"for-slot": "title"}
        assert title.original_html == '<span for-slot="title">Home</span>'
        assert title.closing_style is ClosingStyle.EXPLICIT
        assert slots.get("body").inner_html == "<p>Hi</p>"

    def test_void_provider(self):
        hero = extract_page_slots(INDEX_PAGE).get("hero")
        assert hero.closing_style is ClosingStyle.SELF_CLOSING
        assert hero.attributes["src"] == "a.png"
        assert hero.inner_html == ""
        assert hero.original_html == '<img for-slot="hero" src="a.png" />'

    def test_void_provider_without_slash(self):
        hero = extract_page_slots('<img for-slot="hero" src="a.png">').get("hero")
        assert hero.closing_style is ClosingStyle.VOID
        assert hero.original_html == '<img for-slot="hero" src="a.png">'

    def test_self_closing_div(self):
        slot = extract_page_slots('<div for-slot="x"/>').get("x")
        assert slot.closing_style is ClosingStyle.SELF_CLOSING
        assert slot.original_html == '<div for-slot="x"/>'

    def test_first_provider_wins(self):
        slots = extract_page_slots('<p for-slot="a">one</p>\n<p for-slot="a">two</p>')
        assert slots.order == ["a"]
        assert slots.get("a").inner_html == "one"

    def test_original_markup_is_verbatim(self):
        page = "<div  for-slot='a'   class=\"x   y\">T &amp; U</div>"
        slot = extract_page_slots(page).get("a")
        assert slot.original_html == page
        assert slot.inner_html == "T &amp; U"
        assert slot.attributes == {"for-slot": "a", "class": "x   y"}

    def test_nested_same_tag(self):
        page = '<div for-slot="body"><div>inner</div> tail</div>'
        assert extract_page_slots(page).get("body").inner_html == "<div>inner</div> tail"

    def test_multiline_crlf_offsets(self):
        page = '<p for-slot="a">one</p>\r\n\r\n<p for-slot="b">\r\ntwo\r\n</p>\r\n'
        slots = extract_page_slots(page)
        assert slots.get("b").original_html == '<p for-slot="b">\r\ntwo\r\n</p>'
        assert slots.get("b").inner_html == "\r\ntwo\r\n"

    def test_provider_nested_in_wrapper(self):
        page = '<section>\n  <h1 for-slot="title">Hello</h1>\n</section>'
        slot = extract_page_slots(page).get("title")
        assert slot.original_html == '<h1 for-slot="title">Hello</h1>'

    def test_closing_tag_inside_comment(self):
        page = '<div for-slot="body"><!-- </div> --><p>keep me</p></div>\n'
        slot = extract_page_slots(page).get("body")
        assert slot.original_html == page.rstrip("\n")
        assert slot.inner_html == "<!-- </div> --><p>keep me</p>"

    def test_closing_tag_inside_script(self):
        page = '<div for-slot="body"><script>if (a<b) x="</div>";</script><p>k</p></div>'
        slot = extract_page_slots(page).get("body")
        assert slot.original_html == page
        assert slot.inner_html.endswith("</script><p>k</p>")

    def test_unsliceable_provider_serialized(self):
        slot = extract_page_slots('<section><div for-slot="a">x</section>').get("a")
        assert slot.original_html == '<div for-slot="a">x</div>'
        assert slot.inner_html == "x"

    def test_no_providers(self):
        slots = extract_page_slots("<p>just text</p>")
        assert slots.order == []
        assert "anything" not in slots


class TestProviderClosingStyle:

    def test_explicit(self):
        assert provider_closing_style("<div>x</div>", "div") is ClosingStyle.EXPLICIT

    def test_self_closing(self):
        assert provider_closing_style("<div />  ", "div") is ClosingStyle.SELF_CLOSING

    def test_void(self):
        assert provider_closing_style('<img src="a">', "img") is ClosingStyle.VOID

    def test_unclosed_non_void(self):
        assert provider_closing_style("<p>open", "p") is ClosingStyle.EXPLICIT


# ─── Unknown slots ─────────────────────────────────────────────────────────

class TestUnknownSlots:

    def test_ghost_slot_reported(self):
        catalog = build_slot_catalog(LAYOUT)
        slots = extract_page_slots('<p for-slot="title">T</p><p for-slot="ghost">?</p>')
        assert find_unknown_slots(slots, catalog) == ["ghost"]

    def test_all_known(self):
        catalog = build_slot_catalog(LAYOUT)
        assert find_unknown_slots(extract_page_slots(INDEX_PAGE), catalog) == []

    def test_error_message_names_page_and_slots(self):
        err = UnknownSlotError("about.html", ["ghost", "phantom"])
        assert str(err) == "about.html has unknown slots: ghost, phantom"
        assert err.slots == ["ghost", "phantom"]


# ─── Synthesized markup ────────────────────────────────────────────────────

class TestBuildMarkup:

    ATTRS = {"src": "a.png", "alt": 'say "hi"', "for-slot": "hero"}

    def test_for_slot_first_then_sorted(self):
        out = build_markup("img", self.ATTRS, "", ClosingStyle.VOID)
        assert out == '<img for-slot="hero" alt="say &quot;hi&quot;" src="a.png">'

    def test_self_closing(self):
        out = build_markup("img", self.ATTRS, "", ClosingStyle.SELF_CLOSING)
        assert out == '<img for-slot="hero" alt="say &quot;hi&quot;" src="a.png" />'

    def test_explicit(self):
        out = build_markup("div", {"class": "c", "for-slot": "x"}, "<b>in</b>", ClosingStyle.EXPLICIT)
        assert out == '<div for-slot="x" class="c"><b>in</b></div>'

    def test_only_quotes_escaped(self):
        out = build_markup("p", {"for-slot": "x", "title": "a & <b>"}, "", ClosingStyle.EXPLICIT)
        assert out == '<p for-slot="x" title="a & <b>"></p>'

    def test_render_prefers_original(self):
        content = PageSlotContent("p", "x", {"for-slot": "a"}, "<P  for-slot=a>x</P>", ClosingStyle.EXPLICIT)
        assert content.render() == "<P  for-slot=a>x</P>"

    def test_render_synthesizes_without_original(self):
        content = PageSlotContent("p", "x", {"for-slot": "a"}, None, ClosingStyle.EXPLICIT)
        assert content.render() == '<p for-slot="a">x</p>'


class TestPlaceholderProvider:

    def test_html_slot(self):
        slot = SlotSpec("body", "html", "main", ClosingStyle.EXPLICIT)
        p = placeholder_provider(slot)
        assert p.render() == '<main for-slot="body"></main>'
        assert p.original_html is None

    def test_attr_slot_prepopulated(self):
        slot = SlotSpec("hero", "attr:src", "img", ClosingStyle.SELF_CLOSING)
        p = placeholder_provider(slot)
        assert p.attributes == {"for-slot": "hero", "src": ""}
        assert p.render() == '<img for-slot="hero" src="" />'
