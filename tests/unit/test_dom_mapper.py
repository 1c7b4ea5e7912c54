import pytest

from fakes import FakePage, comment, el, tall_page, text
from lookout.core.errors import ChunkExhaustedError, DomUnavailableError
from lookout.layers.sense.dom_mapper import DOMMapper, FlattenedChunk, serialize_node
from lookout.layers.sense.scroller import PageScroller
from lookout.layers.sense.snapshot import parse_snapshot


def make_mapper(page):
    return DOMMapper(page, scroller=PageScroller(page, settle_delay=0, sleep=lambda s: None))


def test_login_page_flattening_order_and_format(login_page):
    flat = make_mapper(login_page).flatten(0)

    assert flat.text == (
        '0:<a href="/reset">Forgot password?</a>\n'
        "1:Forgot password?\n"
        '2:<input id="email" aria-label="Email"></input>\n'
        '3:<input id="password" aria-label="Password"></input>\n'
        '4:<button class="btn primary">Sign in</button>\n'
        "5:Sign in\n"
        "6:<h1>Welcome back</h1>\n"
        "7:Welcome back\n"
    )
    assert flat.chunk == 0
    assert flat.total_chunks == 1


def test_indices_are_contiguous_and_addressed(login_page):
    flat = make_mapper(login_page).flatten(0)

    assert sorted(flat.addresses) == list(range(8))
    assert flat.addresses[0] == "/html/body/a"
    assert flat.addresses[1] == "/html/body/a"
    assert flat.addresses[2] == "//*[@id='email']"
    assert flat.addresses[4] == "/html/body/form/button"
    assert flat.addresses[6] == "/html/body/h1"


def test_flattening_is_idempotent_on_an_unchanged_page(login_page):
    mapper = make_mapper(login_page)
    first = mapper.flatten(0)
    second = mapper.flatten(0)
    assert first.text == second.text
    assert first.addresses == second.addresses


def test_hidden_disabled_and_offscreen_nodes_are_skipped():
    page = FakePage([
        el("button", "Hidden", attrs={"hidden": ""}, y=10),
        el("button", "Disabled", attrs={"aria-disabled": "true"}, y=40),
        el("button", "Covered", y=70, hits=False),
        el("button", "Transparent", y=100, visible=False),
        el("button", "Below", y=900),
        el("button", "Zero", y=130, height=0),
        el("button", "Shown", y=160),
    ])
    flat = make_mapper(page).flatten(0)
    assert flat.text == "0:<button>Shown</button>\n1:Shown\n"


def test_node_starting_at_viewport_bottom_belongs_to_next_chunk():
    page = FakePage([el("p", "Edge", y=800)], viewport_height=800, document_height=1600)
    mapper = make_mapper(page)
    assert mapper.flatten(0).is_empty
    assert mapper.flatten(1).text == "0:<p>Edge</p>\n1:Edge\n"


def test_text_of_disabled_parent_is_skipped():
    page = FakePage([el("span", "Inactive", attrs={"disabled": ""}, y=10)])
    assert make_mapper(page).flatten(0).is_empty


def test_whitespace_text_and_comments_are_ignored():
    page = FakePage([el("div", text("   \n "), comment(), el("b", "Bold", y=20), y=10, height=40)])
    flat = make_mapper(page).flatten(0)
    assert flat.text == "0:<b>Bold</b>\n1:Bold\n"


def test_comment_child_keeps_element_off_the_leaf_list():
    page = FakePage([el("p", comment(), "Note", y=10)])
    flat = make_mapper(page).flatten(0)
    assert flat.text == "0:Note\n"
    assert flat.addresses[0] == "/html/body/p"


def test_top_level_subtrees_come_out_last_first():
    page = FakePage([
        el("p", "First", y=10),
        el("p", "Second", y=40),
    ])
    flat = make_mapper(page).flatten(0)
    assert flat.text == "0:<p>Second</p>\n1:Second\n2:<p>First</p>\n3:First\n"
    assert flat.addresses[0] == "/html/body/p[2]"
    assert flat.addresses[2] == "/html/body/p[1]"


def test_leaf_deny_tags_and_multi_child_containers():
    page = FakePage([
        el("svg", y=10),
        el("div", el("span", "A", y=40), el("span", "B", y=60), y=40, height=40),
    ])
    flat = make_mapper(page).flatten(0)
    assert "<svg" not in flat.text
    assert "<div" not in flat.text
    assert "<span>A</span>" in flat.text


def test_data_attributes_follow_priority_attributes_and_empty_ones_are_dropped():
    node = parse_snapshot(FakePage([
        el("a", "Go", attrs={"data-test": "go", "href": "/go", "data-empty": "", "class": ""}, y=10),
    ]).snapshot()).body.children[0]
    assert serialize_node(3, node) == '3:<a href="/go" data-test="go">Go</a>'


def test_element_text_strips_index_prefix(login_page):
    flat = make_mapper(login_page).flatten(0)
    assert flat.element_text(4) == '<button class="btn primary">Sign in</button>'
    assert flat.element_text(99) == "Element not found"


def test_process_dom_picks_chunk_nearest_scroll_position():
    page = tall_page(sections=3)
    mapper = make_mapper(page)
    page.scroll_to(1600)

    flat = mapper.process_dom([])
    assert flat.chunk == 2
    assert "Section 2" in flat.text

    flat = mapper.process_dom([2])
    assert flat.chunk == 1


def test_process_dom_raises_when_every_chunk_was_seen():
    mapper = make_mapper(tall_page(sections=2))
    with pytest.raises(ChunkExhaustedError):
        mapper.process_dom([0, 1])


def test_flatten_all_renumbers_across_chunks():
    page = tall_page(sections=3)
    flat = make_mapper(page).flatten_all()
    assert flat.text == (
        "0:<p>Section 0</p>\n1:Section 0\n"
        "2:<p>Section 1</p>\n3:Section 1\n"
        "4:<p>Section 2</p>\n5:Section 2\n"
    )
    assert sorted(flat.addresses) == list(range(6))
    assert flat.chunk == 0
    assert flat.total_chunks == 3


def test_flatten_all_stops_at_first_empty_chunk():
    page = FakePage(
        [el("p", "Top", y=10), el("p", "Bottom", y=2410)],
        viewport_height=800,
        document_height=3200,
    )
    flat = make_mapper(page).flatten_all()
    assert "Top" in flat.text
    assert "Bottom" not in flat.text


def test_missing_body_raises_dom_unavailable():
    page = FakePage([])
    page.snapshot = lambda: {"root": el("html"), "viewport_height": 800}
    with pytest.raises(DomUnavailableError):
        make_mapper(page).flatten(0)


def test_flattened_chunk_empty_flag():
    assert FlattenedChunk(text="", addresses={}, chunk=0, total_chunks=1).is_empty
