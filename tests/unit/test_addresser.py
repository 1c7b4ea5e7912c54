from fakes import FakePage, el
from lookout.layers.sense.addresser import generate_address, resolve_address, xpath_literal
from lookout.layers.sense.snapshot import parse_snapshot


def snapshot_of(*body):
    return parse_snapshot(FakePage(list(body)).snapshot())


def test_xpath_literal_quoting():
    assert xpath_literal("plain") == "'plain'"
    assert xpath_literal("it's") == "\"it's\""
    assert xpath_literal("a'b\"c") == "concat('a', \"'\", 'b\"c')"


def test_id_address():
    snap = snapshot_of(el("div", el("button", "Go", attrs={"id": "go"})))
    button = snap.body.find("button")
    assert generate_address(button) == "//*[@id='go']"
    assert resolve_address(snap.root, "//*[@id='go']") is button


def test_positions_only_when_tag_repeats():
    snap = snapshot_of(
        el("ul", el("li", "One"), el("li", "Two"), el("li", "Three")),
        el("p", "Only"),
    )
    items = snap.body.find("ul").children
    assert generate_address(items[1]) == "/html/body/ul/li[2]"
    assert generate_address(snap.body.find("p")) == "/html/body/p"


def test_text_node_resolves_to_parent_element():
    snap = snapshot_of(el("div", el("span", "Hi"), el("span", "There")))
    there = snap.body.find("div").children[1]
    text = there.children[0]
    assert generate_address(text) == "/html/body/div/span[2]"
    assert resolve_address(snap.root, generate_address(text)) is there


def test_every_generated_address_resolves_to_its_element():
    snap = snapshot_of(
        el("header", el("a", "Home", attrs={"href": "/"}), el("a", "About", attrs={"href": "/about"})),
        el("main", el("section", el("h2", "A")), el("section", el("h2", "B"), el("p", "Body"))),
        el("footer", el("span", "Quote", attrs={"id": "it's"})),
    )
    for node in snap.body.iter():
        if node.is_element:
            assert resolve_address(snap.root, generate_address(node)) is node


def test_unresolvable_addresses():
    snap = snapshot_of(el("p", "x"))
    assert resolve_address(snap.root, "/html/body/div") is None
    assert resolve_address(snap.root, "//*[@id='missing']") is None
    assert resolve_address(snap.root, "not-an-xpath") is None
