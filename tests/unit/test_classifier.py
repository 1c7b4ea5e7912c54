from lookout.layers.sense.classifier import (
    Classification,
    classify,
    has_text,
    is_active,
    is_geometrically_visible,
    is_interactive_element,
    is_leaf_element,
)
from lookout.layers.sense.snapshot import DomNode, Rect


def element(tag="div", attrs=None, rect=(0, 10, 100, 20), hits=True, visible=True, children=()):
    node = DomNode(
        node_type="element",
        name=tag,
        attributes=dict(attrs or {}),
        rect=Rect(*rect),
        hits=[hits] * 5,
        css_visible=visible,
    )
    for child in children:
        child.parent = node
        node.children.append(child)
    return node


def text_node(value, rect=(0, 10, 50, 16), hits=True, visible=True):
    return DomNode(node_type="text", name="#text", text=value, rect=Rect(*rect), hits=[hits] * 5, css_visible=visible)


class TestInteractive:
    def test_interactive_tags(self):
        for tag in ("a", "button", "input", "select", "textarea", "summary", "label"):
            assert is_interactive_element(element(tag))

    def test_roles(self):
        assert is_interactive_element(element("div", {"role": "checkbox"}))
        assert is_interactive_element(element("div", {"aria-role": "menuitem"}))
        # aria-role only honours a short list
        assert not is_interactive_element(element("div", {"aria-role": "checkbox"}))
        assert not is_interactive_element(element("div", {"role": "presentation"}))


class TestActive:
    def test_disabled_hidden_and_aria_disabled(self):
        assert not is_active(element(attrs={"disabled": ""}))
        assert not is_active(element(attrs={"hidden": ""}))
        assert not is_active(element(attrs={"aria-disabled": "true"}))
        assert is_active(element(attrs={"aria-disabled": "false"}))


class TestLeaf:
    def test_single_text_child_is_leaf(self):
        assert is_leaf_element(element("p", children=[text_node("Hello")]))

    def test_empty_text_content_is_not_leaf(self):
        assert not is_leaf_element(element("div"))

    def test_deny_listed_tag_without_children(self):
        node = element("script")
        node._text_content = "var x"
        assert not is_leaf_element(node)

    def test_element_child_is_not_leaf(self):
        assert not is_leaf_element(element("div", children=[element("span", children=[text_node("x")])]))

    def test_comment_sibling_breaks_leaf(self):
        note = element("p", children=[DomNode(node_type="other", name="#comment"), text_node("Hello")])
        assert note.text_content == "Hello"
        assert not is_leaf_element(note)


class TestGeometry:
    def test_any_probe_point_is_enough(self):
        node = element()
        node.hits = [False, False, True, False, False]
        assert is_geometrically_visible(node, 800)

    def test_top_band_is_half_open(self):
        assert is_geometrically_visible(element(rect=(0, 0, 10, 10)), 800)
        assert not is_geometrically_visible(element(rect=(0, 800, 10, 10)), 800)
        assert not is_geometrically_visible(element(rect=(0, -1, 10, 10)), 800)

    def test_tall_node_overflowing_bottom_counts(self):
        assert is_geometrically_visible(element(rect=(0, 700, 10, 5000)), 800)

    def test_zero_size_and_css_hidden(self):
        assert not is_geometrically_visible(element(rect=(0, 10, 0, 10)), 800)
        assert not is_geometrically_visible(element(visible=False), 800)


class TestClassify:
    def test_visible_button_is_interactive_and_leaf(self):
        verdict = classify(element("button", children=[text_node("Go")]), 800)
        assert verdict == Classification(interactive=True, leaf_visible=True)
        assert verdict.is_candidate

    def test_text_needs_active_parent(self):
        node = text_node("Go")
        element("span", attrs={"disabled": ""}, children=[node])
        assert not classify(node, 800).is_candidate

    def test_hidden_grandparent_is_not_inherited(self):
        inner = text_node("Still here")
        span = element("span", children=[inner])
        element("div", attrs={"hidden": ""}, children=[span])
        assert classify(inner, 800).text_visible
        assert classify(span, 800).leaf_visible

    def test_whitespace_text_is_rejected(self):
        node = text_node("  \n\t ")
        element("p", children=[node])
        assert not has_text(node)
        assert classify(node, 800) == Classification()

    def test_other_nodes_are_rejected(self):
        assert not classify(DomNode(node_type="other", name="#comment"), 800).is_candidate
