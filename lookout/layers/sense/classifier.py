"""
Visibility Classifier - is this node worth showing to the model?

Pure predicates over a snapshot node. Hidden-ness is not inherited: an
element is judged on its own attributes, a text node on its parent's, and
a hidden grandparent is not looked at.
"""

from dataclasses import dataclass

from lookout.layers.sense.snapshot import DomNode


INTERACTIVE_TAGS = frozenset([
    "a", "button", "details", "embed", "input", "label", "menu",
    "menuitem", "object", "select", "textarea", "summary",
])

INTERACTIVE_ROLES = frozenset([
    "button", "menu", "menuitem", "link", "checkbox", "radio", "slider",
    "tab", "tabpanel", "textbox", "combobox", "grid", "listbox", "option",
    "progressbar", "scrollbar", "searchbox", "switch", "tree", "treeitem",
    "spinbutton", "tooltip",
])

INTERACTIVE_ARIA_ROLES = frozenset(["menu", "menuitem", "button"])

LEAF_DENY_TAGS = frozenset(["svg", "iframe", "script", "style", "link"])


@dataclass(frozen=True)
class Classification:
    """Verdicts for one node."""
    interactive: bool = False
    leaf_visible: bool = False
    text_visible: bool = False

    @property
    def is_candidate(self) -> bool:
        return self.interactive or self.leaf_visible or self.text_visible


def has_text(node: DomNode) -> bool:
    """A text node with something other than whitespace in it."""
    return node.is_text and bool("".join(node.text.split()))


def is_active(element: DomNode) -> bool:
    return not (
        element.has_attribute("disabled")
        or element.has_attribute("hidden")
        or element.get_attribute("aria-disabled") == "true"
    )


def is_interactive_element(element: DomNode) -> bool:
    role = element.get_attribute("role")
    aria_role = element.get_attribute("aria-role")
    return (
        element.tag in INTERACTIVE_TAGS
        or (role is not None and role in INTERACTIVE_ROLES)
        or (aria_role is not None and aria_role in INTERACTIVE_ARIA_ROLES)
    )


def is_leaf_element(element: DomNode) -> bool:
    if element.text_content == "":
        return False
    if not element.children:
        return element.tag not in LEAF_DENY_TAGS
    # A lone text child gives a plain element the context of its label.
    return len(element.children) == 1 and has_text(element.children[0])


def is_geometrically_visible(node: DomNode, viewport_height: float) -> bool:
    """
    Size, top edge and paint checks.

    Only the top edge is tested, so tall nodes that overflow the bottom of
    the viewport still count. The band is half-open: a node starting
    exactly at the viewport's bottom edge belongs to the next chunk.
    """
    rect = node.rect
    if rect.width == 0 or rect.height == 0:
        return False
    if rect.top < 0 or rect.top >= viewport_height:
        return False
    if not any(node.hits):
        return False
    return node.css_visible


def is_visible(element: DomNode, viewport_height: float) -> bool:
    return is_active(element) and is_geometrically_visible(element, viewport_height)


def is_text_visible(node: DomNode, viewport_height: float) -> bool:
    parent = node.parent_element
    if parent is None or not is_active(parent):
        return False
    return is_geometrically_visible(node, viewport_height)


def classify(node: DomNode, viewport_height: float) -> Classification:
    """Classify a single node; anything that is not an element or text is rejected."""
    if node.is_element:
        visible = is_visible(node, viewport_height)
        return Classification(
            interactive=visible and is_interactive_element(node),
            leaf_visible=visible and is_leaf_element(node),
        )
    if has_text(node):
        return Classification(text_visible=is_text_visible(node, viewport_height))
    return Classification()
