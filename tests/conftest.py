import pytest

from fakes import FakePage, el


@pytest.fixture
def login_page():
    """A small single-chunk page with a form, a link and some copy."""
    return FakePage([
        el("h1", "Welcome back", y=10, height=40),
        el("form",
           el("input", attrs={"id": "email", "type": "email", "aria-label": "Email"}, y=80),
           el("input", attrs={"id": "password", "type": "password", "aria-label": "Password"}, y=120),
           el("button", "Sign in", attrs={"class": "btn primary"}, y=160),
           y=70, height=120),
        el("a", "Forgot password?", attrs={"href": "/reset"}, y=220),
    ])
