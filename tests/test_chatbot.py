import pytest

from chatbot import FALLBACK, reply


@pytest.mark.parametrize(
    "message, expected",
    [
        ("I need an Architect", "architect@planora.com"),
        ("any electricians around?", "Electricians near you"),
        ("my PLUMBER quit", "Plumbers:"),
        ("hello there", "How can I help"),
        ("Hi", "How can I help"),
    ],
)
def test_keyword_replies(message, expected):
    assert expected in reply(message)


def test_first_match_wins():
    assert "architect@planora.com" in reply("hi, I want an architect")


def test_fallback():
    assert reply("what are your opening hours?") == FALLBACK
    assert reply("") == FALLBACK
