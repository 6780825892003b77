"""Keyword-scripted replies for the help chat."""

import re

# first match wins
SCRIPT = (
    (("architect",), "You can contact architects here: architect@planora.com"),
    (("electrician",), "Electricians near you: Rahul (+91 9876543234), Aman (+91 9876543245)"),
    (("plumber",), "Plumbers: Ramesh (+91 9876543210), Suresh (+91 9876543221)"),
    (("hello", "hi"), "Hi there! How can I help you today?"),
)

FALLBACK = "I'm not sure, but you can reach our support team at support@planora.com."


def reply(message: str) -> str:
    text = (message or "").lower()
    for keywords, answer in SCRIPT:
        if any(re.search(rf"\b{k}", text) for k in keywords):
            return answer
    return FALLBACK
