"""Guess the hosting platform of a resource URL."""

from __future__ import annotations

from urllib.parse import urlsplit

# Host suffix -> platform label, checked in order
PLATFORMS: tuple[tuple[str, str], ...] = (
    ("youtube.com", "YouTube"),
    ("youtu.be", "YouTube"),
    ("leetcode.com", "LeetCode"),
    ("hackerrank.com", "HackerRank"),
    ("codeforces.com", "Codeforces"),
    ("geeksforgeeks.org", "GeeksforGeeks"),
    ("github.com", "GitHub"),
    ("notion.so", "Notion"),
    ("notion.site", "Notion"),
)

DEFAULT_PLATFORM = "Custom"


def detect_platform(url: str) -> str:
    """
    Map a URL to a known platform by its host.

    URLs without a scheme (``leetcode.com/problems/two-sum``) are accepted.
    Unknown or unparsable hosts give ``"Custom"``.
    """
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"//{candidate}"
    try:
        host = (urlsplit(candidate).hostname or "").lower()
    except ValueError:
        return DEFAULT_PLATFORM

    for suffix, label in PLATFORMS:
        if host == suffix or host.endswith(f".{suffix}"):
            return label
    return DEFAULT_PLATFORM
