"""Pytest configuration and shared fixtures for OFW analyzer tests."""

from datetime import datetime

import pytest

from ofw_analyzer.models import NEVER, Message


class StubScorer:
    """Deterministic scorer: +1 per "good", -1 per "bad"."""

    def lexicon_score(self, body):
        words = body.lower().split()
        return float(words.count("good") - words.count("bad"))

    def stemmed_score(self, body):
        words = body.split()
        if not words:
            return 0.0
        return self.lexicon_score(body) / len(words)


@pytest.fixture
def stub_scorer():
    """A scorer with predictable values, independent of any lexicon."""
    return StubScorer()


@pytest.fixture(scope="session")
def real_scorer():
    """The production scorer, built once for the whole session."""
    from ofw_analyzer.processing.metrics import SentimentScorer

    return SentimentScorer()


@pytest.fixture
def make_message():
    """Factory for Message records with sensible defaults."""

    def _make(sender="A", recipients=None, subject="Hello", body="body", sent=None, **kwargs):
        return Message(
            sender=sender,
            recipient_read_times=recipients if recipients is not None else {"B": NEVER},
            subject=subject,
            body=body,
            sent_date=sent,
            **kwargs,
        )

    return _make


@pytest.fixture
def head_block():
    """Head layout with values on the line after each label."""
    return "\n".join([
        "Sent:",
        "01/15/2025 at 03:45 PM",
        "From:",
        "José Hernandez",
        "To:",
        "Jane Doe (First Viewed: 01/15/2025 at 04:00 PM)",
        "Subject:",
        "Update",
        "",
        "Meeting moved to tomorrow at 9am.",
    ])


@pytest.fixture
def tail_block():
    """Tail layout: body first, labels after."""
    return "\n".join([
        "Can you confirm pickup time?",
        "Thanks",
        "",
        "Sent: 02/01/2025 at 09:00 AM",
        "From: Alex Smith",
        "To: Jordan Lee (First Viewed: Never)",
        "Subject: Pickup",
    ])


@pytest.fixture
def export_text():
    """Three-message export with report banners between the boundaries."""
    return "\n".join([
        "OFW Message Report",
        "|  Message ReportPage 1 of 10",
        "Message 1 of 3",
        "Sent: 01/05/2025 at 10:00 AM",
        "From: Alex Smith",
        "To: Jordan Lee (First Viewed: 01/05/2025 at 10:30 AM)",
        "Subject: School pickup",
        "Good news, the school moved pickup to 3pm.",
        "|  Message ReportPage 4 of 10",
        "Message 2 of 3",
        "Sent: 01/05/2025 at 11:00 AM",
        "From: Jordan Lee",
        "To: Alex Smith (First Viewed: 01/05/2025 at 11:05 AM)",
        "Subject: RE: School pickup",
        "That is good, thanks.",
        "Message 3 of 3",
        "Sent: 01/14/2025 at 08:00 PM",
        "From: Alex Smith",
        "To: Jordan Lee (First Viewed: Never)",
        "Subject: Doctor appointment",
        "The appointment is bad timing for me.",
        "Page 5 of 10",
    ])


@pytest.fixture
def jan5():
    """Sunday, Jan 5 2025 at 10:00."""
    return datetime(2025, 1, 5, 10, 0)
