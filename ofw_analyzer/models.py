from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union

NEVER = "Never"
UNKNOWN_SENDER = "Unknown"
NO_SUBJECT = "No subject"

ReadTime = Union[datetime, str]  # datetime, or NEVER when not yet viewed


def _iso(value) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class Message:
    sender: str = UNKNOWN_SENDER
    subject: str = NO_SUBJECT
    body: str = ""
    sent_date: Optional[datetime] = None
    recipient_read_times: Dict[str, ReadTime] = field(default_factory=dict)
    word_count: int = 0
    sentiment: float = 0.0
    sentiment_natural: float = 0.0
    sentiment_per_word: float = 0.0
    natural_per_word: float = 0.0
    tone: float = 0.0
    thread_id: Optional[int] = None
    thread_key: Optional[str] = None
    thread_index: Optional[int] = None
    non_message: bool = False  # boundary block with no recoverable metadata

    def to_dict(self) -> dict:
        """JSON-ready export using the report's camelCase field names."""
        data = {
            "sentDate": _iso(self.sent_date),
            "sender": self.sender,
            "recipientReadTimes": {
                name: _iso(read_at) for name, read_at in self.recipient_read_times.items()
            },
            "subject": self.subject,
            "body": self.body,
            "wordCount": self.word_count,
            "sentiment": self.sentiment,
            "sentiment_natural": self.sentiment_natural,
            "sentiment_per_word": self.sentiment_per_word,
            "natural_per_word": self.natural_per_word,
            "tone": self.tone,
            "threadId": self.thread_id,
            "threadKey": self.thread_key,
            "threadIndex": self.thread_index,
        }
        if self.non_message:
            data["_nonMessage"] = True
        return data


@dataclass
class PersonStats:
    messages_sent: int = 0
    messages_read: int = 0
    total_read_time: float = 0.0  # minutes
    total_words: int = 0
    sentiment: float = 0.0
    sentiment_natural: float = 0.0
    sentiment_per_word: float = 0.0
    natural_per_word: float = 0.0
    tone_total: float = 0.0
    # Filled in by finalization
    average_read_time: float = 0.0
    avg_sentiment: float = 0.0
    avg_sentiment_natural: float = 0.0
    avg_sentiment_per_word: float = 0.0
    avg_natural_per_word: float = 0.0
    tone: float = 0.0

    def to_dict(self) -> dict:
        return {
            "messagesSent": self.messages_sent,
            "messagesRead": self.messages_read,
            "totalReadTime": self.total_read_time,
            "totalWords": self.total_words,
            "sentiment": self.sentiment,
            "sentiment_natural": self.sentiment_natural,
            "sentiment_per_word": self.sentiment_per_word,
            "natural_per_word": self.natural_per_word,
            "toneTotal": self.tone_total,
            "averageReadTime": self.average_read_time,
            "avgSentiment": self.avg_sentiment,
            "avgSentimentNatural": self.avg_sentiment_natural,
            "avgSentimentPerWord": self.avg_sentiment_per_word,
            "avgNaturalPerWord": self.avg_natural_per_word,
            "tone": self.tone,
        }


@dataclass
class ThreadSummary:
    thread_id: Union[int, str]
    thread_key: Optional[str]
    subject: str
    messages: int = 0
    first_sent: Optional[datetime] = None
    last_sent: Optional[datetime] = None
    span_days: float = 0.0
    participants: List[str] = field(default_factory=list)
    total_words: int = 0
    avg_sentiment: float = 0.0
    tone: float = 0.0

    def to_dict(self) -> dict:
        return {
            "threadId": self.thread_id,
            "threadKey": self.thread_key,
            "subject": self.subject,
            "messages": self.messages,
            "firstSentISO": _iso(self.first_sent) or "",
            "lastSentISO": _iso(self.last_sent) or "",
            "spanDays": self.span_days,
            "participants": list(self.participants),
            "totalWords": self.total_words,
            "avgSentiment": self.avg_sentiment,
            "tone": self.tone,
        }


@dataclass
class ThreadStats:
    total_threads: int = 0
    average_thread_length: float = 0.0
    avg_messages_per_thread: Optional[float] = None
    avg_days_per_thread: Optional[float] = None
    avg_words_per_thread: Optional[float] = None


@dataclass
class StatsResult:
    totals: Dict[str, PersonStats] = field(default_factory=dict)
    weekly: Dict[str, Dict[str, PersonStats]] = field(default_factory=dict)
    thread_stats: ThreadStats = field(default_factory=ThreadStats)
    weekly_thread_stats: Dict[str, ThreadStats] = field(default_factory=dict)
