"""
Queue State Responses.

RFC 1179 leaves the queue state listing free-form: the daemon writes
human-readable lines and closes the connection. QueueState keeps those
lines and offers the few things that can be read from them reliably.
"""

from dataclasses import dataclass, field


# Phrases BSD lpd and LPRng use for an empty queue
EMPTY_QUEUE_MARKERS = ("no entries", "no jobs")


@dataclass
class QueueState:
    """Parsed reply to a short (0x03) or long (0x04) queue state request."""

    queue: str
    lines: list[str] = field(default_factory=list)
    long: bool = False

    @classmethod
    def parse(cls, queue: str, lines: list[str], long: bool = False) -> "QueueState":
        """
        Build a QueueState from raw reply lines.

        Trailing CRs and trailing blank lines are dropped.
        """
        cleaned = [line.rstrip("\r") for line in lines]
        while cleaned and not cleaned[-1].strip():
            cleaned.pop()
        return cls(queue=queue, lines=cleaned, long=long)

    @property
    def text(self) -> str:
        """The listing as the daemon sent it, LF-joined."""
        return "".join(f"{line}\n" for line in self.lines)

    @property
    def is_empty(self) -> bool:
        """True if the daemon reported no queued jobs."""
        if not self.lines:
            return True
        text = self.text.lower()
        return any(marker in text for marker in EMPTY_QUEUE_MARKERS)

    def __str__(self) -> str:
        return self.text
