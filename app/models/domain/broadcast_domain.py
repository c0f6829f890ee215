from dataclasses import dataclass, field


@dataclass(slots=True)
class BroadcastOptions:
    """Per-call knobs for a broadcast. chunk_size below 1 is clamped to 1."""

    chunk_size: int = 50
    delay_ms: int = 0
    html: str | None = None
    from_override: str | None = None

    def __post_init__(self) -> None:
        self.chunk_size = max(1, int(self.chunk_size))
        self.delay_ms = max(0, int(self.delay_ms))


@dataclass(slots=True)
class BroadcastResult:
    total_recipients: int = 0
    batches: int = 0
    accepted: int = 0
    rejected: int = 0
    failed_batches: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalRecipients": self.total_recipients,
            "batches": self.batches,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "failedBatches": self.failed_batches,
            "errors": list(self.errors),
        }


@dataclass(slots=True)
class SendReport:
    """What the transport knows about one sent message."""

    accepted: list[str]
    rejected: list[str]
