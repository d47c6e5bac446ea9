"""Audio reference of a content item.

``rl_items.l_item_id`` is a nullable UUID that doubles as a lock:
NULL means no audio, the all-zero UUID means generation is in progress, any
other value references an l_items row. Code never compares against the
sentinel directly; it goes through AudioRef.

Shared by the server (ORM column mapping) and the client SDK (wire state).
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

# Lock value stored in rl_items.l_item_id while a job is running
AUDIO_IN_PROGRESS_SENTINEL = UUID("00000000-0000-0000-0000-000000000000")


class AudioRefState(str, Enum):
    """Lifecycle states of a content item's audio reference.

    States:
        empty: No audio and no job running
        in_progress: A job holds the lock (sentinel stored)
        ready: Audio exists and l_item_id references it
    """

    empty = "empty"
    in_progress = "in_progress"
    ready = "ready"


@dataclass(frozen=True)
class AudioRef:
    """Tagged view over the nullable l_item_id column.

    Exactly one of: Empty (state=empty, uid=None), Locked (state=in_progress,
    uid=None), Ready (state=ready, uid=<l_items.uid>).
    """

    state: AudioRefState
    uid: UUID | None = None

    @classmethod
    def empty(cls) -> "AudioRef":
        return cls(AudioRefState.empty)

    @classmethod
    def locked(cls) -> "AudioRef":
        return cls(AudioRefState.in_progress)

    @classmethod
    def ready(cls, uid: UUID) -> "AudioRef":
        if uid == AUDIO_IN_PROGRESS_SENTINEL:
            raise ValueError("sentinel is not a valid audio reference")
        return cls(AudioRefState.ready, uid)

    @classmethod
    def from_column(cls, value: UUID | str | None) -> "AudioRef":
        """Interpret a stored l_item_id value.

        Accepts UUIDs or strings; both the hyphenated and the 32-digit
        all-zero forms are read as the in-progress sentinel.
        """
        if value is None or value == "":
            return cls.empty()
        uid = value if isinstance(value, UUID) else UUID(str(value))
        if uid == AUDIO_IN_PROGRESS_SENTINEL:
            return cls.locked()
        return cls(AudioRefState.ready, uid)

    @classmethod
    def from_wire(cls, state: str, l_item_id: str | None = None) -> "AudioRef":
        """Build from the ``{state, l_item_id}`` polling response."""
        ref_state = AudioRefState(state)
        if ref_state is AudioRefState.ready:
            if not l_item_id:
                raise ValueError("ready audio reference without l_item_id")
            return cls.ready(UUID(l_item_id))
        return cls(ref_state)

    def to_column(self) -> UUID | None:
        """Value to store in l_item_id for this state."""
        if self.state is AudioRefState.empty:
            return None
        if self.state is AudioRefState.in_progress:
            return AUDIO_IN_PROGRESS_SENTINEL
        return self.uid

    @property
    def is_empty(self) -> bool:
        return self.state is AudioRefState.empty

    @property
    def is_locked(self) -> bool:
        return self.state is AudioRefState.in_progress

    @property
    def is_ready(self) -> bool:
        return self.state is AudioRefState.ready
