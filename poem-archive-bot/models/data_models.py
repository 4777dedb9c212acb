#!/usr/bin/env python3
"""
Data models for the photo ingestion pipeline.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from models.telegram import Message, PhotoSize


@dataclass
class PhotoItem:
    """One inbound photo, consumed once by the photo worker."""
    message: Message
    sizes: List[PhotoSize]
    position: int = 1

    @property
    def chat_id(self) -> int:
        return self.message.chat.id

    def largest(self) -> PhotoSize:
        """Largest resolution variant. Telegram lists sizes smallest first."""
        return self.sizes[-1]


@dataclass
class PhotoGroup:
    """Photos sharing a media_group_id, collected until the window closes."""
    group_id: str
    items: List[PhotoItem] = field(default_factory=list)
    caption: Optional[str] = None

    def add(self, item: PhotoItem, caption: Optional[str] = None):
        item.position = len(self.items) + 1
        self.items.append(item)
        # First non-empty caption wins
        if self.caption is None and caption and caption.strip():
            self.caption = caption


@dataclass(frozen=True)
class Transcript:
    """Text extracted from one photo."""
    text: str
    title: str
    notebook: str
    engine: str


@dataclass(frozen=True)
class StatusMessage:
    """The progress message shared by a run and edited in place."""
    chat_id: int
    message_id: int


@dataclass
class ProcessingResult:
    """Represents the outcome of one photo."""
    success: bool
    title: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchSummary:
    """Aggregated outcome of a media group."""
    notebook: str
    results: List[ProcessingResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> List[ProcessingResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[ProcessingResult]:
        return [r for r in self.results if not r.success]
