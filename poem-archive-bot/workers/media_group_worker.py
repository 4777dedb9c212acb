#!/usr/bin/env python3
"""
Media group collection.

Telegram delivers an album as one update per photo sharing a media_group_id.
Photos are collected until the group has been quiet for the collection window,
then the whole group is handed to the photo worker at once.
"""
import threading
import traceback
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from config.settings import MEDIA_GROUP_WINDOW_SECONDS
from models.data_models import PhotoGroup, PhotoItem
from utils.logging_config import setup_logging

log = setup_logging("poem_bot.log", include_default_filters=True)

BatchHandler = Callable[[List[PhotoItem], Optional[str]], object]
SingleHandler = Callable[[PhotoItem, Optional[str]], object]


class MediaGroupCoordinator:
    """
    Owns the group_id -> PhotoGroup map.

    The map and the timers are only touched under self.lock. A group is popped
    under the lock before it is processed, so a late photo for the same
    group_id starts a new group instead of joining one already in flight.
    Processing runs on a single worker thread to keep groups in arrival order.
    """

    def __init__(
        self,
        on_batch: BatchHandler,
        on_single: SingleHandler,
        window: float = MEDIA_GROUP_WINDOW_SECONDS,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.on_batch = on_batch
        self.on_single = on_single
        self.window = window
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="photo-worker")
        self.lock = threading.Lock()
        self.groups: Dict[str, PhotoGroup] = {}
        self.timers: Dict[str, threading.Timer] = {}
        self.closed = False

    def add(self, group_id: str, item: PhotoItem, caption: Optional[str] = None):
        """Append a photo to its group and restart the group's window."""
        with self.lock:
            if self.closed:
                log.info(f"⛔ Ignoring photo for group {group_id}; shutting down")
                return
            group = self.groups.get(group_id)
            if group is None:
                group = PhotoGroup(group_id=group_id)
                self.groups[group_id] = group
            group.add(item, caption)

            timer = self.timers.pop(group_id, None)
            if timer is not None:
                timer.cancel()
            timer = threading.Timer(self.window, self.flush, args=(group_id,))
            timer.daemon = True
            self.timers[group_id] = timer
            timer.start()
        log.info(f"🧩 Group {group_id}: {len(group.items)} photo(s) collected")

    def take(self, group_id: str) -> Optional[PhotoGroup]:
        """Remove and return the group; None if already taken."""
        with self.lock:
            self.timers.pop(group_id, None)
            return self.groups.pop(group_id, None)

    def pending(self) -> int:
        with self.lock:
            return len(self.groups)

    def flush(self, group_id: str) -> Optional[Future]:
        """Window elapsed: take the group and queue it for processing."""
        group = self.take(group_id)
        if group is None or not group.items:
            return None
        try:
            return self.executor.submit(self.dispatch, group)
        except RuntimeError:
            log.error(f"❌ Executor closed; dropping group {group_id} ({len(group.items)} photo(s))")
            return None

    def dispatch(self, group: PhotoGroup):
        try:
            if len(group.items) > 1:
                self.on_batch(group.items, group.caption)
            else:
                self.on_single(group.items[0], group.caption)
        except Exception as e:
            log.error(f"❌ Failed to process group {group.group_id}: {e}")
            log.error(traceback.format_exc())

    def submit_single(self, item: PhotoItem, caption: Optional[str]) -> Optional[Future]:
        """Queue a photo that is not part of any group behind pending work."""
        try:
            return self.executor.submit(self.dispatch, PhotoGroup(group_id=f"single:{item.message.message_id}", items=[item], caption=caption))
        except RuntimeError:
            log.error("❌ Executor closed; dropping photo")
            return None

    def shutdown(self, wait: bool = True):
        """Cancel pending windows and stop the worker thread."""
        with self.lock:
            self.closed = True
            for timer in self.timers.values():
                timer.cancel()
            dropped = sum(len(g.items) for g in self.groups.values())
            self.timers.clear()
            self.groups.clear()
        if dropped:
            log.info(f"⛔ Dropped {dropped} uncollected photo(s) on shutdown")
        self.executor.shutdown(wait=wait)
