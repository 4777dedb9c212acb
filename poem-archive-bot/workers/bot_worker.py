#!/usr/bin/env python3
"""
Bot worker: polls Telegram, routes photos and commands, owns the process lock.
"""
import signal
import sys
import threading
import traceback
from typing import Optional

import httpx

from config.bot_strategy import BotConfig, ConfigurationError, load_bot_config
from config.settings import CONFLICT_BACKOFF_SECONDS, POLL_ERROR_BACKOFF_SECONDS
from models.data_models import PhotoItem
from models.telegram import Message, Update
from services.drive_service import get_drive_service
from services.telegram_service import TelegramApiError, get_telegram_service
from services.transcription_service import get_transcription_service
from utils.lock_utils import LockHeldError, ProcessLock
from utils.logging_config import setup_logging
from workers.media_group_worker import MediaGroupCoordinator
from workers.photo_worker import BotContext, process_batch, process_standalone

log = setup_logging("poem_bot.log", include_default_filters=True)

START_TEXT = (
    "👋 Hola! I'm your poetry digitizer (bot: {bot_type}).\n\n"
    "📚 Send me a photo of a handwritten poem with the notebook number in the caption.\n\n"
    "Example caption: \"libro 1\"\n\n"
    "Features:\n"
    "• Upload photo to Google Drive\n"
    "• Transcribe handwriting\n"
    "• Save poem as Markdown with metadata\n"
    "• Supports batch processing (send multiple photos at once!)\n"
    "• Process lock prevents multiple instances\n"
    "Ready when you are! 🖋️"
)

HELP_TEXT = (
    "📖 Help\n\n"
    "Send a photo with caption \"libro X\" where X is the notebook number.\n\n"
    "Features:\n"
    "• Single photo: Send one photo\n"
    "• Batch: Send multiple photos at once, caption on any one of them\n"
    "• Process lock prevents multiple instances\n"
    "• Multiple bot support: Set BOT_TYPE=secondary\n\n"
    "I'll organize everything into folders on Google Drive. (bot: {bot_type})"
)


def build_context(config: BotConfig) -> BotContext:
    return BotContext(
        config=config,
        telegram=get_telegram_service(config.telegram_token),
        drive=get_drive_service(config.drive_access_token),
        transcriber=get_transcription_service(config.openai_api_key),
    )


class PhotoBot:
    """Long-polling dispatcher."""

    def __init__(self, ctx: BotContext, coordinator: Optional[MediaGroupCoordinator] = None):
        self.ctx = ctx
        self.coordinator = coordinator or MediaGroupCoordinator(
            on_batch=lambda photos, caption: process_batch(ctx, photos, caption),
            on_single=lambda photo, caption: process_standalone(ctx, photo, caption),
        )
        self.shutdown_event = threading.Event()
        self.offset = 0

    def handle_command(self, message: Message) -> bool:
        words = (message.text or "").split()
        # "/help@poem_bot" in group chats
        command = words[0].split("@")[0].lower() if words else ""
        bot_type = self.ctx.config.bot_type.value
        if command == "/start":
            self.ctx.telegram.send_message(message.chat.id, START_TEXT.format(bot_type=bot_type))
            return True
        if command == "/help":
            self.ctx.telegram.send_message(message.chat.id, HELP_TEXT.format(bot_type=bot_type))
            return True
        return False

    def handle_update(self, update: Update):
        message = update.message
        if message is None:
            return
        if message.photo:
            item = PhotoItem(message=message, sizes=message.photo)
            if message.media_group_id:
                self.coordinator.add(message.media_group_id, item, message.caption)
            else:
                self.coordinator.submit_single(item, message.caption)
            return
        if message.text:
            self.handle_command(message)

    def poll_once(self):
        updates = self.ctx.telegram.get_updates(offset=self.offset)
        for update in updates:
            self.offset = max(self.offset, update.update_id + 1)
            try:
                self.handle_update(update)
            except Exception as e:
                log.error(f"❌ Failed to handle update {update.update_id}: {e}")
                log.error(traceback.format_exc())

    def run(self):
        bot_type = self.ctx.config.bot_type.value
        log.info(f"🤖 Bot started (bot: {bot_type})...")
        while not self.shutdown_event.is_set():
            try:
                self.poll_once()
            except TelegramApiError as e:
                if e.is_conflict:
                    log.error("⚠️ 409 Conflict detected: another bot instance is calling getUpdates() with this token")
                    log.error("   Possible causes: a stale bot process, or the bot running on another machine")
                    self.shutdown_event.wait(CONFLICT_BACKOFF_SECONDS)
                else:
                    log.error(f"❌ Polling error: {e}")
                    self.shutdown_event.wait(POLL_ERROR_BACKOFF_SECONDS)
            except httpx.HTTPError as e:
                log.error(f"❌ Polling transport error: {e}")
                self.shutdown_event.wait(POLL_ERROR_BACKOFF_SECONDS)
            except Exception as e:
                log.error(f"❌ Unexpected polling error: {e}")
                log.error(traceback.format_exc())
                self.shutdown_event.wait(POLL_ERROR_BACKOFF_SECONDS)
        log.info("🛑 Polling stopped.")

    def stop(self, *_):
        log.warning("🛑 Shutdown requested, finishing current work...")
        self.shutdown_event.set()

    def close(self):
        self.coordinator.shutdown(wait=True)
        self.ctx.telegram.close()
        self.ctx.drive.close()


def main() -> int:
    """Main bot function. Returns the process exit code."""
    try:
        config = load_bot_config()
    except ConfigurationError as e:
        log.error(f"❌ {e}")
        return 1

    log.info(f"🔍 Bot Type: {config.bot_type.value}")
    lock = ProcessLock(config.lock_path)
    try:
        lock.acquire()
    except LockHeldError as e:
        log.error("❌ Bot is already running!")
        log.error(f"   Lock file: {e.path} (pid {e.pid})")
        log.error(f"   Stop the running bot first, or remove the lock file: rm {e.path}")
        return 1

    bot = None
    try:
        bot = PhotoBot(build_context(config))
        signal.signal(signal.SIGINT, bot.stop)
        signal.signal(signal.SIGTERM, bot.stop)
        bot.run()
    finally:
        if bot is not None:
            bot.close()
        lock.release()
        log.info("👋 Goodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
