#!/usr/bin/env python3
"""
Photo worker: one photo in, one transcript and one image out in the archive.
"""
import traceback
from dataclasses import dataclass
from typing import List, Optional

from config.bot_strategy import BotConfig
from config.settings import DISPLAY_LIMIT_BATCH, DISPLAY_LIMIT_SINGLE
from models.data_models import BatchSummary, PhotoItem, ProcessingResult, StatusMessage, Transcript
from processors.image_processor import NormalizationError, normalize_image
from services.drive_service import DriveApiError, DriveService, resolve_notebook_folder
from services.telegram_service import DownloadError, TelegramApiError, TelegramService
from services.transcription_service import TranscriptionEmptyError, TranscriptionService
from utils.logging_config import setup_logging
from utils.metrics import JobMetrics
from utils.text_utils import (
    build_transcript_markdown,
    derive_title,
    notebook_label,
    parse_notebook_number,
    sanitize_filename,
    truncate_for_display,
)

log = setup_logging("poem_bot.log", include_default_filters=True)

MISSING_NOTEBOOK_MESSAGE = '❌ Please include the notebook number in the caption (e.g., "libro 1", "libro 2")'
UNREADABLE_MESSAGE = "❌ Could not read text from this image. Please try with a clearer photo."
CONFLICT_MESSAGE = (
    "⚠️ Bot is experiencing API conflicts.\n\n"
    "This happens when another bot process is using the same bot token.\n\n"
    "Possible causes:\n"
    "• A stale bot process from a previous session\n"
    "• Bot running on another machine/location\n\n"
    "If this continues, wait 30 seconds for Telegram to resolve."
)


@dataclass
class BotContext:
    """External collaborators shared by every photo of a run."""
    config: BotConfig
    telegram: TelegramService
    drive: DriveService
    transcriber: TranscriptionService


def describe_failure(exc: Exception) -> str:
    """Short user-facing description. Stack traces stay in the log."""
    if isinstance(exc, TranscriptionEmptyError):
        return "Could not read text from this image"
    if isinstance(exc, DownloadError):
        return f"Download failed ({exc.status_code})"
    if isinstance(exc, NormalizationError):
        return f"Could not prepare image: {exc.__cause__ or exc}"
    if isinstance(exc, DriveApiError):
        return f"Drive error: {exc.message}"
    if isinstance(exc, TelegramApiError):
        return f"Telegram error: {exc.description}"
    return str(exc) or exc.__class__.__name__


def _report_failure(ctx: BotContext, chat_id: int, status: Optional[StatusMessage], exc: Exception):
    """Best-effort notification; a failed notification must not escape the item."""
    try:
        if isinstance(exc, TranscriptionEmptyError) and status is not None:
            ctx.telegram.edit_message_text(status, UNREADABLE_MESSAGE)
        elif isinstance(exc, TelegramApiError) and exc.is_conflict:
            log.error("⚠️ 409 Conflict detected: another bot instance is calling getUpdates()")
            ctx.telegram.send_message(chat_id, CONFLICT_MESSAGE)
        else:
            ctx.telegram.send_message(chat_id, f"❌ Error: {describe_failure(exc)}\n\nCheck bot logs for more details.")
    except Exception as notify_error:
        log.error(f"❌ Could not notify chat {chat_id}: {notify_error}")


def _result_message(transcript: Transcript, index: Optional[int], total: Optional[int], in_batch: bool) -> str:
    limit = DISPLAY_LIMIT_BATCH if in_batch else DISPLAY_LIMIT_SINGLE
    display_text = truncate_for_display(transcript.text, limit)
    heading = f"Poema {index}/{total}" if in_batch else "Done"
    return (
        f"✅ {heading}!\n\n"
        f"📁 Libro: {transcript.notebook}\n"
        f"📝 Título: \"{transcript.title}\"\n\n"
        f"📄 Poema:\n\n"
        f"{display_text}\n\n"
        f"📄 Texto guardado en Google Drive\n"
        f"🖼️ Imagen guardada en Google Drive"
    )


def process_single_photo(
    ctx: BotContext,
    photo: PhotoItem,
    notebook: str,
    index: Optional[int] = None,
    total: Optional[int] = None,
    status: Optional[StatusMessage] = None,
) -> ProcessingResult:
    """
    Run one photo through download, normalize, folder lookup, transcription and storage.

    Args:
        ctx: Shared collaborators.
        photo: The inbound photo.
        notebook: Notebook number parsed from the caption.
        index: 1-based position within a batch.
        total: Batch size.
        status: Shared progress message when part of a batch; a new one is sent otherwise.

    Returns:
        ProcessingResult: never raises.
    """
    in_batch = status is not None
    chat_id = photo.chat_id
    metrics = JobMetrics(
        worker="photo",
        job_id=f"{chat_id}:{photo.message.message_id}",
        notebook=notebook,
        bot_type=ctx.config.bot_type.value,
    )

    try:
        with metrics.timer("total_processing"):
            if in_batch:
                ctx.telegram.edit_message_text(status, f"📚 Processing photo {index}/{total} for {notebook_label(notebook)}...")
            else:
                status = ctx.telegram.send_message(chat_id, f"📚 Processing photo for {notebook_label(notebook)}...")

            file_id = photo.largest().file_id
            log.info(f"📥 [Photo {index or 1}/{total or 1}] File ID: {file_id}")

            with metrics.timer("download"):
                original = ctx.telegram.download_photo(file_id)
            log.info(f"   Downloaded {len(original)} bytes")

            with metrics.timer("normalize"):
                normalized = normalize_image(original)
            log.info(f"   Preprocessed image size: {len(normalized)} bytes")

            with metrics.timer("folder_lookup"):
                folder_id = resolve_notebook_folder(ctx.drive, notebook, ctx.config.root_folder_id)

            with metrics.timer("transcribe"):
                result = ctx.transcriber.transcribe(normalized)

            title = derive_title(result.text)
            transcript = Transcript(text=result.text, title=title, notebook=notebook, engine=result.engine)
            image_name = f"{title}.jpg"
            text_name = f"{sanitize_filename(title)}.md"

            with metrics.timer("persist"):
                markdown = build_transcript_markdown(title, transcript.text, notebook, image_name)
                text_id = ctx.drive.create_object(folder_id, text_name, markdown.encode("utf-8"), "text/markdown")
                log.info(f"   Text file created: {text_id}")
                image_id = ctx.drive.create_object(folder_id, image_name, original, "image/jpeg")
                log.info(f"   Image file created: {image_id}")
                ctx.drive.make_public(text_id)
                ctx.drive.make_public(image_id)

            metrics.mark_success(engine=result.engine, text_length=len(transcript.text))

            ctx.telegram.send_message(chat_id, _result_message(transcript, index, total, in_batch))

        return ProcessingResult(success=True, title=title)

    except Exception as e:
        log.error(f"❌ Error processing photo: {e}")
        log.error(traceback.format_exc())
        metrics.mark_failure(e)
        _report_failure(ctx, chat_id, status, e)
        return ProcessingResult(success=False, error=describe_failure(e))

    finally:
        metrics.emit(log)


def build_batch_summary(summary: BatchSummary, bot_type: str) -> str:
    successful = len(summary.succeeded)
    failed = summary.failed

    message = (
        f"🎉 Batch complete for {notebook_label(summary.notebook)}! (bot: {bot_type})\n\n"
        f"📊 {successful}/{summary.total} successful"
    )
    if failed:
        message += f"\n⚠️ {len(failed)} failed"
    if summary.succeeded:
        titles = "\n".join(f"✅ {r.title}" for r in summary.succeeded)
        message += f"\n\n📝 Poemas procesados:\n{titles}"
    if failed:
        errors = "\n".join(f"❌ {i}. {r.error}" for i, r in enumerate(failed, start=1))
        message += f"\n\n❌ Errores:\n{errors}"
    return message


def process_batch(ctx: BotContext, photos: List[PhotoItem], caption: Optional[str]) -> Optional[BatchSummary]:
    """Process a media group in submission order under one notebook."""
    chat_id = photos[0].chat_id
    bot_type = ctx.config.bot_type.value

    notebook = parse_notebook_number(caption)
    if not notebook:
        ctx.telegram.send_message(chat_id, MISSING_NOTEBOOK_MESSAGE)
        return None

    total = len(photos)
    status = ctx.telegram.send_message(
        chat_id,
        f"📚 Starting batch process for {notebook_label(notebook)}...\n\n"
        f"📸 Processing {total} photo(s)... (bot: {bot_type})",
    )
    log.info(f"📚 BATCH PROCESSING: {total} photos for {notebook_label(notebook)} (bot: {bot_type})")

    summary = BatchSummary(notebook=notebook)
    for index, photo in enumerate(photos, start=1):
        summary.results.append(process_single_photo(ctx, photo, notebook, index, total, status))

    log.info(f"📊 BATCH COMPLETE: {len(summary.succeeded)}/{total} successful, {len(summary.failed)} failed (bot: {bot_type})")
    ctx.telegram.send_message(chat_id, build_batch_summary(summary, bot_type))
    return summary


def process_standalone(ctx: BotContext, photo: PhotoItem, caption: Optional[str]) -> Optional[ProcessingResult]:
    """A photo outside any media group, or a group of one."""
    notebook = parse_notebook_number(caption)
    if not notebook:
        ctx.telegram.send_message(photo.chat_id, MISSING_NOTEBOOK_MESSAGE)
        return None
    return process_single_photo(ctx, photo, notebook)
