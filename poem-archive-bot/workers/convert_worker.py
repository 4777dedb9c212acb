#!/usr/bin/env python3
"""
Migrate legacy plain-text transcripts in the archive to Markdown with front matter.
"""
import argparse
import re
import traceback
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

import httpx

from config.bot_strategy import ConfigurationError, load_bot_config
from services.drive_service import DriveApiError, DriveService, get_drive_service
from utils.logging_config import setup_logging
from utils.text_utils import build_front_matter, derive_title, fix_mojibake, notebook_label

log = setup_logging("poem_convert.log")

BOOK_PATTERN = re.compile(r"[Ll]ibro[\s-]*(\d+)")
TXT_QUERY = "name contains '.txt' and mimeType = 'text/plain' and trashed = false"
UNKNOWN_BOOK = "Desconocido"
UNTITLED = "Sin título"


@dataclass
class ConversionStats:
    converted: int = 0
    skipped: int = 0
    errors: int = 0


def extract_book_number(file_name: Optional[str], folder_name: Optional[str]) -> Optional[str]:
    """Folder name first, then file name."""
    for candidate in (folder_name, file_name):
        if candidate:
            match = BOOK_PATTERN.search(candidate)
            if match:
                return match.group(1)
    return None


def txt_to_markdown(content: str, book: Optional[str], file_name: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    header = build_front_matter({
        "title": derive_title(content, placeholder=UNTITLED),
        "book": notebook_label(book) if book else UNKNOWN_BOOK,
        "date": today.isoformat(),
        "language": "es",
        "original_file": file_name,
    })
    return f"{header}\n\n{content}\n"


def markdown_name(file_name: str) -> str:
    return re.sub(r"\.txt$", "", file_name, flags=re.IGNORECASE) + ".md"


def convert_file(drive: DriveService, entry: Dict, root_folder_id: str, folder_names: Dict[str, str], dry_run: bool = False) -> bool:
    """Convert one .txt object. Returns False when it was skipped."""
    name = entry["name"]
    parent_id = (entry.get("parents") or [root_folder_id])[0]

    if parent_id not in folder_names:
        folder_names[parent_id] = drive.get_metadata(parent_id, fields="name").get("name", "")
    book = extract_book_number(name, folder_names[parent_id])
    if not book:
        log.info(f"⚠️  Could not determine book number for {name}, using '{UNKNOWN_BOOK}'")

    target = markdown_name(name)
    if dry_run:
        log.info(f"📝 Would convert {name} -> {target}")
        return False

    content = fix_mojibake(drive.download(entry["id"]).decode("utf-8", errors="replace"))
    markdown = txt_to_markdown(content, book, name)
    drive.create_object(parent_id, target, markdown.encode("utf-8"), "text/markdown")
    drive.delete(entry["id"])
    log.info(f"✅ Converted to: {target}")
    return True


def convert_files(drive: DriveService, root_folder_id: str, dry_run: bool = False) -> ConversionStats:
    stats = ConversionStats()
    files = drive.list_files(TXT_QUERY)
    if not files:
        log.info("✅ No .txt files found to convert.")
        return stats

    log.info(f"📂 Found {len(files)} .txt file(s) to convert.")
    folder_names: Dict[str, str] = {}
    for entry in files:
        try:
            log.info(f"📄 Processing: {entry['name']}")
            if convert_file(drive, entry, root_folder_id, folder_names, dry_run=dry_run):
                stats.converted += 1
            else:
                stats.skipped += 1
        except (DriveApiError, httpx.HTTPError, KeyError, UnicodeError) as e:
            log.error(f"❌ Error converting {entry.get('name')}: {e}")
            log.debug(traceback.format_exc())
            stats.errors += 1

    log.info(f"Conversion complete! Converted: {stats.converted} Skipped: {stats.skipped} Errors: {stats.errors}")
    return stats


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Convert archived .txt transcripts to Markdown")
    parser.add_argument("--dry-run", action="store_true", help="List files without converting them")
    args = parser.parse_args(argv)

    try:
        config = load_bot_config()
    except ConfigurationError as e:
        log.error(f"❌ {e}")
        return 1

    drive = get_drive_service(config.drive_access_token)
    try:
        stats = convert_files(drive, config.root_folder_id, dry_run=args.dry_run)
    finally:
        drive.close()
    return 1 if stats.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
