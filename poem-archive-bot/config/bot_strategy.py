import json
import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from config.settings import BOT_TYPE, LOCK_DIR, PROJECT_ROOT


class ConfigurationError(Exception):
    """Missing or invalid startup configuration. Fatal."""


class BotType(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class BotConfig:
    bot_type: BotType
    telegram_token: str
    drive_access_token: str
    root_folder_id: str
    lock_path: str
    openai_api_key: Optional[str] = None


class BaseBotStrategy:
    bot_type: BotType
    telegram_token_env: str
    token_file_default: str

    def _read_drive_token(self) -> str:
        token = os.getenv("GOOGLE_ACCESS_TOKEN", "").strip()
        if token:
            return token

        token_file = os.getenv("GOOGLE_TOKEN_FILE", self.token_file_default)
        if not os.path.isabs(token_file):
            token_file = os.path.join(PROJECT_ROOT, token_file)
        try:
            with open(token_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"OAuth token file not found: {token_file}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"OAuth token file is not valid JSON ({token_file}): {e}")

        token = (data.get("access_token") or "").strip()
        if not token:
            raise ConfigurationError(f"OAuth token file has no access_token: {token_file}")
        return token

    def build(self) -> BotConfig:
        telegram_token = os.getenv(self.telegram_token_env, "").strip()
        if not telegram_token:
            raise ConfigurationError(
                f"Bot token not found for '{self.bot_type.value}' bot. Set {self.telegram_token_env}."
            )

        root_folder_id = os.getenv("DRIVE_ROOT_FOLDER_ID", "").strip()
        if not root_folder_id:
            raise ConfigurationError("Drive root folder not configured. Set DRIVE_ROOT_FOLDER_ID.")

        return BotConfig(
            bot_type=self.bot_type,
            telegram_token=telegram_token,
            drive_access_token=self._read_drive_token(),
            root_folder_id=root_folder_id,
            lock_path=os.path.join(LOCK_DIR, f".poem-bot-{self.bot_type.value}.pid"),
            openai_api_key=os.getenv("OPENAI_API_KEY", "").strip() or None,
        )


class PrimaryBotStrategy(BaseBotStrategy):
    bot_type = BotType.PRIMARY
    telegram_token_env = "TELEGRAM_TOKEN_PRIMARY"
    token_file_default = "oauth-token.json"


class SecondaryBotStrategy(BaseBotStrategy):
    bot_type = BotType.SECONDARY
    telegram_token_env = "TELEGRAM_TOKEN_SECONDARY"
    token_file_default = "oauth-token-secondary.json"


_STRATEGIES = {
    BotType.PRIMARY: PrimaryBotStrategy,
    BotType.SECONDARY: SecondaryBotStrategy,
}


def get_bot_strategy(bot_type: str = BOT_TYPE) -> BaseBotStrategy:
    try:
        return _STRATEGIES[BotType(bot_type)]()
    except ValueError:
        raise ConfigurationError(f"Unknown BOT_TYPE '{bot_type}' (expected 'primary' or 'secondary')")


@lru_cache(maxsize=1)
def load_bot_config() -> BotConfig:
    """Resolve the active identity once per process."""
    return get_bot_strategy().build()
