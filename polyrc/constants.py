from typing import Final, Tuple


APP_NAME: Final[str] = "polyrc"

CONFIG_FILENAME: Final[str] = "config.json"
STORE_DIRNAME: Final[str] = "store"
STORE_MANIFEST_FILENAME: Final[str] = "polyrc.json"
STORE_RULES_DIRNAME: Final[str] = "rules"
STORE_RECORD_SUFFIX: Final[str] = ".yml"
STORE_VERSION: Final[str] = "1"

USER_PROJECT: Final[str] = "_user"

DEFAULT_REMOTE_NAME: Final[str] = "origin"
DEFAULT_BRANCH: Final[str] = "main"
DEFAULT_LOCK_RETRIES: Final[int] = 3
LOCK_RETRY_DELAY_SECONDS: Final[float] = 0.2

CLAUDE_FILENAME: Final[str] = "CLAUDE.md"
GEMINI_FILENAME: Final[str] = "GEMINI.md"
SKILL_FILENAME: Final[str] = "SKILL.md"
SETTINGS_FILENAME: Final[str] = "settings.json"
COPILOT_MAIN_FILENAME: Final[str] = "copilot-instructions.md"
COPILOT_INSTRUCTIONS_SUFFIX: Final[str] = ".instructions.md"
WINDSURF_GLOBAL_FILENAME: Final[str] = "global_rules.md"

WINDSURF_FILE_CHAR_LIMIT: Final[int] = 6_000
WINDSURF_TOTAL_CHAR_LIMIT: Final[int] = 12_000

SECTION_MARKER_PREFIX: Final[str] = "polyrc:rule"
SETTINGS_FENCE_INFO: Final[str] = "json settings"

SCOPE_VALUES: Final[Tuple[str, ...]] = ("user", "project", "path")
