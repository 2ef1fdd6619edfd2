from pathlib import Path

from loanscan.extraction.exceptions import ExtractionError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_system_prompt(path: Path | None = None) -> str:
    """Load the system instruction describing the six-field schema.

    Args:
        path: Path to the prompt file.
              Defaults to the bundled system_prompt.txt.

    Raises:
        ExtractionError: if the file cannot be read.
    """
    return _read_prompt(path or _DEFAULT_PROMPT_DIR / "system_prompt.txt")


def load_user_prompt(path: Path | None = None) -> str:
    """Load the short instruction sent alongside each page image."""
    return _read_prompt(path or _DEFAULT_PROMPT_DIR / "user_prompt.txt").strip()


def _read_prompt(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to load prompt {path.name}: {exc}") from exc
