"""Configuration constants for figma-node-export."""

import os
from pathlib import Path

API_ROOT: str = "https://api.figma.com/v1"

# Environment variables read by the CLI and the MCP server. The library itself
# only takes explicit arguments.
TOKEN_ENV_VAR: str = "FIGMA_PERSONAL_TOKEN"
CACHE_DIR_ENV_VAR: str = "FIGMA_CACHE_DIR"

# API token location. First file found is used.
TOKEN_FILES: list[Path] = [
    Path("~/.config/figma-token.txt").expanduser(),
    Path("~/.config/secret/figma-token.txt").expanduser(),
]

DEFAULT_CACHE_DIR: Path = Path(".cache")

# Node metadata responses are reused for a day.
DEFAULT_CACHE_TTL: float = 24 * 60 * 60

DEFAULT_OUTPUT_DIR: Path = Path("./output")


def resolve_token(explicit: str | None = None) -> str:
    """Find the API token: explicit value, then environment, then token files."""
    if explicit:
        return explicit
    from_env = os.environ.get(TOKEN_ENV_VAR, "").strip()
    if from_env:
        return from_env
    for token_path in TOKEN_FILES:
        try:
            token = token_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            continue
        if token:
            return token
    msg = (
        f"Figma token is required: pass --token, set {TOKEN_ENV_VAR}, "
        f"or create one of {[str(p) for p in TOKEN_FILES]!r}"
    )
    raise RuntimeError(msg)


def resolve_cache_dir(explicit: Path | None = None) -> Path:
    """Cache directory from the explicit value, the environment, or the default."""
    if explicit is not None:
        return explicit
    from_env = os.environ.get(CACHE_DIR_ENV_VAR)
    return Path(from_env) if from_env else DEFAULT_CACHE_DIR
