"""Configuration loading, writing, and project initialization.

Reads TOML config files using stdlib ``tomllib`` and writes them using
``tomli_w``.  Depends only on ``models.py``.
"""

from __future__ import annotations

import sys
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

from expense_ledger.models import AppConfig

CONFIG_FILE = "config.toml"

EXPORT_FORMATS = ("csv", "xlsx")

_CONFIG_HEADER = """\
# Expense Ledger configuration
#
# [general]  state_file: JSON file holding expenses, categories and budgets.
#            export_dir: where exports and templates are written.
# [import]   allow_partial: commit the valid rows of a file that has errors.
# [export]   format: default file format, "csv" or "xlsx".

"""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(root: Path) -> AppConfig:
    """Load ``config.toml`` from *root* and return an :class:`AppConfig`.

    Args:
        root: Project root directory containing ``config.toml``.

    Returns:
        A fully-populated :class:`AppConfig` instance.  Missing keys take
        their defaults.

    Raises:
        FileNotFoundError: If ``config.toml`` does not exist.
        ValueError: If ``export.format`` is not "csv" or "xlsx".
    """
    data = _read_toml(Path(root) / CONFIG_FILE)

    general = data.get("general", {})
    importing = data.get("import", {})
    exporting = data.get("export", {})

    defaults = AppConfig()
    export_format = str(exporting.get("format", defaults.export_format)).lower()
    if export_format not in EXPORT_FORMATS:
        raise ValueError(
            f"Invalid export format {export_format!r} in {CONFIG_FILE}. "
            f"Expected one of: {', '.join(EXPORT_FORMATS)}"
        )

    return AppConfig(
        state_file=general.get("state_file", defaults.state_file),
        export_dir=general.get("export_dir", defaults.export_dir),
        allow_partial=bool(importing.get("allow_partial", defaults.allow_partial)),
        export_format=export_format,
    )


def save_config(root: Path, config: AppConfig) -> Path:
    """Write *config* to ``config.toml`` in *root*, replacing the file.

    Returns:
        The path of the written file.
    """
    path = Path(root) / CONFIG_FILE
    body = tomli_w.dumps(
        {
            "general": {
                "state_file": config.state_file,
                "export_dir": config.export_dir,
            },
            "import": {"allow_partial": config.allow_partial},
            "export": {"format": config.export_format},
        }
    )
    path.write_text(_CONFIG_HEADER + body, encoding="utf-8")
    return path


def initialize(target_dir: Path, config: AppConfig | None = None) -> AppConfig:
    """Create the project directory, export directory and default config.

    Idempotent: existing directories are left alone and an existing
    ``config.toml`` is **not** overwritten.

    Args:
        target_dir: The directory in which to create the project structure.
        config: Settings to write when no config file exists yet.

    Returns:
        The configuration in effect after initialization.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    if not (target_dir / CONFIG_FILE).exists():
        save_config(target_dir, config or AppConfig())

    effective = load_config(target_dir)
    (target_dir / effective.export_dir).mkdir(parents=True, exist_ok=True)
    return effective


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_toml(path: Path) -> dict:
    """Read and parse a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)
