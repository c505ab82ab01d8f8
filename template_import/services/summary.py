from __future__ import annotations

from ..models.processing_result import ImportRunResult

"""SUMMARY line rendering.

Format:
SUMMARY files={files} rows={rows} local_errors={n} preflight_create={n}
preflight_errors={n} created={n} failed={n} aborted={n} mode={mode}
applied={true|false} elapsed_sec={elapsed}

mode is "dry_run" when nothing was committed on purpose, "none" when there
were no valid rows to commit.
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(value: float) -> str:
    """Render seconds without scientific notation; integral values without '.0'."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportRunResult) -> str:
    """Render the SUMMARY line for one import run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> from template_import.models.import_row import BatchParseResult
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = ImportRunResult(
        ...     total_files=0, parse=BatchParseResult(), preview=None, commit=None,
        ...     dry_run=False, start_time=t, end_time=t, elapsed_seconds=0.0,
        ... )
        >>> render_summary_line(r)  # doctest: +ELLIPSIS
        'SUMMARY files=0 rows=0 local_errors=0 preflight_create=0 ... mode=none applied=false elapsed_sec=0'
    """
    if result.commit is not None:
        mode = result.commit.mode.value
        applied = result.commit.applied
    else:
        mode = "dry_run" if result.dry_run and result.preview is not None else "none"
        applied = False

    preflight_create = result.preview.create_count if result.preview is not None else 0

    return (
        f"SUMMARY files={result.total_files} "
        f"rows={len(result.parse.rows)} "
        f"local_errors={result.local_errors} "
        f"preflight_create={preflight_create} "
        f"preflight_errors={result.preflight_errors} "
        f"created={result.created} "
        f"failed={result.failed} "
        f"aborted={result.aborted} "
        f"mode={mode} "
        f"applied={'true' if applied else 'false'} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )
