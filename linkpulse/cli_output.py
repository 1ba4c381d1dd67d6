"""Output and formatting helpers for the CLI and MCP tools."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .result import CheckResult


def format_result_text(result: CheckResult) -> str:
    """Format one result as a status line followed by indented diagnostics.

    Example output:
    dead   https://example.com/#intro
      missing-anchor: Unexpected missing anchor element on ...
    """
    if result.is_alive:
        line = f"alive  {result.request_url}"
        if result.url and result.url != result.request_url:
            kind = "permanent" if result.permanent else "temporary"
            line += f" -> {result.url} ({kind})"
    else:
        line = f"dead   {result.request_url}"

    lines = [line]
    for message in result.messages:
        lines.append(f"  {message.rule_id}: {message.reason}")
    return "\n".join(lines)


def format_results_text(
    results: List[CheckResult], stats: Optional[Dict[str, Any]] = None
) -> str:
    """Format results as plain text, with a summary line for site checks."""
    lines = [format_result_text(result) for result in results]
    if stats is not None:
        lines.append("")
        lines.append(
            f"{stats.get('total', 0)} checked: {stats.get('alive', 0)} alive, "
            f"{stats.get('dead', 0)} dead, {stats.get('warnings', 0)} warning(s)"
        )
    return "\n".join(lines)


def format_results_markdown(
    results: List[CheckResult], stats: Optional[Dict[str, Any]] = None
) -> str:
    """Format results as markdown."""
    lines = [f"# Link check: {len(results)} URL(s)", ""]
    if stats is not None:
        lines.append(
            f"_{stats.get('alive', 0)} alive, {stats.get('dead', 0)} dead, "
            f"{stats.get('warnings', 0)} warning(s)_"
        )
        lines.append("")

    for result in results:
        lines.append(f"## {result.status}: {result.request_url}")
        if result.url:
            lines.append(f"Final URL: {result.url}")
        if result.permanent is not None:
            lines.append(f"Permanent: {'yes' if result.permanent else 'no'}")
        for message in result.messages:
            label = "error" if message.fatal else "warning"
            lines.append(f"- **{label}** `{message.rule_id}`: {message.reason}")
        lines.append("")

    return "\n".join(lines)


def results_to_json(
    results: List[CheckResult], stats: Optional[Dict[str, Any]] = None
) -> str:
    """Serialize results (and site stats, when given) as JSON."""
    items = [result.to_dict() for result in results]
    payload: Any = items if stats is None else {"results": items, "stats": stats}
    return json.dumps(payload, indent=2, ensure_ascii=False)


def write_output(
    results: List[CheckResult],
    output: Optional[str],
    json_output: bool,
    stats: Optional[Dict[str, Any]] = None,
) -> None:
    """Write the report to *output*, or print it when no path is given."""
    if json_output:
        text = results_to_json(results, stats)
    else:
        text = format_results_text(results, stats)

    if output is None:
        print(text)
        return

    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n")
    logging.info("Wrote %d result(s) to %s", len(results), path)
