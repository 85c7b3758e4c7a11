"""
Validation Report Generation.

Renders the outcome of a horizon validation run as an audit report in JSON
or Markdown, for operators deciding what to do with a rejected state.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field

from .engine import ValidationResult

logger = logging.getLogger(__name__)


class ValidationReport(BaseModel):
    """Audit report of a horizon validation run."""

    # Identification
    report_id: str = ""
    generated_at: str = ""
    validator_version: str = ""

    # Subject
    network: str = ""
    height: int = 0
    header_hash: Optional[str] = None

    # Results
    is_valid: bool = False
    duration_ms: float = 0.0
    stage_results: dict[str, dict[str, Any]] = Field(default_factory=dict)
    errors: list[dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary."""
        return {
            "report_id": self.report_id,
            "generated_at": self.generated_at,
            "validator_version": self.validator_version,
            "subject": {
                "network": self.network,
                "height": self.height,
                "header_hash": self.header_hash,
            },
            "result": {
                "is_valid": self.is_valid,
                "duration_ms": self.duration_ms,
            },
            "stage_results": self.stage_results,
            "errors": self.errors,
        }

    def to_json(self, indent: bool = True) -> str:
        """Convert report to JSON string."""
        option = orjson.OPT_INDENT_2 if indent else 0
        return orjson.dumps(self.to_dict(), option=option).decode()

    def to_markdown(self) -> str:
        """Generate markdown-formatted report."""
        header_hash = f"`{self.header_hash[:16]}...`" if self.header_hash else "-"
        lines = [
            "# Horizon State Validation Report",
            "",
            f"**Report ID**: `{self.report_id}`",
            f"**Generated**: {self.generated_at}",
            f"**Validator Version**: {self.validator_version}",
            "",
            "---",
            "",
            "## Subject",
            "",
            "| Property | Value |",
            "|----------|-------|",
            f"| **Network** | {self.network} |",
            f"| **Height** | {self.height} |",
            f"| **Header Hash** | {header_hash} |",
            "",
            "## Validation Result",
            "",
            "| Property | Value |",
            "|----------|-------|",
            f"| **Valid** | {'✅ Yes' if self.is_valid else '❌ No'} |",
            f"| **Duration** | {self.duration_ms:.2f}ms |",
            "",
        ]

        if self.stage_results:
            lines.extend([
                "## Stage Results",
                "",
                "| Stage | Status | Details |",
                "|-------|--------|---------|",
            ])
            icons = {"passed": "✅", "failed": "❌", "skipped": "⏭"}
            for stage, result in self.stage_results.items():
                status = icons.get(result.get("status", ""), "?")
                lines.append(f"| {stage} | {status} | {result.get('message', '-')} |")
            lines.append("")

        if self.errors:
            lines.extend([
                "## Errors",
                "",
            ])
            for err in self.errors:
                lines.append(f"- **{err.get('code_name')}**: {err.get('message')}")
            lines.append("")

        return "\n".join(lines)


def generate_report(
    result: ValidationResult,
    height: int,
    network: str,
    header_hash: Optional[str] = None,
) -> ValidationReport:
    """
    Generate an audit report for a validation run.

    Args:
        result: ValidationResult from the engine
        height: Horizon height that was validated
        network: Network name
        header_hash: Hash of the header at height, if known

    Returns:
        ValidationReport with full details
    """
    from ... import __version__

    report = ValidationReport(
        report_id=str(uuid.uuid4()),
        generated_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        validator_version=__version__,
        network=network,
        height=height,
        header_hash=header_hash,
        is_valid=result.is_valid,
        duration_ms=result.duration_ms,
        errors=[e.to_dict() for e in result.errors],
    )

    for stage in result.stages_passed:
        report.stage_results[stage] = {"status": "passed", "message": "OK"}
    for failure in result.errors:
        report.stage_results[failure.stage] = {"status": "failed", "message": failure.code.name}
    for stage in result.stages_skipped:
        report.stage_results[stage] = {"status": "skipped", "message": "Not run"}

    return report
